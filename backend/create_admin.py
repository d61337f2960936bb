"""
Create (or promote) an administrator account.

Usage (from backend/):
  python create_admin.py admin@example.com "Main Administrator" 'S3cret-pass'
"""

import sys

from sqlalchemy import select

from finboard.db import Base, engine, get_session
from finboard.models import User
from finboard.services.auth_service import hash_password


def create_admin(email: str, name: str, password: str) -> str:
    Base.metadata.create_all(bind=engine)
    email = email.strip().lower()
    with get_session() as session:
        user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if user is not None:
            user.role = "admin"
            user.password_hash = hash_password(password)
            return f"Admin {email} already existed, role and password updated"
        session.add(User(name=name, email=email, role="admin", password_hash=hash_password(password)))
        return f"Admin {email} created"


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(1)
    print(create_admin(*sys.argv[1:]))
