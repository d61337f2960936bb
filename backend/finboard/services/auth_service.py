from __future__ import annotations

import datetime as dt
import logging
import secrets
from typing import Optional

import bcrypt
from sqlalchemy import delete, select
from sqlalchemy.orm import Session as DbSession

from finboard.config import SESSION_TTL_DAYS
from finboard.models import Session, User


logger = logging.getLogger(__name__)


def _secret(password: str) -> bytes:
    # bcrypt reads at most 72 bytes of secret
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_secret(password), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(_secret(password), password_hash.encode("utf-8"))


def authenticate(db: DbSession, email: str, password: str) -> Optional[User]:
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None or not check_password(password, user.password_hash):
        return None
    return user


def open_session(db: DbSession, user: User, ttl_days: int = SESSION_TTL_DAYS) -> Session:
    row = Session(
        token=secrets.token_urlsafe(32),
        user_id=user.id,
        expires_at=dt.datetime.now(dt.timezone.utc) + dt.timedelta(days=ttl_days),
    )
    db.add(row)
    db.flush()
    logger.info("Opened session for user %s", user.id)
    return row


def close_session(db: DbSession, token: str) -> None:
    db.execute(delete(Session).where(Session.token == token))
