"""
Tiny DB bootstrap script for Finboard.

- Reads FINBOARD_DB_URL (or falls back to a local SQLite file).
- Creates all tables defined in finboard.models Base metadata.

Usage (from backend/):
  python init_db.py
"""

from finboard.db import Base, engine
from finboard import models  # noqa: F401  - ensure models are imported so metadata is populated


def main() -> None:
    Base.metadata.create_all(bind=engine)
    print("Finboard tables created (or already exist).")


if __name__ == "__main__":
    main()
