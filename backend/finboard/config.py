from __future__ import annotations

import os


DATABASE_URL = os.getenv("FINBOARD_DB_URL", "sqlite:///./finboard.db")

# Cookie written at sign-in. Lookup also accepts the secure-prefixed variant
# and the generic names used by older clients, in this order.
SESSION_COOKIE_NAME = os.getenv("FINBOARD_SESSION_COOKIE", "finboard.session_token")
SESSION_COOKIE_KEYS = (
    f"__Secure-{SESSION_COOKIE_NAME}",
    SESSION_COOKIE_NAME,
    "session-token",
    "session",
)
SESSION_TTL_DAYS = int(os.getenv("FINBOARD_SESSION_TTL_DAYS", "7"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("FINBOARD_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("FINBOARD_LOG_LEVEL", "INFO").upper()

# Table view and listing limits
PAGE_SIZE = 5
USER_LIST_LIMIT = 100
TRANSACTION_LIST_LIMIT = 200
REPORT_DENSE_DAYS = 90
