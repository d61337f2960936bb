"""
Role-based access checks for API routes and page loads.

The gate never trusts a role carried by the session: every check resolves
the session to a user id and then reads the role from the role store, so a
role change applies on the next request instead of after the session
expires. Collaborators are passed in explicitly for each call.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Mapping, NamedTuple, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from finboard.config import SESSION_COOKIE_KEYS
from finboard.errors import Forbidden, Unauthenticated
from finboard.models import Session, User


logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"
FORBIDDEN_PATH = "/403"


class SessionStore(Protocol):
    def get_user_id(self, cookies: Mapping[str, str]) -> Optional[str]: ...


class RoleStore(Protocol):
    def find_role(self, user_id: str) -> Optional[str]: ...


class Identity(NamedTuple):
    user_id: str
    role: str


class PageDecision(NamedTuple):
    """Outcome of a page-load check: ``redirect`` is set unless the page may render."""

    redirect: Optional[str]
    identity: Optional[Identity] = None

    @property
    def allowed(self) -> bool:
        return self.redirect is None


def session_token(cookies: Mapping[str, str]) -> Optional[str]:
    for key in SESSION_COOKIE_KEYS:
        value = cookies.get(key)
        if value:
            return value
    return None


def _as_utc(value: dt.datetime) -> dt.datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=dt.timezone.utc)


class SqlSessionStore:
    """Resolves the session cookie against the ``sessions`` table."""

    def __init__(self, db: DbSession) -> None:
        self.db = db

    def get_user_id(self, cookies: Mapping[str, str]) -> Optional[str]:
        token = session_token(cookies)
        if not token:
            return None
        row = self.db.execute(select(Session).where(Session.token == token)).scalar_one_or_none()
        if row is None:
            return None
        if _as_utc(row.expires_at) <= dt.datetime.now(dt.timezone.utc):
            return None
        return row.user_id


class SqlRoleStore:
    def __init__(self, db: DbSession) -> None:
        self.db = db

    def find_role(self, user_id: str) -> Optional[str]:
        return self.db.execute(select(User.role).where(User.id == user_id)).scalar_one_or_none()


def resolve_session(cookies: Mapping[str, str], sessions: SessionStore) -> str:
    user_id = sessions.get_user_id(cookies)
    if not user_id:
        raise Unauthenticated()
    return user_id


def require_role(
    cookies: Mapping[str, str],
    allowed: Sequence[str],
    sessions: SessionStore,
    roles: RoleStore,
) -> Identity:
    """
    Resolve the caller and check the stored role against ``allowed``.

    Raises ``Unauthenticated`` without a valid session and ``Forbidden`` when
    the user has no role or a role outside ``allowed``. Roles are compared
    exactly as stored.
    """
    user_id = resolve_session(cookies, sessions)
    role = roles.find_role(user_id)
    if not role or role not in allowed:
        logger.warning("Access denied for user %s with role %r (allowed: %s)", user_id, role, list(allowed))
        raise Forbidden()
    logger.debug("Access granted for user %s with role %r", user_id, role)
    return Identity(user_id, role)


def normalize_page_role(role: Optional[str]) -> str:
    return (role or "").strip().lower() or "user"


def page_access(
    cookies: Mapping[str, str],
    allowed: Sequence[str],
    sessions: SessionStore,
    roles: RoleStore,
) -> PageDecision:
    """
    Page-load gate: no session redirects to the login page, a role outside
    ``allowed`` redirects to the 403 page, anything else renders.
    """
    user_id = sessions.get_user_id(cookies)
    if not user_id:
        return PageDecision(LOGIN_PATH)
    role = normalize_page_role(roles.find_role(user_id))
    if role not in {r.lower() for r in allowed}:
        logger.warning("Page access denied for user %s with role %r (allowed: %s)", user_id, role, list(allowed))
        return PageDecision(FORBIDDEN_PATH)
    return PageDecision(None, Identity(user_id, role))
