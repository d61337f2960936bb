from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finboard.config import USER_LIST_LIMIT
from finboard.db import get_db
from finboard.deps import TableParams, apply_table, require_roles
from finboard.errors import Conflict, NotFound
from finboard.models import User
from finboard.schemas import UserCreate, UserOut, UserUpdate
from finboard.services.access_gate import Identity
from finboard.services.records import USER_COLUMNS, project_user, user_record


logger = logging.getLogger(__name__)

router = APIRouter()

admin_only = require_roles("admin")


def _email_taken(db: Session, email: str) -> bool:
    return db.execute(select(User.id).where(User.email == email)).scalar_one_or_none() is not None


@router.get("", response_model=dict)
def list_users(
    table: TableParams = Depends(),
    identity: Identity = Depends(admin_only),
    db: Session = Depends(get_db),
) -> dict:
    """
    List users, newest first (at most 100).

    Accepts the table view parameters (q, sort, direction, page); with
    ``page`` the response also carries pagination info.
    """
    rows = db.execute(select(User).order_by(User.created_at.desc()).limit(USER_LIST_LIMIT)).scalars().all()
    items, page = apply_table([project_user(u) for u in rows], user_record, USER_COLUMNS, table, title="users")
    result: dict = {"items": [item.model_dump(by_alias=True, mode="json") for item in items]}
    if page is not None:
        result.update(page.model_dump())
    return result


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    identity: Identity = Depends(admin_only),
    db: Session = Depends(get_db),
) -> UserOut:
    if payload.email and _email_taken(db, payload.email):
        raise Conflict(f"User with email {payload.email} already exists.")

    user = User(name=payload.name, role=payload.role, email=payload.email, tel=payload.tel)
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        # Lost a race with a concurrent insert of the same email
        raise Conflict(f"User with email {payload.email} already exists.") from exc
    logger.info("User %s created by %s", user.id, identity.user_id)
    return project_user(user)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    payload: UserUpdate,
    identity: Identity = Depends(admin_only),
    db: Session = Depends(get_db),
) -> UserOut:
    """Rename a user or change their role. The new role applies on their next request."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found.")
    user.name = payload.name
    user.role = payload.role
    db.flush()
    logger.info("User %s updated by %s (role=%s)", user.id, identity.user_id, user.role)
    return project_user(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    identity: Identity = Depends(admin_only),
    db: Session = Depends(get_db),
) -> Response:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found.")
    db.delete(user)
    logger.info("User %s deleted by %s", user_id, identity.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
