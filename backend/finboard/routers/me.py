from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from finboard.db import get_db
from finboard.deps import get_session_store
from finboard.errors import Forbidden, Unauthenticated
from finboard.models import User
from finboard.schemas import MeOut, PhoneUpdate
from finboard.services.access_gate import SessionStore, resolve_session
from finboard.services.records import to_role


router = APIRouter()


def _current_user(request: Request, sessions: SessionStore, db: Session) -> User:
    user_id = resolve_session(request.cookies, sessions)
    user = db.get(User, user_id)
    if user is None:
        # Session outlived its user
        raise Unauthenticated()
    return user


@router.get("", response_model=MeOut)
def get_me(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
    db: Session = Depends(get_db),
) -> MeOut:
    """Session introspection for the signed-in user."""
    user = _current_user(request, sessions, db)
    return MeOut(
        userId=user.id,
        role=to_role(user.role),
        name=user.name,
        email=user.email,
        image=user.image or "",
    )


@router.get("/phone")
def get_phone(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
    db: Session = Depends(get_db),
) -> dict:
    user = _current_user(request, sessions, db)
    return {"tel": user.tel or ""}


@router.post("/phone")
def update_phone(
    request: Request,
    payload: PhoneUpdate,
    sessions: SessionStore = Depends(get_session_store),
    db: Session = Depends(get_db),
) -> dict:
    """Update the caller's own phone number; a body naming another user is rejected."""
    user = _current_user(request, sessions, db)
    if payload.userId and payload.userId != user.id:
        raise Forbidden("forbidden_user_mismatch")
    user.tel = payload.tel
    return {"ok": True, "tel": payload.tel}
