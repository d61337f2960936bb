from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finboard.config import SESSION_COOKIE_NAME, SESSION_TTL_DAYS
from finboard.db import get_db
from finboard.errors import Conflict, Unauthenticated
from finboard.models import User
from finboard.schemas import SignInRequest, SignUpRequest, UserOut
from finboard.services.access_gate import session_token
from finboard.services.auth_service import authenticate, close_session, hash_password, open_session
from finboard.services.records import project_user


logger = logging.getLogger(__name__)

router = APIRouter()


def _email_taken(db: Session, email: str) -> bool:
    return db.execute(select(User.id).where(User.email == email)).scalar_one_or_none() is not None


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=SESSION_TTL_DAYS * 24 * 3600,
        httponly=True,
        samesite="lax",
        path="/",
    )


@router.post("/sign-up", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def sign_up(payload: SignUpRequest, response: Response, db: Session = Depends(get_db)) -> UserOut:
    """
    Register a new account with the "user" role and sign it in.
    Admins are promoted afterwards through the users API.
    """
    if _email_taken(db, payload.email):
        raise Conflict(f"User with email {payload.email} already exists.")

    user = User(name=payload.name, email=payload.email, role="user", password_hash=hash_password(payload.password))
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        raise Conflict(f"User with email {payload.email} already exists.") from exc
    logger.info("Registered user %s", user.id)

    session_row = open_session(db, user)
    _set_session_cookie(response, session_row.token)
    return project_user(user)


@router.post("/sign-in", response_model=UserOut)
def sign_in(payload: SignInRequest, response: Response, db: Session = Depends(get_db)) -> UserOut:
    user = authenticate(db, payload.email, payload.password)
    if user is None:
        logger.warning("Failed sign-in for %s", payload.email)
        raise Unauthenticated("Invalid email or password.")
    session_row = open_session(db, user)
    _set_session_cookie(response, session_row.token)
    return project_user(user)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
def sign_out(request: Request, db: Session = Depends(get_db)) -> Response:
    token = session_token(request.cookies)
    if token:
        close_session(db, token)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return response
