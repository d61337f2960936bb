"""
Server-side page gate.

Each page runs the page-load check first: no session redirects to the login
page, a disallowed role redirects to the 403 page. Allowed requests get the
page's view model as JSON; presentation is left to the client.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional, Sequence

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from finboard.config import USER_LIST_LIMIT
from finboard.db import get_db
from finboard.deps import get_role_store, get_session_store
from finboard.models import User
from finboard.routers.income import load_transactions
from finboard.services.access_gate import LOGIN_PATH, PageDecision, RoleStore, SessionStore, page_access
from finboard.services.records import INCOME_COLUMNS, USER_COLUMNS, income_record, project_user, user_record
from finboard.services.reports import build_summary
from finboard.services.table_view import SortDirection, TableView


router = APIRouter()


def _gate(request: Request, allowed: Sequence[str], sessions: SessionStore, roles: RoleStore) -> PageDecision:
    return page_access(request.cookies, allowed, sessions, roles)


def _redirect(decision: PageDecision) -> RedirectResponse:
    return RedirectResponse(decision.redirect, status_code=307)


def _table_page(
    view: TableView,
    q: Optional[str],
    sort: Optional[str],
    direction: SortDirection,
    page: int,
    edit: Optional[str],
    add: bool,
) -> dict:
    view.set_search(q or "")
    if sort and view.is_sortable(sort):
        view.sort_by(sort, direction)
    view.set_page(page)
    if edit:
        view.on_edit_request(edit)
    elif add:
        view.on_add()
    return view.as_dict()


@router.get("/")
def home(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
    roles: RoleStore = Depends(get_role_store),
):
    decision = _gate(request, ["admin", "user"], sessions, roles)
    if not decision.allowed:
        return _redirect(decision)
    return {"page": "home", "role": decision.identity.role}


@router.get("/income")
def income_page(
    request: Request,
    q: Optional[str] = None,
    sort: Optional[str] = None,
    direction: SortDirection = "asc",
    page: int = Query(default=1),
    edit: Optional[str] = None,
    add: bool = False,
    sessions: SessionStore = Depends(get_session_store),
    roles: RoleStore = Depends(get_role_store),
    db: Session = Depends(get_db),
):
    decision = _gate(request, ["admin", "user"], sessions, roles)
    if not decision.allowed:
        return _redirect(decision)
    records = [income_record(tx) for tx in load_transactions(db, decision.identity.user_id)]
    # Only admins may create transactions
    can_add = decision.identity.role == "admin"
    view = TableView(records, INCOME_COLUMNS, title="Income & Expenses", add_type="income")
    model = _table_page(view, q, sort, direction, page, edit if can_add else None, add and can_add)
    model.update({"page": "income", "canAdd": can_add})
    return model


@router.get("/users")
def users_page(
    request: Request,
    q: Optional[str] = None,
    sort: Optional[str] = None,
    direction: SortDirection = "asc",
    page: int = Query(default=1),
    edit: Optional[str] = None,
    add: bool = False,
    sessions: SessionStore = Depends(get_session_store),
    roles: RoleStore = Depends(get_role_store),
    db: Session = Depends(get_db),
):
    decision = _gate(request, ["admin"], sessions, roles)
    if not decision.allowed:
        return _redirect(decision)
    rows = db.execute(select(User).order_by(User.created_at.desc()).limit(USER_LIST_LIMIT)).scalars().all()
    records = [user_record(project_user(u)) for u in rows]
    view = TableView(records, USER_COLUMNS, title="Users", add_type="user")
    model = _table_page(view, q, sort, direction, page, edit, add)
    model.update({"page": "users", "canAdd": True})
    return model


@router.get("/reports")
def reports_page(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
    roles: RoleStore = Depends(get_role_store),
    db: Session = Depends(get_db),
):
    decision = _gate(request, ["admin", "user"], sessions, roles)
    if not decision.allowed:
        return _redirect(decision)
    summary = build_summary(load_transactions(db, decision.identity.user_id), dt.date.today())
    return {"page": "reports", "summary": summary.model_dump(mode="json")}


@router.get("/profile")
def profile_page(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
    roles: RoleStore = Depends(get_role_store),
    db: Session = Depends(get_db),
):
    decision = _gate(request, ["admin", "user"], sessions, roles)
    if not decision.allowed:
        return _redirect(decision)
    user = db.get(User, decision.identity.user_id)
    if user is None:
        return RedirectResponse(LOGIN_PATH, status_code=307)
    return {"page": "profile", "user": project_user(user).model_dump(by_alias=True, mode="json")}


@router.get("/auth/login")
def login_page(request: Request, sessions: SessionStore = Depends(get_session_store)):
    """Signed-in users have nothing to do on the login page."""
    if sessions.get_user_id(request.cookies):
        return RedirectResponse("/", status_code=307)
    return {"page": "login"}


@router.get("/403")
def forbidden_page():
    return JSONResponse({"page": "403", "error": "forbidden"}, status_code=403)
