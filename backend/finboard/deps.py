from __future__ import annotations

from typing import Callable, Optional, Sequence, TypeVar

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from finboard.db import get_db
from finboard.errors import InvalidBody
from finboard.schemas import PageOut, SortDirection
from finboard.services.table_view import Column, TableView
from finboard.services.access_gate import (
    Identity,
    RoleStore,
    SessionStore,
    SqlRoleStore,
    SqlSessionStore,
    require_role,
)


T = TypeVar("T")


def get_session_store(db: Session = Depends(get_db)) -> SessionStore:
    return SqlSessionStore(db)


def get_role_store(db: Session = Depends(get_db)) -> RoleStore:
    return SqlRoleStore(db)


def require_roles(*allowed: str) -> Callable[..., Identity]:
    """
    Route dependency: ``identity: Identity = Depends(require_roles("admin"))``.
    Raises 401/403 through the access gate before the handler runs.
    """

    def dependency(
        request: Request,
        sessions: SessionStore = Depends(get_session_store),
        roles: RoleStore = Depends(get_role_store),
    ) -> Identity:
        return require_role(request.cookies, allowed, sessions, roles)

    return dependency


class TableParams:
    """Query parameters driving the table view: search, sort and page."""

    def __init__(
        self,
        q: Optional[str] = Query(default=None, description="Case-insensitive search text"),
        sort: Optional[str] = Query(default=None, description="Column key to sort by"),
        direction: SortDirection = Query(default="asc"),
        page: Optional[int] = Query(default=None, ge=1, description="1-based page; omit for all rows"),
    ) -> None:
        self.q = q or ""
        self.sort = sort
        self.direction = direction
        self.page = page


def apply_table(
    items: Sequence[T],
    to_record: Callable[[T], dict],
    columns: Sequence[Column],
    params: TableParams,
    title: str = "",
) -> tuple[list[T], Optional[PageOut]]:
    """
    Run typed items through a TableView and map the visible rows back.
    Pagination info is only returned when a page was requested.
    """
    records = [to_record(item) for item in items]
    by_id = {record["id"]: item for record, item in zip(records, items)}

    view = TableView(records, columns, title=title)
    view.set_search(params.q)
    try:
        view.sort_by(params.sort, params.direction)
    except ValueError as exc:
        raise InvalidBody(
            str(exc), details={"formErrors": [], "fieldErrors": {"sort": [str(exc)]}}
        ) from exc

    if params.page is None:
        return [by_id[r["id"]] for r in view.sorted()], None

    view.set_page(params.page)
    page = PageOut(
        page=view.effective_page,
        total_pages=view.total_pages,
        total_items=view.total_items,
        sort=view.sort.key,
        direction=view.sort.direction,
        search=view.search,
    )
    return [by_id[r["id"]] for r in view.page_rows()], page
