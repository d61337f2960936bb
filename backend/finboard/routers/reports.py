from __future__ import annotations

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from finboard.config import REPORT_DENSE_DAYS
from finboard.db import get_db
from finboard.deps import require_roles
from finboard.routers.income import load_transactions, owner_scope
from finboard.schemas import ReportSummaryOut
from finboard.services.access_gate import Identity
from finboard.services.reports import build_summary, export_workbook, normalize


router = APIRouter()

any_member = require_roles("admin", "user")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/summary", response_model=ReportSummaryOut)
def get_summary(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    days: int = Query(default=REPORT_DENSE_DAYS, ge=1, le=366, description="Length of the dense daily series"),
    identity: Identity = Depends(any_member),
    db: Session = Depends(get_db),
) -> ReportSummaryOut:
    """
    Income vs expenses for the caller's transactions (or, for admins, the
    ``userId`` given). Future-dated rows are left out.
    """
    rows = load_transactions(db, owner_scope(identity, user_id))
    return build_summary(rows, dt.date.today(), days)


@router.get("/export")
def export_report(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    identity: Identity = Depends(any_member),
    db: Session = Depends(get_db),
) -> Response:
    """Download the same report as an Excel workbook."""
    today = dt.date.today()
    rows = normalize(load_transactions(db, owner_scope(identity, user_id)), today)
    content = export_workbook(rows, build_summary(rows, today))
    filename = f"finboard-report-{today.isoformat()}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
