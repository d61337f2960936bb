from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finboard.db import get_db
from finboard.deps import require_roles
from finboard.models import Transaction, User
from finboard.services.access_gate import Identity


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def get_health(db: Session = Depends(get_db)) -> dict:
    """Liveness plus a round trip to the database."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "error"
    return {"status": "ok" if db_status == "ok" else "degraded", "components": {"db": db_status}}


@router.get("/usage")
def get_usage(
    identity: Identity = Depends(require_roles("admin")),
    db: Session = Depends(get_db),
) -> dict:
    """Row counts for the admin dashboard."""
    users = db.execute(select(func.count(User.id))).scalar() or 0
    admins = db.execute(select(func.count(User.id)).where(User.role == "admin")).scalar() or 0
    transactions = db.execute(select(func.count(Transaction.id))).scalar() or 0
    return {
        "metrics": [
            {"name": "users", "value": users},
            {"name": "admins", "value": admins},
            {"name": "transactions", "value": transactions},
        ]
    }
