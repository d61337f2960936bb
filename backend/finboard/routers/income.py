from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from finboard.config import TRANSACTION_LIST_LIMIT
from finboard.db import get_db
from finboard.deps import TableParams, apply_table, require_roles
from finboard.errors import NotFound
from finboard.models import Transaction
from finboard.schemas import TransactionCreate, TransactionOut, TransactionUpdate
from finboard.services.access_gate import Identity
from finboard.services.records import INCOME_COLUMNS, income_record, project_transaction


logger = logging.getLogger(__name__)

router = APIRouter()

any_member = require_roles("admin", "user")
admin_only = require_roles("admin")


def owner_scope(identity: Identity, requested_user_id: Optional[str]) -> str:
    """Admins may read another user's rows; everyone else only sees their own."""
    if identity.role == "admin" and requested_user_id:
        return requested_user_id
    return identity.user_id


def load_transactions(db: Session, owner_id: str, limit: int = TRANSACTION_LIST_LIMIT) -> list[TransactionOut]:
    stmt = (
        select(Transaction)
        .options(joinedload(Transaction.user))
        .where(Transaction.user_id == owner_id)
        .order_by(Transaction.date.desc(), Transaction.created_at.desc())
        .limit(limit)
    )
    return [project_transaction(tx) for tx in db.execute(stmt).scalars()]


def _get_transaction(db: Session, transaction_id: str) -> Transaction:
    tx = db.get(Transaction, transaction_id, options=[joinedload(Transaction.user)])
    if tx is None:
        raise NotFound(f"Transaction {transaction_id} not found.")
    return tx


@router.get("", response_model=dict)
def list_income(
    user_id: Optional[str] = Query(default=None, alias="userId", description="Owner to read (admin only)"),
    table: TableParams = Depends(),
    identity: Identity = Depends(any_member),
    db: Session = Depends(get_db),
) -> dict:
    """
    List transactions newest first (at most 200), scoped to the caller.

    Non-admins always get their own rows; ``userId`` is ignored for them.
    """
    owner_id = owner_scope(identity, user_id)
    items, page = apply_table(load_transactions(db, owner_id), income_record, INCOME_COLUMNS, table, title="income")
    result: dict = {"items": [item.model_dump(mode="json") for item in items]}
    if page is not None:
        result.update(page.model_dump())
    return result


@router.post("/create", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def create_income(
    payload: TransactionCreate,
    identity: Identity = Depends(admin_only),
    db: Session = Depends(get_db),
) -> TransactionOut:
    """Record a transaction for the calling admin. Positive amounts are income, negative are expenses."""
    tx = Transaction(
        concept=payload.concept,
        amount=payload.amount,
        date=payload.date,
        user_id=identity.user_id,
    )
    db.add(tx)
    db.flush()
    db.refresh(tx)
    logger.info("Transaction %s created by %s", tx.id, identity.user_id)
    return project_transaction(tx)


@router.patch("/{transaction_id}", response_model=TransactionOut)
def update_income(
    transaction_id: str,
    payload: TransactionUpdate,
    identity: Identity = Depends(admin_only),
    db: Session = Depends(get_db),
) -> TransactionOut:
    tx = _get_transaction(db, transaction_id)
    if payload.concept is not None:
        tx.concept = payload.concept
    if payload.amount is not None:
        tx.amount = payload.amount
    if payload.date is not None:
        tx.date = payload.date
    db.flush()
    logger.info("Transaction %s updated by %s", tx.id, identity.user_id)
    return project_transaction(tx)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_income(
    transaction_id: str,
    identity: Identity = Depends(admin_only),
    db: Session = Depends(get_db),
) -> Response:
    tx = _get_transaction(db, transaction_id)
    db.delete(tx)
    logger.info("Transaction %s deleted by %s", transaction_id, identity.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
