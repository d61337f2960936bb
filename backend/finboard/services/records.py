from __future__ import annotations

from typing import TYPE_CHECKING

from finboard.schemas import TransactionOut, TxUserOut, UserOut
from finboard.services.table_view import SEARCH_KEY, Column

if TYPE_CHECKING:
    from finboard.models import Transaction, User


INCOME_COLUMNS = [
    Column("id", "ID"),
    Column("concept", "Concept"),
    Column("amount", "Amount"),
    Column("date", "Date"),
    Column("user", "User"),
]

USER_COLUMNS = [
    Column("name", "Name"),
    Column("email", "Email"),
    Column("tel", "Phone"),
    Column("role", "Role"),
    Column("createdAt", "Created"),
]


def to_role(value: object) -> str:
    """Collapse whatever is stored into "admin" or "user"."""
    if value in ("admin", "user"):
        return value  # type: ignore[return-value]
    return "admin" if str(value or "").strip().lower() == "admin" else "user"


def project_user(user: "User") -> UserOut:
    return UserOut(
        id=user.id,
        name=user.name,
        email=user.email,
        tel=user.tel,
        role=to_role(user.role),
        created_at=user.created_at,
    )


def project_transaction(tx: "Transaction") -> TransactionOut:
    """Project a Transaction row (with its owner loaded) into the API shape."""
    return TransactionOut(
        id=tx.id,
        concept=tx.concept or "",
        amount=float(tx.amount) if tx.amount is not None else 0.0,
        date=tx.date,
        user=TxUserOut(id=tx.user.id, name=tx.user.name, email=tx.user.email),
    )


def _blob(*parts: object) -> str:
    return " ".join(str(p) for p in parts if p not in (None, "")).lower()


def income_record(item: TransactionOut) -> dict:
    user = {"name": item.user.name or "", "email": item.user.email or ""}
    amount = item.amount
    return {
        "id": item.id,
        "concept": item.concept,
        "amount": amount,
        "date": item.date.isoformat(),
        "user": user,
        SEARCH_KEY: _blob(item.concept, amount, item.date.isoformat(), user["name"], user["email"]),
    }


def user_record(item: UserOut) -> dict:
    return {
        "id": item.id,
        "name": item.name or "",
        "email": item.email or "",
        "tel": item.tel or "",
        "role": item.role,
        "createdAt": item.created_at.isoformat(),
        SEARCH_KEY: _blob(item.name, item.email, item.tel, item.role),
    }
