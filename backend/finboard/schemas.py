from __future__ import annotations

import datetime as dt
import re
from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, EmailStr, Field


Role = Literal["admin", "user"]
SortDirection = Literal["asc", "desc"]

_YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

CENT = Decimal("0.01")
AMOUNT_LIMIT = Decimal("1e16")


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _check_amount(value: Decimal) -> Decimal:
    # Stored as NUMERIC(18, 2)
    if abs(value) >= AMOUNT_LIMIT:
        raise ValueError("amount is too large")
    if value != value.quantize(CENT):
        raise ValueError("amount must have at most 2 decimal places")
    if value == 0:
        raise ValueError("amount must not be zero")
    return value


def _parse_date(value):
    """Accept ``YYYY-MM-DD`` or a full ISO timestamp (normalized to its UTC date)."""
    if isinstance(value, dt.datetime):
        return value.astimezone(dt.timezone.utc).date() if value.tzinfo else value.date()
    if isinstance(value, dt.date):
        return value
    text = str(value or "").strip()
    if _YMD_RE.match(text):
        try:
            return dt.date.fromisoformat(text)
        except ValueError:
            raise ValueError("invalid_date")
    try:
        parsed = dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError("invalid_date")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(dt.timezone.utc)
    return parsed.date()


Email = Annotated[EmailStr, BeforeValidator(_strip), AfterValidator(str.lower)]
Name = Annotated[str, BeforeValidator(_strip), Field(min_length=2, max_length=100)]
Concept = Annotated[str, BeforeValidator(_strip), Field(min_length=1, max_length=200)]
Amount = Annotated[Decimal, Field(allow_inf_nan=False), AfterValidator(_check_amount)]
TxDate = Annotated[dt.date, BeforeValidator(_parse_date)]


class UserOut(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    tel: Optional[str] = None
    role: Role
    created_at: dt.datetime = Field(serialization_alias="createdAt")

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    name: Name
    role: Role
    email: Optional[Email] = None
    tel: Optional[str] = None


class UserUpdate(BaseModel):
    name: Name
    role: Role


class TxUserOut(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True


class TransactionOut(BaseModel):
    id: str
    concept: str
    amount: float  # + income, - expense
    date: dt.date
    user: TxUserOut


class TransactionCreate(BaseModel):
    concept: Concept
    amount: Amount
    date: TxDate


class TransactionUpdate(BaseModel):
    concept: Optional[Concept] = None
    amount: Optional[Amount] = None
    date: Optional[TxDate] = None


class SignUpRequest(BaseModel):
    name: Name
    email: Email
    password: str = Field(min_length=8, max_length=128)


class SignInRequest(BaseModel):
    email: Annotated[str, AfterValidator(lambda v: v.strip().lower())]
    password: str = Field(min_length=1)


class MeOut(BaseModel):
    userId: str
    role: Role
    name: Optional[str] = None
    email: Optional[str] = None
    image: str = ""


class PhoneUpdate(BaseModel):
    tel: Annotated[str, BeforeValidator(_strip), Field(min_length=1, max_length=50)]
    userId: Optional[str] = None


class ColumnOut(BaseModel):
    key: str
    label: str
    sortable: bool = True


class PageOut(BaseModel):
    page: int
    total_pages: int
    total_items: int
    sort: Optional[str] = None
    direction: SortDirection = "asc"
    search: str = ""


class ChartPoint(BaseModel):
    date: dt.date
    income: float
    expenses: float
    balance: float


class ReportSummaryOut(BaseModel):
    total_income: float
    total_expenses: float
    balance: float
    days: list[ChartPoint]
    series: list[ChartPoint]
