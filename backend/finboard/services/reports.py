from __future__ import annotations

import datetime as dt
from io import BytesIO
from typing import Iterable, Sequence

import openpyxl

from finboard.config import REPORT_DENSE_DAYS
from finboard.schemas import ChartPoint, ReportSummaryOut, TransactionOut


def normalize(transactions: Iterable[TransactionOut], today: dt.date) -> list[TransactionOut]:
    """Drop future-dated rows; reports only cover what has already happened."""
    return [tx for tx in transactions if tx.date <= today]


def totals(rows: Iterable[TransactionOut]) -> tuple[float, float]:
    """Return ``(income, expenses)``, expenses as a positive number."""
    income = 0.0
    expenses = 0.0
    for tx in rows:
        if tx.amount > 0:
            income += tx.amount
        elif tx.amount < 0:
            expenses += abs(tx.amount)
    return income, expenses


def aggregate_by_day(rows: Iterable[TransactionOut]) -> list[ChartPoint]:
    """One point per date with data, ascending, carrying a running balance."""
    by_day: dict[dt.date, list[float]] = {}
    for tx in rows:
        bucket = by_day.setdefault(tx.date, [0.0, 0.0])
        if tx.amount >= 0:
            bucket[0] += tx.amount
        else:
            bucket[1] += abs(tx.amount)

    points = []
    running = 0.0
    for day in sorted(by_day):
        income, expenses = by_day[day]
        running += income - expenses
        points.append(ChartPoint(date=day, income=income, expenses=expenses, balance=running))
    return points


def dense_series(points: Sequence[ChartPoint], today: dt.date, days: int = REPORT_DENSE_DAYS) -> list[ChartPoint]:
    """
    Fill the ``days``-long window ending at the last data date (never after
    today) with one point per day. Empty days have no income or expenses and
    repeat the last known balance.
    """
    if not points:
        return []
    last = min(points[-1].date, today)
    start = last - dt.timedelta(days=days - 1)
    by_date = {p.date: p for p in points}

    # Balance carried into the window from days before it
    running = 0.0
    for p in points:
        if p.date < start:
            running = p.balance

    series = []
    for offset in range(days):
        day = start + dt.timedelta(days=offset)
        point = by_date.get(day)
        if point is not None:
            running = point.balance
        series.append(
            ChartPoint(
                date=day,
                income=point.income if point else 0.0,
                expenses=point.expenses if point else 0.0,
                balance=running,
            )
        )
    return series


def build_summary(transactions: Iterable[TransactionOut], today: dt.date, days: int = REPORT_DENSE_DAYS) -> ReportSummaryOut:
    rows = normalize(transactions, today)
    income, expenses = totals(rows)
    daily = aggregate_by_day(rows)
    return ReportSummaryOut(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        days=daily,
        series=dense_series(daily, today, days),
    )


def export_workbook(rows: Sequence[TransactionOut], summary: ReportSummaryOut) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Transactions"
    ws.append(["ID", "Date", "Concept", "Type", "Amount", "User", "Email"])
    for tx in rows:
        ws.append([
            tx.id,
            tx.date.isoformat(),
            tx.concept,
            "income" if tx.amount >= 0 else "expense",
            tx.amount,
            tx.user.name or "",
            tx.user.email or "",
        ])

    daily = wb.create_sheet("Daily")
    daily.append(["Date", "Income", "Expenses", "Balance"])
    for point in summary.days:
        daily.append([point.date.isoformat(), point.income, point.expenses, point.balance])

    totals_ws = wb.create_sheet("Totals")
    totals_ws.append(["Total income", summary.total_income])
    totals_ws.append(["Total expenses", summary.total_expenses])
    totals_ws.append(["Balance", summary.balance])

    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()
