"""Monthly statement ("Extrato") reconstruction.

Income is recognised on a cash basis: only records stored as ``Recebido``
count, on their ``received_on`` date. Expenses are recognised on their due
date whether paid or not, as long as the due date is not after the as-of
cutoff. The asymmetry is intentional and mirrored by the ledger exports.
"""
import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple, Union

from medfin.domain import (
    CREDIT,
    DEBIT,
    RECEIVED,
    SHIFT,
    ExpenseEntry,
    IncomeEntry,
    Statement,
    StatementLine,
)
from medfin.functional import to_date

logger = logging.getLogger(__name__)

MonthLike = Union[str, date, datetime]


def month_start(month: MonthLike) -> date:
    if isinstance(month, datetime):
        return month.date().replace(day=1)
    if isinstance(month, date):
        return month.replace(day=1)
    return datetime.strptime(month.strip()[:7], "%Y-%m").date()


def next_month(first: date) -> date:
    if first.month == 12:
        return date(first.year + 1, 1, 1)
    return date(first.year, first.month + 1, 1)


def as_of_instant(as_of: Union[date, datetime]) -> datetime:
    # a bare date means "up to the end of that day"
    if isinstance(as_of, datetime):
        return as_of
    return datetime.combine(as_of, time.max)


def _income_label(entry: IncomeEntry) -> Tuple[str, str]:
    if entry.kind == SHIFT:
        label = entry.counterparty if not entry.tag else f"{entry.counterparty} ({entry.tag})"
        return label, "Plantão"
    return entry.counterparty, "Recebível"


def _credits(incomes: Iterable[IncomeEntry]) -> Iterable[Tuple[date, IncomeEntry]]:
    for entry in incomes:
        if entry.status != RECEIVED:
            continue
        received = to_date(entry.received_on)
        if received is None:
            logger.debug("received income %r has no usable received_on", entry.id)
            continue
        yield received, entry


def _debits(expenses: Iterable[ExpenseEntry], cutoff: date) -> Iterable[Tuple[date, ExpenseEntry]]:
    for entry in expenses:
        due = to_date(entry.due_on)
        if due is None:
            logger.debug("expense %r has no usable due_on", entry.id)
            continue
        if due > cutoff:
            continue
        yield due, entry


def reconstruct_statement(
    incomes: Iterable[IncomeEntry],
    expenses: Iterable[ExpenseEntry],
    month: MonthLike,
    as_of: Union[date, datetime],
) -> Statement:
    first = month_start(month)
    after = next_month(first)
    instant = as_of_instant(as_of)
    cutoff = instant.date()

    credits = list(_credits(incomes))
    debits = list(_debits(expenses, cutoff))

    opening = sum((e.amount for d, e in credits if d < first), Decimal("0"))
    opening -= sum((e.amount for d, e in debits if d < first), Decimal("0"))

    # income first, then expense: sorted() keeps that order for same-day ties
    movements: List[Tuple[date, str, object]] = [
        (d, CREDIT, e) for d, e in credits if first <= d < after
    ] + [
        (d, DEBIT, e) for d, e in debits if first <= d < after
    ]
    movements.sort(key=lambda m: m[0])

    balance = opening
    total_credits = Decimal("0")
    total_debits = Decimal("0")
    lines = []
    for d, direction, entry in movements:
        if direction == CREDIT:
            label, category = _income_label(entry)
            balance += entry.amount
            total_credits += entry.amount
        else:
            label, category = entry.description or entry.category, entry.category
            balance -= entry.amount
            total_debits += entry.amount
        lines.append(StatementLine(
            source_id=entry.id,
            date=d,
            label=label,
            category=category,
            amount=entry.amount,
            direction=direction,
            running_balance_after=balance,
        ))

    return Statement(
        month=first,
        as_of=instant,
        opening_balance=opening,
        lines=tuple(lines),
        total_credits=total_credits,
        total_debits=total_debits,
        final_balance=opening + total_credits - total_debits,
    )


def statement_rows(statement: Statement) -> List[Dict[str, object]]:
    """Rows consumed by the PDF and spreadsheet exports."""
    return [
        {
            "date": line.date,
            "label": line.label,
            "category": line.category,
            "amount": line.signed_amount,
            "balance": line.running_balance_after,
        }
        for line in statement.lines
    ]


def statement_summary(statement: Statement) -> Dict[str, Decimal]:
    return {
        "opening_balance": statement.opening_balance,
        "total_credits": statement.total_credits,
        "total_debits": statement.total_debits,
        "final_balance": statement.final_balance,
    }
