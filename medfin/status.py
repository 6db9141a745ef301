"""Overdue detection.

Overdue is never stored: a pending income whose expected payment date lies
before today is *displayed* as ``Atrasado`` while storage keeps ``A Receber``.
Every list, sort and aggregation goes through these helpers so the dashboard,
the list pages and the statement agree on what is late.
"""
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Tuple, TypeVar, Union

from medfin.domain import OVERDUE, PENDING, UNPAID, ExpenseEntry, IncomeEntry
from medfin.functional import to_date

R = TypeVar("R", IncomeEntry, ExpenseEntry)


def _day(today: Union[date, datetime]) -> date:
    return today.date() if isinstance(today, datetime) else today


def effective_status(entry: IncomeEntry, today: Union[date, datetime]) -> str:
    if entry.status != PENDING:
        return entry.status
    expected = to_date(entry.expected_on)
    if expected is not None and expected < _day(today):
        return OVERDUE
    return entry.status


def is_overdue(entry: Union[IncomeEntry, ExpenseEntry], today: Union[date, datetime]) -> bool:
    if isinstance(entry, ExpenseEntry):
        due = to_date(entry.due_on)
        return entry.status == UNPAID and due is not None and due < _day(today)
    return effective_status(entry, today) == OVERDUE


def _sort_key(entry) -> Tuple[int, date]:
    d = to_date(entry.due_on if isinstance(entry, ExpenseEntry) else entry.occurred_on)
    return (0, d) if d is not None else (1, date.max)


def with_effective_status(records: Iterable[R], today: Union[date, datetime]) -> Tuple[R, ...]:
    """Return copies carrying their display status, oldest first.

    Expenses keep their stored label; only income records can turn overdue.
    """
    annotated = []
    for r in records:
        if isinstance(r, IncomeEntry):
            status = effective_status(r, today)
            if status != r.status:
                r = replace(r, status=status)
        annotated.append(r)
    return tuple(sorted(annotated, key=_sort_key))
