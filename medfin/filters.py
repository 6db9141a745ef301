from datetime import date
from typing import Callable, Union

from medfin.domain import ExpenseEntry, IncomeEntry
from medfin.functional import to_date
from medfin.statement import MonthLike, month_start
from medfin.status import effective_status

Record = Union[IncomeEntry, ExpenseEntry]

ALL_STATUSES = "Todos"
ALL_CATEGORIES = "Todas"


def by_search(term: str) -> Callable[[Record], bool]:
    needle = (term or "").strip().lower()

    def _filter(r: Record) -> bool:
        if not needle:
            return True
        if isinstance(r, ExpenseEntry):
            haystack = (r.description, r.category)
        else:
            haystack = (r.counterparty, r.tag)
        return any(needle in (h or "").lower() for h in haystack)

    return _filter


def by_status(status: str, today: date) -> Callable[[Record], bool]:
    def _filter(r: Record) -> bool:
        if status == ALL_STATUSES:
            return True
        current = effective_status(r, today) if isinstance(r, IncomeEntry) else r.status
        return current == status

    return _filter


def by_month(month: MonthLike, field: str) -> Callable[[Record], bool]:
    first = month_start(month)

    def _filter(r: Record) -> bool:
        d = to_date(getattr(r, field, None))
        return d is not None and (d.year, d.month) == (first.year, first.month)

    return _filter


def by_category(name: str) -> Callable[[ExpenseEntry], bool]:
    def _filter(r: ExpenseEntry) -> bool:
        return name == ALL_CATEGORIES or r.category == name

    return _filter
