from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, Iterator, List, Tuple

from medfin.domain import OVERDUE, PENDING, IncomeEntry
from medfin.status import effective_status


def iter_entries(
    records: Iterable[IncomeEntry], pred: Callable[[IncomeEntry], bool]
) -> Iterator[IncomeEntry]:
    for r in records:
        if pred(r):
            yield r


def _group_by_counterparty(records: Iterable[IncomeEntry]) -> Dict[str, Dict[str, object]]:
    grouped: Dict[str, Dict[str, object]] = defaultdict(lambda: {"total": Decimal("0"), "count": 0})
    for r in records:
        grouped[r.counterparty]["total"] += r.amount
        grouped[r.counterparty]["count"] += 1
    return grouped


def pending_by_counterparty(
    shifts: Iterable[IncomeEntry], today: date
) -> Iterator[Tuple[str, Decimal, int]]:
    """Outstanding amounts per hospital (late ones included), largest first."""
    outstanding = iter_entries(shifts, lambda r: effective_status(r, today) in (PENDING, OVERDUE))
    grouped = _group_by_counterparty(outstanding)
    ordered: List[Tuple[str, Decimal, int]] = sorted(
        ((name, g["total"], g["count"]) for name, g in grouped.items()),
        key=lambda item: item[1],
        reverse=True,
    )
    for item in ordered:
        yield item


def overdue_ranking(
    shifts: Iterable[IncomeEntry], today: date
) -> Iterator[Tuple[str, Decimal, int]]:
    late = iter_entries(shifts, lambda r: effective_status(r, today) == OVERDUE)
    grouped = _group_by_counterparty(late)
    ordered = sorted(
        ((name, g["total"], g["count"]) for name, g in grouped.items()),
        key=lambda item: item[2],
        reverse=True,
    )
    yield from ordered
