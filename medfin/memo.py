from datetime import date
from decimal import Decimal
from functools import lru_cache
from typing import Iterable, Tuple

from dateutil.relativedelta import relativedelta

from medfin.domain import RECEIVED, IncomeEntry
from medfin.functional import to_date
from medfin.statement import month_start, next_month

THIS_MONTH = "this_month"
LAST_3_MONTHS = "last_3_months"
THIS_YEAR = "this_year"


@lru_cache(maxsize=128)
def cash_projection(
    incomes: Tuple[IncomeEntry, ...], start: date, months: int = 3
) -> Tuple[Tuple[date, Decimal], ...]:
    """Expected income per month by expected payment date, settled or not."""
    first = month_start(start)
    buckets = []
    for i in range(months):
        m = first + relativedelta(months=i)
        after = next_month(m)
        total = Decimal("0")
        for r in incomes:
            d = to_date(r.expected_on)
            if d is not None and m <= d < after:
                total += r.amount
        buckets.append((m, total))
    return tuple(buckets)


def period_bounds(period: str, today: date) -> Tuple[date, date]:
    if period == LAST_3_MONTHS:
        start = month_start(today) - relativedelta(months=2)
        return start, next_month(month_start(today)) - relativedelta(days=1)
    if period == THIS_YEAR:
        return date(today.year, 1, 1), date(today.year, 12, 31)
    return month_start(today), next_month(month_start(today)) - relativedelta(days=1)


def _received_between(records: Iterable[IncomeEntry], start: date, end: date) -> Decimal:
    total = Decimal("0")
    for r in records:
        d = to_date(r.received_on)
        if r.status == RECEIVED and d is not None and start <= d <= end:
            total += r.amount
    return total


@lru_cache(maxsize=128)
def revenue_mix(
    shifts: Tuple[IncomeEntry, ...],
    receivables: Tuple[IncomeEntry, ...],
    start: date,
    end: date,
) -> Tuple[Tuple[str, Decimal], ...]:
    totals = (
        ("Plantões", _received_between(shifts, start, end)),
        ("Outros", _received_between(receivables, start, end)),
    )
    # an empty period renders no pie at all
    if not any(total for _, total in totals):
        return ()
    return totals
