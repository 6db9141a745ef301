import logging
from dataclasses import replace
from datetime import date
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta

from medfin.domain import (
    BIWEEKLY,
    MONTHLY,
    PENDING,
    UNPAID,
    WEEKLY,
    YEARLY,
    Entry,
    ExpenseEntry,
    IncomeEntry,
    RecurrencePolicy,
)
from medfin.functional import safe_date, to_date

logger = logging.getLogger(__name__)

MAX_OCCURRENCES = 100
DEFAULT_HORIZON = relativedelta(months=12)
DEFAULT_GAP_DAYS = 30


def period_step(frequency: str) -> relativedelta:
    """One period advance.

    Each member is stepped from the previous one, so month-end clamping
    carries forward: Jan 31, Feb 29, Mar 29, Apr 29.
    """
    if frequency == WEEKLY:
        return relativedelta(days=7)
    if frequency == BIWEEKLY:
        return relativedelta(days=15)
    if frequency == YEARLY:
        return relativedelta(years=1)
    # MONTHLY and anything unrecognised
    return relativedelta(months=1)


def _start_of(template: Entry) -> Optional[date]:
    if isinstance(template, ExpenseEntry):
        return to_date(template.due_on)
    return to_date(template.occurred_on)


def _gap_days(template: Entry, start: date) -> Optional[int]:
    if not isinstance(template, IncomeEntry) or not template.expected_on:
        return None
    expected = safe_date(template.expected_on)
    if expected.is_none():
        return DEFAULT_GAP_DAYS
    return (expected.get_or_else(start) - start).days


def _unsettled(entry: Entry) -> Entry:
    if isinstance(entry, ExpenseEntry):
        return replace(entry, status=UNPAID, paid_on=None)
    return replace(entry, status=PENDING, received_on=None)


def _member(template: Entry, when: date, gap: Optional[int], policy: RecurrencePolicy) -> Entry:
    stamp = dict(is_recurring=True, frequency=policy.frequency, series_end_date=policy.end_date)
    if isinstance(template, ExpenseEntry):
        return replace(template, due_on=when.isoformat(), **stamp)
    if gap is not None:
        stamp["expected_on"] = (when + relativedelta(days=gap)).isoformat()
    return replace(template, occurred_on=when.isoformat(), **stamp)


def expand_series(template: Entry, policy: Optional[RecurrencePolicy]) -> Tuple[Tuple[Entry, ...], bool]:
    """Turn one form submission into the records to insert as a batch.

    The first member is the template itself (dated on its own start date);
    later members are reset to the unsettled status so a series is never
    born already paid. Generation stops at the end date (inclusive) or after
    MAX_OCCURRENCES members, whichever comes first. The flag is True only
    when the cap cut the series short.
    """
    if policy is None or not policy.enabled:
        return (replace(template, is_recurring=False, frequency=None, series_end_date=None),), False

    start = _start_of(template)
    if start is None:
        logger.debug("recurrence skipped, unparseable start date on %r", template.id)
        return (template,), False

    end = to_date(policy.end_date)
    if end is None:
        end = start + DEFAULT_HORIZON
    gap = _gap_days(template, start)
    step = period_step(policy.frequency)

    members = []
    current = start
    while current <= end and len(members) < MAX_OCCURRENCES:
        source = template if not members else _unsettled(template)
        members.append(_member(source, current, gap, policy))
        current = current + step

    truncated = current <= end
    if truncated:
        logger.debug("recurrence truncated at %d members (end %s)", MAX_OCCURRENCES, end)
    return tuple(members), truncated


def expand_recurrence(template: Entry, policy: Optional[RecurrencePolicy]) -> Tuple[Entry, ...]:
    members, _ = expand_series(template, policy)
    return members
