from datetime import date, timedelta
from decimal import Decimal

from medfin.domain import (
    BIWEEKLY,
    MONTHLY,
    PAID,
    PENDING,
    RECEIVED,
    SHIFT,
    UNPAID,
    WEEKLY,
    YEARLY,
    ExpenseEntry,
    IncomeEntry,
    RecurrencePolicy,
)
from medfin.recurrence import MAX_OCCURRENCES, expand_recurrence, expand_series, period_step


def make_shift(**kw):
    base = dict(
        id="",
        owner_ref="u1",
        kind=SHIFT,
        counterparty="Hospital A",
        amount=Decimal("1500.00"),
        occurred_on="2024-01-01",
        expected_on="2024-01-31",
    )
    base.update(kw)
    return IncomeEntry(**base)


def test_disabled_policy_returns_single_record():
    result = expand_recurrence(make_shift(), RecurrencePolicy(enabled=False))
    assert len(result) == 1
    assert result[0].is_recurring is False
    assert result[0].occurred_on == "2024-01-01"


def test_missing_policy_returns_single_record():
    assert len(expand_recurrence(make_shift(), None)) == 1


def test_weekly_without_end_date_runs_twelve_months():
    result = expand_recurrence(make_shift(), RecurrencePolicy(enabled=True, frequency=WEEKLY))
    assert result[1].occurred_on == "2024-01-08"
    assert date.fromisoformat(result[-1].occurred_on) <= date(2025, 1, 1)
    assert len(result) == 53


def test_biweekly_steps_fifteen_days():
    result = expand_recurrence(make_shift(), RecurrencePolicy(enabled=True, frequency=BIWEEKLY))
    assert [r.occurred_on for r in result[:3]] == ["2024-01-01", "2024-01-16", "2024-01-31"]


def test_never_more_than_cap():
    policy = RecurrencePolicy(enabled=True, frequency=WEEKLY, end_date="2030-12-31")
    result = expand_recurrence(make_shift(), policy)
    assert len(result) == MAX_OCCURRENCES


def test_expected_gap_preserved():
    result = expand_recurrence(make_shift(), RecurrencePolicy(enabled=True, frequency=MONTHLY))
    assert len(result) == 13
    for r in result:
        gap = date.fromisoformat(r.expected_on) - date.fromisoformat(r.occurred_on)
        assert gap.days == 30


def test_end_date_is_inclusive():
    policy = RecurrencePolicy(enabled=True, frequency=MONTHLY, end_date="2024-03-15")
    result = expand_recurrence(make_shift(occurred_on="2024-01-15", expected_on=None), policy)
    assert [r.occurred_on for r in result] == ["2024-01-15", "2024-02-15", "2024-03-15"]


def test_month_end_clamp_carries_forward():
    policy = RecurrencePolicy(enabled=True, frequency=MONTHLY, end_date="2024-04-30")
    result = expand_recurrence(make_shift(occurred_on="2024-01-31", expected_on=None), policy)
    assert [r.occurred_on for r in result] == ["2024-01-31", "2024-02-29", "2024-03-29", "2024-04-29"]


def test_members_are_stamped_with_series_fields():
    policy = RecurrencePolicy(enabled=True, frequency=MONTHLY, end_date="2024-06-01")
    result = expand_recurrence(make_shift(), policy)
    assert all(r.is_recurring for r in result)
    assert {r.frequency for r in result} == {MONTHLY}
    assert {r.series_end_date for r in result} == {"2024-06-01"}


def test_unparseable_start_returns_template_unchanged():
    template = make_shift(occurred_on="not-a-date")
    policy = RecurrencePolicy(enabled=True, frequency=WEEKLY)
    assert expand_recurrence(template, policy) == (template,)


def test_settled_template_only_first_member_keeps_status():
    template = make_shift(status=RECEIVED, received_on="2024-01-30")
    policy = RecurrencePolicy(enabled=True, frequency=MONTHLY, end_date="2024-04-01")
    result = expand_recurrence(template, policy)
    assert result[0].status == RECEIVED
    assert result[0].received_on == "2024-01-30"
    assert all(r.status == PENDING and r.received_on is None for r in result[1:])


def test_expense_series_steps_due_date_and_resets_paid():
    template = ExpenseEntry(
        id="",
        owner_ref="u1",
        category="Contador",
        description="Honorários",
        amount=Decimal("450"),
        due_on="2024-01-10",
        status=PAID,
        paid_on="2024-01-10",
    )
    policy = RecurrencePolicy(enabled=True, frequency=MONTHLY, end_date="2024-03-31")
    result = expand_recurrence(template, policy)
    assert [e.due_on for e in result] == ["2024-01-10", "2024-02-10", "2024-03-10"]
    assert [e.status for e in result] == [PAID, UNPAID, UNPAID]
    assert result[2].paid_on is None


def test_members_share_no_ids():
    result = expand_recurrence(make_shift(), RecurrencePolicy(enabled=True, frequency=YEARLY))
    assert len(result) == 2
    assert all(r.id == "" for r in result)


def test_period_step_yearly_from_leap_day():
    assert date(2024, 2, 29) + period_step(YEARLY) == date(2025, 2, 28)
    assert date(2024, 1, 31) + period_step(MONTHLY) == date(2024, 2, 29)
    assert date(2024, 1, 1) + period_step(BIWEEKLY) == date(2024, 1, 16)


def test_same_input_same_output():
    template = make_shift(status=RECEIVED, received_on="2024-01-30")
    policy = RecurrencePolicy(enabled=True, frequency=WEEKLY, end_date="2024-06-30")
    assert expand_recurrence(template, policy) == expand_recurrence(template, policy)


def test_negative_gap_preserved():
    template = make_shift(occurred_on="2024-01-10", expected_on="2024-01-05")
    result = expand_recurrence(template, RecurrencePolicy(enabled=True, frequency=MONTHLY, end_date="2024-05-10"))
    assert len(result) == 5
    for r in result:
        gap = date.fromisoformat(r.expected_on) - date.fromisoformat(r.occurred_on)
        assert gap.days == -5


def test_cap_reports_truncation():
    policy = RecurrencePolicy(enabled=True, frequency=WEEKLY, end_date="2030-12-31")
    members, truncated = expand_series(make_shift(), policy)
    assert len(members) == MAX_OCCURRENCES
    assert truncated


def test_series_ending_exactly_at_cap_is_not_truncated():
    end = date(2024, 1, 1) + timedelta(weeks=MAX_OCCURRENCES - 1)
    policy = RecurrencePolicy(enabled=True, frequency=WEEKLY, end_date=end.isoformat())
    members, truncated = expand_series(make_shift(), policy)
    assert len(members) == MAX_OCCURRENCES
    assert members[-1].occurred_on == end.isoformat()
    assert not truncated


def test_single_record_is_not_truncated():
    members, truncated = expand_series(make_shift(), RecurrencePolicy(enabled=False))
    assert len(members) == 1
    assert not truncated
