from datetime import date
from decimal import Decimal
from itertools import islice

from medfin.domain import RECEIVED, SHIFT, IncomeEntry
from medfin.lazy import iter_entries, overdue_ranking, pending_by_counterparty

TODAY = date(2024, 5, 10)


def make_sample():
    return (
        IncomeEntry("s1", "u1", SHIFT, "Santa Casa", Decimal("1000"), "2024-04-01", "2024-05-01"),
        IncomeEntry("s2", "u1", SHIFT, "Santa Casa", Decimal("1000"), "2024-04-08", "2024-05-08"),
        IncomeEntry("s3", "u1", SHIFT, "UPA Centro", Decimal("2400"), "2024-05-02", "2024-06-01"),
        IncomeEntry("s4", "u1", SHIFT, "UPA Centro", Decimal("2400"), "2024-03-02", "2024-04-01"),
        IncomeEntry("s5", "u1", SHIFT, "Hospital A", Decimal("5000"), "2024-03-02", "2024-04-01",
                    received_on="2024-04-01", status=RECEIVED),
    )


def test_iter_entries_is_lazy_stop_early():
    shifts = make_sample()
    calls = {"n": 0}

    def pred(r):
        calls["n"] += 1
        return True

    first_two = list(islice(iter_entries(shifts, pred), 2))
    assert len(first_two) == 2
    assert calls["n"] < len(shifts)


def test_pending_by_counterparty_sorted_by_total():
    result = list(pending_by_counterparty(make_sample(), TODAY))
    assert result == [
        ("UPA Centro", Decimal("4800"), 2),
        ("Santa Casa", Decimal("2000"), 2),
    ]


def test_overdue_ranking_sorted_by_count():
    result = list(overdue_ranking(make_sample(), TODAY))
    assert result[0] == ("Santa Casa", Decimal("2000"), 2)
    assert result[1] == ("UPA Centro", Decimal("2400"), 1)
    assert all(name != "Hospital A" for name, _, _ in result)
