from datetime import date, datetime
from decimal import Decimal

from medfin.domain import (
    CREDIT,
    DEBIT,
    PAID,
    PENDING,
    RECEIVABLE,
    RECEIVED,
    SHIFT,
    UNPAID,
    ExpenseEntry,
    IncomeEntry,
)
from medfin.statement import month_start, reconstruct_statement, statement_rows, statement_summary


def income(id, amount, received_on=None, status=RECEIVED, kind=RECEIVABLE, tag=None):
    return IncomeEntry(
        id=id,
        owner_ref="u1",
        kind=kind,
        counterparty=f"Origem {id}",
        amount=Decimal(amount),
        occurred_on="2024-01-01",
        expected_on="2024-01-01",
        received_on=received_on,
        status=status,
        tag=tag,
    )


def expense(id, amount, due_on, status=UNPAID, description="Conta"):
    return ExpenseEntry(
        id=id,
        owner_ref="u1",
        category="Outros",
        description=description,
        amount=Decimal(amount),
        due_on=due_on,
        status=status,
    )


def make_sample():
    incomes = (
        income("i0", "100", received_on="2024-01-10"),
        income("i1", "50", received_on="2024-02-05"),
    )
    expenses = (expense("e1", "30", "2024-02-10"),)
    return incomes, expenses


def test_running_balance_and_totals():
    incomes, expenses = make_sample()
    st = reconstruct_statement(incomes, expenses, "2024-02", date(2024, 2, 29))
    assert st.opening_balance == Decimal("100")
    assert st.total_credits == Decimal("50")
    assert st.total_debits == Decimal("30")
    assert st.final_balance == Decimal("120")
    assert [line.running_balance_after for line in st.lines] == [Decimal("150"), Decimal("120")]
    assert [line.direction for line in st.lines] == [CREDIT, DEBIT]


def test_idempotent():
    incomes, expenses = make_sample()
    as_of = datetime(2024, 2, 20, 12, 0)
    assert reconstruct_statement(incomes, expenses, "2024-02", as_of) == reconstruct_statement(
        incomes, expenses, "2024-02", as_of
    )


def test_unpaid_expense_is_debit_but_pending_income_is_not_credit():
    incomes = (income("p", "500", status=PENDING),)
    expenses = (expense("e", "80", "2024-02-15", status=UNPAID),)
    st = reconstruct_statement(incomes, expenses, "2024-02", date(2024, 2, 29))
    assert [line.source_id for line in st.lines] == ["e"]
    assert st.total_credits == Decimal("0")


def test_received_without_date_is_skipped():
    st = reconstruct_statement((income("x", "10", received_on=None),), (), "2024-02", date(2024, 2, 29))
    assert st.lines == ()


def test_expenses_after_as_of_are_left_out():
    expenses = (
        expense("early", "10", "2024-02-10"),
        expense("late", "20", "2024-02-20"),
    )
    st = reconstruct_statement((), expenses, "2024-02", date(2024, 2, 15))
    assert [line.source_id for line in st.lines] == ["early"]
    assert st.final_balance == Decimal("-10")


def test_opening_counts_prior_expenses_regardless_of_status():
    expenses = (
        expense("a", "40", "2024-01-05", status=PAID),
        expense("b", "60", "2024-01-20", status=UNPAID),
    )
    st = reconstruct_statement((), expenses, "2024-02", date(2024, 2, 29))
    assert st.opening_balance == Decimal("-100")
    assert st.lines == ()


def test_same_day_income_comes_first():
    incomes = (income("i", "10", received_on="2024-02-10"),)
    expenses = (
        expense("e0", "5", "2024-02-03"),
        expense("e1", "5", "2024-02-10"),
    )
    st = reconstruct_statement(incomes, expenses, "2024-02", date(2024, 2, 29))
    assert [line.source_id for line in st.lines] == ["e0", "i", "e1"]


def test_labels_and_categories():
    incomes = (income("s", "1000", received_on="2024-02-02", kind=SHIFT, tag="12h"),)
    expenses = (expense("e", "50", "2024-02-03", description=""),)
    st = reconstruct_statement(incomes, expenses, date(2024, 2, 14), date(2024, 2, 29))
    assert (st.lines[0].label, st.lines[0].category) == ("Origem s (12h)", "Plantão")
    assert (st.lines[1].label, st.lines[1].category) == ("Outros", "Outros")


def test_rows_and_summary_for_exports():
    incomes, expenses = make_sample()
    st = reconstruct_statement(incomes, expenses, "2024-02", date(2024, 2, 29))
    rows = statement_rows(st)
    assert set(rows[0]) == {"date", "label", "category", "amount", "balance"}
    assert rows[1]["amount"] == Decimal("-30")
    assert statement_summary(st) == {
        "opening_balance": Decimal("100"),
        "total_credits": Decimal("50"),
        "total_debits": Decimal("30"),
        "final_balance": Decimal("120"),
    }


def test_month_start_accepts_text_and_dates():
    assert month_start("2024-02") == date(2024, 2, 1)
    assert month_start("2024-02-17") == date(2024, 2, 1)
    assert month_start(datetime(2024, 12, 31, 10)) == date(2024, 12, 1)


def test_as_of_before_target_month():
    expenses = (
        expense("prior", "40", "2024-02-10"),
        expense("after_cutoff", "25", "2024-02-20"),
        expense("in_month", "60", "2024-03-05"),
    )
    st = reconstruct_statement((), expenses, "2024-03", date(2024, 2, 15))
    assert st.lines == ()
    assert st.opening_balance == Decimal("-40")
    assert st.final_balance == Decimal("-40")
