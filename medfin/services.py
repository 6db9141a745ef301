import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Sequence

from dateutil.relativedelta import relativedelta

from medfin.domain import OVERDUE, PENDING, RECEIVED, SHIFT, ExpenseEntry, IncomeEntry
from medfin.filters import by_month
from medfin.functional import to_date
from medfin.statement import month_start
from medfin.status import effective_status, with_effective_status

logger = logging.getLogger(__name__)

ALERT_LIMIT = 5


class DashboardService:
    """Facade for dashboard figures using injected validators and calculators.

    validators: sequence of functions taking (month, incomes, expenses, today) -> Sequence[str]
    calculators: sequence of functions taking (month, incomes, expenses, today, acc) -> dict (partial results)
    """

    def __init__(self, validators: Sequence[Callable[..., Sequence[str]]], calculators: Sequence[Callable[..., Dict[str, Any]]]):
        self.validators = validators
        self.calculators = calculators

    def monthly_report(self, month: date, incomes: Iterable[IncomeEntry], expenses: Iterable[ExpenseEntry], today: date) -> Dict[str, Any]:
        """Run validators and calculators and return an aggregated report with intermediate steps."""
        incomes = with_effective_status(incomes, today)
        expenses = tuple(expenses)
        report = {
            "month": month_start(month),
            "validation": [],
            "steps": [],
            "result": {}
        }

        for v in self.validators:
            try:
                msgs = v(month, incomes, expenses, today)
            except Exception as e:
                logger.warning("dashboard validator %s failed: %s", getattr(v, "__name__", v), e)
                msgs = [f"validator_error: {e}"]
            report["validation"].append({"validator": getattr(v, "__name__", str(v)), "messages": list(msgs)})

        # calculators run in order and may read earlier outputs from acc
        acc: Dict[str, Any] = {}
        for calc in self.calculators:
            out = calc(month, incomes, expenses, today, acc)
            report["steps"].append({"calculator": getattr(calc, "__name__", str(calc)), "output": out})
            if isinstance(out, dict):
                acc.update(out)

        report["result"] = acc
        return report


def has_records(month, incomes, expenses, today):
    if not incomes and not expenses:
        return ["Nenhum lançamento cadastrado"]
    return []


def month_metrics(month, incomes, expenses, today, acc=None):
    in_occurred = by_month(month, "occurred_on")
    in_received = by_month(month, "received_on")
    in_due = by_month(month, "due_on")

    to_receive = sum(
        (r.amount for r in incomes if effective_status(r, today) in (PENDING, OVERDUE) and in_occurred(r)),
        Decimal("0"),
    )
    received = sum((r.amount for r in incomes if r.status == RECEIVED and in_received(r)), Decimal("0"))
    spent = sum((e.amount for e in expenses if in_due(e)), Decimal("0"))
    return {
        "to_receive": to_receive,
        "received": received,
        "expenses": spent,
        "balance": received - spent,
    }


def received_vs_forecast(month, incomes, expenses, today, acc=None):
    # two months back, the current one and three ahead
    first = month_start(month) - relativedelta(months=2)
    points = []
    for i in range(6):
        m = first + relativedelta(months=i)
        in_received = by_month(m, "received_on")
        in_expected = by_month(m, "expected_on")
        points.append({
            "month": m,
            "received": sum((r.amount for r in incomes if r.status == RECEIVED and in_received(r)), Decimal("0")),
            "forecast": sum((r.amount for r in incomes if in_expected(r)), Decimal("0")),
        })
    return {"chart": points}


def overdue_alerts(month, incomes, expenses, today, acc=None):
    late = [r for r in incomes if effective_status(r, today) == OVERDUE]
    late.sort(key=lambda r: to_date(r.expected_on))
    return {
        "alerts": [
            {
                "id": r.id,
                "title": r.counterparty,
                "amount": r.amount,
                "expected_on": r.expected_on,
                "status": OVERDUE,
                "kind": "Plantão" if r.kind == SHIFT else "Recebível",
            }
            for r in late[:ALERT_LIMIT]
        ]
    }


def default_dashboard() -> DashboardService:
    return DashboardService(
        validators=[has_records],
        calculators=[month_metrics, received_vs_forecast, overdue_alerts],
    )
