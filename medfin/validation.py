import re
from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from medfin.domain import (
    EXPENSE_STATUSES,
    FREQUENCIES,
    INCOME_STATUSES,
    OVERDUE,
    PAID,
    PENDING,
    RECEIVED,
    SHIFT,
    ExpenseEntry,
    IncomeEntry,
    RecurrencePolicy,
)
from medfin.functional import Either, Left, Maybe, Nothing, Right, Some, safe_date, to_date

CENTS = Decimal("0.01")
# "1.500" and "2.000.000" are grouped thousands, never decimals
THOUSANDS = re.compile(r"^-?\d{1,3}(\.\d{3})+$")


def parse_amount(raw) -> Maybe[Decimal]:
    """Read an amount typed as ``1.500,00`` / ``R$ 1.500,00`` or given as a number."""
    if raw is None or isinstance(raw, bool):
        return Nothing()
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        value = Decimal(str(raw))
    else:
        text = re.sub(r"[^0-9,.\-]", "", str(raw))
        if "," in text or THOUSANDS.match(text):
            text = text.replace(".", "").replace(",", ".")
        try:
            value = Decimal(text)
        except InvalidOperation:
            return Nothing()
    if not value.is_finite():
        return Nothing()
    return Some(value.quantize(CENTS))


def _error(code: str, field: str, message: str) -> Left:
    return Left({"error": code, "field": field, "message": message})


def _positive_amount(entry):
    if entry.amount is None or not isinstance(entry.amount, (int, float, Decimal)) or entry.amount <= 0:
        return _error("invalid_amount", "amount", "Por favor, insira um valor válido.")
    return Right(entry)


def _required_text(field: str, message: str) -> Callable:
    def _check(entry):
        value = getattr(entry, field)
        if not value or not str(value).strip():
            return _error("missing_field", field, message)
        return Right(entry)
    return _check


def _required_date(field: str, message: str) -> Callable:
    def _check(entry):
        parsed = safe_date(getattr(entry, field))
        if parsed.is_none():
            return _error("invalid_date", field, message)
        return Right(replace(entry, **{field: parsed.get_or_else(None).isoformat()}))
    return _check


def _status_in(allowed) -> Callable:
    def _check(entry):
        if entry.status not in allowed:
            return _error("invalid_status", "status", f"Status inválido: {entry.status}")
        return Right(entry)
    return _check


def _income_settlement(today: date) -> Callable:
    def _check(entry: IncomeEntry):
        if entry.status == OVERDUE:
            expected = to_date(entry.expected_on)
            if expected is None or not expected < today:
                return _error(
                    "overdue_not_past",
                    "expected_on",
                    "Para definir o status como Atrasado, a data prevista deve ser anterior ao dia de hoje.",
                )
            # overdue is derived on read; storage keeps the pending status
            return Right(replace(entry, status=PENDING))
        if entry.status == RECEIVED:
            return _required_date("received_on", "Informe a data do recebimento.")(entry)
        return Right(replace(entry, received_on=None))
    return _check


def _expense_settlement(entry: ExpenseEntry):
    if entry.status == PAID:
        return _required_date("paid_on", "Informe a data do pagamento.")(entry)
    return Right(replace(entry, paid_on=None))


def validate_income(entry: IncomeEntry, today: date) -> Either[dict, IncomeEntry]:
    label = "Por favor, selecione um hospital." if entry.kind == SHIFT else "Informe a descrição."
    return (
        Right(entry)
        .bind(_positive_amount)
        .bind(_required_text("counterparty", label))
        .bind(_required_date("occurred_on", "Data inválida."))
        .bind(_required_date("expected_on", "Data prevista inválida."))
        .bind(_status_in(INCOME_STATUSES))
        .bind(_income_settlement(today))
    )


def validate_expense(entry: ExpenseEntry) -> Either[dict, ExpenseEntry]:
    return (
        Right(entry)
        .bind(_positive_amount)
        .bind(_required_text("category", "Selecione uma categoria."))
        .bind(_required_date("due_on", "Data de vencimento inválida."))
        .bind(_status_in(EXPENSE_STATUSES))
        .bind(_expense_settlement)
    )


def validate_policy(policy: Optional[RecurrencePolicy], start) -> Either[dict, Optional[RecurrencePolicy]]:
    if policy is None or not policy.enabled:
        return Right(policy)
    if policy.frequency not in FREQUENCIES:
        return _error("invalid_frequency", "frequency", f"Frequência inválida: {policy.frequency}")
    if not policy.end_date:
        return Right(policy)
    end = safe_date(policy.end_date)
    if end.is_none():
        return _error("invalid_date", "end_date", "Data fim inválida.")
    first = to_date(start)
    if first is not None and end.get_or_else(first) < first:
        return _error("invalid_date", "end_date", "A data fim deve ser posterior à data inicial.")
    return Right(replace(policy, end_date=end.get_or_else(None).isoformat()))
