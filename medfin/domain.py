from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple, Union

# dates arrive from storage as ISO text and may be malformed
DateLike = Union[date, str, None]

SHIFT = "shift"
RECEIVABLE = "receivable"

# income statuses
PENDING = "A Receber"
RECEIVED = "Recebido"
OVERDUE = "Atrasado"
CANCELED = "Cancelado"

# expense statuses
UNPAID = "A Pagar"
PAID = "Pago"

INCOME_STATUSES = (PENDING, RECEIVED, OVERDUE, CANCELED)
EXPENSE_STATUSES = (UNPAID, PAID)
TERMINAL_STATUSES = (RECEIVED, PAID, CANCELED)

WEEKLY = "Semanal"
BIWEEKLY = "Quinzenal"
MONTHLY = "Mensal"
YEARLY = "Anual"

FREQUENCIES = (WEEKLY, BIWEEKLY, MONTHLY, YEARLY)

CREDIT = "Credit"
DEBIT = "Debit"


@dataclass(frozen=True)
class IncomeEntry:
    id: str
    owner_ref: str
    kind: str                  # SHIFT or RECEIVABLE
    counterparty: str          # hospital for shifts, description otherwise
    amount: Decimal
    occurred_on: DateLike      # shift date / issue date
    expected_on: DateLike      # expected payment date
    received_on: DateLike = None
    status: str = PENDING
    is_recurring: bool = False
    frequency: Optional[str] = None
    series_end_date: DateLike = None
    tag: Optional[str] = None  # shifts only


@dataclass(frozen=True)
class ExpenseEntry:
    id: str
    owner_ref: str
    category: str
    description: str
    amount: Decimal
    due_on: DateLike
    status: str = UNPAID
    paid_on: DateLike = None
    is_recurring: bool = False
    frequency: Optional[str] = None
    series_end_date: DateLike = None


Entry = Union[IncomeEntry, ExpenseEntry]


@dataclass(frozen=True)
class RecurrencePolicy:
    enabled: bool
    frequency: str = MONTHLY
    end_date: DateLike = None  # default: start + 12 months


@dataclass(frozen=True)
class StatementLine:
    source_id: str
    date: date
    label: str
    category: str
    amount: Decimal
    direction: str             # CREDIT or DEBIT
    running_balance_after: Decimal

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == CREDIT else -self.amount


@dataclass(frozen=True)
class Statement:
    month: date                # first day of the target month
    as_of: datetime
    opening_balance: Decimal
    lines: Tuple[StatementLine, ...]
    total_credits: Decimal
    total_debits: Decimal
    final_balance: Decimal


@dataclass(frozen=True)
class Subscription:
    status: str = "trialing"   # trialing, active, past_due, unpaid, canceled
    trial_end: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    is_admin: bool = False


@dataclass(frozen=True)
class Capabilities:
    may_write: bool
    may_export: bool
    is_pro: bool
    is_trialing: bool
    days_remaining: int = 0
