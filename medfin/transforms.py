import json
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Tuple, TypeVar
from uuid import uuid4

from medfin.domain import (
    PAID,
    RECEIVABLE,
    RECEIVED,
    SHIFT,
    TERMINAL_STATUSES,
    ExpenseEntry,
    IncomeEntry,
    Subscription,
)
from medfin.errors import EntryNotFound
from medfin.functional import safe_entry

R = TypeVar("R", IncomeEntry, ExpenseEntry)


def _income(row: dict, kind: str) -> IncomeEntry:
    return IncomeEntry(**{**row, "kind": kind, "amount": Decimal(str(row["amount"]))})


def _expense(row: dict) -> ExpenseEntry:
    return ExpenseEntry(**{**row, "amount": Decimal(str(row["amount"]))})


def _moment(value):
    return datetime.fromisoformat(value) if value else None


def load_seed(
    path: str,
) -> Tuple[
    Tuple[IncomeEntry, ...],
    Tuple[IncomeEntry, ...],
    Tuple[ExpenseEntry, ...],
    Subscription,
]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    shifts = tuple(_income(r, SHIFT) for r in data.get("shifts", []))
    receivables = tuple(_income(r, RECEIVABLE) for r in data.get("receivables", []))
    expenses = tuple(_expense(r) for r in data.get("expenses", []))
    sub = data.get("subscription", {})
    subscription = Subscription(
        status=sub.get("status", "trialing"),
        trial_end=_moment(sub.get("trial_end")),
        current_period_end=_moment(sub.get("current_period_end")),
        is_admin=bool(sub.get("is_admin", False)),
    )

    return shifts, receivables, expenses, subscription


def assign_ids(batch: Iterable[R], owner_ref: str) -> Tuple[R, ...]:
    return tuple(replace(r, id=r.id or str(uuid4()), owner_ref=owner_ref) for r in batch)


def add_entries(records: Tuple[R, ...], batch: Iterable[R]) -> Tuple[R, ...]:
    return records + tuple(batch)


def _require(records: Tuple[R, ...], entry_id: str) -> R:
    found = safe_entry(records, entry_id)
    if found.is_none():
        raise EntryNotFound(entry_id)
    return found.get_or_else(None)


def update_entry(records: Tuple[R, ...], entry: R) -> Tuple[R, ...]:
    _require(records, entry.id)
    return tuple(entry if r.id == entry.id else r for r in records)


def edit_entry(records: Tuple[R, ...], entry_id: str, changes: dict) -> R:
    """Stored record with the edited fields applied, ready for validation.

    Identity and series stamps are not editable, and a settled record keeps
    its terminal status.
    """
    current = _require(records, entry_id)
    frozen = {"id", "owner_ref", "kind", "is_recurring", "frequency", "series_end_date"}
    if current.status in TERMINAL_STATUSES:
        frozen.add("status")
    return replace(current, **{k: v for k, v in changes.items() if k not in frozen})


def delete_entry(records: Tuple[R, ...], entry_id: str) -> Tuple[R, ...]:
    # series siblings are independent records and stay untouched
    _require(records, entry_id)
    return tuple(r for r in records if r.id != entry_id)


def confirm_payment(records: Tuple[R, ...], entry_id: str, settled_on: date) -> Tuple[R, ...]:
    entry = _require(records, entry_id)
    if entry.status in TERMINAL_STATUSES:
        return records
    if isinstance(entry, ExpenseEntry):
        settled = replace(entry, status=PAID, paid_on=settled_on.isoformat())
    else:
        settled = replace(entry, status=RECEIVED, received_on=settled_on.isoformat())
    return update_entry(records, settled)
