"""Paywall rules.

Writing is allowed to admins, paying users, users inside the trial window
and users in the payment grace period (``past_due``). Exporting the
statement is a PRO feature. These flags gate the callers; they never change
what the calculations return.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from medfin.domain import Capabilities, Subscription
from medfin.errors import PaywallError
from medfin.settings import settings

TRIALING = "trialing"
ACTIVE = "active"
PAST_DUE = "past_due"
UNPAID = "unpaid"
CANCELED = "canceled"

TRIAL_WARNING_DAYS = 3


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _days_between(end: datetime, now: datetime) -> int:
    if (end.tzinfo is None) != (now.tzinfo is None):
        end, now = _naive_utc(end), _naive_utc(now)
    # whole days, truncated toward zero
    return int((end - now) / timedelta(days=1))


def days_remaining(sub: Subscription, now: datetime, trial_days: Optional[int] = None) -> int:
    if sub.status == TRIALING:
        if trial_days is None:
            trial_days = settings.TRIAL_DAYS
        end = sub.trial_end or now + timedelta(days=trial_days)
        return _days_between(end, now)
    if sub.status == ACTIVE and sub.current_period_end:
        return _days_between(sub.current_period_end, now)
    return 0


def capabilities(sub: Subscription, now: datetime, trial_days: Optional[int] = None) -> Capabilities:
    remaining = days_remaining(sub, now, trial_days)
    is_pro = sub.status == ACTIVE
    is_trialing = sub.status == TRIALING
    trial_valid = is_trialing and remaining >= 0
    return Capabilities(
        may_write=sub.is_admin or is_pro or trial_valid or sub.status == PAST_DUE,
        may_export=sub.is_admin or is_pro,
        is_pro=is_pro,
        is_trialing=is_trialing,
        days_remaining=remaining,
    )


def banner_message(sub: Subscription, caps: Capabilities) -> Optional[str]:
    if sub.is_admin:
        return "Modo Administrador Ativo"
    if caps.is_trialing:
        if caps.days_remaining < 0:
            return "Seu período de teste acabou. Assine o plano PRO para continuar lançando novos registros."
        if caps.days_remaining <= TRIAL_WARNING_DAYS:
            when = "algumas horas" if caps.days_remaining == 0 else f"{caps.days_remaining} dias"
            return f"Seu teste grátis expira em {when}. Aproveite para assinar e não perder o acesso."
        return None
    if sub.status == PAST_DUE:
        return "Problema com seu pagamento. Atualize seu cartão para evitar o bloqueio da conta."
    if sub.status in (UNPAID, CANCELED):
        return "Sua assinatura está inativa. O acesso a criação de novos registros está bloqueado."
    return None


def require_write(caps: Capabilities) -> None:
    if not caps.may_write:
        raise PaywallError("novos lançamentos")


def require_export(caps: Capabilities) -> None:
    if not caps.may_export:
        raise PaywallError("exportação PDF/Excel")
