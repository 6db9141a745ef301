import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging
from datetime import date, datetime, timezone

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from medfin.domain import (
    CANCELED,
    EXPENSE_STATUSES,
    FREQUENCIES,
    INCOME_STATUSES,
    MONTHLY,
    OVERDUE,
    RECEIVABLE,
    RECEIVED,
    PAID,
    SHIFT,
    ExpenseEntry,
    IncomeEntry,
    RecurrencePolicy,
)
from medfin.errors import MedfinError
from medfin.events import ENTRIES_ADDED, OVERDUE_ALERT, PAYMENT_CONFIRMED, event_bus
from medfin.export import statement_frame, statement_to_excel, statement_to_pdf
from medfin.filters import ALL_CATEGORIES, ALL_STATUSES, by_category, by_month, by_search, by_status
from medfin.formatting import format_brl, format_date_br, month_label
from medfin.functional import safe_entry, to_date
from medfin.lazy import overdue_ranking, pending_by_counterparty
from medfin.memo import LAST_3_MONTHS, THIS_MONTH, THIS_YEAR, cash_projection, period_bounds, revenue_mix
from medfin.recurrence import expand_series
from medfin.services import default_dashboard
from medfin.settings import settings
from medfin.statement import reconstruct_statement
from medfin.status import effective_status, with_effective_status
from medfin.subscription import banner_message, capabilities, require_export, require_write
from medfin.transforms import add_entries, assign_ids, confirm_payment, delete_entry, edit_entry, load_seed, update_entry
from medfin.validation import parse_amount, validate_expense, validate_income, validate_policy

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

st.set_page_config(page_title="MedFinanças", layout="wide")

EXPENSE_CATEGORIES = ["Impostos", "Conselho/CRM", "Contador", "Previdência", "Seguro", "Transporte", "Educação", "Outros"]

if "shifts" not in st.session_state:
    shifts, receivables, expenses, subscription = load_seed(settings.SEED_PATH)
    st.session_state.shifts = shifts
    st.session_state.receivables = receivables
    st.session_state.expenses = expenses
    st.session_state.subscription = subscription
    logger.info("seed loaded: %d shifts, %d receivables, %d expenses", len(shifts), len(receivables), len(expenses))

today = date.today()
caps = capabilities(st.session_state.subscription, datetime.now(timezone.utc))
banner = banner_message(st.session_state.subscription, caps)


def incomes():
    return st.session_state.shifts + st.session_state.receivables


def income_df(records):
    rows = [
        {
            "Data": format_date_br(r.occurred_on),
            "Descrição": r.counterparty if not r.tag else f"{r.counterparty} ({r.tag})",
            "Valor": format_brl(r.amount),
            "Previsão": format_date_br(r.expected_on),
            "Recebido em": format_date_br(r.received_on),
            "Status": r.status,
            "Recorrente": r.frequency or "-",
        }
        for r in records
    ]
    return pd.DataFrame(rows)


def expense_df(records):
    rows = [
        {
            "Vencimento": format_date_br(e.due_on),
            "Categoria": e.category,
            "Descrição": e.description or "-",
            "Valor": format_brl(e.amount),
            "Status": e.status,
            "Pago em": format_date_br(e.paid_on),
            "Recorrente": e.frequency or "-",
        }
        for e in records
    ]
    return pd.DataFrame(rows)


def recurrence_inputs(prefix):
    recurring = st.checkbox("Lançamento recorrente", key=f"{prefix}_recurring")
    col1, col2 = st.columns(2)
    with col1:
        frequency = st.selectbox("Frequência", FREQUENCIES, index=FREQUENCIES.index(MONTHLY), key=f"{prefix}_freq")
    with col2:
        end_date = st.date_input("Repetir até (opcional)", value=None, key=f"{prefix}_end")
    return RecurrencePolicy(enabled=recurring, frequency=frequency, end_date=end_date)


def save_batch(store_key, entry, policy):
    checked_policy = validate_policy(policy, entry.due_on if isinstance(entry, ExpenseEntry) else entry.occurred_on)
    if checked_policy.is_left():
        st.error(checked_policy.get_error()["message"])
        return
    policy = checked_policy.get_or_else(None)
    members, truncated = expand_series(entry, policy)
    batch = assign_ids(members, settings.OWNER_REF)
    st.session_state[store_key] = add_entries(st.session_state[store_key], batch)
    logger.info("%d record(s) added to %s", len(batch), store_key)

    results = event_bus.publish(ENTRIES_ADDED, {
        "count": len(batch),
        "frequency": policy.frequency if policy and policy.enabled else None,
        "truncated": truncated,
    })
    for res in results:
        if res.get("message"):
            st.success(res["message"])
        if res.get("warning"):
            st.warning(res["warning"])


def record_actions(store_key, records, describe):
    if not records:
        return
    options = {describe(r): r.id for r in records}
    choice = st.selectbox("Selecionar lançamento", list(options), key=f"{store_key}_pick")
    settle_col, delete_col = st.columns(2)
    with settle_col:
        settled_on = st.date_input("Data do pagamento", value=today, key=f"{store_key}_settled")
        if st.button("✅ Confirmar pagamento", key=f"{store_key}_confirm"):
            try:
                require_write(caps)
                st.session_state[store_key] = confirm_payment(st.session_state[store_key], options[choice], settled_on)
            except MedfinError as e:
                st.error(str(e))
            else:
                kind = "expense" if store_key == "expenses" else "income"
                for res in event_bus.publish(PAYMENT_CONFIRMED, {"kind": kind, "settled_on": format_date_br(settled_on)}):
                    st.success(res["message"])
    with delete_col:
        if st.button("🗑 Excluir", key=f"{store_key}_delete"):
            try:
                st.session_state[store_key] = delete_entry(st.session_state[store_key], options[choice])
            except MedfinError as e:
                st.error(str(e))
            else:
                st.success("Lançamento excluído")
                st.rerun()


def edit_form(store_key, records, describe):
    if not records:
        return
    options = {describe(r): r.id for r in records}
    with st.expander("✏️ Editar lançamento", expanded=False):
        choice = st.selectbox("Lançamento", list(options), key=f"{store_key}_edit_pick")
        current = safe_entry(st.session_state[store_key], options[choice]).get_or_else(None)
        if current is None:
            return
        prefix = f"{store_key}_edit_{current.id}"
        with st.form(f"{store_key}_edit_form"):
            col1, col2 = st.columns(2)
            if isinstance(current, ExpenseEntry):
                with col1:
                    category = st.selectbox(
                        "Categoria",
                        EXPENSE_CATEGORIES,
                        index=EXPENSE_CATEGORIES.index(current.category) if current.category in EXPENSE_CATEGORIES else len(EXPENSE_CATEGORIES) - 1,
                        key=f"{prefix}_category",
                    )
                    description = st.text_input("Descrição", value=current.description or "", key=f"{prefix}_desc")
                    raw_amount = st.text_input("Valor (R$)", value=format_brl(current.amount, com_simbolo=False), key=f"{prefix}_amount")
                with col2:
                    due_on = st.date_input("Vencimento", value=to_date(current.due_on), key=f"{prefix}_due")
                    status = st.selectbox("Status", EXPENSE_STATUSES, index=EXPENSE_STATUSES.index(current.status), key=f"{prefix}_status")
                    paid_on = st.date_input("Pago em", value=to_date(current.paid_on), key=f"{prefix}_paid")
                changes = dict(category=category, description=description, due_on=due_on, status=status, paid_on=paid_on)
            else:
                with col1:
                    counterparty = st.text_input("Hospital" if current.kind == SHIFT else "Descrição", value=current.counterparty, key=f"{prefix}_cp")
                    occurred_on = st.date_input("Data", value=to_date(current.occurred_on), key=f"{prefix}_occurred")
                    raw_amount = st.text_input("Valor (R$)", value=format_brl(current.amount, com_simbolo=False), key=f"{prefix}_amount")
                with col2:
                    expected_on = st.date_input("Previsão de pagamento", value=to_date(current.expected_on), key=f"{prefix}_expected")
                    status = st.selectbox("Status", INCOME_STATUSES, index=INCOME_STATUSES.index(current.status), key=f"{prefix}_status")
                    received_on = st.date_input("Recebido em", value=to_date(current.received_on), key=f"{prefix}_received")
                changes = dict(counterparty=counterparty, occurred_on=occurred_on, expected_on=expected_on, status=status, received_on=received_on)
                if current.kind == SHIFT:
                    changes["tag"] = st.text_input("Tipo", value=current.tag or "", key=f"{prefix}_tag") or None
            submitted = st.form_submit_button("Salvar alterações")

        if submitted:
            changes["amount"] = parse_amount(raw_amount).get_or_else(None)
            try:
                require_write(caps)
                edited = edit_entry(st.session_state[store_key], current.id, changes)
            except MedfinError as e:
                st.error(str(e))
                return
            checked = validate_expense(edited) if isinstance(edited, ExpenseEntry) else validate_income(edited, today)
            if checked.is_left():
                st.error(checked.get_error()["message"])
                return
            st.session_state[store_key] = update_entry(st.session_state[store_key], checked.get_or_else(None))
            logger.info("record %s updated in %s", current.id, store_key)
            st.success("Lançamento atualizado")


def income_page(kind):
    store_key = "shifts" if kind == SHIFT else "receivables"
    is_shift = kind == SHIFT
    st.title("🩺 Plantões" if is_shift else "📄 Recebíveis")

    with st.expander("➕ Novo lançamento", expanded=False):
        with st.form(f"{store_key}_form", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                counterparty = st.text_input("Hospital" if is_shift else "Descrição")
                occurred_on = st.date_input("Data do plantão" if is_shift else "Data de emissão", value=today)
                raw_amount = st.text_input("Valor (R$)", placeholder="1.500,00")
            with col2:
                expected_on = st.date_input("Previsão de pagamento", value=today)
                status = st.selectbox("Status", INCOME_STATUSES)
                received_on = st.date_input("Recebido em", value=None)
            tag = st.text_input("Tipo (ex.: 12h noturno)") if is_shift else None
            policy = recurrence_inputs(store_key)
            submitted = st.form_submit_button("Salvar")

        if submitted:
            try:
                require_write(caps)
            except MedfinError as e:
                st.error(str(e))
            else:
                amount = parse_amount(raw_amount)
                template = IncomeEntry(
                    id="",
                    owner_ref=settings.OWNER_REF,
                    kind=kind,
                    counterparty=counterparty,
                    amount=amount.get_or_else(None),
                    occurred_on=occurred_on,
                    expected_on=expected_on,
                    received_on=received_on,
                    status=status,
                    tag=tag or None,
                )
                checked = validate_income(template, today)
                if checked.is_left():
                    st.error(checked.get_error()["message"])
                else:
                    save_batch(store_key, checked.get_or_else(None), policy)

    col1, col2, col3 = st.columns(3)
    with col1:
        term = st.text_input("Buscar", key=f"{store_key}_search")
    with col2:
        status_filter = st.selectbox("Status", (ALL_STATUSES,) + INCOME_STATUSES, key=f"{store_key}_status")
    with col3:
        month_filter = st.date_input("Mês", value=None, key=f"{store_key}_month")

    records = with_effective_status(st.session_state[store_key], today)
    records = [r for r in records if by_search(term)(r) and by_status(status_filter, today)(r)]
    if month_filter:
        records = [r for r in records if by_month(month_filter, "occurred_on")(r)]

    if records:
        st.dataframe(income_df(records), use_container_width=True, hide_index=True)
        pending = [r for r in records if r.status not in (RECEIVED, CANCELED)]
        record_actions(
            store_key,
            pending,
            lambda r: f"{format_date_br(r.occurred_on)} · {r.counterparty} · {format_brl(r.amount)}",
        )
        edit_form(
            store_key,
            records,
            lambda r: f"{format_date_br(r.occurred_on)} · {r.counterparty} · {format_brl(r.amount)}",
        )
    else:
        st.info("Nenhum lançamento encontrado")


menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "🩺 Plantões", "📄 Recebíveis", "💸 Despesas", "📒 Extrato", "📑 Relatórios", "⭐ Assinatura"]
)

if banner:
    st.sidebar.warning(banner)

if menu == "🏠 Dashboard":
    st.title("🏠 Dashboard")
    report = default_dashboard().monthly_report(today, incomes(), st.session_state.expenses, today)
    for v in report["validation"]:
        for msg in v["messages"]:
            st.info(msg)
    result = report["result"]

    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("A receber no mês", format_brl(result["to_receive"]))
    with k2:
        st.metric("Recebido no mês", format_brl(result["received"]))
    with k3:
        st.metric("Despesas do mês", format_brl(result["expenses"]))
    with k4:
        st.metric("Saldo", format_brl(result["balance"]))

    chart = result["chart"]
    labels = [month_label(p["month"]) for p in chart]
    fig = go.Figure()
    fig.add_trace(go.Bar(x=labels, y=[float(p["received"]) for p in chart], name="Recebido"))
    fig.add_trace(go.Scatter(x=labels, y=[float(p["forecast"]) for p in chart], mode="lines+markers", name="Previsão"))
    fig.update_layout(template="plotly_dark", margin=dict(t=30, b=10, l=10, r=10))
    st.plotly_chart(fig, use_container_width=True)

    alerts = result["alerts"]
    st.subheader("⚠️ Recebimentos em atraso")
    if alerts:
        overdue_all = [r for r in incomes() if effective_status(r, today) == OVERDUE]
        for res in event_bus.publish(OVERDUE_ALERT, {
            "count": len(overdue_all),
            "total": sum(r.amount for r in overdue_all),
        }):
            if res.get("alert"):
                st.warning(f"{res['alert']} · {format_brl(res['total'])}")
        st.table(pd.DataFrame([
            {
                "Tipo": a["kind"],
                "Descrição": a["title"],
                "Previsão": format_date_br(a["expected_on"]),
                "Valor": format_brl(a["amount"]),
            }
            for a in alerts
        ]))
    else:
        st.success("Nenhum recebimento em atraso")

elif menu == "🩺 Plantões":
    income_page(SHIFT)

elif menu == "📄 Recebíveis":
    income_page(RECEIVABLE)

elif menu == "💸 Despesas":
    st.title("💸 Despesas")

    with st.expander("➕ Nova despesa", expanded=False):
        with st.form("expenses_form", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                category = st.selectbox("Categoria", EXPENSE_CATEGORIES)
                description = st.text_input("Descrição")
                raw_amount = st.text_input("Valor (R$)", placeholder="350,00")
            with col2:
                due_on = st.date_input("Vencimento", value=today)
                status = st.selectbox("Status", EXPENSE_STATUSES)
                paid_on = st.date_input("Pago em", value=None)
            policy = recurrence_inputs("expenses")
            submitted = st.form_submit_button("Salvar")

        if submitted:
            try:
                require_write(caps)
            except MedfinError as e:
                st.error(str(e))
            else:
                template = ExpenseEntry(
                    id="",
                    owner_ref=settings.OWNER_REF,
                    category=category,
                    description=description,
                    amount=parse_amount(raw_amount).get_or_else(None),
                    due_on=due_on,
                    status=status,
                    paid_on=paid_on,
                )
                checked = validate_expense(template)
                if checked.is_left():
                    st.error(checked.get_error()["message"])
                else:
                    save_batch("expenses", checked.get_or_else(None), policy)

    col1, col2, col3 = st.columns(3)
    with col1:
        term = st.text_input("Buscar", key="expenses_search")
    with col2:
        category_filter = st.selectbox("Categoria", [ALL_CATEGORIES] + EXPENSE_CATEGORIES, key="expenses_category")
    with col3:
        status_filter = st.selectbox("Status", (ALL_STATUSES,) + EXPENSE_STATUSES, key="expenses_status")

    records = [
        e for e in st.session_state.expenses
        if by_search(term)(e) and by_category(category_filter)(e) and by_status(status_filter, today)(e)
    ]
    if records:
        st.dataframe(expense_df(records), use_container_width=True, hide_index=True)
        st.caption(f"Total: {format_brl(sum(e.amount for e in records))}")
        record_actions(
            "expenses",
            [e for e in records if e.status != PAID],
            lambda e: f"{format_date_br(e.due_on)} · {e.category} · {format_brl(e.amount)}",
        )
        edit_form(
            "expenses",
            records,
            lambda e: f"{format_date_br(e.due_on)} · {e.category} · {format_brl(e.amount)}",
        )
    else:
        st.info("Nenhuma despesa encontrada")

elif menu == "📒 Extrato":
    st.title("📒 Extrato")
    col1, col2 = st.columns(2)
    with col1:
        month = st.date_input("Mês de referência", value=today.replace(day=1))
    with col2:
        as_of = st.date_input("Posição em", value=today)

    statement = reconstruct_statement(incomes(), st.session_state.expenses, month, as_of)

    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("Saldo inicial", format_brl(statement.opening_balance))
    with k2:
        st.metric("Entradas", format_brl(statement.total_credits))
    with k3:
        st.metric("Saídas", format_brl(statement.total_debits))
    with k4:
        st.metric("Saldo final", format_brl(statement.final_balance))

    frame = statement_frame(statement)
    if frame.empty:
        st.info("Nenhuma movimentação no período")
    else:
        disp = frame.assign(
            Data=frame["Data"].map(format_date_br),
            Valor=frame["Valor"].map(format_brl),
            Saldo=frame["Saldo"].map(format_brl),
        )
        st.dataframe(disp, use_container_width=True, hide_index=True)

    try:
        require_export(caps)
    except MedfinError as e:
        st.info(str(e))
    else:
        stamp = statement.month.strftime("%Y-%m")
        d1, d2 = st.columns(2)
        with d1:
            st.download_button(
                "⬇ Baixar PDF",
                statement_to_pdf(statement),
                file_name=f"extrato_{stamp}.pdf",
                mime="application/pdf",
            )
        with d2:
            st.download_button(
                "⬇ Baixar Excel",
                statement_to_excel(statement),
                file_name=f"extrato_{stamp}.xlsx",
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            )

elif menu == "📑 Relatórios":
    st.title("📑 Relatórios")

    periods = {"Este mês": THIS_MONTH, "Últimos 3 meses": LAST_3_MONTHS, "Este ano": THIS_YEAR}
    period = st.radio("Período", list(periods), horizontal=True)
    start, end = period_bounds(periods[period], today)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Origem da receita")
        mix = revenue_mix(st.session_state.shifts, st.session_state.receivables, start, end)
        if mix:
            df_mix = pd.DataFrame([{"Origem": name, "Total": float(total)} for name, total in mix])
            fig_mix = px.pie(df_mix, values="Total", names="Origem")
            fig_mix.update_layout(height=300)
            st.plotly_chart(fig_mix, use_container_width=True)
        else:
            st.info("Nenhuma receita recebida no período")

    with col2:
        st.subheader("Projeção de recebimentos")
        projection = cash_projection(incomes(), today)
        values = np.array([float(total) for _, total in projection])
        labels = [month_label(m) for m, _ in projection]
        fig_proj = go.Figure()
        fig_proj.add_trace(go.Bar(x=labels, y=values, name="No mês"))
        fig_proj.add_trace(go.Scatter(x=labels, y=np.cumsum(values), mode="lines+markers", name="Acumulado"))
        fig_proj.update_layout(height=300, margin=dict(t=30, b=10, l=10, r=10))
        st.plotly_chart(fig_proj, use_container_width=True)

    st.subheader("Pendências por hospital")
    pending = list(pending_by_counterparty(st.session_state.shifts, today))
    if pending:
        st.table(pd.DataFrame(
            [{"Hospital": name, "Plantões": count, "Total": format_brl(total)} for name, total, count in pending]
        ))
    else:
        st.info("Nenhuma pendência")

    st.subheader("Ranking de atrasos")
    ranking = list(overdue_ranking(st.session_state.shifts, today))
    if ranking:
        st.table(pd.DataFrame(
            [{"Hospital": name, "Atrasos": count, "Total": format_brl(total)} for name, total, count in ranking]
        ))
    else:
        st.success("Nenhum plantão em atraso")

elif menu == "⭐ Assinatura":
    st.title("⭐ Assinatura")
    sub = st.session_state.subscription
    if banner:
        st.warning(banner)

    k1, k2, k3 = st.columns(3)
    with k1:
        st.metric("Status", "Administrador" if sub.is_admin else sub.status)
    with k2:
        st.metric("Dias restantes", caps.days_remaining)
    with k3:
        st.metric("Plano", "PRO" if caps.is_pro else ("Teste" if caps.is_trialing else "Gratuito"))

    st.markdown(f"- Novos lançamentos: {'✅' if caps.may_write else '🚫'}")
    st.markdown(f"- Exportação PDF/Excel: {'✅' if caps.may_export else '🚫'}")
