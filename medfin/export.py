import io
import logging

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages

from medfin.domain import Statement
from medfin.formatting import format_brl, format_date_br, month_label
from medfin.statement import statement_rows, statement_summary

logger = logging.getLogger(__name__)

COLUMNS = ["Data", "Descrição", "Categoria", "Valor", "Saldo"]

SUMMARY_LABELS = {
    "opening_balance": "Saldo inicial",
    "total_credits": "Entradas",
    "total_debits": "Saídas",
    "final_balance": "Saldo final",
}

ROWS_PER_PAGE = 28


def statement_frame(statement: Statement) -> pd.DataFrame:
    rows = statement_rows(statement)
    if not rows:
        return pd.DataFrame(columns=COLUMNS)
    df = pd.DataFrame(rows)
    df["amount"] = df["amount"].astype(float)
    df["balance"] = df["balance"].astype(float)
    return df.rename(columns={
        "date": "Data",
        "label": "Descrição",
        "category": "Categoria",
        "amount": "Valor",
        "balance": "Saldo",
    })[COLUMNS]


def summary_frame(statement: Statement) -> pd.DataFrame:
    summary = statement_summary(statement)
    return pd.DataFrame(
        [{"Item": SUMMARY_LABELS[k], "Valor": float(v)} for k, v in summary.items()]
    )


def statement_to_excel(statement: Statement) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        statement_frame(statement).to_excel(writer, sheet_name="Extrato", index=False)
        summary_frame(statement).to_excel(writer, sheet_name="Resumo", index=False)
    logger.info("statement %s exported to xlsx (%d lines)", statement.month, len(statement.lines))
    return buffer.getvalue()


def _display_rows(statement: Statement):
    return [
        [
            format_date_br(row["date"]),
            row["label"],
            row["category"],
            format_brl(row["amount"]),
            format_brl(row["balance"]),
        ]
        for row in statement_rows(statement)
    ]


def _page(pdf: PdfPages, title: str, header: str, rows) -> None:
    fig, ax = plt.subplots(figsize=(8.27, 11.69))
    ax.axis("off")
    ax.set_title(title, fontsize=14, loc="left")
    ax.text(0.0, 0.97, header, fontsize=9, va="top", transform=ax.transAxes)
    if rows:
        table = ax.table(cellText=rows, colLabels=COLUMNS, loc="upper center", bbox=[0, 0.05, 1, 0.85])
        table.auto_set_font_size(False)
        table.set_fontsize(8)
    else:
        ax.text(0.5, 0.5, "Nenhuma movimentação no período", ha="center", transform=ax.transAxes)
    pdf.savefig(fig)
    plt.close(fig)


def statement_to_pdf(statement: Statement) -> bytes:
    title = f"Extrato {month_label(statement.month)}"
    summary = statement_summary(statement)
    header = "   ".join(f"{SUMMARY_LABELS[k]}: {format_brl(v)}" for k, v in summary.items())
    rows = _display_rows(statement)

    buffer = io.BytesIO()
    with PdfPages(buffer) as pdf:
        chunks = [rows[i:i + ROWS_PER_PAGE] for i in range(0, len(rows), ROWS_PER_PAGE)] or [[]]
        for chunk in chunks:
            _page(pdf, title, header, chunk)
    logger.info("statement %s exported to pdf (%d pages)", statement.month, len(chunks))
    return buffer.getvalue()
