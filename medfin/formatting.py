from datetime import date
from decimal import Decimal
from typing import Union

from medfin.domain import DateLike
from medfin.functional import to_date

MESES_PT = {
    1: "Jan", 2: "Fev", 3: "Mar", 4: "Abr", 5: "Mai", 6: "Jun",
    7: "Jul", 8: "Ago", 9: "Set", 10: "Out", 11: "Nov", 12: "Dez",
}


def format_brl(valor: Union[Decimal, int, float, None], com_simbolo: bool = True) -> str:
    if valor is None or valor == 0:
        return "R$ 0,00" if com_simbolo else "0,00"
    valor_str = f"{abs(valor):,.2f}"
    valor_str = valor_str.replace(",", "X").replace(".", ",").replace("X", ".")
    sinal = "- " if valor < 0 else ""
    simbolo = "R$ " if com_simbolo else ""
    return f"{sinal}{simbolo}{valor_str}"


def format_date_br(value: DateLike) -> str:
    d = to_date(value)
    return d.strftime("%d/%m/%Y") if d else "-"


def month_label(month: date) -> str:
    return f"{MESES_PT[month.month]}/{month.strftime('%y')}"
