"""Monthly payroll book: one row per worker, one column per line category."""
from __future__ import annotations

from pathlib import Path

import pandas as pd

from liquidacion.domain import PayrollPeriod

EARNING_COLUMNS = {
    "BASE_SALARY": "sueldo_base",
    "OVERTIME": "horas_extra",
    "GRATIFICATION": "gratificacion",
    "ALLOWANCE": "asignaciones",
}
DEDUCTION_COLUMNS = {
    "PENSION": "afp",
    "HEALTH": "salud",
    "UNEMPLOYMENT": "cesantia",
    "INCOME_TAX": "impuesto_unico",
}


def payroll_book_frame(period: PayrollPeriod) -> pd.DataFrame:
    rows = []
    for item in period.items:
        result = item.result
        row: dict[str, object] = {
            "periodo": period.year_month,
            "trabajador": item.worker_name,
            "rut": item.worker_rut or "",
            "dias_trabajados": item.variable.days_worked,
        }
        for category, column in EARNING_COLUMNS.items():
            row[column] = int(sum(line.amount for line in result.earnings if line.category == category))
        row["otros_haberes"] = int(sum(line.amount for line in result.earnings if line.category == "OTHER"))
        row["imponible"] = int(result.taxable_base)
        row["total_haberes"] = int(result.total_earnings)
        for category, column in DEDUCTION_COLUMNS.items():
            row[column] = int(sum(line.amount for line in result.deductions if line.category == category))
        row["descuentos_voluntarios"] = int(result.total_voluntary_deductions)
        row["total_descuentos"] = int(result.total_deductions)
        row["liquido"] = int(result.net_pay)
        row["tasa_afp_por_defecto"] = item.used_fallback
        rows.append(row)
    return pd.DataFrame(rows)


def export_payroll_book(path: Path, period: PayrollPeriod) -> Path:
    df = payroll_book_frame(period)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".xlsx":
        df.to_excel(path, index=False, sheet_name=period.year_month, engine="openpyxl")
    else:
        df.to_csv(path, index=False)
    return path
