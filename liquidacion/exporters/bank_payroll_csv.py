from __future__ import annotations

from pathlib import Path

import pandas as pd

from liquidacion.domain import PayrollPeriod


def export_bank_payroll(path: Path, period: PayrollPeriod) -> Path:
    records = []
    for item in period.items:
        records.append({
            "worker_id": item.worker_id,
            "rut": item.worker_rut or "",
            "name": item.worker_name,
            "amount": int(item.result.net_pay),
            "period": period.year_month,
        })
    df = pd.DataFrame(records, columns=["worker_id", "rut", "name", "amount", "period"])
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
