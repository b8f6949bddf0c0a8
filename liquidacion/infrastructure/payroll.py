"""Infrastructure layer for payroll period persistence."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from liquidacion.domain import PayrollItem, PayrollPeriod


class PayrollRepository(Protocol):
    """Persistence contract for confirmed payroll periods."""

    def add_period(self, period: PayrollPeriod) -> None: ...

    def get_period(self, period_id: str) -> PayrollPeriod | None: ...

    def find_period(self, company_id: str, year_month: str) -> PayrollPeriod | None: ...

    def list_periods(self, company_id: str | None = None) -> list[PayrollPeriod]: ...

    def replace_item(self, period_id: str, item: PayrollItem) -> None: ...

    def reset(self) -> None: ...


class InMemoryPayrollRepository:
    """Simple in-memory repository for fast iteration and tests."""

    def __init__(self) -> None:
        self._periods: dict[str, PayrollPeriod] = {}

    def add_period(self, period: PayrollPeriod) -> None:
        now = datetime.now(timezone.utc).isoformat()
        period.created_at = period.created_at or now
        period.updated_at = now
        self._periods[period.period_id] = period

    def get_period(self, period_id: str) -> PayrollPeriod | None:
        return self._periods.get(period_id)

    def find_period(self, company_id: str, year_month: str) -> PayrollPeriod | None:
        for period in self._periods.values():
            if period.company_id == company_id and period.year_month == year_month:
                return period
        return None

    def list_periods(self, company_id: str | None = None) -> list[PayrollPeriod]:
        periods = [p for p in self._periods.values() if company_id is None or p.company_id == company_id]
        periods.sort(key=lambda p: (p.company_id, p.year_month), reverse=True)
        return periods

    def replace_item(self, period_id: str, item: PayrollItem) -> None:
        period = self._periods.get(period_id)
        if period is None:
            raise KeyError(period_id)
        for index, existing in enumerate(period.items):
            if existing.worker_id == item.worker_id:
                period.items[index] = item
                break
        else:
            raise KeyError(item.worker_id)
        period.updated_at = datetime.now(timezone.utc).isoformat()

    def reset(self) -> None:
        self._periods.clear()
