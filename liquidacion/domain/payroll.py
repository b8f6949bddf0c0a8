"""Domain entities for payroll periods."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from liquidacion.core.schema import (
    PayslipResult,
    PeriodVariableInputs,
    ResolvedIndicators,
    WorkerCompensationFacts,
)


@dataclass(slots=True)
class WorkerPayrollInput:
    """What the caller supplies for one worker in one period."""

    worker_id: str
    worker_name: str
    facts: WorkerCompensationFacts
    variable: PeriodVariableInputs = field(default_factory=PeriodVariableInputs)
    worker_rut: str | None = None


@dataclass(slots=True)
class PayrollItem:
    """A computed payslip together with the inputs and indicator slice behind it."""

    worker_id: str
    worker_name: str
    facts: WorkerCompensationFacts
    variable: PeriodVariableInputs
    indicators: ResolvedIndicators
    result: PayslipResult
    worker_rut: str | None = None
    # manual edits keyed by (side, category, label), replayed after recalculation
    line_edits: dict[tuple[str, str, str], Decimal] = field(default_factory=dict)

    @property
    def used_fallback(self) -> bool:
        return self.indicators.used_fallback


@dataclass(slots=True)
class PayrollPeriod:
    """A confirmed payroll run for one company and month."""

    period_id: str
    company_id: str
    year_month: str
    status: str = "LIQUIDADA"
    items: list[PayrollItem] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
