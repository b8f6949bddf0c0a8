"""Application service layer for payroll runs."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Mapping

from liquidacion.core.indicators import IndicatorResolver
from liquidacion.core.recalculation import (
    apply_line_edits,
    line_edit_keys,
    reapply_line_edits,
    recalculate_payslip,
)
from liquidacion.core.rules import compute_payslip
from liquidacion.domain import PayrollItem, PayrollPeriod, WorkerPayrollInput
from liquidacion.infrastructure import (
    IndicatorRepository,
    InMemoryPayrollRepository,
    PayrollRepository,
    get_indicator_repository,
)

logger = logging.getLogger(__name__)


class PeriodAlreadyExistsError(Exception):
    """Raised when a company already has a confirmed payroll for the month."""


class PeriodNotFoundError(KeyError):
    """Raised when a payroll period or one of its items does not exist."""


def format_year_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


class PayrollService:
    """Coordinates payroll calculation, confirmation and later edits."""

    def __init__(
        self,
        repository: PayrollRepository,
        indicator_repository: IndicatorRepository | None = None,
    ) -> None:
        self._repository = repository
        self._indicator_repository = indicator_repository

    @property
    def indicator_repository(self) -> IndicatorRepository:
        if self._indicator_repository is not None:
            return self._indicator_repository
        return get_indicator_repository()

    # ------------------------------------------------------------------
    # calculation
    # ------------------------------------------------------------------
    def calculate_period(
        self,
        year: int,
        month: int,
        workers: Iterable[WorkerPayrollInput],
        *,
        strict: bool = False,
    ) -> list[PayrollItem]:
        # One snapshot for the whole run; MissingIndicatorError propagates untouched.
        resolver = IndicatorResolver.for_period(year, month, self.indicator_repository, strict=strict)

        items: list[PayrollItem] = []
        for worker in workers:
            indicators = resolver.resolve(
                worker.facts.pension_fund_name,
                worker.facts.contract_type,
                worker.facts.pension_fund_rate,
            )
            result = compute_payslip(worker.facts, worker.variable, indicators)
            items.append(
                PayrollItem(
                    worker_id=worker.worker_id,
                    worker_name=worker.worker_name,
                    worker_rut=worker.worker_rut,
                    facts=worker.facts,
                    variable=worker.variable,
                    indicators=indicators,
                    result=result,
                )
            )

        fallbacks = sum(1 for item in items if item.used_fallback)
        logger.info(
            "calculated %d payslips for %s (%d using fallback pension rates)",
            len(items),
            format_year_month(year, month),
            fallbacks,
        )
        return items

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------
    def save_period(self, company_id: str, year: int, month: int, items: list[PayrollItem]) -> PayrollPeriod:
        year_month = format_year_month(year, month)
        if self._repository.find_period(company_id, year_month) is not None:
            raise PeriodAlreadyExistsError(f"a payroll period already exists for {month}/{year}")

        period = PayrollPeriod(
            period_id=f"{company_id}-{year_month}",
            company_id=company_id,
            year_month=year_month,
            items=list(items),
        )
        self._repository.add_period(period)
        logger.info("saved payroll period %s with %d items", period.period_id, len(period.items))
        return period

    def get_period(self, period_id: str) -> PayrollPeriod | None:
        return self._repository.get_period(period_id)

    def list_periods(self, company_id: str | None = None) -> list[PayrollPeriod]:
        return self._repository.list_periods(company_id)

    def update_item(
        self,
        period_id: str,
        worker_id: str,
        *,
        days_worked: int | None = None,
        earnings_edits: Mapping[int, Decimal] | None = None,
        deduction_edits: Mapping[int, Decimal] | None = None,
    ) -> PayrollItem:
        """Edit a saved payslip.

        A new ``days_worked`` re-runs the calculator against the indicator slice
        stored with the item and replays earlier manual edits; new line edits
        are applied afterwards and recorded on the item.
        """

        period = self._repository.get_period(period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)
        item = next((entry for entry in period.items if entry.worker_id == worker_id), None)
        if item is None:
            raise PeriodNotFoundError(f"{period_id}/{worker_id}")

        variable = item.variable
        result = item.result
        line_edits = dict(item.line_edits)
        if days_worked is not None and days_worked != variable.days_worked:
            result = recalculate_payslip(item.facts, variable, item.indicators, days_worked=days_worked)
            result = reapply_line_edits(result, line_edits)
            variable = variable.model_copy(update={"days_worked": days_worked})
        if earnings_edits or deduction_edits:
            edited = apply_line_edits(result, earnings_edits, deduction_edits)
            line_edits.update(line_edit_keys(result, earnings_edits, deduction_edits))
            result = edited

        updated = PayrollItem(
            worker_id=item.worker_id,
            worker_name=item.worker_name,
            worker_rut=item.worker_rut,
            facts=item.facts,
            variable=variable,
            indicators=item.indicators,
            result=result,
            line_edits=line_edits,
        )
        self._repository.replace_item(period_id, updated)
        return updated

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._repository.reset()


_repository = InMemoryPayrollRepository()
_service = PayrollService(_repository)


def get_payroll_service() -> PayrollService:
    """Return the singleton payroll service for the process."""

    return _service


def reset_payroll_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _service.reset()
