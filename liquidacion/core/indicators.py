"""Resolve a period's published indicators into the scalar slice one worker needs."""
from __future__ import annotations

import logging
from decimal import Decimal

from liquidacion.core.schema import ContractType, PeriodIndicators, ResolvedIndicators, UnemploymentRate
from liquidacion.infrastructure.indicators import IndicatorRepository, get_indicator_repository

logger = logging.getLogger(__name__)

# Statutory unemployment-insurance split used when a period does not publish one.
DEFAULT_UNEMPLOYMENT_RATES: dict[str, UnemploymentRate] = {
    "INDEFINITE": UnemploymentRate(worker_percent=Decimal("0.6"), employer_percent=Decimal("2.4")),
    "FIXED_TERM": UnemploymentRate(worker_percent=Decimal("3.0"), employer_percent=Decimal("0")),
    "PROJECT_BASED": UnemploymentRate(worker_percent=Decimal("3.0"), employer_percent=Decimal("0")),
}


class MissingIndicatorError(LookupError):
    """Raised when no indicator record exists for the requested period."""

    def __init__(self, year: int, month: int) -> None:
        self.year = year
        self.month = month
        super().__init__(f"no indicators configured for {month:02d}/{year}; configure them first")


class UnknownFundError(LookupError):
    """Raised in strict mode when the worker's pension fund has no published rate."""

    def __init__(self, fund_name: str, year: int, month: int) -> None:
        self.fund_name = fund_name
        self.year = year
        self.month = month
        super().__init__(f"pension fund {fund_name!r} has no published rate for {month:02d}/{year}")


def load_period(year: int, month: int, repository: IndicatorRepository | None = None) -> PeriodIndicators:
    repo = repository if repository is not None else get_indicator_repository()
    indicators = repo.get(year, month)
    if indicators is None:
        logger.warning("indicators missing for %02d/%d", month, year)
        raise MissingIndicatorError(year, month)
    return indicators


def _find_fund_rate(rates: dict[str, Decimal], fund_name: str) -> Decimal | None:
    if fund_name in rates:
        return rates[fund_name]
    wanted = fund_name.strip().casefold()
    for name, rate in rates.items():
        if name.strip().casefold() == wanted:
            return rate
    return None


class IndicatorResolver:
    """Holds one period snapshot and derives every worker's slice from it.

    Build it once per payroll run so all workers see the same indicators.
    """

    def __init__(self, indicators: PeriodIndicators, *, strict: bool = False) -> None:
        self.indicators = indicators
        self.strict = strict

    @classmethod
    def for_period(
        cls,
        year: int,
        month: int,
        repository: IndicatorRepository | None = None,
        *,
        strict: bool = False,
    ) -> "IndicatorResolver":
        return cls(load_period(year, month, repository), strict=strict)

    def unemployment_rate(self, contract_type: ContractType) -> UnemploymentRate:
        published = self.indicators.unemployment_rates.get(contract_type)
        if published is not None:
            return published
        return DEFAULT_UNEMPLOYMENT_RATES[contract_type]

    def resolve(self, fund_name: str, contract_type: ContractType, fallback_rate: Decimal) -> ResolvedIndicators:
        period = self.indicators
        pension_rate = _find_fund_rate(period.pension_fund_rates, fund_name)
        used_fallback = pension_rate is None
        if used_fallback:
            if self.strict:
                raise UnknownFundError(fund_name, period.year, period.month)
            logger.warning(
                "pension fund %r not published for %s; using worker default rate %s",
                fund_name,
                period.period_month,
                fallback_rate,
            )
            pension_rate = Decimal(fallback_rate)

        unemployment = self.unemployment_rate(contract_type)
        return ResolvedIndicators(
            year=period.year,
            month=period.month,
            unit_of_account_value=period.unit_of_account_value,
            monthly_tax_unit_value=period.monthly_tax_unit_value,
            minimum_wage=period.minimum_wage,
            fund_name=fund_name,
            pension_rate=pension_rate,
            used_fallback=used_fallback,
            contract_type=contract_type,
            unemployment_worker_rate=unemployment.worker_percent,
            unemployment_employer_rate=unemployment.employer_percent,
            tax_brackets=period.tax_brackets,
        )


def resolve_indicators(
    year: int,
    month: int,
    fund_name: str,
    contract_type: ContractType,
    fallback_rate: Decimal,
    *,
    repository: IndicatorRepository | None = None,
    strict: bool = False,
) -> ResolvedIndicators:
    """One-off lookup for a single worker. Batch callers should reuse an :class:`IndicatorResolver`."""

    resolver = IndicatorResolver.for_period(year, month, repository, strict=strict)
    return resolver.resolve(fund_name, contract_type, fallback_rate)
