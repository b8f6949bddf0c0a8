"""Administration of monthly indicator records."""
from __future__ import annotations

import logging

from liquidacion.core.indicators import MissingIndicatorError, load_period
from liquidacion.core.schema import PeriodIndicators
from liquidacion.infrastructure import IndicatorRepository, get_indicator_repository

logger = logging.getLogger(__name__)


class IndicatorAlreadyExistsError(Exception):
    """Raised when creating or duplicating onto a period that is already configured."""


class IndicatorService:
    def __init__(self, repository: IndicatorRepository | None = None) -> None:
        self._repository = repository

    @property
    def repository(self) -> IndicatorRepository:
        if self._repository is not None:
            return self._repository
        return get_indicator_repository()

    def list_indicators(self, year: int | None = None) -> list[PeriodIndicators]:
        return self.repository.list_periods(year)

    def get_indicators(self, year: int, month: int) -> PeriodIndicators:
        return load_period(year, month, self.repository)

    def create_indicators(self, indicators: PeriodIndicators, *, replace: bool = False) -> PeriodIndicators:
        existing = self.repository.get(indicators.year, indicators.month)
        if existing is not None and not replace:
            raise IndicatorAlreadyExistsError(
                f"indicators already exist for {indicators.month:02d}/{indicators.year}"
            )
        self.repository.save(indicators)
        logger.info("%s indicators for %s", "replaced" if existing else "created", indicators.period_month)
        return indicators

    def delete_indicators(self, year: int, month: int) -> None:
        if not self.repository.delete(year, month):
            raise MissingIndicatorError(year, month)

    def duplicate_indicators(
        self,
        source_year: int,
        source_month: int,
        target_year: int,
        target_month: int,
    ) -> PeriodIndicators:
        """Copy one month's values onto another, the usual start for a new month."""

        source = load_period(source_year, source_month, self.repository)
        if self.repository.get(target_year, target_month) is not None:
            raise IndicatorAlreadyExistsError(f"indicators already exist for {target_month:02d}/{target_year}")
        payload = source.model_dump()
        payload.update(year=target_year, month=target_month)
        duplicate = PeriodIndicators.model_validate(payload)
        self.repository.save(duplicate)
        logger.info("duplicated indicators %s -> %s", source.period_month, duplicate.period_month)
        return duplicate


_service = IndicatorService()


def get_indicator_service() -> IndicatorService:
    return _service
