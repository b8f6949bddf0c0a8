"""Storage for the monthly statutory indicators published by the government.

The repository is seeded from ``config/indicators.cl.yaml``; deployments can
point ``LIQUIDACION_INDICATORS_FILE`` at their own file or install a
different repository with :func:`configure_indicator_repository`.
"""
from __future__ import annotations

import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Protocol

import yaml

from liquidacion.core.schema import PeriodIndicators

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_INDICATORS_FILE = CONFIG_DIR / "indicators.cl.yaml"


class IndicatorRepository(Protocol):
    """Persistence contract for period indicators, unique per (year, month)."""

    def get(self, year: int, month: int) -> PeriodIndicators | None: ...

    def save(self, indicators: PeriodIndicators) -> None: ...

    def list_periods(self, year: int | None = None) -> list[PeriodIndicators]: ...

    def delete(self, year: int, month: int) -> bool: ...

    def reset(self) -> None: ...


class InMemoryIndicatorRepository:
    """Dictionary-backed repository used by the API process and tests."""

    def __init__(self, seed: Iterable[PeriodIndicators] = ()) -> None:
        self._seed = list(seed)
        self._periods: dict[tuple[int, int], PeriodIndicators] = {}
        self.reset()

    def get(self, year: int, month: int) -> PeriodIndicators | None:
        return self._periods.get((year, month))

    def save(self, indicators: PeriodIndicators) -> None:
        self._periods[(indicators.year, indicators.month)] = indicators

    def list_periods(self, year: int | None = None) -> list[PeriodIndicators]:
        items = [item for item in self._periods.values() if year is None or item.year == year]
        items.sort(key=lambda item: (item.year, item.month), reverse=True)
        return items

    def delete(self, year: int, month: int) -> bool:
        return self._periods.pop((year, month), None) is not None

    def reset(self) -> None:
        self._periods = {(item.year, item.month): item for item in self._seed}


def _to_decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def _parse_brackets(rows: list[dict]) -> list[dict[str, Any]]:
    brackets: list[dict[str, Any]] = []
    for row in rows:
        to_units = row.get("to_units")
        brackets.append(
            {
                "from_units": _to_decimal(row.get("from_units", 0)),
                "to_units": _to_decimal(to_units) if to_units is not None else None,
                "factor": _to_decimal(row.get("factor", 0)),
                "subtracted_units": _to_decimal(row.get("subtracted_units", 0)),
            }
        )
    return brackets


def parse_indicator_document(document: dict) -> list[PeriodIndicators]:
    """Build indicator records from the YAML layout (yearly brackets + monthly values)."""

    brackets_by_year = {
        int(year): _parse_brackets(rows or []) for year, rows in (document.get("tax_brackets") or {}).items()
    }
    default_unemployment = document.get("unemployment_rates") or {}

    records: list[PeriodIndicators] = []
    for period in document.get("periods") or []:
        year = int(period["year"])
        if "tax_brackets" in period:
            brackets = _parse_brackets(period["tax_brackets"])
        elif year in brackets_by_year:
            brackets = brackets_by_year[year]
        else:
            raise ValueError(f"no tax brackets configured for year {year}")

        unemployment = {**default_unemployment, **(period.get("unemployment_rates") or {})}
        records.append(
            PeriodIndicators(
                year=year,
                month=int(period["month"]),
                unit_of_account_value=_to_decimal(period["unit_of_account_value"]),
                monthly_tax_unit_value=_to_decimal(period["monthly_tax_unit_value"]),
                minimum_wage=_to_decimal(period["minimum_wage"]),
                pension_fund_rates={
                    str(name): _to_decimal(rate) for name, rate in (period.get("pension_fund_rates") or {}).items()
                },
                unemployment_rates={
                    contract: {
                        "worker_percent": _to_decimal(rates.get("worker_percent", 0)),
                        "employer_percent": _to_decimal(rates.get("employer_percent", 0)),
                    }
                    for contract, rates in unemployment.items()
                },
                tax_brackets=brackets,
            )
        )
    return records


def load_indicator_file(path: Path) -> list[PeriodIndicators]:
    if not path.exists():
        logger.warning("indicator file %s not found; starting with no periods", path)
        return []
    with path.open("r", encoding="utf-8") as fp:
        document = yaml.safe_load(fp) or {}
    records = parse_indicator_document(document)
    logger.info("loaded %d indicator periods from %s", len(records), path)
    return records


def _indicators_file() -> Path:
    env_path = os.getenv("LIQUIDACION_INDICATORS_FILE")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return DEFAULT_INDICATORS_FILE


_repository: IndicatorRepository | None = None


def configure_indicator_repository(repository: IndicatorRepository) -> None:
    """Install the repository the resolver reads from."""

    global _repository
    _repository = repository


def get_indicator_repository() -> IndicatorRepository:
    """Return the configured repository, seeding it from YAML on first use."""

    global _repository
    if _repository is None:
        _repository = InMemoryIndicatorRepository(load_indicator_file(_indicators_file()))
    return _repository


def reset_indicator_repository() -> None:
    """Drop the configured repository so the next access reloads the YAML seed."""

    global _repository
    _repository = None
