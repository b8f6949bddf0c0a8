"""Infrastructure layer exports."""

from .indicators import (
    IndicatorRepository,
    InMemoryIndicatorRepository,
    configure_indicator_repository,
    get_indicator_repository,
    load_indicator_file,
    reset_indicator_repository,
)
from .payroll import InMemoryPayrollRepository, PayrollRepository

__all__ = [
    "IndicatorRepository",
    "InMemoryIndicatorRepository",
    "InMemoryPayrollRepository",
    "PayrollRepository",
    "configure_indicator_repository",
    "get_indicator_repository",
    "load_indicator_file",
    "reset_indicator_repository",
]
