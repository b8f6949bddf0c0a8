"""Application services."""

from .indicators import IndicatorAlreadyExistsError, IndicatorService, get_indicator_service
from .payroll import (
    PayrollService,
    PeriodAlreadyExistsError,
    PeriodNotFoundError,
    get_payroll_service,
    reset_payroll_state,
)

__all__ = [
    "IndicatorAlreadyExistsError",
    "IndicatorService",
    "PayrollService",
    "PeriodAlreadyExistsError",
    "PeriodNotFoundError",
    "get_indicator_service",
    "get_payroll_service",
    "reset_payroll_state",
]
