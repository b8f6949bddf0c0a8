"""Domain layer definitions."""

from .payroll import PayrollItem, PayrollPeriod, WorkerPayrollInput

__all__ = [
    "PayrollItem",
    "PayrollPeriod",
    "WorkerPayrollInput",
]
