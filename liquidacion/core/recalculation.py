"""Editing an already computed payslip.

Only lines whose category is editable (base salary, allowances, other) may be
overwritten by hand. Everything derived from the taxable base stays locked;
changes that should move those lines go through :func:`recalculate_payslip`.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from liquidacion.core.rules import compute_payslip
from liquidacion.core.schema import (
    PayslipLineItem,
    PayslipResult,
    PeriodVariableInputs,
    ResolvedIndicators,
    WorkerCompensationFacts,
)

TAXABLE_EARNING_CATEGORIES = frozenset({"BASE_SALARY", "OVERTIME", "GRATIFICATION"})
LEGAL_DEDUCTION_CATEGORIES = frozenset({"PENSION", "HEALTH", "UNEMPLOYMENT", "INCOME_TAX"})


class LockedLineError(ValueError):
    """Raised when an edit targets a system-derived payslip line."""


def _apply(lines: tuple[PayslipLineItem, ...], edits: Mapping[int, Decimal], kind: str) -> tuple[PayslipLineItem, ...]:
    updated = list(lines)
    for index, amount in edits.items():
        if index < 0 or index >= len(updated):
            raise IndexError(f"{kind} line {index} does not exist")
        line = updated[index]
        if not line.editable:
            raise LockedLineError(f"{kind} line {index} ({line.category}) is computed and cannot be edited")
        if amount < 0:
            raise ValueError(f"{kind} line {index} cannot be negative")
        updated[index] = line.model_copy(update={"amount": Decimal(amount)})
    return tuple(updated)


def summarise(
    earnings: tuple[PayslipLineItem, ...],
    deductions: tuple[PayslipLineItem, ...],
    taxable_income: Decimal,
) -> PayslipResult:
    """Rebuild totals from line items, grouping strictly by category."""

    taxable_base = sum((line.amount for line in earnings if line.category in TAXABLE_EARNING_CATEGORIES), Decimal("0"))
    total_earnings = sum((line.amount for line in earnings), Decimal("0"))
    legal = sum((line.amount for line in deductions if line.category in LEGAL_DEDUCTION_CATEGORIES), Decimal("0"))
    voluntary = sum((line.amount for line in deductions if line.category == "OTHER"), Decimal("0"))
    total_deductions = legal + voluntary
    return PayslipResult(
        earnings=earnings,
        deductions=deductions,
        taxable_base=taxable_base,
        taxable_income=taxable_income,
        total_earnings=total_earnings,
        total_legal_deductions=legal,
        total_voluntary_deductions=voluntary,
        total_deductions=total_deductions,
        net_pay=total_earnings - total_deductions,
    )


def apply_line_edits(
    result: PayslipResult,
    earnings_edits: Mapping[int, Decimal] | None = None,
    deduction_edits: Mapping[int, Decimal] | None = None,
) -> PayslipResult:
    """Overwrite editable lines by position and recompute the totals.

    Legal deductions are left as they were; a manual base-salary edit does not
    re-run the statutory chain.
    """

    earnings = _apply(result.earnings, earnings_edits or {}, "earning")
    deductions = _apply(result.deductions, deduction_edits or {}, "deduction")
    return summarise(earnings, deductions, result.taxable_income)


def recalculate_payslip(
    facts: WorkerCompensationFacts,
    variable: PeriodVariableInputs,
    indicators: ResolvedIndicators,
    **changes: object,
) -> PayslipResult:
    """Re-run the calculator with some period inputs changed, e.g. ``days_worked=25``."""

    updated = PeriodVariableInputs.model_validate({**variable.model_dump(), **changes})
    return compute_payslip(facts, updated, indicators)


# (side, category, label); positions shift when a recalculation adds or drops lines.
LineEditKey = tuple[str, str, str]


def line_edit_keys(
    result: PayslipResult,
    earnings_edits: Mapping[int, Decimal] | None = None,
    deduction_edits: Mapping[int, Decimal] | None = None,
) -> dict[LineEditKey, Decimal]:
    """Describe positional edits against ``result`` so they can be replayed later."""

    keys: dict[LineEditKey, Decimal] = {}
    for side, lines, edits in (
        ("earning", result.earnings, earnings_edits or {}),
        ("deduction", result.deductions, deduction_edits or {}),
    ):
        for index, amount in edits.items():
            line = lines[index]
            keys[(side, line.category, line.label)] = Decimal(amount)
    return keys


def reapply_line_edits(result: PayslipResult, edits: Mapping[LineEditKey, Decimal]) -> PayslipResult:
    """Replay recorded manual edits on a freshly computed payslip.

    Edits whose line no longer exists are skipped.
    """

    if not edits:
        return result
    earnings = {
        index: edits[("earning", line.category, line.label)]
        for index, line in enumerate(result.earnings)
        if ("earning", line.category, line.label) in edits
    }
    deductions = {
        index: edits[("deduction", line.category, line.label)]
        for index, line in enumerate(result.deductions)
        if ("deduction", line.category, line.label) in edits
    }
    return apply_line_edits(result, earnings, deductions)
