from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from liquidacion.core.schema import TaxBracket, WorkerCompensationFacts


class ContractViolation(ValueError):
    """Raised when calculator input breaks its documented contract."""


def validate_facts(facts: "WorkerCompensationFacts") -> None:
    has_fixed = facts.fixed_gratification_amount is not None
    if facts.gratification_mode == "FIXED_AMOUNT" and not has_fixed:
        raise ContractViolation("FIXED_AMOUNT gratification requires fixed_gratification_amount")
    if facts.gratification_mode == "LEGAL_25_PERCENT" and has_fixed:
        raise ContractViolation("LEGAL_25_PERCENT gratification must not carry fixed_gratification_amount")

    has_units = facts.private_plan_additional_units is not None
    if facts.health_plan_type == "PRIVATE" and not has_units:
        raise ContractViolation("PRIVATE health plan requires private_plan_additional_units")
    if facts.health_plan_type == "PUBLIC" and has_units:
        raise ContractViolation("PUBLIC health plan must not carry private_plan_additional_units")

    for name, amount in facts.fixed_allowances.items():
        if amount < Decimal("0"):
            raise ContractViolation(f"allowance {name!r} cannot be negative")


def validate_tax_brackets(brackets: Sequence["TaxBracket"]) -> None:
    """Check that brackets are ascending and cover [0, inf) without gaps or overlaps."""

    if not brackets:
        raise ContractViolation("tax bracket table is empty")
    if brackets[0].from_units != Decimal("0"):
        raise ContractViolation("first tax bracket must start at 0")

    for index, bracket in enumerate(brackets):
        is_last = index == len(brackets) - 1
        if bracket.to_units is None:
            if not is_last:
                raise ContractViolation("only the last tax bracket may be open-ended")
            continue
        if bracket.to_units <= bracket.from_units:
            raise ContractViolation(f"tax bracket {index} has an empty range")
        if is_last:
            raise ContractViolation("last tax bracket must be open-ended")
        following = brackets[index + 1]
        if following.from_units != bracket.to_units:
            raise ContractViolation(
                f"tax brackets {index} and {index + 1} are not contiguous "
                f"({bracket.to_units} != {following.from_units})"
            )
