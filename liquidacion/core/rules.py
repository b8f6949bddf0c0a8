from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Sequence

from liquidacion.core.schema import (
    PayslipLineItem,
    PayslipResult,
    PeriodVariableInputs,
    ResolvedIndicators,
    TaxBracket,
    WorkerCompensationFacts,
)
from liquidacion.core.validation import validate_tax_brackets

RULE_VERSION = "cl_rules_v1"

FULL_MONTH_DAYS = 30
# Ordinary-hours denominator for a 44-hour week: 28 days worth of wage over 176 hours.
OVERTIME_WAGE_DAYS = Decimal("28")
OVERTIME_MONTHLY_HOURS = Decimal("176")
OVERTIME_FACTOR_50 = Decimal("1.5")
OVERTIME_FACTOR_100 = Decimal("2.0")

LEGAL_GRATIFICATION_RATE = Decimal("0.25")
GRATIFICATION_CAP_MINIMUM_WAGES = Decimal("4.75")
HEALTH_BASE_RATE = Decimal("0.07")

ALLOWANCE_LABELS: dict[str, str] = {
    "meal": "Bono Colación",
    "transport": "Bono Movilización",
    "travel": "Bono Viático",
}


def round_pesos(value: Decimal) -> Decimal:
    """Round half-up to whole pesos; CLP has no sub-unit."""

    return Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def _format_number(value: Decimal) -> str:
    return format(Decimal(value).normalize(), "f")


# ---------------------------------------------------------------------------
# earnings
# ---------------------------------------------------------------------------
def proportional_base_pay(base_monthly_salary: Decimal, days_worked: int) -> Decimal:
    if days_worked == FULL_MONTH_DAYS:
        return base_monthly_salary
    return round_pesos(base_monthly_salary * days_worked / FULL_MONTH_DAYS)


def overtime_hourly_rate(base_monthly_salary: Decimal, premium_factor: Decimal) -> Decimal:
    """Hourly overtime value, always derived from the full monthly salary."""

    numerator = base_monthly_salary * OVERTIME_WAGE_DAYS * premium_factor
    return round_pesos(numerator / (FULL_MONTH_DAYS * OVERTIME_MONTHLY_HOURS))


def overtime_pay(base_monthly_salary: Decimal, hours_50: Decimal, hours_100: Decimal) -> Decimal:
    rate_50 = overtime_hourly_rate(base_monthly_salary, OVERTIME_FACTOR_50)
    rate_100 = overtime_hourly_rate(base_monthly_salary, OVERTIME_FACTOR_100)
    return round_pesos(hours_50 * rate_50 + hours_100 * rate_100)


def gratification(
    facts: WorkerCompensationFacts,
    proportional_base: Decimal,
    minimum_wage: Decimal,
) -> Decimal:
    if facts.gratification_mode == "FIXED_AMOUNT":
        return facts.fixed_gratification_amount or Decimal("0")
    legal = proportional_base * LEGAL_GRATIFICATION_RATE
    # Truncated to whole pesos so the paid amount never exceeds the ceiling.
    cap = (minimum_wage * GRATIFICATION_CAP_MINIMUM_WAGES).quantize(Decimal("1"), rounding=ROUND_DOWN)
    return min(round_pesos(legal), cap)


# ---------------------------------------------------------------------------
# legal deductions
# ---------------------------------------------------------------------------
def pension_deduction(taxable_base: Decimal, pension_rate_percent: Decimal) -> Decimal:
    return round_pesos(taxable_base * pension_rate_percent / 100)


def health_deduction(
    taxable_base: Decimal,
    facts: WorkerCompensationFacts,
    unit_of_account_value: Decimal,
) -> Decimal:
    baseline = round_pesos(taxable_base * HEALTH_BASE_RATE)
    if facts.health_plan_type != "PRIVATE":
        return baseline
    units = facts.private_plan_additional_units or Decimal("0")
    return baseline + round_pesos(units * unit_of_account_value)


def unemployment_deduction(taxable_base: Decimal, indicators: ResolvedIndicators) -> Decimal:
    return round_pesos(taxable_base * indicators.unemployment_worker_rate / 100)


def employer_unemployment_contribution(taxable_base: Decimal, indicators: ResolvedIndicators) -> Decimal:
    """Employer-side unemployment insurance; never shown on the worker's payslip."""

    return round_pesos(taxable_base * indicators.unemployment_employer_rate / 100)


def find_tax_bracket(income_in_units: Decimal, brackets: Sequence[TaxBracket]) -> TaxBracket | None:
    for bracket in brackets:
        if bracket.contains(income_in_units):
            return bracket
    return None


def income_tax(
    taxable_income: Decimal,
    monthly_tax_unit_value: Decimal,
    brackets: Sequence[TaxBracket],
) -> Decimal:
    income_in_units = taxable_income / monthly_tax_unit_value
    bracket = find_tax_bracket(income_in_units, brackets)
    if bracket is None:
        return Decimal("0")
    # (units * factor - subtracted) * UTM, expanded so the UTM division does not leak precision.
    tax = taxable_income * bracket.factor - bracket.subtracted_units * monthly_tax_unit_value
    return round_pesos(max(Decimal("0"), tax))


# ---------------------------------------------------------------------------
# labels
# ---------------------------------------------------------------------------
def _overtime_label(hours_50: Decimal, hours_100: Decimal) -> str:
    parts: list[str] = []
    if hours_50 > 0:
        parts.append(f"{_format_number(hours_50)} hrs al 50%")
    if hours_100 > 0:
        parts.append(f"{_format_number(hours_100)} hrs al 100%")
    return f"Horas Extras ({', '.join(parts)})"


def _gratification_label(facts: WorkerCompensationFacts) -> str:
    if facts.gratification_mode == "FIXED_AMOUNT":
        return "Gratificación Pactada"
    return "Gratificación Legal 25%"


def _health_label(facts: WorkerCompensationFacts) -> str:
    if facts.health_plan_type == "PRIVATE":
        return f"Isapre {facts.health_plan_name}" if facts.health_plan_name else "Isapre"
    return "Fonasa 7%"


def allowance_label(name: str) -> str:
    return ALLOWANCE_LABELS.get(name, name.replace("_", " ").title())


# ---------------------------------------------------------------------------
# payslip
# ---------------------------------------------------------------------------
def compute_payslip(
    facts: WorkerCompensationFacts,
    variable: PeriodVariableInputs,
    indicators: ResolvedIndicators,
) -> PayslipResult:
    validate_tax_brackets(indicators.tax_brackets)

    base_pay = proportional_base_pay(facts.base_monthly_salary, variable.days_worked)
    overtime = overtime_pay(facts.base_monthly_salary, variable.overtime_hours_50, variable.overtime_hours_100)
    bonus = gratification(facts, base_pay, indicators.minimum_wage)

    earnings: list[PayslipLineItem] = [
        PayslipLineItem(category="BASE_SALARY", label="Sueldo Base", amount=base_pay),
    ]
    if overtime > 0:
        earnings.append(
            PayslipLineItem(
                category="OVERTIME",
                label=_overtime_label(variable.overtime_hours_50, variable.overtime_hours_100),
                amount=overtime,
            )
        )
    earnings.append(PayslipLineItem(category="GRATIFICATION", label=_gratification_label(facts), amount=bonus))

    taxable_base = base_pay + overtime + bonus

    non_taxable = Decimal("0")
    for name, amount in facts.fixed_allowances.items():
        if amount <= 0:
            continue
        earnings.append(PayslipLineItem(category="ALLOWANCE", label=allowance_label(name), amount=amount))
        non_taxable += amount
    if variable.variable_bonus_amount > 0:
        earnings.append(
            PayslipLineItem(category="OTHER", label="Bonos Variables", amount=variable.variable_bonus_amount)
        )
        non_taxable += variable.variable_bonus_amount

    total_earnings = taxable_base + non_taxable

    pension = pension_deduction(taxable_base, indicators.pension_rate)
    health = health_deduction(taxable_base, facts, indicators.unit_of_account_value)
    unemployment = unemployment_deduction(taxable_base, indicators)
    taxable_income = taxable_base - pension - health - unemployment
    tax = income_tax(taxable_income, indicators.monthly_tax_unit_value, indicators.tax_brackets)

    deductions: list[PayslipLineItem] = [
        PayslipLineItem(
            category="PENSION",
            label=f"AFP {indicators.fund_name} {_format_number(indicators.pension_rate)}%",
            amount=pension,
        ),
        PayslipLineItem(category="HEALTH", label=_health_label(facts), amount=health),
        PayslipLineItem(
            category="UNEMPLOYMENT",
            label=f"Seguro de Cesantía {_format_number(indicators.unemployment_worker_rate)}%",
            amount=unemployment,
        ),
    ]
    if tax > 0:
        deductions.append(PayslipLineItem(category="INCOME_TAX", label="Impuesto Único", amount=tax))

    legal_total = pension + health + unemployment + tax

    voluntary_total = Decimal("0")
    for label, amount in (
        ("Anticipos", variable.advances),
        ("Préstamos", variable.loans),
        ("Otros Descuentos", variable.other_deductions),
    ):
        if amount > 0:
            deductions.append(PayslipLineItem(category="OTHER", label=label, amount=amount))
            voluntary_total += amount

    total_deductions = legal_total + voluntary_total

    return PayslipResult(
        earnings=tuple(earnings),
        deductions=tuple(deductions),
        taxable_base=taxable_base,
        taxable_income=taxable_income,
        total_earnings=total_earnings,
        total_legal_deductions=legal_total,
        total_voluntary_deductions=voluntary_total,
        total_deductions=total_deductions,
        net_pay=total_earnings - total_deductions,
    )
