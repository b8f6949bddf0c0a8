from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from liquidacion.core.rules import (
    compute_payslip,
    employer_unemployment_contribution,
    find_tax_bracket,
    gratification,
    income_tax,
    overtime_hourly_rate,
    overtime_pay,
    proportional_base_pay,
)
from liquidacion.core.schema import (
    PeriodVariableInputs,
    ResolvedIndicators,
    TaxBracket,
    WorkerCompensationFacts,
)
from liquidacion.core.validation import ContractViolation

UTM = Decimal("66613")

BRACKETS = (
    TaxBracket(from_units=Decimal("0"), to_units=Decimal("13.5"), factor=Decimal("0"), subtracted_units=Decimal("0")),
    TaxBracket(from_units=Decimal("13.5"), to_units=Decimal("30"), factor=Decimal("0.04"), subtracted_units=Decimal("0.54")),
    TaxBracket(from_units=Decimal("30"), to_units=Decimal("50"), factor=Decimal("0.08"), subtracted_units=Decimal("1.74")),
    TaxBracket(from_units=Decimal("50"), to_units=Decimal("70"), factor=Decimal("0.135"), subtracted_units=Decimal("4.49")),
    TaxBracket(from_units=Decimal("70"), to_units=Decimal("90"), factor=Decimal("0.23"), subtracted_units=Decimal("11.14")),
    TaxBracket(from_units=Decimal("90"), to_units=Decimal("120"), factor=Decimal("0.304"), subtracted_units=Decimal("17.8")),
    TaxBracket(from_units=Decimal("120"), to_units=Decimal("310"), factor=Decimal("0.35"), subtracted_units=Decimal("23.32")),
    TaxBracket(from_units=Decimal("310"), to_units=None, factor=Decimal("0.40"), subtracted_units=Decimal("38.82")),
)


def _facts(**overrides) -> WorkerCompensationFacts:
    data = {
        "base_monthly_salary": Decimal("800000"),
        "gratification_mode": "LEGAL_25_PERCENT",
        "pension_fund_name": "Capital",
        "pension_fund_rate": Decimal("11.44"),
        "health_plan_type": "PUBLIC",
        "contract_type": "INDEFINITE",
    }
    data.update(overrides)
    return WorkerCompensationFacts(**data)


def _indicators(**overrides) -> ResolvedIndicators:
    data = {
        "year": 2025,
        "month": 1,
        "unit_of_account_value": Decimal("37000"),
        "monthly_tax_unit_value": UTM,
        "minimum_wage": Decimal("500000"),
        "fund_name": "Capital",
        "pension_rate": Decimal("11.44"),
        "contract_type": "INDEFINITE",
        "unemployment_worker_rate": Decimal("0.6"),
        "unemployment_employer_rate": Decimal("2.4"),
        "tax_brackets": BRACKETS,
    }
    data.update(overrides)
    return ResolvedIndicators(**data)


def test_full_month_indefinite_public_worker():
    result = compute_payslip(_facts(), PeriodVariableInputs(), _indicators())

    assert result.amount_for("BASE_SALARY") == Decimal("800000")
    assert result.amount_for("GRATIFICATION") == Decimal("200000")
    assert result.taxable_base == Decimal("1000000")
    assert result.amount_for("PENSION") == Decimal("114400")
    assert result.amount_for("HEALTH") == Decimal("70000")
    assert result.amount_for("UNEMPLOYMENT") == Decimal("6000")
    assert result.taxable_income == Decimal("809600")
    # 809600 / 66613 is roughly 12.15 UTM, inside the exempt bracket
    assert result.amount_for("INCOME_TAX") == Decimal("0")
    assert result.lines("INCOME_TAX") == []
    assert result.total_deductions == Decimal("190400")
    assert result.net_pay == Decimal("809600")


def test_fixed_term_contract_withholds_three_percent():
    indicators = _indicators(
        contract_type="FIXED_TERM",
        unemployment_worker_rate=Decimal("3.0"),
        unemployment_employer_rate=Decimal("0"),
    )
    result = compute_payslip(_facts(contract_type="FIXED_TERM"), PeriodVariableInputs(), indicators)

    assert result.amount_for("UNEMPLOYMENT") == Decimal("30000")
    assert result.taxable_income == Decimal("785600")
    assert result.net_pay == Decimal("785600")


def test_private_health_plan_adds_units_of_account():
    facts = _facts(
        health_plan_type="PRIVATE",
        health_plan_name="Colmena",
        private_plan_additional_units=Decimal("3"),
    )
    result = compute_payslip(facts, PeriodVariableInputs(), _indicators())

    health = result.lines("HEALTH")
    assert len(health) == 1
    assert health[0].label == "Isapre Colmena"
    assert health[0].amount == Decimal("70000") + Decimal("111000")


def test_labels_follow_payslip_conventions():
    result = compute_payslip(
        _facts(fixed_allowances={"meal": Decimal("40000")}),
        PeriodVariableInputs(overtime_hours_50=Decimal("10")),
        _indicators(),
    )

    labels = [line.label for line in result.earnings]
    assert labels == ["Sueldo Base", "Horas Extras (10 hrs al 50%)", "Gratificación Legal 25%", "Bono Colación"]
    assert [line.label for line in result.deductions] == ["AFP Capital 11.44%", "Fonasa 7%", "Seguro de Cesantía 0.6%"]


def test_net_pay_equals_earnings_minus_deductions():
    result = compute_payslip(
        _facts(base_monthly_salary=Decimal("3450000"), fixed_allowances={"transport": Decimal("35000")}),
        PeriodVariableInputs(
            days_worked=27,
            overtime_hours_50=Decimal("6"),
            overtime_hours_100=Decimal("2"),
            variable_bonus_amount=Decimal("120000"),
            advances=Decimal("50000"),
        ),
        _indicators(),
    )

    earnings = sum(line.amount for line in result.earnings)
    deductions = sum(line.amount for line in result.deductions)
    assert result.total_earnings == earnings
    assert result.total_deductions == deductions
    assert result.net_pay == earnings - deductions


def test_calculation_is_repeatable():
    facts = _facts(base_monthly_salary=Decimal("1234567"))
    variable = PeriodVariableInputs(days_worked=19, overtime_hours_50=Decimal("3.5"))
    indicators = _indicators()

    assert compute_payslip(facts, variable, indicators) == compute_payslip(facts, variable, indicators)


def test_thirty_days_pays_full_base_salary():
    assert proportional_base_pay(Decimal("987654"), 30) == Decimal("987654")
    assert proportional_base_pay(Decimal("800000"), 15) == Decimal("400000")
    assert proportional_base_pay(Decimal("800000"), 0) == Decimal("0")


def test_legal_gratification_is_capped_by_minimum_wage():
    facts = _facts(base_monthly_salary=Decimal("20000000"))
    assert gratification(facts, Decimal("20000000"), Decimal("500000")) == Decimal("2375000")
    assert gratification(facts, Decimal("20000000"), Decimal("529000")) == Decimal("2512750")


@pytest.mark.parametrize(
    ("minimum_wage", "expected"),
    [("500002", "2375009"), ("500003", "2375014"), ("529001", "2512754")],
)
def test_gratification_cap_holds_for_fractional_ceilings(minimum_wage, expected):
    wage = Decimal(minimum_wage)
    facts = _facts(base_monthly_salary=Decimal("20000000"))

    amount = gratification(facts, Decimal("20000000"), wage)

    assert amount <= wage * Decimal("4.75")
    assert amount == Decimal(expected)


def test_fixed_gratification_is_used_verbatim():
    facts = _facts(gratification_mode="FIXED_AMOUNT", fixed_gratification_amount=Decimal("150000"))
    result = compute_payslip(facts, PeriodVariableInputs(days_worked=10), _indicators())

    line = result.lines("GRATIFICATION")[0]
    assert line.label == "Gratificación Pactada"
    assert line.amount == Decimal("150000")


def test_allowances_and_variable_bonus_stay_out_of_taxable_base():
    plain = compute_payslip(_facts(), PeriodVariableInputs(), _indicators())
    with_extras = compute_payslip(
        _facts(fixed_allowances={"meal": Decimal("50000"), "transport": Decimal("30000")}),
        PeriodVariableInputs(variable_bonus_amount=Decimal("100000")),
        _indicators(),
    )

    assert with_extras.taxable_base == plain.taxable_base
    assert with_extras.total_legal_deductions == plain.total_legal_deductions
    assert with_extras.total_earnings == plain.total_earnings + Decimal("180000")
    assert with_extras.net_pay == plain.net_pay + Decimal("180000")
    assert with_extras.lines("OTHER")[0].label == "Bonos Variables"


def test_voluntary_deductions_reduce_net_pay_only():
    plain = compute_payslip(_facts(), PeriodVariableInputs(), _indicators())
    result = compute_payslip(
        _facts(),
        PeriodVariableInputs(advances=Decimal("100000"), loans=Decimal("25000")),
        _indicators(),
    )

    assert result.total_legal_deductions == plain.total_legal_deductions
    assert result.total_voluntary_deductions == Decimal("125000")
    assert [line.label for line in result.deductions if line.category == "OTHER"] == ["Anticipos", "Préstamos"]
    assert result.net_pay == plain.net_pay - Decimal("125000")


def test_overtime_rate_uses_full_monthly_salary():
    assert overtime_hourly_rate(Decimal("800000"), Decimal("1.5")) == Decimal("6364")
    assert overtime_hourly_rate(Decimal("800000"), Decimal("2.0")) == Decimal("8485")
    assert overtime_pay(Decimal("800000"), Decimal("10"), Decimal("2")) == Decimal("80610")

    short_month = compute_payslip(
        _facts(),
        PeriodVariableInputs(days_worked=12, overtime_hours_50=Decimal("10")),
        _indicators(),
    )
    assert short_month.amount_for("OVERTIME") == Decimal("63640")


def test_income_tax_inside_second_bracket():
    # 1,500,000 CLP is about 22.5 UTM
    assert income_tax(Decimal("1500000"), UTM, BRACKETS) == Decimal("24029")


def test_income_tax_is_monotonic():
    previous = Decimal("0")
    for income in range(0, 30_000_001, 250_000):
        tax = income_tax(Decimal(income), UTM, BRACKETS)
        assert tax >= previous
        previous = tax


def test_income_without_bracket_pays_no_tax():
    partial = (TaxBracket(from_units=Decimal("10"), to_units=None, factor=Decimal("0.1")),)
    assert find_tax_bracket(Decimal("5"), partial) is None
    assert income_tax(Decimal("100000"), UTM, partial) == Decimal("0")


def test_bracket_table_with_gap_is_rejected():
    broken = (BRACKETS[0], BRACKETS[2], BRACKETS[-1])
    with pytest.raises(ContractViolation):
        compute_payslip(_facts(), PeriodVariableInputs(), _indicators(tax_brackets=broken))


def test_employer_unemployment_contribution_is_not_on_payslip():
    indicators = _indicators()
    result = compute_payslip(_facts(), PeriodVariableInputs(), indicators)

    assert employer_unemployment_contribution(result.taxable_base, indicators) == Decimal("24000")
    assert result.amount_for("UNEMPLOYMENT") == Decimal("6000")


@pytest.mark.parametrize(
    "overrides",
    [
        {"gratification_mode": "FIXED_AMOUNT"},
        {"fixed_gratification_amount": Decimal("1000")},
        {"health_plan_type": "PRIVATE"},
        {"private_plan_additional_units": Decimal("2")},
        {"fixed_allowances": {"meal": Decimal("-1")}},
        {"base_monthly_salary": Decimal("0")},
    ],
)
def test_invalid_compensation_facts_are_rejected(overrides):
    with pytest.raises(ValueError):
        _facts(**overrides)


@pytest.mark.parametrize("days", [-1, 32])
def test_days_worked_must_be_a_calendar_count(days):
    with pytest.raises(ValueError):
        PeriodVariableInputs(days_worked=days)
