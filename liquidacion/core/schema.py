from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from liquidacion.core.validation import validate_facts, validate_tax_brackets

GratificationMode = Literal["FIXED_AMOUNT", "LEGAL_25_PERCENT"]
HealthPlanType = Literal["PUBLIC", "PRIVATE"]
ContractType = Literal["INDEFINITE", "FIXED_TERM", "PROJECT_BASED"]
LineCategory = Literal[
    "BASE_SALARY",
    "OVERTIME",
    "GRATIFICATION",
    "PENSION",
    "HEALTH",
    "UNEMPLOYMENT",
    "INCOME_TAX",
    "ALLOWANCE",
    "OTHER",
]

CONTRACT_TYPES: tuple[str, ...] = ("INDEFINITE", "FIXED_TERM", "PROJECT_BASED")

# Categories the accountant may overwrite on a saved payslip.
EDITABLE_CATEGORIES: frozenset[str] = frozenset({"BASE_SALARY", "ALLOWANCE", "OTHER"})


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class WorkerCompensationFacts(_Frozen):
    base_monthly_salary: Decimal = Field(gt=0)
    gratification_mode: GratificationMode
    fixed_gratification_amount: Decimal | None = Field(default=None, ge=0)
    pension_fund_name: str
    pension_fund_rate: Decimal = Field(ge=0, le=100)
    health_plan_type: HealthPlanType
    health_plan_name: str | None = None
    private_plan_additional_units: Decimal | None = Field(default=None, ge=0)
    contract_type: ContractType
    fixed_allowances: dict[str, Decimal] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_conditional_fields(self) -> "WorkerCompensationFacts":
        validate_facts(self)
        return self


class PeriodVariableInputs(_Frozen):
    days_worked: int = Field(default=30, ge=0, le=31)
    overtime_hours_50: Decimal = Field(default=Decimal("0"), ge=0)
    overtime_hours_100: Decimal = Field(default=Decimal("0"), ge=0)
    variable_bonus_amount: Decimal = Field(default=Decimal("0"), ge=0)
    advances: Decimal = Field(default=Decimal("0"), ge=0)
    loans: Decimal = Field(default=Decimal("0"), ge=0)
    other_deductions: Decimal = Field(default=Decimal("0"), ge=0)


class TaxBracket(_Frozen):
    from_units: Decimal = Field(ge=0)
    to_units: Decimal | None = None
    factor: Decimal = Field(ge=0)
    subtracted_units: Decimal = Field(default=Decimal("0"), ge=0)

    def contains(self, units: Decimal) -> bool:
        if units < self.from_units:
            return False
        return self.to_units is None or units < self.to_units


class UnemploymentRate(_Frozen):
    worker_percent: Decimal = Field(ge=0, le=100)
    employer_percent: Decimal = Field(ge=0, le=100)


class PeriodIndicators(_Frozen):
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    unit_of_account_value: Decimal = Field(gt=0)
    monthly_tax_unit_value: Decimal = Field(gt=0)
    minimum_wage: Decimal = Field(gt=0)
    pension_fund_rates: dict[str, Decimal] = Field(default_factory=dict)
    unemployment_rates: dict[ContractType, UnemploymentRate] = Field(default_factory=dict)
    tax_brackets: tuple[TaxBracket, ...]

    @model_validator(mode="after")
    def _check_brackets(self) -> "PeriodIndicators":
        validate_tax_brackets(self.tax_brackets)
        return self

    @property
    def period_month(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class ResolvedIndicators(_Frozen):
    """Indicator slice for one worker in one period, resolved to scalars."""

    year: int
    month: int
    unit_of_account_value: Decimal
    monthly_tax_unit_value: Decimal
    minimum_wage: Decimal
    fund_name: str
    pension_rate: Decimal
    used_fallback: bool = False
    contract_type: ContractType
    unemployment_worker_rate: Decimal
    unemployment_employer_rate: Decimal
    tax_brackets: tuple[TaxBracket, ...]


class PayslipLineItem(_Frozen):
    category: LineCategory
    label: str
    amount: Decimal

    @property
    def editable(self) -> bool:
        return self.category in EDITABLE_CATEGORIES


class PayslipResult(_Frozen):
    earnings: tuple[PayslipLineItem, ...]
    deductions: tuple[PayslipLineItem, ...]
    taxable_base: Decimal
    taxable_income: Decimal
    total_earnings: Decimal
    total_legal_deductions: Decimal
    total_voluntary_deductions: Decimal = Decimal("0")
    total_deductions: Decimal
    net_pay: Decimal

    def lines(self, category: LineCategory) -> list[PayslipLineItem]:
        return [item for item in (*self.earnings, *self.deductions) if item.category == category]

    def amount_for(self, category: LineCategory) -> Decimal:
        return sum((item.amount for item in self.lines(category)), Decimal("0"))
