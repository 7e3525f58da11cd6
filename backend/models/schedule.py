"""
Engine output structures.

Every structure here is produced fresh on each run and frozen afterwards; no
component mutates another component's output.
"""

from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .lease_terms import (
    AbatementAppliesTo,
    AbatementPeriod,
    AbatementType,
    AmortizationMethod,
    EscalationPeriod,
    EscalationType,
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class NormalizationIssue(_Frozen):
    """Report-only finding from the normalizer; never blocks a run."""

    severity: Literal["info", "warn", "error"] = "warn"
    code: str
    message: str
    field: Optional[str] = None


class LeaseTimeline(_Frozen):
    commencement: date
    expiration: date = Field(description="Inclusive last day of the term")
    term_months: int = Field(gt=0)
    abatement_months: int = Field(ge=0)
    rent_start: date
    term_years: float = Field(description="Display only; never used for month counts")
    include_abatement_in_term: bool = False
    term_source: Literal["lease_term", "expiration"]


class EscalationSchedule(_Frozen):
    mode: EscalationType = EscalationType.FIXED
    fixed_rate: float = 0.0
    periods: List[EscalationPeriod] = Field(default_factory=list)


class AbatementSchedule(_Frozen):
    mode: AbatementType = AbatementType.AT_COMMENCEMENT
    periods: List[AbatementPeriod] = Field(default_factory=list)

    @property
    def total_free_months(self) -> int:
        return sum(p.free_rent_months for p in self.periods)


class MonthlyRecord(_Frozen):
    """One lease month of rent, concessions and recurring charges."""

    month_index: int = Field(ge=0)
    start_date: date
    end_date: date
    lease_year: int = Field(ge=0)
    annual_rate_psf: float = 0.0
    contractual_base_rent: float = 0.0
    free_rent_amount: float = Field(default=0.0, le=0.0)
    # Unfloored: a base_plus_nnn month is -operating, so display net_rent_due_floored
    net_rent_due: float = 0.0
    operating: float = 0.0
    parking: float = 0.0
    abatement_applies_to: Optional[AbatementAppliesTo] = None
    # Cumulative unfloored net rent / months elapsed; can dip below zero in base_plus_nnn months
    effective_rent_running: float = 0.0

    @property
    def is_abated(self) -> bool:
        return self.abatement_applies_to is not None

    @property
    def net_rent_due_floored(self) -> float:
        """Presentation value: net rent never shown below zero."""
        return max(0.0, self.net_rent_due)


class RentScheduleSummary(_Frozen):
    total_contract_rent: float = 0.0
    total_net_rent: float = 0.0
    free_rent_value: float = 0.0


class RentSchedule(_Frozen):
    months: List[MonthlyRecord] = Field(default_factory=list)
    summary: RentScheduleSummary = Field(default_factory=RentScheduleSummary)


class AmortizationRow(_Frozen):
    month_index: int = Field(ge=0)
    beginning_balance: float
    payment: float
    interest: float = 0.0
    principal: float
    ending_balance: float


class AmortizationPrincipal(_Frozen):
    """Financing-eligible cost components selected by the financing flags."""

    ti_shortfall: float = 0.0
    free_rent_value: float = 0.0
    transaction_costs: float = 0.0

    @property
    def total(self) -> float:
        return self.ti_shortfall + self.free_rent_value + self.transaction_costs


class AmortizationSummary(_Frozen):
    principal: AmortizationPrincipal
    method: AmortizationMethod
    annual_rate: float = 0.0
    term_months: int = 0
    rows: List[AmortizationRow] = Field(default_factory=list)

    @property
    def total_to_amortize(self) -> float:
        return self.principal.total


class MonthlyCashflowLine(_Frozen):
    month_index: int = Field(ge=0)
    start_date: date
    calendar_year: int
    lease_year: int = Field(ge=0)
    base_rent: float = 0.0
    abatement_credit: float = 0.0
    operating: float = 0.0
    parking: float = 0.0
    ti_shortfall: float = 0.0
    transaction_costs: float = 0.0
    amortized_costs: float = 0.0
    subtotal: float = 0.0
    net_cash_flow: float = 0.0


class AnnualLine(_Frozen):
    """One year of aggregated cash flow (tenant POV: costs positive, credits negative)."""

    year: int = Field(description="Calendar year, or 1-based lease year when grouped by lease year")
    year_index: int = Field(ge=0)
    months: int = Field(ge=0)
    base_rent: float = 0.0
    operating: float = 0.0
    parking: float = 0.0
    abatement_credit: float = 0.0
    ti_shortfall: float = 0.0
    transaction_costs: float = 0.0
    amortized_costs: float = 0.0
    subtotal: float = 0.0
    net_cash_flow: float = 0.0


class TerminationComponents(_Frozen):
    month_index: int = Field(ge=0)
    start_date: Optional[date] = None
    monthly_rent: float = 0.0
    penalty_months: float = 0.0
    penalty_rent: float = 0.0
    rsf_penalty: float = 0.0
    unamortized_balance: float = 0.0
    equivalent_months: float = 0.0
    total_fee: float = 0.0
    exercisable: bool = True


class LeaseMetrics(_Frozen):
    npv: float = 0.0
    irr: Optional[float] = None
    effective_rent_psf: float = 0.0
    blended_rate_psf: float = 0.0
    payback_years: Optional[float] = None
    cash_on_cash_return: float = 0.0
    yield_on_cost: float = 0.0
    equity_multiple: float = 0.0
    landlord_cost: float = 0.0
    free_rent_value: float = 0.0
    total_net_cash_flow: float = 0.0
