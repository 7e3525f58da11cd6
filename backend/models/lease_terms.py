"""
Lease terms: the input object every engine run starts from.

All money is in dollars, all rates are decimals (0.03 = 3%), all PSF values
are annual per rentable square foot unless a field name says otherwise.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class LeaseType(str, Enum):
    NNN = "NNN"
    FS = "FS"


def _coerce_lease_type(value: Any) -> LeaseType:
    """Coerce casing and common aliases so nnn/gross/full service never 422."""
    if value is None:
        return LeaseType.NNN
    if isinstance(value, LeaseType):
        return value
    s = (str(value).strip() or "nnn").lower().replace("-", " ").replace("_", " ")
    if s in ("fs", "full service", "gross", "modified gross"):
        return LeaseType.FS
    return LeaseType.NNN


class EscalationType(str, Enum):
    FIXED = "fixed"
    CUSTOM = "custom"


class AbatementType(str, Enum):
    AT_COMMENCEMENT = "at_commencement"
    CUSTOM = "custom"


class AbatementAppliesTo(str, Enum):
    BASE_ONLY = "base_only"
    BASE_PLUS_NNN = "base_plus_nnn"


class AmortizationMethod(str, Enum):
    STRAIGHT_LINE = "straight_line"
    PRESENT_VALUE = "present_value"


class Granularity(str, Enum):
    ANNUAL = "annual"
    MONTHLY = "monthly"


class _DateRange(BaseModel):
    period_start: date
    period_end: date

    @field_validator("period_end")
    @classmethod
    def end_ge_start(cls, v: date, info: Any) -> date:
        start = info.data.get("period_start")
        if start is not None and v < start:
            raise ValueError("period_end must be >= period_start")
        return v


class RentRow(_DateRange):
    """
    One row of the contractual rent schedule.

    Rows may overlap; the first row whose range contains a month wins.
    """

    rent_psf: float = Field(ge=0.0, description="Base rent $/RSF/year")
    escalation_percentage: Optional[float] = Field(default=None, description="Annual escalation (0.03 = 3%)")


class EscalationPeriod(_DateRange):
    escalation_percentage: float = 0.0


class AbatementPeriod(_DateRange):
    free_rent_months: int = Field(description="Free months granted inside this window")
    abatement_applies_to: AbatementAppliesTo = AbatementAppliesTo.BASE_ONLY


class KeyDates(BaseModel):
    commencement: date
    expiration: Optional[date] = None
    rent_start: Optional[date] = None


class LeaseTermLength(BaseModel):
    years: int = Field(ge=0, default=0)
    months: int = Field(ge=0, default=0)
    include_abatement_in_term: bool = False


class RentEscalation(BaseModel):
    escalation_type: EscalationType = EscalationType.FIXED
    fixed_escalation_percentage: Optional[float] = None
    escalation_periods: List[EscalationPeriod] = Field(default_factory=list)


class Concessions(BaseModel):
    ti_allowance_psf: float = Field(ge=0.0, default=0.0)
    ti_actual_build_cost_psf: Optional[float] = Field(default=None, ge=0.0)
    abatement_type: AbatementType = AbatementType.AT_COMMENCEMENT
    abatement_free_rent_months: int = 0
    abatement_applies_to: AbatementAppliesTo = AbatementAppliesTo.BASE_ONLY
    abatement_periods: List[AbatementPeriod] = Field(default_factory=list)


class OperatingSettings(BaseModel):
    est_op_ex_psf: float = Field(ge=0.0, default=0.0)
    escalation_type: EscalationType = EscalationType.FIXED
    escalation_value: float = 0.0
    escalation_cap: Optional[float] = Field(default=None, ge=0.0)
    escalation_periods: List[EscalationPeriod] = Field(default_factory=list)
    # FS only: replaces the base-year stop with an explicit pass-through rate
    use_manual_pass_through: bool = False
    manual_pass_through_psf: Optional[float] = Field(default=None, ge=0.0)


class ParkingSettings(BaseModel):
    monthly_rate_per_stall: float = Field(ge=0.0, default=0.0)
    stalls: int = Field(ge=0, default=0)
    escalation_value: float = Field(ge=0.0, default=0.0)


class TransactionCosts(BaseModel):
    legal_fees: float = Field(ge=0.0, default=0.0)
    brokerage_fees: float = Field(ge=0.0, default=0.0)
    due_diligence: float = Field(ge=0.0, default=0.0)
    environmental: float = Field(ge=0.0, default=0.0)
    other: float = Field(ge=0.0, default=0.0)
    total: Optional[float] = Field(default=None, ge=0.0)

    @property
    def resolved_total(self) -> float:
        """Explicit total when given, else the sum of the line items."""
        if self.total is not None:
            return float(self.total)
        return self.legal_fees + self.brokerage_fees + self.due_diligence + self.environmental + self.other


class FinancingSettings(BaseModel):
    amortize_ti: bool = False
    amortize_free_rent: bool = False
    amortize_transaction_costs: bool = False
    amortization_method: AmortizationMethod = AmortizationMethod.PRESENT_VALUE
    interest_rate: Optional[float] = Field(default=None, ge=0.0)


class TerminationOption(BaseModel):
    """Early-termination right: window, notice and fee terms."""

    window_open: Optional[date] = None
    window_close: Optional[date] = None
    notice_months: int = Field(ge=0, default=0)
    fee_months_of_rent: float = Field(ge=0.0, default=0.0)
    base_rent_penalty: Optional[float] = Field(default=None, ge=0.0, description="Additional penalty $/RSF")
    unamortized_costs_included: bool = True
    termination_interest_rate: Optional[float] = Field(default=None, ge=0.0)


class CashflowSettings(BaseModel):
    discount_rate: Optional[float] = Field(default=None, ge=0.0, description="Annual rate; engine default when omitted")
    granularity: Granularity = Granularity.ANNUAL


class LeaseTerms(BaseModel):
    """
    Full lease-terms object consumed by the engine.

    Money flows are modeled from the tenant's point of view: positive numbers
    are costs to the tenant, abatement credits are negative.
    """

    name: str = "Lease"
    rsf: float = Field(ge=0.0, description="Rentable square footage")
    lease_type: LeaseType = LeaseType.NNN
    base_year: Optional[int] = Field(default=None, ge=1900)

    key_dates: KeyDates
    lease_term: Optional[LeaseTermLength] = None

    rent_schedule: List[RentRow] = Field(default_factory=list)
    rent_escalation: RentEscalation = Field(default_factory=RentEscalation)
    concessions: Concessions = Field(default_factory=Concessions)
    operating: OperatingSettings = Field(default_factory=OperatingSettings)
    parking: Optional[ParkingSettings] = None
    transaction_costs: TransactionCosts = Field(default_factory=TransactionCosts)
    financing: Optional[FinancingSettings] = None
    termination_options: List[TerminationOption] = Field(default_factory=list)
    cashflow_settings: CashflowSettings = Field(default_factory=CashflowSettings)

    # Landlord-side investment used by cash-on-cash, yield on cost and equity multiple
    leasing_commission: float = Field(ge=0.0, default=0.0)
    other_landlord_costs: float = Field(ge=0.0, default=0.0)

    @field_validator("lease_type", mode="before")
    @classmethod
    def coerce_lease_type(cls, v: Any) -> LeaseType:
        return _coerce_lease_type(v)

    @property
    def ti_shortfall(self) -> float:
        """Tenant-funded build cost above the allowance (never negative)."""
        actual = self.concessions.ti_actual_build_cost_psf
        if actual is None:
            return 0.0
        return max(0.0, (actual - self.concessions.ti_allowance_psf) * self.rsf)
