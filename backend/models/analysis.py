"""Analysis results and API request/response bodies."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .lease_terms import AmortizationMethod
from .schedule import (
    AmortizationRow,
    AmortizationSummary,
    AnnualLine,
    LeaseMetrics,
    LeaseTimeline,
    MonthlyCashflowLine,
    NormalizationIssue,
    RentSchedule,
    TerminationComponents,
)


class TerminationSeries(BaseModel):
    """Pre-computed fee for every month of the term under one termination option."""

    model_config = ConfigDict(frozen=True)

    option_index: int = Field(ge=0)
    earliest_exercise_month: Optional[int] = None
    fees: List[TerminationComponents] = Field(default_factory=list)


class LeaseAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    timeline: LeaseTimeline
    rent_schedule: RentSchedule
    amortization: AmortizationSummary
    monthly_cashflow: List[MonthlyCashflowLine] = Field(default_factory=list)
    annual: List[AnnualLine] = Field(default_factory=list)
    termination: List[TerminationSeries] = Field(default_factory=list)
    metrics: LeaseMetrics
    issues: List[NormalizationIssue] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)


class ScenarioVariant(BaseModel):
    """Adjustment applied to a base lease to build one comparison variant."""

    name: str = "Rent +$2"
    rent_delta_psf: float = 0.0
    free_rent_delta_months: int = 0
    ti_delta_psf: float = 0.0
    term_extension_months: int = Field(default=0, ge=0)


class ScenarioDriver(BaseModel):
    key: str
    label: str
    delta: float


class ScenarioComparison(BaseModel):
    base_name: str
    variant_name: str
    base_npv: float
    variant_npv: float
    npv_delta: float
    base_total_cash_flow: float
    variant_total_cash_flow: float
    total_cash_flow_delta: float
    effective_rent_delta_psf: float = 0.0
    top_drivers: List[ScenarioDriver] = Field(default_factory=list)


class AnalyzeRequest(BaseModel):
    lease: Dict[str, Any]
    group_by: Literal["calendar_year", "lease_year"] = "calendar_year"


class TerminationFeeRequest(BaseModel):
    lease: Dict[str, Any]
    option_index: int = Field(default=0, ge=0)
    month_index: Optional[int] = None
    termination_date: Optional[date] = None
    include_series: bool = False


class TerminationFeeResponse(BaseModel):
    components: TerminationComponents
    earliest_exercise_month: Optional[int] = None
    series: List[TerminationComponents] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class AmortizationRequest(BaseModel):
    principal: float
    term_months: int
    method: AmortizationMethod = AmortizationMethod.PRESENT_VALUE
    annual_rate: Optional[float] = Field(default=None, ge=0.0)


class AmortizationResponse(BaseModel):
    method: AmortizationMethod
    annual_rate: float
    monthly_payment: float
    total_interest: float
    rows: List[AmortizationRow] = Field(default_factory=list)


class CompareScenariosRequest(BaseModel):
    lease: Dict[str, Any]
    variants: List[ScenarioVariant] = Field(default_factory=lambda: [ScenarioVariant(name="Rent +$2", rent_delta_psf=2.0)])
    top_n: int = Field(default=3, ge=1)


class CompareScenariosResponse(BaseModel):
    base: LeaseAnalysis
    variants: List[LeaseAnalysis] = Field(default_factory=list)
    comparisons: List[ScenarioComparison] = Field(default_factory=list)


class EquivalencyResult(BaseModel):
    """PV of each concession and its equivalents in the other currencies of a deal."""

    model_config = ConfigDict(frozen=True)

    discount_rate: float
    pv_rate_delta: float = 0.0
    pv_ti: float = 0.0
    pv_free_rent: float = 0.0
    pv_term_extension: float = 0.0
    ti_as_rate_psf: float = Field(default=0.0, description="Annual rate change worth the TI")
    rate_as_ti_psf: float = Field(default=0.0, description="TI PSF worth the rate change")
    free_rent_as_rate_psf: float = Field(default=0.0, description="Annual rate change worth the free months")
    rate_as_free_rent_months: int = Field(default=0, description="Whole free months closest to the rate change")
    term_extension_as_ti_psf: float = Field(default=0.0, description="Extra TI PSF a term extension pays for")


class EquivalencyRequest(BaseModel):
    lease: Dict[str, Any]
    rate_delta_psf: float = 0.0
    ti_psf: float = 0.0
    free_rent_months: float = 0.0
    term_extension_months: float = 0.0


class EquivalencyResponse(BaseModel):
    equivalency: EquivalencyResult
    warnings: List[str] = Field(default_factory=list)


class NormalizeRequest(BaseModel):
    lease: Dict[str, Any]
