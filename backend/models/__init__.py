"""Pydantic models: lease inputs, engine outputs and API payloads."""

from .lease_terms import (
    AbatementAppliesTo,
    AbatementPeriod,
    AbatementType,
    AmortizationMethod,
    CashflowSettings,
    Concessions,
    EscalationPeriod,
    EscalationType,
    FinancingSettings,
    Granularity,
    KeyDates,
    LeaseTermLength,
    LeaseTerms,
    LeaseType,
    OperatingSettings,
    ParkingSettings,
    RentEscalation,
    RentRow,
    TerminationOption,
    TransactionCosts,
)
from .schedule import (
    AbatementSchedule,
    AmortizationPrincipal,
    AmortizationRow,
    AmortizationSummary,
    AnnualLine,
    EscalationSchedule,
    LeaseMetrics,
    LeaseTimeline,
    MonthlyCashflowLine,
    MonthlyRecord,
    NormalizationIssue,
    RentSchedule,
    RentScheduleSummary,
    TerminationComponents,
)
from .analysis import (
    AmortizationRequest,
    AmortizationResponse,
    AnalyzeRequest,
    CompareScenariosRequest,
    CompareScenariosResponse,
    EquivalencyRequest,
    EquivalencyResponse,
    EquivalencyResult,
    LeaseAnalysis,
    NormalizeRequest,
    ScenarioComparison,
    ScenarioDriver,
    ScenarioVariant,
    TerminationFeeRequest,
    TerminationFeeResponse,
    TerminationSeries,
)

__all__ = [
    "AbatementAppliesTo",
    "AbatementPeriod",
    "AbatementSchedule",
    "AbatementType",
    "AmortizationMethod",
    "AmortizationPrincipal",
    "AmortizationRequest",
    "AmortizationResponse",
    "AmortizationRow",
    "AmortizationSummary",
    "AnalyzeRequest",
    "AnnualLine",
    "CashflowSettings",
    "CompareScenariosRequest",
    "CompareScenariosResponse",
    "Concessions",
    "EquivalencyRequest",
    "EquivalencyResponse",
    "EquivalencyResult",
    "EscalationPeriod",
    "EscalationSchedule",
    "EscalationType",
    "FinancingSettings",
    "Granularity",
    "KeyDates",
    "LeaseAnalysis",
    "LeaseMetrics",
    "LeaseTermLength",
    "LeaseTerms",
    "LeaseTimeline",
    "LeaseType",
    "MonthlyCashflowLine",
    "MonthlyRecord",
    "NormalizationIssue",
    "NormalizeRequest",
    "OperatingSettings",
    "ParkingSettings",
    "RentEscalation",
    "RentRow",
    "RentSchedule",
    "RentScheduleSummary",
    "ScenarioComparison",
    "ScenarioDriver",
    "ScenarioVariant",
    "TerminationComponents",
    "TerminationFeeRequest",
    "TerminationFeeResponse",
    "TerminationOption",
    "TerminationSeries",
    "TransactionCosts",
]
