"""
Full lease analysis: normalizer -> rent schedule -> overlay -> amortization
-> cash flow / annual -> termination series -> metrics.
"""

from __future__ import annotations

from typing import List, Optional

from models import (
    AmortizationMethod,
    EquivalencyResult,
    LeaseAnalysis,
    LeaseTerms,
    LeaseType,
    TerminationSeries,
)

from engine.amortization import build_amortization_summary
from engine.cashflow import GroupBy, aggregate_annual, build_monthly_cashflow, upfront_costs
from engine.config import DEFAULT_CONFIG, EngineConfig
from engine.equivalency import equivalency_summary
from engine.errors import LeaseEngineError
from engine.metrics import compute_metrics
from engine.normalize import NormalizedLease, normalize_lease
from engine.overlay import apply_operating_overlay
from engine.rent_schedule import build_rent_schedule
from engine.termination import TerminationFeeCalculator, calculator_for_option


def discount_rate_for(terms: LeaseTerms, config: EngineConfig = DEFAULT_CONFIG) -> float:
    """Lease discount rate, else the configured default."""
    rate = terms.cashflow_settings.discount_rate
    return config.discount_rate if rate is None else rate


def _assumptions(terms: LeaseTerms, normalized: NormalizedLease, config: EngineConfig) -> List[str]:
    timeline = normalized.timeline
    rate = discount_rate_for(terms, config)
    lines = [
        f"Term: {timeline.term_months} months ({timeline.commencement} to {timeline.expiration}), from {timeline.term_source.replace('_', ' ')}.",
        "Rent and operating expenses escalate once per lease year, not monthly.",
        f"Discount rate {rate:.2%} ({terms.cashflow_settings.granularity.value}); the first period is discounted one full period.",
    ]
    if terms.lease_type == LeaseType.FS:
        lines.append("Full service: tenant pays operating increases above the base year.")
    else:
        lines.append("NNN: tenant pays operating expenses in full.")
    if timeline.abatement_months:
        lines.append(f"{timeline.abatement_months} free month(s); rent starts {timeline.rent_start}.")
    fin = terms.financing
    if fin is not None and (fin.amortize_ti or fin.amortize_free_rent or fin.amortize_transaction_costs):
        method = fin.amortization_method.value.replace("_", " ")
        if fin.amortization_method == AmortizationMethod.PRESENT_VALUE:
            rate_used = fin.interest_rate if fin.interest_rate is not None else config.amortization_rate
            lines.append(f"Financed costs amortize {method} at {rate_used:.2%} over the term.")
        else:
            lines.append(f"Financed costs amortize {method} over the term.")
    return lines


def _build_schedules(terms: LeaseTerms, config: EngineConfig):
    normalized = normalize_lease(terms, config)
    timeline = normalized.timeline
    base = build_rent_schedule(
        timeline,
        terms.rent_schedule,
        normalized.rent_escalation,
        normalized.abatement,
        terms.rsf,
    )
    schedule = apply_operating_overlay(base, terms, timeline, normalized.operating_escalation)
    amortization = build_amortization_summary(terms, schedule, timeline.term_months, config)
    return normalized, schedule, amortization


def analyze_lease(
    terms: LeaseTerms,
    config: EngineConfig = DEFAULT_CONFIG,
    group_by: GroupBy = "calendar_year",
) -> LeaseAnalysis:
    """Run every stage for one lease. Raises only LeaseEngineError subclasses for invalid structure."""
    normalized, schedule, amortization = _build_schedules(terms, config)
    timeline = normalized.timeline

    ti_upfront, tx_upfront = upfront_costs(terms)
    monthly = build_monthly_cashflow(schedule, amortization, ti_upfront, tx_upfront)
    annual = aggregate_annual(monthly, group_by)

    termination = []
    for idx, option in enumerate(terms.termination_options):
        calc = calculator_for_option(option, schedule.months, amortization, terms.rsf, timeline, config)
        termination.append(
            TerminationSeries(
                option_index=idx,
                earliest_exercise_month=calc.earliest_exercise_month(),
                fees=calc.fees_by_month(),
            )
        )

    metrics = compute_metrics(terms, timeline, schedule.months, annual, monthly, config)
    return LeaseAnalysis(
        name=terms.name,
        timeline=timeline,
        rent_schedule=schedule,
        amortization=amortization,
        monthly_cashflow=monthly,
        annual=annual,
        termination=termination,
        metrics=metrics,
        issues=normalized.issues,
        warnings=[issue.message for issue in normalized.issues if issue.severity != "info"],
        assumptions=_assumptions(terms, normalized, config),
    )


def termination_calculator(
    terms: LeaseTerms,
    option_index: Optional[int] = 0,
    config: EngineConfig = DEFAULT_CONFIG,
) -> TerminationFeeCalculator:
    """
    On-demand fee calculator for one termination option.

    With no options on the lease (or option_index=None) the calculator uses
    no penalty, so the fee is the unamortized balance alone.
    """
    normalized, schedule, amortization = _build_schedules(terms, config)
    timeline = normalized.timeline

    if option_index is None or not terms.termination_options:
        return TerminationFeeCalculator(records=list(schedule.months), amortization=list(amortization.rows), rsf=terms.rsf)
    if option_index >= len(terms.termination_options):
        raise LeaseEngineError(
            f"option_index {option_index} out of range; lease has {len(terms.termination_options)} termination option(s)"
        )
    option = terms.termination_options[option_index]
    return calculator_for_option(option, schedule.months, amortization, terms.rsf, timeline, config)


def lease_equivalency(
    terms: LeaseTerms,
    config: EngineConfig = DEFAULT_CONFIG,
    *,
    rate_delta_psf: float = 0.0,
    ti_psf: float = 0.0,
    free_rent_months: float = 0.0,
    term_extension_months: float = 0.0,
) -> EquivalencyResult:
    """Concession trade-offs priced against this lease's monthly rent at its discount rate."""
    _, schedule, _ = _build_schedules(terms, config)
    return equivalency_summary(
        schedule.months,
        terms.rsf,
        discount_rate_for(terms, config),
        rate_delta_psf=rate_delta_psf,
        ti_psf=ti_psf,
        free_rent_months=free_rent_months,
        term_extension_months=term_extension_months,
    )
