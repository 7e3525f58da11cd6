"""
Scenario variants of one lease ("Base Case" vs "Rent +$2", extra free rent,
TI delta, term extension) and side-by-side comparison of their analyses.
"""
from __future__ import annotations

from datetime import timedelta
from typing import Callable, List, Optional, Tuple

from engine.analysis import analyze_lease
from engine.config import DEFAULT_CONFIG, EngineConfig
from engine.dates import add_months_anchored
from models import (
    AbatementType,
    CompareScenariosResponse,
    LeaseAnalysis,
    LeaseTerms,
    MonthlyCashflowLine,
    ScenarioComparison,
    ScenarioDriver,
    ScenarioVariant,
)

BASE_CASE = "Base Case"

# (key, label, extractor) per cost bucket
DRIVER_BUCKETS: List[Tuple[str, str, Callable[[MonthlyCashflowLine], float]]] = [
    ("base_rent", "Base Rent", lambda m: m.base_rent),
    ("abatement_credit", "Free Rent / Abatement", lambda m: m.abatement_credit),
    ("operating", "Operating", lambda m: m.operating),
    ("parking", "Parking", lambda m: m.parking),
    ("amortized_costs", "Amortized", lambda m: m.amortized_costs),
    ("one_time_costs", "One-time Costs", lambda m: m.ti_shortfall + m.transaction_costs),
]

_DRIVER_THRESHOLD = 0.01


def build_variant(terms: LeaseTerms, variant: ScenarioVariant) -> LeaseTerms:
    """Independent copy of `terms` with the variant's adjustments applied."""
    data = terms.model_dump()
    data["name"] = variant.name

    if variant.rent_delta_psf:
        for row in data["rent_schedule"]:
            row["rent_psf"] = max(0.0, row["rent_psf"] + variant.rent_delta_psf)

    if variant.free_rent_delta_months:
        conc = data["concessions"]
        if conc["abatement_type"] == AbatementType.CUSTOM and conc["abatement_periods"]:
            first = conc["abatement_periods"][0]
            first["free_rent_months"] = max(0, first["free_rent_months"] + variant.free_rent_delta_months)
        else:
            conc["abatement_free_rent_months"] = max(0, conc["abatement_free_rent_months"] + variant.free_rent_delta_months)

    if variant.ti_delta_psf:
        conc = data["concessions"]
        conc["ti_allowance_psf"] = max(0.0, conc["ti_allowance_psf"] + variant.ti_delta_psf)

    if variant.term_extension_months:
        lt = data.get("lease_term")
        if lt and (lt["years"] or lt["months"]):
            total = lt["years"] * 12 + lt["months"] + variant.term_extension_months
            lt["years"], lt["months"] = divmod(total, 12)
        kd = data["key_dates"]
        if kd.get("expiration") is not None:
            kd["expiration"] = add_months_anchored(kd["expiration"] + timedelta(days=1), variant.term_extension_months) - timedelta(days=1)

    return LeaseTerms.model_validate(data)


def compute_scenario_drivers(
    base_lines: List[MonthlyCashflowLine],
    variant_lines: List[MonthlyCashflowLine],
    top_n: int = 3,
) -> List[ScenarioDriver]:
    """Largest bucket-level changes in total cash flow, biggest first."""
    drivers: List[ScenarioDriver] = []
    for key, label, extract in DRIVER_BUCKETS:
        delta = sum(extract(m) for m in variant_lines) - sum(extract(m) for m in base_lines)
        if abs(delta) < _DRIVER_THRESHOLD:
            continue
        drivers.append(ScenarioDriver(key=key, label=label, delta=delta))
    drivers.sort(key=lambda d: abs(d.delta), reverse=True)
    return drivers[:top_n]


def compare_scenarios(base: LeaseAnalysis, variant: LeaseAnalysis, top_n: int = 3) -> ScenarioComparison:
    base_total = sum(m.net_cash_flow for m in base.monthly_cashflow)
    variant_total = sum(m.net_cash_flow for m in variant.monthly_cashflow)
    return ScenarioComparison(
        base_name=base.name,
        variant_name=variant.name,
        base_npv=base.metrics.npv,
        variant_npv=variant.metrics.npv,
        npv_delta=variant.metrics.npv - base.metrics.npv,
        base_total_cash_flow=base_total,
        variant_total_cash_flow=variant_total,
        total_cash_flow_delta=variant_total - base_total,
        effective_rent_delta_psf=variant.metrics.effective_rent_psf - base.metrics.effective_rent_psf,
        top_drivers=compute_scenario_drivers(base.monthly_cashflow, variant.monthly_cashflow, top_n),
    )


def generate_scenarios(
    terms: LeaseTerms,
    variants: List[ScenarioVariant],
    config: EngineConfig = DEFAULT_CONFIG,
    top_n: int = 3,
    base_name: Optional[str] = BASE_CASE,
) -> CompareScenariosResponse:
    """Analyze the base lease and every variant, then compare each variant with the base."""
    base_terms = terms.model_copy(update={"name": base_name}) if base_name else terms
    base = analyze_lease(base_terms, config)
    analyses = [analyze_lease(build_variant(base_terms, v), config) for v in variants]
    return CompareScenariosResponse(
        base=base,
        variants=analyses,
        comparisons=[compare_scenarios(base, a, top_n) for a in analyses],
    )
