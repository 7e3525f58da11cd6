"""
Operating expense and parking overlay on top of the rent schedule.

NNN tenants pay escalated operating expenses in full; FS tenants pay only the
increase over the base-year level (or a manual pass-through when enabled).
"""

from __future__ import annotations

from typing import List, Optional

from models import (
    AbatementAppliesTo,
    EscalationSchedule,
    LeaseTerms,
    LeaseTimeline,
    LeaseType,
    MonthlyRecord,
    OperatingSettings,
    ParkingSettings,
    RentSchedule,
)

from engine.escalation import escalation_factors
from engine.rent_schedule import summarize, with_running_effective_rent


def operating_psf_by_year(
    operating: OperatingSettings,
    lease_type: LeaseType,
    timeline: LeaseTimeline,
    escalation: EscalationSchedule,
    base_year: Optional[int] = None,
) -> List[float]:
    """Annual operating charge PSF owed by the tenant for each lease year."""
    factors = escalation_factors(escalation, timeline, cap=operating.escalation_cap)
    levels = [operating.est_op_ex_psf * f for f in factors]
    if lease_type == LeaseType.NNN:
        return levels

    if operating.use_manual_pass_through and operating.manual_pass_through_psf is not None:
        return [float(operating.manual_pass_through_psf)] * len(levels)

    offset = 0
    if base_year is not None:
        offset = max(0, base_year - timeline.commencement.year)
    stop = levels[min(offset, len(levels) - 1)]
    return [max(0.0, level - stop) for level in levels]


def parking_monthly(parking: Optional[ParkingSettings], lease_year: int) -> float:
    if parking is None or parking.stalls <= 0:
        return 0.0
    return parking.stalls * parking.monthly_rate_per_stall * (1.0 + parking.escalation_value) ** lease_year


def apply_operating_overlay(
    schedule: RentSchedule,
    terms: LeaseTerms,
    timeline: LeaseTimeline,
    operating_escalation: EscalationSchedule,
) -> RentSchedule:
    """
    Fill operating and parking on every record and re-credit base_plus_nnn
    free months for base + operating. Returns a new schedule.
    """
    opex_psf = operating_psf_by_year(
        terms.operating, terms.lease_type, timeline, operating_escalation, terms.base_year
    )
    records: List[MonthlyRecord] = []
    for rec in schedule.months:
        operating = terms.rsf * opex_psf[rec.lease_year] / 12.0
        update = {
            "operating": operating,
            "parking": parking_monthly(terms.parking, rec.lease_year),
        }
        if rec.abatement_applies_to == AbatementAppliesTo.BASE_PLUS_NNN:
            credit = -(rec.contractual_base_rent + operating)
            update["free_rent_amount"] = credit
            update["net_rent_due"] = rec.contractual_base_rent + credit
        records.append(rec.model_copy(update=update))

    months = with_running_effective_rent(records)
    return RentSchedule(months=months, summary=summarize(months))
