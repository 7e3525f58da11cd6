"""
Date/period normalizer: LeaseTerms -> canonical timeline, escalation and
abatement schedules, plus report-only issues.

Month counts always come from calendar arithmetic on the commencement anchor
(never from day counts divided by 30.44). When both a lease term and an
expiration are given, the lease term is authoritative and the expiration is
only checked for consistency.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from models import (
    AbatementPeriod,
    AbatementSchedule,
    AbatementType,
    EscalationSchedule,
    EscalationType,
    LeaseTermLength,
    LeaseTerms,
    LeaseTimeline,
    NormalizationIssue,
)

from engine.config import DEFAULT_CONFIG, EngineConfig
from engine.dates import (
    add_months_anchored,
    expiration_for_term,
    month_index_for_date,
    term_months_from_dates,
    years_between,
)
from engine.errors import InvalidAbatementError, InvalidTermError
from engine.escalation import uncovered_years


@dataclass(frozen=True)
class NormalizedLease:
    timeline: LeaseTimeline
    abatement: AbatementSchedule
    rent_escalation: EscalationSchedule
    operating_escalation: EscalationSchedule
    issues: List[NormalizationIssue] = field(default_factory=list)


def window_month_capacity(commencement: date, period: AbatementPeriod, term_months: Optional[int] = None) -> int:
    """Number of lease months (anchored on commencement) overlapping the window, within term_months when given."""
    if period.period_end < commencement or period.period_end < period.period_start:
        return 0
    first = month_index_for_date(commencement, max(period.period_start, commencement))
    last = month_index_for_date(commencement, period.period_end)
    if term_months is not None:
        last = min(last, term_months - 1)
    return max(0, last - first + 1)


def normalize_abatement(terms: LeaseTerms) -> AbatementSchedule:
    """
    Canonical abatement schedule.

    Raises InvalidAbatementError on negative months, or when a custom window
    grants more free months than lease months it overlaps.
    """
    c = terms.concessions
    if c.abatement_type == AbatementType.CUSTOM:
        commencement = terms.key_dates.commencement
        for period in c.abatement_periods:
            if period.free_rent_months < 0:
                raise InvalidAbatementError(
                    f"Abatement period starting {period.period_start} has negative free months ({period.free_rent_months})"
                )
            capacity = window_month_capacity(commencement, period)
            if period.free_rent_months > capacity:
                raise InvalidAbatementError(
                    f"Abatement period {period.period_start}..{period.period_end} grants {period.free_rent_months} "
                    f"free months but spans only {capacity} lease month(s)"
                )
        periods = sorted(c.abatement_periods, key=lambda p: (p.period_start, p.period_end))
        return AbatementSchedule(mode=AbatementType.CUSTOM, periods=[p for p in periods if p.free_rent_months > 0])

    months = c.abatement_free_rent_months
    if months < 0:
        raise InvalidAbatementError(f"abatement_free_rent_months must be >= 0, got {months}")
    if months == 0:
        return AbatementSchedule(mode=AbatementType.AT_COMMENCEMENT)
    start = terms.key_dates.commencement
    window = AbatementPeriod(
        period_start=start,
        period_end=add_months_anchored(start, months) - timedelta(days=1),
        free_rent_months=months,
        abatement_applies_to=c.abatement_applies_to,
    )
    return AbatementSchedule(mode=AbatementType.AT_COMMENCEMENT, periods=[window])


def build_timeline(
    commencement: date,
    *,
    lease_term: Optional[LeaseTermLength] = None,
    expiration: Optional[date] = None,
    abatement: Optional[AbatementSchedule] = None,
    rent_start: Optional[date] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> LeaseTimeline:
    """
    Resolve commencement, expiration and term months.

    With a lease term, term = years*12 + months (+ free months when
    include_abatement_in_term) and the expiration is derived from it.
    Without one, the term is counted from the explicit expiration.
    """
    abatement = abatement or AbatementSchedule()
    free_months = abatement.total_free_months

    if lease_term is not None and (lease_term.years or lease_term.months):
        term_months = lease_term.years * 12 + lease_term.months
        if lease_term.include_abatement_in_term:
            term_months += free_months
        include_abatement = lease_term.include_abatement_in_term
        source = "lease_term"
        resolved_expiration = expiration_for_term(commencement, term_months)
    elif expiration is not None:
        counted = term_months_from_dates(commencement, expiration)
        if counted is None:
            raise InvalidTermError(f"Expiration {expiration} is not after commencement {commencement}")
        term_months = counted
        include_abatement = False
        source = "expiration"
        resolved_expiration = expiration
    else:
        raise InvalidTermError("Lease needs a lease term or an expiration date")

    if term_months <= 0:
        raise InvalidTermError(f"Term must be at least one month, got {term_months}")
    if free_months > term_months:
        raise InvalidAbatementError(f"{free_months} free months exceed the {term_months}-month term")
    if abatement.mode == AbatementType.CUSTOM:
        for period in abatement.periods:
            capacity = window_month_capacity(commencement, period, term_months)
            if period.free_rent_months > capacity:
                raise InvalidAbatementError(
                    f"Abatement period {period.period_start}..{period.period_end} grants {period.free_rent_months} "
                    f"free months but only {capacity} fall inside the {term_months}-month term"
                )

    if rent_start is None:
        if abatement.mode == AbatementType.AT_COMMENCEMENT and free_months > 0:
            rent_start = add_months_anchored(commencement, free_months)
        else:
            rent_start = commencement

    return LeaseTimeline(
        commencement=commencement,
        expiration=resolved_expiration,
        term_months=term_months,
        abatement_months=free_months,
        rent_start=rent_start,
        term_years=round(years_between(commencement, resolved_expiration + timedelta(days=1), config.days_per_year), 4),
        include_abatement_in_term=include_abatement,
        term_source=source,
    )


def normalize_timeline(terms: LeaseTerms, abatement: AbatementSchedule, config: EngineConfig = DEFAULT_CONFIG) -> LeaseTimeline:
    kd = terms.key_dates
    return build_timeline(
        kd.commencement,
        lease_term=terms.lease_term,
        expiration=kd.expiration,
        abatement=abatement,
        rent_start=kd.rent_start,
        config=config,
    )


def normalize_rent_escalation(terms: LeaseTerms, timeline: LeaseTimeline) -> EscalationSchedule:
    esc = terms.rent_escalation
    if esc.escalation_type == EscalationType.CUSTOM and esc.escalation_periods:
        return EscalationSchedule(mode=EscalationType.CUSTOM, periods=list(esc.escalation_periods))
    rate = esc.fixed_escalation_percentage
    if rate is None and terms.rent_schedule:
        rate = terms.rent_schedule[0].escalation_percentage
    return EscalationSchedule(mode=EscalationType.FIXED, fixed_rate=float(rate or 0.0))


def normalize_operating_escalation(terms: LeaseTerms, timeline: LeaseTimeline) -> EscalationSchedule:
    op = terms.operating
    if op.escalation_type == EscalationType.CUSTOM and op.escalation_periods:
        return EscalationSchedule(mode=EscalationType.CUSTOM, periods=list(op.escalation_periods))
    return EscalationSchedule(mode=EscalationType.FIXED, fixed_rate=float(op.escalation_value or 0.0))


def check_term_consistency(
    commencement: date,
    term_months: int,
    expiration: date,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[NormalizationIssue]:
    """Warn when an explicit expiration disagrees with the derived one by more than the tolerance."""
    derived = expiration_for_term(commencement, term_months)
    gap = abs((expiration - derived).days)
    if gap <= config.term_tolerance_days:
        return None
    return NormalizationIssue(
        severity="warn",
        code="term_expiration_mismatch",
        message=(
            f"Lease term of {term_months} months ends {derived}, but the stated expiration is {expiration} "
            f"({gap} days, ~{gap / config.days_per_month:.1f} months apart); the lease term was used."
        ),
        field="key_dates.expiration",
    )


def _period_order_issues(periods, label: str, field_name: str) -> List[NormalizationIssue]:
    issues: List[NormalizationIssue] = []
    starts = [p.period_start for p in periods]
    if starts != sorted(starts):
        issues.append(NormalizationIssue(code=f"{label}_unsorted", message=f"{label.replace('_', ' ').capitalize()} periods are not in date order.", field=field_name))
    ordered = sorted(periods, key=lambda p: (p.period_start, p.period_end))
    for prev, cur in zip(ordered, ordered[1:]):
        if cur.period_start <= prev.period_end:
            issues.append(
                NormalizationIssue(
                    code=f"{label}_overlap",
                    message=f"Periods {prev.period_start}..{prev.period_end} and {cur.period_start}..{cur.period_end} overlap; the first match wins.",
                    field=field_name,
                )
            )
    return issues


def collect_issues(
    terms: LeaseTerms,
    timeline: LeaseTimeline,
    rent_escalation: EscalationSchedule,
    operating_escalation: EscalationSchedule,
    config: EngineConfig = DEFAULT_CONFIG,
) -> List[NormalizationIssue]:
    """Report-only findings; nothing here blocks computation."""
    kd = terms.key_dates
    issues: List[NormalizationIssue] = []

    if kd.expiration is not None and kd.expiration <= kd.commencement:
        issues.append(NormalizationIssue(code="expiration_before_commencement", message=f"Expiration {kd.expiration} is not after commencement {kd.commencement}.", field="key_dates.expiration"))
    if timeline.term_source == "lease_term" and kd.expiration is not None:
        mismatch = check_term_consistency(kd.commencement, timeline.term_months, kd.expiration, config)
        if mismatch is not None:
            issues.append(mismatch)
    if timeline.rent_start < timeline.commencement:
        issues.append(NormalizationIssue(code="rent_start_before_commencement", message=f"Rent start {timeline.rent_start} precedes commencement {timeline.commencement}.", field="key_dates.rent_start"))

    if not terms.rent_schedule:
        issues.append(NormalizationIssue(code="rent_schedule_empty", message="No rent rows; base rent is zero for every month.", field="rent_schedule"))
    else:
        issues.extend(_period_order_issues(terms.rent_schedule, "rent_schedule", "rent_schedule"))
        last_end = max(r.period_end for r in terms.rent_schedule)
        if last_end < timeline.expiration:
            issues.append(NormalizationIssue(severity="info", code="rent_schedule_short", message=f"Rent rows end {last_end}, before expiration {timeline.expiration}; the last row carries forward.", field="rent_schedule"))

    for schedule, label, field_name in (
        (rent_escalation, "rent_escalation", "rent_escalation.escalation_periods"),
        (operating_escalation, "operating_escalation", "operating.escalation_periods"),
    ):
        if schedule.mode != EscalationType.CUSTOM:
            continue
        issues.extend(_period_order_issues(schedule.periods, label, field_name))
        gaps = uncovered_years(schedule, timeline)
        if gaps:
            years = ", ".join(str(k + 1) for k in gaps)
            issues.append(NormalizationIssue(severity="info", code=f"{label}_gap", message=f"No escalation period covers lease year(s) {years}; those years escalate by 0%.", field=field_name))

    if terms.rsf <= 0:
        issues.append(NormalizationIssue(code="zero_rsf", message="RSF is zero; per-square-foot metrics report 0.", field="rsf"))
    return issues


def normalize_lease(terms: LeaseTerms, config: EngineConfig = DEFAULT_CONFIG) -> NormalizedLease:
    abatement = normalize_abatement(terms)
    timeline = normalize_timeline(terms, abatement, config)
    rent_escalation = normalize_rent_escalation(terms, timeline)
    operating_escalation = normalize_operating_escalation(terms, timeline)
    issues = collect_issues(terms, timeline, rent_escalation, operating_escalation, config)
    return NormalizedLease(
        timeline=timeline,
        abatement=abatement,
        rent_escalation=rent_escalation,
        operating_escalation=operating_escalation,
        issues=issues,
    )
