"""
Annual escalation factors per lease year.

Rent and operating expenses both compound once per lease anniversary, never
monthly. A custom schedule escalates each year at the rate of the period that
covered the previous year, so accumulated escalation carries into the next
period; a year that no period covers escalates by 0%.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from models import EscalationPeriod, EscalationSchedule, EscalationType, LeaseTimeline

from engine.dates import add_months_anchored


def term_year_starts(timeline: LeaseTimeline) -> List[date]:
    """Anniversary date opening each lease year of the term."""
    years = max(1, (timeline.term_months + 11) // 12)
    return [add_months_anchored(timeline.commencement, 12 * k) for k in range(years)]


def sorted_periods(periods: List[EscalationPeriod]) -> List[EscalationPeriod]:
    return sorted(periods, key=lambda p: (p.period_start, p.period_end))


def period_for(periods: List[EscalationPeriod], on: date) -> Optional[EscalationPeriod]:
    """First period (in the given order) whose [start, end] contains `on`."""
    for period in periods:
        if period.period_start <= on <= period.period_end:
            return period
    return None


def uncovered_years(schedule: EscalationSchedule, timeline: LeaseTimeline) -> List[int]:
    """Lease-year indexes whose anniversary no custom period covers."""
    if schedule.mode != EscalationType.CUSTOM:
        return []
    periods = sorted_periods(schedule.periods)
    return [k for k, start in enumerate(term_year_starts(timeline)) if period_for(periods, start) is None]


def _capped(rate: float, cap: Optional[float]) -> float:
    if cap is None:
        return rate
    return min(rate, cap)


def escalation_factors(
    schedule: EscalationSchedule,
    timeline: LeaseTimeline,
    cap: Optional[float] = None,
) -> List[float]:
    """
    Multiplier for each lease year relative to year 0.

    Fixed mode gives (1 + r)^k. Custom mode compounds year over year at the
    covering period's rate; `cap` limits the per-year rate in both modes.
    """
    starts = term_year_starts(timeline)
    if schedule.mode != EscalationType.CUSTOM or not schedule.periods:
        rate = _capped(schedule.fixed_rate, cap)
        return [(1.0 + rate) ** k for k in range(len(starts))]

    periods = sorted_periods(schedule.periods)
    rates = []
    for start in starts:
        period = period_for(periods, start)
        rates.append(_capped(period.escalation_percentage, cap) if period else 0.0)

    factors = [1.0]
    for k in range(1, len(starts)):
        factors.append(factors[-1] * (1.0 + rates[k - 1]))
    return factors
