"""
Monthly rent schedule: contractual base rent, escalation and free-rent credits.

Rows are resolved by a linear first-match scan on each month's start date, so
overlapping rows are allowed and the earliest-listed row wins.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from models import (
    AbatementAppliesTo,
    AbatementSchedule,
    EscalationSchedule,
    LeaseTimeline,
    MonthlyRecord,
    RentRow,
    RentSchedule,
    RentScheduleSummary,
)

from engine.dates import lease_year_index, month_bounds
from engine.escalation import escalation_factors


def find_rent_row(rows: List[RentRow], on: date) -> Optional[RentRow]:
    """
    Active rent row for a month starting on `on`.

    First row containing the date wins. A date no row covers carries forward
    the latest row that ended before it, or the first row when none has.
    """
    for row in rows:
        if row.period_start <= on <= row.period_end:
            return row
    if not rows:
        return None
    earlier = [row for row in rows if row.period_end < on]
    if earlier:
        return max(earlier, key=lambda r: r.period_end)
    return rows[0]


def assign_free_months(
    abatement: AbatementSchedule,
    month_ranges: List[tuple[date, date]],
) -> Dict[int, AbatementAppliesTo]:
    """
    Map month index -> applies_to for every abated month.

    Each window takes the earliest months overlapping it that no earlier
    window already claimed, up to its free_rent_months.
    """
    assigned: Dict[int, AbatementAppliesTo] = {}
    for period in abatement.periods:
        remaining = period.free_rent_months
        for i, (start, end) in enumerate(month_ranges):
            if remaining <= 0:
                break
            if i in assigned:
                continue
            if start <= period.period_end and end >= period.period_start:
                assigned[i] = period.abatement_applies_to
                remaining -= 1
    return assigned


def with_running_effective_rent(records: List[MonthlyRecord]) -> List[MonthlyRecord]:
    """Recompute effective_rent_running (cumulative net rent / months elapsed)."""
    out: List[MonthlyRecord] = []
    cumulative = 0.0
    for n, rec in enumerate(records, start=1):
        cumulative += rec.net_rent_due
        out.append(rec.model_copy(update={"effective_rent_running": cumulative / n}))
    return out


def summarize(records: List[MonthlyRecord]) -> RentScheduleSummary:
    return RentScheduleSummary(
        total_contract_rent=sum(r.contractual_base_rent for r in records),
        total_net_rent=sum(r.net_rent_due for r in records),
        free_rent_value=-sum(r.free_rent_amount for r in records),
    )


def build_rent_schedule(
    timeline: LeaseTimeline,
    rent_rows: List[RentRow],
    escalation: EscalationSchedule,
    abatement: AbatementSchedule,
    rsf: float,
) -> RentSchedule:
    """
    One MonthlyRecord per lease month (exactly timeline.term_months of them).

    Base rent for lease year k is row.rent_psf scaled by the escalation factor
    of year k relative to the year the row starts in, so a single row at $30
    with fixed 3% gives $30 * 1.03**k. Operating and parking are left at 0 for
    the overlay; free months credit base rent only at this stage.
    """
    c = timeline.commencement
    factors = escalation_factors(escalation, timeline)
    ranges = [month_bounds(c, i, timeline.expiration) for i in range(timeline.term_months)]
    free = assign_free_months(abatement, ranges)

    records: List[MonthlyRecord] = []
    for i, (start, end) in enumerate(ranges):
        k = i // 12
        row = find_rent_row(rent_rows, start)
        if row is None:
            rate = 0.0
        else:
            row_year = min(k, lease_year_index(c, row.period_start))
            anchor = factors[row_year]
            rate = row.rent_psf * factors[k] / anchor if anchor else 0.0
        base = rsf * rate / 12.0
        applies_to = free.get(i)
        credit = -base if applies_to is not None else 0.0
        records.append(
            MonthlyRecord(
                month_index=i,
                start_date=start,
                end_date=end,
                lease_year=k,
                annual_rate_psf=rate,
                contractual_base_rent=base,
                free_rent_amount=credit,
                net_rent_due=base + credit,
                abatement_applies_to=applies_to,
            )
        )
    months = with_running_effective_rent(records)
    return RentSchedule(months=months, summary=summarize(months))
