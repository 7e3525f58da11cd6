"""
Negotiation equivalency: convert between rent, TI, free rent and term.

Cash flows are billed in advance on each month's start date and discounted
with npv_monthly. TI is paid at commencement, so its PV is nominal. Free rent
is taken from the earliest rent-paying months; a term extension repeats the
last month's contractual rent.
"""

from __future__ import annotations

import math
from typing import List, Sequence

from models import EquivalencyResult, MonthlyRecord

from engine.dates import add_months_anchored
from engine.metrics import npv_monthly, safe_div

MAX_FREE_RENT_MONTHS = 18


def _rent_paying(records: Sequence[MonthlyRecord]) -> List[MonthlyRecord]:
    return [r for r in records if r.net_rent_due > 0]


def pv_of_rate_delta(rate_delta_psf: float, rsf: float, records: Sequence[MonthlyRecord], discount_rate: float) -> float:
    """PV of changing the annual rate by `rate_delta_psf` over every rent-paying month."""
    if not rate_delta_psf or rsf <= 0:
        return 0.0
    paying = _rent_paying(records)
    if not paying:
        return 0.0
    monthly = rate_delta_psf * rsf / 12.0
    return npv_monthly([(r.start_date, monthly) for r in paying], discount_rate)


def pv_of_ti(ti_psf: float, rsf: float) -> float:
    if not ti_psf or rsf <= 0:
        return 0.0
    return ti_psf * rsf


def pv_of_free_rent_months(free_months: float, records: Sequence[MonthlyRecord], rsf: float, discount_rate: float) -> float:
    """PV of the net rent forgiven by `free_months` (fractional months allowed; negative gives back rent)."""
    if not free_months or rsf <= 0:
        return 0.0
    paying = _rent_paying(records)
    if not paying:
        return 0.0
    sign = 1.0 if free_months > 0 else -1.0
    target = min(abs(free_months), len(paying))
    full = int(math.floor(target))
    remainder = target - full
    count = full + (1 if remainder > 0 else 0)
    flows = []
    for i, rec in enumerate(paying[:count]):
        share = remainder if i == full and remainder > 0 else 1.0
        flows.append((rec.start_date, rec.net_rent_due * share * sign))
    return npv_monthly(flows, discount_rate)


def pv_of_term_extension(extension_months: float, records: Sequence[MonthlyRecord], rsf: float, discount_rate: float) -> float:
    """PV of extending the term, repeating the last month's rent after expiration."""
    if not extension_months or rsf <= 0 or not records:
        return 0.0
    last = records[-1]
    rent = last.contractual_base_rent or last.net_rent_due
    if not rent:
        return 0.0
    sign = 1.0 if extension_months > 0 else -1.0
    total = abs(extension_months)
    full = int(math.floor(total))
    remainder = total - full
    flows = [(add_months_anchored(last.start_date, i), rent * sign) for i in range(1, full + 1)]
    if remainder > 0:
        flows.append((add_months_anchored(last.start_date, full + 1), rent * remainder * sign))
    if not flows:
        return 0.0
    return npv_monthly(flows, discount_rate, anchor=records[0].start_date)


def ti_to_rate_equivalent(ti_psf: float, rsf: float, records: Sequence[MonthlyRecord], discount_rate: float) -> float:
    """Annual rate PSF change worth the same PV as `ti_psf` of TI."""
    per_dollar = pv_of_rate_delta(1.0, rsf, records, discount_rate)
    return safe_div(pv_of_ti(ti_psf, rsf), per_dollar)


def rate_to_ti_equivalent(rate_delta_psf: float, rsf: float, records: Sequence[MonthlyRecord], discount_rate: float) -> float:
    if rsf <= 0:
        return 0.0
    return safe_div(pv_of_rate_delta(rate_delta_psf, rsf, records, discount_rate), rsf)


def free_rent_to_rate_equivalent(free_months: float, rsf: float, records: Sequence[MonthlyRecord], discount_rate: float) -> float:
    per_dollar = pv_of_rate_delta(1.0, rsf, records, discount_rate)
    return safe_div(pv_of_free_rent_months(free_months, records, rsf, discount_rate), per_dollar)


def rate_to_free_rent_months(
    rate_delta_psf: float,
    rsf: float,
    records: Sequence[MonthlyRecord],
    discount_rate: float,
    max_months: int = MAX_FREE_RENT_MONTHS,
) -> int:
    """Whole free months whose PV best matches a rate change, capped at `max_months`."""
    target = pv_of_rate_delta(rate_delta_psf, rsf, records, discount_rate)
    if not target:
        return 0
    sign = 1 if target > 0 else -1
    ceiling = min(max_months, len(_rent_paying(records)))
    best, best_diff = 0, math.inf
    for months in range(ceiling + 1):
        pv = abs(pv_of_free_rent_months(months, records, rsf, discount_rate))
        diff = abs(abs(target) - pv)
        if diff < best_diff:
            best, best_diff = months, diff
    return best * sign


def term_extension_to_ti_psf(extension_months: float, rsf: float, records: Sequence[MonthlyRecord], discount_rate: float) -> float:
    """Additional TI PSF a landlord could fund from the PV of a term extension."""
    if rsf <= 0:
        return 0.0
    return safe_div(pv_of_term_extension(extension_months, records, rsf, discount_rate), rsf)


def equivalency_summary(
    records: Sequence[MonthlyRecord],
    rsf: float,
    discount_rate: float,
    *,
    rate_delta_psf: float = 0.0,
    ti_psf: float = 0.0,
    free_rent_months: float = 0.0,
    term_extension_months: float = 0.0,
) -> EquivalencyResult:
    """Every conversion for one set of proposed concession changes."""
    return EquivalencyResult(
        discount_rate=discount_rate,
        pv_rate_delta=pv_of_rate_delta(rate_delta_psf, rsf, records, discount_rate),
        pv_ti=pv_of_ti(ti_psf, rsf),
        pv_free_rent=pv_of_free_rent_months(free_rent_months, records, rsf, discount_rate),
        pv_term_extension=pv_of_term_extension(term_extension_months, records, rsf, discount_rate),
        ti_as_rate_psf=ti_to_rate_equivalent(ti_psf, rsf, records, discount_rate),
        rate_as_ti_psf=rate_to_ti_equivalent(rate_delta_psf, rsf, records, discount_rate),
        free_rent_as_rate_psf=free_rent_to_rate_equivalent(free_rent_months, rsf, records, discount_rate),
        rate_as_free_rent_months=rate_to_free_rent_months(rate_delta_psf, rsf, records, discount_rate),
        term_extension_as_ti_psf=term_extension_to_ti_psf(term_extension_months, rsf, records, discount_rate),
    )
