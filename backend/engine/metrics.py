"""
Financial metrics: NPV, IRR, effective rent, payback and landlord yield ratios.

NPV discounts the first cash flow by one full period:
    NPV = sum(cf[i] / (1 + r) ** (i + 1))
IRR tries Newton-Raphson first and falls back to bisection over the same
bounds. Every public helper except `irr` returns 0 (or None for IRR/payback)
instead of raising on degenerate input.
"""

from __future__ import annotations

import math
from datetime import date
from typing import List, Optional, Sequence, Tuple

from models import (
    AnnualLine,
    Granularity,
    LeaseMetrics,
    LeaseTerms,
    LeaseTimeline,
    MonthlyCashflowLine,
    MonthlyRecord,
)

from engine.config import DEFAULT_CONFIG, EngineConfig
from engine.errors import IRRNotFoundError


def finite_or(value: Optional[float], default: float = 0.0) -> float:
    if value is None or not math.isfinite(value):
        return default
    return value


def safe_div(numerator: float, denominator: float) -> float:
    if not denominator or not math.isfinite(denominator):
        return 0.0
    return finite_or(numerator / denominator)


def _npv_raw(cash_flows: Sequence[float], rate: float) -> float:
    base = 1.0 + rate
    return sum(cf / base ** (i + 1) for i, cf in enumerate(cash_flows))


def npv(cash_flows: Sequence[float], rate: float) -> float:
    """Net present value with period index starting at 1."""
    if 1.0 + rate <= 0:
        return 0.0
    try:
        return finite_or(_npv_raw(cash_flows, rate))
    except (OverflowError, ZeroDivisionError):
        return 0.0


def _npv_derivative(cash_flows: Sequence[float], rate: float) -> float:
    base = 1.0 + rate
    return sum(-(i + 1) * cf / base ** (i + 2) for i, cf in enumerate(cash_flows))


def _scaled_npv(cash_flows: Sequence[float], rate: float) -> float:
    """NPV times (1+r)^n: same sign as NPV, but bounded for rates near -1."""
    base = 1.0 + rate
    n = len(cash_flows)
    return sum(cf * base ** (n - 1 - i) for i, cf in enumerate(cash_flows))


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


def monthly_rate_from_annual(annual_rate: float) -> float:
    """Effective monthly rate (1 + r)^(1/12) - 1."""
    if annual_rate <= -1:
        return 0.0
    return (1.0 + annual_rate) ** (1.0 / 12.0) - 1.0


def npv_monthly(
    cash_flows: Sequence[Tuple[date, float]],
    annual_rate: float,
    anchor: Optional[date] = None,
) -> float:
    """
    NPV of dated flows at the effective monthly rate.

    Each flow is discounted by the whole calendar months between the anchor
    (default: earliest date) and its own date.
    """
    if not cash_flows:
        return 0.0
    start = anchor or min(d for d, _ in cash_flows)
    if annual_rate == 0:
        return finite_or(sum(amount for _, amount in cash_flows))
    base = 1.0 + monthly_rate_from_annual(annual_rate)
    total = 0.0
    try:
        for on, amount in cash_flows:
            period = (on.year - start.year) * 12 + (on.month - start.month)
            total += amount / base ** period
    except (OverflowError, ZeroDivisionError):
        return 0.0
    return finite_or(total)


def newton_irr(
    cash_flows: Sequence[float],
    guess: float = 0.1,
    max_iterations: int = 100,
    tolerance: float = 1e-6,
    lower: float = -0.99,
    upper: float = 0.99,
) -> Optional[float]:
    """Newton-Raphson on NPV(r) = 0; None when it stalls, diverges or leaves [lower, upper]."""
    rate = guess
    for _ in range(max_iterations):
        try:
            value = _npv_raw(cash_flows, rate)
            slope = _npv_derivative(cash_flows, rate)
        except (OverflowError, ZeroDivisionError):
            return None
        if not math.isfinite(value) or not math.isfinite(slope) or abs(slope) < 1e-12:
            return None
        nxt = rate - value / slope
        if not math.isfinite(nxt) or nxt < lower or nxt > upper:
            return None
        if abs(nxt - rate) < tolerance:
            return nxt
        rate = nxt
    return None


def bisection_irr(
    cash_flows: Sequence[float],
    lower: float = -0.99,
    upper: float = 0.99,
    max_iterations: int = 200,
    tolerance: float = 1e-6,
) -> Optional[float]:
    """Bisection on the sign of NPV; None when the bounds do not bracket a root."""
    try:
        lo_sign = _sign(_scaled_npv(cash_flows, lower))
        hi_sign = _sign(_scaled_npv(cash_flows, upper))
    except OverflowError:
        return None
    if lo_sign == 0:
        return lower
    if hi_sign == 0:
        return upper
    if lo_sign == hi_sign:
        return None
    lo, hi = lower, upper
    mid = (lo + hi) / 2.0
    for _ in range(max_iterations):
        mid = (lo + hi) / 2.0
        mid_sign = _sign(_scaled_npv(cash_flows, mid))
        if mid_sign == 0 or (hi - lo) / 2.0 < tolerance:
            return mid
        if mid_sign == lo_sign:
            lo = mid
        else:
            hi = mid
    return mid


def irr(cash_flows: Sequence[float], config: EngineConfig = DEFAULT_CONFIG) -> float:
    """Internal rate of return per period; raises IRRNotFoundError when no root is found."""
    flows = list(cash_flows)
    if not any(cf > 0 for cf in flows) or not any(cf < 0 for cf in flows):
        raise IRRNotFoundError("IRR needs at least one positive and one negative cash flow")
    rate = newton_irr(
        flows,
        guess=config.irr_guess,
        max_iterations=config.irr_max_iterations,
        tolerance=config.irr_tolerance,
        lower=config.irr_lower_bound,
        upper=config.irr_upper_bound,
    )
    if rate is None:
        rate = bisection_irr(
            flows,
            lower=config.irr_lower_bound,
            upper=config.irr_upper_bound,
            max_iterations=config.bisection_max_iterations,
            tolerance=config.irr_tolerance,
        )
    if rate is None:
        raise IRRNotFoundError(
            f"No IRR in [{config.irr_lower_bound}, {config.irr_upper_bound}] for {len(flows)} cash flows"
        )
    return rate


def effective_rent_psf(total_net_cash_flow: float, rsf: float, term_years: float) -> float:
    """Total net cash flow / (RSF x term years); 0 when RSF or term is 0."""
    return safe_div(total_net_cash_flow, rsf * term_years)


def blended_rate(records: Sequence[MonthlyRecord]) -> float:
    """Average contractual annual rate PSF across the term's months."""
    if not records:
        return 0.0
    return finite_or(sum(r.annual_rate_psf for r in records) / len(records))


def free_rent_value(records: Sequence[MonthlyRecord]) -> float:
    return -sum(r.free_rent_amount for r in records)


def payback_period(cash_flows: Sequence[float], initial_investment: float = 0.0) -> Optional[float]:
    """
    Years until cumulative cash flow turns non-negative, interpolated within the crossing year.

    Cumulative starts at -initial_investment. Reaching exactly 0 at the end
    of year i pays back at the start of year i + 1. A series that is never
    negative pays back at 0; one that never recovers returns None.
    """
    if not cash_flows:
        return None
    cumulative = -initial_investment
    went_negative = cumulative < 0
    for i, cf in enumerate(cash_flows):
        previous = cumulative
        cumulative += cf
        if previous < 0 and cumulative >= 0:
            return finite_or(i + safe_div(-previous, cf), None)
        if cumulative < 0:
            went_negative = True
    if not went_negative:
        return 0.0
    return None


def landlord_cost(terms: LeaseTerms) -> float:
    """TI allowance + leasing commission + other landlord costs."""
    return terms.concessions.ti_allowance_psf * terms.rsf + terms.leasing_commission + terms.other_landlord_costs


def landlord_cash_flows(cash_flows: Sequence[float], cost: float) -> List[float]:
    return [-cost] + list(cash_flows)


def cash_on_cash_return(cash_flows: Sequence[float], cost: float) -> float:
    if not cash_flows:
        return 0.0
    return safe_div(cash_flows[0], cost)


def yield_on_cost(cash_flows: Sequence[float], cost: float) -> float:
    if not cash_flows:
        return 0.0
    return safe_div(sum(cash_flows) / len(cash_flows), cost)


def equity_multiple(cash_flows: Sequence[float], cost: float) -> float:
    return safe_div(sum(cash_flows), cost)


def _safe_irr(cash_flows: Sequence[float], config: EngineConfig) -> Optional[float]:
    try:
        return irr(cash_flows, config)
    except IRRNotFoundError:
        return None


def compute_metrics(
    terms: LeaseTerms,
    timeline: LeaseTimeline,
    records: Sequence[MonthlyRecord],
    annual: Sequence[AnnualLine],
    monthly: Sequence[MonthlyCashflowLine],
    config: EngineConfig = DEFAULT_CONFIG,
) -> LeaseMetrics:
    """
    Full metrics set for one analysis. Never raises.

    Annual granularity discounts annual net cash flows at the annual rate;
    monthly granularity discounts monthly flows at the effective monthly rate
    and reports an annualized IRR.
    """
    settings = terms.cashflow_settings
    rate = config.discount_rate if settings.discount_rate is None else settings.discount_rate
    annual_flows = [line.net_cash_flow for line in annual]
    total = sum(annual_flows)
    cost = landlord_cost(terms)

    if settings.granularity == Granularity.MONTHLY:
        monthly_flows = [line.net_cash_flow for line in monthly]
        value = npv(monthly_flows, monthly_rate_from_annual(rate))
        monthly_irr = _safe_irr(landlord_cash_flows(monthly_flows, cost), config)
        rate_of_return = None if monthly_irr is None else finite_or((1.0 + monthly_irr) ** 12 - 1.0, None)
    else:
        value = npv(annual_flows, rate)
        rate_of_return = _safe_irr(landlord_cash_flows(annual_flows, cost), config)

    return LeaseMetrics(
        npv=finite_or(value),
        irr=rate_of_return,
        effective_rent_psf=effective_rent_psf(total, terms.rsf, timeline.term_months / 12.0),
        blended_rate_psf=blended_rate(records),
        payback_years=payback_period(annual_flows, cost),
        cash_on_cash_return=cash_on_cash_return(annual_flows, cost),
        yield_on_cost=yield_on_cost(annual_flows, cost),
        equity_multiple=equity_multiple(annual_flows, cost),
        landlord_cost=finite_or(cost),
        free_rent_value=finite_or(free_rent_value(records)),
        total_net_cash_flow=finite_or(total),
    )
