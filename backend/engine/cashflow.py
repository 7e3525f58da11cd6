"""
Monthly cash-flow series and annual aggregation.

Tenant point of view: charges are positive, the abatement credit is negative.
net_cash_flow = subtotal + abatement_credit + ti_shortfall + transaction_costs + amortized_costs
"""

from __future__ import annotations

from typing import Dict, List, Literal, Tuple

from models import (
    AmortizationSummary,
    AnnualLine,
    LeaseTerms,
    MonthlyCashflowLine,
    RentSchedule,
)

GroupBy = Literal["calendar_year", "lease_year"]

_SUMMED = (
    "base_rent",
    "operating",
    "parking",
    "abatement_credit",
    "ti_shortfall",
    "transaction_costs",
    "amortized_costs",
    "subtotal",
    "net_cash_flow",
)


def upfront_costs(terms: LeaseTerms) -> Tuple[float, float]:
    """(TI shortfall, transaction costs) paid at commencement; financed components are excluded."""
    fin = terms.financing
    ti = 0.0 if fin is not None and fin.amortize_ti else terms.ti_shortfall
    tx = 0.0 if fin is not None and fin.amortize_transaction_costs else terms.transaction_costs.resolved_total
    return ti, tx


def build_monthly_cashflow(
    rent_schedule: RentSchedule,
    amortization: AmortizationSummary,
    ti_shortfall: float = 0.0,
    transaction_costs: float = 0.0,
) -> List[MonthlyCashflowLine]:
    """One line per lease month; one-time costs land in month 0, amortization payments in their month."""
    payments = [row.payment for row in amortization.rows]
    lines: List[MonthlyCashflowLine] = []
    for rec in rent_schedule.months:
        i = rec.month_index
        ti = ti_shortfall if i == 0 else 0.0
        tx = transaction_costs if i == 0 else 0.0
        amortized = payments[i] if i < len(payments) else 0.0
        subtotal = rec.contractual_base_rent + rec.operating + rec.parking
        lines.append(
            MonthlyCashflowLine(
                month_index=i,
                start_date=rec.start_date,
                calendar_year=rec.start_date.year,
                lease_year=rec.lease_year,
                base_rent=rec.contractual_base_rent,
                abatement_credit=rec.free_rent_amount,
                operating=rec.operating,
                parking=rec.parking,
                ti_shortfall=ti,
                transaction_costs=tx,
                amortized_costs=amortized,
                subtotal=subtotal,
                net_cash_flow=subtotal + rec.free_rent_amount + ti + tx + amortized,
            )
        )
    return lines


def aggregate_annual(lines: List[MonthlyCashflowLine], group_by: GroupBy = "calendar_year") -> List[AnnualLine]:
    """Roll monthly lines into chronological annual lines."""
    order: List[int] = []
    totals: Dict[int, Dict[str, float]] = {}
    counts: Dict[int, int] = {}
    for line in lines:
        key = line.calendar_year if group_by == "calendar_year" else line.lease_year + 1
        if key not in totals:
            order.append(key)
            totals[key] = {name: 0.0 for name in _SUMMED}
            counts[key] = 0
        bucket = totals[key]
        for name in _SUMMED:
            bucket[name] += getattr(line, name)
        counts[key] += 1
    return [
        AnnualLine(year=key, year_index=idx, months=counts[key], **totals[key])
        for idx, key in enumerate(order)
    ]


def net_cash_flows(annual: List[AnnualLine]) -> List[float]:
    return [line.net_cash_flow for line in annual]
