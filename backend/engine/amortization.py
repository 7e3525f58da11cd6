"""
Deal-cost amortization: straight-line or present-value (level payment).

The principal is the sum of the financing-eligible components (TI shortfall,
free-rent value, transaction costs) that the financing flags select.
"""

from __future__ import annotations

from typing import List, Optional

from models import (
    AmortizationMethod,
    AmortizationPrincipal,
    AmortizationRow,
    AmortizationSummary,
    LeaseTerms,
    RentSchedule,
)

from engine.config import DEFAULT_CONFIG, EngineConfig
from engine.errors import InvalidPrincipalError, InvalidTermError


def select_principal(terms: LeaseTerms, rent_schedule: RentSchedule) -> AmortizationPrincipal:
    fin = terms.financing
    if fin is None:
        return AmortizationPrincipal()
    return AmortizationPrincipal(
        ti_shortfall=terms.ti_shortfall if fin.amortize_ti else 0.0,
        free_rent_value=rent_schedule.summary.free_rent_value if fin.amortize_free_rent else 0.0,
        transaction_costs=terms.transaction_costs.resolved_total if fin.amortize_transaction_costs else 0.0,
    )


def level_payment(principal: float, monthly_rate: float, term_months: int) -> float:
    """PMT: principal * r / (1 - (1+r)^-n); principal / n when r is 0."""
    if term_months <= 0:
        return 0.0
    if monthly_rate == 0:
        return principal / term_months
    return principal * monthly_rate / (1.0 - (1.0 + monthly_rate) ** (-term_months))


def _straight_line_rows(principal: float, term_months: int) -> List[AmortizationRow]:
    step = principal / term_months
    rows: List[AmortizationRow] = []
    balance = principal
    for i in range(term_months):
        if i == term_months - 1:
            step = balance
        ending = 0.0 if i == term_months - 1 else balance - step
        rows.append(
            AmortizationRow(
                month_index=i,
                beginning_balance=balance,
                payment=step,
                interest=0.0,
                principal=step,
                ending_balance=ending,
            )
        )
        balance = ending
    return rows


def _present_value_rows(principal: float, term_months: int, monthly_rate: float) -> List[AmortizationRow]:
    payment = level_payment(principal, monthly_rate, term_months)
    rows: List[AmortizationRow] = []
    balance = principal
    for i in range(term_months):
        interest = balance * monthly_rate
        if i == term_months - 1:
            # Snap the last row so the schedule closes at exactly 0
            reduction = balance
            row_payment = balance + interest
        else:
            reduction = min(balance, payment - interest)
            row_payment = payment
        ending = 0.0 if i == term_months - 1 else balance - reduction
        rows.append(
            AmortizationRow(
                month_index=i,
                beginning_balance=balance,
                payment=row_payment,
                interest=interest,
                principal=reduction,
                ending_balance=ending,
            )
        )
        balance = ending
    return rows


def build_amortization_schedule(
    principal: float,
    term_months: int,
    method: AmortizationMethod = AmortizationMethod.PRESENT_VALUE,
    annual_rate: Optional[float] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> List[AmortizationRow]:
    """
    Monthly amortization rows; empty when there is nothing to amortize.

    present_value uses monthly rate annual_rate / 12 (default from config) and
    degrades to straight_line when that rate is 0.
    """
    if term_months <= 0:
        raise InvalidTermError(f"Amortization term must be positive, got {term_months} months")
    if principal < 0:
        raise InvalidPrincipalError(f"Amortization principal must be >= 0, got {principal}")
    if principal == 0:
        return []
    if method == AmortizationMethod.STRAIGHT_LINE:
        return _straight_line_rows(principal, term_months)
    rate = config.amortization_rate if annual_rate is None else annual_rate
    monthly_rate = rate / 12.0
    if monthly_rate == 0:
        return _straight_line_rows(principal, term_months)
    return _present_value_rows(principal, term_months, monthly_rate)


def build_amortization_summary(
    terms: LeaseTerms,
    rent_schedule: RentSchedule,
    term_months: int,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AmortizationSummary:
    principal = select_principal(terms, rent_schedule)
    fin = terms.financing
    method = fin.amortization_method if fin else AmortizationMethod.PRESENT_VALUE
    rate = fin.interest_rate if fin and fin.interest_rate is not None else config.amortization_rate
    if method == AmortizationMethod.STRAIGHT_LINE:
        rate = 0.0
    rows = build_amortization_schedule(principal.total, term_months, method, rate, config)
    return AmortizationSummary(
        principal=principal,
        method=method,
        annual_rate=rate,
        term_months=term_months,
        rows=rows,
    )


def unamortized_balance(rows: List[AmortizationRow], month_index: int) -> float:
    """
    Balance still owed when terminating at `month_index`.

    Month 0 owes the full starting principal; month m > 0 owes the ending
    balance after the payment of month m - 1.
    """
    if not rows:
        return 0.0
    m = max(0, min(month_index, len(rows)))
    if m == 0:
        return rows[0].beginning_balance
    return rows[m - 1].ending_balance
