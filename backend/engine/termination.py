"""
Early-termination fee calculator.

fee(m) = penalty_months * base rent at m
       + base_rent_penalty_psf * RSF (when given)
       + unamortized balance at m (when unamortized costs are included)

The calculator is callable at any month index; indexes outside the term are
clamped onto the first or last month.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from models import (
    AmortizationMethod,
    AmortizationRow,
    AmortizationSummary,
    LeaseTimeline,
    MonthlyRecord,
    TerminationComponents,
    TerminationOption,
)

from engine.amortization import build_amortization_schedule, unamortized_balance
from engine.config import DEFAULT_CONFIG, EngineConfig
from engine.dates import add_months_anchored, month_index_for_date


def termination_month_for_date(commencement: date, on: date, term_months: int) -> int:
    """Lease month index containing `on`, clamped into the term."""
    if term_months <= 0:
        return 0
    return min(month_index_for_date(commencement, on), term_months - 1)


def termination_fee(
    records: Sequence[MonthlyRecord],
    amortization: Sequence[AmortizationRow],
    penalty_months: float,
    month_index: int,
    rsf: float = 0.0,
    base_rent_penalty_psf: Optional[float] = None,
    include_unamortized: bool = True,
) -> TerminationComponents:
    if not records:
        return TerminationComponents(month_index=0, exercisable=False)
    m = max(0, min(month_index, len(records) - 1))
    rec = records[m]
    rent = rec.contractual_base_rent
    penalty_rent = penalty_months * rent
    rsf_penalty = (base_rent_penalty_psf or 0.0) * rsf
    unamortized = unamortized_balance(list(amortization), m) if include_unamortized else 0.0
    total = penalty_rent + rsf_penalty + unamortized
    return TerminationComponents(
        month_index=m,
        start_date=rec.start_date,
        monthly_rent=rent,
        penalty_months=penalty_months,
        penalty_rent=penalty_rent,
        rsf_penalty=rsf_penalty,
        unamortized_balance=unamortized,
        equivalent_months=total / rent if rent else 0.0,
        total_fee=total,
    )


@dataclass(frozen=True)
class TerminationFeeCalculator:
    records: List[MonthlyRecord]
    amortization: List[AmortizationRow] = field(default_factory=list)
    penalty_months: float = 0.0
    rsf: float = 0.0
    base_rent_penalty_psf: Optional[float] = None
    include_unamortized: bool = True
    window_open: Optional[date] = None
    window_close: Optional[date] = None
    notice_months: int = 0

    def _in_window(self, on: date) -> bool:
        if self.window_open is not None and on < self.window_open:
            return False
        if self.window_close is not None and on > self.window_close:
            return False
        return True

    def components_at(self, month_index: int) -> TerminationComponents:
        comp = termination_fee(
            self.records,
            self.amortization,
            self.penalty_months,
            month_index,
            rsf=self.rsf,
            base_rent_penalty_psf=self.base_rent_penalty_psf,
            include_unamortized=self.include_unamortized,
        )
        if comp.start_date is None:
            return comp
        return comp.model_copy(update={"exercisable": self._in_window(comp.start_date)})

    def fee_at(self, month_index: int) -> float:
        return self.components_at(month_index).total_fee

    def fees_by_month(self) -> List[TerminationComponents]:
        return [self.components_at(m) for m in range(len(self.records))]

    def earliest_exercise_month(self) -> Optional[int]:
        """First month a termination can take effect: window open plus the notice period."""
        if not self.records:
            return None
        commencement = self.records[0].start_date
        opens = self.window_open or commencement
        effective = add_months_anchored(opens, self.notice_months)
        m = month_index_for_date(commencement, effective)
        if m >= len(self.records):
            return None
        return m


def calculator_for_option(
    option: TerminationOption,
    records: List[MonthlyRecord],
    amortization: AmortizationSummary,
    rsf: float,
    timeline: LeaseTimeline,
    config: EngineConfig = DEFAULT_CONFIG,
) -> TerminationFeeCalculator:
    """
    Calculator for one termination option.

    An option with its own termination_interest_rate re-amortizes the same
    principal as a present-value schedule at that rate.
    """
    rows = list(amortization.rows)
    principal = amortization.principal.total
    if option.termination_interest_rate is not None and principal > 0:
        rows = build_amortization_schedule(
            principal,
            timeline.term_months,
            AmortizationMethod.PRESENT_VALUE,
            option.termination_interest_rate,
            config,
        )
    return TerminationFeeCalculator(
        records=list(records),
        amortization=rows,
        penalty_months=option.fee_months_of_rent,
        rsf=rsf,
        base_rent_penalty_psf=option.base_rent_penalty,
        include_unamortized=option.unamortized_costs_included,
        window_open=option.window_open,
        window_close=option.window_close,
        notice_months=option.notice_months,
    )
