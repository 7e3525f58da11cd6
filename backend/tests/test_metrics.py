from datetime import date

import pytest

from engine.analysis import analyze_lease
from engine.config import EngineConfig
from engine.errors import IRRNotFoundError
from engine.metrics import (
    bisection_irr,
    cash_on_cash_return,
    effective_rent_psf,
    equity_multiple,
    irr,
    newton_irr,
    npv,
    npv_monthly,
    payback_period,
    yield_on_cost,
)
from models import (
    CashflowSettings,
    Concessions,
    Granularity,
    KeyDates,
    LeaseTermLength,
    LeaseTerms,
    RentRow,
)

ANNUITY = [-1000.0, 300.0, 300.0, 300.0, 300.0, 300.0]


def test_npv_discounts_first_flow_one_period():
    assert npv([100.0], 0.10) == pytest.approx(100.0 / 1.1)
    assert npv([100.0, 100.0], 0.0) == pytest.approx(200.0)
    assert npv([100.0, 100.0], -1.0) == 0.0
    assert npv([], 0.08) == 0.0


def test_npv_irr_round_trip():
    rate = irr(ANNUITY)
    assert abs(npv(ANNUITY, rate)) < 1e-4
    assert rate == pytest.approx(0.1524, abs=1e-3)


def test_irr_simple_two_period():
    assert irr([-100.0, 110.0]) == pytest.approx(0.1, abs=1e-6)


def test_bisection_matches_newton():
    newton = newton_irr(ANNUITY)
    bisect = bisection_irr(ANNUITY)
    assert newton is not None and bisect is not None
    assert bisect == pytest.approx(newton, abs=1e-5)


def test_irr_falls_back_to_bisection_when_newton_gives_up():
    assert newton_irr(ANNUITY, max_iterations=1) is None
    cfg = EngineConfig(irr_max_iterations=1)
    assert irr(ANNUITY, cfg) == pytest.approx(irr(ANNUITY), abs=1e-5)


def test_newton_rejects_steps_outside_bounds():
    assert newton_irr(ANNUITY, guess=0.1, upper=0.12) is None


def test_irr_without_sign_change_raises():
    with pytest.raises(IRRNotFoundError):
        irr([100.0, 100.0])
    with pytest.raises(IRRNotFoundError):
        irr([-100.0, -5.0])
    assert bisection_irr([100.0, 100.0]) is None


def test_payback_interpolates_within_crossing_year():
    assert payback_period([40.0, 40.0, 40.0], initial_investment=100.0) == pytest.approx(2.5)


def test_payback_exact_zero_pays_back_at_start_of_next_year():
    # Cumulative is exactly 0 at the end of year index 2, so payback is the start of year 3
    assert payback_period([-100.0, 50.0, 50.0, 50.0]) == pytest.approx(3.0)


def test_payback_sentinels():
    assert payback_period([10.0, 10.0], initial_investment=100.0) is None
    assert payback_period([10.0, 10.0]) == 0.0
    assert payback_period([]) is None


def test_degenerate_inputs_return_zero():
    assert effective_rent_psf(1000.0, 0.0, 3.0) == 0.0
    assert effective_rent_psf(1000.0, 100.0, 0.0) == 0.0
    assert cash_on_cash_return([100.0], 0.0) == 0.0
    assert yield_on_cost([], 100.0) == 0.0
    assert equity_multiple([100.0], 0.0) == 0.0


def test_landlord_ratios():
    flows = [120.0, 100.0, 80.0]
    assert cash_on_cash_return(flows, 1000.0) == pytest.approx(0.12)
    assert yield_on_cost(flows, 1000.0) == pytest.approx(0.1)
    assert equity_multiple(flows, 1000.0) == pytest.approx(0.3)


def test_npv_monthly_uses_effective_monthly_rate():
    flows = [(date(2024, 1, 1), 100.0), (date(2025, 1, 1), 100.0)]
    assert npv_monthly(flows, 0.10) == pytest.approx(100.0 + 100.0 / 1.1)
    assert npv_monthly(flows, 0.0) == pytest.approx(200.0)
    assert npv_monthly([], 0.10) == 0.0


def _terms(**overrides) -> LeaseTerms:
    data = dict(
        name="Metrics Test",
        rsf=10000,
        key_dates=KeyDates(commencement=date(2024, 1, 1)),
        lease_term=LeaseTermLength(years=3),
        rent_schedule=[RentRow(period_start=date(2024, 1, 1), period_end=date(2026, 12, 31), rent_psf=30.0)],
        concessions=Concessions(ti_allowance_psf=50.0),
    )
    data.update(overrides)
    return LeaseTerms(**data)


def test_compute_metrics_annual():
    metrics = analyze_lease(_terms()).metrics
    assert metrics.total_net_cash_flow == pytest.approx(900000.0)
    assert metrics.effective_rent_psf == pytest.approx(30.0)
    assert metrics.blended_rate_psf == pytest.approx(30.0)
    assert metrics.landlord_cost == pytest.approx(500000.0)
    assert metrics.npv == pytest.approx(npv([300000.0] * 3, 0.08))
    assert metrics.irr is not None
    assert metrics.payback_years == pytest.approx(500000.0 / 300000.0)
    assert metrics.cash_on_cash_return == pytest.approx(0.6)
    assert metrics.equity_multiple == pytest.approx(1.8)


def test_compute_metrics_monthly_annualizes_irr():
    terms = _terms(cashflow_settings=CashflowSettings(discount_rate=0.08, granularity=Granularity.MONTHLY))
    metrics = analyze_lease(terms).metrics
    assert metrics.irr is not None
    assert metrics.irr > 0
    assert metrics.npv < 900000.0


def test_zero_rsf_never_raises():
    metrics = analyze_lease(_terms(rsf=0)).metrics
    assert metrics.effective_rent_psf == 0.0
    assert metrics.irr is None
    assert metrics.npv == 0.0
    assert metrics.equity_multiple == 0.0
