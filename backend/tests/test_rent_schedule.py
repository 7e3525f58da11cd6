from datetime import date

import pytest

from engine.normalize import normalize_lease
from engine.overlay import apply_operating_overlay
from engine.rent_schedule import build_rent_schedule, find_rent_row
from models import (
    AbatementAppliesTo,
    AbatementPeriod,
    AbatementType,
    Concessions,
    EscalationPeriod,
    EscalationType,
    KeyDates,
    LeaseTermLength,
    LeaseTerms,
    LeaseType,
    OperatingSettings,
    ParkingSettings,
    RentEscalation,
    RentRow,
)


def _terms(**overrides) -> LeaseTerms:
    data = dict(
        name="Schedule Test",
        rsf=10000,
        key_dates=KeyDates(commencement=date(2024, 1, 1)),
        lease_term=LeaseTermLength(years=3),
        rent_schedule=[RentRow(period_start=date(2024, 1, 1), period_end=date(2026, 12, 31), rent_psf=30.0)],
    )
    data.update(overrides)
    return LeaseTerms(**data)


def _schedule(terms: LeaseTerms):
    n = normalize_lease(terms)
    base = build_rent_schedule(n.timeline, terms.rent_schedule, n.rent_escalation, n.abatement, terms.rsf)
    return apply_operating_overlay(base, terms, n.timeline, n.operating_escalation)


@pytest.mark.parametrize("months", [1, 13, 36, 61])
def test_one_record_per_term_month(months):
    terms = _terms(lease_term=LeaseTermLength(years=months // 12, months=months % 12))
    schedule = _schedule(terms)
    assert len(schedule.months) == months
    assert [r.month_index for r in schedule.months] == list(range(months))
    assert sum(1 for r in schedule.months if r.is_abated) <= months


def test_fixed_escalation_compounds_annually_not_monthly():
    terms = _terms(rent_escalation=RentEscalation(fixed_escalation_percentage=0.03))
    months = _schedule(terms).months
    year1 = months[0].contractual_base_rent
    assert year1 == pytest.approx(25000.0)
    assert months[11].contractual_base_rent == pytest.approx(year1)
    assert months[12].contractual_base_rent == pytest.approx(year1 * 1.03)
    assert months[24].contractual_base_rent == pytest.approx(year1 * 1.03**2)


def test_custom_escalation_carries_into_next_period():
    esc = RentEscalation(
        escalation_type=EscalationType.CUSTOM,
        escalation_periods=[
            EscalationPeriod(period_start=date(2024, 1, 1), period_end=date(2025, 12, 31), escalation_percentage=0.03),
            EscalationPeriod(period_start=date(2026, 1, 1), period_end=date(2028, 12, 31), escalation_percentage=0.05),
        ],
    )
    rows = [RentRow(period_start=date(2024, 1, 1), period_end=date(2028, 12, 31), rent_psf=30.0)]
    months = _schedule(_terms(lease_term=LeaseTermLength(years=5), rent_schedule=rows, rent_escalation=esc)).months
    assert months[12].annual_rate_psf == pytest.approx(30.0 * 1.03)
    assert months[24].annual_rate_psf == pytest.approx(30.0 * 1.03**2)
    assert months[36].annual_rate_psf == pytest.approx(30.0 * 1.03**2 * 1.05)
    assert months[48].annual_rate_psf == pytest.approx(30.0 * 1.03**2 * 1.05**2)


def test_abatement_base_only_never_credits_operating():
    terms = _terms(
        concessions=Concessions(abatement_free_rent_months=2, abatement_applies_to=AbatementAppliesTo.BASE_ONLY),
        operating=OperatingSettings(est_op_ex_psf=6.0),
    )
    months = _schedule(terms).months
    for rec in months[:2]:
        assert rec.contractual_base_rent == pytest.approx(25000.0)
        assert rec.free_rent_amount == pytest.approx(-25000.0)
        assert rec.operating == pytest.approx(5000.0)
        assert rec.net_rent_due == pytest.approx(0.0)
    assert months[2].free_rent_amount == 0.0
    assert months[2].net_rent_due == pytest.approx(25000.0)


def test_abatement_base_plus_nnn_keeps_unfloored_value():
    terms = _terms(
        concessions=Concessions(abatement_free_rent_months=2, abatement_applies_to=AbatementAppliesTo.BASE_PLUS_NNN),
        operating=OperatingSettings(est_op_ex_psf=6.0),
    )
    months = _schedule(terms).months
    rec = months[0]
    assert rec.free_rent_amount == pytest.approx(-30000.0)
    assert rec.net_rent_due == pytest.approx(-5000.0)
    assert rec.net_rent_due_floored == 0.0
    # Running effective rent averages the unfloored values
    assert [m.effective_rent_running for m in months[:3]] == pytest.approx([-5000.0, -5000.0, 5000.0])


def test_first_matching_row_wins_on_overlap():
    rows = [
        RentRow(period_start=date(2024, 1, 1), period_end=date(2026, 12, 31), rent_psf=30.0),
        RentRow(period_start=date(2025, 1, 1), period_end=date(2025, 12, 31), rent_psf=40.0),
    ]
    months = _schedule(_terms(rent_schedule=rows)).months
    assert months[12].annual_rate_psf == pytest.approx(30.0)
    assert find_rent_row(rows, date(2025, 6, 1)) is rows[0]


def test_uncovered_months_carry_forward_last_row():
    rows = [RentRow(period_start=date(2024, 1, 1), period_end=date(2024, 12, 31), rent_psf=30.0)]
    months = _schedule(_terms(rent_schedule=rows)).months
    assert months[30].annual_rate_psf == pytest.approx(30.0)


def test_empty_rent_schedule_is_zero_rent():
    schedule = _schedule(_terms(rent_schedule=[]))
    assert len(schedule.months) == 36
    assert all(r.contractual_base_rent == 0.0 for r in schedule.months)
    assert schedule.summary.total_contract_rent == 0.0


def test_custom_abatement_windows_never_double_count():
    concessions = Concessions(
        abatement_type=AbatementType.CUSTOM,
        abatement_periods=[
            AbatementPeriod(period_start=date(2024, 1, 1), period_end=date(2024, 3, 31), free_rent_months=3),
            AbatementPeriod(period_start=date(2024, 2, 1), period_end=date(2024, 5, 31), free_rent_months=2),
        ],
    )
    months = _schedule(_terms(concessions=concessions)).months
    abated = [r.month_index for r in months if r.is_abated]
    assert abated == [0, 1, 2, 3, 4]


def test_summary_and_running_effective_rent():
    terms = _terms(concessions=Concessions(abatement_free_rent_months=2))
    schedule = _schedule(terms)
    assert schedule.summary.free_rent_value == pytest.approx(50000.0)
    assert schedule.summary.total_contract_rent == pytest.approx(36 * 25000.0)
    assert schedule.summary.total_net_rent == pytest.approx(34 * 25000.0)
    assert schedule.months[2].effective_rent_running == pytest.approx(25000.0 / 3)


def test_full_service_pays_increase_over_base_year():
    terms = _terms(
        lease_type=LeaseType.FS,
        base_year=2024,
        operating=OperatingSettings(est_op_ex_psf=10.0, escalation_value=0.05),
    )
    months = _schedule(terms).months
    assert months[0].operating == pytest.approx(0.0)
    assert months[12].operating == pytest.approx(10000 * 0.5 / 12)


def test_full_service_manual_pass_through():
    terms = _terms(
        lease_type="full service",
        operating=OperatingSettings(est_op_ex_psf=10.0, use_manual_pass_through=True, manual_pass_through_psf=1.2),
    )
    months = _schedule(terms).months
    assert all(r.operating == pytest.approx(1000.0) for r in months)


def test_operating_cap_limits_escalation():
    terms = _terms(operating=OperatingSettings(est_op_ex_psf=12.0, escalation_value=0.10, escalation_cap=0.05))
    months = _schedule(terms).months
    assert months[12].operating == pytest.approx(10000 * 12.0 * 1.05 / 12)


def test_parking_escalates_per_lease_year():
    terms = _terms(parking=ParkingSettings(monthly_rate_per_stall=150.0, stalls=10, escalation_value=0.03))
    months = _schedule(terms).months
    assert months[0].parking == pytest.approx(1500.0)
    assert months[12].parking == pytest.approx(1500.0 * 1.03)
