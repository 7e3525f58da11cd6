from datetime import date

import pytest

from engine.errors import InvalidAbatementError, InvalidTermError
from engine.normalize import build_timeline, check_term_consistency, normalize_lease
from models import (
    AbatementPeriod,
    AbatementType,
    Concessions,
    EscalationPeriod,
    EscalationType,
    KeyDates,
    LeaseTermLength,
    LeaseTerms,
    RentEscalation,
    RentRow,
)


def _terms(**overrides) -> LeaseTerms:
    data = dict(
        name="Normalize Test",
        rsf=10000,
        key_dates=KeyDates(commencement=date(2024, 1, 1)),
        lease_term=LeaseTermLength(years=3),
        rent_schedule=[RentRow(period_start=date(2024, 1, 1), period_end=date(2026, 12, 31), rent_psf=30.0)],
    )
    data.update(overrides)
    return LeaseTerms(**data)


def test_lease_term_drives_expiration():
    n = normalize_lease(_terms(lease_term=LeaseTermLength(years=5)))
    assert n.timeline.term_months == 60
    assert n.timeline.expiration == date(2028, 12, 31)
    assert n.timeline.term_source == "lease_term"
    assert n.timeline.term_years == pytest.approx(5.0, abs=0.01)


def test_include_abatement_in_term_adds_free_months():
    terms = _terms(
        lease_term=LeaseTermLength(years=5, include_abatement_in_term=True),
        concessions=Concessions(abatement_free_rent_months=3),
    )
    timeline = normalize_lease(terms).timeline
    assert timeline.term_months == 63
    assert timeline.expiration == date(2029, 3, 31)
    assert timeline.abatement_months == 3
    assert timeline.rent_start == date(2024, 4, 1)


def test_expiration_only_counts_calendar_months():
    terms = _terms(lease_term=None, key_dates=KeyDates(commencement=date(2024, 1, 1), expiration=date(2026, 12, 31)))
    timeline = normalize_lease(terms).timeline
    assert timeline.term_months == 36
    assert timeline.term_source == "expiration"


def test_zero_term_is_invalid():
    with pytest.raises(InvalidTermError):
        normalize_lease(_terms(lease_term=LeaseTermLength(years=0, months=0)))


def test_expiration_before_commencement_is_invalid():
    with pytest.raises(InvalidTermError):
        build_timeline(date(2024, 1, 1), expiration=date(2023, 12, 31))


def test_negative_abatement_is_invalid():
    with pytest.raises(InvalidAbatementError):
        normalize_lease(_terms(concessions=Concessions(abatement_free_rent_months=-1)))


def test_negative_custom_abatement_is_invalid():
    concessions = Concessions(
        abatement_type=AbatementType.CUSTOM,
        abatement_periods=[
            AbatementPeriod(period_start=date(2025, 1, 1), period_end=date(2025, 3, 31), free_rent_months=-2),
        ],
    )
    with pytest.raises(InvalidAbatementError):
        normalize_lease(_terms(concessions=concessions))


def test_custom_window_granting_more_months_than_it_spans_is_invalid():
    concessions = Concessions(
        abatement_type=AbatementType.CUSTOM,
        abatement_periods=[
            AbatementPeriod(period_start=date(2024, 1, 1), period_end=date(2024, 1, 31), free_rent_months=6),
        ],
    )
    terms = _terms(lease_term=LeaseTermLength(years=3, include_abatement_in_term=True), concessions=concessions)
    with pytest.raises(InvalidAbatementError):
        normalize_lease(terms)


def test_custom_window_running_past_expiration_is_invalid():
    concessions = Concessions(
        abatement_type=AbatementType.CUSTOM,
        abatement_periods=[
            AbatementPeriod(period_start=date(2026, 11, 1), period_end=date(2027, 6, 30), free_rent_months=4),
        ],
    )
    with pytest.raises(InvalidAbatementError):
        normalize_lease(_terms(concessions=concessions))


def test_custom_window_that_fits_is_fully_credited():
    concessions = Concessions(
        abatement_type=AbatementType.CUSTOM,
        abatement_periods=[
            AbatementPeriod(period_start=date(2025, 1, 1), period_end=date(2025, 6, 30), free_rent_months=6),
        ],
    )
    n = normalize_lease(_terms(concessions=concessions))
    assert n.timeline.abatement_months == 6
    assert n.abatement.total_free_months == 6


def test_abatement_longer_than_term_is_invalid():
    with pytest.raises(InvalidAbatementError):
        normalize_lease(_terms(lease_term=LeaseTermLength(years=1), concessions=Concessions(abatement_free_rent_months=13)))


def test_explicit_rent_start_wins():
    terms = _terms(
        key_dates=KeyDates(commencement=date(2024, 1, 1), rent_start=date(2024, 2, 1)),
        concessions=Concessions(abatement_free_rent_months=3),
    )
    assert normalize_lease(terms).timeline.rent_start == date(2024, 2, 1)


def test_expiration_within_one_day_is_consistent():
    assert check_term_consistency(date(2024, 1, 1), 36, date(2026, 12, 31)) is None
    assert check_term_consistency(date(2024, 1, 1), 36, date(2027, 1, 1)) is None


def test_expiration_mismatch_is_reported_not_corrected():
    terms = _terms(key_dates=KeyDates(commencement=date(2024, 1, 1), expiration=date(2027, 2, 15)))
    n = normalize_lease(terms)
    assert n.timeline.term_months == 36
    assert n.timeline.expiration == date(2026, 12, 31)
    codes = [i.code for i in n.issues]
    assert "term_expiration_mismatch" in codes


def test_custom_escalation_gap_is_reported():
    esc = RentEscalation(
        escalation_type=EscalationType.CUSTOM,
        escalation_periods=[EscalationPeriod(period_start=date(2024, 1, 1), period_end=date(2024, 12, 31), escalation_percentage=0.03)],
    )
    n = normalize_lease(_terms(rent_escalation=esc))
    assert n.rent_escalation.mode == EscalationType.CUSTOM
    gap = [i for i in n.issues if i.code == "rent_escalation_gap"]
    assert gap and gap[0].severity == "info"


def test_overlapping_rent_rows_are_reported():
    rows = [
        RentRow(period_start=date(2024, 1, 1), period_end=date(2026, 12, 31), rent_psf=30.0),
        RentRow(period_start=date(2025, 1, 1), period_end=date(2025, 12, 31), rent_psf=40.0),
    ]
    n = normalize_lease(_terms(rent_schedule=rows))
    assert "rent_schedule_overlap" in [i.code for i in n.issues]


def test_fixed_rate_falls_back_to_first_row():
    rows = [RentRow(period_start=date(2024, 1, 1), period_end=date(2026, 12, 31), rent_psf=30.0, escalation_percentage=0.04)]
    n = normalize_lease(_terms(rent_schedule=rows))
    assert n.rent_escalation.mode == EscalationType.FIXED
    assert n.rent_escalation.fixed_rate == pytest.approx(0.04)
