from datetime import date

import pytest

from engine.analysis import analyze_lease
from generate_scenarios import BASE_CASE, build_variant, compare_scenarios, generate_scenarios
from models import KeyDates, LeaseTermLength, LeaseTerms, RentRow, ScenarioVariant


def _terms() -> LeaseTerms:
    return LeaseTerms(
        name="HQ Renewal",
        rsf=10000,
        key_dates=KeyDates(commencement=date(2024, 1, 1)),
        lease_term=LeaseTermLength(years=3),
        rent_schedule=[RentRow(period_start=date(2024, 1, 1), period_end=date(2026, 12, 31), rent_psf=30.0)],
    )


def test_rent_plus_two_variant():
    result = generate_scenarios(_terms(), [ScenarioVariant(name="Rent +$2", rent_delta_psf=2.0)])
    assert result.base.name == BASE_CASE
    assert result.variants[0].name == "Rent +$2"
    comparison = result.comparisons[0]
    assert comparison.total_cash_flow_delta == pytest.approx(2.0 * 10000 / 12 * 36)
    assert comparison.npv_delta > 0
    assert comparison.top_drivers[0].key == "base_rent"
    assert comparison.top_drivers[0].delta == pytest.approx(60000.0)


def test_variants_do_not_mutate_base():
    terms = _terms()
    build_variant(terms, ScenarioVariant(name="Rent +$2", rent_delta_psf=2.0, ti_delta_psf=5.0))
    assert terms.rent_schedule[0].rent_psf == 30.0
    assert terms.concessions.ti_allowance_psf == 0.0


def test_free_rent_variant_drives_abatement():
    base = analyze_lease(_terms())
    variant = analyze_lease(build_variant(_terms(), ScenarioVariant(name="+2 free", free_rent_delta_months=2)))
    comparison = compare_scenarios(base, variant)
    assert comparison.top_drivers[0].key == "abatement_credit"
    assert comparison.top_drivers[0].delta == pytest.approx(-50000.0)


def test_term_extension_variant():
    terms = build_variant(_terms(), ScenarioVariant(name="+1 year", term_extension_months=12))
    assert terms.lease_term.years == 4
    assert analyze_lease(terms).timeline.term_months == 48


def test_identical_variant_has_no_drivers():
    base = analyze_lease(_terms())
    comparison = compare_scenarios(base, analyze_lease(_terms()))
    assert comparison.top_drivers == []
    assert comparison.npv_delta == 0.0
