from datetime import date

import pytest
from pydantic import ValidationError

from engine.errors import InvalidInputError
from services.input_normalizer import lease_terms_from_dict, normalize_input


def test_flat_payload_lifts_into_lease_terms():
    terms, warnings = lease_terms_from_dict(
        {
            "name": "Flat",
            "rsf": 10000,
            "commencement_date": "2024-01-01",
            "term_months": 36,
            "rent_psf": 30,
            "annual_escalation": 3,
            "free_rent_months": 2,
            "opex_psf": 6,
        }
    )
    assert terms.key_dates.commencement == date(2024, 1, 1)
    assert terms.lease_term.years == 3 and terms.lease_term.months == 0
    assert terms.rent_schedule[0].period_end == date(2026, 12, 31)
    assert terms.rent_escalation.fixed_escalation_percentage == pytest.approx(0.03)
    assert terms.concessions.abatement_free_rent_months == 2
    assert terms.operating.est_op_ex_psf == 6
    assert any("percent" in w for w in warnings)


def test_rent_steps_by_month_index():
    terms, _ = lease_terms_from_dict(
        {
            "rsf": 5000,
            "commencement": "2024-01-01",
            "term_months": 36,
            "rent_steps": [
                {"start": 0, "end": 11, "rate_psf_yr": 30},
                {"start": 12, "end": 35, "rate_psf_yr": 32},
            ],
        }
    )
    assert terms.rent_schedule[1].period_start == date(2025, 1, 1)
    assert terms.rent_schedule[1].period_end == date(2026, 12, 31)
    assert terms.rent_schedule[1].rent_psf == 32


def test_nested_payload_and_percent_parking():
    terms, warnings = lease_terms_from_dict(
        {
            "rsf": 10000,
            "lease_type": "gross",
            "key_dates": {"commencement": "2024-01-01", "expiration": "2026-12-31"},
            "parking": {"stalls": 10, "monthly_rate_per_stall": 150, "escalation_value": 3},
        }
    )
    assert terms.lease_type.value == "FS"
    assert terms.parking.escalation_value == pytest.approx(0.03)
    assert len(warnings) == 1


def test_missing_fields_lower_confidence():
    result = normalize_input({"rsf": 0, "commencement_date": "2024-01-01"})
    assert "rsf" in result.missing_fields
    assert "rent_schedule" in result.missing_fields
    assert "lease_term" in result.missing_fields
    assert result.confidence_score == pytest.approx(0.55)


def test_missing_commencement_is_a_validation_error():
    with pytest.raises(ValidationError):
        lease_terms_from_dict({"rsf": 1000, "term_months": 12})


@pytest.mark.parametrize(
    "field, value",
    [
        ("discount_rate", "abc"),
        ("term_months", "three years"),
        ("rent_psf", "thirty"),
        ("parking_spaces", "nan"),
    ],
)
def test_non_numeric_form_values_raise_invalid_input(field, value):
    payload = {"name": "Flat", "rsf": 10000, "commencement_date": "2024-01-01", "term_months": 36, "rent_psf": 30}
    payload[field] = value
    with pytest.raises(InvalidInputError, match=field):
        lease_terms_from_dict(payload)


def test_percent_sign_rates_are_read():
    terms, warnings = lease_terms_from_dict(
        {"name": "Flat", "rsf": 10000, "commencement_date": "2024-01-01", "term_months": 36, "rent_psf": 30, "discount_rate": "7.5%"}
    )
    assert terms.cashflow_settings.discount_rate == pytest.approx(0.075)
    assert warnings
