"""
Input layer: raw payloads (API JSON or manual form) normalize to LeaseTerms.

Accepts the nested lease-terms shape as well as the flat keys forms send
(commencement_date, term_months, rent_psf, free_rent_months, opex_psf, ...).
Percent-style rates (3 instead of 0.03) are converted and reported as
warnings. Returns the LeaseTerms plus confidence_score, missing_fields and
clarification_questions so the frontend can ask before analyzing.
"""

from __future__ import annotations

import copy
import math
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from engine.dates import add_months_anchored, expiration_for_term, parse_date
from engine.errors import InvalidInputError
from models import LeaseTerms


class NormalizerResponse(BaseModel):
    lease_terms: LeaseTerms
    confidence_score: float = Field(ge=0.0, le=1.0)
    missing_fields: List[str] = Field(default_factory=list)
    clarification_questions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


CONFIDENCE_THRESHOLD = 0.85

# (section, key) pairs holding annual rates that forms sometimes send as percents
_RATE_FIELDS = [
    ("rent_escalation", "fixed_escalation_percentage"),
    ("operating", "escalation_value"),
    ("operating", "escalation_cap"),
    ("parking", "escalation_value"),
    ("financing", "interest_rate"),
    ("cashflow_settings", "discount_rate"),
]


def _number(value: Any, path: str) -> float:
    """float of a form value; InvalidInputError names the field when it is not numeric."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{path} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise InvalidInputError(f"{path} must be a finite number, got {value!r}")
    return number


def _as_rate(value: Any, path: str, warnings: List[str]) -> Optional[float]:
    """Decimal rate; values above 1 are read as percents (3 -> 0.03)."""
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    if value is None or value == "":
        return None
    rate = _number(value, path)
    if rate > 1:
        warnings.append(f"{path}={rate:g} read as a percent ({rate / 100:.4f})")
        return rate / 100.0
    return rate


def _coerce_rates(data: Dict[str, Any], warnings: List[str]) -> None:
    for section, key in _RATE_FIELDS:
        block = data.get(section)
        if isinstance(block, dict) and key in block:
            block[key] = _as_rate(block[key], f"{section}.{key}", warnings)
    for section, key in (("rent_escalation", "escalation_periods"), ("operating", "escalation_periods")):
        block = data.get(section)
        if not isinstance(block, dict):
            continue
        for i, period in enumerate(block.get(key) or []):
            if isinstance(period, dict) and "escalation_percentage" in period:
                period["escalation_percentage"] = _as_rate(
                    period["escalation_percentage"], f"{section}.{key}[{i}].escalation_percentage", warnings
                )
    for i, row in enumerate(data.get("rent_schedule") or []):
        if isinstance(row, dict) and row.get("escalation_percentage") is not None:
            row["escalation_percentage"] = _as_rate(row["escalation_percentage"], f"rent_schedule[{i}].escalation_percentage", warnings)


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if data.get(key) not in (None, ""):
            return data[key]
    return default


def _flat_to_nested(data: Dict[str, Any]) -> Dict[str, Any]:
    """Lift flat form keys into the nested lease-terms shape (nested keys win)."""
    out = copy.deepcopy(data)

    if "key_dates" not in out:
        out["key_dates"] = {
            "commencement": _first(data, "commencement_date", "commencement"),
            "expiration": _first(data, "expiration_date", "expiration"),
            "rent_start": _first(data, "rent_start_date", "rent_start"),
        }
    kd = out["key_dates"]
    commencement = parse_date(kd.get("commencement"))

    if "lease_term" not in out:
        term_months = _first(data, "term_months")
        years = _first(data, "lease_term_years", "term_years")
        if term_months is not None:
            total = int(_number(term_months, "term_months"))
            out["lease_term"] = {"years": total // 12, "months": total % 12}
        elif years is not None:
            out["lease_term"] = {
                "years": int(_number(years, "lease_term_years")),
                "months": int(_number(_first(data, "lease_term_months", default=0), "lease_term_months")),
            }
        if "lease_term" in out and data.get("include_abatement_in_term") is not None:
            out["lease_term"]["include_abatement_in_term"] = bool(data["include_abatement_in_term"])

    if not out.get("rent_schedule") and commencement is not None:
        steps = data.get("rent_steps")
        rate = _first(data, "rent_psf", "base_rent_psf", "rate_psf_yr")
        if steps:
            out["rent_schedule"] = [
                {
                    "period_start": add_months_anchored(commencement, int(_number(s.get("start", s.get("start_month", 0)), "rent_steps.start"))).isoformat(),
                    "period_end": expiration_for_term(commencement, int(_number(s.get("end", s.get("end_month", 0)), "rent_steps.end")) + 1).isoformat(),
                    "rent_psf": _number(s.get("rate_psf_yr", s.get("rent_psf", 0)) or 0, "rent_steps.rate_psf_yr"),
                }
                for s in steps
                if isinstance(s, dict)
            ]
        elif rate is not None:
            end = parse_date(kd.get("expiration"))
            lt = out.get("lease_term") or {}
            months = int(_number(lt.get("years", 0) or 0, "lease_term.years")) * 12 + int(_number(lt.get("months", 0) or 0, "lease_term.months"))
            if end is None and months > 0:
                end = expiration_for_term(commencement, months)
            if end is not None:
                out["rent_schedule"] = [
                    {"period_start": commencement.isoformat(), "period_end": end.isoformat(), "rent_psf": _number(rate, "rent_psf")}
                ]

    escalation = _first(data, "annual_escalation", "escalation", "rent_escalation_rate")
    if escalation is not None and "rent_escalation" not in data:
        out["rent_escalation"] = {"escalation_type": "fixed", "fixed_escalation_percentage": escalation}

    conc = out.setdefault("concessions", {})
    for flat, nested in (
        ("free_rent_months", "abatement_free_rent_months"),
        ("ti_allowance_psf", "ti_allowance_psf"),
        ("ti_actual_build_cost_psf", "ti_actual_build_cost_psf"),
        ("free_rent_applies_to", "abatement_applies_to"),
    ):
        if flat in data and nested not in conc:
            conc[nested] = data[flat]

    op = out.setdefault("operating", {})
    for flat, nested in (("opex_psf", "est_op_ex_psf"), ("base_opex_psf_yr", "est_op_ex_psf"), ("opex_growth", "escalation_value")):
        if flat in data and nested not in op:
            op[nested] = data[flat]

    if "parking" not in out and _first(data, "parking_spaces", "parking_stalls") is not None:
        out["parking"] = {
            "stalls": int(_number(_first(data, "parking_spaces", "parking_stalls"), "parking_spaces")),
            "monthly_rate_per_stall": _number(
                _first(data, "parking_cost_monthly_per_space", "parking_rate_monthly", default=0), "parking_rate_monthly"
            ),
            "escalation_value": _first(data, "parking_escalation_rate", default=0),
        }

    rate = _first(data, "discount_rate", "discount_rate_annual")
    if rate is not None:
        out.setdefault("cashflow_settings", {}).setdefault("discount_rate", rate)
    return out


def lease_terms_from_dict(data: Dict[str, Any]) -> Tuple[LeaseTerms, List[str]]:
    """
    Build LeaseTerms from a nested or flat dict.

    Raises InvalidInputError for non-numeric form values and
    pydantic.ValidationError on otherwise malformed input.
    """
    warnings: List[str] = []
    nested = _flat_to_nested(data)
    _coerce_rates(nested, warnings)
    return LeaseTerms.model_validate(nested), warnings


def _compute_confidence_and_missing(terms: LeaseTerms) -> tuple[float, List[str], List[str]]:
    missing: List[str] = []
    questions: List[str] = []
    if terms.rsf <= 0:
        missing.append("rsf")
        questions.append("What is the rentable square footage?")
    if not terms.rent_schedule:
        missing.append("rent_schedule")
        questions.append("Please provide the base rent schedule (rate and period).")
    lt = terms.lease_term
    has_term = lt is not None and (lt.years or lt.months)
    if not has_term and terms.key_dates.expiration is None:
        missing.append("lease_term")
        questions.append("What is the lease term or expiration date?")
    confidence = max(0.0, 1.0 - (len(missing) * 0.15))
    return confidence, missing, questions


def normalize_input(payload: Dict[str, Any]) -> NormalizerResponse:
    """Normalize a payload; confidence below CONFIDENCE_THRESHOLD means the frontend should confirm first."""
    terms, warnings = lease_terms_from_dict(payload)
    confidence, missing, questions = _compute_confidence_and_missing(terms)
    return NormalizerResponse(
        lease_terms=terms,
        confidence_score=confidence,
        missing_fields=missing,
        clarification_questions=questions,
        warnings=warnings,
    )
