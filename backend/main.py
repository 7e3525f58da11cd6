from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path

from dotenv import load_dotenv

# Load .env from backend directory so LEASE_ENGINE_* overrides are available
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from engine.amortization import build_amortization_schedule
from engine.analysis import analyze_lease, lease_equivalency, termination_calculator
from engine.config import EngineConfig
from engine.errors import LeaseEngineError
from engine.termination import termination_month_for_date
from generate_scenarios import generate_scenarios
from models import (
    AmortizationMethod,
    AmortizationRequest,
    AmortizationResponse,
    AnalyzeRequest,
    CompareScenariosRequest,
    CompareScenariosResponse,
    EquivalencyRequest,
    EquivalencyResponse,
    LeaseAnalysis,
    NormalizeRequest,
    TerminationFeeRequest,
    TerminationFeeResponse,
)
from services.input_normalizer import (
    CONFIDENCE_THRESHOLD,
    NormalizerResponse,
    lease_terms_from_dict,
    normalize_input,
)

VERSION = (os.environ.get("LEASE_ENGINE_VERSION") or "").strip() or "unknown"

# Same logger as uvicorn so request and analysis lines interleave
_LOG = logging.getLogger("uvicorn.error")

app = FastAPI(title="Lease Economics Engine", version="0.1.0")

# CORS: use ALLOWED_ORIGINS env (comma-separated) if set, else default
_origins_env = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestLogMiddleware)


def _config() -> EngineConfig:
    return EngineConfig.from_env()


def _rid(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "no-rid"


@app.exception_handler(LeaseEngineError)
async def _lease_engine_error(request: Request, exc: LeaseEngineError) -> JSONResponse:
    _LOG.info("ENGINE_REJECT rid=%s path=%s error=%s details=%s", _rid(request), request.url.path, exc.code, str(exc)[:400])
    return JSONResponse(status_code=422, content={"error": exc.code, "details": str(exc)})


@app.exception_handler(ValidationError)
async def _lease_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    _LOG.info("LEASE_INVALID rid=%s path=%s errors=%s", _rid(request), request.url.path, exc.error_count())
    return JSONResponse(
        status_code=422,
        content={"error": "invalid_lease", "details": exc.errors(include_url=False, include_context=False, include_input=False)},
    )


@app.on_event("startup")
def startup_log() -> None:
    cfg = _config()
    _LOG.info(
        "Lease engine starting version=%s discount_rate=%s amortization_rate=%s",
        VERSION,
        cfg.discount_rate,
        cfg.amortization_rate,
    )


@app.get("/health")
def health():
    return {"status": "ok", "version": VERSION}


@app.post("/analyze", response_model=LeaseAnalysis)
def analyze_endpoint(req: AnalyzeRequest, request: Request) -> LeaseAnalysis:
    """
    Full analysis of one lease: monthly schedule, annual lines, amortization,
    termination fee series and metrics. Body: {"lease": {...}, "group_by"?}.
    """
    terms, warnings = lease_terms_from_dict(req.lease)
    start = time.perf_counter()
    analysis = analyze_lease(terms, _config(), req.group_by)
    _LOG.info(
        "ANALYZE_DONE rid=%s name=%s term_months=%s npv=%.2f issues=%s duration_ms=%.0f",
        _rid(request),
        terms.name,
        analysis.timeline.term_months,
        analysis.metrics.npv,
        len(analysis.issues),
        (time.perf_counter() - start) * 1000,
    )
    if warnings:
        analysis = analysis.model_copy(update={"warnings": warnings + list(analysis.warnings)})
    return analysis


@app.post("/termination-fee", response_model=TerminationFeeResponse)
def termination_fee_endpoint(req: TerminationFeeRequest, request: Request) -> TerminationFeeResponse:
    """
    Fee to terminate at month_index (or at termination_date). Month 0 is used
    when neither is given; indexes outside the term are clamped.
    """
    terms, warnings = lease_terms_from_dict(req.lease)
    option_index = req.option_index if terms.termination_options else None
    calc = termination_calculator(terms, option_index, _config())
    month = req.month_index or 0
    if req.termination_date is not None and calc.records:
        month = termination_month_for_date(calc.records[0].start_date, req.termination_date, len(calc.records))
    components = calc.components_at(month)
    _LOG.info(
        "TERMINATION_FEE rid=%s month=%s total_fee=%.2f",
        _rid(request),
        components.month_index,
        components.total_fee,
    )
    return TerminationFeeResponse(
        components=components,
        earliest_exercise_month=calc.earliest_exercise_month(),
        series=calc.fees_by_month() if req.include_series else [],
        warnings=warnings,
    )


@app.post("/amortization", response_model=AmortizationResponse)
def amortization_endpoint(req: AmortizationRequest) -> AmortizationResponse:
    """Standalone amortization schedule for a principal over term_months."""
    cfg = _config()
    rate = cfg.amortization_rate if req.annual_rate is None else req.annual_rate
    if req.method == AmortizationMethod.STRAIGHT_LINE:
        rate = 0.0
    rows = build_amortization_schedule(req.principal, req.term_months, req.method, rate, cfg)
    return AmortizationResponse(
        method=req.method,
        annual_rate=rate,
        monthly_payment=rows[0].payment if rows else 0.0,
        total_interest=sum(r.interest for r in rows),
        rows=rows,
    )


@app.post("/compare-scenarios", response_model=CompareScenariosResponse)
def compare_scenarios_endpoint(req: CompareScenariosRequest, request: Request) -> CompareScenariosResponse:
    """
    Analyze the base lease and each variant (default: "Rent +$2") and compare
    NPV, total cash flow and the top cost drivers.
    """
    terms, _ = lease_terms_from_dict(req.lease)
    result = generate_scenarios(terms, req.variants, _config(), req.top_n)
    _LOG.info("COMPARE_DONE rid=%s variants=%s", _rid(request), len(result.variants))
    return result


@app.post("/equivalency", response_model=EquivalencyResponse)
def equivalency_endpoint(req: EquivalencyRequest, request: Request) -> EquivalencyResponse:
    """
    Price proposed concession changes against the lease: PV of a rate change,
    TI, free months and a term extension, and what each is worth in the others.
    """
    terms, warnings = lease_terms_from_dict(req.lease)
    result = lease_equivalency(
        terms,
        _config(),
        rate_delta_psf=req.rate_delta_psf,
        ti_psf=req.ti_psf,
        free_rent_months=req.free_rent_months,
        term_extension_months=req.term_extension_months,
    )
    _LOG.info(
        "EQUIVALENCY_DONE rid=%s name=%s discount_rate=%s pv_rate_delta=%.2f pv_ti=%.2f",
        _rid(request),
        terms.name,
        result.discount_rate,
        result.pv_rate_delta,
        result.pv_ti,
    )
    return EquivalencyResponse(equivalency=result, warnings=warnings)


@app.post("/normalize", response_model=NormalizerResponse)
def normalize_endpoint(req: NormalizeRequest, request: Request) -> NormalizerResponse:
    """
    Form or JSON payload -> LeaseTerms plus confidence_score, missing_fields and
    clarification_questions. The frontend should confirm with the user before
    analyzing when confidence_score < CONFIDENCE_THRESHOLD or fields are missing.
    """
    result = normalize_input(req.lease)
    terms = result.lease_terms
    _LOG.info(
        "NORMALIZE_DONE rid=%s name=%s rsf=%s commencement=%s confidence=%.2f needs_review=%s",
        _rid(request),
        terms.name,
        terms.rsf,
        terms.key_dates.commencement,
        result.confidence_score,
        result.confidence_score < CONFIDENCE_THRESHOLD or bool(result.missing_fields),
    )
    return result
