"""
Engine configuration.

Shared defaults (8% rates, 365.25 days/year, 30.44 days/month) travel as an
explicit EngineConfig value passed into every metrics call, so tests can
override them without touching global state.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

_ENV_PREFIX = "LEASE_ENGINE_"


class EngineConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    discount_rate: float = Field(default=0.08, ge=0.0, description="Default annual discount rate")
    amortization_rate: float = Field(default=0.08, ge=0.0, description="Default PV amortization rate")
    days_per_year: float = Field(default=365.25, gt=0.0)
    days_per_month: float = Field(default=30.44, gt=0.0)
    term_tolerance_days: int = Field(default=1, ge=0)

    irr_guess: float = 0.1
    irr_max_iterations: int = Field(default=100, gt=0)
    irr_tolerance: float = Field(default=1e-6, gt=0.0)
    irr_lower_bound: float = -0.99
    irr_upper_bound: float = 0.99
    bisection_max_iterations: int = Field(default=200, gt=0)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from LEASE_ENGINE_* environment variables (e.g. LEASE_ENGINE_DISCOUNT_RATE)."""
        overrides: dict[str, str] = {}
        for name in cls.model_fields:
            raw = os.environ.get(_ENV_PREFIX + name.upper())
            if raw is not None and raw.strip():
                overrides[name] = raw.strip()
        return cls.model_validate(overrides)


DEFAULT_CONFIG = EngineConfig()
