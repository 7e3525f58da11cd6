"""
Engine exception taxonomy.

Only structurally invalid inputs raise; degenerate numbers (zero RSF, zero
discount rate, empty rent schedule) degrade to 0 or an empty series instead.
"""

from __future__ import annotations


class LeaseEngineError(ValueError):
    """Base class for every error the engine raises."""

    code = "lease_engine_error"


class InvalidTermError(LeaseEngineError):
    """Non-positive, unresolvable or inconsistent lease term."""

    code = "invalid_term"


class InvalidAbatementError(LeaseEngineError):
    """Negative free-rent months, or more free months than the term holds."""

    code = "invalid_abatement"


class InvalidPrincipalError(LeaseEngineError):
    """Negative amortization principal."""

    code = "invalid_principal"


class IRRNotFoundError(LeaseEngineError):
    """Neither Newton-Raphson nor bisection found a root."""

    code = "irr_not_found"


class InvalidInputError(LeaseEngineError):
    """Form value that cannot be read as a number or date."""

    code = "invalid_input"
