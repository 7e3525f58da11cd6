"""Backend services."""

from services.input_normalizer import (
    normalize_input,
    lease_terms_from_dict,
    NormalizerResponse,
    CONFIDENCE_THRESHOLD,
)

__all__ = [
    "normalize_input",
    "lease_terms_from_dict",
    "NormalizerResponse",
    "CONFIDENCE_THRESHOLD",
]
