"""
convtest: two-variant conversion-rate significance testing.

Public API is re-exported here for convenience.
"""

from importlib.metadata import PackageNotFoundError, version as _version

# ---- Version ----
try:
    __version__ = _version("convtest")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

# ---- Re-exports ----
# Engine
from .stats import (  # noqa: F401
    DEFAULT_MIN_SAMPLE_SIZE,
    DEFAULT_Z_CRITICAL,
    InsufficientData,
    InvalidInput,
    NotSignificant,
    ProportionStatistics,
    Significant,
    TestOutcome,
    Variant,
    VariantSample,
    ab_conversion_test,
    evaluate,
    proportion_statistics,
)

# Caller glue
from .utils import (  # noqa: F401
    as_report_dict,
    format_outcome,
    samples_from_frame,
)

__all__ = [
    "__version__",
    # engine
    "DEFAULT_MIN_SAMPLE_SIZE",
    "DEFAULT_Z_CRITICAL",
    "InsufficientData",
    "InvalidInput",
    "NotSignificant",
    "ProportionStatistics",
    "Significant",
    "TestOutcome",
    "Variant",
    "VariantSample",
    "ab_conversion_test",
    "evaluate",
    "proportion_statistics",
    # glue
    "as_report_dict",
    "format_outcome",
    "samples_from_frame",
]
