"""
convtest/stats.py

Two-sample z-test for conversion rates (proportions).

Dependencies:
  - numpy
  - scipy

What's included:
  - VariantSample: observed rate + exposure count for one variant
  - Outcome types: Significant / NotSignificant / InsufficientData / InvalidInput
  - proportion_statistics: pooled SE, z, margin of error, interval
  - evaluate: the significance decision
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Tuple, Union

import numpy as np
from scipy import stats


DEFAULT_MIN_SAMPLE_SIZE = 5
DEFAULT_Z_CRITICAL = 1.96  # 95% two-sided


# -------------------------
# Inputs
# -------------------------

class Variant(Enum):
    A = "A"
    B = "B"


@dataclass(frozen=True)
class VariantSample:
    rate: float
    sample_size: int

    @classmethod
    def from_counts(cls, conversions: int, sample_size: int) -> "VariantSample":
        if conversions < 0 or sample_size < 0:
            raise ValueError("conversions and sample_size must be >= 0")
        if conversions > sample_size:
            raise ValueError("conversions cannot exceed sample_size")
        rate = conversions / sample_size if sample_size else 0.0
        return cls(rate=rate, sample_size=sample_size)


# -------------------------
# Outcomes
# -------------------------

@dataclass(frozen=True)
class Significant:
    kind: ClassVar[str] = "significant"
    winning_variant: Variant
    interval_low: float
    interval_high: float
    z: float
    p_value: float


@dataclass(frozen=True)
class NotSignificant:
    kind: ClassVar[str] = "not_significant"
    z: float
    p_value: float


@dataclass(frozen=True)
class InsufficientData:
    kind: ClassVar[str] = "insufficient_data"
    min_sample_size: int
    size_a: int
    size_b: int


@dataclass(frozen=True)
class InvalidInput:
    kind: ClassVar[str] = "invalid_input"
    reason: str


TestOutcome = Union[Significant, NotSignificant, InsufficientData, InvalidInput]


# -------------------------
# Helpers
# -------------------------

def _check_config(min_sample_size: int, z_critical: float) -> None:
    if min_sample_size < 1:
        raise ValueError("min_sample_size must be >= 1")
    if not (np.isfinite(z_critical) and z_critical > 0):
        raise ValueError("z_critical must be a finite number > 0")

def _rate_problem(label: str, rate: float) -> str | None:
    # NaN fails both comparisons
    if not (0.0 <= rate <= 1.0):
        return f"rate_{label.lower()} must be in [0, 1], got {rate}"
    return None


# -------------------------
# Statistics
# -------------------------

@dataclass(frozen=True)
class ProportionStatistics:
    pooled: float
    se: float
    diff: float
    z: float
    moe: float
    interval: Tuple[float, float]
    p_value: float

def proportion_statistics(
    sample_a: VariantSample,
    sample_b: VariantSample,
    z_critical: float = DEFAULT_Z_CRITICAL,
) -> ProportionStatistics:
    """
    Pooled z-statistic for |rate_a - rate_b|.

    The interval brackets the absolute difference with a symmetric margin of
    error (z_critical * pooled SE), so the lower bound may be negative.
    Sample sizes must be > 0.
    """
    p1, n1 = float(sample_a.rate), sample_a.sample_size
    p2, n2 = float(sample_b.rate), sample_b.sample_size
    if n1 <= 0 or n2 <= 0:
        raise ValueError("sample sizes must be > 0")

    pooled = (p1 * n1 + p2 * n2) / (n1 + n2)
    se = float(np.sqrt(pooled * (1 - pooled) * (1 / n1 + 1 / n2)))
    diff = abs(p1 - p2)

    if se == 0:
        # pooled rate is 0 or 1: no variance, nothing to distinguish
        z = 0.0
        p_value = 1.0
    else:
        z = diff / se
        p_value = float(2 * stats.norm.sf(z))

    moe = z_critical * se
    return ProportionStatistics(
        pooled=float(pooled),
        se=se,
        diff=float(diff),
        z=float(z),
        moe=float(moe),
        interval=(float(diff - moe), float(diff + moe)),
        p_value=p_value,
    )


# -------------------------
# Decision
# -------------------------

def evaluate(
    sample_a: VariantSample,
    sample_b: VariantSample,
    min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE,
    z_critical: float = DEFAULT_Z_CRITICAL,
) -> TestOutcome:
    """
    Test H0: rate_a == rate_b and pick a winner if H0 is rejected.

    Order of checks:
      1. either sample_size < min_sample_size -> InsufficientData
      2. either rate outside [0, 1]           -> InvalidInput
      3. z > z_critical                       -> Significant (higher raw rate wins)
         otherwise                            -> NotSignificant

    Data problems come back as outcomes; only a bad min_sample_size or
    z_critical raises ValueError.
    """
    _check_config(min_sample_size, z_critical)

    if sample_a.sample_size < min_sample_size or sample_b.sample_size < min_sample_size:
        return InsufficientData(
            min_sample_size=min_sample_size,
            size_a=sample_a.sample_size,
            size_b=sample_b.sample_size,
        )

    for label, sample in ((Variant.A.value, sample_a), (Variant.B.value, sample_b)):
        problem = _rate_problem(label, sample.rate)
        if problem:
            return InvalidInput(reason=problem)

    st = proportion_statistics(sample_a, sample_b, z_critical=z_critical)

    if st.z > z_critical:
        winner = Variant.A if sample_a.rate > sample_b.rate else Variant.B
        low, high = st.interval
        return Significant(
            winning_variant=winner,
            interval_low=low,
            interval_high=high,
            z=st.z,
            p_value=st.p_value,
        )
    return NotSignificant(z=st.z, p_value=st.p_value)

def ab_conversion_test(
    rate_a: float, size_a: int,
    rate_b: float, size_b: int,
    min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE,
    z_critical: float = DEFAULT_Z_CRITICAL,
) -> TestOutcome:
    """Four-number form of `evaluate`."""
    return evaluate(
        VariantSample(rate=rate_a, sample_size=size_a),
        VariantSample(rate=rate_b, sample_size=size_b),
        min_sample_size=min_sample_size,
        z_critical=z_critical,
    )
