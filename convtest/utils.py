"""
convtest/utils.py

Caller-side helpers around the engine:
  - Building VariantSamples from per-unit data (pandas)
  - Formatting outcomes for people (messages) and machines (report dicts)
  - Number formatting for reports
"""

from __future__ import annotations
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .stats import (
    InsufficientData,
    InvalidInput,
    NotSignificant,
    Significant,
    TestOutcome,
    VariantSample,
)


# -------------------------
# Validation / aggregation
# -------------------------

def check_columns(df: pd.DataFrame, required: Sequence[str]) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

def infer_labels(groups: pd.Series) -> Tuple[str, str]:
    """
    Pick (A, B) labels from a column holding exactly two groups.
    Prefers a/b, control/treatment, 0/1 (case-insensitive); otherwise sorted order.
    """
    uniq = list(pd.unique(groups.dropna()))
    if len(uniq) != 2:
        raise ValueError(f"Expected exactly 2 groups, found: {uniq}")
    normalized = {str(u).lower(): u for u in uniq}
    for a, b in [("a", "b"), ("control", "treatment"), ("0", "1")]:
        if a in normalized and b in normalized:
            return normalized[a], normalized[b]
    first, second = sorted(uniq, key=str)
    return first, second

def samples_from_frame(df: pd.DataFrame,
                       group_col: str,
                       metric_col: str,
                       label_a: Optional[str] = None,
                       label_b: Optional[str] = None) -> Tuple[VariantSample, VariantSample]:
    """
    Aggregate per-unit rows (metric_col is 0/1 or bool) into one VariantSample
    per group. Rows with a missing metric are dropped.
    """
    check_columns(df, [group_col, metric_col])
    if (label_a is None) != (label_b is None):
        raise ValueError("Provide both label_a and label_b, or neither")
    if label_a is None:
        label_a, label_b = infer_labels(df[group_col])

    # labels compare as strings: a CLI "0" must match an int64 column
    groups = df[group_col]
    present = {str(g) for g in groups.dropna().unique()}
    for label in (label_a, label_b):
        if str(label) not in present:
            raise ValueError(f"Group {label!r} not found in {group_col!r}: {sorted(present)}")

    out = []
    for label in (label_a, label_b):
        mask = groups.notna() & (groups.astype(str) == str(label))
        x = df.loc[mask, metric_col].dropna().astype(float)
        if not np.isin(x.to_numpy(), (0.0, 1.0)).all():
            raise ValueError(f"{metric_col} must be 0/1 for group {label!r}")
        out.append(VariantSample.from_counts(int(x.sum()), int(x.shape[0])))
    return out[0], out[1]


# -------------------------
# Reporting / formatting
# -------------------------

def as_report_dict(obj) -> Dict:
    """
    Convert an outcome (or any dataclass / dict) to a plain dict for JSON/printing.
    Outcomes get their `kind`; enums become their values.
    """
    if is_dataclass(obj):
        out = asdict(obj)
        kind = getattr(obj, "kind", None)
        if kind is not None:
            out = {"kind": kind, **out}
    elif isinstance(obj, dict):
        out = dict(obj)
    else:
        raise TypeError("Expected dataclass or dict.")
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in out.items()}

def format_outcome(outcome: TestOutcome) -> str:
    if isinstance(outcome, Significant):
        return (
            f"Version {outcome.winning_variant.value} is the winner!\n"
            f"The increase in conversion rates is likely between "
            f"{fmt_pct(outcome.interval_low)} and {fmt_pct(outcome.interval_high)}."
        )
    if isinstance(outcome, NotSignificant):
        return "No statistically significant difference was found."
    if isinstance(outcome, InsufficientData):
        return "Insufficient sample size."
    if isinstance(outcome, InvalidInput):
        return f"Invalid input: {outcome.reason}"
    raise TypeError(f"Unknown outcome: {outcome!r}")

def fmt_pct(x: float, digits: int = 2) -> str:
    return f"{100.0 * x:.{digits}f}%"

def fmt_float(x: float, digits: int = 4) -> str:
    return f"{x:.{digits}f}"

def fmt_pvalue(p: float) -> str:
    if p < 1e-4:
        return "<1e-4"
    return f"{p:.4f}"

def fmt_ci(ci: Tuple[float, float], digits: int = 4) -> str:
    lo, hi = ci
    return f"[{lo:.{digits}f}, {hi:.{digits}f}]"
