from __future__ import annotations

import argparse
import json
import logging
import math
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from .stats import (
    DEFAULT_MIN_SAMPLE_SIZE,
    DEFAULT_Z_CRITICAL,
    InvalidInput,
    VariantSample,
    evaluate,
    proportion_statistics,
)
from .utils import as_report_dict, fmt_ci, fmt_float, fmt_pvalue, format_outcome, samples_from_frame

logger = logging.getLogger(__name__)

# Demo inputs: A converts 200/1000, B converts 560/800
DEMO_COUNTS = ((200, 1000), (560, 800))


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="convtest",
        description="Compare the conversion rates of two variants with a pooled z-test.",
    )
    ap.add_argument("--rate-a", type=float, default=None, help="Conversion rate of version A (0..1)")
    ap.add_argument("--rate-b", type=float, default=None, help="Conversion rate of version B (0..1)")
    ap.add_argument("--conv-a", type=int, default=None, help="Conversions of version A")
    ap.add_argument("--conv-b", type=int, default=None, help="Conversions of version B")
    ap.add_argument("--n-a", type=int, default=None, help="Samples exposed to version A")
    ap.add_argument("--n-b", type=int, default=None, help="Samples exposed to version B")
    ap.add_argument("--input", type=str, default=None, help="Per-unit CSV (one row per user)")
    ap.add_argument("--group-col", type=str, default="group")
    ap.add_argument("--metric", type=str, default="converted", help="0/1 metric column")
    ap.add_argument("--label-a", type=str, default=None)
    ap.add_argument("--label-b", type=str, default=None)
    ap.add_argument("--min-sample-size", type=int, default=DEFAULT_MIN_SAMPLE_SIZE)
    ap.add_argument("--z-critical", type=float, default=DEFAULT_Z_CRITICAL)
    ap.add_argument("--json", action="store_true", help="Print a JSON report instead of a message")
    ap.add_argument("--out-json", type=str, default=None, help="Write a JSON report to this path")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def _samples_from_args(ap: argparse.ArgumentParser,
                       args: argparse.Namespace) -> Tuple[VariantSample, VariantSample]:
    rates = (args.rate_a, args.rate_b)
    convs = (args.conv_a, args.conv_b)
    sizes = (args.n_a, args.n_b)
    modes = [name for name, given in (
        ("rates", any(v is not None for v in rates)),
        ("counts", any(v is not None for v in convs)),
        ("csv", args.input is not None),
    ) if given]

    if len(modes) > 1:
        ap.error(f"Choose one input mode, got: {', '.join(modes)}")

    if not modes:
        if any(v is not None for v in sizes):
            ap.error("--n-a/--n-b need --rate-a/--rate-b or --conv-a/--conv-b")
        logger.debug("No inputs given, using demo counts %s", DEMO_COUNTS)
        (xa, na), (xb, nb) = DEMO_COUNTS
        return VariantSample.from_counts(xa, na), VariantSample.from_counts(xb, nb)

    mode = modes[0]
    if mode == "csv":
        path = Path(args.input)
        logger.debug("Reading %s (group=%s, metric=%s)", path, args.group_col, args.metric)
        try:
            df = pd.read_csv(path)
            return samples_from_frame(df, args.group_col, args.metric, args.label_a, args.label_b)
        except (OSError, ValueError) as e:
            ap.error(f"Cannot use {path}: {e}")

    if any(v is None for v in sizes):
        ap.error("--n-a and --n-b are required")
    if mode == "rates":
        if any(v is None for v in rates):
            ap.error("--rate-a and --rate-b must be given together")
        return (VariantSample(rate=args.rate_a, sample_size=args.n_a),
                VariantSample(rate=args.rate_b, sample_size=args.n_b))

    if any(v is None for v in convs):
        ap.error("--conv-a and --conv-b must be given together")
    try:
        return (VariantSample.from_counts(args.conv_a, args.n_a),
                VariantSample.from_counts(args.conv_b, args.n_b))
    except ValueError as e:
        ap.error(str(e))


def _json_safe(obj):
    """Non-finite floats (e.g. --rate-a nan) become None so the report is valid JSON."""
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    if isinstance(obj, dict):
        return {k: _json_safe(v) for k, v in obj.items()}
    return obj


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    sample_a, sample_b = _samples_from_args(ap, args)
    logger.debug("A: rate=%s n=%d | B: rate=%s n=%d",
                 fmt_float(sample_a.rate), sample_a.sample_size,
                 fmt_float(sample_b.rate), sample_b.sample_size)

    try:
        outcome = evaluate(sample_a, sample_b,
                           min_sample_size=args.min_sample_size,
                           z_critical=args.z_critical)
    except ValueError as e:
        ap.error(str(e))

    if logger.isEnabledFor(logging.DEBUG) and outcome.kind in ("significant", "not_significant"):
        st = proportion_statistics(sample_a, sample_b, z_critical=args.z_critical)
        logger.debug("pooled=%s se=%s z=%s p=%s interval=%s",
                     fmt_float(st.pooled), fmt_float(st.se), fmt_float(st.z),
                     fmt_pvalue(st.p_value), fmt_ci(st.interval))

    report = _json_safe({
        "inputs": {
            "a": as_report_dict(sample_a),
            "b": as_report_dict(sample_b),
            "min_sample_size": args.min_sample_size,
            "z_critical": args.z_critical,
        },
        "outcome": as_report_dict(outcome),
        "message": format_outcome(outcome),
    })

    if args.out_json:
        out = Path(args.out_json)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(report, indent=2, allow_nan=False), encoding="utf-8")
        logger.debug("Wrote report: %s", out)

    if args.json:
        print(json.dumps(report, indent=2, allow_nan=False))
    else:
        print(report["message"])

    return 1 if isinstance(outcome, InvalidInput) else 0


if __name__ == "__main__":
    raise SystemExit(main())
