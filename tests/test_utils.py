import numpy as np
import pandas as pd
import pytest

from convtest.stats import (
    InsufficientData,
    InvalidInput,
    NotSignificant,
    Significant,
    Variant,
    VariantSample,
)
from convtest.utils import (
    as_report_dict,
    check_columns,
    fmt_ci,
    fmt_pct,
    fmt_pvalue,
    format_outcome,
    infer_labels,
    samples_from_frame,
)


def _frame():
    # control: 2/5 converted, treatment: 4/6 converted
    return pd.DataFrame({
        "group": ["control"] * 5 + ["treatment"] * 6,
        "converted": [1, 0, 1, 0, 0] + [1, 1, 0, 1, 1, 0],
    })


def test_samples_from_frame_infers_control_treatment():
    a, b = samples_from_frame(_frame(), "group", "converted")
    assert a == VariantSample(rate=0.4, sample_size=5)
    assert b.sample_size == 6
    assert b.rate == pytest.approx(4 / 6)


def test_samples_from_frame_explicit_labels():
    a, b = samples_from_frame(_frame(), "group", "converted", label_a="treatment", label_b="control")
    assert a.sample_size == 6
    assert b.sample_size == 5


def test_samples_from_frame_drops_missing_metric():
    df = pd.DataFrame({
        "group": ["A", "A", "A", "B", "B"],
        "converted": [1.0, np.nan, 0.0, True, False],
    })
    a, b = samples_from_frame(df, "group", "converted")
    assert a == VariantSample(rate=0.5, sample_size=2)
    assert b == VariantSample(rate=0.5, sample_size=2)


def test_samples_from_frame_rejects_non_binary_metric():
    df = pd.DataFrame({"group": ["A", "B"], "revenue": [12.5, 0.0]})
    with pytest.raises(ValueError, match="0/1"):
        samples_from_frame(df, "group", "revenue")


def test_samples_from_frame_needs_both_labels():
    with pytest.raises(ValueError, match="both"):
        samples_from_frame(_frame(), "group", "converted", label_a="control")


def test_check_columns_reports_missing():
    with pytest.raises(ValueError, match="clicks"):
        check_columns(_frame(), ["group", "clicks"])


def test_infer_labels():
    assert infer_labels(pd.Series(["B", "A", "B"])) == ("A", "B")
    assert infer_labels(pd.Series(["treatment", "control"])) == ("control", "treatment")
    assert infer_labels(pd.Series(["new", "old", None])) == ("new", "old")
    with pytest.raises(ValueError, match="exactly 2"):
        infer_labels(pd.Series(["a", "b", "c"]))


def test_format_significant():
    res = Significant(winning_variant=Variant.A, interval_low=0.0123, interval_high=0.0456,
                      z=3.1, p_value=0.002)
    assert format_outcome(res) == (
        "Version A is the winner!\n"
        "The increase in conversion rates is likely between 1.23% and 4.56%."
    )


def test_format_other_outcomes():
    assert format_outcome(NotSignificant(z=0.5, p_value=0.6)) == \
        "No statistically significant difference was found."
    assert format_outcome(InsufficientData(5, 3, 1000)) == "Insufficient sample size."
    assert format_outcome(InvalidInput("rate_a must be in [0, 1], got 2.0")) == \
        "Invalid input: rate_a must be in [0, 1], got 2.0"
    with pytest.raises(TypeError):
        format_outcome("significant")


def test_as_report_dict_outcome():
    res = Significant(winning_variant=Variant.B, interval_low=0.1, interval_high=0.2,
                      z=4.0, p_value=6e-5)
    d = as_report_dict(res)
    assert d == {
        "kind": "significant",
        "winning_variant": "B",
        "interval_low": 0.1,
        "interval_high": 0.2,
        "z": 4.0,
        "p_value": 6e-5,
    }
    assert as_report_dict(VariantSample(0.2, 10)) == {"rate": 0.2, "sample_size": 10}
    assert as_report_dict({"x": 1}) == {"x": 1}
    with pytest.raises(TypeError):
        as_report_dict(3)


def test_formatters():
    assert fmt_pct(0.4540) == "45.40%"
    assert fmt_pct(-0.001) == "-0.10%"
    assert fmt_pvalue(0.5) == "0.5000"
    assert fmt_pvalue(1e-9) == "<1e-4"
    assert fmt_ci((-0.01, 0.03), digits=2) == "[-0.01, 0.03]"


def test_samples_from_frame_rejects_unknown_label():
    # a mistyped label must not turn into an empty sample
    with pytest.raises(ValueError, match="'contorl' not found"):
        samples_from_frame(_frame(), "group", "converted", label_a="contorl", label_b="treatment")


def test_samples_from_frame_string_labels_match_numeric_groups():
    df = pd.DataFrame({
        "group": [0] * 4 + [1] * 5,
        "converted": [1, 0, 0, 0] + [1, 1, 1, 0, 1],
    })
    a, b = samples_from_frame(df, "group", "converted", label_a="0", label_b="1")
    assert a == VariantSample(rate=0.25, sample_size=4)
    assert b == VariantSample(rate=0.8, sample_size=5)
