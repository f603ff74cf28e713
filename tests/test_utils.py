import pandas as pd
import pytest

from siteprofile import utils


def test_weighted_mean_renormalises_over_present_frames(flat_frame):
    a = flat_frame(["2025-01-01", "2025-01-02"], 10)
    b = flat_frame(["2025-01-01"], 40)
    out = utils.weighted_mean_frames({"a": a, "b": b}, {"a": 0.75, "b": 0.25})
    assert out.loc[pd.Timestamp("2025-01-01")].tolist() == pytest.approx([17.5] * 24)
    # only a reports the second day, so its value stands alone
    assert out.loc[pd.Timestamp("2025-01-02")].tolist() == pytest.approx([10.0] * 24)


def test_weighted_mean_of_nothing_is_empty(flat_frame):
    assert utils.weighted_mean_frames({}, {}).empty
    assert utils.weighted_mean_frames({"a": utils.empty_day_frame()}, {"a": 1.0}).empty
    single = utils.weighted_mean_frames({"a": flat_frame(["2025-01-01"], 5)}, {"a": 0.3})
    assert single.iloc[0].tolist() == pytest.approx([5.0] * 24)
