import pandas as pd
import pytest

from smz.data.resampler import resample_all, resample_bars
from smz.data.timeframes import sort_timeframes, timeframe_seconds

from conftest import T0, make_frame


@pytest.fixture
def ten_minute():
    rows = [
        (100.0, 100.4, 99.8, 100.2, 10),
        (100.2, 100.9, 100.1, 100.7, 20),
        (100.7, 100.8, 99.5, 99.6, 30),
        (99.6, 99.9, 99.4, 99.8, 40),
        (99.8, 100.3, 99.7, 100.1, 50),
        (100.1, 100.2, 99.9, 100.0, 60),
        (100.0, 101.5, 100.0, 101.2, 70),
    ]
    return make_frame(rows)


def test_timeframe_labels():
    assert timeframe_seconds("10m") == 600
    assert timeframe_seconds("4h") == 14400
    assert timeframe_seconds("H1") == 3600
    assert timeframe_seconds("D1") == 86400
    assert sort_timeframes(["4h", "10m", "1h"]) == ["10m", "1h", "4h"]
    with pytest.raises(ValueError):
        timeframe_seconds("weekly")


def test_resample_folds_bucket(ten_minute):
    out = resample_bars(ten_minute, "1h")

    assert list(out["time"]) == [T0, T0 + 3600]
    first = out.iloc[0]
    assert first["open"] == 100.0
    assert first["high"] == 100.9
    assert first["low"] == 99.4
    assert first["close"] == 100.0
    assert first["volume"] == 210.0

    second = out.iloc[1]
    assert (second["open"], second["close"], second["volume"]) == (100.0, 101.2, 70.0)


def test_resample_is_idempotent_at_own_bucket(ten_minute):
    out = resample_bars(ten_minute, 600)
    pd.testing.assert_frame_equal(out, ten_minute)

    hourly = resample_bars(ten_minute, "1h")
    pd.testing.assert_frame_equal(resample_bars(hourly, "1h"), hourly)


def test_resample_all_derives_every_timeframe(ten_minute):
    out = resample_all(ten_minute, ["10m", "30m", "1h"])
    assert set(out) == {"10m", "30m", "1h"}
    assert len(out["10m"]) == 7
    assert len(out["30m"]) == 3
    assert len(out["1h"]) == 2


def test_resample_rejects_bad_bucket(ten_minute):
    with pytest.raises(ValueError):
        resample_bars(ten_minute, 0)


def test_resample_empty_input():
    assert resample_bars([], "1h").empty
