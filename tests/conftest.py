import pandas as pd
import pytest

from smz.config import EngineConfig
from smz.data.validation import BAR_COLUMNS
from smz.models import Origin, Side, Zone, ZoneChecks

# 2023-11-15 00:00 UTC, aligned to every bucket used in the tests
T0 = 1_700_006_400
H4 = 4 * 3600

BODY = (99.9, 100.1, 99.9, 100.1)   # full-body candle, never an event
FLAT = (100.0, 100.0, 100.0, 100.0)


def make_frame(rows, start=T0, step=600):
    """rows of (open, high, low, close[, volume]) -> bar DataFrame"""
    records = []
    for i, row in enumerate(rows):
        o, h, l, c = row[:4]
        v = row[4] if len(row) > 4 else 100.0
        records.append([start + i * step, float(o), float(h), float(l), float(c), float(v)])
    df = pd.DataFrame(records, columns=BAR_COLUMNS)
    df["time"] = df["time"].astype("int64")
    return df


def supply_rows():
    """
    40 x 10m bars around 100 with two upper-wick probes at ~101:
    bar 20 (first probe, alone in its band) and bar 30 (pin + sweep, second touch).
    """
    rows = [BODY] * 40
    rows[20] = (100.0, 101.0, 99.9, 100.05)
    rows[30] = (100.2, 101.02, 100.0, 100.1)
    return rows


def make_zone(side=Side.BEAR, top=101.0, bottom=100.0, time=T0, timeframe="10m", **kwargs):
    prefix = "DIST" if side == Side.BEAR else "ACCUM"
    return Zone(
        id=kwargs.pop("id", f"{prefix}_{timeframe}_{time}"),
        side=side,
        timeframe=timeframe,
        time=time,
        index=kwargs.pop("index", 0),
        top=top,
        bottom=bottom,
        origin=kwargs.pop("origin", Origin.PIN),
        checks=kwargs.pop("checks", ZoneChecks(wick_side=side)),
        **kwargs,
    )


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def supply_bars():
    return make_frame(supply_rows())
