"""
Bar validation.
Normalizes any supported bar input into the engine's DataFrame layout and drops invalid bars one by one.
"""
import logging
from bisect import bisect_left
from dataclasses import asdict, is_dataclass
from typing import Iterable, List, Union

import numpy as np
import pandas as pd

from smz.errors import InvalidBarError
from smz.models import Bar

logger = logging.getLogger("SMZ.Data")

BAR_COLUMNS = ["time", "open", "high", "low", "close", "volume"]

BarsLike = Union[pd.DataFrame, Iterable[Bar], Iterable[dict], None]


def empty_bars() -> pd.DataFrame:
    df = pd.DataFrame({c: pd.Series(dtype="float64") for c in BAR_COLUMNS})
    df["time"] = df["time"].astype("int64")
    return df


def to_frame(bars: BarsLike) -> pd.DataFrame:
    """
    Converts bars to a DataFrame with columns [time, open, high, low, close, volume].

    Accepts:
    - DataFrame with those columns, or with a DatetimeIndex / datetime 'time' column
    - list of Bar dataclasses
    - list of dicts with the same keys

    `time` becomes integer UNIX seconds. A missing volume column is filled with 0.
    """
    if bars is None:
        return empty_bars()

    if isinstance(bars, pd.DataFrame):
        df = bars.copy()
    else:
        rows = [asdict(b) if is_dataclass(b) else dict(b) for b in bars]
        if not rows:
            return empty_bars()
        df = pd.DataFrame(rows)

    if df.empty:
        return empty_bars()

    df.columns = [c[0].lower() if isinstance(c, tuple) else str(c).lower() for c in df.columns]
    if "time" not in df.columns:
        if isinstance(df.index, pd.DatetimeIndex):
            df = df.reset_index().rename(columns={df.index.name or "index": "time"})
            df.columns = [str(c).lower() for c in df.columns]
        else:
            logger.warning("Bars have no 'time' column; ignoring series")
            return empty_bars()

    if "volume" not in df.columns:
        df["volume"] = 0.0

    missing = [c for c in BAR_COLUMNS if c not in df.columns]
    if missing:
        logger.warning(f"Bars missing columns {missing}; ignoring series")
        return empty_bars()

    t = df["time"]
    if pd.api.types.is_datetime64_any_dtype(t):
        if getattr(t.dt, "tz", None) is not None:
            t = t.dt.tz_convert("UTC").dt.tz_localize(None)
        df["time"] = t.astype("datetime64[ns]").astype("int64") // 1_000_000_000
    else:
        df["time"] = pd.to_numeric(t, errors="coerce")
        # epoch milliseconds
        df.loc[df["time"] > 1e12, "time"] = df["time"] // 1000

    df = df[BAR_COLUMNS].copy()
    for c in ["open", "high", "low", "close", "volume"]:
        df[c] = pd.to_numeric(df[c], errors="coerce").astype("float64")
    df["volume"] = df["volume"].fillna(0.0)
    return df.reset_index(drop=True)


def clean_bars(bars: BarsLike, label: str = "") -> pd.DataFrame:
    """
    Returns only valid bars, in order.

    A bar is skipped (never the whole series) when:
    - any price or its time is missing / not finite
    - high < low, or open/close outside [low, high]
    - volume is negative
    - its time breaks the ascending order: the longest strictly increasing
      run of times is kept, so one spiked timestamp costs only that bar
      and a repeated time keeps its first bar
    """
    df = to_frame(bars)
    if df.empty:
        return df

    prices = df[["open", "high", "low", "close"]].to_numpy()
    finite = np.isfinite(prices).all(axis=1) & np.isfinite(df["time"].to_numpy(dtype="float64"))
    shape_ok = (
        (df["high"] >= df["low"])
        & (df["open"].between(df["low"], df["high"]))
        & (df["close"].between(df["low"], df["high"]))
        & (df["volume"] >= 0)
    ).to_numpy()
    candidate = finite & shape_ok

    positions = np.flatnonzero(candidate)
    keep = np.zeros(len(df), dtype=bool)
    keep[positions[increasing_run(df["time"].to_numpy()[positions])]] = True

    skipped = int(len(df) - keep.sum())
    if skipped:
        logger.warning(f"Skipped {skipped} invalid bar(s){f' on {label}' if label else ''}")

    out = df.loc[keep].reset_index(drop=True)
    out["time"] = out["time"].astype("int64")
    return out


def check_bar(bar: Bar) -> None:
    """Raises InvalidBarError for a single bar that clean_bars would skip (ordering aside)."""
    values = (bar.time, bar.open, bar.high, bar.low, bar.close, bar.volume)
    if not all(np.isfinite(v) for v in values):
        raise InvalidBarError(f"Bar {bar.time} has non-finite values")
    if bar.high < bar.low:
        raise InvalidBarError(f"Bar {bar.time}: high < low")
    if not (bar.low <= bar.open <= bar.high and bar.low <= bar.close <= bar.high):
        raise InvalidBarError(f"Bar {bar.time}: open/close outside [low, high]")
    if bar.volume < 0:
        raise InvalidBarError(f"Bar {bar.time}: negative volume")


def increasing_run(times) -> np.ndarray:
    """
    Positions of the longest strictly increasing subsequence of `times`.
    Ties go to the earlier bar.
    """
    tails: List[float] = []
    tail_pos: List[int] = []
    parent = np.full(len(times), -1, dtype=np.int64)
    for i, t in enumerate(times):
        j = bisect_left(tails, t)
        if j < len(tails) and tails[j] == t:
            continue
        if j == len(tails):
            tails.append(t)
            tail_pos.append(i)
        else:
            tails[j] = t
            tail_pos[j] = i
        parent[i] = tail_pos[j - 1] if j > 0 else -1

    run = []
    i = tail_pos[-1] if tail_pos else -1
    while i >= 0:
        run.append(i)
        i = parent[i]
    return np.array(run[::-1], dtype=np.int64)
