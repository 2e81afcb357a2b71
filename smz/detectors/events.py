"""
SMZ Detector - Pattern Events
Flags pin bars, absorption (effort vs result) and swing-failure sweeps bar by bar.
"""
import logging
from typing import Dict, List

import numpy as np
import pandas as pd

from smz.config import EngineConfig
from smz.detectors.common import Candles, as_candles, ratio, trailing_mean
from smz.models import Event, EventType, Side

logger = logging.getLogger("SMZ.Events")


def detect_event_flags(df: pd.DataFrame, config: EngineConfig) -> Dict[EventType, np.ndarray]:
    """
    Per-bar boolean flags for every event type.

    Parameters:
    - df: bars with columns [time, open, high, low, close, volume], ascending
    - config: thresholds (pin/absorption fractions, volume window, pivot window, reclaim bars)

    Returns:
    - dict EventType -> bool array aligned with df. Bars inside the warm-up
      window (the first `pivot_window` bars) are always False.
    """
    n = len(df)
    flags = {t: np.zeros(n, dtype=bool) for t in EventType}
    if n <= config.pivot_window:
        return flags

    c = as_candles(df)
    _pin_flags(c, config, flags)
    _absorption_flags(c, config, flags)
    _sweep_flags(c, config, flags)

    warmup = min(config.pivot_window, n)
    for arr in flags.values():
        arr[:warmup] = False
    return flags


def detect_events(df: pd.DataFrame, config: EngineConfig) -> List[Event]:
    """List of events in bar order. Pins and absorption are priced at the bar's
    extreme on the event side; sweeps at the broken pivot level."""
    flags = detect_event_flags(df, config)
    if not len(df):
        return []

    c = as_candles(df)
    prior_low, prior_high = _prior_extremes(c, config.pivot_window)
    events = []
    for i in range(len(c)):
        for etype, arr in flags.items():
            if not arr[i]:
                continue
            if etype == EventType.SWEEP_BULL:
                price = prior_low[i]
            elif etype == EventType.SWEEP_BEAR:
                price = prior_high[i]
            elif etype.side == Side.BULL:
                price = c.low[i]
            else:
                price = c.high[i]
            events.append(Event(type=etype, time=int(c.time[i]), price=float(price), index=i))

    logger.debug(f"Detected {len(events)} events on {len(df)} bars")
    return events


def is_rejection_wick(high: float, low: float, open_: float, close: float,
                      bullish: bool, wick_fraction: float) -> bool:
    """Same wick test as the pin bar: the wick on the given side covers at least `wick_fraction` of range."""
    r = high - low
    if r <= 0:
        return False
    wick = (min(open_, close) - low) if bullish else (high - max(open_, close))
    return wick / r >= wick_fraction


# ---------- pins / absorption ----------

def _pin_flags(c: Candles, cfg: EngineConfig, flags: dict) -> None:
    r = c.range
    has_range = r > 0
    body_ok = ratio(c.body, r) <= cfg.pin_body_fraction

    flags[EventType.PIN_BULL] = (
        has_range
        & (ratio(c.lower_wick, r) >= cfg.pin_wick_fraction)
        & body_ok
        & ((c.close >= c.open) | (c.close >= c.low + 0.6 * r))
    )
    flags[EventType.PIN_BEAR] = (
        has_range
        & (ratio(c.upper_wick, r) >= cfg.pin_wick_fraction)
        & body_ok
        & ((c.close <= c.open) | (c.close <= c.low + 0.4 * r))
    )


def _absorption_flags(c: Candles, cfg: EngineConfig, flags: dict) -> None:
    r = c.range
    vavg = trailing_mean(c.volume, cfg.volume_average_window)
    heavy = (vavg > 0) & (ratio(c.volume, vavg) >= cfg.absorption_volume_ratio)
    small_body = (r > 0) & (ratio(c.body, r) <= cfg.absorption_body_fraction)
    mid = c.low + 0.5 * r

    flags[EventType.ABSORPTION_BULL] = heavy & small_body & (c.lower_wick >= c.upper_wick) & (c.close >= mid)
    flags[EventType.ABSORPTION_BEAR] = heavy & small_body & (c.upper_wick >= c.lower_wick) & (c.close <= mid)


# ---------- sweeps (swing failure) ----------

def _prior_extremes(c: Candles, lookback: int):
    """Lowest low / highest high of the `lookback` bars before each bar (NaN when none)."""
    low = pd.Series(c.low).rolling(window=lookback, min_periods=1).min().shift(1).to_numpy()
    high = pd.Series(c.high).rolling(window=lookback, min_periods=1).max().shift(1).to_numpy()
    return low, high


def _sweep_flags(c: Candles, cfg: EngineConfig, flags: dict) -> None:
    n = len(c)
    prior_low, prior_high = _prior_extremes(c, cfg.pivot_window)
    bull = np.zeros(n, dtype=bool)
    bear = np.zeros(n, dtype=bool)

    for i in range(1, n):
        last = min(i + cfg.sweep_reclaim_bars, n - 1)
        if c.low[i] < prior_low[i]:
            # broke the prior low; a close back at/above it within the reclaim window
            bull[i] = bool((c.close[i + 1:last + 1] >= prior_low[i]).any())
        if c.high[i] > prior_high[i]:
            bear[i] = bool((c.close[i + 1:last + 1] <= prior_high[i]).any())

    flags[EventType.SWEEP_BULL] = bull
    flags[EventType.SWEEP_BEAR] = bear
