"""
SMZ Detector - Zone Former
Turns pattern events plus wick clusters into supply (bear) and demand (bull) zones per timeframe.
"""
import logging
from typing import Dict, List

import numpy as np
import pandas as pd

from smz.config import EngineConfig
from smz.detectors.band_hits import count_band_hits
from smz.detectors.common import Candles, as_candles
from smz.detectors.events import detect_event_flags
from smz.models import EventType, Origin, Side, Zone, ZoneChecks

logger = logging.getLogger("SMZ.Zones")

# minimum band thickness so top never equals bottom
MIN_BAND = 1e-8

_SIDE_EVENTS = {
    Side.BULL: (EventType.SWEEP_BULL, EventType.PIN_BULL, EventType.ABSORPTION_BULL),
    Side.BEAR: (EventType.SWEEP_BEAR, EventType.PIN_BEAR, EventType.ABSORPTION_BEAR),
}


def form_zones(df: pd.DataFrame, timeframe: str, config: EngineConfig) -> List[Zone]:
    """
    Detect zones on one timeframe.

    A side is accepted on bar i when:
    - an event of that side fired on bar i (sweep, pin or absorption)
    - at least `min_hits[tf]` wicks in the trailing cluster window touch the band
      around the bar's high (bear) or low (bull)
    - the share of those touching bars whose body stays outside the band is
      at least `min_body_outside_ratio`
    - the last same-side zone is at least `cooldown_bars` bars back
    - no recent same-side zone has its midpoint within `dedupe_epsilon_pct`

    Parameters:
    - df: clean ascending bars for the timeframe
    - timeframe: label used in zone ids
    - config: engine tunables

    Returns:
    - zones in anchor order, capped to `max_zones` (most recent kept)
    """
    if len(df) <= config.pivot_window:
        logger.debug(f"[{timeframe}] {len(df)} bars: not enough history for zones")
        return []

    c = as_candles(df)
    flags = detect_event_flags(df, config)
    band = config.band_fraction(timeframe)
    min_hits = config.min_hits_for(timeframe)

    zones: List[Zone] = []
    last_index = {Side.BULL: -1, Side.BEAR: -1}

    for i in range(len(c)):
        for side in (Side.BEAR, Side.BULL):
            if not any(flags[e][i] for e in _SIDE_EVENTS[side]):
                continue

            last = last_index[side]
            if last >= 0 and i - last < config.cooldown_bars:
                continue

            center = c.high[i] if side == Side.BEAR else c.low[i]
            band_hits = count_band_hits(c, i, center, band, config.cluster_window, side)
            if band_hits.hits < min_hits:
                continue
            if band_hits.body_outside_ratio < config.min_body_outside_ratio:
                continue

            zone = _build_zone(c, i, side, timeframe, flags, band_hits.body_outside_ratio)
            if _is_duplicate(zone, zones, config):
                logger.debug(f"[{timeframe}] Dropped duplicate {side.value} zone at {zone.time}")
                continue

            zones.append(zone)
            last_index[side] = i

    if len(zones) > config.max_zones:
        zones = zones[len(zones) - config.max_zones:]

    logger.debug(f"[{timeframe}] Formed {len(zones)} zones from {len(df)} bars")
    return zones


def form_zones_by_timeframe(bars: Dict[str, pd.DataFrame], config: EngineConfig) -> Dict[str, List[Zone]]:
    return {tf: form_zones(df, tf, config) for tf, df in bars.items()}


def zone_bounds(c: Candles, i: int, side: Side):
    """Bear: wick top down to body midpoint. Bull: wick low up to body midpoint."""
    mid = (c.open[i] + c.close[i]) / 2
    if side == Side.BEAR:
        top = float(c.high[i])
        bottom = float(min(mid, top - MIN_BAND))
    else:
        bottom = float(c.low[i])
        top = float(max(mid, bottom + MIN_BAND))
    return top, bottom


def zone_id(side: Side, timeframe: str, anchor_time: int) -> str:
    prefix = "ACCUM" if side == Side.BULL else "DIST"
    return f"{prefix}_{timeframe}_{int(anchor_time)}"


def midpoints_match(a: float, b: float, epsilon_pct: float) -> bool:
    return abs(a - b) <= abs(b) * epsilon_pct


def _build_zone(c: Candles, i: int, side: Side, timeframe: str,
                flags: Dict[EventType, np.ndarray], body_outside_ratio: float) -> Zone:
    sweep_evt, pin_evt, abs_evt = _SIDE_EVENTS[side]
    swept = bool(flags[sweep_evt][i])
    pinned = bool(flags[pin_evt][i])
    absorbed = bool(flags[abs_evt][i])

    if swept:
        origin = Origin.SWEEP
    elif pinned:
        origin = Origin.PIN
    else:
        origin = Origin.ABSORPTION

    top, bottom = zone_bounds(c, i, side)
    anchor_time = int(c.time[i])
    return Zone(
        id=zone_id(side, timeframe, anchor_time),
        side=side,
        timeframe=timeframe,
        time=anchor_time,
        index=i,
        top=top,
        bottom=bottom,
        origin=origin,
        checks=ZoneChecks(
            wick_side=side,
            body_outside_ratio=body_outside_ratio,
            bodies_outside=True,
            effort_vs_result=absorbed,
            sweep=swept,
        ),
    )


def _is_duplicate(zone: Zone, zones: List[Zone], config: EngineConfig) -> bool:
    recent = zones[max(0, len(zones) - config.dedupe_lookback):]
    return any(
        z.side == zone.side and midpoints_match(z.midpoint, zone.midpoint, config.dedupe_epsilon_pct)
        for z in recent
    )
