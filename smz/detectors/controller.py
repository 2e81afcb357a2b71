"""
SMZ Detector - Higher-Timeframe Controller
Uses the confirmation series (e.g. 4h) to promote, exhaust and thrust-confirm zones,
and to find true gaps between consecutive confirmation bars.
"""
import logging
from typing import Iterable, List, Optional

import pandas as pd

from smz.config import EngineConfig
from smz.detectors.common import Candles, as_candles, trailing_mean
from smz.models import Gap, GapDirection, Side, Zone, ZoneStatus

logger = logging.getLogger("SMZ.Controller")


def find_true_gaps(df: pd.DataFrame) -> List[Gap]:
    """
    Detect true gaps on the confirmation series.

    Up gap:   bar N low  > bar N-1 high  -> void [prev.high, cur.low]
    Down gap: bar N high < bar N-1 low   -> void [cur.high, prev.low]
    """
    if len(df) < 2:
        return []

    c = as_candles(df)
    gaps = []
    for i in range(1, len(c)):
        t = int(c.time[i])
        if c.low[i] > c.high[i - 1]:
            gaps.append(Gap(id=f"GAPUP_{t}", direction=GapDirection.UP,
                            top=float(c.low[i]), bottom=float(c.high[i - 1]), time=t))
        elif c.high[i] < c.low[i - 1]:
            gaps.append(Gap(id=f"GAPDN_{t}", direction=GapDirection.DOWN,
                            top=float(c.low[i - 1]), bottom=float(c.high[i]), time=t))
    return gaps


def gap_filled_by(gap: Gap, high: float, low: float) -> bool:
    """A bar fills the gap when it trades back across the whole void."""
    if gap.direction == GapDirection.UP:
        return low <= gap.bottom
    return high >= gap.top


def resolve_gaps(df: pd.DataFrame, gaps: Iterable[Gap], resolved_ids=frozenset(),
                 include_latest: bool = False) -> None:
    """
    Mark gaps resolved when a later confirmation bar filled them.

    The latest bar is left to the alert generator (so the fill is reported)
    unless `include_latest` is set.
    """
    c = as_candles(df)
    stop = len(c) if include_latest else len(c) - 1
    for gap in gaps:
        if gap.resolved:
            continue
        if gap.id in resolved_ids:
            gap.resolved = True
            continue
        for i in range(stop):
            if c.time[i] > gap.time and gap_filled_by(gap, c.high[i], c.low[i]):
                gap.resolved = True
                break


def nearest_gap(gaps: Iterable[Gap], zone: Zone, direction: GapDirection) -> Optional[Gap]:
    """Closest unresolved gap in `direction`, measured from the zone midpoint to the void."""
    mid = zone.midpoint
    best, best_dist = None, float("inf")
    for g in gaps:
        if g.direction != direction or g.resolved:
            continue
        dist = 0.0 if g.bottom <= mid <= g.top else min(abs(mid - g.top), abs(mid - g.bottom))
        if dist < best_dist:
            best, best_dist = g, dist
    return best


def apply_controller(df: pd.DataFrame, zones: List[Zone], gaps: List[Gap],
                     config: EngineConfig, exhausted_ids=frozenset()) -> None:
    """
    Update zones in place from the confirmation series.

    Only confirmation bars that start after a zone's anchor time are considered.
    - Promotion: >= `promotion_min_defenses` bars touch the band with the body outside it
    - Exhaustion: first bar whose body is fully beyond the band on the breakout side
      (bear: below bottom, bull: above top). Terminal.
    - Thrust: in the last `thrust_lookback` bars, range >= multiple x average range,
      volume >= ratio x average volume, close beyond the zone. Links the nearest gap.
    """
    if df.empty:
        return

    c = as_candles(df)
    avg_range = trailing_mean(c.range, config.thrust_lookback)
    avg_volume = trailing_mean(c.volume, config.volume_average_window)

    for zone in zones:
        if zone.id in exhausted_ids:
            zone.status = ZoneStatus.EXHAUSTED

        defenses = _count_defenses(c, zone)
        if defenses >= config.promotion_min_defenses:
            zone.mtf_confirm = True
            zone.checks.confirm_4h = True
            if zone.status == ZoneStatus.ACTIVE:
                zone.status = ZoneStatus.PROMOTED

        if zone.status != ZoneStatus.EXHAUSTED and is_broken(c, zone):
            zone.status = ZoneStatus.EXHAUSTED
            logger.debug(f"Zone {zone.id} exhausted")

        _apply_thrust(c, zone, gaps, config, avg_range, avg_volume)


def is_broken(c: Candles, zone: Zone) -> bool:
    for i in range(len(c)):
        if c.time[i] <= zone.time:
            continue
        body_lo = min(c.open[i], c.close[i])
        body_hi = max(c.open[i], c.close[i])
        if zone.side == Side.BEAR and body_hi < zone.bottom:
            return True
        if zone.side == Side.BULL and body_lo > zone.top:
            return True
    return False


def _count_defenses(c: Candles, zone: Zone) -> int:
    count = 0
    for i in range(len(c)):
        if c.time[i] <= zone.time:
            continue
        body_lo = min(c.open[i], c.close[i])
        body_hi = max(c.open[i], c.close[i])
        body_outside = body_hi < zone.bottom or body_lo > zone.top
        wick_touch = c.low[i] <= zone.top and c.high[i] >= zone.bottom
        if body_outside and wick_touch:
            count += 1
    return count


def _apply_thrust(c: Candles, zone: Zone, gaps: List[Gap], config: EngineConfig,
                  avg_range, avg_volume) -> None:
    n = len(c)
    for i in range(max(1, n - config.thrust_lookback), n):
        if c.time[i] <= zone.time:
            continue
        wide = (c.high[i] - c.low[i]) >= config.thrust_range_multiple * avg_range[i]
        heavy = avg_volume[i] > 0 and c.volume[i] / avg_volume[i] >= config.thrust_volume_ratio
        away = c.close[i] < zone.bottom if zone.side == Side.BEAR else c.close[i] > zone.top

        if wide and heavy and away:
            zone.checks.thrust = True
            direction = GapDirection.DOWN if zone.side == Side.BEAR else GapDirection.UP
            gap = nearest_gap(gaps, zone, direction)
            if gap is not None:
                zone.gap_id = gap.id
                zone.checks.true_gap = True
            break
