"""
SMZ Detector - Liquidity Shelves
Window-scan zone finder: slides 16-24h boxes over hourly bars, keeps the tight ones,
clusters their wick touches into price buckets and scores the best shelf.
A sticky secondary keeps the previous primary visible while it is still distinct.
"""
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from smz.data.resampler import resample_bars
from smz.data.validation import BarsLike, clean_bars, to_frame
from smz.detectors.common import Candles, as_candles
from smz.models import ZoneRole

logger = logging.getLogger("SMZ.Shelves")

HOUR = 3600

# Scoring weights: wick density, dwell, touches, retests, recency
W_DENSITY = 0.35
W_DWELL = 0.30
W_TOUCHES = 0.20
W_RETESTS = 0.10
W_RECENCY = 0.05


@dataclass
class ShelfConfig:
    lookback_hours: int = 24 * 30
    box_min_hours: int = 16
    box_max_hours: int = 24
    box_bps_limit: float = 35.0     # max box height, bps of its midpoint
    bucket_bps: float = 5.0
    merge_bps: float = 10.0
    min_touches: int = 3
    min_dwell_hours: int = 8
    dwell_expand_buckets: int = 1
    retest_lookahead_hours: int = 30
    retest_buffer_bps: float = 8.0
    sticky_tolerance: int = HOUR
    sticky_max_overlap: float = 0.30


@dataclass
class Shelf:
    start_time: int
    end_time: int
    low: float
    high: float
    score: float
    touches: int
    dwell: int
    retests: int
    span_hours: int
    bps: float
    role: Optional[ZoneRole] = None

    def to_dict(self) -> dict:
        return {
            "tStart": self.start_time,
            "tEnd": self.end_time,
            "pLo": self.low,
            "pHi": self.high,
            "score": self.score,
            "touches": self.touches,
            "dwell": self.dwell,
            "retests": self.retests,
            "spanHrs": self.span_hours,
            "bps": self.bps,
            "role": self.role.value if self.role else None,
        }


@dataclass(frozen=True)
class ShelfState:
    prev_primary: Optional[Shelf] = None


@dataclass
class ShelfResult:
    primary: Optional[Shelf] = None
    secondary: Optional[Shelf] = None

    @property
    def shelves(self) -> List[Shelf]:
        return [s for s in (self.primary, self.secondary) if s is not None]


@dataclass
class _Cluster:
    low: float
    high: float
    touches: int
    dwell: int = 0
    retests: int = 0
    density: float = 0.0
    score: float = 0.0


def scan_shelves(bars: BarsLike, state: Optional[ShelfState] = None,
                 config: Optional[ShelfConfig] = None) -> Tuple[ShelfResult, ShelfState]:
    """
    Find the primary and sticky secondary liquidity shelf.

    Parameters:
    - bars: any-timeframe bars at or below 1h, folded to 1h internally
    - state: previous cycle's shelf state (None on the first call)
    - config: shelf tunables

    Returns:
    - (ShelfResult, new ShelfState)
    """
    state = state or ShelfState()
    config = config or ShelfConfig()

    hourly = resample_bars(clean_bars(to_frame(bars), label="shelves"), HOUR)
    if len(hourly) > config.lookback_hours:
        hourly = hourly.iloc[len(hourly) - config.lookback_hours:].reset_index(drop=True)
    if len(hourly) < config.box_min_hours:
        logger.debug(f"{len(hourly)} hourly bars: not enough for shelves")
        return ShelfResult(), state

    c = as_candles(hourly)
    scored = []
    for box in _slide_boxes(c, config):
        best = _best_cluster(c, box, config)
        if best is not None:
            scored.append(_as_shelf(c, box, best))

    if not scored:
        return ShelfResult(), state

    scored.sort(key=lambda s: (s.score, s.span_hours), reverse=True)
    primary = replace(scored[0], role=ZoneRole.PRIMARY)
    secondary = _pick_secondary(primary, scored, state.prev_primary, config)
    if secondary is not None:
        secondary = replace(secondary, role=ZoneRole.SECONDARY)

    logger.debug(f"Shelves: primary {primary.low:.5f}-{primary.high:.5f} score {primary.score:.2f}"
                 f"{'' if secondary is None else ', secondary kept'}")
    return ShelfResult(primary=primary, secondary=secondary), ShelfState(prev_primary=primary)


def _slide_boxes(c: Candles, config: ShelfConfig) -> List[Tuple[int, int, float, float, float]]:
    """(i_start, i_end, low, high, bps) for every window whose height is under the cap."""
    n = len(c)
    low_s = pd.Series(c.low)
    high_s = pd.Series(c.high)
    boxes = []
    for span in range(config.box_min_hours, config.box_max_hours + 1):
        if span > n:
            break
        lows = low_s.rolling(span).min().to_numpy()
        highs = high_s.rolling(span).max().to_numpy()
        for j in range(span - 1, n):
            lo, hi = lows[j], highs[j]
            mid = (lo + hi) / 2
            bps = (hi - lo) / max(1e-6, mid) * 10_000
            if bps > config.box_bps_limit:
                continue
            boxes.append((j - span + 1, j, float(lo), float(hi), float(bps)))
    return boxes


def _merge_buckets(counts: Dict[int, int], step: float, merge_step: float) -> List[_Cluster]:
    out = []
    cur = None
    for key in sorted(counts):
        lo = key * step
        if cur is not None and lo - cur.high <= merge_step:
            cur.high += step
            cur.touches += counts[key]
            continue
        if cur is not None:
            out.append(cur)
        cur = _Cluster(low=lo, high=lo + step, touches=counts[key])
    if cur is not None:
        out.append(cur)
    return out


def _best_cluster(c: Candles, box, config: ShelfConfig) -> Optional[_Cluster]:
    i_start, i_end = box[0], box[1]
    last_close = c.close[-1] or c.close[i_end]
    step = config.bucket_bps / 10_000 * last_close
    if step <= 0:
        return None
    merge_step = config.merge_bps / 10_000 * last_close

    top_counts: Dict[int, int] = {}
    bottom_counts: Dict[int, int] = {}
    for k in range(i_start, i_end + 1):
        body_hi = max(c.open[k], c.close[k])
        body_lo = min(c.open[k], c.close[k])
        if c.high[k] > body_hi:
            key = int(np.floor(c.high[k] / step))
            top_counts[key] = top_counts.get(key, 0) + 1
        if c.low[k] < body_lo:
            key = int(np.floor(c.low[k] / step))
            bottom_counts[key] = bottom_counts.get(key, 0) + 1

    span = max(1, i_end - i_start + 1)
    best = None
    for counts in (top_counts, bottom_counts):
        clusters = _merge_buckets(counts, step, merge_step)
        for cl in clusters:
            cl.dwell = _dwell(c, i_start, i_end, cl.low - step * config.dwell_expand_buckets,
                              cl.high + step * config.dwell_expand_buckets)
        clusters = [cl for cl in clusters
                    if cl.touches >= config.min_touches and cl.dwell >= config.min_dwell_hours]
        if not clusters:
            continue

        buf = config.retest_buffer_bps / 10_000 * last_close
        for cl in clusters:
            cl.retests = _retests(c, i_end, cl.low - buf, cl.high + buf, config.retest_lookahead_hours)
            cl.density = cl.touches / span
        _score_side(clusters)

        top = max(clusters, key=lambda cl: cl.score)
        # ties go to the upper side, scanned first
        if best is None or top.score > best.score:
            best = top
    return best


def _dwell(c: Candles, i_start: int, i_end: int, lo: float, hi: float) -> int:
    dwell = 0
    for k in range(i_start, i_end + 1):
        if max(c.open[k], c.close[k]) >= lo and min(c.open[k], c.close[k]) <= hi:
            dwell += 1
    return dwell


def _retests(c: Candles, i_end: int, lo: float, hi: float, lookahead: int) -> int:
    """Separate re-entries into [lo, hi] within `lookahead` bars after the box."""
    count = 0
    in_touch = False
    for k in range(i_end + 1, min(len(c) - 1, i_end + lookahead) + 1):
        touch = c.high[k] >= lo and c.low[k] <= hi
        if touch and not in_touch:
            count += 1
        in_touch = touch
    return count


def _score_side(clusters: List[_Cluster]) -> None:
    max_dwell = max([cl.dwell for cl in clusters] + [1])
    max_touches = max([cl.touches for cl in clusters] + [1])
    max_retests = max([cl.retests for cl in clusters] + [1])
    max_density = max([cl.density for cl in clusters] + [1e-6])
    for cl in clusters:
        cl.score = (W_DENSITY * cl.density / max_density
                    + W_DWELL * cl.dwell / max_dwell
                    + W_TOUCHES * cl.touches / max_touches
                    + W_RETESTS * cl.retests / max_retests
                    + W_RECENCY)


def _as_shelf(c: Candles, box, cluster: _Cluster) -> Shelf:
    i_start, i_end, lo, hi, bps = box
    return Shelf(
        start_time=int(c.time[i_start]),
        end_time=int(c.time[i_end]),
        low=lo,
        high=hi,
        score=cluster.score,
        touches=cluster.touches,
        dwell=cluster.dwell,
        retests=cluster.retests,
        span_hours=i_end - i_start + 1,
        bps=bps,
    )


def _disjoint(a: Shelf, b: Shelf) -> bool:
    return a.end_time < b.start_time or b.end_time < a.start_time


def _overlap_ratio(a: Shelf, b: Shelf) -> float:
    lo = max(a.start_time, b.start_time)
    hi = min(a.end_time, b.end_time)
    if hi <= lo:
        return 0.0
    union = max(a.end_time, b.end_time) - min(a.start_time, b.start_time)
    return (hi - lo) / max(1, union)


def _pick_secondary(primary: Shelf, scored: List[Shelf], prev: Optional[Shelf],
                    config: ShelfConfig) -> Optional[Shelf]:
    """
    1. A current candidate matching the previous primary (+/- tolerance on both ends),
       when it does not overlap the new primary.
    2. The previous primary itself, when it overlaps the new primary by less than
       `sticky_max_overlap`.
    3. Otherwise the most recent candidate disjoint from the primary.
    """
    if prev is not None:
        tol = config.sticky_tolerance
        match = next((s for s in scored
                      if abs(s.start_time - prev.start_time) <= tol
                      and abs(s.end_time - prev.end_time) <= tol), None)
        if match is not None and _disjoint(primary, match):
            return match
        if _overlap_ratio(primary, prev) < config.sticky_max_overlap:
            return prev

    remaining = [s for s in scored if _disjoint(primary, s)]
    if not remaining:
        return None
    latest_end = max(s.end_time for s in remaining)
    near = [s for s in remaining if s.end_time == latest_end]
    return max(near, key=lambda s: (s.score, s.span_hours))
