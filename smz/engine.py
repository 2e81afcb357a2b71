"""
Smart Money Zones - Engine
Runs one recomputation cycle: bars in, zones / gaps / alerts out, with the
cross-cycle memory passed explicitly as EngineState.
"""
import logging
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from smz.config import EngineConfig
from smz.data.bar_buffer import BarBuffer
from smz.data.resampler import resample_bars
from smz.data.timeframes import sort_timeframes, timeframe_seconds
from smz.data.validation import BarsLike, clean_bars, empty_bars
from smz.detectors.alerts import gap_fill_alerts, retest_alerts
from smz.detectors.common import as_candles
from smz.detectors.controller import apply_controller, find_true_gaps, is_broken, resolve_gaps
from smz.detectors.scoring import score_zones
from smz.detectors.tagger import tag_repetition
from smz.detectors.zone_former import form_zones_by_timeframe, midpoints_match
from smz.errors import InsufficientDataError
from smz.models import Bar, EngineResult, EngineState, Side, Zone, ZoneRole

logger = logging.getLogger("SMZ.Engine")

DAY = 86400


def run_cycle(bars: Mapping[str, BarsLike], state: Optional[EngineState],
              config: EngineConfig) -> Tuple[EngineResult, EngineState]:
    """
    One full pass of the pipeline.

    Parameters:
    - bars: timeframe label -> bars (DataFrame, list of Bar or list of dicts)
    - state: memory from the previous cycle (None on the first call)
    - config: validated engine tunables

    Returns:
    - (EngineResult, new EngineState). Missing or too-short input yields an
      empty result and the state unchanged; data problems never raise.
    """
    state = state or EngineState()
    try:
        series = prepare_series(bars, config)
    except InsufficientDataError as e:
        logger.debug(f"Skipping cycle: {e}")
        return _result(config), state

    conf_tf = config.confirmation_timeframe
    conf = series[conf_tf]
    base = {tf: series[tf] for tf in config.base_timeframes}

    # 1. zones per base timeframe, cross-timeframe repetition
    zones_by_tf = form_zones_by_timeframe(base, config)
    tag_repetition(zones_by_tf, config.dedupe_epsilon_pct)
    zones = [z for tf in config.base_timeframes for z in zones_by_tf[tf]]

    # 2. last cycle's primaries that dropped out come back as secondaries
    carried = carry_secondaries(zones, state, conf, config, base)
    emitted = zones + list(carried.values())

    # 3. confirmation series: gaps, promotion, exhaustion, thrust
    gaps = find_true_gaps(conf)
    resolved = set(state.resolved_gap_ids)
    resolve_gaps(conf, gaps, resolved_ids=resolved)
    apply_controller(conf, emitted, gaps, config, exhausted_ids=state.exhausted_ids)

    # 4. scores, then the primary per (side, timeframe) among this cycle's zones
    score_zones(emitted)
    primaries = select_primaries(zones)

    # 5. alerts on the latest bars
    touches = dict(state.touches)
    alerted = dict(state.alerted)
    latest = {tf: _latest_bar(df) for tf, df in base.items() if not df.empty}
    alerts = retest_alerts(emitted, latest, config, touches, alerted)
    alerts += gap_fill_alerts(gaps, _latest_bar(conf), conf_tf, resolved, alerted)
    resolved.update(g.id for g in gaps if g.resolved)

    # ids outside this cycle's window are forgotten
    live_ids = {z.id for z in emitted} | {g.id for g in gaps}
    new_state = EngineState(
        prev_primary={**carried, **primaries},
        exhausted_ids=frozenset(i for i in state.exhausted_ids | {z.id for z in emitted if z.is_exhausted}
                                if i in live_ids),
        resolved_gap_ids=frozenset(resolved & live_ids),
        touches={k: v for k, v in touches.items() if k in live_ids},
        alerted={k: v for k, v in alerted.items() if k in live_ids},
    )

    emitted.sort(key=lambda z: (z.time, z.timeframe, z.side.value))
    if len(emitted) > config.max_zones:
        emitted = emitted[len(emitted) - config.max_zones:]

    logger.debug(f"Cycle: {len(emitted)} zones, {len(gaps)} gaps, {len(alerts)} alerts")
    return _result(config, emitted, gaps, alerts), new_state


def prepare_series(bars: Mapping[str, BarsLike], config: EngineConfig) -> Dict[str, pd.DataFrame]:
    """
    Clean every input series, derive missing timeframes from a finer one and
    keep only the last `lookback_days`.

    Raises:
    - InsufficientDataError when the confirmation series is empty or no base
      timeframe has enough bars to pass the event warm-up
    """
    wanted = sort_timeframes(set(config.base_timeframes) | {config.confirmation_timeframe})
    series = {tf: clean_bars(df, label=tf) for tf, df in (bars or {}).items()}

    for tf in wanted:
        if tf in series and not series[tf].empty:
            continue
        source = _finer_source(series, tf)
        if source is None:
            series[tf] = empty_bars()
            continue
        series[tf] = resample_bars(series[source], tf)
        logger.debug(f"Derived {tf} from {source} ({len(series[tf])} bars)")

    last_times = [int(series[tf]["time"].iloc[-1]) for tf in wanted if not series[tf].empty]
    if not last_times:
        raise InsufficientDataError("no bars")
    cutoff = max(last_times) - int(config.lookback_days * DAY)
    out = {}
    for tf in wanted:
        df = series[tf]
        out[tf] = df.loc[df["time"] >= cutoff].reset_index(drop=True)

    if out[config.confirmation_timeframe].empty:
        raise InsufficientDataError(f"no {config.confirmation_timeframe} bars")
    if all(len(out[tf]) <= config.pivot_window for tf in config.base_timeframes):
        raise InsufficientDataError("base timeframes shorter than the warm-up window")
    return out


def select_primaries(zones: List[Zone]) -> Dict[Tuple[Side, str], Zone]:
    """Highest-scoring live zone per (side, timeframe); ties go to the most recent."""
    primaries: Dict[Tuple[Side, str], Zone] = {}
    for z in zones:
        if z.is_exhausted:
            continue
        key = (z.side, z.timeframe)
        best = primaries.get(key)
        if best is None or (z.score, z.time) > (best.score, best.time):
            primaries[key] = z
    for z in primaries.values():
        z.role = ZoneRole.PRIMARY
    return primaries


def carry_secondaries(zones: List[Zone], state: EngineState, conf: pd.DataFrame,
                      config: EngineConfig, base: Optional[Mapping[str, pd.DataFrame]] = None
                      ) -> Dict[Tuple[Side, str], Zone]:
    """
    Re-add last cycle's primaries that dropped out of this cycle's set, as long as
    they are still live against the confirmation series and no current same-side
    zone on their timeframe sits within the epsilon tolerance or closer than
    `cooldown_bars` bars (counted on `base[timeframe]` when given).
    """
    current_ids = {z.id for z in zones}
    c = as_candles(conf)
    carried = {}
    for key, prev in state.prev_primary.items():
        if prev.id in current_ids or prev.id in state.exhausted_ids:
            continue
        if is_broken(c, prev):
            continue
        rivals = [z for z in zones if z.side == prev.side and z.timeframe == prev.timeframe]
        if any(midpoints_match(z.midpoint, prev.midpoint, config.dedupe_epsilon_pct) for z in rivals):
            continue
        times = _bar_times(base, prev.timeframe)
        if any(_bars_apart(times, prev, z) < config.cooldown_bars for z in rivals):
            logger.debug(f"Dropping {prev.id}: within cooldown of a current zone")
            continue
        carried[key] = replace(prev, role=ZoneRole.SECONDARY, checks=replace(prev.checks),
                               touches=state.touches.get(prev.id, prev.touches))
        logger.debug(f"Keeping {prev.id} as sticky secondary")
    return carried


def _bar_times(base: Optional[Mapping[str, pd.DataFrame]], timeframe: str):
    if not base or timeframe not in base:
        return None
    return base[timeframe]["time"].to_numpy()


def _bars_apart(times, a: Zone, b: Zone) -> int:
    """Bars between two anchors; falls back to elapsed time over the bar length."""
    if times is None or not len(times):
        return abs(a.time - b.time) // timeframe_seconds(a.timeframe)
    ia, ib = np.searchsorted(times, [a.time, b.time])
    return int(abs(ia - ib))


def _latest_bar(df: pd.DataFrame) -> Optional[Bar]:
    if df.empty:
        return None
    row = df.iloc[len(df) - 1]
    return Bar(time=int(row["time"]), open=float(row["open"]), high=float(row["high"]),
               low=float(row["low"]), close=float(row["close"]), volume=float(row["volume"]))


def _finer_source(series: Dict[str, pd.DataFrame], tf: str) -> Optional[str]:
    """Coarsest available non-empty series that evenly divides `tf`."""
    target = timeframe_seconds(tf)
    best = None
    for label, df in series.items():
        if df.empty:
            continue
        try:
            secs = timeframe_seconds(label)
        except ValueError:
            continue
        if secs < target and target % secs == 0:
            if best is None or secs > timeframe_seconds(best):
                best = label
    return best


def _result(config: EngineConfig, zones=None, gaps=None, alerts=None) -> EngineResult:
    return EngineResult(zones=zones or [], gaps=gaps or [], alerts=alerts or [],
                        draw_limit=config.draw_limit, min_render_px=config.min_render_px)


class ZoneEngine:
    """
    Stateful wrapper around run_cycle for one symbol.

    Bars are either passed to compute() directly or pushed one at a time with
    push_bar(); compute() without arguments then uses the buffered series.
    """

    def __init__(self, config: Optional[EngineConfig] = None, max_bars: Optional[int] = None):
        self.config = config or EngineConfig()
        self.config.validate()
        self.state = EngineState()
        self.max_bars = max_bars
        self.buffers: Dict[str, BarBuffer] = {}

    def push_bar(self, timeframe: str, bar: Bar, closed: bool = True) -> bool:
        buf = self.buffers.get(timeframe)
        if buf is None:
            buf = self.buffers[timeframe] = BarBuffer(timeframe, max_bars=self.max_bars)
        return buf.append(bar, closed=closed)

    def compute(self, bars: Optional[Mapping[str, BarsLike]] = None) -> EngineResult:
        if bars is None:
            bars = {tf: buf.to_frame() for tf, buf in self.buffers.items()}
        result, self.state = run_cycle(bars, self.state, self.config)
        return result

    def reset(self) -> None:
        self.state = EngineState()
        self.buffers.clear()
