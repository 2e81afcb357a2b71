"""
SMZ Detector - Alert Generator
Retest rejections on live zones and fills of open true gaps, judged on the latest bar.
"""
import logging
from typing import Dict, Iterable, List, MutableMapping, MutableSet, Optional

from smz.config import EngineConfig
from smz.detectors.controller import gap_filled_by
from smz.detectors.events import is_rejection_wick
from smz.models import Alert, AlertType, Bar, Gap, GapDirection, Side, Zone

logger = logging.getLogger("SMZ.Alerts")


def retest_alerts(zones: Iterable[Zone], latest: Dict[str, Bar], config: EngineConfig,
                  touches: MutableMapping[str, int], alerted: MutableMapping[str, int]) -> List[Alert]:
    """
    Emit a retest_rejection alert for each live zone whose timeframe's latest bar
    trades into the band and rejects it with a wick on the zone side.

    Parameters:
    - zones: scored zones of this cycle
    - latest: latest bar per timeframe
    - config: supplies `pin_wick_fraction` for the rejection wick
    - touches: zone id -> retest count, updated in place
    - alerted: ref id -> bar time already alerted, updated in place

    Returns:
    - list of alerts (at most one per zone per latest-bar time)
    """
    alerts = []
    for zone in zones:
        zone.touches = touches.get(zone.id, zone.touches)
        if zone.is_exhausted:
            continue

        bar = latest.get(zone.timeframe)
        if bar is None or bar.time <= zone.time:
            continue
        if alerted.get(zone.id) == bar.time:
            continue

        overlaps = bar.low <= zone.top and bar.high >= zone.bottom
        if not overlaps:
            continue
        if not is_rejection_wick(bar.high, bar.low, bar.open, bar.close,
                                 bullish=zone.side == Side.BULL,
                                 wick_fraction=config.pin_wick_fraction):
            continue

        zone.touches += 1
        touches[zone.id] = zone.touches
        alerted[zone.id] = bar.time
        price = zone.top if zone.side == Side.BEAR else zone.bottom
        alerts.append(Alert(type=AlertType.RETEST_REJECTION, ref_id=zone.id,
                            timeframe=zone.timeframe, price=price, score=zone.score, time=bar.time))
        logger.info(f"Retest rejection on {zone.id} @ {price:.5f} (touch #{zone.touches})")

    return alerts


def gap_fill_alerts(gaps: Iterable[Gap], latest: Optional[Bar], timeframe: str,
                    resolved_ids: MutableSet[str], alerted: MutableMapping[str, int]) -> List[Alert]:
    """
    Emit a gap_filled alert for each open gap the latest confirmation bar fills.
    Filled gaps are marked resolved and remembered so the alert fires once.
    """
    if latest is None:
        return []

    alerts = []
    for gap in gaps:
        if gap.resolved or gap.id in resolved_ids:
            gap.resolved = True
            continue
        if latest.time <= gap.time or not gap_filled_by(gap, latest.high, latest.low):
            continue

        gap.resolved = True
        resolved_ids.add(gap.id)
        if alerted.get(gap.id) == latest.time:
            continue
        alerted[gap.id] = latest.time
        price = gap.bottom if gap.direction == GapDirection.UP else gap.top
        alerts.append(Alert(type=AlertType.GAP_FILLED, ref_id=gap.id, timeframe=timeframe,
                            price=price, time=latest.time))
        logger.info(f"Gap {gap.id} filled @ {price:.5f}")

    return alerts
