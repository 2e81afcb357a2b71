"""
SMZ Detector - Cross-Timeframe Tagger
Marks zones whose level repeats on another base timeframe.
"""
import logging
from typing import Dict, List

from smz.data.timeframes import timeframe_seconds
from smz.detectors.zone_former import midpoints_match
from smz.models import Zone

logger = logging.getLogger("SMZ.Tagger")


def tag_repetition(zones_by_tf: Dict[str, List[Zone]], epsilon_pct: float) -> None:
    """
    For every zone on timeframe A, look for a same-side zone on each other
    timeframe B whose midpoint is within `epsilon_pct`. A match on a coarser B
    sets `repeat_higher_tf`, on a finer B `repeat_lower_tf`.

    Only the checks are written; no zone is created or removed.
    """
    tagged = 0
    for tf_a, zones_a in zones_by_tf.items():
        secs_a = timeframe_seconds(tf_a)
        for tf_b, zones_b in zones_by_tf.items():
            if tf_b == tf_a or not zones_b:
                continue
            higher = timeframe_seconds(tf_b) > secs_a
            for za in zones_a:
                if higher and za.checks.repeat_higher_tf:
                    continue
                if not higher and za.checks.repeat_lower_tf:
                    continue
                if any(zb.side == za.side and midpoints_match(zb.midpoint, za.midpoint, epsilon_pct)
                       for zb in zones_b):
                    if higher:
                        za.checks.repeat_higher_tf = True
                    else:
                        za.checks.repeat_lower_tf = True
                    tagged += 1

    logger.debug(f"Cross-timeframe tagging marked {tagged} repetition(s)")
