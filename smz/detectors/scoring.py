"""
SMZ Detector - Zone Scoring
Combines a zone's evidence checks into a 0-1 confidence score.
"""
from typing import Iterable

from smz.models import Zone

# Scoring weights (sum to 1.0):
# - Structure (bodies outside band, wick on the zone side): 0.30
# - Absorption (effort vs result on the anchor bar): 0.25
# - Manipulation (sweep, thrust away): 0.25
# - Gap / confirmation (true gap, 4h defenses): 0.20
W_STRUCTURE = 0.30
W_ABSORPTION = 0.25
W_MANIPULATION = 0.25
W_GAP_CONFIRM = 0.20


def _mean(*flags: bool) -> float:
    return sum(1.0 for f in flags if f) / len(flags)


def score_zone(zone: Zone) -> float:
    """
    Calculate the composite confidence score of a zone.

    Returns:
    - float in [0, 1]
    """
    c = zone.checks
    structure = _mean(c.bodies_outside, c.wick_side == zone.side)
    absorption = 1.0 if c.effort_vs_result else 0.0
    manipulation = _mean(c.sweep, c.thrust)
    gap_confirm = _mean(c.true_gap, c.confirm_4h)

    score = (W_STRUCTURE * structure
             + W_ABSORPTION * absorption
             + W_MANIPULATION * manipulation
             + W_GAP_CONFIRM * gap_confirm)
    return min(1.0, max(0.0, score))


def score_zones(zones: Iterable[Zone]) -> None:
    for zone in zones:
        zone.score = score_zone(zone)
