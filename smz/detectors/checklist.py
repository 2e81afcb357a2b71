"""
SMZ Detector - Zone Checklist
Human-readable rule list behind a zone, scored 0-100.
"""
from dataclasses import dataclass, field
from typing import Callable, List, Tuple

from smz.models import Zone, ZoneStatus

# (label, weight, predicate)
RULES: List[Tuple[str, int, Callable[[Zone], bool]]] = [
    ("Repetition on higher timeframe", 10, lambda z: z.checks.repeat_higher_tf),
    ("Repetition on lower timeframe", 10, lambda z: z.checks.repeat_lower_tf),
    ("Wick on zone side", 10, lambda z: z.checks.wick_side == z.side),
    ("Bodies outside band", 10, lambda z: z.checks.bodies_outside),
    ("Absorption (effort vs result)", 15, lambda z: z.checks.effort_vs_result),
    ("Liquidity sweep", 10, lambda z: z.checks.sweep),
    ("Thrust away", 10, lambda z: z.checks.thrust),
    ("True gap", 10, lambda z: z.checks.true_gap),
    ("4h confirmation", 10, lambda z: z.checks.confirm_4h),
    ("Not exhausted", 5, lambda z: z.status != ZoneStatus.EXHAUSTED),
]


@dataclass
class ChecklistResult:
    score: int
    passed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def evaluate_checklist(zone: Zone) -> ChecklistResult:
    """
    Walk the weighted rule list for a zone.

    Returns:
    - ChecklistResult with score = passed weight / total weight * 100, rounded
    """
    total = sum(weight for _, weight, _ in RULES)
    earned = 0
    result = ChecklistResult(score=0)
    for label, weight, rule in RULES:
        if rule(zone):
            earned += weight
            result.passed.append(label)
        else:
            result.failed.append(label)

    result.score = int(round(earned / total * 100))
    return result
