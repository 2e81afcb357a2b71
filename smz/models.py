"""
Smart Money Zones - Data Models
Bars, pattern events, zones, gaps and alerts shared by every detector.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


class Side(str, Enum):
    BULL = "bull"   # demand / support
    BEAR = "bear"   # supply / resistance


class Origin(str, Enum):
    SWEEP = "sweep"
    PIN = "pin"
    ABSORPTION = "absorption"
    CLUSTER = "cluster"


class ZoneStatus(str, Enum):
    ACTIVE = "active"
    PROMOTED = "promoted"
    EXHAUSTED = "exhausted"


class ZoneRole(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class EventType(str, Enum):
    PIN_BULL = "pin_bull"
    PIN_BEAR = "pin_bear"
    ABSORPTION_BULL = "absorption_bull"
    ABSORPTION_BEAR = "absorption_bear"
    SWEEP_BULL = "sweep_bull"
    SWEEP_BEAR = "sweep_bear"

    @property
    def side(self) -> Side:
        return Side.BULL if self.value.endswith("_bull") else Side.BEAR

    @property
    def origin(self) -> Origin:
        if self.value.startswith("pin"):
            return Origin.PIN
        if self.value.startswith("absorption"):
            return Origin.ABSORPTION
        return Origin.SWEEP


class GapDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class AlertType(str, Enum):
    RETEST_REJECTION = "retest_rejection"
    GAP_FILLED = "gap_filled"


@dataclass(frozen=True)
class Bar:
    """Single OHLCV bar. `time` is the bar open in UNIX seconds."""
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low


@dataclass(frozen=True)
class Event:
    """Pattern detection on a single bar. Consumed by the zone former."""
    type: EventType
    time: int
    price: float
    index: int

    @property
    def side(self) -> Side:
        return self.type.side


@dataclass
class ZoneChecks:
    """Evidence checklist carried by every zone."""
    repeat_higher_tf: bool = False   # same level found on a coarser base timeframe
    repeat_lower_tf: bool = False    # same level found on a finer base timeframe
    wick_side: Optional[Side] = None
    body_outside_ratio: float = 0.0
    bodies_outside: bool = False
    effort_vs_result: bool = False   # absorption on the anchor bar
    sweep: bool = False
    thrust: bool = False
    true_gap: bool = False
    confirm_4h: bool = False


@dataclass
class Zone:
    """Supply (bear) or demand (bull) band anchored on one bar."""
    id: str
    side: Side
    timeframe: str
    time: int            # anchor bar time
    index: int           # anchor bar index in its series
    top: float
    bottom: float
    origin: Origin
    status: ZoneStatus = ZoneStatus.ACTIVE
    mtf_confirm: bool = False
    checks: ZoneChecks = field(default_factory=ZoneChecks)
    score: float = 0.0
    touches: int = 0
    gap_id: Optional[str] = None
    role: Optional[ZoneRole] = None

    @property
    def midpoint(self) -> float:
        return (self.top + self.bottom) / 2

    @property
    def size(self) -> float:
        return abs(self.top - self.bottom)

    @property
    def is_exhausted(self) -> bool:
        return self.status == ZoneStatus.EXHAUSTED

    def to_dict(self) -> dict:
        c = self.checks
        return {
            "id": self.id,
            "side": self.side.value,
            "tf": self.timeframe,
            "time": self.time,
            "index": self.index,
            "top": self.top,
            "bottom": self.bottom,
            "origin": self.origin.value,
            "status": self.status.value,
            "mtfConfirm": self.mtf_confirm,
            "checks": {
                "repeatHigherTf": c.repeat_higher_tf,
                "repeatLowerTf": c.repeat_lower_tf,
                "wickSide": c.wick_side.value if c.wick_side else None,
                "bodyOutsideRatio": c.body_outside_ratio,
                "bodiesOutside": c.bodies_outside,
                "effortVsResult": c.effort_vs_result,
                "sweep": c.sweep,
                "thrust": c.thrust,
                "trueGap": c.true_gap,
                "confirm4h": c.confirm_4h,
            },
            "score": self.score,
            "touches": self.touches,
            "gapId": self.gap_id,
            "role": self.role.value if self.role else None,
        }


@dataclass
class Gap:
    """True gap between two consecutive confirmation bars."""
    id: str
    direction: GapDirection
    top: float
    bottom: float
    time: int
    resolved: bool = False

    @property
    def size(self) -> float:
        return abs(self.top - self.bottom)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dir": self.direction.value,
            "top": self.top,
            "bottom": self.bottom,
            "time": self.time,
            "resolved": self.resolved,
        }


@dataclass(frozen=True)
class Alert:
    type: AlertType
    ref_id: str
    timeframe: str
    price: float
    score: Optional[float] = None
    time: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "refId": self.ref_id,
            "tf": self.timeframe,
            "price": self.price,
            "score": self.score,
            "time": self.time,
        }


@dataclass(frozen=True)
class EngineState:
    """
    Memory carried from one recomputation cycle to the next.

    - prev_primary: last selected primary zone per (side, timeframe)
    - exhausted_ids: zones that reached the terminal status
    - resolved_gap_ids: gaps already filled
    - touches: retest-rejection counter per zone id
    - alerted: latest bar time already alerted per zone/gap id
    """
    prev_primary: Dict[Tuple[Side, str], Zone] = field(default_factory=dict)
    exhausted_ids: FrozenSet[str] = frozenset()
    resolved_gap_ids: FrozenSet[str] = frozenset()
    touches: Dict[str, int] = field(default_factory=dict)
    alerted: Dict[str, int] = field(default_factory=dict)


@dataclass
class EngineResult:
    zones: List[Zone] = field(default_factory=list)
    gaps: List[Gap] = field(default_factory=list)
    alerts: List[Alert] = field(default_factory=list)
    draw_limit: int = 20
    min_render_px: int = 3

    @property
    def is_empty(self) -> bool:
        return not (self.zones or self.gaps or self.alerts)

    def to_dict(self) -> dict:
        return {
            "zones": [z.to_dict() for z in self.zones],
            "gaps": [g.to_dict() for g in self.gaps],
            "alerts": [a.to_dict() for a in self.alerts],
            "meta": {"drawLimit": self.draw_limit, "minRenderPx": self.min_render_px},
        }
