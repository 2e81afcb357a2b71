import logging
from dataclasses import dataclass, field, fields
from typing import Dict, List

from smz.data.timeframes import timeframe_seconds
from smz.errors import ConfigurationError

logger = logging.getLogger("SMZ.Config")


def _default_band_bps() -> Dict[str, float]:
    # 0.06% on 10m, 0.05% on 30m/1h
    return {"10m": 6.0, "30m": 5.0, "1h": 5.0}


def _default_min_hits() -> Dict[str, int]:
    return {"10m": 2, "30m": 2, "1h": 2}


@dataclass
class EngineConfig:
    base_timeframes: List[str] = field(default_factory=lambda: ["10m", "30m", "1h"])
    confirmation_timeframe: str = "4h"

    # zone band half-width per timeframe, in basis points of price
    band_basis_points: Dict[str, float] = field(default_factory=_default_band_bps)
    min_hits: Dict[str, int] = field(default_factory=_default_min_hits)
    cluster_window: int = 25
    min_body_outside_ratio: float = 0.70

    # pin / absorption / sweep
    pin_wick_fraction: float = 0.50
    pin_body_fraction: float = 0.35
    absorption_body_fraction: float = 0.35
    absorption_volume_ratio: float = 1.20
    volume_average_window: int = 20
    pivot_window: int = 5
    sweep_reclaim_bars: int = 3

    # safety rails
    cooldown_bars: int = 15
    dedupe_epsilon_pct: float = 0.0005
    dedupe_lookback: int = 50
    max_zones: int = 200
    lookback_days: float = 10

    # confirmation controller
    promotion_min_defenses: int = 2
    thrust_lookback: int = 20
    thrust_range_multiple: float = 2.0
    thrust_volume_ratio: float = 1.5

    # renderer hints
    draw_limit: int = 20
    min_render_px: int = 3

    @classmethod
    def from_dict(cls, data: dict) -> "EngineConfig":
        """Builds a config from the `engine:` section of config.yaml. Unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        unknown = set(data or {}) - known
        if unknown:
            logger.warning(f"Ignoring unknown engine options: {sorted(unknown)}")
        cfg = cls(**{k: v for k, v in (data or {}).items() if k in known})
        cfg.validate()
        return cfg

    def band_fraction(self, timeframe: str) -> float:
        return self.band_basis_points.get(timeframe, max(self.band_basis_points.values())) / 10_000

    def min_hits_for(self, timeframe: str) -> int:
        return self.min_hits.get(timeframe, max(self.min_hits.values()))

    def validate(self) -> None:
        """Fails fast on programmer error. Data problems never raise."""
        if not self.base_timeframes:
            raise ConfigurationError("base_timeframes must not be empty")
        try:
            for tf in list(self.base_timeframes) + [self.confirmation_timeframe]:
                timeframe_seconds(tf)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if not self.band_basis_points or any(v <= 0 for v in self.band_basis_points.values()):
            raise ConfigurationError("band_basis_points must be positive")
        if not self.min_hits or any(v < 1 for v in self.min_hits.values()):
            raise ConfigurationError("min_hits must be >= 1")

        for name in ("pin_wick_fraction", "pin_body_fraction", "absorption_body_fraction",
                     "min_body_outside_ratio"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")

        for name in ("volume_average_window", "pivot_window", "sweep_reclaim_bars", "cluster_window",
                     "dedupe_lookback", "max_zones", "promotion_min_defenses", "thrust_lookback"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

        if not isinstance(self.cooldown_bars, int) or self.cooldown_bars < 0:
            raise ConfigurationError(f"cooldown_bars must be >= 0, got {self.cooldown_bars!r}")
        if self.absorption_volume_ratio <= 0:
            raise ConfigurationError("absorption_volume_ratio must be positive")
        if not 0.0 <= self.dedupe_epsilon_pct < 1.0:
            raise ConfigurationError("dedupe_epsilon_pct must be within [0, 1)")
        if self.lookback_days <= 0:
            raise ConfigurationError("lookback_days must be positive")
        if self.thrust_range_multiple <= 0 or self.thrust_volume_ratio <= 0:
            raise ConfigurationError("thrust multiples must be positive")
        if self.draw_limit < 0 or self.min_render_px < 0:
            raise ConfigurationError("renderer hints must be >= 0")
