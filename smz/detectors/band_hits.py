"""
SMZ Detector - Band Hit Counter
Counts how many recent wicks touched a narrow band around a candidate level.
"""
from dataclasses import dataclass

from smz.detectors.common import Candles
from smz.models import Side


@dataclass(frozen=True)
class BandHits:
    hits: int            # bars whose wick on the candidate side intersects the band
    bodies_outside: int  # of those, bars whose body stays entirely outside the band
    low: float
    high: float

    @property
    def body_outside_ratio(self) -> float:
        return self.bodies_outside / self.hits if self.hits else 0.0


def band_around(price: float, band_fraction: float):
    """(low, high) of a band of +/- band_fraction * price around price."""
    half = abs(price) * band_fraction
    return price - half, price + half


def count_band_hits(c: Candles, i: int, center: float, band_fraction: float,
                    window: int, side: Side) -> BandHits:
    """
    Count wick touches of the band around `center` over bars [i - window + 1, i].

    For bear candidates the upper wick [body_top, high] is tested, for bull
    candidates the lower wick [low, body_bottom].
    """
    lo, hi = band_around(center, band_fraction)
    hits = 0
    outside = 0

    for k in range(max(0, i - window + 1), i + 1):
        body_lo = min(c.open[k], c.close[k])
        body_hi = max(c.open[k], c.close[k])
        if side == Side.BEAR:
            wick_lo, wick_hi = body_hi, c.high[k]
        else:
            wick_lo, wick_hi = c.low[k], body_lo

        if wick_lo <= hi and wick_hi >= lo:
            hits += 1
            if body_hi < lo or body_lo > hi:
                outside += 1

    return BandHits(hits=hits, bodies_outside=outside, low=lo, high=hi)
