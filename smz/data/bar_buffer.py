import logging
from typing import List, Optional

import pandas as pd

from smz.data.validation import BAR_COLUMNS, check_bar, empty_bars
from smz.errors import InvalidBarError
from smz.models import Bar

logger = logging.getLogger("SMZ.Data")


class BarBuffer:
    """
    Append-only bar series for one timeframe.

    Closed bars never change. The newest bar may still be forming; the supplier
    either revises it in place (same time) or appends a new bar, which closes
    the previous one.
    """

    def __init__(self, timeframe: str, max_bars: Optional[int] = None):
        self.timeframe = timeframe
        self.max_bars = max_bars
        self._bars: List[Bar] = []
        self._forming = False

    def __len__(self):
        return len(self._bars)

    @property
    def last_closed_index(self) -> int:
        """Index of the newest closed bar, -1 when there is none."""
        count = len(self._bars) - (1 if self._forming else 0)
        return count - 1

    @property
    def forming(self) -> Optional[Bar]:
        return self._bars[len(self._bars) - 1] if self._forming else None

    @property
    def latest(self) -> Optional[Bar]:
        return self._bars[len(self._bars) - 1] if self._bars else None

    def append(self, bar: Bar, closed: bool = True) -> bool:
        """
        Add a bar newer than the latest one. Returns False (and logs) for an
        out-of-order or invalid bar. When the latest bar jumped ahead (the new
        bar fits between it and the one before), the latest bar is dropped instead.
        """
        latest = self.latest
        try:
            check_bar(bar)
        except InvalidBarError as e:
            logger.warning(f"[{self.timeframe}] Rejected bar: {e}")
            return False
        if latest is not None and bar.time <= latest.time:
            if bar.time == latest.time and self._forming:
                return self.revise(bar, closed=closed)
            if self._is_spike(bar):
                logger.warning(f"[{self.timeframe}] Dropped bar {latest.time}: out of order with {bar.time}")
                self._bars.pop()
                self._bars.append(bar)
                self._forming = not closed
                return True
            logger.warning(f"[{self.timeframe}] Rejected out-of-order bar {bar.time} (latest {latest.time})")
            return False

        self._bars.append(bar)
        self._forming = not closed
        self._trim()
        return True

    def revise(self, bar: Bar, closed: bool = False) -> bool:
        """Replace the forming bar. Only valid while the latest bar is still open."""
        if not self._forming or bar.time != self._bars[len(self._bars) - 1].time:
            logger.warning(f"[{self.timeframe}] Cannot revise bar {bar.time}: no matching forming bar")
            return False
        try:
            check_bar(bar)
        except InvalidBarError as e:
            logger.warning(f"[{self.timeframe}] Rejected revision: {e}")
            return False
        self._bars[len(self._bars) - 1] = bar
        self._forming = not closed
        return True

    def close_forming(self) -> None:
        self._forming = False

    def closed_bars(self) -> List[Bar]:
        return self._bars[: self.last_closed_index + 1]

    def to_frame(self, include_forming: bool = True) -> pd.DataFrame:
        bars = self._bars if include_forming else self.closed_bars()
        if not bars:
            return empty_bars()
        df = pd.DataFrame([[b.time, b.open, b.high, b.low, b.close, b.volume] for b in bars],
                          columns=BAR_COLUMNS)
        df["time"] = df["time"].astype("int64")
        return df

    def _is_spike(self, bar: Bar) -> bool:
        """The latest bar jumped ahead: `bar` fits between it and the bar before it."""
        if len(self._bars) < 2:
            return False
        before = self._bars[len(self._bars) - 2]
        return before.time < bar.time < self._bars[len(self._bars) - 1].time

    def _trim(self) -> None:
        if self.max_bars and len(self._bars) > self.max_bars:
            del self._bars[: len(self._bars) - self.max_bars]
