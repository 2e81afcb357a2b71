"""
Candle geometry shared by the detectors.
"""
from typing import NamedTuple

import numpy as np
import pandas as pd


class Candles(NamedTuple):
    time: np.ndarray
    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    volume: np.ndarray

    def __len__(self):
        return len(self.close)

    @property
    def range(self) -> np.ndarray:
        return self.high - self.low

    @property
    def body(self) -> np.ndarray:
        return np.abs(self.close - self.open)

    @property
    def body_top(self) -> np.ndarray:
        return np.maximum(self.open, self.close)

    @property
    def body_bottom(self) -> np.ndarray:
        return np.minimum(self.open, self.close)

    @property
    def upper_wick(self) -> np.ndarray:
        return self.high - self.body_top

    @property
    def lower_wick(self) -> np.ndarray:
        return self.body_bottom - self.low


def as_candles(df: pd.DataFrame) -> Candles:
    return Candles(
        time=df["time"].to_numpy(dtype="int64"),
        open=df["open"].to_numpy(dtype="float64"),
        high=df["high"].to_numpy(dtype="float64"),
        low=df["low"].to_numpy(dtype="float64"),
        close=df["close"].to_numpy(dtype="float64"),
        volume=df["volume"].to_numpy(dtype="float64"),
    )


def trailing_mean(values: np.ndarray, window: int) -> np.ndarray:
    """Mean over the last `window` values including the current one (shorter at the start)."""
    return pd.Series(values, dtype="float64").rolling(window=window, min_periods=1).mean().to_numpy()


def ratio(x: np.ndarray, base: np.ndarray) -> np.ndarray:
    """x / base, 0 where base is 0."""
    out = np.zeros_like(x, dtype="float64")
    np.divide(x, base, out=out, where=base != 0)
    return out
