"""
Bar Resampler
Folds a finer bar series into a coarser fixed-interval series (e.g. 10m -> 1h).
"""
import logging
from typing import Dict, Iterable, Union

import pandas as pd

from smz.data.timeframes import timeframe_seconds
from smz.data.validation import BAR_COLUMNS, BarsLike, clean_bars, empty_bars

logger = logging.getLogger("SMZ.Data")


def resample_bars(bars: BarsLike, bucket: Union[int, str]) -> pd.DataFrame:
    """
    Aggregate ascending bars into buckets of `bucket` seconds (or a timeframe label).

    Bucket start = floor(time / bucket) * bucket.
    - open: first open in the bucket
    - high / low: extrema
    - close: last close
    - volume: sum

    Resampling a series that is already on `bucket` boundaries returns it unchanged.
    """
    seconds = timeframe_seconds(bucket) if isinstance(bucket, str) else int(bucket)
    if seconds <= 0:
        raise ValueError(f"Bucket length must be positive, got {bucket}")

    df = clean_bars(bars)
    if df.empty:
        return empty_bars()

    keys = (df["time"] // seconds) * seconds
    grouped = df.groupby(keys, sort=True)
    out = pd.DataFrame({
        "open": grouped["open"].first(),
        "high": grouped["high"].max(),
        "low": grouped["low"].min(),
        "close": grouped["close"].last(),
        "volume": grouped["volume"].sum(),
    })
    out.index.name = "time"
    out = out.reset_index()
    out["time"] = out["time"].astype("int64")
    return out[BAR_COLUMNS]


def resample_all(bars: BarsLike, timeframes: Iterable[str]) -> Dict[str, pd.DataFrame]:
    """Derive several coarse series from one fine series."""
    fine = clean_bars(bars)
    result = {}
    for tf in timeframes:
        result[tf] = resample_bars(fine, tf)
        logger.debug(f"Resampled {len(fine)} bars into {len(result[tf])} {tf} bars")
    return result
