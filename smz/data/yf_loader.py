import logging
import warnings
from typing import Dict, Optional

import pandas as pd
import yfinance as yf

from smz.data.resampler import resample_all
from smz.data.validation import clean_bars

logger = logging.getLogger("SMZ.Data")

# Suppress yfinance warnings
warnings.filterwarnings("ignore", module="yfinance")

TICKER_MAP = {"XAUUSD": "GC=F", "US30": "YM=F", "NAS100": "NQ=F", "USTECH100": "NQ=F", "SPX": "^GSPC"}


class YFinanceLoader:
    """
    Bar supplier backed by Yahoo Finance.

    Yahoo has no 10m/4h intervals, so one fine series (5m by default) is
    downloaded and folded into every timeframe the engine asks for.
    """

    def __init__(self, config: dict):
        data_cfg = config.get("data", {}) if config else {}
        self.interval = data_cfg.get("interval", "5m")
        self.period = data_cfg.get("period", "30d")
        self.ticker_map = {**TICKER_MAP, **data_cfg.get("ticker_map", {})}

    def fetch_data(self, symbol: str) -> Optional[pd.DataFrame]:
        """Fetches the fine OHLCV series for a symbol. Returns None on failure."""
        ticker = self.ticker_map.get(symbol, symbol)
        try:
            df = yf.download(ticker, period=self.period, interval=self.interval,
                             progress=False, auto_adjust=False)
        except Exception as e:
            logger.error(f"Failed to download {ticker}: {e}")
            return None

        if df is None or df.empty:
            logger.error(f"No data available for {symbol} ({ticker})")
            return None

        df.columns = [c[0].lower() if isinstance(c, tuple) else c.lower() for c in df.columns]
        df.index = df.index.tz_localize(None) if df.index.tz is None else df.index.tz_convert("UTC").tz_localize(None)
        df.index.name = "time"
        df = df.reset_index()

        bars = clean_bars(df, label=f"{symbol} {self.interval}")
        logger.debug(f"Fetched {len(bars)} {self.interval} bars for {symbol}")
        return bars

    def fetch_timeframes(self, symbol: str, timeframes) -> Dict[str, pd.DataFrame]:
        fine = self.fetch_data(symbol)
        if fine is None:
            return {}
        return resample_all(fine, timeframes)
