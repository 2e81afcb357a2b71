"""
Timeframe labels.
Accepts the engine style ("10m", "1h", "4h", "1d") and the MT5 style ("M10", "H1", "H4", "D1").
"""
import re

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
_MT5_UNIT = {"M": "m", "H": "h", "D": "d"}


def timeframe_seconds(tf: str) -> int:
    """Converts a timeframe label to its bucket length in seconds."""
    label = str(tf).strip()

    m = re.fullmatch(r"(\d+)\s*([smhdSMHD])", label)
    if m:
        return int(m.group(1)) * _UNIT_SECONDS[m.group(2).lower()]

    m = re.fullmatch(r"([MHD])(\d+)", label.upper())
    if m:
        return int(m.group(2)) * _UNIT_SECONDS[_MT5_UNIT[m.group(1)]]

    raise ValueError(f"Unsupported timeframe: {tf}")


def sort_timeframes(tfs) -> list:
    """Finest first."""
    return sorted(tfs, key=timeframe_seconds)
