class ZoneEngineError(Exception):
    """Base class for engine errors."""


class ConfigurationError(ZoneEngineError, ValueError):
    """Out-of-range tunable. Raised when the engine is constructed."""


class InsufficientDataError(ZoneEngineError):
    """Series shorter than a detector's warm-up window. Handled internally."""


class InvalidBarError(ZoneEngineError):
    """Bar with non-monotonic time, inverted high/low or bad values. Skipped."""
