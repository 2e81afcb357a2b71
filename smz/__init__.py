# Smart Money Zones - multi-timeframe supply/demand zone detection
from .config import EngineConfig
from .engine import ZoneEngine, run_cycle
from .errors import ConfigurationError, InsufficientDataError, InvalidBarError, ZoneEngineError
from .models import (Alert, AlertType, Bar, EngineResult, EngineState, Gap, GapDirection, Origin, Side,
                     Zone, ZoneChecks, ZoneRole, ZoneStatus)

__version__ = "0.1.0"
