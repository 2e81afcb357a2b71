# Bar series: validation, resampling, buffering. The Yahoo loader is imported explicitly.
from .bar_buffer import BarBuffer
from .resampler import resample_all, resample_bars
from .timeframes import sort_timeframes, timeframe_seconds
from .validation import clean_bars, to_frame
