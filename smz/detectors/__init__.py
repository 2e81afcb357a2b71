# SMZ Detectors - pattern events, zone forming, confirmation and scoring
from .events import detect_events, detect_event_flags
from .zone_former import form_zones, form_zones_by_timeframe
from .tagger import tag_repetition
from .controller import apply_controller, find_true_gaps, resolve_gaps
from .scoring import score_zone, score_zones
from .checklist import evaluate_checklist
from .alerts import gap_fill_alerts, retest_alerts
from .shelves import ShelfConfig, ShelfState, scan_shelves
