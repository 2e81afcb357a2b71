from smz.detectors.tagger import tag_repetition
from smz.models import Side

from conftest import T0, make_zone


def test_repetition_across_timeframes():
    z10 = make_zone(Side.BEAR, top=101.0, bottom=100.0, timeframe="10m")
    z1h = make_zone(Side.BEAR, top=101.04, bottom=100.0, timeframe="1h", time=T0 + 3600)
    z30 = make_zone(Side.BULL, top=101.0, bottom=100.0, timeframe="30m")

    tag_repetition({"10m": [z10], "30m": [z30], "1h": [z1h]}, epsilon_pct=0.0005)

    assert z10.checks.repeat_higher_tf and not z10.checks.repeat_lower_tf
    assert z1h.checks.repeat_lower_tf and not z1h.checks.repeat_higher_tf
    # opposite side never counts
    assert not z30.checks.repeat_higher_tf and not z30.checks.repeat_lower_tf


def test_no_repetition_when_levels_differ():
    z10 = make_zone(Side.BULL, top=101.0, bottom=100.0, timeframe="10m")
    z1h = make_zone(Side.BULL, top=103.0, bottom=102.0, timeframe="1h")
    tag_repetition({"10m": [z10], "1h": [z1h]}, epsilon_pct=0.0005)
    assert not z10.checks.repeat_higher_tf
    assert not z1h.checks.repeat_lower_tf
