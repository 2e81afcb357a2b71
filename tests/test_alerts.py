from smz.detectors.alerts import gap_fill_alerts, retest_alerts
from smz.models import AlertType, Bar, Gap, GapDirection, Side, ZoneStatus

from conftest import H4, T0, make_zone


def test_bear_retest_rejection(config):
    zone = make_zone(Side.BEAR, top=101.0, bottom=100.0, time=T0)
    zone.score = 0.55
    touches, alerted = {}, {}
    latest = {"10m": Bar(T0 + 600, 100.2, 100.9, 100.1, 100.15)}   # long upper wick into the band

    alerts = retest_alerts([zone], latest, config, touches, alerted)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.type == AlertType.RETEST_REJECTION
    assert (alert.ref_id, alert.timeframe, alert.price, alert.score) == (zone.id, "10m", 101.0, 0.55)
    assert zone.touches == 1
    assert touches == {zone.id: 1}

    # same latest bar again: no duplicate
    assert retest_alerts([zone], latest, config, touches, alerted) == []

    latest = {"10m": Bar(T0 + 1200, 100.2, 100.9, 100.1, 100.15)}
    assert len(retest_alerts([zone], latest, config, touches, alerted)) == 1
    assert zone.touches == 2


def test_bull_retest_needs_lower_wick(config):
    zone = make_zone(Side.BULL, top=101.0, bottom=100.0, time=T0)
    upper = {"10m": Bar(T0 + 600, 100.2, 100.9, 100.1, 100.15)}
    assert retest_alerts([zone], upper, config, {}, {}) == []

    lower = {"10m": Bar(T0 + 600, 100.8, 100.9, 100.1, 100.85)}
    alerts = retest_alerts([zone], lower, config, {}, {})
    assert [a.price for a in alerts] == [100.0]


def test_no_retest_for_exhausted_or_distant_zone(config):
    latest = {"10m": Bar(T0 + 600, 100.2, 100.9, 100.1, 100.15)}
    exhausted = make_zone(Side.BEAR, top=101.0, bottom=100.0, status=ZoneStatus.EXHAUSTED)
    assert retest_alerts([exhausted], latest, config, {}, {}) == []

    distant = make_zone(Side.BEAR, top=105.0, bottom=104.0)
    assert retest_alerts([distant], latest, config, {}, {}) == []

    other_tf = make_zone(Side.BEAR, top=101.0, bottom=100.0, timeframe="1h")
    assert retest_alerts([other_tf], latest, config, {}, {}) == []


def test_anchor_bar_is_not_a_retest(config):
    zone = make_zone(Side.BEAR, top=101.0, bottom=100.0, time=T0 + 600)
    latest = {"10m": Bar(T0 + 600, 100.2, 100.9, 100.1, 100.15)}
    assert retest_alerts([zone], latest, config, {}, {}) == []


def test_touches_carried_from_state(config):
    zone = make_zone(Side.BEAR, top=101.0, bottom=100.0, time=T0)
    latest = {"10m": Bar(T0 + 600, 100.2, 100.9, 100.1, 100.15)}
    retest_alerts([zone], latest, config, {zone.id: 4}, {})
    assert zone.touches == 5


def test_gap_filled_once():
    gap = Gap(f"GAPUP_{T0 + H4}", GapDirection.UP, top=102.0, bottom=101.0, time=T0 + H4)
    resolved, alerted = set(), {}
    latest = Bar(T0 + 2 * H4, 102.0, 102.2, 100.8, 101.0)

    alerts = gap_fill_alerts([gap], latest, "4h", resolved, alerted)
    assert [(a.type, a.ref_id, a.price) for a in alerts] == [(AlertType.GAP_FILLED, gap.id, 101.0)]
    assert gap.resolved
    assert resolved == {gap.id}

    again = Gap(gap.id, GapDirection.UP, top=102.0, bottom=101.0, time=T0 + H4)
    assert gap_fill_alerts([again], latest, "4h", resolved, alerted) == []
    assert again.resolved


def test_gap_not_filled_by_partial_retrace():
    gap = Gap("GAPDN_1", GapDirection.DOWN, top=102.0, bottom=101.0, time=T0)
    latest = Bar(T0 + H4, 100.5, 101.8, 100.2, 101.5)
    assert gap_fill_alerts([gap], latest, "4h", set(), {}) == []
    assert not gap.resolved
    assert gap_fill_alerts([gap], None, "4h", set(), {}) == []
