import pytest

from smz.config import EngineConfig
from smz.detectors.controller import (apply_controller, find_true_gaps, gap_filled_by, nearest_gap,
                                      resolve_gaps)
from smz.models import Gap, GapDirection, Side, ZoneStatus

from conftest import H4, T0, make_frame, make_zone

# background 4h bar sitting inside a [100, 101] band
INSIDE = (100.2, 100.7, 99.7, 100.5)


def conf_frame(rows):
    return make_frame(rows, step=H4)


def test_find_true_gaps():
    df = conf_frame([
        (100.0, 101.0, 99.0, 100.5),
        (102.5, 103.0, 102.0, 102.8),   # low above previous high
        (102.8, 103.2, 102.4, 102.6),
        (101.5, 101.8, 101.0, 101.2),   # high below previous low
    ])
    gaps = find_true_gaps(df)

    assert [g.id for g in gaps] == [f"GAPUP_{T0 + H4}", f"GAPDN_{T0 + 3 * H4}"]
    up, down = gaps
    assert (up.direction, up.bottom, up.top) == (GapDirection.UP, 101.0, 102.0)
    assert (down.direction, down.bottom, down.top) == (GapDirection.DOWN, 101.8, 102.4)
    assert not up.resolved and not down.resolved


def test_no_gaps_on_short_series():
    assert find_true_gaps(conf_frame([INSIDE])) == []


def test_gap_resolution_waits_for_full_fill():
    rows = [
        (100.0, 101.0, 99.0, 100.5),
        (102.5, 103.0, 102.0, 102.8),
        (102.6, 102.9, 101.5, 101.8),   # partial fill
        (101.8, 102.0, 100.9, 101.0),   # full fill
        (101.0, 101.5, 100.8, 101.3),
    ]
    df = conf_frame(rows)
    gaps = find_true_gaps(df)
    resolve_gaps(df, gaps)
    assert gaps[0].resolved

    # fill only on the latest bar is left to the alert generator
    df = conf_frame(rows[:4])
    gaps = find_true_gaps(df)
    resolve_gaps(df, gaps)
    assert not gaps[0].resolved
    resolve_gaps(df, gaps, include_latest=True)
    assert gaps[0].resolved


def test_gap_resolved_from_known_ids():
    df = conf_frame([(100.0, 101.0, 99.0, 100.5), (102.5, 103.0, 102.0, 102.8)])
    gaps = find_true_gaps(df)
    resolve_gaps(df, gaps, resolved_ids={gaps[0].id})
    assert gaps[0].resolved


def test_gap_filled_by():
    up = Gap("GAPUP_1", GapDirection.UP, top=102.0, bottom=101.0, time=T0)
    assert gap_filled_by(up, high=103.0, low=101.0)
    assert not gap_filled_by(up, high=103.0, low=101.2)
    down = Gap("GAPDN_1", GapDirection.DOWN, top=102.0, bottom=101.0, time=T0)
    assert gap_filled_by(down, high=102.0, low=100.0)
    assert not gap_filled_by(down, high=101.9, low=100.0)


def test_bear_zone_exhausted_by_body_below(config):
    zone = make_zone(Side.BEAR, top=101.0, bottom=100.0, time=T0)
    df = conf_frame([
        (99.5, 99.8, 99.0, 99.2),        # anchor bar itself, ignored
        INSIDE,
        (99.5, 99.8, 99.0, 99.2),        # body fully below the band
    ])
    apply_controller(df, [zone], [], config)
    assert zone.status == ZoneStatus.EXHAUSTED


def test_exhaustion_is_terminal(config):
    zone = make_zone(Side.BEAR, top=101.0, bottom=100.0, time=T0)
    df = conf_frame([INSIDE, INSIDE, INSIDE])
    apply_controller(df, [zone], [], config, exhausted_ids={zone.id})
    assert zone.status == ZoneStatus.EXHAUSTED

    fresh = make_zone(Side.BEAR, top=101.0, bottom=100.0, time=T0)
    apply_controller(df, [fresh], [], config)
    assert fresh.status == ZoneStatus.ACTIVE


def test_bull_zone_promoted_after_two_defenses(config):
    zone = make_zone(Side.BULL, top=101.0, bottom=100.0, time=T0)
    defense = (99.5, 100.2, 99.3, 99.4)   # wick into the band, body below it
    df = conf_frame([INSIDE, defense, INSIDE])
    apply_controller(df, [zone], [], config)
    assert zone.status == ZoneStatus.ACTIVE
    assert not zone.mtf_confirm

    zone = make_zone(Side.BULL, top=101.0, bottom=100.0, time=T0)
    df = conf_frame([INSIDE, defense, INSIDE, defense])
    apply_controller(df, [zone], [], config)
    assert zone.status == ZoneStatus.PROMOTED
    assert zone.mtf_confirm
    assert zone.checks.confirm_4h


def test_defenses_before_anchor_do_not_count(config):
    defense = (99.5, 100.2, 99.3, 99.4)
    df = conf_frame([defense, defense, INSIDE])
    zone = make_zone(Side.BULL, top=101.0, bottom=100.0, time=T0 + H4)
    apply_controller(df, [zone], [], config)
    assert not zone.mtf_confirm


def test_thrust_links_nearest_gap(config):
    rows = [INSIDE] * 24 + [(101.5, 104.0, 101.2, 103.8, 300)]
    df = conf_frame(rows)
    gaps = find_true_gaps(df)
    far = Gap("GAPUP_far", GapDirection.UP, top=120.0, bottom=119.0, time=T0)
    gaps.append(far)
    resolve_gaps(df, gaps)

    zone = make_zone(Side.BULL, top=101.0, bottom=100.0, time=T0)
    apply_controller(df, [zone], gaps, config)

    assert zone.checks.thrust
    assert zone.checks.true_gap
    assert zone.gap_id == f"GAPUP_{T0 + 24 * H4}"


def test_thrust_without_gap(config):
    rows = [INSIDE] * 24 + [(100.6, 103.5, 100.5, 103.3, 300)]
    zone = make_zone(Side.BULL, top=101.0, bottom=100.0, time=T0)
    apply_controller(conf_frame(rows), [zone], [], config)
    assert zone.checks.thrust
    assert not zone.checks.true_gap
    assert zone.gap_id is None


def test_no_thrust_on_light_volume(config):
    rows = [INSIDE] * 24 + [(101.5, 104.0, 101.2, 103.8, 100)]
    zone = make_zone(Side.BULL, top=101.0, bottom=100.0, time=T0)
    apply_controller(conf_frame(rows), [zone], [], config)
    assert not zone.checks.thrust


def test_nearest_gap_skips_resolved_and_wrong_direction():
    zone = make_zone(Side.BEAR, top=101.0, bottom=100.0)
    gaps = [
        Gap("a", GapDirection.DOWN, top=99.0, bottom=98.0, time=T0, resolved=True),
        Gap("b", GapDirection.UP, top=99.5, bottom=99.2, time=T0),
        Gap("c", GapDirection.DOWN, top=97.0, bottom=96.0, time=T0),
        Gap("d", GapDirection.DOWN, top=95.0, bottom=94.0, time=T0),
    ]
    assert nearest_gap(gaps, zone, GapDirection.DOWN).id == "c"
    assert nearest_gap(gaps[:2], zone, GapDirection.DOWN) is None


def test_empty_confirmation_series_is_a_no_op(config):
    zone = make_zone()
    apply_controller(conf_frame([]), [zone], [], config)
    assert zone.status == ZoneStatus.ACTIVE
