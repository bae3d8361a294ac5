"""Tests for snapshot change detection."""

from battstatus.detector import compare, compare_summary


def test_compare_same_snapshot_is_equal(make_snapshot):
    snapshot = make_snapshot(percent=42, charging=True, plugged_in=True, life_time=3600)
    assert compare(snapshot, snapshot).equal
    assert compare_summary(snapshot, snapshot).equal


def test_compare_equal_values_from_distinct_instances(make_snapshot):
    a = make_snapshot(percent=42, life_time=3600, battery_saver=False)
    b = make_snapshot(percent=42, life_time=3600, battery_saver=False)
    assert a is not b
    assert compare(a, b).equal


def test_compare_without_previous_reports_every_field(make_snapshot):
    verdict = compare(None, make_snapshot())
    assert "life_percent" in verdict.changed
    assert "life_time" in verdict.changed
    assert not verdict.equal


def test_lifetime_change_is_full_but_not_summary_change(make_snapshot):
    prev = make_snapshot(percent=60, life_time=3600)
    curr = make_snapshot(percent=60, life_time=3540)

    assert compare(prev, curr).changed == frozenset({"life_time"})
    assert compare_summary(prev, curr).equal


def test_battery_saver_change_is_full_change_only(make_snapshot):
    prev = make_snapshot(battery_saver=False)
    curr = make_snapshot(battery_saver=True)

    assert compare(prev, curr).changed == frozenset({"battery_saver"})
    assert compare_summary(prev, curr).equal


def test_summary_detects_percent_and_state_changes(make_snapshot):
    prev = make_snapshot(percent=100, charging=True, plugged_in=True)

    assert compare_summary(prev, make_snapshot(percent=99, charging=True, plugged_in=True)).changed == {"life_percent"}
    assert compare_summary(prev, make_snapshot(percent=100, charging=False, plugged_in=True)).changed == {"charging"}
    assert compare_summary(prev, make_snapshot(percent=100, charging=True, plugged_in=False)).changed == {"plugged_in"}
    assert "no_battery" in compare_summary(prev, make_snapshot(percent=100, charging=True, plugged_in=True, no_battery=True)).changed


def test_verdict_truthiness_follows_changes(make_snapshot):
    prev = make_snapshot(percent=10)
    assert compare_summary(prev, make_snapshot(percent=9))
    assert not compare_summary(prev, make_snapshot(percent=10))


def test_without_drops_named_fields(make_snapshot):
    verdict = compare_summary(
        make_snapshot(percent=80, charging=False),
        make_snapshot(percent=79, charging=True),
    )

    assert verdict.changed == {"life_percent", "charging"}
    assert verdict.without("charging").changed == {"life_percent"}
    assert verdict.without("charging", "life_percent").equal
