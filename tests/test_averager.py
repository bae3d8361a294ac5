"""Tests for the rolling lifetime average."""

import pytest

from battstatus.averager import LifetimeAverager
from battstatus.snapshot import UNKNOWN_LIFETIME


def test_disabled_averager_returns_none(minutes):
    averager = LifetimeAverager(span_minutes=0)
    assert not averager.enabled
    assert averager.on_tick(3600, minutes(1)) is None
    assert len(averager.history) == 0


@pytest.mark.parametrize("lifetime", [None, 0, UNKNOWN_LIFETIME])
def test_invalid_lifetime_clears_history(lifetime, minutes):
    averager = LifetimeAverager(span_minutes=10)
    averager.on_tick(3600, minutes(1))
    averager.on_tick(3500, minutes(3))
    assert len(averager.history) > 0

    assert averager.on_tick(lifetime, minutes(4)) is None
    assert len(averager.history) == 0


def test_reset_clears_history(minutes):
    averager = LifetimeAverager(span_minutes=10)
    averager.on_tick(3600, minutes(1))
    assert averager.on_tick(3600, minutes(2), reset=True) is None
    assert len(averager.history) == 0


def test_first_sample_is_returned_as_is(minutes):
    averager = LifetimeAverager(span_minutes=10)
    assert averager.on_tick(3600, minutes(1)) == 3600


def test_sample_within_a_minute_is_blended(minutes):
    averager = LifetimeAverager(span_minutes=10)
    start = minutes(1)
    averager.on_tick(3600, start)
    averager.on_tick(1800, start + 30000)

    assert len(averager.history) == 1
    assert averager.history[0].seconds == 2700
    assert averager.history[0].tick == start


def test_blend_never_drops_below_one(minutes):
    averager = LifetimeAverager(span_minutes=10)
    averager.on_tick(1, minutes(1))
    averager.on_tick(1, minutes(1) + 1000)
    assert averager.history[0].seconds == 1


def test_gap_is_backfilled_with_decaying_entries(minutes):
    averager = LifetimeAverager(span_minutes=30)
    start = minutes(1)
    averager.on_tick(3600, start)
    averager.on_tick(3000, start + minutes(4) + 30000)

    values = [(e.seconds, e.tick - start) for e in averager.history]
    assert values == [
        (3600, 0),
        (3540, minutes(1)),
        (3480, minutes(2)),
        (3420, minutes(3)),
        (3000, minutes(4) + 30000),
    ]


def test_backfill_is_floored_at_one(minutes):
    averager = LifetimeAverager(span_minutes=30)
    averager.on_tick(90, minutes(1))
    averager.on_tick(500, minutes(5))
    assert [e.seconds for e in averager.history] == [90, 30, 1, 1, 500]


def test_backfill_skips_entries_older_than_span(minutes):
    averager = LifetimeAverager(span_minutes=5)
    averager.on_tick(7200, minutes(10))
    averager.on_tick(6000, minutes(13) + 30000)
    # A long gap evicts the old entry before anything is backfilled
    averager.on_tick(5000, minutes(30))

    assert len(averager.history) == 1
    assert all(minutes(30) - e.tick <= minutes(5) for e in averager.history)


def test_entries_older_than_span_are_evicted(minutes):
    averager = LifetimeAverager(span_minutes=3)
    for m in range(1, 11):
        averager.on_tick(3600, minutes(m))

    assert all(minutes(10) - e.tick <= minutes(3) for e in averager.history)
    assert len(averager.history) == 4


def test_average_adjusts_entries_to_now(minutes):
    averager = LifetimeAverager(span_minutes=10)
    start = minutes(1)
    averager.on_tick(600, start)
    # Recorded 100s later; the first entry has aged 100s by then
    assert averager.on_tick(600, start + 100000) == 550


def test_average_decreases_as_time_advances(minutes):
    averager = LifetimeAverager(span_minutes=10)
    start = minutes(1)
    averager.on_tick(600, start)
    averager.on_tick(600, start + 100000)

    previous = None
    for offset in range(100000, 400000, 10000):
        value = averager.average(start + offset)
        if previous is not None:
            assert value < previous
        previous = value


def test_average_is_never_zero_or_sentinel(minutes):
    averager = LifetimeAverager(span_minutes=10)
    start = minutes(1)
    averager.on_tick(30, start)
    averager.on_tick(UNKNOWN_LIFETIME - 1, start + minutes(1))

    for offset in (0, minutes(1), minutes(5), minutes(60)):
        value = averager.average(start + offset)
        assert value is not None
        assert 1 <= value < UNKNOWN_LIFETIME


def test_average_of_empty_history_is_none():
    assert LifetimeAverager(span_minutes=5).average(1000) is None
