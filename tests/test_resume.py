"""Tests for resume-from-sleep lifetime suppression."""

import pytest

from battstatus.resume import ResumeSuppressor, wake_time_to_tick

# 15.625ms, a typical coarsest timer interval
TIMER_INTERVAL = 156250


def wake_at(tick_ms):
    """Wake time in 100ns units for a tick in milliseconds."""
    return tick_ms * 10000


@pytest.fixture
def started(minutes):
    """Suppressor that has seen the startup wake time."""
    suppressor = ResumeSuppressor(span_minutes=3)
    assert suppressor.on_tick(wake_at(minutes(1)), minutes(60), TIMER_INTERVAL) is False
    return suppressor


def test_wake_time_conversion_subtracts_timer_interval():
    assert wake_time_to_tick(wake_at(5000), TIMER_INTERVAL) == 4984
    assert wake_time_to_tick(wake_at(5000)) == 5000
    assert wake_time_to_tick(100, TIMER_INTERVAL) == 0


def test_first_wake_time_never_suppresses(minutes):
    suppressor = ResumeSuppressor(span_minutes=3)
    now = minutes(60)
    # Even a wake time a few seconds before now is assumed to predate startup
    assert suppressor.on_tick(wake_at(now - 5000), now, TIMER_INTERVAL) is False
    assert not suppressor.just_resumed


def test_recent_wake_suppresses(started, minutes):
    now = minutes(120)
    assert started.on_tick(wake_at(now - minutes(2)), now, TIMER_INTERVAL) is True
    assert started.just_resumed


def test_old_wake_does_not_suppress(started, minutes):
    now = minutes(120)
    wake = wake_at(now - minutes(4))
    assert started.on_tick(wake, now, TIMER_INTERVAL) is False
    assert started.ignored_wake == wake


def test_suppression_persists_until_span_passes(started, minutes):
    wake_tick = minutes(100)
    wake = wake_at(wake_tick)

    assert started.on_tick(wake, wake_tick + minutes(1), TIMER_INTERVAL) is True
    assert started.just_resumed

    assert started.on_tick(wake, wake_tick + minutes(2), TIMER_INTERVAL) is True
    assert not started.just_resumed

    assert started.on_tick(wake, wake_tick + minutes(3) + 1000, TIMER_INTERVAL) is False
    assert started.ignored_wake == wake

    # Same wake time is now the baseline
    assert started.on_tick(wake, wake_tick + minutes(4), TIMER_INTERVAL) is False


def test_new_wake_while_suppressed_signals_again(started, minutes):
    first = minutes(100)
    assert started.on_tick(wake_at(first), first + 30000, TIMER_INTERVAL) is True

    second = first + minutes(1)
    assert started.on_tick(wake_at(second), second + 5000, TIMER_INTERVAL) is True
    assert started.just_resumed


def test_missing_wake_time_never_suppresses(minutes):
    suppressor = ResumeSuppressor()
    assert suppressor.on_tick(None, minutes(5)) is False
    assert suppressor.ignored_wake is None


def test_zero_span_disables_suppression(minutes):
    suppressor = ResumeSuppressor(span_minutes=0)
    suppressor.on_tick(wake_at(1000), minutes(10))
    now = minutes(20)
    assert suppressor.on_tick(wake_at(now - 1000), now) is False
