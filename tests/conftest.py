"""Shared fixtures for battstatus tests."""

import pytest

from battstatus.config import ConfigManager
from battstatus.snapshot import (
    ACLineStatus,
    BatteryFlag,
    PowerSnapshot,
    UNKNOWN_LIFETIME,
)
from battstatus.ticks import MS_PER_MINUTE


def build_snapshot(
    percent=50,
    charging=False,
    plugged_in=False,
    no_battery=False,
    life_time=UNKNOWN_LIFETIME,
    full_life_time=UNKNOWN_LIFETIME,
    battery_saver=None,
    ac_line_status=None,
):
    flag = BatteryFlag.NONE
    if charging:
        flag |= BatteryFlag.CHARGING
    if no_battery:
        flag |= BatteryFlag.NO_BATTERY

    if ac_line_status is None:
        ac_line_status = ACLineStatus.ONLINE if plugged_in else ACLineStatus.OFFLINE

    return PowerSnapshot(
        ac_line_status=ac_line_status,
        battery_flag=int(flag),
        life_percent=percent,
        life_time=life_time,
        full_life_time=full_life_time,
        battery_saver=battery_saver,
    )


@pytest.fixture
def make_snapshot():
    """Factory for PowerSnapshot instances with readable keyword arguments."""
    return build_snapshot


@pytest.fixture
def minutes():
    """Convert minutes (int or float) to a tick offset in milliseconds."""
    return lambda m: int(m * MS_PER_MINUTE)


@pytest.fixture
def config(tmp_path):
    """ConfigManager backed by a file that does not exist yet."""
    return ConfigManager(str(tmp_path / "config.json"))


class FakeSource:
    """Power source returning scripted snapshots and ticks."""

    def __init__(self, snapshots=None, tick_step=100):
        self.snapshots = list(snapshots or [])
        self.current_tick = 0
        self.tick_step = tick_step
        self.wake = None
        self.timer_interval = 0
        self.rate = 0
        self.prevent_sleep_calls = 0
        self.event_window = None

    def fetch(self):
        if not self.snapshots:
            return None
        return self.snapshots.pop(0)

    def tick(self):
        self.current_tick += self.tick_step
        return self.current_tick

    def last_wake(self):
        return self.wake

    def max_timer_interval(self):
        return self.timer_interval

    def battery_rate(self):
        return self.rate

    def prevent_sleep(self):
        self.prevent_sleep_calls += 1
        return True

    def create_event_window(self, on_event, verbose=0):
        if self.event_window is not None:
            self.event_window.on_event = on_event
        return self.event_window


@pytest.fixture
def fake_source():
    return FakeSource
