"""
Power status sources.

A source fetches PowerSnapshot readings from the host, along with the inputs
the engine needs beside them: a monotonic tick, the last wake time, the
maximum timer interval and the battery rate. On Windows the readings come
straight from the power API through ctypes; elsewhere psutil is used and the
rate is read from sysfs where the kernel exposes it.
"""

import logging
import platform
import sys
import time
from pathlib import Path
from typing import Optional

import psutil

from battstatus.snapshot import (
    ACLineStatus,
    BatteryFlag,
    PowerSnapshot,
    UNKNOWN_LIFETIME,
    UNKNOWN_PERCENT,
)
from battstatus.window import create_broadcast_window


# Battery flag thresholds used by the host power API
HIGH_PERCENT = 66
LOW_PERCENT = 33
CRITICAL_PERCENT = 5

POWER_SUPPLY_DIR = Path("/sys/class/power_supply")


class PowerSource:
    """
    Portable power source backed by psutil.

    Wake time is not available, so resume suppression stays idle with this
    source.
    """

    def __init__(self):
        self.logger = logging.getLogger("BattStatus.Source")

    def fetch(self) -> Optional[PowerSnapshot]:
        """
        Fetch the current power status.

        Returns:
            PowerSnapshot, or None if the status could not be read
        """
        if not hasattr(psutil, "sensors_battery"):
            self.logger.error("psutil has no battery support on this platform")
            return None

        try:
            battery = psutil.sensors_battery()
        except (OSError, RuntimeError) as e:
            self.logger.error(f"Error getting battery info: {e}")
            return None

        return snapshot_from_psutil(battery)

    def tick(self) -> int:
        """Current monotonic tick in milliseconds."""
        return int(time.monotonic() * 1000)

    def last_wake(self) -> Optional[int]:
        """Last wake time in 100ns units since boot, None if unavailable."""
        return None

    def max_timer_interval(self) -> int:
        """Maximum timer interval in 100ns units."""
        return 0

    def battery_rate(self) -> Optional[int]:
        """
        Battery rate in mW from sysfs, positive while charging.

        Returns:
            Signed rate, or None if no battery exposes one
        """
        if not POWER_SUPPLY_DIR.is_dir():
            return None

        for supply in sorted(POWER_SUPPLY_DIR.glob("BAT*")):
            try:
                microwatts = _read_sysfs_power(supply)
                if microwatts is None:
                    continue
                status = (supply / "status").read_text().strip()
            except (OSError, ValueError) as e:
                self.logger.debug(f"Error reading {supply}: {e}")
                continue

            milliwatts = microwatts // 1000
            return -milliwatts if status == "Discharging" else milliwatts

        return None

    def prevent_sleep(self) -> bool:
        """
        Keep the host awake while monitoring.

        Returns:
            True if the request was accepted
        """
        self.logger.warning(f"Prevent sleep is not supported on {platform.system()}")
        return False

    def create_event_window(self, on_event, verbose: int = 0):
        """
        Open a receiver for power broadcast events on the calling thread.

        Args:
            on_event: Called with each PowerEvent
            verbose: Verbosity level for the receiver's own logging

        Returns:
            Object with pump() and close(), or None if the host has no broadcasts
        """
        return None


def _read_sysfs_power(supply: Path) -> Optional[int]:
    power_now = supply / "power_now"
    if power_now.exists():
        return abs(int(power_now.read_text().strip()))

    current_now = supply / "current_now"
    voltage_now = supply / "voltage_now"
    if current_now.exists() and voltage_now.exists():
        # uA * uV = pW
        current = abs(int(current_now.read_text().strip()))
        voltage = int(voltage_now.read_text().strip())
        return current * voltage // 1000000

    return None


def snapshot_from_psutil(battery) -> PowerSnapshot:
    """
    Map a psutil battery reading onto a PowerSnapshot.

    Args:
        battery: psutil sensors_battery() result, None if there is no battery

    Returns:
        PowerSnapshot instance
    """
    if battery is None:
        return PowerSnapshot(
            ac_line_status=ACLineStatus.UNKNOWN,
            battery_flag=int(BatteryFlag.NO_BATTERY),
        )

    if battery.power_plugged is None:
        ac = ACLineStatus.UNKNOWN
    else:
        ac = ACLineStatus.ONLINE if battery.power_plugged else ACLineStatus.OFFLINE

    if battery.percent is None:
        percent = UNKNOWN_PERCENT
    else:
        percent = max(0, min(100, int(round(battery.percent))))

    flag = BatteryFlag.NONE
    if percent != UNKNOWN_PERCENT:
        if percent > HIGH_PERCENT:
            flag |= BatteryFlag.HIGH
        elif percent < CRITICAL_PERCENT:
            flag |= BatteryFlag.LOW | BatteryFlag.CRITICAL
        elif percent < LOW_PERCENT:
            flag |= BatteryFlag.LOW
    if battery.power_plugged and percent < 100:
        flag |= BatteryFlag.CHARGING

    secsleft = battery.secsleft
    if secsleft in (psutil.POWER_TIME_UNLIMITED, psutil.POWER_TIME_UNKNOWN) or secsleft is None:
        life_time = UNKNOWN_LIFETIME
    else:
        life_time = max(0, int(secsleft))

    return PowerSnapshot(
        ac_line_status=ac,
        battery_flag=int(flag),
        life_percent=percent,
        life_time=life_time,
    )


class WindowsPowerSource(PowerSource):
    """Power source reading the Windows power API through ctypes."""

    ES_SYSTEM_REQUIRED = 0x00000001
    ES_AWAYMODE_REQUIRED = 0x00000040
    ES_CONTINUOUS = 0x80000000

    # POWER_INFORMATION_LEVEL
    SYSTEM_BATTERY_STATE = 5
    LAST_WAKE_TIME = 14

    def __init__(self):
        super().__init__()
        import ctypes
        from ctypes import wintypes

        self._ctypes = ctypes

        class SystemPowerStatus(ctypes.Structure):
            _fields_ = [
                ("ACLineStatus", wintypes.BYTE),
                ("BatteryFlag", wintypes.BYTE),
                ("BatteryLifePercent", wintypes.BYTE),
                ("SystemStatusFlag", wintypes.BYTE),
                ("BatteryLifeTime", wintypes.DWORD),
                ("BatteryFullLifeTime", wintypes.DWORD),
            ]

        class SystemBatteryState(ctypes.Structure):
            _fields_ = [
                ("AcOnLine", wintypes.BOOLEAN),
                ("BatteryPresent", wintypes.BOOLEAN),
                ("Charging", wintypes.BOOLEAN),
                ("Discharging", wintypes.BOOLEAN),
                ("Spare1", wintypes.BOOLEAN * 3),
                ("Tag", wintypes.BYTE),
                ("MaxCapacity", wintypes.DWORD),
                ("RemainingCapacity", wintypes.DWORD),
                ("Rate", wintypes.DWORD),
                ("EstimatedTime", wintypes.DWORD),
                ("DefaultAlert1", wintypes.DWORD),
                ("DefaultAlert2", wintypes.DWORD),
            ]

        self._power_status_type = SystemPowerStatus
        self._battery_state_type = SystemBatteryState

        self._kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
        self._kernel32.GetTickCount64.restype = ctypes.c_ulonglong
        self._kernel32.SetThreadExecutionState.restype = wintypes.DWORD
        self._kernel32.SetThreadExecutionState.argtypes = [wintypes.DWORD]
        self._powrprof = ctypes.WinDLL("powrprof")
        self._ntdll = ctypes.WinDLL("ntdll")

        # Battery saver flag was introduced in Windows 10
        self._battery_saver_supported = sys.getwindowsversion().major >= 10

    def fetch(self) -> Optional[PowerSnapshot]:
        status = self._power_status_type()
        if not self._kernel32.GetSystemPowerStatus(self._ctypes.byref(status)):
            error = self._ctypes.get_last_error()
            self.logger.error(f"GetSystemPowerStatus() failed, GetLastError(): {error}")
            return None

        battery_saver = None
        if self._battery_saver_supported:
            battery_saver = (status.SystemStatusFlag & 0xFF) == 1

        return PowerSnapshot.from_raw(
            status.ACLineStatus & 0xFF,
            status.BatteryFlag & 0xFF,
            status.BatteryLifePercent & 0xFF,
            status.BatteryLifeTime,
            status.BatteryFullLifeTime,
            battery_saver,
        )

    def tick(self) -> int:
        return int(self._kernel32.GetTickCount64())

    def last_wake(self) -> Optional[int]:
        wake = self._ctypes.c_ulonglong(0)
        result = self._powrprof.CallNtPowerInformation(
            self.LAST_WAKE_TIME, None, 0,
            self._ctypes.byref(wake), self._ctypes.sizeof(wake),
        )
        if result != 0:
            self.logger.debug(f"CallNtPowerInformation(LastWakeTime) failed: {result:#x}")
            return None
        return wake.value

    def max_timer_interval(self) -> int:
        ulong = self._ctypes.c_ulong
        coarsest, finest, current = ulong(0), ulong(0), ulong(0)
        result = self._ntdll.NtQueryTimerResolution(
            self._ctypes.byref(coarsest),
            self._ctypes.byref(finest),
            self._ctypes.byref(current),
        )
        if result != 0:
            self.logger.debug(f"NtQueryTimerResolution failed: {result:#x}")
            return 0
        return max(coarsest.value, finest.value)

    def battery_rate(self) -> Optional[int]:
        state = self._battery_state_type()
        result = self._powrprof.CallNtPowerInformation(
            self.SYSTEM_BATTERY_STATE, None, 0,
            self._ctypes.byref(state), self._ctypes.sizeof(state),
        )
        if result != 0:
            return None
        return state.Rate

    def prevent_sleep(self) -> bool:
        """
        Request away mode instead of sleep for the calling thread.

        This keeps the host in a working state but does not stop a sleep the
        user starts manually while on battery power.
        """
        previous = self._kernel32.SetThreadExecutionState(
            self.ES_AWAYMODE_REQUIRED | self.ES_CONTINUOUS | self.ES_SYSTEM_REQUIRED
        )
        if not previous:
            self.logger.warning("SetThreadExecutionState() failed, sleep not prevented")
            return False
        self.logger.info("Preventing sleep while monitoring")
        return True

    def create_event_window(self, on_event, verbose: int = 0):
        return create_broadcast_window(on_event, verbose)


def create_source() -> PowerSource:
    """
    Create the power source for this platform.

    Returns:
        WindowsPowerSource on Windows, PowerSource elsewhere
    """
    if platform.system() == "Windows":
        try:
            return WindowsPowerSource()
        except (OSError, AttributeError) as e:
            logging.getLogger("BattStatus.Source").warning(
                f"Windows power API unavailable, falling back to psutil: {e}"
            )
    return PowerSource()
