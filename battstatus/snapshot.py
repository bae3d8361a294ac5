"""
Power status snapshot model.

A PowerSnapshot is one sampled reading of the host's power status. Raw values
follow the host power API, including its "unknown" sentinels, so that two
snapshots can be compared field by field without losing information.
"""

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Optional


UNKNOWN_PERCENT = 255
UNKNOWN_LIFETIME = 0xFFFFFFFF
BATTERY_FLAG_UNKNOWN = 255

# Some drivers report this as the rate while charging. Undocumented.
BATTERY_RATE_UNKNOWN = 0x80000000


class ACLineStatus(IntEnum):
    """AC power line status."""
    OFFLINE = 0
    ONLINE = 1
    UNKNOWN = 255


class BatteryFlag(IntFlag):
    """Battery charge status bits."""
    NONE = 0
    HIGH = 1
    LOW = 2
    CRITICAL = 4
    CHARGING = 8
    NO_BATTERY = 128


@dataclass(frozen=True)
class PowerSnapshot:
    """
    Immutable power status reading.

    Attributes:
        ac_line_status: AC line status
        battery_flag: Raw battery flag bits (255 means unknown status)
        life_percent: Raw remaining charge percent (255 means unknown)
        life_time: Raw remaining seconds (UNKNOWN_LIFETIME means unknown)
        full_life_time: Raw seconds at full charge (UNKNOWN_LIFETIME means unknown)
        battery_saver: Battery saver state, or None where the host has no such setting
    """

    ac_line_status: ACLineStatus = ACLineStatus.UNKNOWN
    battery_flag: int = BATTERY_FLAG_UNKNOWN
    life_percent: int = UNKNOWN_PERCENT
    life_time: int = UNKNOWN_LIFETIME
    full_life_time: int = UNKNOWN_LIFETIME
    battery_saver: Optional[bool] = None

    @classmethod
    def from_raw(
        cls,
        ac_line_status: int,
        battery_flag: int,
        life_percent: int,
        life_time: int,
        full_life_time: int = UNKNOWN_LIFETIME,
        battery_saver: Optional[bool] = None,
    ) -> "PowerSnapshot":
        """
        Build a snapshot from raw host values.

        Undocumented AC line values are coerced to UNKNOWN. Lifetimes are
        masked to 32 bits so that a signed -1 maps onto the unknown sentinel.

        Args:
            ac_line_status: Raw AC line status byte
            battery_flag: Raw battery flag byte
            life_percent: Raw battery percent byte
            life_time: Raw remaining seconds
            full_life_time: Raw full charge seconds
            battery_saver: Battery saver state, None if not applicable

        Returns:
            PowerSnapshot instance
        """
        try:
            ac = ACLineStatus(ac_line_status)
        except ValueError:
            ac = ACLineStatus.UNKNOWN

        return cls(
            ac_line_status=ac,
            battery_flag=int(battery_flag) & 0xFF,
            life_percent=int(life_percent) & 0xFF,
            life_time=int(life_time) & 0xFFFFFFFF,
            full_life_time=int(full_life_time) & 0xFFFFFFFF,
            battery_saver=battery_saver,
        )

    @property
    def flag_known(self) -> bool:
        return self.battery_flag != BATTERY_FLAG_UNKNOWN

    @property
    def charging(self) -> bool:
        return self.flag_known and bool(self.battery_flag & BatteryFlag.CHARGING)

    @property
    def no_battery(self) -> bool:
        return self.flag_known and bool(self.battery_flag & BatteryFlag.NO_BATTERY)

    @property
    def plugged_in(self) -> bool:
        return self.ac_line_status == ACLineStatus.ONLINE

    @property
    def percent(self) -> Optional[int]:
        """Remaining charge percent, or None if unknown or out of range."""
        if 0 <= self.life_percent <= 100:
            return self.life_percent
        return None

    @property
    def lifetime(self) -> Optional[int]:
        """Remaining battery seconds, or None if unknown."""
        return _known_seconds(self.life_time)

    @property
    def full_lifetime(self) -> Optional[int]:
        """Battery seconds at full charge, or None if unknown."""
        return _known_seconds(self.full_life_time)


def _known_seconds(value: int) -> Optional[int]:
    if value < 0 or value >= UNKNOWN_LIFETIME:
        return None
    return value


def normalize_battery_rate(raw_rate: Optional[int]) -> int:
    """
    Convert a raw battery rate to signed milliwatts.

    The rate is a DWORD that should be treated as a signed LONG: positive while
    charging, negative while discharging. 0x80000000 is reported by some
    batteries while charging and is treated as 0, as is a missing reading.

    Args:
        raw_rate: Raw rate as read from the host, or None

    Returns:
        Signed rate in mW, 0 if unknown
    """
    if raw_rate is None:
        return 0

    rate = int(raw_rate) & 0xFFFFFFFF
    if rate == BATTERY_RATE_UNKNOWN:
        return 0
    if rate & 0x80000000:
        rate -= 0x100000000
    return rate
