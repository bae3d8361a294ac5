"""
Power broadcast events.

The host broadcasts power events on a change of power source, when battery
life falls below a threshold or changes by a few percent, and around suspend
and resume. These events arrive asynchronously with respect to the polling
cycle; each one triggers an immediate snapshot fetch.
"""

from dataclasses import dataclass
from enum import IntEnum


# Data flags
RESUME_FROM_FAILURE = 0x00000001
USER_INTERACTION_ALLOWED = 0x00000001


class PowerBroadcast(IntEnum):
    """Power broadcast event codes."""
    QUERY_SUSPEND = 0x0000
    QUERY_STANDBY = 0x0001
    QUERY_SUSPEND_FAILED = 0x0002
    QUERY_STANDBY_FAILED = 0x0003
    SUSPEND = 0x0004
    STANDBY = 0x0005
    RESUME_CRITICAL = 0x0006
    RESUME_SUSPEND = 0x0007
    RESUME_STANDBY = 0x0008
    BATTERY_LOW = 0x0009
    POWER_STATUS_CHANGE = 0x000A
    OEM_EVENT = 0x000B
    RESUME_AUTOMATIC = 0x0012
    POWER_SETTING_CHANGE = 0x8013
    UNDOCUMENTED = -1


RESUME_EVENTS = frozenset({
    PowerBroadcast.RESUME_CRITICAL,
    PowerBroadcast.RESUME_SUSPEND,
    PowerBroadcast.RESUME_STANDBY,
    PowerBroadcast.RESUME_AUTOMATIC,
})

QUERY_EVENTS = frozenset({
    PowerBroadcast.QUERY_SUSPEND,
    PowerBroadcast.QUERY_STANDBY,
})


@dataclass(frozen=True)
class PowerEvent:
    """
    A received power broadcast.

    Attributes:
        code: Raw event code
        data: Raw event data word
    """

    code: int
    data: int = 0

    @property
    def event(self) -> PowerBroadcast:
        try:
            return PowerBroadcast(self.code)
        except ValueError:
            return PowerBroadcast.UNDOCUMENTED

    @property
    def is_resume(self) -> bool:
        return self.event in RESUME_EVENTS

    @property
    def is_suspend(self) -> bool:
        return self.event in (PowerBroadcast.SUSPEND, PowerBroadcast.STANDBY)

    @property
    def resumed_from_failure(self) -> bool:
        """True if a resume event reports that the suspend had failed."""
        return self.is_resume and bool(self.data & RESUME_FROM_FAILURE)

    @property
    def interaction_allowed(self) -> bool:
        """True if a suspend query allows prompting the user."""
        return self.event in QUERY_EVENTS and bool(self.data & USER_INTERACTION_ALLOWED)

    @property
    def undocumented_data(self) -> int:
        """Bits of the data word with no documented meaning for this event."""
        if self.event in QUERY_EVENTS:
            return self.data & ~USER_INTERACTION_ALLOWED
        if self.is_resume:
            return self.data & ~RESUME_FROM_FAILURE
        return self.data
