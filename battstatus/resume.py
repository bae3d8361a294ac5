"""
Resume-from-sleep detection.

Right after the host resumes, the remaining battery lifetime it reports is
unreliable because the discharge rate has not been re-measured yet. The
ResumeSuppressor watches the host's last wake time and flags lifetime as
suppressed for a short span after each new wake.
"""

import logging
from typing import Optional

from battstatus.ticks import MS_PER_SECOND, elapsed_ms, minutes_to_ms


# Wake time and timer interval are in 100ns units
HUNDRED_NS_PER_MS = 10000


def wake_time_to_tick(last_wake: int, max_timer_interval: int = 0) -> int:
    """
    Convert a wake time to a polling clock tick.

    The wake time is interrupt time in 100ns units. The polling clock is
    coarser, so the maximum timer interval is subtracted first; this keeps
    the converted wake tick from ever landing after the current tick.

    Args:
        last_wake: Last wake time in 100ns units since boot
        max_timer_interval: Host maximum timer interval in 100ns units

    Returns:
        Wake tick in milliseconds, floored at 0
    """
    return max(0, last_wake - max(0, max_timer_interval)) // HUNDRED_NS_PER_MS


class ResumeSuppressor:
    """
    Tracks the last wake time and the lifetime suppression window.

    The wake time seen on the first observation almost certainly predates the
    process and is recorded as the ignored baseline. A later, different wake
    time starts a suppression window of span_minutes. The baseline is only
    advanced to that wake time once the window has aged out, so a new resume
    starts a fresh countdown only after the previous one has finished.
    """

    def __init__(self, span_minutes: int = 3):
        """
        Initialize resume suppressor.

        Args:
            span_minutes: Minutes after a resume during which lifetime is suppressed
        """
        if span_minutes < 0:
            raise ValueError(f"span_minutes must not be negative, got {span_minutes}")

        self.span_ms = minutes_to_ms(span_minutes)
        self.ignored_wake: Optional[int] = None
        self.last_wake: Optional[int] = None
        self.suppressed = False
        self.just_resumed = False
        self.logger = logging.getLogger("BattStatus.Resume")

    def on_tick(
        self,
        last_wake: Optional[int],
        now_tick: int,
        max_timer_interval: int = 0,
    ) -> bool:
        """
        Update resume state for this tick.

        Args:
            last_wake: Last wake time in 100ns units, or None if unavailable
            now_tick: Current monotonic tick in milliseconds
            max_timer_interval: Host maximum timer interval in 100ns units

        Returns:
            True if lifetime reporting is suppressed
        """
        self.just_resumed = False

        if last_wake is None:
            self.suppressed = False
            return False

        if self.ignored_wake is None:
            self.logger.debug(f"Ignoring wake time {last_wake} observed at startup")
            self.ignored_wake = last_wake
            self.last_wake = last_wake
            return False

        if last_wake == self.ignored_wake:
            self.suppressed = False
            self.last_wake = last_wake
            return False

        wake_tick = wake_time_to_tick(last_wake, max_timer_interval)
        since_wake = elapsed_ms(now_tick, wake_tick)

        if since_wake < self.span_ms:
            self.just_resumed = not self.suppressed or last_wake != self.last_wake
            self.suppressed = True
            if self.just_resumed:
                self.logger.debug(
                    f"Recently resumed ({since_wake // MS_PER_SECOND}s ago), "
                    f"suppressing battery lifetime"
                )
        else:
            if self.suppressed:
                self.logger.debug("Resume suppression ended")
            self.suppressed = False
            self.ignored_wake = last_wake

        self.last_wake = last_wake
        return self.suppressed
