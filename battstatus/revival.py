"""
Battery revival detection.

Some failing batteries, or chargers trying to recondition them, toggle
between charging and not charging many times in a short period. Each toggle
would otherwise be announced as a status change, so while the toggling is
frequent the charge state is suppressed.
"""

import logging
from collections import deque
from typing import Deque, Optional

from battstatus.snapshot import PowerSnapshot
from battstatus.ticks import MS_PER_MINUTE, elapsed_ms, minutes_to_ms


# A single toggle has no span to measure
MIN_CHANGES = 2


class RevivalSuppressor:
    """
    Sliding window of charge state toggles.

    The window holds the tick of each charging/not-charging toggle, oldest
    first, up to max_changes entries. Suppression is active while the window
    is full and the span between its oldest and newest toggle is shorter than
    span_minutes. It is re-evaluated on every tick.
    """

    def __init__(self, max_changes: int = 20, span_minutes: int = 30):
        """
        Initialize revival suppressor.

        Args:
            max_changes: Toggles needed within the span to suppress
            span_minutes: Span of the sliding window in minutes
        """
        if max_changes < MIN_CHANGES:
            raise ValueError(f"max_changes must be at least {MIN_CHANGES}, got {max_changes}")
        if span_minutes < 0:
            raise ValueError(f"span_minutes must not be negative, got {span_minutes}")

        self.max_changes = max_changes
        self.span_ms = minutes_to_ms(span_minutes)
        self.window: Deque[int] = deque(maxlen=max_changes)
        self.suppressed = False
        self.just_activated = False
        self.logger = logging.getLogger("BattStatus.Revival")

    def on_tick(
        self,
        curr: PowerSnapshot,
        prev: Optional[PowerSnapshot],
        now_tick: int,
    ) -> bool:
        """
        Update the toggle window for this tick.

        Args:
            curr: Current snapshot
            prev: Previous snapshot, or None on the first tick
            now_tick: Current monotonic tick in milliseconds

        Returns:
            True if charge state reporting is suppressed
        """
        # Toggling has gone quiet, start fresh
        if self.window and elapsed_ms(now_tick, self.window[-1]) >= self.span_ms:
            self.logger.debug(f"Revival window expired, clearing {len(self.window)} entries")
            self.window.clear()

        if prev is not None and curr.charging != prev.charging:
            # Ticks may arrive out of order from the two input channels
            self.window.append(max(now_tick, self.window[-1]) if self.window else now_tick)

        was_suppressed = self.suppressed
        self.suppressed = (
            len(self.window) == self.max_changes
            and elapsed_ms(self.window[-1], self.window[0]) < self.span_ms
        )
        self.just_activated = self.suppressed and not was_suppressed

        if self.just_activated:
            self.logger.debug(
                f"Battery revival detected: {self.max_changes} charge state changes "
                f"within {self.span_ms // MS_PER_MINUTE} minutes"
            )
        elif was_suppressed and not self.suppressed:
            self.logger.debug("Battery revival suppression ended")

        return self.suppressed
