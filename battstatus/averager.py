"""
Rolling average of remaining battery lifetime.

The lifetime reported by the host swings widely from one reading to the next.
LifetimeAverager keeps roughly one entry per minute over a trailing span and
averages them, with every entry first adjusted to "seconds remaining as of
now" so that older samples do not hold the estimate up.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

from battstatus.snapshot import UNKNOWN_LIFETIME
from battstatus.ticks import MS_PER_MINUTE, MS_PER_SECOND, elapsed_ms, minutes_to_ms


# Largest value an entry or average may take; the sentinel itself is reserved
MAX_LIFETIME = UNKNOWN_LIFETIME - 1


@dataclass
class LifetimeEntry:
    """One history entry: a lifetime in seconds and the tick it was recorded at."""

    seconds: int
    tick: int


class LifetimeAverager:
    """
    Per-minute lifetime history with a time-adjusted average.

    A sample less than a minute after the newest entry is blended into it
    (half old, half new). A sample after a longer gap is appended, with
    synthetic entries backfilled at one minute spacing first so that sparse
    polling does not give a single real sample too much weight. The history
    is cleared whenever the lifetime is unknown or zero.
    """

    def __init__(self, span_minutes: int = 0):
        """
        Initialize lifetime averager.

        Args:
            span_minutes: Minutes of history to average, 0 to disable
        """
        if span_minutes < 0:
            raise ValueError(f"span_minutes must not be negative, got {span_minutes}")

        self.span_minutes = span_minutes
        self.span_ms = minutes_to_ms(span_minutes)
        self.history: Deque[LifetimeEntry] = deque()
        self.logger = logging.getLogger("BattStatus.Averager")

    @property
    def enabled(self) -> bool:
        return self.span_minutes > 0

    def clear(self):
        if self.history:
            self.logger.debug(f"Clearing lifetime history ({len(self.history)} entries)")
        self.history.clear()

    def on_tick(
        self,
        lifetime: Optional[int],
        now_tick: int,
        reset: bool = False,
    ) -> Optional[int]:
        """
        Record a lifetime sample and return the averaged lifetime.

        Args:
            lifetime: Remaining seconds, or None if unknown
            now_tick: Current monotonic tick in milliseconds
            reset: True to discard history, e.g. right after a resume

        Returns:
            Averaged remaining seconds (at least 1), or None if unavailable
        """
        if (
            not self.enabled
            or reset
            or lifetime is None
            or lifetime <= 0
            or lifetime >= UNKNOWN_LIFETIME
        ):
            self.clear()
            return None

        self._evict(now_tick)

        if self.history and elapsed_ms(now_tick, self.history[-1].tick) < MS_PER_MINUTE:
            last = self.history[-1]
            last.seconds = _clamp(last.seconds // 2 + lifetime // 2)
        else:
            if self.history:
                self._backfill(now_tick)
            self.history.append(LifetimeEntry(_clamp(lifetime), now_tick))

        return self.average(now_tick)

    def average(self, now_tick: int) -> Optional[int]:
        """
        Average of all entries, each adjusted to seconds remaining at now_tick.

        Args:
            now_tick: Current monotonic tick in milliseconds

        Returns:
            Averaged remaining seconds (at least 1), or None if history is empty
        """
        if not self.history:
            return None

        total = 0
        for entry in self.history:
            age_seconds = elapsed_ms(now_tick, entry.tick) // MS_PER_SECOND
            total += _clamp(entry.seconds - age_seconds)

        return _clamp(total // len(self.history))

    def _evict(self, now_tick: int):
        while self.history and elapsed_ms(now_tick, self.history[0].tick) > self.span_ms:
            self.history.popleft()

    def _backfill(self, now_tick: int):
        """Fill a gap of 2+ minutes with entries decaying by 60s per minute."""
        last = self.history[-1]
        steps = (elapsed_ms(now_tick, last.tick) // MS_PER_MINUTE) - 1
        if steps <= 0:
            return

        # Entries older than the span would be evicted straight away
        behind = now_tick - self.span_ms - last.tick
        first = max(1, -(-behind // MS_PER_MINUTE))

        for step in range(first, steps + 1):
            self.history.append(
                LifetimeEntry(
                    _clamp(last.seconds - 60 * step),
                    last.tick + step * MS_PER_MINUTE,
                )
            )


def _clamp(seconds: int) -> int:
    return max(1, min(MAX_LIFETIME, seconds))
