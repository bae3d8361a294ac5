"""
Monotonic tick arithmetic.

Ticks are integer milliseconds from a 64-bit monotonic clock supplied by the
caller. Differences saturate at zero so that a tick arriving slightly out of
order never produces a negative duration.
"""

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND


def elapsed_ms(now_tick: int, then_tick: int) -> int:
    """
    Milliseconds from then_tick to now_tick, floored at 0.

    Args:
        now_tick: Later tick
        then_tick: Earlier tick

    Returns:
        Non-negative duration in milliseconds
    """
    return max(0, now_tick - then_tick)


def minutes_to_ms(minutes: int) -> int:
    return minutes * MS_PER_MINUTE
