"""
Change detection between consecutive power snapshots.

Two comparisons are available. The full comparison covers every snapshot
field and drives the verbose dump. The summary comparison covers only the
fields shown in the one-line status: remaining lifetime in seconds is left
out because it updates nearly every tick even when nothing meaningful
changed, while percent is a coarser and stabler signal.
"""

from dataclasses import dataclass
from operator import attrgetter
from typing import Callable, FrozenSet, Optional, Tuple

from battstatus.snapshot import PowerSnapshot


FieldAccessor = Tuple[str, Callable[[PowerSnapshot], object]]


FULL_FIELDS: Tuple[FieldAccessor, ...] = tuple(
    (name, attrgetter(name))
    for name in (
        "ac_line_status",
        "battery_flag",
        "life_percent",
        "battery_saver",
        "life_time",
        "full_life_time",
    )
)

SUMMARY_FIELDS: Tuple[FieldAccessor, ...] = (
    ("life_percent", attrgetter("life_percent")),
    ("charging", attrgetter("charging")),
    ("no_battery", attrgetter("no_battery")),
    ("plugged_in", attrgetter("plugged_in")),
)


@dataclass(frozen=True)
class ChangeVerdict:
    """Result of comparing two snapshots: the names of the fields that differ."""

    changed: FrozenSet[str] = frozenset()

    @property
    def equal(self) -> bool:
        return not self.changed

    def __bool__(self) -> bool:
        return bool(self.changed)

    def without(self, *names: str) -> "ChangeVerdict":
        """Verdict with the given fields treated as unchanged."""
        changed = self.changed.difference(names)
        return ChangeVerdict(changed) if changed else EQUAL


EQUAL = ChangeVerdict()


def _compare(
    prev: Optional[PowerSnapshot],
    curr: PowerSnapshot,
    fields: Tuple[FieldAccessor, ...],
) -> ChangeVerdict:
    if prev is None:
        return ChangeVerdict(frozenset(name for name, _ in fields))

    changed = frozenset(
        name for name, accessor in fields if accessor(prev) != accessor(curr)
    )
    return ChangeVerdict(changed) if changed else EQUAL


def compare(prev: Optional[PowerSnapshot], curr: PowerSnapshot) -> ChangeVerdict:
    """
    Compare every field of two snapshots.

    Args:
        prev: Previous snapshot, or None if there is none yet
        curr: Current snapshot

    Returns:
        ChangeVerdict naming every differing field (all fields if prev is None)
    """
    return _compare(prev, curr, FULL_FIELDS)


def compare_summary(prev: Optional[PowerSnapshot], curr: PowerSnapshot) -> ChangeVerdict:
    """Compare percent, charging, no-battery and plugged-in state only."""
    return _compare(prev, curr, SUMMARY_FIELDS)
