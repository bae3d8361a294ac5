"""
Reporting policy.

Turns the detector verdicts, the suppression flags and the averaged lifetime
into a single decision per tick: show a full dump, show a one-line status of
a given kind, or show nothing. The one-line kinds mirror what the battery
systray shows. Rendering decisions into text is left to the caller.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from battstatus.detector import ChangeVerdict
from battstatus.snapshot import PowerSnapshot


class DecisionAction(Enum):
    """What to show for a tick."""
    FULL_DUMP = "full_dump"
    ONE_LINER = "one_liner"
    NOTHING = "nothing"


class LineKind(Enum):
    """Kind of one-line status, in selection order."""
    NO_BATTERY = "no_battery"
    SUPPRESSED_PERCENT = "suppressed_percent"
    FULLY_CHARGED = "fully_charged"
    PLUGGED_IN_STATUS = "plugged_in_status"
    LIFETIME_REMAINING = "lifetime_remaining"
    PERCENT_REMAINING = "percent_remaining"


class SignalKind(Enum):
    """One-time advisory signals."""
    REVIVAL_WARNING = "revival_warning"
    RESUME_WARNING = "resume_warning"
    BATTERY_SAVER_CHANGED = "battery_saver_changed"


@dataclass(frozen=True)
class Signal:
    """An advisory signal raised on a tick."""

    kind: SignalKind
    tick: int
    battery_saver: Optional[bool] = None


@dataclass(frozen=True)
class Decision:
    """
    Decision for one tick.

    For FULL_DUMP and ONE_LINER, kind names the one-line status to show (after
    the dump, for FULL_DUMP) and the remaining fields carry its values.

    Attributes:
        action: What to show
        kind: One-line status kind, None for NOTHING
        snapshot: Snapshot the decision was made on
        percent: Remaining charge percent, None if unknown
        lifetime: Remaining seconds to show (averaged if averaging is enabled)
        plugged_in: AC line online
        charging: Battery charging
        power_rate: Signed battery rate in mW (positive charging)
        charge_suppressed: Charge state suppressed by battery revival
        lifetime_suppressed: Lifetime suppressed after resume
    """

    action: DecisionAction
    kind: Optional[LineKind] = None
    snapshot: Optional[PowerSnapshot] = None
    percent: Optional[int] = None
    lifetime: Optional[int] = None
    plugged_in: bool = False
    charging: bool = False
    power_rate: int = 0
    charge_suppressed: bool = False
    lifetime_suppressed: bool = False

    @property
    def emits(self) -> bool:
        return self.action != DecisionAction.NOTHING


NOTHING = Decision(DecisionAction.NOTHING)


class Reporter:
    """Selects the decision for each tick."""

    def __init__(self, verbose: bool = False, averaging_enabled: bool = False):
        """
        Initialize reporter.

        Args:
            verbose: Show a full dump whenever any field changes
            averaging_enabled: Show the averaged lifetime instead of the raw one
        """
        self.verbose = verbose
        self.averaging_enabled = averaging_enabled
        self.logger = logging.getLogger("BattStatus.Reporter")

    def select_kind(
        self,
        snapshot: PowerSnapshot,
        charge_suppressed: bool,
        lifetime_suppressed: bool,
        lifetime: Optional[int],
        power_rate: int,
    ) -> LineKind:
        """
        Pick the one-line status kind. First match wins.

        Args:
            snapshot: Current snapshot
            charge_suppressed: Charge state suppressed by battery revival
            lifetime_suppressed: Lifetime suppressed after resume
            lifetime: Lifetime to show (averaged or raw), None if unknown
            power_rate: Signed battery rate in mW

        Returns:
            LineKind to show
        """
        if snapshot.no_battery:
            return LineKind.NO_BATTERY

        if charge_suppressed:
            return LineKind.SUPPRESSED_PERCENT

        if (
            snapshot.percent == 100
            and (lifetime_suppressed or snapshot.lifetime is None)
            and snapshot.plugged_in
            and not snapshot.charging
            and power_rate == 0
        ):
            return LineKind.FULLY_CHARGED

        if snapshot.charging or snapshot.plugged_in:
            return LineKind.PLUGGED_IN_STATUS

        if lifetime is not None and not lifetime_suppressed:
            return LineKind.LIFETIME_REMAINING

        return LineKind.PERCENT_REMAINING

    def decide(
        self,
        snapshot: PowerSnapshot,
        verdict: ChangeVerdict,
        summary_verdict: ChangeVerdict,
        charge_suppressed: bool = False,
        lifetime_suppressed: bool = False,
        average_lifetime: Optional[int] = None,
        power_rate: int = 0,
    ) -> Decision:
        """
        Decide what to show for this tick.

        Args:
            snapshot: Current snapshot
            verdict: Full field comparison against the previous snapshot
            summary_verdict: Summary field comparison against the previous snapshot
            charge_suppressed: Charge state suppressed by battery revival
            lifetime_suppressed: Lifetime suppressed after resume
            average_lifetime: Averaged lifetime, None if unavailable
            power_rate: Signed battery rate in mW

        Returns:
            Decision for the tick
        """
        full_dump = self.verbose and not verdict.equal

        if not full_dump and summary_verdict.equal:
            return NOTHING

        lifetime = average_lifetime if self.averaging_enabled else snapshot.lifetime
        kind = self.select_kind(
            snapshot, charge_suppressed, lifetime_suppressed, lifetime, power_rate
        )

        decision = Decision(
            action=DecisionAction.FULL_DUMP if full_dump else DecisionAction.ONE_LINER,
            kind=kind,
            snapshot=snapshot,
            percent=snapshot.percent,
            lifetime=None if lifetime_suppressed else lifetime,
            plugged_in=snapshot.plugged_in,
            charging=snapshot.charging,
            power_rate=power_rate,
            charge_suppressed=charge_suppressed,
            lifetime_suppressed=lifetime_suppressed,
        )

        self.logger.debug(
            f"Decision: {decision.action.value} {kind.value} "
            f"(changed: {', '.join(sorted(verdict.changed))})"
        )
        return decision

    def filter_signals(self, signals: List[Signal], decision: Decision) -> List[Signal]:
        """
        Drop signals that the decision already conveys.

        A full dump already shows that the charge state is suppressed, so the
        revival warning is dropped on a tick that shows one.

        Args:
            signals: Signals raised on the tick
            decision: Decision for the tick

        Returns:
            Signals to deliver
        """
        if decision.action != DecisionAction.FULL_DUMP:
            return list(signals)
        return [s for s in signals if s.kind != SignalKind.REVIVAL_WARNING]
