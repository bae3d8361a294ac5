"""
Status change engine.

StatusEngine owns all per-monitor state (previous snapshot, revival window,
resume state, lifetime history) and turns each snapshot into a decision and
zero or more advisory signals. It performs no I/O and reads no clock: the
caller supplies the snapshot, the current tick and the wake time. Only one
thread may drive a given engine.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from battstatus.averager import LifetimeAverager
from battstatus.detector import ChangeVerdict, EQUAL, compare, compare_summary
from battstatus.reporter import NOTHING, Decision, Reporter, Signal, SignalKind
from battstatus.resume import ResumeSuppressor
from battstatus.revival import MIN_CHANGES, RevivalSuppressor
from battstatus.snapshot import PowerSnapshot, normalize_battery_rate


@dataclass(frozen=True)
class EngineSettings:
    """Engine tunables."""

    max_revival_changes: int = 20
    revival_span_minutes: int = 30
    resume_span_minutes: int = 3
    lifetime_span_minutes: int = 0
    verbose: bool = False

    def __post_init__(self):
        if self.max_revival_changes < MIN_CHANGES:
            raise ValueError(
                f"max_revival_changes must be at least {MIN_CHANGES}, got {self.max_revival_changes}"
            )
        for name in ("revival_span_minutes", "resume_span_minutes", "lifetime_span_minutes"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")

    @classmethod
    def from_config(cls, config) -> "EngineSettings":
        """
        Build settings from a ConfigManager.

        Args:
            config: ConfigManager instance

        Returns:
            EngineSettings instance
        """
        return cls(
            max_revival_changes=config.get("max_revival_changes", 20),
            revival_span_minutes=config.get("revival_span_minutes", 30),
            resume_span_minutes=config.get("resume_span_minutes", 3),
            lifetime_span_minutes=config.get("lifetime_span_minutes", 0),
            verbose=bool(config.get("verbose", 0)),
        )


@dataclass
class TickResult:
    """Everything the engine concluded on one tick."""

    decision: Decision = NOTHING
    signals: List[Signal] = field(default_factory=list)
    verdict: ChangeVerdict = EQUAL
    summary_verdict: ChangeVerdict = EQUAL
    charge_suppressed: bool = False
    lifetime_suppressed: bool = False
    average_lifetime: Optional[int] = None
    power_rate: int = 0


class StatusEngine:
    """
    Change detection and noise suppression for a stream of power snapshots.

    Snapshots may come from periodic polling or from power broadcast events in
    any interleaving; each call to on_tick is handled the same way.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        """
        Initialize status engine.

        Args:
            settings: Engine tunables, defaults if None
        """
        self.settings = settings or EngineSettings()
        self.logger = logging.getLogger("BattStatus.Engine")

        self.previous: Optional[PowerSnapshot] = None
        self.revival = RevivalSuppressor(
            self.settings.max_revival_changes, self.settings.revival_span_minutes
        )
        self.resume = ResumeSuppressor(self.settings.resume_span_minutes)
        self.averager = LifetimeAverager(self.settings.lifetime_span_minutes)
        self.reporter = Reporter(
            verbose=self.settings.verbose,
            averaging_enabled=self.averager.enabled,
        )

    def on_tick(
        self,
        snapshot: PowerSnapshot,
        now_tick: int,
        last_wake: Optional[int] = None,
        max_timer_interval: int = 0,
        power_rate: Optional[int] = 0,
    ) -> TickResult:
        """
        Process one snapshot.

        Args:
            snapshot: Current power snapshot
            now_tick: Current monotonic tick in milliseconds
            last_wake: Host last wake time in 100ns units, None if unavailable
            max_timer_interval: Host maximum timer interval in 100ns units
            power_rate: Raw battery rate (signed mW or raw DWORD), None if unknown

        Returns:
            TickResult for the tick
        """
        prev = self.previous
        rate = normalize_battery_rate(power_rate)
        signals: List[Signal] = []

        charge_suppressed = self.revival.on_tick(snapshot, prev, now_tick)
        if self.revival.just_activated:
            signals.append(Signal(SignalKind.REVIVAL_WARNING, now_tick))

        lifetime_suppressed = self.resume.on_tick(last_wake, now_tick, max_timer_interval)
        if self.resume.just_resumed:
            signals.append(Signal(SignalKind.RESUME_WARNING, now_tick))

        average = self.averager.on_tick(snapshot.lifetime, now_tick, reset=lifetime_suppressed)

        if (
            prev is not None
            and snapshot.battery_saver is not None
            and prev.battery_saver is not None
            and snapshot.battery_saver != prev.battery_saver
        ):
            signals.append(
                Signal(SignalKind.BATTERY_SAVER_CHANGED, now_tick, snapshot.battery_saver)
            )

        self.previous = snapshot

        if prev is None:
            self.logger.debug("First snapshot recorded as baseline")
            return TickResult(
                signals=signals,
                charge_suppressed=charge_suppressed,
                lifetime_suppressed=lifetime_suppressed,
                average_lifetime=average,
                power_rate=rate,
            )

        verdict = compare(prev, snapshot)
        summary_verdict = compare_summary(prev, snapshot)
        if charge_suppressed and not self.revival.just_activated:
            # Toggles during a revival episode are not announced
            summary_verdict = summary_verdict.without("charging")
        decision = self.reporter.decide(
            snapshot,
            verdict,
            summary_verdict,
            charge_suppressed=charge_suppressed,
            lifetime_suppressed=lifetime_suppressed,
            average_lifetime=average,
            power_rate=rate,
        )

        return TickResult(
            decision=decision,
            signals=self.reporter.filter_signals(signals, decision),
            verdict=verdict,
            summary_verdict=summary_verdict,
            charge_suppressed=charge_suppressed,
            lifetime_suppressed=lifetime_suppressed,
            average_lifetime=average,
            power_rate=rate,
        )
