"""
Deadline planner for the fixture lifecycle scheduler.
Decides, from the current time and the next kickoff, how long the loop naps
and whether transitions run before or after that nap.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shared.config import Settings, get_settings
from shared.models.enums import WakeReason


@dataclass(frozen=True)
class WakePlan:
    reason: WakeReason
    apply_before_sleep: bool
    nap_s: float
    delay_s: Optional[float] = None


class DeadlineEngine:
    """
    Computes the scheduler's next nap. No I/O: same inputs, same plan.

    The decision table:

        no UPCOMING kickoff ahead     -> nap safety_sweep, then apply
        kickoff within due_tolerance  -> apply now, then nap debounce
        kickoff further away          -> nap min(delay, max_sleep, safety_sweep), then apply

    The safety sweep caps every nap, so a status flip is never more than one
    sweep late even when the next kickoff is hours away.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def plan(self, now: datetime, next_kickoff: Optional[datetime]) -> WakePlan:
        s = self._settings
        if next_kickoff is None:
            return WakePlan(
                reason=WakeReason.IDLE,
                apply_before_sleep=False,
                nap_s=s.scheduler_safety_sweep_s,
            )

        delay = (next_kickoff - now).total_seconds()
        if delay <= s.scheduler_due_tolerance_s:
            return WakePlan(
                reason=WakeReason.DUE,
                apply_before_sleep=True,
                nap_s=s.scheduler_debounce_s,
                delay_s=delay,
            )

        delay = max(0.0, min(delay, s.scheduler_max_sleep_s))
        return WakePlan(
            reason=WakeReason.WAITING,
            apply_before_sleep=False,
            nap_s=min(delay, s.scheduler_safety_sweep_s),
            delay_s=delay,
        )
