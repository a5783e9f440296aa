"""
Fixture lifecycle scheduler for Matchday.
Keeps fixture status in step with the clock: UPCOMING fixtures go LIVE once
their kickoff is past the grace interval, LIVE fixtures go FINISHED once both
final scores are in.
Only the instance holding the advisory-lock leadership token runs the loop;
any other instance exits at boot.
"""
from __future__ import annotations

import asyncio
import signal
import sys
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from shared.config import Settings, get_settings
from shared.errors import LeadershipLostError, StoreUnavailableError
from shared.models.domain import TransitionReport
from shared.models.enums import WakeReason
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import (
    SCHEDULER_NAP,
    SCHEDULER_NEXT_KICKOFF,
    SCHEDULER_STORE_ERRORS,
    SERVICE_INFO,
    start_metrics_server,
)

from scheduler.engine.deadline import DeadlineEngine
from scheduler.leader import LeaderElectionGate, LeadershipToken
from scheduler.transitions import TransitionApplier

logger = get_logger(__name__)

T = TypeVar("T")

STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SchedulerService:
    """
    The scheduler loop. Each iteration:
    1. Checks the leadership token is still held
    2. Looks up the next UPCOMING kickoff
    3. Asks the deadline engine how long to nap
    4. Naps (interruptible by shutdown) and applies due transitions

    Store failures are tolerated up to a budget of consecutive errors; the
    transitions are idempotent, so the next pass simply retries them.
    """

    def __init__(
        self,
        applier: TransitionApplier,
        token: LeadershipToken,
        engine: DeadlineEngine | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._applier = applier
        self._token = token
        self._settings = settings or get_settings()
        self._engine = engine or DeadlineEngine(self._settings)
        self._clock = clock
        self._shutdown = asyncio.Event()
        self._consecutive_store_errors = 0

    @property
    def consecutive_store_errors(self) -> int:
        return self._consecutive_store_errors

    # ── Store access ────────────────────────────────────────────────────

    async def _guarded(
        self, operation: str, call: Callable[..., Awaitable[T]], *args: object
    ) -> Optional[T]:
        """Run one store call; log and count a failure instead of raising, within budget."""
        try:
            result = await call(*args)
        except STORE_ERRORS as exc:
            self._consecutive_store_errors += 1
            SCHEDULER_STORE_ERRORS.labels(operation=operation).inc()
            logger.warning(
                "store_call_failed",
                operation=operation,
                consecutive=self._consecutive_store_errors,
                error=str(exc),
            )
            if self._consecutive_store_errors >= self._settings.scheduler_max_consecutive_store_errors:
                raise StoreUnavailableError(self._consecutive_store_errors, exc) from exc
            return None
        self._consecutive_store_errors = 0
        return result

    async def _apply_transitions(self, *, boot: bool = False) -> TransitionReport:
        now = self._clock()
        went_live = await self._guarded("upcoming_to_live", self._applier.flip_upcoming_to_live, now)
        finished = None
        if not boot:
            finished = await self._guarded("live_to_finished", self._applier.flip_live_to_finished, now)
        activated = await self._guarded("activate_competitions", self._applier.activate_competitions, now)
        return TransitionReport(
            went_live=went_live or 0,
            finished=finished or 0,
            competitions_activated=activated or 0,
        )

    # ── Sleep ───────────────────────────────────────────────────────────

    async def _sleep(self, seconds: float) -> bool:
        """Nap for ``seconds``. Returns True if shutdown was requested meanwhile."""
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    # ── Main loop ───────────────────────────────────────────────────────

    async def run(self) -> None:
        """Boot catch-up, then compute-deadline -> sleep -> apply until shutdown."""
        report = await self._apply_transitions(boot=True)
        logger.info("scheduler_catch_up_done", went_live=report.went_live)

        while not self._shutdown.is_set():
            await self._token.ensure_held()

            now = self._clock()
            next_kickoff = await self._guarded("next_kickoff", self._applier.next_kickoff, now)
            SCHEDULER_NEXT_KICKOFF.set(next_kickoff.timestamp() if next_kickoff else 0)

            plan = self._engine.plan(now, next_kickoff)
            SCHEDULER_NAP.labels(reason=plan.reason.value).observe(plan.nap_s)
            if plan.reason == WakeReason.WAITING:
                logger.info(
                    "waiting_for_kickoff",
                    next_kickoff=next_kickoff.isoformat() if next_kickoff else None,
                    delay_s=round(plan.delay_s or 0.0, 1),
                    nap_s=round(plan.nap_s),
                )
            else:
                logger.debug("scheduler_wake_planned", reason=plan.reason.value, nap_s=plan.nap_s)

            if plan.apply_before_sleep:
                await self._apply_transitions()

            if await self._sleep(plan.nap_s):
                break

            if not plan.apply_before_sleep:
                await self._apply_transitions()

        logger.info("scheduler_loop_stopped")

    def request_shutdown(self) -> None:
        self._shutdown.set()


async def main() -> int:
    """
    Scheduler service entrypoint.

    Returns the process exit status: 0 on clean shutdown or when another
    instance already leads, 1 when the store is unusable.
    """
    settings = get_settings()
    setup_logging("scheduler")
    start_metrics_server(settings.metrics_port)
    SERVICE_INFO.info({"service": "scheduler", "instance_id": settings.instance_id or "unknown"})

    db = DatabaseManager(settings)
    try:
        await db.connect_with_retry()
    except STORE_ERRORS as exc:
        logger.critical("store_unreachable", error=str(exc), url=settings.database_url_safe_log)
        await db.disconnect()
        return 1

    gate = LeaderElectionGate(db, settings)
    try:
        async with gate.leadership() as token:
            if token is None:
                logger.info("scheduler_not_leader_exiting", namespace=gate.namespace)
                return 0

            service = SchedulerService(TransitionApplier(db, settings), token, settings=settings)
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, service.request_shutdown)
                except NotImplementedError:
                    pass

            logger.info("scheduler_service_started", namespace=gate.namespace)
            await service.run()
    except (StoreUnavailableError, LeadershipLostError) as exc:
        logger.critical("scheduler_fatal", error=str(exc))
        return 1
    except STORE_ERRORS as exc:
        logger.critical("scheduler_fatal", error=str(exc), exc_info=True)
        return 1
    finally:
        await db.disconnect()
        logger.info("scheduler_service_stopped")
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
