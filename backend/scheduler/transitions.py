"""
Set-based fixture lifecycle transitions.

Every operation is one SQL statement in its own transaction: it qualifies and
writes rows in a single step, so two writers can never both act on the same
stale read. Re-running an operation with nothing left to do updates zero rows.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import exists, func, select, update

from shared.config import Settings, get_settings
from shared.models.domain import TransitionReport
from shared.models.enums import CompetitionStatus, FixtureStatus
from shared.models.orm import CompetitionORM, FixtureORM
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger
from shared.utils.metrics import (
    COMPETITIONS_ACTIVATED,
    FIXTURE_TRANSITIONS,
    TRANSITION_LATENCY,
    atrack_latency,
)

logger = get_logger(__name__)


def upcoming_to_live_stmt(threshold: datetime, now: datetime):
    return (
        update(FixtureORM)
        .where(
            FixtureORM.status == FixtureStatus.UPCOMING.value,
            FixtureORM.scheduled_at <= threshold,
        )
        .values(status=FixtureStatus.LIVE.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )


def live_to_finished_stmt(now: datetime):
    return (
        update(FixtureORM)
        .where(
            FixtureORM.status == FixtureStatus.LIVE.value,
            FixtureORM.final_home_score.is_not(None),
            FixtureORM.final_away_score.is_not(None),
        )
        .values(
            status=FixtureStatus.FINISHED.value,
            finished_at=now,
            live_home_score=None,
            live_away_score=None,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )


def activate_competitions_stmt(now: datetime):
    started = exists().where(
        FixtureORM.competition_id == CompetitionORM.id,
        FixtureORM.status.in_([FixtureStatus.LIVE.value, FixtureStatus.FINISHED.value]),
    )
    return (
        update(CompetitionORM)
        .where(CompetitionORM.status == CompetitionStatus.UPCOMING.value, started)
        .values(status=CompetitionStatus.ACTIVE.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )


def next_kickoff_stmt(now: datetime):
    return select(func.min(FixtureORM.scheduled_at)).where(
        FixtureORM.status == FixtureStatus.UPCOMING.value,
        FixtureORM.scheduled_at > now,
    )


class TransitionApplier:
    """Runs the scheduler's lifecycle transitions against the fixture store."""

    def __init__(self, db: DatabaseManager, settings: Settings | None = None) -> None:
        self._db = db
        self._settings = settings or get_settings()

    @property
    def grace_interval(self) -> timedelta:
        return timedelta(seconds=self._settings.scheduler_grace_interval_s)

    async def _execute_update(self, operation: str, stmt) -> int:
        async with atrack_latency(TRANSITION_LATENCY, operation=operation):
            async with self._db.write_session() as session:
                result = await session.execute(stmt)
                return result.rowcount or 0

    async def flip_upcoming_to_live(self, now: datetime) -> int:
        """UPCOMING -> LIVE for every fixture whose kickoff is at least the grace interval old."""
        threshold = now - self.grace_interval
        count = await self._execute_update("upcoming_to_live", upcoming_to_live_stmt(threshold, now))
        if count:
            FIXTURE_TRANSITIONS.labels(transition="upcoming_to_live").inc(count)
            logger.info("fixtures_went_live", count=count, threshold=threshold.isoformat())
        else:
            logger.debug("fixtures_went_live_none", threshold=threshold.isoformat())
        return count

    async def flip_live_to_finished(self, now: datetime) -> int:
        """LIVE -> FINISHED for every fixture that has both final scores."""
        count = await self._execute_update("live_to_finished", live_to_finished_stmt(now))
        if count:
            FIXTURE_TRANSITIONS.labels(transition="live_to_finished").inc(count)
            logger.info("fixtures_finished", count=count)
        else:
            logger.debug("fixtures_finished_none")
        return count

    async def activate_competitions(self, now: datetime) -> int:
        """UPCOMING -> ACTIVE for competitions with at least one started fixture."""
        count = await self._execute_update("activate_competitions", activate_competitions_stmt(now))
        if count:
            COMPETITIONS_ACTIVATED.inc(count)
            logger.info("competitions_activated", count=count)
        return count

    async def next_kickoff(self, now: datetime) -> Optional[datetime]:
        """Earliest UPCOMING kickoff strictly after ``now``, or None."""
        async with self._db.read_session() as session:
            return (await session.execute(next_kickoff_stmt(now))).scalar()

    async def apply_due(self, now: datetime) -> TransitionReport:
        """
        One full pass: both fixture flips, then competition activation.

        For one-off callers such as admin scripts. The scheduler loop runs the
        three operations itself so each store failure is counted on its own.
        """
        return TransitionReport(
            went_live=await self.flip_upcoming_to_live(now),
            finished=await self.flip_live_to_finished(now),
            competitions_activated=await self.activate_competitions(now),
        )
