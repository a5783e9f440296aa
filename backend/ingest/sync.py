"""
Writes provider snapshots onto stored fixtures.

Each snapshot becomes exactly one conditional UPDATE on one fixture row, so a
sync write can interleave with the scheduler's bulk status flips without
either clobbering the other. Status is never written here: the scheduler
leader owns status. Scores are only accepted while the row is LIVE, which
keeps final scores off UPCOMING fixtures even if a provider reports a result
before the kickoff grace interval has passed.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import case, update
from sqlalchemy.sql.elements import ColumnElement

from ingest.status import decided_by_for, map_external_status
from shared.models.domain import ExternalFixtureSnapshot
from shared.models.enums import FixtureStatus
from shared.models.orm import FixtureORM
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger
from shared.utils.metrics import SYNC_SNAPSHOTS_APPLIED

logger = get_logger(__name__)


def _when_live(value: Any, column: ColumnElement[Any]) -> ColumnElement[Any]:
    return case((FixtureORM.status == FixtureStatus.LIVE.value, value), else_=column)


def build_snapshot_update(fixture_id: uuid.UUID, snapshot: ExternalFixtureSnapshot, now: datetime):
    """Build the single UPDATE statement that records ``snapshot`` on a fixture."""
    values: dict[str, Any] = {
        "external_id": snapshot.external_id,
        "external_status": snapshot.status_code,
        "last_synced_at": now,
        "updated_at": now,
    }

    reported = map_external_status(snapshot.status_code)
    if snapshot.has_full_score and reported == FixtureStatus.LIVE:
        values["live_home_score"] = _when_live(snapshot.home_score, FixtureORM.live_home_score)
        values["live_away_score"] = _when_live(snapshot.away_score, FixtureORM.live_away_score)
    elif snapshot.has_full_score and reported == FixtureStatus.FINISHED:
        decided_by = decided_by_for(snapshot.status_code)
        values["final_home_score"] = _when_live(snapshot.home_score, FixtureORM.final_home_score)
        values["final_away_score"] = _when_live(snapshot.away_score, FixtureORM.final_away_score)
        values["decided_by"] = _when_live(
            decided_by.value if decided_by else None, FixtureORM.decided_by
        )

    return (
        update(FixtureORM)
        .where(FixtureORM.id == fixture_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


class ScoreSyncWriter:
    """Applies matched provider snapshots to the fixtures table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def apply_snapshot(
        self,
        fixture_id: uuid.UUID,
        snapshot: ExternalFixtureSnapshot,
        now: datetime,
    ) -> bool:
        """
        Record a provider snapshot on one fixture.

        Returns:
            True if the fixture row exists and was updated, False otherwise.
        """
        stmt = build_snapshot_update(fixture_id, snapshot, now)
        async with self._db.write_session() as session:
            result = await session.execute(stmt)
            updated = (result.rowcount or 0) > 0

        SYNC_SNAPSHOTS_APPLIED.labels(outcome="updated" if updated else "missing").inc()
        if updated:
            logger.info(
                "snapshot_applied",
                fixture_id=str(fixture_id),
                external_id=snapshot.external_id,
                external_status=snapshot.status_code,
                score=f"{snapshot.home_score}-{snapshot.away_score}" if snapshot.has_full_score else None,
            )
        else:
            logger.warning("snapshot_fixture_missing", fixture_id=str(fixture_id))
        return updated
