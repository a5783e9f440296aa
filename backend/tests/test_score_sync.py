"""
Tests for writing provider snapshots onto fixtures.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from ingest.sync import ScoreSyncWriter, build_snapshot_update
from scheduler.transitions import TransitionApplier
from shared.config import Settings
from shared.models.domain import ExternalFixtureSnapshot
from shared.models.orm import FixtureORM
from shared.utils.database import DatabaseManager

T0 = datetime(2026, 5, 2, 18, 0, tzinfo=timezone.utc)


def _snapshot(status_code: str, home_score=None, away_score=None) -> ExternalFixtureSnapshot:
    return ExternalFixtureSnapshot(
        external_id="fd-4411",
        home="Arsenal FC",
        away="Chelsea FC",
        status_code=status_code,
        home_score=home_score,
        away_score=away_score,
    )


def _set_clause(stmt) -> str:
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    return sql.split(" WHERE fixtures.id")[0]


# ── Statement shape ─────────────────────────────────────────────────────

def test_snapshot_update_never_writes_status() -> None:
    for code in ("NS", "2H", "FT", "POSTPONED"):
        set_clause = _set_clause(build_snapshot_update(uuid.uuid4(), _snapshot(code, 1, 0), T0))
        assert "status=" not in set_clause.replace("external_status=", "")


def test_live_snapshot_writes_live_scores_guarded_by_status() -> None:
    set_clause = _set_clause(build_snapshot_update(uuid.uuid4(), _snapshot("2H", 1, 0), T0))

    assert "live_home_score=CASE WHEN (fixtures.status = " in set_clause
    assert "final_home_score" not in set_clause


def test_finished_snapshot_writes_final_scores_and_decider() -> None:
    set_clause = _set_clause(build_snapshot_update(uuid.uuid4(), _snapshot("AET", 3, 2), T0))

    assert "final_home_score=CASE" in set_clause
    assert "decided_by=CASE" in set_clause
    assert "live_home_score" not in set_clause


def test_partial_score_only_records_provider_state() -> None:
    stmt = build_snapshot_update(uuid.uuid4(), _snapshot("FT", 2, None), T0)
    set_clause = _set_clause(stmt)

    assert "external_status=" in set_clause
    assert "last_synced_at=" in set_clause
    assert "score" not in set_clause


def test_overlong_status_code_rejected_before_reaching_the_store() -> None:
    with pytest.raises(ValidationError):
        _snapshot("X" * 21, 1, 0)
    assert _snapshot("X" * 20).status_code == "X" * 20


# ── PostgreSQL ──────────────────────────────────────────────────────────

async def _add_fixture(db: DatabaseManager, status: str, scheduled_at: datetime) -> uuid.UUID:
    fixture = FixtureORM(
        id=uuid.uuid4(),
        home_team_name="Arsenal",
        away_team_name="Chelsea",
        scheduled_at=scheduled_at,
        status=status,
    )
    async with db.write_session() as session:
        session.add(fixture)
    return fixture.id


async def _get(db: DatabaseManager, fixture_id: uuid.UUID) -> FixtureORM:
    async with db.read_session() as session:
        return (await session.execute(select(FixtureORM).where(FixtureORM.id == fixture_id))).scalar_one()


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_live_snapshot_updates_live_scores(pg_db: DatabaseManager) -> None:
    fixture_id = await _add_fixture(pg_db, "LIVE", T0 - timedelta(minutes=50))

    assert await ScoreSyncWriter(pg_db).apply_snapshot(fixture_id, _snapshot("2H", 1, 0), T0)

    fixture = await _get(pg_db, fixture_id)
    assert (fixture.live_home_score, fixture.live_away_score) == (1, 0)
    assert fixture.external_id == "fd-4411"
    assert fixture.external_status == "2H"
    assert fixture.last_synced_at == T0
    assert fixture.status == "LIVE"


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_early_result_not_written_to_upcoming_fixture(pg_db: DatabaseManager) -> None:
    fixture_id = await _add_fixture(pg_db, "UPCOMING", T0 - timedelta(minutes=1))

    assert await ScoreSyncWriter(pg_db).apply_snapshot(fixture_id, _snapshot("FT", 2, 1), T0)

    fixture = await _get(pg_db, fixture_id)
    assert fixture.status == "UPCOMING"
    assert fixture.final_home_score is None and fixture.final_away_score is None
    assert fixture.external_status == "FT"


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_final_scores_recorded_then_scheduler_finishes(pg_db: DatabaseManager, pg_settings: Settings) -> None:
    fixture_id = await _add_fixture(pg_db, "LIVE", T0 - timedelta(hours=2))

    assert await ScoreSyncWriter(pg_db).apply_snapshot(fixture_id, _snapshot("AET", 3, 2), T0)

    recorded = await _get(pg_db, fixture_id)
    assert recorded.status == "LIVE"
    assert (recorded.final_home_score, recorded.final_away_score) == (3, 2)
    assert recorded.decided_by == "AET"

    assert await TransitionApplier(pg_db, pg_settings).flip_live_to_finished(T0) == 1
    assert (await _get(pg_db, fixture_id)).status == "FINISHED"


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_snapshot_for_missing_fixture_returns_false(pg_db: DatabaseManager) -> None:
    assert not await ScoreSyncWriter(pg_db).apply_snapshot(uuid.uuid4(), _snapshot("2H", 0, 0), T0)
