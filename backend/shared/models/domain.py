"""
Pydantic v2 domain models shared by the scheduler and the sync path.
These are in-process representations, NOT ORM models.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ── Fixture identity ────────────────────────────────────────────────────
class TeamPair(DomainModel):
    """Home and away team names of one fixture, as displayed by their source."""
    home: str
    away: str


class ExternalFixtureSnapshot(TeamPair):
    """
    One fixture as reported by a score provider at one point in time.
    Consumed transiently by the matcher and the sync writer; never stored as-is.
    """
    external_id: str
    status_code: Optional[str] = Field(default=None, max_length=20)
    home_score: Optional[int] = Field(default=None, ge=0)
    away_score: Optional[int] = Field(default=None, ge=0)

    @property
    def has_full_score(self) -> bool:
        return self.home_score is not None and self.away_score is not None


# ── Scheduler reporting ─────────────────────────────────────────────────
class TransitionReport(DomainModel):
    """Rows touched by one transition pass."""
    went_live: int = 0
    finished: int = 0
    competitions_activated: int = 0

    @property
    def total(self) -> int:
        return self.went_live + self.finished + self.competitions_activated
