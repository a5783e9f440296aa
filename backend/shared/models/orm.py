"""
SQLAlchemy 2.0 ORM models for Matchday.
Maps to the PostgreSQL schema defined in migrations/001_initial.sql.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class CompetitionORM(Base):
    __tablename__ = "competitions"
    __table_args__ = (
        CheckConstraint("status IN ('UPCOMING', 'ACTIVE', 'FINISHED')", name="chk_competition_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="UPCOMING")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    fixtures: Mapped[list["FixtureORM"]] = relationship(back_populates="competition")


class FixtureORM(Base):
    __tablename__ = "fixtures"
    __table_args__ = (
        CheckConstraint(
            "status IN ('UPCOMING', 'LIVE', 'FINISHED', 'RESCHEDULED')", name="chk_fixture_status"
        ),
        CheckConstraint(
            "status <> 'UPCOMING' OR (final_home_score IS NULL AND final_away_score IS NULL)",
            name="chk_upcoming_without_final",
        ),
        Index("ix_fixtures_status_scheduled_at", "status", "scheduled_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    competition_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("competitions.id", ondelete="CASCADE")
    )
    home_team_name: Mapped[str] = mapped_column(String(200), nullable=False)
    away_team_name: Mapped[str] = mapped_column(String(200), nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="UPCOMING")
    final_home_score: Mapped[Optional[int]] = mapped_column(Integer)
    final_away_score: Mapped[Optional[int]] = mapped_column(Integer)
    live_home_score: Mapped[Optional[int]] = mapped_column(Integer)
    live_away_score: Mapped[Optional[int]] = mapped_column(Integer)
    external_id: Mapped[Optional[str]] = mapped_column(String(100))
    external_status: Mapped[Optional[str]] = mapped_column(String(20))
    decided_by: Mapped[Optional[str]] = mapped_column(String(10))
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    competition: Mapped[Optional["CompetitionORM"]] = relationship(back_populates="fixtures")
