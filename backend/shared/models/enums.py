"""Domain enumerations for the Matchday platform."""
from __future__ import annotations

from enum import Enum


class FixtureStatus(str, Enum):
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    FINISHED = "FINISHED"
    RESCHEDULED = "RESCHEDULED"


class CompetitionStatus(str, Enum):
    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"


class DecidedBy(str, Enum):
    """How a final score was reached: regulation time, or extra time / penalties."""
    FT = "FT"
    AET = "AET"


class WakeReason(str, Enum):
    IDLE = "idle"
    DUE = "due"
    WAITING = "waiting"
