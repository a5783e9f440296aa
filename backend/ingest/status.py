"""
Provider status codes mapped onto fixture statuses.

Covers the long-form codes of football-data.org and the short codes used by
api-sports (football and rugby). Postponed, cancelled and abandoned fixtures
have no automatic consequence: they map to None and are left to the admin
reschedule path.
"""
from __future__ import annotations

from typing import Optional

from shared.models.enums import DecidedBy, FixtureStatus
from shared.utils.logging import get_logger

logger = get_logger(__name__)

EXTERNAL_STATUS_MAP: dict[str, FixtureStatus] = {
    # Not started
    "SCHEDULED": FixtureStatus.UPCOMING,
    "TIMED": FixtureStatus.UPCOMING,
    "NS": FixtureStatus.UPCOMING,
    "TBD": FixtureStatus.UPCOMING,
    # In play
    "IN_PLAY": FixtureStatus.LIVE,
    "PAUSED": FixtureStatus.LIVE,
    "LIVE": FixtureStatus.LIVE,
    "1H": FixtureStatus.LIVE,
    "HT": FixtureStatus.LIVE,
    "2H": FixtureStatus.LIVE,
    "ET": FixtureStatus.LIVE,
    "BT": FixtureStatus.LIVE,
    "P": FixtureStatus.LIVE,
    "INT": FixtureStatus.LIVE,
    # Over
    "FINISHED": FixtureStatus.FINISHED,
    "COMPLETED": FixtureStatus.FINISHED,
    "FT": FixtureStatus.FINISHED,
    "AET": FixtureStatus.FINISHED,
    "PEN": FixtureStatus.FINISHED,
    "AWD": FixtureStatus.FINISHED,
    "WO": FixtureStatus.FINISHED,
}

UNSCHEDULED_CODES: frozenset[str] = frozenset(
    {"POSTPONED", "SUSPENDED", "CANCELLED", "CANCELED", "PST", "SUSP", "CANC", "ABD"}
)

_EXTRA_TIME_CODES = frozenset({"AET", "PEN"})


def _clean(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def map_external_status(code: Optional[str]) -> Optional[FixtureStatus]:
    """Fixture status implied by a provider code, or None when it implies nothing."""
    key = _clean(code)
    if not key:
        return None
    status = EXTERNAL_STATUS_MAP.get(key)
    if status is None and key not in UNSCHEDULED_CODES:
        logger.warning("external_status_unknown", external_status=code)
    return status


def decided_by_for(code: Optional[str]) -> Optional[DecidedBy]:
    """How a finished fixture was decided; None if the code is not a finished one."""
    key = _clean(code)
    if EXTERNAL_STATUS_MAP.get(key) != FixtureStatus.FINISHED:
        return None
    return DecidedBy.AET if key in _EXTRA_TIME_CODES else DecidedBy.FT
