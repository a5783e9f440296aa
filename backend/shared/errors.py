"""Exception types shared by the scheduler and sync paths."""
from __future__ import annotations


class MatchdayError(Exception):
    """Base class for errors raised by Matchday code."""


class StoreUnavailableError(MatchdayError):
    """The fixture store kept failing past the configured error budget."""

    def __init__(self, consecutive_failures: int, last_error: BaseException | None = None) -> None:
        self.consecutive_failures = consecutive_failures
        self.last_error = last_error
        super().__init__(
            f"store unavailable after {consecutive_failures} consecutive failures: {last_error!r}"
        )


class LeadershipLostError(MatchdayError):
    """The advisory lock backing the leadership token is no longer held by this session."""
