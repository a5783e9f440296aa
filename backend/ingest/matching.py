"""
Correlates a stored fixture with the fixtures a provider reports.

Comparison happens on normalized team names and tolerates the provider
listing the fixture with home and away swapped. Nothing here touches the
database; callers decide what to do with a match (or with no match, which
simply means "not correlated yet, retry on a later sync pass").
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence, TypeVar

from ingest.normalization.normalizer import normalize_team_name
from shared.models.domain import TeamPair
from shared.utils.logging import get_logger
from shared.utils.metrics import FIXTURE_MATCH_RESULTS

logger = get_logger(__name__)

T = TypeVar("T", bound=TeamPair)


def _pair_key(pair: TeamPair) -> tuple[str, str]:
    return normalize_team_name(pair.home), normalize_team_name(pair.away)


def find_matches(internal: TeamPair, candidates: Iterable[T]) -> list[T]:
    """All candidates naming the same two teams as ``internal``, in input order."""
    home, away = _pair_key(internal)
    matches: list[T] = []
    for candidate in candidates:
        cand_home, cand_away = _pair_key(candidate)
        direct = home == cand_home and away == cand_away
        swapped = home == cand_away and away == cand_home
        if direct or swapped:
            matches.append(candidate)
    return matches


def match_fixture(internal: TeamPair, candidates: Sequence[T]) -> Optional[T]:
    """
    Return the provider fixture that corresponds to ``internal``, or None.

    When several candidates match, the first one in input order wins and the
    ambiguity is logged so it can be reviewed by hand.
    """
    matches = find_matches(internal, candidates)
    if not matches:
        FIXTURE_MATCH_RESULTS.labels(result="none").inc()
        logger.debug(
            "fixture_match_none",
            home=internal.home,
            away=internal.away,
            candidates=len(candidates),
        )
        return None

    if len(matches) > 1:
        FIXTURE_MATCH_RESULTS.labels(result="ambiguous").inc()
        logger.warning(
            "fixture_match_ambiguous",
            home=internal.home,
            away=internal.away,
            matched=[f"{m.home} vs {m.away}" for m in matches],
        )
    else:
        FIXTURE_MATCH_RESULTS.labels(result="matched").inc()

    best = matches[0]
    logger.debug(
        "fixture_match_found",
        home=internal.home,
        away=internal.away,
        external_home=best.home,
        external_away=best.away,
    )
    return best
