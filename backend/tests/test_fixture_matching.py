"""
Unit tests for correlating stored fixtures with provider fixtures.
"""
from __future__ import annotations

from structlog.testing import capture_logs

from ingest.matching import find_matches, match_fixture
from shared.models.domain import ExternalFixtureSnapshot, TeamPair


def _snap(external_id: str, home: str, away: str) -> ExternalFixtureSnapshot:
    return ExternalFixtureSnapshot(external_id=external_id, home=home, away=away)


class TestMatchFixture:

    def test_direct_match(self) -> None:
        candidates = [
            _snap("1", "Liverpool", "Chelsea"),
            _snap("2", "Real Madrid CF", "FC Barcelona"),
        ]
        found = match_fixture(TeamPair(home="Real Madrid", away="Barcelona"), candidates)
        assert found is not None
        assert found.external_id == "2"

    def test_swapped_match(self) -> None:
        candidates = [_snap("7", "Barcelona", "Real Madrid")]
        found = match_fixture(TeamPair(home="Real Madrid", away="Barcelona"), candidates)
        assert found is candidates[0]

    def test_no_match_returns_none(self) -> None:
        candidates = [
            _snap("1", "Toulouse", "La Rochelle"),
            _snap("2", "Toulon", "Clermont"),
        ]
        assert match_fixture(TeamPair(home="Lyon", away="Pau"), candidates) is None

    def test_empty_candidates(self) -> None:
        assert match_fixture(TeamPair(home="Lyon", away="Pau"), []) is None

    def test_one_team_matching_is_not_enough(self) -> None:
        candidates = [_snap("1", "Lyon", "Toulon")]
        assert match_fixture(TeamPair(home="Lyon", away="Pau"), candidates) is None

    def test_first_in_input_order_wins(self) -> None:
        candidates = [
            _snap("first-leg", "Benfica", "Porto"),
            _snap("second-leg", "Porto", "Benfica"),
        ]
        found = match_fixture(TeamPair(home="SL Benfica", away="FC Porto"), candidates)
        # "SL Benfica" keeps "sl", so only exact keys count
        assert found is None

        found = match_fixture(TeamPair(home="Benfica", away="FC Porto"), candidates)
        assert found is not None
        assert found.external_id == "first-leg"

    def test_accent_and_suffix_tolerance(self) -> None:
        candidates = [_snap("9", "Atletico Madrid", "Sevilla FC")]
        found = match_fixture(TeamPair(home="Atlético Madrid", away="Sevilla"), candidates)
        assert found is not None

    def test_accepts_plain_team_pairs(self) -> None:
        candidates = [TeamPair(home="Leeds United", away="Stoke City")]
        assert match_fixture(TeamPair(home="Leeds", away="Stoke"), candidates) is candidates[0]


def test_find_matches_returns_all_in_order() -> None:
    candidates = [
        _snap("a", "Porto", "Benfica"),
        _snap("b", "Braga", "Benfica"),
        _snap("c", "Benfica", "Porto"),
    ]
    found = find_matches(TeamPair(home="Benfica", away="Porto"), candidates)
    assert [m.external_id for m in found] == ["a", "c"]


def test_several_matches_log_an_ambiguity_warning() -> None:
    candidates = [
        _snap("first-leg", "Benfica", "Porto"),
        _snap("second-leg", "Porto", "Benfica"),
    ]
    with capture_logs() as logs:
        found = match_fixture(TeamPair(home="Benfica", away="Porto"), candidates)

    assert found is not None and found.external_id == "first-leg"
    warnings = [e for e in logs if e["event"] == "fixture_match_ambiguous"]
    assert len(warnings) == 1
    assert warnings[0]["log_level"] == "warning"
    assert warnings[0]["matched"] == ["Benfica vs Porto", "Porto vs Benfica"]


def test_single_match_logs_no_ambiguity() -> None:
    with capture_logs() as logs:
        match_fixture(TeamPair(home="Benfica", away="Porto"), [_snap("1", "Benfica", "Porto")])

    assert not [e for e in logs if e["event"] == "fixture_match_ambiguous"]
