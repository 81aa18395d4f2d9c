"""Tests for the bracket engine and its document model"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import random

import pytest

from cuescore.bracket.engine import (
    advance, champion, generate_bracket, record_result, resolve_bye,
)
from cuescore.bracket.models import (
    BYE, Match, MatchRef, MatchStatus, Side, Tournament, normalize_rounds,
    round_index, round_key, round_prefix, stage_name,
)
from cuescore.core.errors import BracketError


class NoShuffle:
    """Keeps the entry order so brackets are predictable."""

    def shuffle(self, items):
        pass


def play(tournament, key, index, score1, score2):
    """End a match explicitly and advance its winner."""
    ref = MatchRef(key, index)
    assert record_result(tournament, ref, score1, score2, explicit_end=True)
    return advance(tournament, key, index)


def eight_players():
    return [f"Player {i}" for i in range(1, 9)]


class TestGenerateBracket:
    def test_full_bracket_shape(self):
        tournament = generate_bracket(eight_players(), 8, rng=random.Random(1))
        assert [len(r) for r in tournament.rounds] == [4, 2, 1]
        assert tournament.round_keys == ["round1", "round2", "round3"]
        assert all(m.status == MatchStatus.LIVE for m in tournament.rounds[0])
        assert all(m.status == MatchStatus.PENDING for m in tournament.rounds[1])
        seeded = [name for m in tournament.rounds[0] for name in (m.p1, m.p2)]
        assert sorted(seeded) == sorted(eight_players())

    def test_shuffle_is_seeded(self):
        a = generate_bracket(eight_players(), 8, rng=random.Random(5))
        b = generate_bracket(eight_players(), 8, rng=random.Random(5))
        assert a.to_document() == b.to_document()

    def test_byes_pad_the_bracket(self):
        names = ["A", "B", "C", "D", "E"]
        tournament = generate_bracket(names, 8, rng=random.Random(2))
        seeded = [name for m in tournament.rounds[0] for name in (m.p1, m.p2)]
        assert seeded.count(BYE) == 3
        assert sorted(n for n in seeded if n != BYE) == names
        for match in tournament.rounds[0]:
            if match.has_bye:
                assert match.decided
                assert match.status == MatchStatus.ENDED

    def test_byes_advance_through_rounds(self):
        tournament = generate_bracket(["A", "B", "C", "D", "E"], 8, rng=NoShuffle())
        first = tournament.rounds[0]
        assert (first[2].p1, first[2].p2, first[2].winner_name) == ("E", BYE, "E")
        assert (first[3].p1, first[3].p2, first[3].winner_name) == (BYE, BYE, BYE)
        # E meets the bye that came out of the double-bye match
        second = tournament.rounds[1][1]
        assert (second.p1, second.p2, second.winner_name) == ("E", BYE, "E")
        final = tournament.rounds[2][0]
        assert (final.p1, final.p2, final.status) == (None, "E", MatchStatus.PENDING)

    def test_bye_on_first_side(self):
        tournament = generate_bracket(["A", "B", "C"], 4, rng=NoShuffle())
        tournament.rounds[0][1] = Match(p1=BYE, p2="C", status=MatchStatus.LIVE)
        assert record_result(tournament, MatchRef("round1", 1), 0, 0) is False
        assert resolve_bye(tournament, MatchRef("round1", 1))
        assert tournament.rounds[0][1].winner == Side.P2
        assert tournament.rounds[1][0].p2 == "C"

    def test_two_player_bracket(self):
        tournament = generate_bracket(["A", "B"], 2, rng=NoShuffle())
        assert tournament.total_rounds == 1
        play(tournament, "round1", 0, 1, 3)
        assert champion(tournament) == "B"

    @pytest.mark.parametrize("size", [0, 1, 6, 12, True, "8"])
    def test_invalid_size(self, size):
        with pytest.raises(BracketError):
            generate_bracket(["A", "B"], size)

    def test_too_few_players(self):
        with pytest.raises(BracketError):
            generate_bracket(["A", "  "], 4)

    def test_too_many_players(self):
        with pytest.raises(BracketError):
            generate_bracket(eight_players() + ["Extra"], 8)


class TestRecordResult:
    def make(self):
        return generate_bracket(["A", "B", "C", "D"], 4, rng=NoShuffle())

    def test_explicit_end(self):
        tournament = self.make()
        ref = MatchRef("round1", 0)
        assert record_result(tournament, ref, 2, 1, explicit_end=True)
        match = tournament.match(ref)
        assert match.winner == Side.P1
        assert match.status == MatchStatus.ENDED

    def test_decided_match_never_changes(self):
        tournament = self.make()
        ref = MatchRef("round1", 0)
        record_result(tournament, ref, 2, 1, explicit_end=True)
        assert not record_result(tournament, ref, 0, 5, explicit_end=True)
        match = tournament.match(ref)
        assert (match.score1, match.score2, match.winner) == (2, 1, Side.P1)

    def test_scores_without_end_do_not_decide(self):
        tournament = self.make()
        ref = MatchRef("round1", 1)
        assert not record_result(tournament, ref, 7, 2)
        match = tournament.match(ref)
        assert (match.score1, match.score2) == (7, 2)
        assert not match.decided

    def test_race_to_decides(self):
        tournament = self.make()
        tournament.race_to["round1"] = 3
        ref = MatchRef("round1", 0)
        assert not record_result(tournament, ref, 2, 1)
        assert record_result(tournament, ref, 3, 1)
        assert tournament.match(ref).winner_name == "A"
        target = advance(tournament, "round1", 0)
        assert target == MatchRef("round2", 0)
        assert tournament.match(target).p1 == "A"

    def test_race_to_needs_unequal_scores(self):
        tournament = self.make()
        tournament.race_to["round1"] = 3
        assert not record_result(tournament, MatchRef("round1", 0), 3, 3)

    def test_race_to_is_per_round(self):
        tournament = self.make()
        tournament.race_to["round2"] = 1
        assert not record_result(tournament, MatchRef("round1", 0), 4, 0)

    def test_tie_on_explicit_end_goes_to_second_player(self):
        tournament = self.make()
        ref = MatchRef("round1", 1)
        assert record_result(tournament, ref, 2, 2, explicit_end=True)
        assert tournament.match(ref).winner_name == "D"

    def test_names_from_scoreboard(self):
        tournament = self.make()
        ref = MatchRef("round1", 0)
        record_result(tournament, ref, 1, 0, p1="Alice")
        assert tournament.match(ref).p1 == "Alice"

    def test_unknown_match(self):
        tournament = self.make()
        with pytest.raises(BracketError):
            record_result(tournament, MatchRef("round1", 5), 1, 0)
        with pytest.raises(BracketError):
            record_result(tournament, MatchRef("round9", 0), 1, 0)


class TestAdvance:
    def test_sides_follow_match_index(self):
        tournament = generate_bracket(["A", "B", "C", "D"], 4, rng=NoShuffle())
        play(tournament, "round1", 1, 0, 2)
        final = tournament.rounds[1][0]
        assert (final.p1, final.p2, final.status) == (None, "D", MatchStatus.PENDING)
        play(tournament, "round1", 0, 2, 0)
        assert (final.p1, final.p2, final.status) == ("A", "D", MatchStatus.LIVE)

    def test_undecided_and_final_return_none(self):
        tournament = generate_bracket(["A", "B"], 2, rng=NoShuffle())
        assert advance(tournament, "round1", 0) is None
        record_result(tournament, MatchRef("round1", 0), 1, 0, explicit_end=True)
        assert advance(tournament, "round1", 0) is None

    def test_advance_is_idempotent(self):
        tournament = generate_bracket(["A", "B", "C", "D"], 4, rng=NoShuffle())
        play(tournament, "round1", 0, 2, 0)
        before = tournament.to_document()
        advance(tournament, "round1", 0)
        assert tournament.to_document() == before

    def test_full_tournament_with_byes(self):
        tournament = generate_bracket(["A", "B", "C", "D", "E"], 8, rng=NoShuffle())
        play(tournament, "round1", 0, 2, 0)
        play(tournament, "round1", 1, 1, 2)
        semi = tournament.rounds[1][0]
        assert (semi.p1, semi.p2, semi.status) == ("A", "D", MatchStatus.LIVE)
        play(tournament, "round2", 0, 3, 1)
        final = tournament.rounds[2][0]
        assert (final.p1, final.p2, final.status) == ("A", "E", MatchStatus.LIVE)
        assert champion(tournament) is None
        play(tournament, "round3", 0, 0, 3)
        assert champion(tournament) == "E"

    def test_eight_player_bracket_has_one_champion(self):
        tournament = generate_bracket(eight_players(), 8, rng=random.Random(11))
        for r, matches in enumerate(tournament.rounds):
            for i in range(len(matches)):
                play(tournament, round_key(r), i, 2, 1)
        winner = champion(tournament)
        assert winner == tournament.rounds[0][0].p1
        assert sum(1 for m in tournament.rounds[-1] if m.decided) == 1


class TestModels:
    def test_round_keys(self):
        assert round_key(0) == "round1"
        assert round_index("round3") == 2
        for bad in ("round0", "final", ""):
            with pytest.raises(BracketError):
                round_index(bad)

    def test_stage_names(self):
        assert stage_name(0, 3) == "Quarterfinals"
        assert stage_name(1, 3) == "Semifinals"
        assert stage_name(2, 3) == "Finals"
        assert stage_name(0, 4) == "Round of 16"
        assert stage_name(0, 2) == "Round 1"
        assert round_prefix(1, 4) == "QF"
        assert round_prefix(0, 2) == "R1"

    def test_document_round_trip(self):
        tournament = generate_bracket(["A", "B", "C"], 4, rng=NoShuffle(), name="Friday",
                                      date="2024-05-01")
        tournament.race_to["round1"] = 3
        play(tournament, "round1", 0, 3, 2)
        assert Tournament.from_document(tournament.to_document()) == tournament

    def test_rounds_stored_as_mappings(self):
        rounds = {
            "round2": {"0": {"p1": "A"}},
            "round1": [{"p1": "A", "p2": "B", "winner": "p1", "status": "ended"},
                       {"p1": "C", "p2": "D"}],
        }
        parsed = normalize_rounds(rounds)
        assert [len(r) for r in parsed] == [2, 1]
        assert parsed[0][0].winner_name == "A"
        assert parsed[1][0].p1 == "A"

    def test_legacy_scoreboard_code(self):
        match = Match.from_dict({"p1": "A", "scoreboardCode": "4321", "winner": "bogus"})
        assert match.join_code == "4321"
        assert match.winner is None

    def test_cleared_race_to_is_dropped(self):
        tournament = Tournament.from_document({"raceTo": {"round1": None, "round2": 5}})
        assert tournament.race_to == {"round2": 5}

    def test_wrong_field_types_use_defaults(self):
        tournament = Tournament.from_document({"raceTo": ["3"], "players": 7, "name": "Cup"})
        assert tournament.race_to == {}
        assert tournament.players == []
        assert tournament.name == "Cup"
