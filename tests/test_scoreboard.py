"""Tests for scoreboard.py - the score state machine"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import random

import pytest

from cuescore.core.errors import InvalidActor, InvalidInput, NothingToUndo
from cuescore.core.score_state import ActionKind
from cuescore.engine.config import MatchConfig
from cuescore.engine.event import EventBus, EventType
from cuescore.engine.scoreboard import ScoreStateMachine


def make_machine(count=3, event_bus=None):
    return ScoreStateMachine(MatchConfig.rotation(count), event_bus, now=lambda: "t")


def snapshot(machine):
    state = machine.state
    return (dict(state.scores), list(state.order), list(state.history_log),
            [dict(s) for s in state.score_log], [list(o) for o in state.order_log])


def assert_logs_aligned(machine):
    state = machine.state
    assert len(state.history_log) == len(state.score_log) == len(state.order_log)
    assert state.score_log[-1] == state.scores
    assert state.order_log[-1] == state.order


class TestInitialState:
    def test_three_players(self):
        machine = make_machine()
        assert machine.scores == {1: 0, 2: 0, 3: 0}
        assert machine.order == [1, 2, 3]
        assert len(machine.history_log) == 1
        assert machine.history_log[0].text == "Game Started"
        assert_logs_aligned(machine)

    def test_four_players(self):
        machine = make_machine(4)
        assert machine.order == [1, 2, 3, 4]
        assert machine.is_four_players

    def test_special_actions_only_for_current_player(self):
        machine = make_machine()
        assert machine.special_actions_allowed(1)
        assert not machine.special_actions_allowed(2)
        machine.apply_action(2, ActionKind.WIN)
        assert machine.special_actions_allowed(2)


class TestWin:
    def test_first_win(self):
        machine = make_machine()
        entry = machine.apply_action(1, ActionKind.WIN)
        assert machine.scores == {1: 1, 2: 0, 3: -1}
        assert machine.order == [1, 3, 2]
        assert entry.text == "P1 won P3."
        assert machine.state.action_stats["win"][1] == 1

    def test_second_win_charges_new_predecessor(self):
        machine = make_machine()
        machine.apply_action(1, ActionKind.WIN)
        entry = machine.apply_action(1, ActionKind.WIN)
        assert machine.scores == {1: 2, 2: -1, 3: -1}
        assert machine.order == [1, 2, 3]
        assert entry.text == "P1 won P2."
        assert len(machine.history_log) == 3

    def test_undo_twice_returns_to_start(self):
        machine = make_machine()
        machine.apply_action(1, ActionKind.WIN)
        machine.apply_action(1, ActionKind.WIN)
        machine.undo()
        assert machine.scores == {1: 1, 2: 0, 3: -1}
        assert machine.order == [1, 3, 2]
        machine.undo()
        assert machine.scores == {1: 0, 2: 0, 3: 0}
        assert machine.order == [1, 2, 3]
        assert len(machine.history_log) == 1

    def test_win_by_non_current_player(self):
        machine = make_machine()
        machine.apply_action(3, "win")
        assert machine.scores == {1: 0, 2: -1, 3: 1}
        assert machine.order == [3, 2, 1]

    def test_win_uses_rate(self):
        machine = make_machine()
        machine.set_rates(win=5)
        machine.apply_action(2, ActionKind.WIN)
        assert machine.scores == {1: -5, 2: 5, 3: 0}


class TestFoul:
    def test_foul_pays_predecessor(self):
        machine = make_machine()
        entry = machine.apply_action(2, ActionKind.FOUL)
        assert machine.scores == {1: 1, 2: -1, 3: 0}
        assert entry.text == "P2 fouled to P1."

    def test_foul_does_not_rotate(self):
        machine = make_machine()
        machine.apply_action(1, ActionKind.FOUL)
        assert machine.order == [1, 2, 3]
        # Head of the order pays the last player
        assert machine.scores == {1: -1, 2: 0, 3: 1}


class TestSweeps:
    def test_break_and_clear(self):
        machine = make_machine()
        machine.set_rates(bc=2)
        entry = machine.apply_action(1, ActionKind.BC)
        assert machine.scores == {1: 4, 2: -2, 3: -2}
        assert machine.order == [1, 3, 2]
        assert entry.text == "P1 broke clear!"
        assert machine.state.action_stats["bc"][1] == 1

    def test_golden_break_uses_win_rate(self):
        machine = make_machine(4)
        machine.set_rates(win=3, bc=7)
        entry = machine.apply_action(2, ActionKind.GOLDEN)
        assert machine.scores == {1: -3, 2: 9, 3: -3, 4: -3}
        assert machine.order == [2, 1, 3, 4]
        assert entry.text == "P2 golden break!"


class TestInvariants:
    @pytest.mark.parametrize("count", [3, 4])
    def test_random_sequence_is_zero_sum(self, count):
        rng = random.Random(7)
        machine = make_machine(count)
        machine.set_rates(win=2, foul=1, bc=3)
        kinds = [ActionKind.WIN, ActionKind.FOUL, ActionKind.BC, ActionKind.GOLDEN]
        for _ in range(200):
            machine.apply_action(rng.choice(machine.order), rng.choice(kinds))
            assert sum(machine.scores.values()) == 0
            assert sorted(machine.order) == list(range(1, count + 1))
            assert_logs_aligned(machine)
        assert len(machine.history_log) == 201

    @pytest.mark.parametrize("kind", [ActionKind.WIN, ActionKind.FOUL,
                                      ActionKind.BC, ActionKind.GOLDEN])
    def test_undo_is_inverse_of_action(self, kind):
        machine = make_machine(4)
        machine.apply_action(3, ActionKind.WIN)
        machine.apply_action(4, ActionKind.FOUL)
        for actor in list(machine.order):
            before = snapshot(machine)
            machine.apply_action(actor, kind)
            machine.undo()
            assert snapshot(machine) == before

    def test_undo_does_not_rewind_stats(self):
        machine = make_machine()
        machine.apply_action(1, ActionKind.WIN)
        machine.undo()
        assert machine.state.action_stats["win"][1] == 1


class TestRejectedInput:
    def test_unknown_actor(self):
        machine = make_machine()
        with pytest.raises(InvalidActor):
            machine.apply_action(4, ActionKind.WIN)
        with pytest.raises(InvalidActor):
            machine.apply_action("x", ActionKind.WIN)
        assert len(machine.history_log) == 1
        assert machine.scores == {1: 0, 2: 0, 3: 0}

    def test_unknown_action(self):
        machine = make_machine()
        with pytest.raises(InvalidInput):
            machine.apply_action(1, "jump")

    def test_race_action_on_rotation_board(self):
        machine = make_machine()
        with pytest.raises(InvalidInput):
            machine.apply_action(1, ActionKind.PLUS)

    def test_nothing_to_undo(self):
        machine = make_machine()
        with pytest.raises(NothingToUndo):
            machine.undo()
        assert len(machine.history_log) == 1

    def test_negative_rate(self):
        machine = make_machine()
        with pytest.raises(InvalidInput):
            machine.set_rates(win=2, foul=-1)
        assert machine.state.rates.win == 1
        assert machine.state.rates.foul == 1


class TestManualScore:
    def test_set_score(self):
        machine = make_machine()
        entry = machine.set_score_manually(2, "-5")
        assert machine.scores == {1: 0, 2: -5, 3: 0}
        assert entry.text == "P2's score manually set to -5."
        assert_logs_aligned(machine)

    def test_accepts_padded_string_and_int(self):
        machine = make_machine()
        machine.set_score_manually(1, " 7 ")
        machine.set_score_manually(3, 12)
        assert machine.scores == {1: 7, 2: 0, 3: 12}

    @pytest.mark.parametrize("value", ["3.5", "abc", "", True, 2.0, None])
    def test_rejects_non_integers(self, value):
        machine = make_machine()
        with pytest.raises(InvalidInput):
            machine.set_score_manually(1, value)
        assert len(machine.history_log) == 1

    def test_manual_set_is_undoable(self):
        machine = make_machine()
        machine.apply_action(1, ActionKind.WIN)
        machine.set_score_manually(1, 10)
        machine.undo()
        assert machine.scores == {1: 1, 2: 0, 3: -1}


class TestPlayerCount:
    def test_switch_to_four(self):
        machine = make_machine()
        machine.apply_action(1, ActionKind.WIN)
        entry = machine.switch_player_count(4)
        assert entry.text == "Switched to 4 players."
        assert machine.order == [1, 2, 3, 4]
        assert machine.scores == {1: 1, 2: 0, 3: -1, 4: 0}
        assert_logs_aligned(machine)

    def test_same_count_is_noop(self):
        machine = make_machine()
        assert machine.switch_player_count(3) is None
        assert len(machine.history_log) == 1

    def test_switch_back_drops_fourth_player(self):
        machine = make_machine(4)
        machine.rename_player(4, "Dee")
        machine.switch_player_count(3)
        assert 4 not in machine.scores
        assert 4 not in machine.state.names
        assert machine.order == [1, 2, 3]

    def test_undo_restores_previous_count(self):
        machine = make_machine()
        machine.switch_player_count(4)
        machine.undo()
        assert machine.player_count == 3
        assert machine.scores == {1: 0, 2: 0, 3: 0}

    def test_names_survive_switch(self):
        machine = make_machine()
        machine.rename_player(1, "Ann")
        machine.switch_player_count(4)
        entry = machine.apply_action(1, ActionKind.WIN)
        assert entry.text == "Ann won P4."

    def test_invalid_count(self):
        machine = make_machine()
        with pytest.raises(InvalidInput):
            machine.switch_player_count(5)
        with pytest.raises(InvalidInput):
            machine.switch_player_count("many")


class TestLifecycle:
    def test_clear_resets_to_configured_count(self):
        machine = make_machine()
        machine.rename_player(2, "Bo")
        machine.switch_player_count(4)
        machine.apply_action(2, ActionKind.WIN)
        machine.clear()
        assert machine.player_count == 3
        assert machine.scores == {1: 0, 2: 0, 3: 0}
        assert len(machine.history_log) == 1
        assert machine.state.names[2] == "Bo"

    def test_start_keeps_rates(self):
        machine = make_machine()
        machine.set_rates(win=4)
        machine.apply_action(1, ActionKind.WIN)
        machine.start()
        assert machine.state.rates.win == 4
        assert machine.state.action_stats["win"][1] == 0

    def test_names_are_trimmed(self):
        machine = make_machine()
        machine.rename_player(1, "  A very long player name indeed  ")
        assert machine.state.names[1] == "A very long player n"
        machine.rename_player(2, "   ")
        assert machine.state.name_of(2) == "P2"


class TestEvents:
    def test_action_event_carries_deltas(self):
        event_bus = EventBus()
        events = []
        event_bus.subscribe(EventType.ACTION_APPLIED, events.append)
        machine = make_machine(event_bus=event_bus)
        machine.apply_action(1, ActionKind.WIN)
        assert len(events) == 1
        assert events[0].data["deltas"] == {1: 1, 2: 0, 3: -1}
        assert events[0].data["action"] == ActionKind.WIN

    def test_rejected_action_emits_nothing(self):
        event_bus = EventBus()
        events = []
        event_bus.subscribe(EventType.ACTION_APPLIED, events.append)
        machine = make_machine(event_bus=event_bus)
        with pytest.raises(InvalidActor):
            machine.apply_action(9, ActionKind.WIN)
        assert events == []

    def test_empty_rate_change_emits_nothing(self):
        event_bus = EventBus()
        events = []
        event_bus.subscribe(EventType.RATES_CHANGED, events.append)
        machine = make_machine(event_bus=event_bus)
        machine.set_rates()
        assert events == []
        machine.set_rates(foul=2)
        assert [e.data["rates"]["foul"] for e in events] == [2]


class TestRaceScoreboard:
    def make_race(self):
        return ScoreStateMachine(MatchConfig.race(), now=lambda: "t")

    def test_plus_and_minus(self):
        machine = self.make_race()
        machine.apply_action(1, ActionKind.PLUS)
        machine.apply_action(1, "plus")
        entry = machine.apply_action(2, ActionKind.MINUS)
        assert machine.scores == {1: 2, 2: -1}
        assert machine.order == [1, 2]
        assert entry.text == "P2 -1 point"

    def test_foul_only_counts(self):
        machine = self.make_race()
        entry = machine.apply_action(1, ActionKind.FOUL)
        assert machine.scores == {1: 0, 2: 0}
        assert machine.state.action_stats["foul"][1] == 1
        assert entry.text == "P1 committed a foul"

    def test_rotation_actions_rejected(self):
        machine = self.make_race()
        with pytest.raises(InvalidInput):
            machine.apply_action(1, ActionKind.WIN)
        assert not machine.special_actions_allowed(1)

    def test_cannot_switch_player_count(self):
        machine = self.make_race()
        with pytest.raises(InvalidInput):
            machine.switch_player_count(3)

    def test_teams(self):
        machine = self.make_race()
        machine.set_team(2, " Sharks ")
        assert machine.state.teams == {2: "Sharks"}

    def test_undo(self):
        machine = self.make_race()
        machine.apply_action(2, ActionKind.PLUS)
        machine.undo()
        assert machine.scores == {1: 0, 2: 0}
