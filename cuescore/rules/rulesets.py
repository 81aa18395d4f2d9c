"""Scoring rules for the two scoreboard variants.

RotationRules - the 3/4-player money game: wins and fouls move points
between a player and whoever shot before them, break-and-clears and
golden breaks sweep every opponent. All four actions are zero-sum.

RaceRules - the two-player race scoreboard used for tournament matches:
each side counts frames up or down, fouls are only tallied.
"""

from typing import Tuple

from cuescore.core.score_state import ActionKind, ScoreState
from cuescore.rules.rotation import rotate_after_win
from cuescore.ui.i18n import t


class Ruleset:
    """Base ruleset. Subclasses mutate a validated state in `apply`."""

    name = ""
    actions: Tuple[ActionKind, ...] = ()
    stat_kinds: Tuple[ActionKind, ...] = ()
    player_counts: Tuple[int, ...] = ()
    rotates = False

    def supports(self, kind: ActionKind) -> bool:
        return kind in self.actions

    def apply(self, state: ScoreState, actor: int, kind: ActionKind) -> str:
        """Apply `kind` for `actor` and return the history text."""
        raise NotImplementedError


class RotationRules(Ruleset):
    name = "rotation"
    actions = (ActionKind.WIN, ActionKind.FOUL, ActionKind.BC, ActionKind.GOLDEN)
    stat_kinds = (ActionKind.WIN, ActionKind.FOUL, ActionKind.GOLDEN, ActionKind.BC)
    player_counts = (3, 4)
    rotates = True

    def apply(self, state: ScoreState, actor: int, kind: ActionKind) -> str:
        name = state.name_of(actor)

        if kind == ActionKind.WIN:
            pts = state.rates.win
            loser = state.predecessor(actor)
            state.scores[actor] += pts
            state.scores[loser] -= pts
            state.bump_stat(kind, actor)
            state.order = rotate_after_win(state.order, actor)
            return t("log.win", player=name, loser=state.name_of(loser))

        if kind == ActionKind.FOUL:
            pts = state.rates.foul
            receiver = state.predecessor(actor)
            state.scores[actor] -= pts
            state.scores[receiver] += pts
            state.bump_stat(kind, actor)
            return t("log.foul", player=name, receiver=state.name_of(receiver))

        # BC and GOLDEN share the sweep: every opponent pays the actor.
        pts = state.rates.bc if kind == ActionKind.BC else state.rates.win
        others = [p for p in state.order if p != actor]
        for p in others:
            state.scores[p] -= pts
        state.scores[actor] += pts * len(others)
        state.bump_stat(kind, actor)
        state.order = rotate_after_win(state.order, actor)
        if kind == ActionKind.BC:
            return t("log.bc", player=name)
        return t("log.golden", player=name)


class RaceRules(Ruleset):
    name = "race"
    actions = (ActionKind.PLUS, ActionKind.MINUS, ActionKind.FOUL)
    stat_kinds = (ActionKind.FOUL,)
    player_counts = (2,)

    def apply(self, state: ScoreState, actor: int, kind: ActionKind) -> str:
        name = state.name_of(actor)
        if kind == ActionKind.PLUS:
            state.scores[actor] += 1
            return t("log.plus", player=name)
        if kind == ActionKind.MINUS:
            state.scores[actor] -= 1
            return t("log.minus", player=name)
        # Fouls are analytics only on the race scoreboard.
        state.bump_stat(kind, actor)
        return t("log.race_foul", player=name)


RULESETS = {
    RotationRules.name: RotationRules(),
    RaceRules.name: RaceRules(),
}


def get_ruleset(name: str) -> Ruleset:
    return RULESETS[name]
