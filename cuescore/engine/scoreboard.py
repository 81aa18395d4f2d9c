"""Score state machine - applies actions, manual overrides and undo.

The machine owns one `ScoreState`. Every committed mutation appends a
history entry together with score and turn-order snapshots, so undo is a
matter of popping the three logs and restoring the new tail. Errors are
raised before anything is touched.
"""

import re
from typing import Callable, Dict, Optional, Union

from cuescore.core.errors import InvalidActor, InvalidInput, NothingToUndo
from cuescore.core.player import Rates, parse_player_id, player_ids
from cuescore.core.score_state import ActionKind, LogEntry, ScoreState, utc_now_iso
from cuescore.engine.config import MatchConfig
from cuescore.engine.event import EventBus, EventType, GameEvent
from cuescore.rules.rulesets import get_ruleset
from cuescore.ui.i18n import t

_INTEGER_RE = re.compile(r"^-?\d+$")
MAX_NAME_LENGTH = 20


class ScoreStateMachine:
    """Scoring for one match, parameterised by player count and ruleset."""

    def __init__(self, config: MatchConfig, event_bus: Optional[EventBus] = None,
                 now: Optional[Callable[[], str]] = None):
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.rules = get_ruleset(config.ruleset)
        self._now = now or utc_now_iso
        self.state = self._fresh_state(config.player_count, {}, {})

    # --- Read access ---

    @property
    def scores(self) -> Dict[int, int]:
        return self.state.scores

    @property
    def order(self):
        return self.state.order

    @property
    def history_log(self):
        return self.state.history_log

    @property
    def player_count(self) -> int:
        return self.state.player_count

    @property
    def is_four_players(self) -> bool:
        return self.state.player_count == 4

    def special_actions_allowed(self, actor: int) -> bool:
        """BC and golden break are offered only to the player at the table."""
        return self.rules.rotates and actor == self.state.current_player

    # --- Lifecycle ---

    def _fresh_state(self, count: int, names: dict, teams: dict) -> ScoreState:
        ids = player_ids(count)
        state = ScoreState(
            scores={pid: 0 for pid in ids},
            order=list(ids),
            names={pid: names[pid] for pid in ids if pid in names},
            teams={pid: teams[pid] for pid in ids if pid in teams},
            action_stats={kind.value: {pid: 0 for pid in ids}
                          for kind in self.rules.stat_kinds},
            rates=Rates(**self.config.rates.to_dict()),
        )
        state.record(t("log.game_started"), self._now())
        return state

    def start(self) -> LogEntry:
        """Reset scores, order, stats and history; names and rates are kept."""
        rates = self.state.rates
        self.state = self._fresh_state(self.state.player_count or self.config.player_count,
                                       self.state.names, self.state.teams)
        self.state.rates = rates
        entry = self.state.history_log[-1]
        self._emit(EventType.GAME_START, entry=entry)
        return entry

    def clear(self) -> LogEntry:
        """Clear the game: back to the default player count, fresh history."""
        self.state = self._fresh_state(self.config.player_count,
                                       self.state.names, self.state.teams)
        return self.start()

    def replace_state(self, state: ScoreState):
        """Replace the whole state, e.g. with a snapshot from another device."""
        self.state = state.copy()
        self._emit(EventType.STATE_REPLACED)

    # --- Mutations ---

    def apply_action(self, actor, action: Union[ActionKind, str]) -> LogEntry:
        """Apply a scoring action for `actor` and log it."""
        kind = self._parse_action(action)
        actor = self._require_player(actor)

        before = dict(self.state.scores)
        text = self.rules.apply(self.state, actor, kind)
        entry = self.state.record(text, self._now())

        deltas = {p: self.state.scores[p] - before.get(p, 0) for p in self.state.scores}
        self._emit(EventType.ACTION_APPLIED, player=actor, action=kind,
                   deltas=deltas, entry=entry)
        return entry

    def set_score_manually(self, player, value) -> LogEntry:
        """Overwrite one player's score. Not zero-sum."""
        player = self._require_player(player)
        new_value = _parse_score(value)

        previous = self.state.scores[player]
        self.state.scores[player] = new_value
        entry = self.state.record(
            t("log.manual", player=self.state.name_of(player), value=new_value),
            self._now())
        self._emit(EventType.SCORE_SET, player=player, previous=previous,
                   value=new_value, entry=entry)
        return entry

    def undo(self) -> LogEntry:
        """Drop the newest history entry and restore the snapshots before it."""
        state = self.state
        if len(state.history_log) <= 1:
            raise NothingToUndo("only the initial entry remains")

        entry = state.history_log.pop()
        state.score_log.pop()
        state.order_log.pop()
        state.scores = dict(state.score_log[-1])
        state.order = list(state.order_log[-1])
        self._emit(EventType.UNDO, entry=entry)
        return entry

    def switch_player_count(self, count) -> Optional[LogEntry]:
        """Switch a rotation game between 3 and 4 players."""
        if not self.rules.rotates:
            raise InvalidInput("the race scoreboard always has two players")
        try:
            count = int(count)
        except (TypeError, ValueError):
            raise InvalidInput(f"player count must be 3 or 4, got {count!r}") from None
        if count not in self.rules.player_counts:
            raise InvalidInput(f"player count must be 3 or 4, got {count}")
        if count == self.state.player_count:
            return None

        state = self.state
        ids = player_ids(count)
        state.order = list(ids)
        state.scores = {pid: state.scores.get(pid, 0) for pid in ids}
        state.names = {pid: name for pid, name in state.names.items() if pid in ids}
        for counters in state.action_stats.values():
            for pid in ids:
                counters.setdefault(pid, 0)

        entry = state.record(t("log.switch_players", n=count), self._now())
        self._emit(EventType.PLAYER_COUNT_CHANGED, count=count, entry=entry)
        return entry

    def rename_player(self, player, name: str):
        player = self._require_player(player)
        self.state.names[player] = (name or "").strip()[:MAX_NAME_LENGTH]
        self._emit(EventType.NAMES_CHANGED, player=player)

    def set_team(self, player, name: str):
        player = self._require_player(player)
        self.state.teams[player] = (name or "").strip()[:MAX_NAME_LENGTH]
        self._emit(EventType.NAMES_CHANGED, player=player)

    def set_rates(self, win=None, foul=None, bc=None):
        """Change point rates; omitted rates are kept."""
        updates = {}
        for key, value in (("win", win), ("foul", foul), ("bc", bc)):
            if value is None:
                continue
            rate = _parse_score(value)
            if rate < 0:
                raise InvalidInput(f"{key} rate must not be negative")
            updates[key] = rate
        if not updates:
            return
        for key, rate in updates.items():
            setattr(self.state.rates, key, rate)
        self._emit(EventType.RATES_CHANGED, rates=self.state.rates.to_dict())

    # --- Helpers ---

    def _parse_action(self, action) -> ActionKind:
        if isinstance(action, ActionKind):
            kind = action
        else:
            try:
                kind = ActionKind(str(action).strip().lower())
            except ValueError:
                raise InvalidInput(f"unknown action {action!r}") from None
        if not self.rules.supports(kind):
            raise InvalidInput(f"{kind.value} is not available on this scoreboard")
        return kind

    def _require_player(self, player) -> int:
        try:
            pid = parse_player_id(player)
        except InvalidInput:
            raise InvalidActor(f"unknown player {player!r}") from None
        if pid not in self.state.order:
            raise InvalidActor(f"player {pid} is not in the turn order")
        return pid

    def _emit(self, event_type: EventType, **data):
        self.event_bus.emit(GameEvent(event_type, data))


def _parse_score(value) -> int:
    """Accept an int or an integer string such as "-3"."""
    if isinstance(value, bool):
        raise InvalidInput(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_RE.match(value.strip()):
        return int(value.strip())
    raise InvalidInput(f"not an integer: {value!r}")
