"""Projection of a ScoreState to the shared document shape and back.

Document fields use camelCase and string player keys ({"1": ..., "2": ...});
locally player ids are ints. `state_from_doc` accepts partial or older
documents and fills in defaults, so `full_projection(state_from_doc(doc))`
is the normalised content of any document.
"""

import logging
from typing import Dict, List, Sequence

from cuescore.core.errors import InvalidInput
from cuescore.core.player import Rates, parse_player_id, player_ids
from cuescore.core.score_state import LogEntry, ScoreState
from cuescore.sync.channel import SyncBinding
from cuescore.ui.i18n import t

logger = logging.getLogger(__name__)


def _keyed(mapping: Dict[int, object]) -> dict:
    return {str(pid): value for pid, value in mapping.items()}


def full_projection(state: ScoreState) -> dict:
    """Every content field of the document for `state`."""
    return {
        "players": {str(pid): state.names.get(pid, "") for pid in state.order},
        "teams": {str(pid): state.teams.get(pid, "") for pid in state.order},
        "scores": _keyed(state.scores),
        "order": list(state.order),
        "isFourPlayers": state.player_count == 4,
        "actionStats": {kind: _keyed(counters)
                        for kind, counters in state.action_stats.items()},
        "historyLog": [entry.to_dict() for entry in state.history_log],
        "scoreLog": [_keyed(snapshot) for snapshot in state.score_log],
        "orderLog": [list(order) for order in state.order_log],
        "rates": state.rates.to_dict(),
    }


def _to_int(value, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _player_map(mapping, cast) -> dict:
    result = {}
    if not isinstance(mapping, dict):
        return result
    for key, value in mapping.items():
        try:
            pid = parse_player_id(key)
        except InvalidInput:
            continue
        result[pid] = cast(value)
    return result


def _order(raw, counts: Sequence[int]):
    if not isinstance(raw, list):
        return None
    try:
        order = [parse_player_id(p) for p in raw]
    except InvalidInput:
        return None
    if len(order) not in counts or sorted(order) != player_ids(len(order)):
        return None
    return order


def state_from_doc(doc: dict, default_count: int = 3,
                   counts: Sequence[int] = (2, 3, 4)) -> ScoreState:
    """Build a ScoreState from a document (or a cached projection)."""
    scores_map = _player_map(doc.get("scores"), _to_int)

    order = _order(doc.get("order"), counts)
    if order is None:
        if len(scores_map) in counts and sorted(scores_map) == player_ids(len(scores_map)):
            count = len(scores_map)
        elif doc.get("isFourPlayers") and 4 in counts:
            count = 4
        else:
            count = default_count
        order = player_ids(count)
        if "order" in doc:
            logger.debug("Unusable turn order %r, using %d players", doc.get("order"), count)

    scores = {pid: scores_map.get(pid, 0) for pid in order}
    names = {pid: name for pid, name in _player_map(doc.get("players"), _text).items()
             if pid in order and name}
    teams = {pid: name for pid, name in _player_map(doc.get("teams"), _text).items()
             if pid in order and name}

    action_stats = {}
    raw_stats = doc.get("actionStats")
    if isinstance(raw_stats, dict):
        for kind, counters in raw_stats.items():
            action_stats[str(kind)] = _player_map(counters, _to_int)

    history = [LogEntry.from_dict(e) for e in (doc.get("historyLog") or [])
               if isinstance(e, dict)]
    score_log = [_player_map(s, _to_int) for s in (doc.get("scoreLog") or [])
                 if isinstance(s, dict)]
    order_log: List[List[int]] = []
    for raw in doc.get("orderLog") or []:
        order_log.append(_order(raw, counts) or list(order))

    if not history:
        history = [LogEntry(t("log.game_started"), "")]
    # Keep the three logs aligned; missing snapshots take the current values.
    n = len(history)
    score_log = score_log[:n] + [dict(scores) for _ in range(n - len(score_log))]
    order_log = order_log[:n] + [list(order) for _ in range(n - len(order_log))]
    score_log[-1] = dict(scores)
    order_log[-1] = list(order)

    return ScoreState(
        scores=scores,
        order=order,
        names=names,
        teams=teams,
        action_stats=action_stats,
        history_log=history,
        score_log=score_log,
        order_log=order_log,
        rates=Rates.from_dict(doc.get("rates")),
    )


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def minimal_projection(doc: dict, default_count: int = 3,
                       counts: Sequence[int] = (2, 3, 4)) -> dict:
    """Normalised content of `doc`; metadata fields are dropped."""
    return full_projection(state_from_doc(doc, default_count, counts))


class ScoreBinding(SyncBinding):
    """Mirrors a ScoreStateMachine into a scoreboard document."""

    def __init__(self, machine, collection: str):
        self.machine = machine
        self.collection = collection

    def _counts(self):
        return self.machine.rules.player_counts

    def snapshot(self) -> dict:
        return full_projection(self.machine.state)

    def minimal_projection(self, doc: dict) -> dict:
        return minimal_projection(doc, self.machine.config.player_count, self._counts())

    def apply_snapshot(self, doc: dict):
        self.machine.replace_state(
            state_from_doc(doc, self.machine.config.player_count, self._counts()))
