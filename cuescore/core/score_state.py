"""Score state for one match: totals, turn order, stats and the undo logs."""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from .player import Rates, default_name


class ActionKind(Enum):
    WIN = "win"
    FOUL = "foul"
    BC = "bc"          # Break-and-clear
    GOLDEN = "golden"  # Golden break
    PLUS = "plus"      # Race scoreboard +1
    MINUS = "minus"    # Race scoreboard -1


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class LogEntry:
    """One line of match history."""
    text: str
    time: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict:
        return {"text": self.text, "time": self.time}

    @classmethod
    def from_dict(cls, data: dict) -> "LogEntry":
        return cls(text=str(data.get("text", "")), time=str(data.get("time", "")))


@dataclass
class ScoreState:
    """Complete state of one match.

    Attributes:
        scores: Point totals per player id; may go negative
        order: Turn order, head is the player at the table
        names: Display name per player id
        teams: Team name per player id (race scoreboard only)
        action_stats: Per-action counters, analytics only
        history_log: Append-only log, newest last
        score_log: Score snapshot per history entry
        order_log: Turn-order snapshot per history entry
        rates: Points moved by each action
    """
    scores: Dict[int, int] = field(default_factory=dict)
    order: List[int] = field(default_factory=list)
    names: Dict[int, str] = field(default_factory=dict)
    teams: Dict[int, str] = field(default_factory=dict)
    action_stats: Dict[str, Dict[int, int]] = field(default_factory=dict)
    history_log: List[LogEntry] = field(default_factory=list)
    score_log: List[Dict[int, int]] = field(default_factory=list)
    order_log: List[List[int]] = field(default_factory=list)
    rates: Rates = field(default_factory=Rates)

    @property
    def player_count(self) -> int:
        return len(self.order)

    @property
    def current_player(self) -> Optional[int]:
        return self.order[0] if self.order else None

    def name_of(self, player: int) -> str:
        return (self.names.get(player) or "").strip() or default_name(player)

    def predecessor(self, player: int) -> int:
        """Player immediately before `player` in the (cyclic) turn order."""
        idx = self.order.index(player)
        return self.order[(idx - 1) % len(self.order)]

    def record(self, text: str, time: Optional[str] = None) -> LogEntry:
        """Append a history entry together with the current snapshots."""
        entry = LogEntry(text, time) if time else LogEntry(text)
        self.history_log.append(entry)
        self.score_log.append(dict(self.scores))
        self.order_log.append(list(self.order))
        return entry

    def bump_stat(self, kind: ActionKind, player: int):
        counters = self.action_stats.setdefault(kind.value, {})
        counters[player] = counters.get(player, 0) + 1

    def copy(self) -> "ScoreState":
        return copy.deepcopy(self)

    def __repr__(self):
        return f"ScoreState(scores={self.scores}, order={self.order}, history={len(self.history_log)})"
