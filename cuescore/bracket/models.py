"""Bracket data model and its tournament-document form."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional

from cuescore.core.errors import BracketError
from cuescore.ui.i18n import t

BYE = "(BYE)"
TBD = "TBD"


class MatchStatus(Enum):
    PENDING = "pending"
    LIVE = "live"
    ENDED = "ended"


class Side(Enum):
    P1 = "p1"
    P2 = "p2"


class MatchRef(NamedTuple):
    round_key: str
    match_index: int


def round_key(round_idx: int) -> str:
    """0-based round index -> document key ("round1", "round2", ...)."""
    return f"round{round_idx + 1}"


def round_index(key: str) -> int:
    """Inverse of `round_key`."""
    digits = re.sub(r"\D+", "", str(key))
    if not digits or int(digits) < 1:
        raise BracketError(f"invalid round key {key!r}")
    return int(digits) - 1


def is_player(name: Optional[str]) -> bool:
    """A real entrant, not an empty slot, TBD or a bye."""
    return bool(name) and name not in (BYE, TBD)


@dataclass
class Match:
    """One pairing. `winner` is set once and never changes."""
    p1: Optional[str] = None
    p2: Optional[str] = None
    score1: int = 0
    score2: int = 0
    winner: Optional[Side] = None
    status: MatchStatus = MatchStatus.PENDING
    scoreboard_id: Optional[str] = None
    join_code: Optional[str] = None

    @property
    def decided(self) -> bool:
        return self.winner is not None

    @property
    def filled(self) -> bool:
        return bool(self.p1) and bool(self.p2)

    @property
    def has_bye(self) -> bool:
        return BYE in (self.p1, self.p2)

    @property
    def winner_name(self) -> Optional[str]:
        if self.winner == Side.P1:
            return self.p1
        if self.winner == Side.P2:
            return self.p2
        return None

    def to_dict(self) -> dict:
        return {
            "p1": self.p1,
            "p2": self.p2,
            "score1": self.score1,
            "score2": self.score2,
            "winner": self.winner.value if self.winner else None,
            "status": self.status.value,
            "scoreboardId": self.scoreboard_id,
            "joinCode": self.join_code,
        }

    @classmethod
    def from_dict(cls, data) -> "Match":
        data = data if isinstance(data, dict) else {}
        try:
            winner = Side(data.get("winner")) if data.get("winner") else None
        except ValueError:
            winner = None
        try:
            status = MatchStatus(data.get("status") or "pending")
        except ValueError:
            status = MatchStatus.PENDING
        return cls(
            p1=data.get("p1") or None,
            p2=data.get("p2") or None,
            score1=_int(data.get("score1")),
            score2=_int(data.get("score2")),
            winner=winner,
            status=status,
            scoreboard_id=data.get("scoreboardId") or None,
            join_code=data.get("joinCode") or data.get("scoreboardCode") or None,
        )


def _int(value) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _ordered_values(value) -> list:
    """A list, or a mapping keyed by position ("0", "1", ...) as a list."""
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        keys = sorted(value, key=lambda k: _int(re.sub(r"\D+", "", str(k)) or 0))
        return [value[k] for k in keys]
    return []


def normalize_rounds(value) -> List[List[Match]]:
    """Rounds as stored (a list, or a mapping keyed "round1", ...) -> lists of Match."""
    return [[Match.from_dict(m) for m in _ordered_values(rnd)]
            for rnd in _ordered_values(value)]


@dataclass
class Tournament:
    """A single-elimination bracket."""
    players: List[str] = field(default_factory=list)
    rounds: List[List[Match]] = field(default_factory=list)
    race_to: Dict[str, int] = field(default_factory=dict)
    name: str = ""
    date: str = ""
    size: int = 0
    format: str = "single"
    status: str = "live"

    @property
    def total_rounds(self) -> int:
        return len(self.rounds)

    @property
    def round_keys(self) -> List[str]:
        return [round_key(i) for i in range(len(self.rounds))]

    def round(self, key: str) -> List[Match]:
        idx = round_index(key)
        if idx >= len(self.rounds):
            raise BracketError(f"no round {key!r}")
        return self.rounds[idx]

    def match(self, ref: MatchRef) -> Match:
        matches = self.round(ref.round_key)
        if isinstance(ref.match_index, bool) or not isinstance(ref.match_index, int) \
                or not (0 <= ref.match_index < len(matches)):
            raise BracketError(f"no match {ref.match_index!r} in {ref.round_key}")
        return matches[ref.match_index]

    def refs(self):
        """Every MatchRef, round by round."""
        for r, matches in enumerate(self.rounds):
            for i in range(len(matches)):
                yield MatchRef(round_key(r), i)

    def to_document(self) -> dict:
        return {
            "name": self.name,
            "date": self.date,
            "size": self.size,
            "format": self.format,
            "status": self.status,
            "players": list(self.players),
            "rounds": {round_key(r): [m.to_dict() for m in matches]
                       for r, matches in enumerate(self.rounds)},
            "raceTo": dict(self.race_to),
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Tournament":
        race_to = {}
        raw_race_to = doc.get("raceTo")
        if isinstance(raw_race_to, dict):
            for key, value in raw_race_to.items():
                # A cleared threshold is stored as null.
                if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                    race_to[str(key)] = value
        players = doc.get("players")
        return cls(
            players=[str(p) for p in players] if isinstance(players, list) else [],
            rounds=normalize_rounds(doc.get("rounds")),
            race_to=race_to,
            name=str(doc.get("name") or ""),
            date=str(doc.get("date") or ""),
            size=_int(doc.get("size")),
            format=str(doc.get("format") or "single"),
            status=str(doc.get("status") or "live"),
        )


_STAGES = {
    3: ("stage.quarter", "stage.semi", "stage.final"),
    4: ("stage.r16", "stage.quarter", "stage.semi", "stage.final"),
    5: ("stage.r32", "stage.r16", "stage.quarter", "stage.semi", "stage.final"),
}

_PREFIXES = {
    3: ("QF", "SF", "F"),
    4: ("R16", "QF", "SF", "F"),
    5: ("R32", "R16", "QF", "SF", "F"),
}


def stage_name(round_idx: int, total_rounds: int) -> str:
    """Display name of a round, e.g. "Semifinals"."""
    names = _STAGES.get(total_rounds)
    if names and 0 <= round_idx < len(names):
        return t(names[round_idx])
    return t("bracket.round", n=round_idx + 1)


def round_prefix(round_idx: int, total_rounds: int) -> str:
    """Short label used in match ids, e.g. "QF"."""
    prefixes = _PREFIXES.get(total_rounds)
    if prefixes and 0 <= round_idx < len(prefixes):
        return prefixes[round_idx]
    return f"R{round_idx + 1}"
