"""Player identifiers, display names and point rates."""

from dataclasses import dataclass
from typing import List

from .errors import InvalidInput

MIN_PLAYERS = 2
MAX_PLAYERS = 4


def player_ids(count: int) -> List[int]:
    """Identity turn order for `count` players: [1, 2, ..., count]."""
    if not (MIN_PLAYERS <= count <= MAX_PLAYERS):
        raise InvalidInput(f"player count must be {MIN_PLAYERS}..{MAX_PLAYERS}, got {count}")
    return list(range(1, count + 1))


def default_name(player: int) -> str:
    return f"P{player}"


def parse_player_id(value) -> int:
    """Parse a player id from an int or a document key such as "2"."""
    if isinstance(value, bool):
        raise InvalidInput(f"not a player id: {value!r}")
    try:
        pid = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"not a player id: {value!r}") from None
    if pid < 1:
        raise InvalidInput(f"not a player id: {value!r}")
    return pid


@dataclass
class Rates:
    """Points moved by each kind of action.

    win is also used for golden breaks; bc is charged to every opponent
    on a break-and-clear.
    """
    win: int = 1
    foul: int = 1
    bc: int = 1

    def to_dict(self) -> dict:
        return {"win": self.win, "foul": self.foul, "bc": self.bc}

    @classmethod
    def from_dict(cls, data) -> "Rates":
        if not isinstance(data, dict):
            data = {}
        return cls(
            win=_rate_value(data.get("win", 1)),
            foul=_rate_value(data.get("foul", 1)),
            bc=_rate_value(data.get("bc", 1)),
        )


def _rate_value(value) -> int:
    # Mirrors the rate inputs of the scoreboard page: blanks count as 0.
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
