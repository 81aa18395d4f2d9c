"""Match and sync configuration."""

import os
from typing import Optional

from cuescore.core.errors import InvalidInput
from cuescore.core.player import Rates

# Remote collection per scoreboard variant
COLLECTIONS = {
    "rotation": "games",
    "race": "normal-games",
}
TOURNAMENT_COLLECTION = "tournaments"
TOURNAMENT_MATCH_COLLECTION = "tournament-match"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def data_dir() -> str:
    """Directory for the local session cache and shared documents."""
    return os.environ.get("CUESCORE_HOME") or os.path.join(
        os.path.expanduser("~"), ".cuescore")


class MatchConfig:
    """Match configuration."""

    def __init__(
        self,
        player_count: int = 3,
        ruleset: str = "rotation",
        rates: Optional[Rates] = None,
        variant: Optional[str] = None,
    ):
        if ruleset not in COLLECTIONS:
            raise InvalidInput(f"unknown ruleset {ruleset!r}")
        self.ruleset = ruleset
        self.player_count = player_count
        self.rates = rates or Rates()
        # The variant keys the local cache; two variants never share state.
        self.variant = variant or ruleset

        if ruleset == "race":
            self.player_count = 2
        elif player_count not in (3, 4):
            raise InvalidInput(f"rotation games need 3 or 4 players, got {player_count}")

    @classmethod
    def rotation(cls, player_count: int = 3, rates: Optional[Rates] = None) -> "MatchConfig":
        return cls(player_count=player_count, ruleset="rotation", rates=rates)

    @classmethod
    def race(cls) -> "MatchConfig":
        return cls(player_count=2, ruleset="race")

    @property
    def collection(self) -> str:
        return COLLECTIONS[self.ruleset]

    @property
    def state_key(self) -> str:
        return f"{self.variant}.state"

    @property
    def live_key(self) -> str:
        return f"{self.variant}.live"


class SyncConfig:
    """Timing of the live document sync (milliseconds)."""

    def __init__(
        self,
        debounce_ms: Optional[int] = None,
        suppression_ms: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
    ):
        self.debounce_ms = debounce_ms if debounce_ms is not None else _env_int("CUESCORE_DEBOUNCE_MS", 300)
        self.suppression_ms = suppression_ms if suppression_ms is not None else _env_int("CUESCORE_SUPPRESSION_MS", 1000)
        self.poll_interval_ms = poll_interval_ms if poll_interval_ms is not None else _env_int("CUESCORE_POLL_MS", 500)

    @property
    def debounce(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def suppression(self) -> float:
        return self.suppression_ms / 1000.0

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0
