"""User input handling for the terminal UI."""

from dataclasses import dataclass
from typing import Optional

from rich.console import Console

from cuescore.bracket.models import round_index, round_key
from cuescore.core.errors import BracketError, InvalidInput
from cuescore.core.player import parse_player_id
from cuescore.core.score_state import ActionKind
from cuescore.ui.i18n import t

ACTION_ALIASES = {
    "w": ActionKind.WIN,
    "win": ActionKind.WIN,
    "f": ActionKind.FOUL,
    "foul": ActionKind.FOUL,
    "bc": ActionKind.BC,
    "g": ActionKind.GOLDEN,
    "golden": ActionKind.GOLDEN,
    "+": ActionKind.PLUS,
    "-": ActionKind.MINUS,
}

SIMPLE_COMMANDS = {
    "u": "undo",
    "undo": "undo",
    "live": "live",
    "stop": "stop",
    "h": "history",
    "s": "stats",
    "clear": "clear",
    "q": "quit",
    "?": "help",
    "help": "help",
}

RATE_KINDS = ("win", "foul", "bc")


@dataclass
class Command:
    """A parsed terminal command."""
    name: str
    player: Optional[int] = None
    action: Optional[ActionKind] = None
    value: Optional[str] = None
    text: str = ""


def _player(token: str) -> int:
    return parse_player_id(token)


def parse_command(line: str) -> Optional[Command]:
    """Parse one scoreboard command. Returns None for a blank line."""
    tokens = line.strip().split()
    if not tokens:
        return None
    head = tokens[0].lower()

    # "+2" and "-1" are shorthand for "+ 2" and "- 1"
    if head[0] in "+-" and len(head) > 1 and head[1:].isdigit():
        tokens = [head[0], head[1:]] + tokens[1:]
        head = head[0]

    if head in ACTION_ALIASES:
        if len(tokens) != 2:
            raise InvalidInput(f"usage: {head} <player>")
        return Command("action", player=_player(tokens[1]), action=ACTION_ALIASES[head])

    if head in SIMPLE_COMMANDS:
        if len(tokens) != 1:
            raise InvalidInput(f"{head} takes no arguments")
        return Command(SIMPLE_COMMANDS[head])

    if head == "set":
        if len(tokens) != 3:
            raise InvalidInput("usage: set <player> <score>")
        return Command("set", player=_player(tokens[1]), value=tokens[2])

    if head in ("n", "name", "team"):
        if len(tokens) < 2:
            raise InvalidInput(f"usage: {head} <player> <name>")
        name = "team" if head == "team" else "rename"
        return Command(name, player=_player(tokens[1]), text=" ".join(tokens[2:]))

    if head == "rate":
        if len(tokens) != 3 or tokens[1].lower() not in RATE_KINDS:
            raise InvalidInput("usage: rate win|foul|bc <points>")
        return Command("rate", value=tokens[2], text=tokens[1].lower())

    if head == "mode":
        if len(tokens) != 2:
            raise InvalidInput("usage: mode 3|4")
        return Command("mode", value=tokens[1])

    raise InvalidInput(f"unknown command {tokens[0]!r}")


def parse_round(token: str) -> str:
    """Accept "2" or "round2" and return the round key."""
    token = token.strip().lower()
    if token.isdigit():
        if int(token) < 1:
            raise BracketError(f"invalid round {token!r}")
        return round_key(int(token) - 1)
    return round_key(round_index(token))


def parse_bracket_command(line: str) -> Optional[Command]:
    """Parse one command of the bracket screen."""
    tokens = line.strip().split()
    if not tokens:
        return None
    head = tokens[0].lower()

    if head == "race":
        if len(tokens) != 3:
            raise InvalidInput("usage: race <round> <n|off>")
        value = None if tokens[2].lower() in ("off", "none", "-") else tokens[2]
        return Command("race", value=value, text=parse_round(tokens[1]))
    if head == "notice":
        return Command("notice", text=" ".join(tokens[1:]))
    if head in ("end", "r", "q", "?"):
        names = {"end": "end", "r": "refresh", "q": "quit", "?": "help"}
        return Command(names[head])
    raise InvalidInput(f"unknown command {tokens[0]!r}")


def read_line(console: Console, prompt_key: str = "prompt.command") -> str:
    """Prompt on the console and return the stripped line."""
    return console.input(f"  > {t(prompt_key)} ").strip()
