"""Errors reported to callers of the scoring and bracket engines.

All of them are raised before any state is touched, so a caller that
catches one can keep using the same object.
"""


class ScoreboardError(ValueError):
    """Base class for recoverable, user-facing errors."""

    message_key = "error.generic"


class InvalidActor(ScoreboardError):
    """The player is not part of the current turn order."""

    message_key = "error.invalid_actor"


class InvalidInput(ScoreboardError):
    """A value (score, rate, action, player count) was rejected."""

    message_key = "error.invalid_input"


class NothingToUndo(ScoreboardError):
    """Only the initial 'Game Started' entry remains."""

    message_key = "error.nothing_to_undo"


class BracketError(InvalidInput):
    """Bracket generation or a match reference was rejected."""

    message_key = "error.bracket"
