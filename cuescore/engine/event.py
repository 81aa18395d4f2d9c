"""Event system for decoupling the engines from persistence, sync and UI."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List


class EventType(Enum):
    GAME_START = "game_start"
    ACTION_APPLIED = "action_applied"
    SCORE_SET = "score_set"
    UNDO = "undo"
    PLAYER_COUNT_CHANGED = "player_count_changed"
    NAMES_CHANGED = "names_changed"
    RATES_CHANGED = "rates_changed"
    STATE_REPLACED = "state_replaced"
    SYNC_ATTACHED = "sync_attached"
    SYNC_DETACHED = "sync_detached"
    SYNC_WRITTEN = "sync_written"
    SYNC_ERROR = "sync_error"
    MATCH_DECIDED = "match_decided"
    BRACKET_UPDATED = "bracket_updated"
    TOURNAMENT_CHAMPION = "tournament_champion"


# Events after which the match state differs from what was last persisted.
STATE_CHANGE_EVENTS = (
    EventType.GAME_START,
    EventType.ACTION_APPLIED,
    EventType.SCORE_SET,
    EventType.UNDO,
    EventType.PLAYER_COUNT_CHANGED,
    EventType.NAMES_CHANGED,
    EventType.RATES_CHANGED,
    EventType.STATE_REPLACED,
)


@dataclass
class GameEvent:
    """An event emitted by an engine."""
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)


class EventBus:
    """Simple publish/subscribe event bus."""

    def __init__(self):
        self._listeners: Dict[EventType, List[Callable]] = {}

    def subscribe(self, event_type: EventType, callback: Callable):
        """Register a callback for an event type."""
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        self._listeners[event_type].append(callback)

    def subscribe_many(self, event_types, callback: Callable):
        for event_type in event_types:
            self.subscribe(event_type, callback)

    def unsubscribe(self, event_type: EventType, callback: Callable):
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def unsubscribe_many(self, event_types, callback: Callable):
        for event_type in event_types:
            self.unsubscribe(event_type, callback)

    def emit(self, event: GameEvent):
        """Emit an event to all registered listeners."""
        listeners = list(self._listeners.get(event.event_type, []))
        for callback in listeners:
            callback(event)

    def clear(self):
        """Remove all listeners."""
        self._listeners.clear()
