"""Rich rendering engine - ties together the UI components."""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from cuescore.engine.event import EventBus, EventType, GameEvent
from cuescore.engine.session import MatchSession
from cuescore.ui.board_layout import render_history, render_scoreboard, render_stats
from cuescore.ui.i18n import t


def configure_logging(console: Console, level: Optional[str] = None):
    """Route log records through rich on the shared console."""
    level = (level or os.environ.get("CUESCORE_LOG_LEVEL") or "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


class Renderer:
    """Renders a match session and reports sync activity."""

    def __init__(self, console: Console, event_bus: EventBus, session: MatchSession):
        self.console = console
        self.event_bus = event_bus
        self.session = session
        self.dirty = True
        self._subscribe_events()

    def _subscribe_events(self):
        """Subscribe to relevant events."""
        self.event_bus.subscribe(EventType.STATE_REPLACED, self._on_state_replaced)
        self.event_bus.subscribe(EventType.SYNC_ERROR, self._on_sync_error)
        self.event_bus.subscribe(EventType.SYNC_DETACHED, self._on_detached)

    def close(self):
        self.event_bus.unsubscribe(EventType.STATE_REPLACED, self._on_state_replaced)
        self.event_bus.unsubscribe(EventType.SYNC_ERROR, self._on_sync_error)
        self.event_bus.unsubscribe(EventType.SYNC_DETACHED, self._on_detached)

    def render(self):
        """Render the scoreboard."""
        session = self.session
        render_scoreboard(
            self.console, session.machine.state,
            live_code=session.join_code if session.live else None,
            read_only=not session.writable,
            show_teams=session.config.ruleset == "race",
        )
        self.dirty = False

    def show_history(self):
        render_history(self.console, self.session.machine.state)

    def show_stats(self):
        render_stats(self.console, self.session.machine.state)

    def _on_state_replaced(self, event: GameEvent):
        # Inbound snapshots arrive between prompts; redraw at the next one.
        self.dirty = True

    def _on_sync_error(self, event: GameEvent):
        self.console.print(f"  [red]{t('error.sync', detail=event.data.get('error', ''))}[/red]")

    def _on_detached(self, event: GameEvent):
        self.dirty = True
