"""Match session: one scoreboard with its local cache and live document.

The session wires the pieces together through the event bus. Every state
change is saved to the session store and, while live, handed to the sync
channel. Nothing here is global; a process may run several sessions.
"""

import logging
import uuid
from typing import Optional

from cuescore.core.errors import InvalidInput
from cuescore.engine.config import (
    COLLECTIONS, TOURNAMENT_MATCH_COLLECTION, MatchConfig, SyncConfig,
)
from cuescore.engine.event import STATE_CHANGE_EVENTS, EventBus, EventType, GameEvent
from cuescore.engine.projection import ScoreBinding, full_projection, state_from_doc
from cuescore.engine.scoreboard import ScoreStateMachine
from cuescore.engine.session_store import SessionStore
from cuescore.sync.channel import SyncChannel
from cuescore.sync.document_store import SERVER_TIMESTAMP, DocumentRef, DocumentStore
from cuescore.sync.join import find_by_join_code, generate_join_code
from cuescore.sync.timers import TimerQueue

logger = logging.getLogger(__name__)

CLIENT_ID_KEY = "client_id"


def load_client_id(session_store: SessionStore) -> str:
    """Stable id of this installation, generated on first use."""
    client_id = session_store.load(CLIENT_ID_KEY)
    if isinstance(client_id, str) and client_id:
        return client_id
    client_id = uuid.uuid4().hex
    session_store.save(CLIENT_ID_KEY, client_id)
    return client_id


def config_for_document(ref: DocumentRef, doc: dict) -> MatchConfig:
    """Scoreboard configuration for joining a shared document.

    Joined games get their own cache entry so they never overwrite the
    local game of the same kind.
    """
    if ref.collection == COLLECTIONS["rotation"]:
        count = 4 if doc.get("isFourPlayers") else 3
        return MatchConfig(player_count=count, ruleset="rotation", variant="rotation-joined")
    return MatchConfig(ruleset="race", variant="race-joined")


class MatchSession:
    """Owns a ScoreStateMachine, its cache entry and an optional SyncChannel."""

    def __init__(self, config: MatchConfig, session_store: SessionStore,
                 document_store: Optional[DocumentStore] = None,
                 timers: Optional[TimerQueue] = None,
                 sync_config: Optional[SyncConfig] = None,
                 event_bus: Optional[EventBus] = None):
        self.config = config
        self.session_store = session_store
        self.document_store = document_store
        self.timers = timers or TimerQueue()
        self.sync_config = sync_config or SyncConfig()
        self.event_bus = event_bus or EventBus()

        self.machine = ScoreStateMachine(config, self.event_bus)
        self.binding = ScoreBinding(self.machine, config.collection)
        self.client_id = load_client_id(session_store)
        self.channel: Optional[SyncChannel] = None
        self.join_code: Optional[str] = None

        self.event_bus.subscribe_many(STATE_CHANGE_EVENTS, self._on_state_change)

    @property
    def live(self) -> bool:
        return self.channel is not None and self.channel.attached

    @property
    def writable(self) -> bool:
        return self.channel is None or self.channel.writable

    # --- Persistence ---

    def _on_state_change(self, event: GameEvent):
        self.session_store.save(self.config.state_key, full_projection(self.machine.state))
        if self.channel is not None:
            self.channel.notify_local_change()

    def resume(self) -> bool:
        """Restore the cached match and re-attach a cached live document.

        Returns True if a cached match was restored.
        """
        restored = False
        data = self.session_store.load(self.config.state_key)
        if isinstance(data, dict):
            try:
                state = state_from_doc(data, self.config.player_count,
                                       self.machine.rules.player_counts)
            except (TypeError, ValueError) as e:
                logger.warning("Discarding cached %s state: %s", self.config.variant, e)
            else:
                self.machine.replace_state(state)
                restored = True
        if not restored:
            self.machine.start()

        live = self.session_store.load(self.config.live_key)
        if isinstance(live, dict) and self.document_store is not None:
            ref = DocumentRef(str(live.get("collection", "")), str(live.get("id", "")))
            if self._attach(ref, bool(live.get("writable", True))):
                self.join_code = live.get("joinCode")
            else:
                self.session_store.delete(self.config.live_key)
        return restored

    # --- Live sharing ---

    def _require_store(self) -> DocumentStore:
        if self.document_store is None:
            raise InvalidInput("live sharing needs a document store")
        return self.document_store

    def _attach(self, ref: DocumentRef, writable: bool) -> bool:
        if self.channel is not None:
            self.channel.detach()
        self.channel = SyncChannel(self.document_store, self.binding, self.client_id,
                                   self.timers, self.sync_config, self.event_bus,
                                   writable=writable)
        if not self.channel.attach(ref):
            self.channel = None
            return False
        return True

    def _remember(self, ref: DocumentRef, code: Optional[str], writable: bool):
        self.join_code = code
        self.session_store.save(self.config.live_key, {
            "collection": ref.collection,
            "id": ref.id,
            "joinCode": code,
            "writable": writable,
        })

    def start_live(self) -> Optional[str]:
        """Publish this match and return its join code (None on failure)."""
        store = self._require_store()
        if self.live:
            return self.join_code

        doc = dict(full_projection(self.machine.state))
        doc.update({
            "status": "live",
            "writerId": self.client_id,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        })
        try:
            doc["joinCode"] = generate_join_code(store)
            ref = store.add(self.config.collection, doc)
        except Exception as e:
            logger.warning("Could not start live sharing: %s", e)
            self.event_bus.emit(GameEvent(EventType.SYNC_ERROR, {"stage": "create", "error": str(e)}))
            return None

        if not self._attach(ref, writable=True):
            return None
        self._remember(ref, doc["joinCode"], True)
        logger.info("Live match %s started with code %s", ref, doc["joinCode"])
        return doc["joinCode"]

    def _joinable_collections(self):
        if self.config.ruleset == "race":
            return (self.config.collection, TOURNAMENT_MATCH_COLLECTION)
        return (self.config.collection,)

    def join(self, code, writable: bool = True) -> bool:
        """Attach to the document with join code `code`."""
        store = self._require_store()
        found = find_by_join_code(store, code, self._joinable_collections())
        if found is None:
            return False
        ref, doc = found
        if not self._attach(ref, writable):
            return False
        self._remember(ref, doc.get("joinCode"), writable)
        logger.info("Joined %s via code %s (writable=%s)", ref, doc.get("joinCode"), writable)
        return True

    def watch(self, code) -> bool:
        """Follow a live match without writing to it."""
        return self.join(code, writable=False)

    def stop_live(self) -> bool:
        """Mark the document ended and stop syncing."""
        if self.channel is None:
            return False
        channel = self.channel
        if channel.writable and channel.attached:
            channel.flush()
            try:
                self.document_store.update(channel.ref, {
                    "status": "ended",
                    "writerId": channel.writer_id,
                    "updatedAt": SERVER_TIMESTAMP,
                })
            except Exception as e:
                logger.warning("Could not end %s: %s", channel.ref, e)
                self.event_bus.emit(GameEvent(EventType.SYNC_ERROR,
                                              {"ref": channel.ref, "stage": "end", "error": str(e)}))
        channel.detach()
        self.channel = None
        self.join_code = None
        self.session_store.delete(self.config.live_key)
        return True

    # --- Lifecycle ---

    def clear_game(self):
        self.machine.clear()

    def close(self):
        """Detach without ending; the cached live id survives for resume."""
        if self.channel is not None:
            self.channel.detach()
            self.channel = None
        self.event_bus.unsubscribe_many(STATE_CHANGE_EVENTS, self._on_state_change)
