"""Live document sync for one local state owner.

A SyncChannel mirrors local state into one shared document and applies
changes other clients make to it. There is no locking: every writer
overwrites the document on its debounce tick (last write wins). Three
guards keep clients from bouncing the same content back and forth:

    writerId       - a channel ignores snapshots it wrote itself
    content hashes - identical content is neither written nor re-applied
    suppression    - local changes caused by applying a remote snapshot
                     are not written back until the window has passed

The writer id is fresh for every attach, so two sessions of the same
installation still see each other's writes. The document found at attach
time is always loaded.
"""

import logging
import uuid
from enum import Enum
from typing import Optional

from cuescore.core.hasher import stable_hash
from cuescore.engine.config import SyncConfig
from cuescore.engine.event import EventBus, EventType, GameEvent
from cuescore.sync.document_store import (
    SERVER_TIMESTAMP, DocumentNotFound, DocumentRef, DocumentStore, Subscription,
)
from cuescore.sync.timers import Debouncer, TimerQueue

logger = logging.getLogger(__name__)

# Written by the channel or the store, never part of the content hash.
METADATA_FIELDS = ("writerId", "updatedAt", "createdAt", "status", "joinCode")


class ChannelState(Enum):
    DETACHED = "detached"
    ATTACHED = "attached"


class SyncBinding:
    """The state owner a channel mirrors.

    snapshot()           full document projection of the local state
    minimal_projection() the content fields of a document, normalised so
                         equal game content always hashes the same
    apply_snapshot()     replace local state with a document's content
    """

    collection = ""

    def snapshot(self) -> dict:
        raise NotImplementedError

    def minimal_projection(self, doc: dict) -> dict:
        return {k: v for k, v in doc.items() if k not in METADATA_FIELDS}

    def apply_snapshot(self, doc: dict):
        raise NotImplementedError


class SyncChannel:
    """Binds a SyncBinding to one remote document."""

    def __init__(self, store: DocumentStore, binding: SyncBinding, client_id: str,
                 timers: TimerQueue, config: Optional[SyncConfig] = None,
                 event_bus: Optional[EventBus] = None, writable: bool = True):
        self.store = store
        self.binding = binding
        self.client_id = client_id
        self.timers = timers
        self.config = config or SyncConfig()
        self.event_bus = event_bus or EventBus()
        self.writable = writable

        self.state = ChannelState.DETACHED
        self.ref: Optional[DocumentRef] = None
        self.writer_id: Optional[str] = None
        self.last_written_hash: Optional[str] = None
        self.last_applied_hash: Optional[str] = None
        self.suppress_until = 0.0
        self._subscription: Optional[Subscription] = None
        self._debouncer = Debouncer(timers, self.config.debounce, self._on_debounce)

    @property
    def attached(self) -> bool:
        return self.state == ChannelState.ATTACHED

    @property
    def write_pending(self) -> bool:
        return self._debouncer.pending

    # --- Lifecycle ---

    def attach(self, ref: DocumentRef) -> bool:
        """Subscribe to `ref`. The current document is applied right away."""
        if self.attached:
            self.detach()
        self.ref = ref
        self.writer_id = f"{self.client_id}-{uuid.uuid4().hex[:8]}"
        self.state = ChannelState.ATTACHED
        try:
            doc = self.store.get(ref)
            if doc is None:
                raise DocumentNotFound(f"no document {ref}")
            # Loading is not a live edit: no suppression window.
            self._apply(doc, suppression=0.0)
            self._subscription = self.store.subscribe(ref, self._on_snapshot)
        except Exception as e:
            logger.warning("Attach to %s failed: %s", ref, e)
            self._reset()
            self._emit(EventType.SYNC_ERROR, ref=ref, stage="attach", error=str(e))
            return False
        logger.debug("Attached to %s (writable=%s)", ref, self.writable)
        self._emit(EventType.SYNC_ATTACHED, ref=ref, writable=self.writable)
        return True

    def detach(self):
        """Stop listening and drop any pending write."""
        if not self.attached:
            return
        ref = self.ref
        if self._subscription is not None:
            self._subscription.unsubscribe()
        self._reset()
        logger.debug("Detached from %s", ref)
        self._emit(EventType.SYNC_DETACHED, ref=ref)

    def _reset(self):
        self._debouncer.cancel()
        self._subscription = None
        self.state = ChannelState.DETACHED
        self.ref = None
        self.writer_id = None
        self.last_written_hash = None
        self.last_applied_hash = None
        self.suppress_until = 0.0

    # --- Outbound ---

    def notify_local_change(self):
        """Schedule a write of the local state."""
        if not self.attached or not self.writable:
            return
        now = self.timers.time()
        if now < self.suppress_until:
            self._debouncer.defer_until(max(now + self.config.debounce, self.suppress_until))
        else:
            self._debouncer.trigger()

    def flush(self) -> bool:
        """Write a pending change now. Returns whether a write happened."""
        if not self._debouncer.pending:
            return False
        self._debouncer.cancel()
        return self._write()

    def _on_debounce(self):
        if not self.attached:
            return
        if self.timers.time() < self.suppress_until:
            self._debouncer.defer_until(self.suppress_until)
            return
        self._write()

    def _write(self) -> bool:
        snapshot = self.binding.snapshot()
        digest = stable_hash(self.binding.minimal_projection(snapshot))
        if digest == self.last_written_hash or digest == self.last_applied_hash:
            logger.debug("Skip write to %s: content unchanged", self.ref)
            return False

        payload = dict(snapshot)
        payload["writerId"] = self.writer_id
        payload["updatedAt"] = SERVER_TIMESTAMP
        try:
            self.store.update(self.ref, payload)
        except Exception as e:
            # Retried on the next local change.
            logger.warning("Write to %s failed: %s", self.ref, e)
            self._emit(EventType.SYNC_ERROR, ref=self.ref, stage="write", error=str(e))
            return False

        self.last_written_hash = digest
        self.last_applied_hash = None
        logger.debug("Wrote %s (%s)", self.ref, digest[:12])
        self._emit(EventType.SYNC_WRITTEN, ref=self.ref, hash=digest)
        return True

    # --- Inbound ---

    def _on_snapshot(self, doc: Optional[dict]):
        if doc is None:
            logger.info("Document %s was deleted", self.ref)
            return
        try:
            self.apply_remote(doc)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed snapshot of %s: %s", self.ref, e)
            self._emit(EventType.SYNC_ERROR, ref=self.ref, stage="apply", error=str(e))

    def apply_remote(self, payload: dict) -> bool:
        """Apply a remote snapshot unless it is our own echo or already applied."""
        if payload.get("writerId") == self.writer_id:
            return False
        return self._apply(payload, self.config.suppression)

    def _apply(self, payload: dict, suppression: float) -> bool:
        digest = stable_hash(self.binding.minimal_projection(payload))
        if digest == self.last_applied_hash:
            return False

        # Set before applying: the replacement itself triggers notify_local_change.
        self.suppress_until = self.timers.time() + suppression
        logger.debug("Applying %s from %s (%s)", self.ref, payload.get("writerId"), digest[:12])
        self.binding.apply_snapshot(payload)
        self.last_applied_hash = digest
        self.last_written_hash = None
        return True

    def _emit(self, event_type: EventType, **data):
        self.event_bus.emit(GameEvent(event_type, data))
