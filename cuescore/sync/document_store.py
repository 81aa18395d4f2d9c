"""Shared document store: the transport behind live scoreboards and brackets.

Documents are JSON-shaped dicts addressed by `DocumentRef(collection, id)`.
Subscribers receive a fresh copy of the document whenever its content
changes (and once on subscribe); delivery goes through one FIFO queue so a
callback that writes never re-enters another callback.

Two stores are provided:
    MemoryDocumentStore - in-process, for tests and a single terminal
    FileDocumentStore   - one JSON file per document under a directory,
                          polled on the timer queue so several terminals
                          can share a match
"""

import copy
import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from cuescore.core.hasher import canonical_json
from cuescore.core.score_state import utc_now_iso
from cuescore.sync.timers import TimerHandle, TimerQueue

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    def __repr__(self):
        return "SERVER_TIMESTAMP"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


# Placeholder replaced by the store's clock when a document is written.
SERVER_TIMESTAMP = _ServerTimestamp()


class DocumentStoreError(Exception):
    """A transport failure: read, write or subscribe did not go through."""


class DocumentNotFound(DocumentStoreError, LookupError):
    pass


class DocumentRef(NamedTuple):
    collection: str
    id: str

    def __str__(self):
        return f"{self.collection}/{self.id}"


class Subscription:
    """A live subscription. `unsubscribe()` takes effect immediately."""

    def __init__(self, store: "DocumentStore", callback: Callable,
                 ref: Optional[DocumentRef] = None, collection: str = "",
                 filters: Optional[dict] = None):
        self.store = store
        self.callback = callback
        self.ref = ref
        self.collection = ref.collection if ref else collection
        self.filters = filters or {}
        self.active = True
        self.seen: Dict[str, str] = {}

    def unsubscribe(self):
        if self.active:
            self.active = False
            self.store._remove_watch(self)


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


def _set_path(doc: dict, path: str, value):
    """Set a dotted path such as "rounds.round2" inside `doc`."""
    *parents, leaf = path.split(".")
    node = doc
    for key in parents:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[leaf] = value


def _matches(doc: dict, filters: dict) -> bool:
    return all(doc.get(key) == value for key, value in filters.items())


class DocumentStore(ABC):
    """Abstract document store with subscribe/update primitives."""

    def __init__(self, now: Optional[Callable[[], str]] = None):
        self._now = now or utc_now_iso
        self._watches: List[Subscription] = []
        self._queue = deque()
        self._delivering = False

    # --- Storage primitives ---

    @abstractmethod
    def _read(self, ref: DocumentRef) -> Optional[dict]:
        """Return a private copy of the document, or None."""

    @abstractmethod
    def _write(self, ref: DocumentRef, doc: dict):
        pass

    @abstractmethod
    def _remove(self, ref: DocumentRef):
        pass

    @abstractmethod
    def _list(self, collection: str) -> List[str]:
        """Document ids in `collection`."""

    # --- Public operations ---

    def add(self, collection: str, data: dict) -> DocumentRef:
        """Create a document with a generated id."""
        ref = DocumentRef(collection, new_document_id())
        self.set(ref, data)
        return ref

    def set(self, ref: DocumentRef, data: dict):
        """Create or overwrite a document."""
        self._write(ref, self._resolve(data))
        logger.debug("set %s", ref)
        self._changed(ref.collection)

    def update(self, ref: DocumentRef, data: dict):
        """Merge top-level fields; dotted keys address nested mappings."""
        doc = self._read(ref)
        if doc is None:
            raise DocumentNotFound(f"no document {ref}")
        for path, value in self._resolve(data).items():
            _set_path(doc, path, value)
        self._write(ref, doc)
        logger.debug("update %s (%s)", ref, ", ".join(sorted(data)))
        self._changed(ref.collection)

    def get(self, ref: DocumentRef) -> Optional[dict]:
        return self._read(ref)

    def delete(self, ref: DocumentRef):
        self._remove(ref)
        self._changed(ref.collection)

    def query(self, collection: str, **equals) -> List[Tuple[DocumentRef, dict]]:
        """Documents whose top-level fields equal the given values."""
        results = []
        for doc_id in sorted(self._list(collection)):
            doc = self._read(DocumentRef(collection, doc_id))
            if doc is not None and _matches(doc, equals):
                results.append((DocumentRef(collection, doc_id), doc))
        return results

    def subscribe(self, ref: DocumentRef, callback: Callable[[Optional[dict]], None]) -> Subscription:
        """Call `callback(doc)` now and on every change; `None` on delete."""
        watch = Subscription(self, callback, ref=ref)
        self._add_watch(watch)
        return watch

    def subscribe_query(self, collection: str, filters: dict,
                        callback: Callable[[DocumentRef, Optional[dict]], None]) -> Subscription:
        """Call `callback(ref, doc)` for every matching document that changes."""
        watch = Subscription(self, callback, collection=collection, filters=filters)
        self._add_watch(watch)
        return watch

    def close(self):
        for watch in list(self._watches):
            watch.unsubscribe()

    # --- Change detection and delivery ---

    def _resolve(self, data: dict) -> dict:
        stamp = None
        resolved = {}
        for key, value in copy.deepcopy(data).items():
            if value is SERVER_TIMESTAMP:
                stamp = stamp or self._now()
                value = stamp
            resolved[key] = value
        return resolved

    def _add_watch(self, watch: Subscription):
        self._watches.append(watch)
        self._refresh(watch)

    def _remove_watch(self, watch: Subscription):
        if watch in self._watches:
            self._watches.remove(watch)

    def _changed(self, collection: str):
        for watch in list(self._watches):
            if watch.collection == collection:
                self._refresh(watch)

    def _refresh(self, watch: Subscription):
        if not watch.active:
            return
        current = {}
        if watch.ref is not None:
            doc = self._read(watch.ref)
            if doc is not None:
                current[watch.ref.id] = doc
        else:
            for doc_id in self._list(watch.collection):
                doc = self._read(DocumentRef(watch.collection, doc_id))
                if doc is not None and _matches(doc, watch.filters):
                    current[doc_id] = doc

        for doc_id, doc in current.items():
            text = canonical_json(doc)
            if watch.seen.get(doc_id) != text:
                watch.seen[doc_id] = text
                self._deliver(watch, DocumentRef(watch.collection, doc_id), doc)
        for doc_id in [d for d in watch.seen if d not in current]:
            del watch.seen[doc_id]
            self._deliver(watch, DocumentRef(watch.collection, doc_id), None)

    def _deliver(self, watch: Subscription, ref: DocumentRef, doc: Optional[dict]):
        self._queue.append((watch, ref, doc))
        if self._delivering:
            return
        self._delivering = True
        try:
            while self._queue:
                target, target_ref, payload = self._queue.popleft()
                # Unsubscribed while queued: drop.
                if not target.active:
                    continue
                # The write itself has succeeded; a failing listener is its own problem.
                try:
                    if target.ref is not None:
                        target.callback(payload)
                    else:
                        target.callback(target_ref, payload)
                except Exception:
                    logger.exception("Listener on %s failed", target_ref)
        finally:
            self._delivering = False


class MemoryDocumentStore(DocumentStore):
    """In-process store; every write is delivered synchronously."""

    def __init__(self, now: Optional[Callable[[], str]] = None):
        super().__init__(now)
        self._docs: Dict[str, Dict[str, dict]] = {}

    def _read(self, ref):
        doc = self._docs.get(ref.collection, {}).get(ref.id)
        return copy.deepcopy(doc) if doc is not None else None

    def _write(self, ref, doc):
        self._docs.setdefault(ref.collection, {})[ref.id] = copy.deepcopy(doc)

    def _remove(self, ref):
        self._docs.get(ref.collection, {}).pop(ref.id, None)

    def _list(self, collection):
        return list(self._docs.get(collection, {}))


class FileDocumentStore(DocumentStore):
    """Documents stored as `<root>/<collection>/<id>.json`.

    Writes from this process are delivered at once; writes from other
    processes are picked up by polling every `poll_interval` seconds.
    """

    def __init__(self, root: str, timers: TimerQueue, poll_interval: float = 0.5,
                 now: Optional[Callable[[], str]] = None):
        super().__init__(now)
        self.root = root
        self.timers = timers
        self.poll_interval = poll_interval
        self._poll_handle: Optional[TimerHandle] = None
        os.makedirs(root, exist_ok=True)

    def _path(self, ref: DocumentRef) -> str:
        for part in (ref.collection, ref.id):
            if not part or os.sep in part or part.startswith("."):
                raise ValueError(f"invalid document path component {part!r}")
        return os.path.join(self.root, ref.collection, f"{ref.id}.json")

    def _read(self, ref):
        path = self._path(ref)
        try:
            with open(path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Unreadable document %s: %s", path, e)
            return None
        return doc if isinstance(doc, dict) else None

    def _write(self, ref, doc):
        path = self._path(ref)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        tmp = f"{path}.{uuid.uuid4().hex[:8]}.tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(doc, f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            raise DocumentStoreError(f"cannot write {path}: {e}") from e

    def _remove(self, ref):
        try:
            os.remove(self._path(ref))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise DocumentStoreError(f"cannot delete {ref}: {e}") from e

    def _list(self, collection):
        directory = os.path.join(self.root, collection)
        try:
            names = os.listdir(directory)
        except FileNotFoundError:
            return []
        return [name[:-5] for name in names if name.endswith(".json")]

    # --- Polling ---

    def _add_watch(self, watch):
        super()._add_watch(watch)
        self._schedule_poll()

    def _remove_watch(self, watch):
        super()._remove_watch(watch)
        if not self._watches and self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None

    def _schedule_poll(self):
        if self._poll_handle is None and self._watches:
            self._poll_handle = self.timers.call_later(self.poll_interval, self._poll)

    def _poll(self):
        self._poll_handle = None
        self.poll()
        self._schedule_poll()

    def poll(self):
        """Check every subscription for changes made by other processes."""
        for watch in list(self._watches):
            self._refresh(watch)
