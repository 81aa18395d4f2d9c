"""Tests for document_store.py - memory and file document stores"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import itertools

import pytest

from cuescore.sync.document_store import (
    SERVER_TIMESTAMP, DocumentNotFound, DocumentRef, FileDocumentStore, MemoryDocumentStore,
)
from cuescore.sync.timers import ManualClock, TimerQueue


def stamps():
    counter = itertools.count(1)
    return lambda: f"2024-05-01T12:00:{next(counter):02d}+00:00"


class TestMemoryStore:
    def test_add_and_get(self):
        store = MemoryDocumentStore()
        ref = store.add("games", {"scores": {"1": 0}})
        assert ref.collection == "games"
        assert store.get(ref) == {"scores": {"1": 0}}
        assert str(ref) == f"games/{ref.id}"

    def test_get_returns_copy(self):
        store = MemoryDocumentStore()
        ref = store.add("games", {"scores": {"1": 0}})
        store.get(ref)["scores"]["1"] = 99
        assert store.get(ref)["scores"]["1"] == 0

    def test_missing_document(self):
        store = MemoryDocumentStore()
        assert store.get(DocumentRef("games", "nope")) is None
        with pytest.raises(DocumentNotFound):
            store.update(DocumentRef("games", "nope"), {"status": "ended"})

    def test_update_merges_and_resolves_timestamp(self):
        store = MemoryDocumentStore(now=stamps())
        ref = store.add("games", {"status": "live", "createdAt": SERVER_TIMESTAMP})
        store.update(ref, {"status": "ended", "updatedAt": SERVER_TIMESTAMP})
        doc = store.get(ref)
        assert doc["status"] == "ended"
        assert doc["createdAt"] == "2024-05-01T12:00:01+00:00"
        assert doc["updatedAt"] == "2024-05-01T12:00:02+00:00"

    def test_dotted_update(self):
        store = MemoryDocumentStore()
        ref = store.add("tournaments", {"raceTo": {"round1": 3}})
        store.update(ref, {"raceTo.round2": 5})
        assert store.get(ref)["raceTo"] == {"round1": 3, "round2": 5}

    def test_query(self):
        store = MemoryDocumentStore()
        a = store.add("games", {"joinCode": "1234", "status": "live"})
        store.add("games", {"joinCode": "5678", "status": "live"})
        store.add("normal-games", {"joinCode": "1234"})
        results = store.query("games", joinCode="1234")
        assert [ref for ref, _ in results] == [a]
        assert len(store.query("games", status="live")) == 2

    def test_delete(self):
        store = MemoryDocumentStore()
        ref = store.add("games", {"a": 1})
        store.delete(ref)
        assert store.get(ref) is None


class TestSubscriptions:
    def test_subscribe_delivers_current_and_changes(self):
        store = MemoryDocumentStore()
        ref = store.add("games", {"n": 1})
        seen = []
        store.subscribe(ref, seen.append)
        store.update(ref, {"n": 2})
        assert seen == [{"n": 1}, {"n": 2}]

    def test_identical_write_not_delivered(self):
        store = MemoryDocumentStore()
        ref = store.add("games", {"n": 1})
        seen = []
        store.subscribe(ref, seen.append)
        store.update(ref, {"n": 1})
        assert seen == [{"n": 1}]

    def test_unsubscribe(self):
        store = MemoryDocumentStore()
        ref = store.add("games", {"n": 1})
        seen = []
        watch = store.subscribe(ref, seen.append)
        watch.unsubscribe()
        store.update(ref, {"n": 2})
        assert seen == [{"n": 1}]
        assert not watch.active

    def test_delete_delivers_none(self):
        store = MemoryDocumentStore()
        ref = store.add("games", {"n": 1})
        seen = []
        store.subscribe(ref, seen.append)
        store.delete(ref)
        assert seen == [{"n": 1}, None]

    def test_query_subscription(self):
        store = MemoryDocumentStore()
        seen = []
        store.subscribe_query("tournament-match", {"tournamentId": "t1"},
                              lambda ref, doc: seen.append((ref.id, doc["n"])))
        store.set(DocumentRef("tournament-match", "m1"), {"tournamentId": "t1", "n": 1})
        store.set(DocumentRef("tournament-match", "m2"), {"tournamentId": "t2", "n": 1})
        store.update(DocumentRef("tournament-match", "m1"), {"n": 2})
        assert seen == [("m1", 1), ("m1", 2)]

    def test_writes_inside_callbacks_are_queued(self):
        store = MemoryDocumentStore()
        a = store.add("games", {"n": 0})
        b = store.add("games", {"n": 0})
        calls = []

        def on_a(doc):
            calls.append(("a-start", doc["n"]))
            if doc["n"] == 1:
                store.update(b, {"n": 1})
            calls.append(("a-end", doc["n"]))

        store.subscribe(a, on_a)
        store.subscribe(b, lambda doc: calls.append(("b", doc["n"])))
        calls.clear()
        store.update(a, {"n": 1})
        assert calls == [("a-start", 1), ("a-end", 1), ("b", 1)]

    def test_failing_listener_does_not_fail_the_write(self):
        store = MemoryDocumentStore()
        ref = store.add("games", {"n": 0})
        seen = []

        def broken(doc):
            if doc["n"]:
                raise RuntimeError("listener bug")

        store.subscribe(ref, broken)
        store.subscribe(ref, seen.append)
        store.update(ref, {"n": 1})
        assert store.get(ref) == {"n": 1}
        assert seen == [{"n": 0}, {"n": 1}]

    def test_close_drops_subscriptions(self):
        store = MemoryDocumentStore()
        ref = store.add("games", {"n": 1})
        seen = []
        store.subscribe(ref, seen.append)
        store.close()
        store.update(ref, {"n": 2})
        assert seen == [{"n": 1}]


class TestFileStore:
    def test_round_trip(self, tmp_path):
        timers = TimerQueue(ManualClock())
        store = FileDocumentStore(str(tmp_path), timers)
        ref = store.add("games", {"scores": {"1": 2}, "joinCode": "1234"})
        assert (tmp_path / "games" / f"{ref.id}.json").exists()
        assert store.get(ref) == {"scores": {"1": 2}, "joinCode": "1234"}
        assert store.query("games", joinCode="1234")[0][0] == ref

    def test_other_process_changes_are_polled(self, tmp_path):
        clock = ManualClock()
        timers = TimerQueue(clock)
        writer = FileDocumentStore(str(tmp_path), timers, poll_interval=0.5)
        reader = FileDocumentStore(str(tmp_path), timers, poll_interval=0.5)
        ref = writer.add("games", {"n": 1})
        seen = []
        reader.subscribe(ref, seen.append)
        writer.update(ref, {"n": 2})
        assert seen == [{"n": 1}]
        clock.advance(0.5)
        timers.run_due()
        assert seen == [{"n": 1}, {"n": 2}]

    def test_poll_stops_without_watches(self, tmp_path):
        timers = TimerQueue(ManualClock())
        store = FileDocumentStore(str(tmp_path), timers)
        ref = store.add("games", {"n": 1})
        watch = store.subscribe(ref, lambda doc: None)
        assert timers.pending() == 1
        watch.unsubscribe()
        assert timers.pending() == 0

    def test_corrupt_file_reads_as_missing(self, tmp_path):
        timers = TimerQueue(ManualClock())
        store = FileDocumentStore(str(tmp_path), timers)
        (tmp_path / "games").mkdir()
        (tmp_path / "games" / "broken.json").write_text("{not json", encoding="utf-8")
        assert store.get(DocumentRef("games", "broken")) is None

    def test_rejects_path_traversal(self, tmp_path):
        timers = TimerQueue(ManualClock())
        store = FileDocumentStore(str(tmp_path), timers)
        with pytest.raises(ValueError):
            store.get(DocumentRef("games", "../escape"))
