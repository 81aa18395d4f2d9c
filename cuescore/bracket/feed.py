"""Tournament feedback loop.

The tournament lives in one document of the `tournaments` collection and
each playable match has a race scoreboard in `tournament-match`, linked
back by `{tournamentId, roundKey, matchIndex}`. The feed listens to those
scoreboards, records results into the bracket, advances winners, opens
scoreboards for matches that become playable and writes the tournament
document back through a SyncChannel.
"""

import logging
import random
from typing import List, Optional

from cuescore.bracket.engine import advance, champion, generate_bracket, record_result
from cuescore.bracket.models import (
    MatchRef, MatchStatus, Tournament, is_player, round_index, round_key,
)
from cuescore.core.errors import BracketError, InvalidInput
from cuescore.engine.config import (
    TOURNAMENT_COLLECTION, TOURNAMENT_MATCH_COLLECTION, MatchConfig, SyncConfig,
)
from cuescore.engine.event import EventBus, EventType, GameEvent
from cuescore.engine.projection import full_projection
from cuescore.engine.scoreboard import ScoreStateMachine
from cuescore.sync.channel import METADATA_FIELDS, SyncBinding, SyncChannel
from cuescore.sync.document_store import (
    SERVER_TIMESTAMP, DocumentRef, DocumentStore, Subscription,
)
from cuescore.sync.join import generate_join_code
from cuescore.sync.timers import TimerQueue

logger = logging.getLogger(__name__)

NOTICE_COLLECTION = "tournament-notices"


class TournamentBinding(SyncBinding):
    collection = TOURNAMENT_COLLECTION

    def __init__(self, feed: "TournamentFeed"):
        self.feed = feed

    def snapshot(self) -> dict:
        return self.feed.tournament.to_document()

    def minimal_projection(self, doc: dict) -> dict:
        # Tournament status is content: ending it must reach every viewer.
        projected = Tournament.from_document(doc).to_document()
        return {k: v for k, v in projected.items()
                if k not in METADATA_FIELDS or k == "status"}

    def apply_snapshot(self, doc: dict):
        self.feed.tournament = Tournament.from_document(doc)
        self.feed._emit(EventType.BRACKET_UPDATED, remote=True)


def _score(scores, side: int) -> int:
    if not isinstance(scores, dict):
        return 0
    value = scores.get(str(side), scores.get(side, 0))
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class TournamentFeed:
    """Keeps a tournament document in step with its match scoreboards."""

    def __init__(self, store: DocumentStore, client_id: str, timers: TimerQueue,
                 sync_config: Optional[SyncConfig] = None,
                 event_bus: Optional[EventBus] = None):
        self.store = store
        self.client_id = client_id
        self.timers = timers
        self.sync_config = sync_config or SyncConfig()
        self.event_bus = event_bus or EventBus()

        self.tournament: Optional[Tournament] = None
        self.tournament_id: Optional[str] = None
        self.channel: Optional[SyncChannel] = None
        self._matches: Optional[Subscription] = None

    @property
    def ref(self) -> Optional[DocumentRef]:
        if self.tournament_id is None:
            return None
        return DocumentRef(TOURNAMENT_COLLECTION, self.tournament_id)

    # --- Lifecycle ---

    def create(self, players: List[str], size: int, name: str = "", date: str = "",
               format: str = "single", rng: Optional[random.Random] = None) -> str:
        """Generate a bracket, publish it and start following it."""
        tournament = generate_bracket(players, size, rng=rng, name=name, date=date,
                                      format=format)
        doc = tournament.to_document()
        doc.update({
            "writerId": self.client_id,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        })
        ref = self.store.add(TOURNAMENT_COLLECTION, doc)
        logger.info("Tournament %s created: %d players, bracket of %d",
                    ref.id, len(tournament.players), size)
        self.attach(ref.id)
        return ref.id

    def attach(self, tournament_id: str) -> bool:
        """Follow an existing tournament."""
        self.detach()
        ref = DocumentRef(TOURNAMENT_COLLECTION, tournament_id)
        doc = self.store.get(ref)
        if doc is None:
            logger.warning("No tournament %s", tournament_id)
            return False

        self.tournament_id = tournament_id
        self.tournament = Tournament.from_document(doc)
        self.channel = SyncChannel(self.store, TournamentBinding(self), self.client_id,
                                   self.timers, self.sync_config, self.event_bus)
        if not self.channel.attach(ref):
            self.channel = None
            self.tournament_id = None
            self.tournament = None
            return False
        self._matches = self.store.subscribe_query(
            TOURNAMENT_MATCH_COLLECTION, {"tournamentId": tournament_id}, self._on_match_doc)
        self._open_scoreboards()
        return True

    def detach(self):
        if self._matches is not None:
            self._matches.unsubscribe()
            self._matches = None
        if self.channel is not None:
            self.channel.flush()
            self.channel.detach()
            self.channel = None

    # --- Bracket edits ---

    def set_race_to(self, key: str, value) -> None:
        """Set (or clear with None) the race-to threshold of a round."""
        tournament = self._require()
        key = round_key(round_index(key))
        tournament.round(key)
        if value is None or value == "":
            tournament.race_to.pop(key, None)
        else:
            try:
                race = int(value)
            except (TypeError, ValueError):
                raise InvalidInput(f"race-to must be a number, got {value!r}") from None
            if isinstance(value, bool) or race < 1:
                raise InvalidInput(f"race-to must be at least 1, got {value!r}")
            tournament.race_to[key] = race
            # Matches already past the new threshold are decided now.
            for i, match in enumerate(tournament.round(key)):
                ref = MatchRef(key, i)
                if record_result(tournament, ref, match.score1, match.score2):
                    self._on_decided(ref)
        self._changed()

    def end_tournament(self):
        """End the tournament and every scoreboard still live."""
        tournament = self._require()
        tournament.status = "ended"
        self._changed()
        if self.channel is not None:
            self.channel.flush()
        for ref, _ in self.store.query(TOURNAMENT_MATCH_COLLECTION,
                                       tournamentId=self.tournament_id, status="live"):
            try:
                self.store.update(ref, {"status": "ended", "updatedAt": SERVER_TIMESTAMP})
            except Exception as e:
                logger.warning("Could not end scoreboard %s: %s", ref, e)
                self._emit(EventType.SYNC_ERROR, ref=ref, stage="end", error=str(e))
        logger.info("Tournament %s ended", self.tournament_id)

    def post_notice(self, message: str) -> DocumentRef:
        self._require()
        message = (message or "").strip()
        if not message:
            raise InvalidInput("notice is empty")
        return self.store.add(NOTICE_COLLECTION, {
            "tournamentId": self.tournament_id,
            "message": message,
            "createdAt": SERVER_TIMESTAMP,
        })

    def notices(self) -> List[dict]:
        """Notices of this tournament, newest first."""
        if self.tournament_id is None:
            return []
        docs = [doc for _, doc in self.store.query(NOTICE_COLLECTION,
                                                    tournamentId=self.tournament_id)]
        return sorted(docs, key=lambda d: str(d.get("createdAt") or ""), reverse=True)

    # --- Match feedback ---

    def _on_match_doc(self, ref: DocumentRef, doc: Optional[dict]):
        if doc is None or self.tournament is None:
            return
        key = doc.get("roundKey")
        index = doc.get("matchIndex")
        players = doc.get("players") if isinstance(doc.get("players"), dict) else {}
        scores = doc.get("scores")
        try:
            match = self.tournament.match(MatchRef(key, index))
        except BracketError as e:
            logger.warning("Scoreboard %s points to no match: %s", ref, e)
            return
        if match.decided:
            return

        before = (match.score1, match.score2)
        mref = MatchRef(key, index)
        decided = record_result(
            self.tournament, mref, _score(scores, 1), _score(scores, 2),
            explicit_end=doc.get("status") == "ended",
            p1=players.get("1"), p2=players.get("2"))
        if decided:
            self._on_decided(mref)
        if decided or before != (match.score1, match.score2):
            self._changed()

    def _on_decided(self, ref: MatchRef):
        match = self.tournament.match(ref)
        self._emit(EventType.MATCH_DECIDED, ref=ref, winner=match.winner_name,
                   score1=match.score1, score2=match.score2)
        advance(self.tournament, ref.round_key, ref.match_index)
        winner = champion(self.tournament)
        if winner is not None:
            logger.info("Tournament %s champion: %s", self.tournament_id, winner)
            self._emit(EventType.TOURNAMENT_CHAMPION, player=winner)
        self._open_scoreboards()

    def _open_scoreboards(self):
        """Create the race scoreboard of every playable match that lacks one."""
        tournament = self.tournament
        if tournament.status == "ended":
            return
        for ref in tournament.refs():
            match = tournament.match(ref)
            if (match.status != MatchStatus.LIVE or match.decided
                    or match.scoreboard_id or not (is_player(match.p1) and is_player(match.p2))):
                continue
            try:
                existing = self.store.query(TOURNAMENT_MATCH_COLLECTION,
                                            tournamentId=self.tournament_id,
                                            roundKey=ref.round_key,
                                            matchIndex=ref.match_index)
                if existing:
                    sb_ref, sb_doc = existing[0]
                    code = sb_doc.get("joinCode")
                else:
                    sb_ref, code = self._create_scoreboard(ref, match)
            except Exception as e:
                logger.warning("Could not open scoreboard for %s: %s", ref, e)
                self._emit(EventType.SYNC_ERROR, ref=ref, stage="scoreboard", error=str(e))
                continue
            match.scoreboard_id = sb_ref.id
            match.join_code = code
            self._changed()

    def _create_scoreboard(self, ref: MatchRef, match):
        machine = ScoreStateMachine(MatchConfig.race())
        machine.rename_player(1, match.p1)
        machine.rename_player(2, match.p2)
        doc = full_projection(machine.state)
        code = generate_join_code(self.store)
        doc.update({
            "title": "Tournament Match",
            "status": "live",
            "joinCode": code,
            "tournamentId": self.tournament_id,
            "roundKey": ref.round_key,
            "matchIndex": ref.match_index,
            "writerId": self.client_id,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        })
        sb_ref = self.store.add(TOURNAMENT_MATCH_COLLECTION, doc)
        logger.info("Scoreboard %s (code %s) opened for %s match %d",
                    sb_ref.id, code, ref.round_key, ref.match_index)
        return sb_ref, code

    # --- Helpers ---

    def _require(self) -> Tournament:
        if self.tournament is None:
            raise InvalidInput("no tournament attached")
        return self.tournament

    def _changed(self):
        self._emit(EventType.BRACKET_UPDATED, remote=False)
        if self.channel is not None:
            self.channel.notify_local_change()

    def _emit(self, event_type: EventType, **data):
        self.event_bus.emit(GameEvent(event_type, data))
