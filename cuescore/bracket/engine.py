"""Single-elimination bracket: generation and winner advancement.

A match is decided either by an explicit end signal or, when the round
has a race-to threshold, by one side reaching it with the scores unequal.
Deciding and advancing are monotonic: a decided match never changes and
a winner placed into the next round is never removed.
"""

import logging
import random
from typing import List, Optional

from cuescore.bracket.models import (
    BYE, Match, MatchRef, MatchStatus, Side, Tournament, is_player, round_index, round_key,
)
from cuescore.core.errors import BracketError

logger = logging.getLogger(__name__)


def _is_power_of_two(n: int) -> bool:
    return n >= 2 and (n & (n - 1)) == 0


def generate_bracket(players: List[str], size: int, rng: Optional[random.Random] = None,
                     name: str = "", date: str = "", format: str = "single") -> Tournament:
    """Build a shuffled bracket of `size` slots, padding with byes."""
    names = [p.strip() for p in players if isinstance(p, str) and p.strip()]
    if isinstance(size, bool) or not isinstance(size, int) or not _is_power_of_two(size):
        raise BracketError(f"bracket size must be a power of two, got {size!r}")
    if len(names) < 2:
        raise BracketError("a bracket needs at least two players")
    if len(names) > size:
        raise BracketError(f"{len(names)} players do not fit a bracket of {size}")

    entries = names + [BYE] * (size - len(names))
    (rng or random).shuffle(entries)

    rounds = [[Match(p1=entries[i], p2=entries[i + 1], status=MatchStatus.LIVE)
               for i in range(0, size, 2)]]
    matches = size // 4
    while matches >= 1:
        rounds.append([Match() for _ in range(matches)])
        matches //= 2

    tournament = Tournament(players=names, rounds=rounds, name=name, date=date,
                            size=size, format=format)
    for i in range(len(rounds[0])):
        resolve_bye(tournament, MatchRef(round_key(0), i))
    return tournament


def _decide(match: Match, winner: Side):
    match.winner = winner
    match.status = MatchStatus.ENDED


def resolve_bye(tournament: Tournament, ref: MatchRef) -> bool:
    """Decide a filled match that has a bye on one side; the real player wins."""
    match = tournament.match(ref)
    if match.decided or not match.filled or not match.has_bye:
        return False
    winner = Side.P2 if match.p1 == BYE and match.p2 != BYE else Side.P1
    _decide(match, winner)
    logger.info("%s match %d: %s advances on a bye", ref.round_key, ref.match_index,
                match.winner_name)
    advance(tournament, ref.round_key, ref.match_index)
    return True


def record_result(tournament: Tournament, ref: MatchRef, score1: int, score2: int,
                  explicit_end: bool = False, p1: Optional[str] = None,
                  p2: Optional[str] = None) -> bool:
    """Record scores for a match. Returns True only if this call decided it."""
    match = tournament.match(ref)
    if match.decided:
        return False

    match.score1 = int(score1)
    match.score2 = int(score2)
    if p1:
        match.p1 = p1
    if p2:
        match.p2 = p2

    race = tournament.race_to.get(ref.round_key)
    reached = (race is not None and race > 0
               and (match.score1 >= race or match.score2 >= race)
               and match.score1 != match.score2)
    if not explicit_end and not reached:
        return False
    if not is_player(match.p1) and not is_player(match.p2):
        return False

    # A tie can only end explicitly; it goes to p2.
    _decide(match, Side.P1 if match.score1 > match.score2 else Side.P2)
    logger.info("%s match %d decided %d-%d, winner %s", ref.round_key, ref.match_index,
                match.score1, match.score2, match.winner_name)
    return True


def advance(tournament: Tournament, key: str, match_index: int) -> Optional[MatchRef]:
    """Place the winner of a decided match into the next round.

    Returns the target match, or None for an undecided match or the final.
    """
    match = tournament.match(MatchRef(key, match_index))
    if not match.decided:
        return None
    next_idx = round_index(key) + 1
    if next_idx >= len(tournament.rounds):
        return None

    target_ref = MatchRef(round_key(next_idx), match_index // 2)
    target = tournament.match(target_ref)
    if target.decided:
        return target_ref

    side = "p1" if match_index % 2 == 0 else "p2"
    setattr(target, side, match.winner_name)
    target.status = MatchStatus.LIVE if target.filled else MatchStatus.PENDING
    resolve_bye(tournament, target_ref)
    return target_ref


def champion(tournament: Tournament) -> Optional[str]:
    """Winner of the final, once it has ended."""
    if not tournament.rounds or not tournament.rounds[-1]:
        return None
    final = tournament.rounds[-1][0]
    if final.status != MatchStatus.ENDED or not is_player(final.winner_name):
        return None
    return final.winner_name
