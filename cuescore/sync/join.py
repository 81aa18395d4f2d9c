"""Short numeric join codes for live documents."""

import logging
import random
from typing import Optional, Sequence, Tuple

from cuescore.engine.config import COLLECTIONS, TOURNAMENT_MATCH_COLLECTION
from cuescore.sync.document_store import DocumentRef, DocumentStore, DocumentStoreError

logger = logging.getLogger(__name__)

JOIN_CODE_MIN = 1000
JOIN_CODE_MAX = 9999

# Every collection whose documents carry a joinCode.
JOINABLE_COLLECTIONS = (
    COLLECTIONS["rotation"],
    COLLECTIONS["race"],
    TOURNAMENT_MATCH_COLLECTION,
)


def normalize_code(code) -> Optional[str]:
    """Return the 4-digit code as a string, or None if it is not one."""
    text = str(code).strip() if code is not None else ""
    if len(text) != 4 or not text.isdigit():
        return None
    if not (JOIN_CODE_MIN <= int(text) <= JOIN_CODE_MAX):
        return None
    return text


def code_in_use(store: DocumentStore, code: str,
                collections: Sequence[str] = JOINABLE_COLLECTIONS) -> bool:
    return any(store.query(collection, joinCode=code) for collection in collections)


def generate_join_code(store: DocumentStore, rng: Optional[random.Random] = None,
                       collections: Sequence[str] = JOINABLE_COLLECTIONS,
                       attempts: int = 200) -> str:
    """Generate a unique, short join code."""
    rng = rng or random
    for _ in range(attempts):
        code = str(rng.randint(JOIN_CODE_MIN, JOIN_CODE_MAX))
        if not code_in_use(store, code, collections):
            return code
    raise DocumentStoreError("no free join code")


def find_by_join_code(store: DocumentStore, code,
                      collections: Sequence[str] = JOINABLE_COLLECTIONS
                      ) -> Optional[Tuple[DocumentRef, dict]]:
    """Look a join code up. A live document wins over an ended one."""
    code = normalize_code(code)
    if code is None:
        return None
    matches = []
    for collection in collections:
        matches.extend(store.query(collection, joinCode=code))
    if not matches:
        logger.info("No document for join code %s", code)
        return None
    live = [m for m in matches if m[1].get("status") != "ended"]
    return (live or matches)[0]
