"""Turn-order rotation after a winning shot.

Each table maps the winner's position in the turn order (before the
action) to the positions that make up the new order. The winner always
moves to the front; for three players the other two swap so that the
player paying for the next win alternates.
"""

from typing import Dict, List, Sequence

from cuescore.core.errors import InvalidActor, InvalidInput

# winner index -> new order as indices into the old order
ROTATION_3P: Dict[int, List[int]] = {
    0: [0, 2, 1],
    1: [1, 0, 2],
    2: [2, 1, 0],
}

ROTATION_4P: Dict[int, List[int]] = {
    0: [0, 3, 1, 2],
    1: [1, 0, 2, 3],
    2: [2, 1, 3, 0],
    3: [3, 2, 0, 1],
}

ROTATION_TABLES: Dict[int, Dict[int, List[int]]] = {
    3: ROTATION_3P,
    4: ROTATION_4P,
}


def rotate_after_win(order: Sequence[int], winner: int) -> List[int]:
    """Return the turn order that follows a win by `winner`."""
    table = ROTATION_TABLES.get(len(order))
    if table is None:
        raise InvalidInput(f"no rotation table for {len(order)} players")
    if winner not in order:
        raise InvalidActor(f"player {winner} is not in the turn order")
    idx = list(order).index(winner)
    return [order[i] for i in table[idx]]
