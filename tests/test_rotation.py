"""Tests for rotation.py - turn order after a win"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from itertools import permutations

import pytest

from cuescore.core.errors import InvalidActor, InvalidInput
from cuescore.rules.rotation import ROTATION_TABLES, rotate_after_win


class TestThreePlayers:
    def test_table(self):
        assert rotate_after_win([1, 2, 3], 1) == [1, 3, 2]
        assert rotate_after_win([1, 2, 3], 2) == [2, 1, 3]
        assert rotate_after_win([1, 2, 3], 3) == [3, 2, 1]

    def test_uses_positions_not_ids(self):
        assert rotate_after_win([3, 1, 2], 3) == [3, 2, 1]
        assert rotate_after_win([3, 1, 2], 2) == [2, 1, 3]


class TestFourPlayers:
    def test_table(self):
        order = [1, 2, 3, 4]
        assert rotate_after_win(order, 1) == [1, 4, 2, 3]
        assert rotate_after_win(order, 2) == [2, 1, 3, 4]
        assert rotate_after_win(order, 3) == [3, 2, 4, 1]
        assert rotate_after_win(order, 4) == [4, 3, 1, 2]


class TestRotationProperties:
    @pytest.mark.parametrize("count", [3, 4])
    def test_winner_first_and_permutation(self, count):
        for order in permutations(range(1, count + 1)):
            for winner in order:
                result = rotate_after_win(list(order), winner)
                assert result[0] == winner
                assert sorted(result) == sorted(order)

    def test_tables_cover_every_position(self):
        for count, table in ROTATION_TABLES.items():
            assert sorted(table) == list(range(count))
            for idx, new_order in table.items():
                assert new_order[0] == idx
                assert sorted(new_order) == list(range(count))

    def test_unknown_winner(self):
        with pytest.raises(InvalidActor):
            rotate_after_win([1, 2, 3], 4)

    def test_no_table_for_two_players(self):
        with pytest.raises(InvalidInput):
            rotate_after_win([1, 2], 1)
