"""Unit tests for the static evaluator."""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from xiangqi import Board, Move, Side, PieceType, Piece, RuleEngine, Evaluator
from xiangqi.evaluation import POSITION_TABLES, position_value


def evaluator():
    return Evaluator(RuleEngine())


class TestPositionTables:
    """Test piece-square tables."""

    def test_shapes(self):
        for side in (Side.RED, Side.BLACK):
            for table in POSITION_TABLES[side].values():
                assert table.shape == (10, 9)

    def test_black_is_rank_flipped(self):
        for piece_type in PieceType:
            assert position_value(piece_type, Side.BLACK, 2, 3) == position_value(piece_type, Side.RED, 2, 6)

    def test_soldier_rewarded_for_advancing(self):
        assert position_value(PieceType.SOLDIER, Side.RED, 4, 2) > position_value(PieceType.SOLDIER, Side.RED, 4, 6)
        assert position_value(PieceType.SOLDIER, Side.BLACK, 4, 7) > position_value(PieceType.SOLDIER, Side.BLACK, 4, 3)


class TestEvaluate:
    """Test Evaluator.evaluate."""

    def test_start_position_balanced(self):
        board = Board()
        ev = evaluator()

        assert ev.evaluate(board, Side.RED) == 0
        assert ev.evaluate(board, Side.BLACK) == 0

    def test_zero_sum(self):
        board = Board()
        board.remove_piece(0, 0)
        ev = evaluator()

        assert ev.evaluate(board, Side.RED) == -ev.evaluate(board, Side.BLACK)

    def test_material_advantage(self):
        board = Board()
        board.remove_piece(0, 0)  # black chariot

        assert evaluator().evaluate(board, Side.RED) > 400

    def test_check_bonus(self):
        ev = evaluator()
        quiet = Board(custom_setup={"d9": "bK", "e0": "rK", "a4": "rR"})
        check = Board(custom_setup={"d9": "bK", "e0": "rK", "d4": "rR"})

        assert ev.evaluate(check, Side.RED) > ev.evaluate(quiet, Side.RED)

    def test_crossed_soldier_bonus(self):
        ev = evaluator()
        home = Board(custom_setup={"e9": "bK", "d0": "rK", "a3": "rP"})
        crossed = Board(custom_setup={"e9": "bK", "d0": "rK", "a6": "rP"})

        assert ev.evaluate(crossed, Side.RED) - ev.evaluate(home, Side.RED) >= 15 + 10 * 1

    def test_king_safety(self):
        ev = evaluator()
        guarded = Board(custom_setup={"e0": "rK", "d0": "rA", "f0": "rA", "d9": "bK"})

        assert ev._king_safety(guarded, Side.RED) == 10
        assert ev._king_safety(guarded, Side.BLACK) == 0

    def test_mobility_capped(self):
        ev = evaluator()
        board = Board(custom_setup={"e0": "rK", "d9": "bK", "a5": "rR"})
        chariot = board.get_piece(0, 4)

        # 17 open squares at factor 3 would be 51
        assert ev._mobility(chariot, board) == ev.config.mobility_max

    def test_hemmed_in_piece_has_zero_mobility(self):
        board = Board()
        elephant = board.get_piece(2, 9)
        board.place_piece(Piece("r-soldier-x", PieceType.SOLDIER, Side.RED, 1, 8))
        board.place_piece(Piece("r-soldier-y", PieceType.SOLDIER, Side.RED, 3, 8))

        assert evaluator()._mobility(elephant, board) == 0


class TestPositionDelta:
    """Test positional ordering delta."""

    def test_delta_matches_tables(self):
        board = Board()
        piece = board.get_piece(4, 6)
        move = Move(4, 6, 4, 5)

        expected = position_value(PieceType.SOLDIER, Side.RED, 4, 5) - position_value(PieceType.SOLDIER, Side.RED, 4, 6)
        assert evaluator().position_delta(piece, move) == expected

    def test_black_delta_mirrors_red(self):
        board = Board()
        ev = evaluator()
        red = ev.position_delta(board.get_piece(1, 9), Move(1, 9, 2, 7))
        black = ev.position_delta(board.get_piece(1, 0), Move(1, 0, 2, 2))

        assert red == black
