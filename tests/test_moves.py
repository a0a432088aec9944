"""Unit tests for piece-specific move generation."""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from xiangqi import Board, Side, PieceType, Piece, MoveMode, generate_moves, is_valid_coordinate


def moves_at(board, file, rank, mode=MoveMode.FULL):
    return set(generate_moves(board.get_piece(file, rank), board, mode))


class TestAllPieces:
    """Properties every generator must respect."""

    def test_destinations_valid_and_not_own(self):
        """No destination is off the board or on a same-side piece."""
        board = Board()
        for piece in board.pieces():
            for file, rank in generate_moves(piece, board, MoveMode.FULL):
                assert is_valid_coordinate(file, rank)
                target = board.get_piece(file, rank)
                assert target is None or target.side != piece.side


class TestGeneralMoves:
    """Test general movement rules."""

    def test_general_orthogonal_in_palace(self):
        board = Board(custom_setup={"e1": "rK", "d9": "bK", "d5": "bP"})

        assert moves_at(board, 4, 8) == {(3, 8), (5, 8), (4, 7), (4, 9)}

    def test_general_confined_to_palace(self):
        board = Board(custom_setup={"d0": "rK", "f9": "bK"})

        assert moves_at(board, 3, 9) == {(4, 9), (3, 8)}

    def test_full_mode_filters_facing_generals(self):
        """Stepping onto the enemy general's open file is filtered in FULL only."""
        board = Board(custom_setup={"e0": "rK", "d9": "bK"})

        assert (3, 9) not in moves_at(board, 4, 9, MoveMode.FULL)
        assert (3, 9) in moves_at(board, 4, 9, MoveMode.THREAT)

    def test_screened_file_allows_general(self):
        board = Board(custom_setup={"e0": "rK", "d9": "bK", "d5": "bP"})

        assert (3, 9) in moves_at(board, 4, 9, MoveMode.FULL)


class TestAdvisorMoves:
    """Test advisor movement rules."""

    def test_advisor_from_center(self):
        board = Board(custom_setup={"e1": "rA", "d0": "rK", "f9": "bK"})

        assert moves_at(board, 4, 8) == {(3, 7), (5, 7), (5, 9)}

    def test_advisor_from_corner(self):
        board = Board(custom_setup={"d0": "rA", "e0": "rK", "d9": "bK"})

        assert moves_at(board, 3, 9) == {(4, 8)}


class TestElephantMoves:
    """Test elephant movement rules."""

    def test_elephant_from_home(self):
        board = Board()

        assert moves_at(board, 2, 9) == {(0, 7), (4, 7)}

    def test_elephant_eye_blocked(self):
        """Filling the eye removes exactly that destination."""
        board = Board()
        before = moves_at(board, 2, 9)
        board.place_piece(Piece("b-soldier-9", PieceType.SOLDIER, Side.BLACK, 3, 8))

        assert moves_at(board, 2, 9) == before - {(4, 7)}

    def test_elephant_cannot_cross_river(self):
        board = Board(custom_setup={"c4": "rB", "e0": "rK", "d9": "bK"})

        assert moves_at(board, 2, 5) == {(0, 7), (4, 7)}

    def test_black_elephant_stays_home(self):
        board = Board(custom_setup={"c5": "bB", "e0": "rK", "d9": "bK"})

        assert moves_at(board, 2, 4) == {(0, 2), (4, 2)}


class TestHorseMoves:
    """Test horse movement rules."""

    def test_horse_in_open(self):
        board = Board(custom_setup={"e4": "rN", "e0": "rK", "d9": "bK"})

        assert len(moves_at(board, 4, 5)) == 8

    def test_horse_leg_blocked(self):
        """A piece on the leg removes exactly the two jumps through it."""
        board = Board(custom_setup={"e4": "rN", "e0": "rK", "d9": "bK"})
        before = moves_at(board, 4, 5)
        board.place_piece(Piece("r-soldier-4", PieceType.SOLDIER, Side.RED, 4, 4))

        assert moves_at(board, 4, 5) == before - {(3, 3), (5, 3)}

    def test_horse_from_start(self):
        board = Board()

        assert moves_at(board, 1, 9) == {(0, 7), (2, 7)}


class TestChariotMoves:
    """Test chariot movement rules."""

    def test_chariot_slides_and_captures(self):
        board = Board(custom_setup={"a4": "rR", "a7": "bP", "c4": "rP", "e0": "rK", "d9": "bK"})

        moves = moves_at(board, 0, 5)
        assert (0, 2) in moves  # capture
        assert (0, 1) not in moves  # beyond the capture
        assert (1, 5) in moves
        assert (2, 5) not in moves  # own piece
        assert (0, 9) in moves


class TestCannonMoves:
    """Test cannon movement rules."""

    def test_quiet_moves_match_chariot(self):
        """Non-capturing cannon moves equal a chariot's from the same square."""
        board = Board()
        cannon = board.get_piece(7, 7)
        cannon_quiet = {sq for sq in generate_moves(cannon, board) if board.get_piece(*sq) is None}

        board.remove_piece(7, 7)
        chariot = Piece("r-chariot-9", PieceType.CHARIOT, Side.RED, 7, 7)
        board.place_piece(chariot)
        chariot_quiet = {sq for sq in generate_moves(chariot, board) if board.get_piece(*sq) is None}

        assert cannon_quiet == chariot_quiet

    def test_cannon_captures_over_screen(self):
        """From the start the cannon can take the horse over black's cannon on h7."""
        board = Board()

        moves = moves_at(board, 7, 7)
        assert (7, 0) in moves
        assert (7, 3) in moves  # quiet move before the screen
        assert (7, 1) not in moves

    def test_cannon_first_piece_beyond_screen(self):
        board = Board(custom_setup={"e2": "rC", "e4": "rP", "e6": "bP", "e7": "bR", "d0": "rK", "d9": "bK"})

        moves = moves_at(board, 4, 7)
        assert (4, 3) in moves
        assert (4, 2) not in moves
        assert (4, 4) not in moves
        assert (4, 5) not in moves
        assert (4, 6) in moves

    def test_cannon_cannot_capture_own(self):
        board = Board(custom_setup={"e2": "rC", "e4": "rP", "e6": "rR", "d0": "rK", "d9": "bK"})

        assert (4, 3) not in moves_at(board, 4, 7)


class TestSoldierMoves:
    """Test soldier movement rules."""

    def test_soldier_before_river(self):
        board = Board()

        assert moves_at(board, 4, 6) == {(4, 5)}
        assert moves_at(board, 4, 3) == {(4, 4)}

    def test_soldier_after_river(self):
        board = Board(custom_setup={"e5": "rP", "e0": "rK", "d9": "bK"})

        assert moves_at(board, 4, 4) == {(4, 3), (3, 4), (5, 4)}

    def test_black_soldier_after_river(self):
        board = Board(custom_setup={"e4": "bP", "e0": "rK", "d9": "bK"})

        assert moves_at(board, 4, 5) == {(4, 6), (3, 5), (5, 5)}

    def test_soldier_on_last_rank(self):
        """No backward move once the far edge is reached."""
        board = Board(custom_setup={"a9": "rP", "e0": "rK", "d9": "bK"})

        assert moves_at(board, 0, 0) == {(1, 0)}
