"""Pseudo-legal move generation for each Xiangqi piece type.

Generators return destination coordinates only. Whether a move leaves the
mover's own general in check is decided by the rule engine.
"""

from enum import Enum
from typing import List, Tuple

from .board import (
    Board,
    FILES,
    RANKS,
    Piece,
    PieceType,
    Side,
    is_in_palace,
    is_own_side,
    is_valid_coordinate,
)

Coord = Tuple[int, int]

ORTHOGONAL = [(0, 1), (0, -1), (1, 0), (-1, 0)]
DIAGONAL = [(1, 1), (1, -1), (-1, 1), (-1, -1)]
# (file delta, rank delta) of the jump, paired with the leg square offset
HORSE_JUMPS = [
    ((1, 2), (0, 1)),
    ((-1, 2), (0, 1)),
    ((1, -2), (0, -1)),
    ((-1, -2), (0, -1)),
    ((2, 1), (1, 0)),
    ((2, -1), (1, 0)),
    ((-2, 1), (-1, 0)),
    ((-2, -1), (-1, 0)),
]


class MoveMode(Enum):
    """FULL filters general moves onto an open file facing the enemy
    general. THREAT skips that filter and is what attack detection uses."""

    FULL = "full"
    THREAT = "threat"


def generate_moves(piece: Piece, board: Board, mode: MoveMode = MoveMode.FULL) -> List[Coord]:
    """Generate destinations for ``piece`` on ``board``."""
    generator = _GENERATORS[piece.piece_type]
    if piece.piece_type is PieceType.GENERAL:
        return generator(piece, board, mode)
    return generator(piece, board)


def _can_land(board: Board, piece: Piece, file: int, rank: int) -> bool:
    if not is_valid_coordinate(file, rank):
        return False
    target = board.grid[rank][file]
    return target is None or target.side is not piece.side


def generals_face_after(board: Board, side: Side, file: int, rank: int) -> bool:
    """Would ``side``'s general standing on (file, rank) see the enemy general?

    Only the general itself is assumed to have moved; every other cell is
    read from the board as it is.
    """
    enemy = board.find_general(side.opponent())
    if enemy is None or enemy[0] != file:
        return False
    low, high = sorted((rank, enemy[1]))
    for between in range(low + 1, high):
        occupant = board.grid[between][file]
        # The moving general's origin may lie between; it will be vacated
        if occupant is not None and not (
            occupant.piece_type is PieceType.GENERAL and occupant.side is side
        ):
            return False
    return True


def _general_moves(piece: Piece, board: Board, mode: MoveMode) -> List[Coord]:
    moves = []
    for df, dr in ORTHOGONAL:
        to_file, to_rank = piece.file + df, piece.rank + dr
        if not is_in_palace(to_file, to_rank, piece.side):
            continue
        if not _can_land(board, piece, to_file, to_rank):
            continue
        if mode is MoveMode.FULL and generals_face_after(board, piece.side, to_file, to_rank):
            continue
        moves.append((to_file, to_rank))
    return moves


def _advisor_moves(piece: Piece, board: Board) -> List[Coord]:
    moves = []
    for df, dr in DIAGONAL:
        to_file, to_rank = piece.file + df, piece.rank + dr
        if is_in_palace(to_file, to_rank, piece.side) and _can_land(board, piece, to_file, to_rank):
            moves.append((to_file, to_rank))
    return moves


def _elephant_moves(piece: Piece, board: Board) -> List[Coord]:
    """Two points diagonally; cannot cross the river or jump a filled eye."""
    moves = []
    for df, dr in DIAGONAL:
        to_file, to_rank = piece.file + 2 * df, piece.rank + 2 * dr
        if not is_valid_coordinate(to_file, to_rank) or not is_own_side(to_rank, piece.side):
            continue
        if board.grid[piece.rank + dr][piece.file + df] is not None:
            continue
        if _can_land(board, piece, to_file, to_rank):
            moves.append((to_file, to_rank))
    return moves


def _horse_moves(piece: Piece, board: Board) -> List[Coord]:
    moves = []
    for (df, dr), (leg_df, leg_dr) in HORSE_JUMPS:
        to_file, to_rank = piece.file + df, piece.rank + dr
        if not is_valid_coordinate(to_file, to_rank):
            continue
        # Hobbled when the orthogonal neighbour along the long leg is occupied
        if board.grid[piece.rank + leg_dr][piece.file + leg_df] is not None:
            continue
        if _can_land(board, piece, to_file, to_rank):
            moves.append((to_file, to_rank))
    return moves


def _chariot_moves(piece: Piece, board: Board) -> List[Coord]:
    moves = []
    for df, dr in ORTHOGONAL:
        for dist in range(1, max(FILES, RANKS)):
            to_file, to_rank = piece.file + df * dist, piece.rank + dr * dist
            if not is_valid_coordinate(to_file, to_rank):
                break
            target = board.grid[to_rank][to_file]
            if target is None:
                moves.append((to_file, to_rank))
                continue
            if target.side is not piece.side:
                moves.append((to_file, to_rank))
            break
    return moves


def _cannon_moves(piece: Piece, board: Board) -> List[Coord]:
    """Slides like a chariot, but captures only over exactly one screen."""
    moves = []
    for df, dr in ORTHOGONAL:
        screen_found = False
        for dist in range(1, max(FILES, RANKS)):
            to_file, to_rank = piece.file + df * dist, piece.rank + dr * dist
            if not is_valid_coordinate(to_file, to_rank):
                break
            target = board.grid[to_rank][to_file]
            if not screen_found:
                if target is None:
                    moves.append((to_file, to_rank))
                else:
                    # Any piece of either side serves as the screen
                    screen_found = True
                continue
            if target is not None:
                if target.side is not piece.side:
                    moves.append((to_file, to_rank))
                break
    return moves


def _soldier_moves(piece: Piece, board: Board) -> List[Coord]:
    moves = []
    forward = -1 if piece.side is Side.RED else 1
    steps = [(0, forward)]
    if not is_own_side(piece.rank, piece.side):
        steps.extend([(-1, 0), (1, 0)])
    for df, dr in steps:
        to_file, to_rank = piece.file + df, piece.rank + dr
        if _can_land(board, piece, to_file, to_rank):
            moves.append((to_file, to_rank))
    return moves


def is_square_attacked(board: Board, file: int, rank: int, side: Side) -> bool:
    """Could an enemy of ``side`` capture a ``side`` piece standing on (file, rank)?

    Looks outward from the square instead of generating enemy moves. For an
    occupied square this agrees with THREAT generation of every enemy piece.
    """
    enemy = side.opponent()
    grid = board.grid

    for df, dr in ORTHOGONAL:
        screened = False
        to_file, to_rank = file + df, rank + dr
        while is_valid_coordinate(to_file, to_rank):
            piece = grid[to_rank][to_file]
            if piece is not None:
                if screened:
                    if piece.side is enemy and piece.piece_type is PieceType.CANNON:
                        return True
                    break
                if piece.side is enemy:
                    if piece.piece_type is PieceType.CHARIOT:
                        return True
                    if (
                        piece.piece_type is PieceType.GENERAL
                        and to_file == file + df
                        and to_rank == rank + dr
                        and is_in_palace(file, rank, enemy)
                    ):
                        return True
                screened = True
            to_file += df
            to_rank += dr

    for (df, dr), (leg_df, leg_dr) in HORSE_JUMPS:
        from_file, from_rank = file - df, rank - dr
        if not is_valid_coordinate(from_file, from_rank):
            continue
        piece = grid[from_rank][from_file]
        if (
            piece is not None
            and piece.side is enemy
            and piece.piece_type is PieceType.HORSE
            and grid[from_rank + leg_dr][from_file + leg_df] is None
        ):
            return True

    forward = -1 if enemy is Side.RED else 1
    steps = [(0, -forward)]
    if not is_own_side(rank, enemy):
        steps.extend([(-1, 0), (1, 0)])
    for df, dr in steps:
        if _holds(board, file + df, rank + dr, enemy, PieceType.SOLDIER):
            return True

    if is_in_palace(file, rank, enemy):
        for df, dr in DIAGONAL:
            if _holds(board, file + df, rank + dr, enemy, PieceType.ADVISOR):
                return True

    if is_own_side(rank, enemy):
        for df, dr in DIAGONAL:
            if _holds(board, file + 2 * df, rank + 2 * dr, enemy, PieceType.ELEPHANT) and (
                grid[rank + dr][file + df] is None
            ):
                return True

    return False


def _holds(board: Board, file: int, rank: int, side: Side, piece_type: PieceType) -> bool:
    if not is_valid_coordinate(file, rank):
        return False
    piece = board.grid[rank][file]
    return piece is not None and piece.side is side and piece.piece_type is piece_type


_GENERATORS = {
    PieceType.GENERAL: _general_moves,
    PieceType.ADVISOR: _advisor_moves,
    PieceType.ELEPHANT: _elephant_moves,
    PieceType.HORSE: _horse_moves,
    PieceType.CHARIOT: _chariot_moves,
    PieceType.CANNON: _cannon_moves,
    PieceType.SOLDIER: _soldier_moves,
}
