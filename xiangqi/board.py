"""Xiangqi board representation, coordinates and notation."""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .exceptions import InvalidBoardError, InvalidCoordinateError, PieceNotFoundError
from .zobrist import get_zobrist

FILES = 9
RANKS = 10
FILE_LETTERS = "abcdefghi"

PALACE_FILES = (3, 5)
RED_PALACE_RANKS = (7, 9)
BLACK_PALACE_RANKS = (0, 2)
# Red owns ranks >= RIVER_RANK, black owns ranks < RIVER_RANK
RIVER_RANK = 5


class Side(Enum):
    """Player sides."""

    RED = "red"  # Bottom side, moves first
    BLACK = "black"  # Top side

    def opponent(self) -> "Side":
        return Side.BLACK if self is Side.RED else Side.RED


class PieceType(Enum):
    """Piece types."""

    GENERAL = "general"
    ADVISOR = "advisor"
    ELEPHANT = "elephant"
    HORSE = "horse"
    CHARIOT = "chariot"
    CANNON = "cannon"
    SOLDIER = "soldier"


# FEN letters (lowercase = black, uppercase = red)
PIECE_CHARS = {
    PieceType.GENERAL: "k",
    PieceType.ADVISOR: "a",
    PieceType.ELEPHANT: "b",
    PieceType.HORSE: "n",
    PieceType.CHARIOT: "r",
    PieceType.CANNON: "c",
    PieceType.SOLDIER: "p",
}
CHAR_TO_PIECE_TYPE = {char: piece_type for piece_type, char in PIECE_CHARS.items()}


@dataclass(eq=False)
class Piece:
    """A piece on the board.

    Identity is the object itself; ``id`` is a stable label used in cache
    keys and move records.
    """

    id: str
    piece_type: PieceType
    side: Side
    file: int
    rank: int
    has_moved: bool = False

    @property
    def position(self) -> Tuple[int, int]:
        return (self.file, self.rank)

    def to_char(self) -> str:
        char = PIECE_CHARS[self.piece_type]
        return char.upper() if self.side is Side.RED else char

    def __str__(self) -> str:
        return f"{self.side.value}_{self.piece_type.value}@{coords_to_square(self.file, self.rank)}"


@dataclass(frozen=True)
class Move:
    """A move from one coordinate to another."""

    from_file: int
    from_rank: int
    to_file: int
    to_rank: int

    @property
    def origin(self) -> Tuple[int, int]:
        return (self.from_file, self.from_rank)

    @property
    def destination(self) -> Tuple[int, int]:
        return (self.to_file, self.to_rank)

    def __str__(self) -> str:
        return self.to_iccs()

    def to_iccs(self) -> str:
        """Convert to ICCS notation, e.g. ``h2e2``."""
        return coords_to_square(self.from_file, self.from_rank) + coords_to_square(
            self.to_file, self.to_rank
        )

    @classmethod
    def from_iccs(cls, text: str) -> "Move":
        """Parse ICCS notation."""
        text = text.strip().lower()
        if len(text) != 4:
            raise InvalidCoordinateError(f"Invalid move notation: {text!r}")
        from_file, from_rank = square_to_coords(text[:2])
        to_file, to_rank = square_to_coords(text[2:])
        return cls(from_file, from_rank, to_file, to_rank)

    @classmethod
    def between(cls, origin: Tuple[int, int], destination: Tuple[int, int]) -> "Move":
        return cls(origin[0], origin[1], destination[0], destination[1])


@dataclass
class UndoRecord:
    """Everything needed to reverse one board mutation exactly."""

    move: Move
    piece: Piece
    captured: Optional[Piece]
    had_moved: bool
    previous_hash: int


def is_valid_coordinate(file: int, rank: int) -> bool:
    """Check if (file, rank) lies on the 9x10 board."""
    return 0 <= file < FILES and 0 <= rank < RANKS


def validate_coordinate(file: int, rank: int, context: str = "position") -> None:
    """Raise ``InvalidCoordinateError`` if (file, rank) is off the board."""
    if not isinstance(file, int) or not isinstance(rank, int) or not is_valid_coordinate(file, rank):
        raise InvalidCoordinateError(
            f"Invalid {context}: ({file}, {rank}). Valid range: file[0-8], rank[0-9]"
        )


def is_in_palace(file: int, rank: int, side: Side) -> bool:
    """Check if a square is in the palace for the given side."""
    if not PALACE_FILES[0] <= file <= PALACE_FILES[1]:
        return False
    low, high = RED_PALACE_RANKS if side is Side.RED else BLACK_PALACE_RANKS
    return low <= rank <= high


def is_own_side(rank: int, side: Side) -> bool:
    """Check if a rank is on ``side``'s half of the river."""
    if side is Side.RED:
        return rank >= RIVER_RANK
    return rank < RIVER_RANK


def square_to_coords(square: str) -> Tuple[int, int]:
    """Convert ICCS square notation (e.g. ``e0``) to (file, rank)."""
    if not isinstance(square, str) or len(square) != 2:
        raise InvalidCoordinateError(f"Invalid square notation: {square!r}")
    file_char, digit = square[0].lower(), square[1]
    if file_char not in FILE_LETTERS or not digit.isdigit():
        raise InvalidCoordinateError(f"Invalid square notation: {square!r}")
    return (FILE_LETTERS.index(file_char), RANKS - 1 - int(digit))


def coords_to_square(file: int, rank: int) -> str:
    """Convert (file, rank) to ICCS square notation."""
    validate_coordinate(file, rank)
    return f"{FILE_LETTERS[file]}{RANKS - 1 - rank}"


BACK_ROW = [
    PieceType.CHARIOT,
    PieceType.HORSE,
    PieceType.ELEPHANT,
    PieceType.ADVISOR,
    PieceType.GENERAL,
    PieceType.ADVISOR,
    PieceType.ELEPHANT,
    PieceType.HORSE,
    PieceType.CHARIOT,
]


class Board:
    """Xiangqi board: a 10x9 grid of optional pieces.

    The grid is indexed ``grid[rank][file]``. Every mutation goes through
    ``place_piece``, ``remove_piece`` or ``apply_move``/``undo`` so that the
    placement fingerprint and the generation counter stay current.
    """

    FILES = FILES
    RANKS = RANKS

    def __init__(self, custom_setup: Optional[Dict[str, str]] = None, empty: bool = False):
        """Initialize a board.

        Args:
            custom_setup: Optional mapping of ICCS squares to piece codes,
                e.g. ``{"e0": "rK", "e9": "bK", "a0": "rR"}``. Side char is
                ``r`` or ``b``; type char is one of ``K A B N R C P``.
            empty: Start from an empty board (ignored if custom_setup given).
        """
        self.grid: List[List[Optional[Piece]]] = [
            [None for _ in range(FILES)] for _ in range(RANKS)
        ]
        self.generation = 0
        self._hash = 0
        self._zobrist = get_zobrist()

        if custom_setup is not None:
            self._initialize_custom_position(custom_setup)
        elif not empty:
            self._initialize_starting_position()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _initialize_starting_position(self) -> None:
        """Set up the standard 32-piece layout."""
        for side, back_rank, cannon_rank, soldier_rank in (
            (Side.RED, 9, 7, 6),
            (Side.BLACK, 0, 2, 3),
        ):
            prefix = "r" if side is Side.RED else "b"
            for file, piece_type in enumerate(BACK_ROW):
                if piece_type is PieceType.GENERAL:
                    piece_id = f"{prefix}-general"
                else:
                    piece_id = f"{prefix}-{piece_type.value}-{1 if file < 4 else 2}"
                self.place_piece(Piece(piece_id, piece_type, side, file, back_rank))
            for index, file in enumerate((1, 7)):
                self.place_piece(
                    Piece(f"{prefix}-cannon-{index + 1}", PieceType.CANNON, side, file, cannon_rank)
                )
            for file in range(0, FILES, 2):
                self.place_piece(
                    Piece(f"{prefix}-soldier-{file}", PieceType.SOLDIER, side, file, soldier_rank)
                )

    def _initialize_custom_position(self, custom_setup: Dict[str, str]) -> None:
        """Place pieces from a square -> code mapping."""
        counters: Dict[Tuple[Side, PieceType], int] = {}
        for square, code in custom_setup.items():
            file, rank = square_to_coords(square)
            if not isinstance(code, str) or len(code) != 2:
                raise InvalidBoardError(f"Invalid piece code {code!r} at {square}")
            side_char, type_char = code[0].lower(), code[1].lower()
            if side_char == "r":
                side = Side.RED
            elif side_char == "b":
                side = Side.BLACK
            else:
                raise InvalidBoardError(f"Invalid side in piece code {code!r} at {square}")
            piece_type = CHAR_TO_PIECE_TYPE.get(type_char)
            if piece_type is None:
                raise InvalidBoardError(f"Invalid piece type in code {code!r} at {square}")
            self.place_piece(Piece(self._next_id(counters, side, piece_type), piece_type, side, file, rank))

    @staticmethod
    def _next_id(counters: Dict[Tuple[Side, PieceType], int], side: Side, piece_type: PieceType) -> str:
        prefix = "r" if side is Side.RED else "b"
        if piece_type is PieceType.GENERAL:
            return f"{prefix}-general"
        count = counters.get((side, piece_type), 0) + 1
        counters[(side, piece_type)] = count
        return f"{prefix}-{piece_type.value}-{count}"

    @classmethod
    def from_grid(cls, grid: List[List[Optional[Piece]]]) -> "Board":
        """Adopt an externally supplied grid after validating it."""
        validate_grid_shape(grid)
        board = cls(empty=True)
        for rank in range(RANKS):
            for file in range(FILES):
                piece = grid[rank][file]
                if piece is None:
                    continue
                if piece.position != (file, rank):
                    raise InvalidBoardError(
                        f"Piece {piece.id} stores {piece.position} but sits at {(file, rank)}"
                    )
                board.place_piece(piece)
        return board

    @classmethod
    def from_fen(cls, fen: str) -> Tuple["Board", Side]:
        """Parse board notation produced by ``to_fen``.

        Returns:
            (board, side to move). A missing side suffix means red to move.
        """
        parts = fen.strip().split()
        if not parts:
            raise InvalidBoardError("Empty FEN")
        rows = parts[0].split("/")
        if len(rows) != RANKS:
            raise InvalidBoardError(f"FEN must have {RANKS} rows, got {len(rows)}")

        board = cls(empty=True)
        counters: Dict[Tuple[Side, PieceType], int] = {}
        for rank, row in enumerate(rows):
            file = 0
            for char in row:
                if char.isdigit():
                    file += int(char)
                    continue
                piece_type = CHAR_TO_PIECE_TYPE.get(char.lower())
                if piece_type is None:
                    raise InvalidBoardError(f"Invalid FEN piece {char!r}")
                if file >= FILES:
                    raise InvalidBoardError(f"FEN row {rank} is too long: {row!r}")
                side = Side.RED if char.isupper() else Side.BLACK
                board.place_piece(Piece(cls._next_id(counters, side, piece_type), piece_type, side, file, rank))
                file += 1
            if file != FILES:
                raise InvalidBoardError(f"FEN row {rank} does not span {FILES} files: {row!r}")

        side_to_move = Side.RED
        if len(parts) > 1:
            if parts[1] in ("w", "r"):
                side_to_move = Side.RED
            elif parts[1] == "b":
                side_to_move = Side.BLACK
            else:
                raise InvalidBoardError(f"Invalid side to move {parts[1]!r}")
        return board, side_to_move

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def fingerprint(self) -> int:
        """Zobrist hash of the current piece placement."""
        return self._hash

    def get_piece(self, file: int, rank: int) -> Optional[Piece]:
        """Get piece at given coordinates (None when empty or off board)."""
        if is_valid_coordinate(file, rank):
            return self.grid[rank][file]
        return None

    def pieces(self, side: Optional[Side] = None) -> List[Piece]:
        """All pieces on the board in rank-major order, optionally for one side."""
        result = []
        for row in self.grid:
            for piece in row:
                if piece is not None and (side is None or piece.side is side):
                    result.append(piece)
        return result

    def find_general(self, side: Side) -> Optional[Tuple[int, int]]:
        """Get the general's coordinate for ``side``."""
        for row in self.grid:
            for piece in row:
                if piece is not None and piece.side is side and piece.piece_type is PieceType.GENERAL:
                    return piece.position
        return None

    def contains(self, piece: Piece) -> bool:
        """Check that ``piece`` is the object stored at its own coordinate."""
        return is_valid_coordinate(piece.file, piece.rank) and self.grid[piece.rank][piece.file] is piece

    def layout(self) -> Tuple[Tuple[Optional[Tuple[str, str, str, bool]], ...], ...]:
        """Immutable snapshot of the grid for equality checks."""
        return tuple(
            tuple(
                None if piece is None else (piece.id, piece.piece_type.value, piece.side.value, piece.has_moved)
                for piece in row
            )
            for row in self.grid
        )

    def validate(self) -> None:
        """Check the grid shape and the board invariants."""
        validate_grid_shape(self.grid)
        generals = {Side.RED: 0, Side.BLACK: 0}
        for rank in range(RANKS):
            for file in range(FILES):
                piece = self.grid[rank][file]
                if piece is None:
                    continue
                if piece.position != (file, rank):
                    raise InvalidBoardError(
                        f"Piece {piece.id} stores {piece.position} but sits at {(file, rank)}"
                    )
                if piece.piece_type is PieceType.GENERAL:
                    generals[piece.side] += 1
        for side, count in generals.items():
            if count > 1:
                raise InvalidBoardError(f"{side.value} has {count} generals")

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def place_piece(self, piece: Piece) -> None:
        """Put ``piece`` on its stored coordinate."""
        validate_coordinate(piece.file, piece.rank, "piece position")
        if self.grid[piece.rank][piece.file] is not None:
            raise InvalidBoardError(
                f"Square {coords_to_square(piece.file, piece.rank)} is already occupied"
            )
        if piece.piece_type is PieceType.GENERAL and self.find_general(piece.side) is not None:
            raise InvalidBoardError(f"{piece.side.value} already has a general")
        self.grid[piece.rank][piece.file] = piece
        self._hash ^= self._zobrist.key_for(piece, piece.file, piece.rank)
        self.generation += 1

    def remove_piece(self, file: int, rank: int) -> Piece:
        """Take the piece off (file, rank) and return it."""
        validate_coordinate(file, rank)
        piece = self.grid[rank][file]
        if piece is None:
            raise PieceNotFoundError(f"No piece at {coords_to_square(file, rank)}")
        self.grid[rank][file] = None
        self._hash ^= self._zobrist.key_for(piece, file, rank)
        self.generation += 1
        return piece

    def apply_move(self, move: Move) -> UndoRecord:
        """Move a piece without any rule checks and return its undo record."""
        piece = self.get_piece(move.from_file, move.from_rank)
        if piece is None:
            raise PieceNotFoundError(f"No piece at {move.origin}")
        validate_coordinate(move.to_file, move.to_rank, "target position")
        captured = self.grid[move.to_rank][move.to_file]

        record = UndoRecord(
            move=move,
            piece=piece,
            captured=captured,
            had_moved=piece.has_moved,
            previous_hash=self._hash,
        )

        self.grid[move.to_rank][move.to_file] = piece
        self.grid[move.from_rank][move.from_file] = None
        piece.file, piece.rank = move.to_file, move.to_rank
        piece.has_moved = True
        self._hash = self._zobrist.update_hash_move(
            self._hash, piece, move.from_file, move.from_rank, move.to_file, move.to_rank, captured
        )
        self.generation += 1
        return record

    def undo(self, record: UndoRecord) -> None:
        """Reverse a mutation made by ``apply_move``."""
        move = record.move
        piece = record.piece
        self.grid[move.from_rank][move.from_file] = piece
        self.grid[move.to_rank][move.to_file] = record.captured
        piece.file, piece.rank = move.from_file, move.from_rank
        piece.has_moved = record.had_moved
        self._hash = record.previous_hash
        self.generation += 1

    @contextmanager
    def simulate(self, move: Move) -> Iterator[UndoRecord]:
        """Apply ``move`` for the duration of a ``with`` block."""
        record = self.apply_move(move)
        try:
            yield record
        finally:
            self.undo(record)

    def copy(self) -> "Board":
        """Independent copy with fresh piece objects (same ids)."""
        board = Board(empty=True)
        for piece in self.pieces():
            board.place_piece(
                Piece(piece.id, piece.piece_type, piece.side, piece.file, piece.rank, piece.has_moved)
            )
        return board

    # ------------------------------------------------------------------
    # Notation
    # ------------------------------------------------------------------

    def to_fen(self, side_to_move: Side = Side.RED) -> str:
        """Export the placement, one row per rank from black's back rank down."""
        fen_rows = []
        for rank in range(RANKS):
            row = ""
            empty_count = 0
            for file in range(FILES):
                piece = self.grid[rank][file]
                if piece is None:
                    empty_count += 1
                else:
                    if empty_count > 0:
                        row += str(empty_count)
                        empty_count = 0
                    row += piece.to_char()
            if empty_count > 0:
                row += str(empty_count)
            fen_rows.append(row)
        side_char = "w" if side_to_move is Side.RED else "b"
        return "/".join(fen_rows) + f" {side_char}"

    def __str__(self) -> str:
        lines = []
        for rank in range(RANKS):
            cells = [piece.to_char() if piece else "." for piece in self.grid[rank]]
            lines.append(f"{RANKS - 1 - rank} " + " ".join(cells))
        lines.append("  " + " ".join(FILE_LETTERS))
        return "\n".join(lines)


def validate_grid_shape(grid) -> None:
    """Raise ``InvalidBoardError`` unless ``grid`` is 10 rows of 9 cells."""
    if grid is None or len(grid) != RANKS:
        raise InvalidBoardError(f"Invalid board height: expected {RANKS}")
    for rank, row in enumerate(grid):
        if row is None or len(row) != FILES:
            raise InvalidBoardError(f"Invalid board width at rank {rank}: expected {FILES}")


def initialize_board() -> Board:
    """Create a board with the standard starting layout."""
    return Board()
