"""Position caches used by the rule engine.

Two layers:

* an LRU of generated destinations keyed by piece, square, mode and the
  board fingerprint;
* a per-board index of live pieces and general squares, rebuilt whenever
  the board's generation stamp changes.

Both are dropped wholesale after every real move.
"""

import logging
import weakref
from collections import OrderedDict
from typing import Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

from .board import Board, Piece, PieceType, Side

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """Bounded mapping that evicts the least recently used entry."""

    def __init__(self, max_size: int = 1000):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._data: "OrderedDict[K, V]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: K) -> Optional[V]:
        if key in self._data:
            self._data.move_to_end(key)
            self.hits += 1
            return self._data[key]
        self.misses += 1
        return None

    def put(self, key: K, value: V) -> None:
        if key in self._data:
            self._data.move_to_end(key)
        self._data[key] = value
        while len(self._data) > self.max_size:
            self._data.popitem(last=False)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        self._data.clear()


class BoardIndex:
    """Side -> pieces and side -> general square for one board generation.

    The board is held by weak reference, so a new board that reuses a
    collected board's ``id`` never matches a stale stamp.
    """

    def __init__(self):
        self._board_ref: Optional["weakref.ref[Board]"] = None
        self._generation: Optional[int] = None
        self._pieces: Dict[Side, List[Piece]] = {Side.RED: [], Side.BLACK: []}
        self._generals: Dict[Side, Optional[Tuple[int, int]]] = {Side.RED: None, Side.BLACK: None}
        self.rebuilds = 0

    def _is_current(self, board: Board) -> bool:
        return (
            self._board_ref is not None
            and self._board_ref() is board
            and self._generation == board.generation
        )

    def _refresh(self, board: Board) -> None:
        if self._is_current(board):
            return
        pieces: Dict[Side, List[Piece]] = {Side.RED: [], Side.BLACK: []}
        generals: Dict[Side, Optional[Tuple[int, int]]] = {Side.RED: None, Side.BLACK: None}
        for row in board.grid:
            for piece in row:
                if piece is None:
                    continue
                pieces[piece.side].append(piece)
                if piece.piece_type is PieceType.GENERAL:
                    generals[piece.side] = piece.position
        self._pieces = pieces
        self._generals = generals
        self._board_ref = weakref.ref(board)
        self._generation = board.generation
        self.rebuilds += 1

    def pieces(self, board: Board, side: Side) -> List[Piece]:
        self._refresh(board)
        return self._pieces[side]

    def general(self, board: Board, side: Side) -> Optional[Tuple[int, int]]:
        self._refresh(board)
        return self._generals[side]

    def clear(self) -> None:
        self._board_ref = None
        self._generation = None
        self._pieces = {Side.RED: [], Side.BLACK: []}
        self._generals = {Side.RED: None, Side.BLACK: None}


class PositionCache:
    """Move LRU plus board index, owned by one rule engine."""

    def __init__(self, max_size: int = 1000):
        self.moves: LRUCache[tuple, Tuple[Tuple[int, int], ...]] = LRUCache(max_size)
        self.index = BoardIndex()

    @staticmethod
    def moves_key(piece: Piece, board: Board, mode) -> tuple:
        return (
            piece.id,
            piece.file,
            piece.rank,
            piece.has_moved,
            mode.value,
            board.fingerprint,
        )

    def clear(self) -> None:
        logger.debug("Clearing position cache (%d move entries)", len(self.moves))
        self.moves.clear()
        self.index.clear()

    def stats(self) -> Dict[str, int]:
        return {
            "size": len(self.moves),
            "max_size": self.moves.max_size,
            "hits": self.moves.hits,
            "misses": self.moves.misses,
            "index_rebuilds": self.index.rebuilds,
        }
