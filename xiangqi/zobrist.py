"""Zobrist hashing for Xiangqi positions.

Every (side, piece type, square) triple gets a fixed random 64-bit key and a
board's fingerprint is the XOR of the keys of the pieces on it. XOR is its
own inverse, so a move updates the fingerprint in O(1): XOR the mover out of
its origin, into its destination, and XOR any captured piece out.

The hash covers placement only. It keys the move cache, where side to move
does not affect the moves a given piece can make.
"""

import random
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .board import Board, Piece, Side, PieceType


class ZobristHash:
    """Random key tables for incremental position fingerprints."""

    FILES = 9
    RANKS = 10
    PIECE_TYPES = 7
    SIDES = 2

    # Must match PieceType / Side enum values
    PIECE_TYPE_MAP = {
        'general': 0,
        'advisor': 1,
        'elephant': 2,
        'horse': 3,
        'chariot': 4,
        'cannon': 5,
        'soldier': 6,
    }

    SIDE_MAP = {
        'red': 0,
        'black': 1,
    }

    def __init__(self, seed: int = 0x5849414E47514921):
        """Initialize random keys.

        Args:
            seed: Seed for the key generator. A fixed seed keeps fingerprints
                stable across processes.
        """
        rng = random.Random(seed)
        # [side][piece_type][rank][file] -> random key
        self.piece_keys = [
            [
                [
                    [rng.getrandbits(64) for _ in range(self.FILES)]
                    for _ in range(self.RANKS)
                ]
                for _ in range(self.PIECE_TYPES)
            ]
            for _ in range(self.SIDES)
        ]

    def get_piece_key(self, side: 'Side', piece_type: 'PieceType', file: int, rank: int) -> int:
        """Get the key for a piece of ``side``/``piece_type`` at (file, rank)."""
        side_idx = self.SIDE_MAP[side.value]
        piece_idx = self.PIECE_TYPE_MAP[piece_type.value]
        return self.piece_keys[side_idx][piece_idx][rank][file]

    def key_for(self, piece: 'Piece', file: int, rank: int) -> int:
        return self.get_piece_key(piece.side, piece.piece_type, file, rank)

    def compute_hash(self, board: 'Board') -> int:
        """Compute the placement hash of ``board`` from scratch."""
        h = 0
        for rank in range(self.RANKS):
            for file in range(self.FILES):
                piece = board.grid[rank][file]
                if piece is not None:
                    h ^= self.key_for(piece, file, rank)
        return h

    def update_hash_move(
        self,
        current_hash: int,
        piece: 'Piece',
        from_file: int,
        from_rank: int,
        to_file: int,
        to_rank: int,
        captured: Optional['Piece'] = None,
    ) -> int:
        """Incrementally update a placement hash for one move.

        Args:
            current_hash: Placement hash before the move
            piece: The moving piece
            from_file, from_rank: Origin
            to_file, to_rank: Destination
            captured: Piece removed from the destination, if any

        Returns:
            Placement hash after the move
        """
        h = current_hash
        h ^= self.key_for(piece, from_file, from_rank)
        h ^= self.key_for(piece, to_file, to_rank)
        if captured is not None:
            h ^= self.key_for(captured, to_file, to_rank)
        return h


_zobrist_instance: Optional[ZobristHash] = None


def get_zobrist() -> ZobristHash:
    """Get the shared Zobrist key tables (created on first use)."""
    global _zobrist_instance
    if _zobrist_instance is None:
        _zobrist_instance = ZobristHash()
    return _zobrist_instance
