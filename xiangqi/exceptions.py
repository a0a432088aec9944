"""Exception types raised by the Xiangqi core."""


class XiangqiError(Exception):
    """Base class for all engine errors."""


class InvalidCoordinateError(XiangqiError, ValueError):
    """A coordinate or square notation falls outside the 9x10 board."""


class InvalidBoardError(XiangqiError, ValueError):
    """A board grid, FEN string or setup mapping is malformed."""


class PieceNotFoundError(XiangqiError, LookupError):
    """A move query was made for a piece that is not on the board."""
