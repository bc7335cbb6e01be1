from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


Square = Tuple[int, int]

FILES = "abcdefgh"


class IllegalMoveError(ValueError):
    """Raised when a move is executed without having been validated first."""


@dataclass(frozen=True)
class Move:
    """Record of one executed (or candidate) jump or step.

    Attributes:
        from_sq (Square): Origin ``(row, col)``.
        to_sq (Square): Destination ``(row, col)``.
        captured (Optional[Square]): Midpoint square of a capture, if any.
        promoted (bool): Whether the moving piece was crowned by this move.
    """

    from_sq: Square
    to_sq: Square
    captured: Optional[Square] = None
    promoted: bool = False

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    def to_notation(self) -> str:
        """Serialize the move as ``"c3-d4"`` (step) or ``"c3xe5"`` (capture)."""
        sep = "x" if self.is_capture else "-"
        return square_to_str(self.from_sq) + sep + square_to_str(self.to_sq)


def parse_move(text: str) -> Tuple[Square, Square]:
    """Parse move notation into origin and destination squares.

    Args:
        text (str): Move such as ``"c3d4"``, ``"c3-d4"`` or ``"c3xe5"``.

    Returns:
        Tuple[Square, Square]: ``(from_sq, to_sq)``.

    Raises:
        ValueError: If the string is not a pair of valid square names.
    """
    s = text.strip().lower()
    if len(s) == 5 and s[2] in "-x":
        s = s[:2] + s[3:]
    if len(s) != 4:
        raise ValueError(f"invalid move notation: {text!r}")
    return str_to_square(s[0:2]), str_to_square(s[2:4])


def str_to_square(s: str) -> Square:
    """Convert a square name into ``(row, col)``.

    The file letter selects the column and the rank digit the row, so
    ``"a1"`` is ``(0, 0)`` and ``"h8"`` is ``(7, 7)``.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if len(s) != 2 or s[0] not in FILES or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    return int(s[1]) - 1, FILES.index(s[0])


def square_to_str(sq: Square) -> str:
    """Convert ``(row, col)`` into a square name.

    Raises:
        ValueError: If the square lies outside the board.
    """
    row, col = sq
    if not (0 <= row <= 7 and 0 <= col <= 7):
        raise ValueError(f"invalid square: {sq!r}")
    return FILES[col] + str(row + 1)
