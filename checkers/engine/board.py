from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from .piece import DARK, LIGHT, Piece


SIZE = 8

STARTPOS = "l1l1l1l1/1l1l1l1l/l1l1l1l1/8/8/1d1d1d1d/d1d1d1d1/1d1d1d1d d"

SIDE_TO_CHAR = {DARK: "d", LIGHT: "l"}
CHAR_TO_SIDE = {v: k for k, v in SIDE_TO_CHAR.items()}


def is_playing_square(row: int, col: int) -> bool:
    """Dark diagonals used by play: ``(row + col)`` odd."""
    return (row + col) % 2 == 1


def _empty_grid() -> List[List[Optional[Piece]]]:
    return [[None] * SIZE for _ in range(SIZE)]


@dataclass
class Board:
    """8x8 occupancy grid.

    Notes:
    - Squares are ``(row, col)`` with both coordinates in 0..7; row 0 is dark's
      back rank.
    - Pure storage and bounds queries. Rule enforcement lives in ``Piece``.
    """

    grid: List[List[Optional[Piece]]] = field(default_factory=_empty_grid)
    _next_id: int = field(default=0, repr=False)

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    @classmethod
    def startpos(cls) -> "Board":
        """Create a board with 12 pieces per side on the starting diagonals."""
        board = cls()
        for row in range(SIZE):
            if row <= 2:
                owner = DARK
            elif row >= 5:
                owner = LIGHT
            else:
                continue
            for col in range((row + 1) % 2, SIZE, 2):
                board.add(Piece(owner, row, col))
        return board

    @classmethod
    def from_position(cls, position: str) -> Tuple["Board", str]:
        """Parse a position string into a board and the side to move.

        Format: eight ranks from row 7 down to row 0 separated by ``/``;
        ``d``/``D`` are dark men/kings, ``l``/``L`` light men/kings and digits
        count empty squares. A space and ``d`` or ``l`` follow for the side to
        move.

        Raises:
            ValueError: If the string is malformed or places a piece off the
                playing squares.
        """
        if not position or not isinstance(position, str):
            raise ValueError("position must be a non-empty string")
        parts = position.strip().split()
        if len(parts) != 2:
            raise ValueError("position must have 2 fields")
        placement, stm = parts
        if stm not in CHAR_TO_SIDE:
            raise ValueError("side to move must be 'd' or 'l'")
        ranks = placement.split("/")
        if len(ranks) != SIZE:
            raise ValueError("position must have 8 ranks")

        board = cls()
        for rank_idx, rank in enumerate(ranks):
            row = SIZE - 1 - rank_idx
            col = 0
            for ch in rank:
                if ch.isdigit():
                    n = int(ch)
                    if n < 1 or n > SIZE:
                        raise ValueError("invalid empty count in rank")
                    col += n
                    continue
                if ch.lower() not in CHAR_TO_SIDE:
                    raise ValueError(f"invalid piece in position: {ch!r}")
                if col >= SIZE:
                    raise ValueError("too many squares in rank")
                if not is_playing_square(row, col):
                    raise ValueError(f"piece on a light square: ({row}, {col})")
                board.add(Piece(CHAR_TO_SIDE[ch.lower()], row, col, king=ch.isupper()))
                col += 1
            if col != SIZE:
                raise ValueError("rank does not sum to 8 squares")
        return board, CHAR_TO_SIDE[stm]

    def to_position(self, side_to_move: str) -> str:
        """Serialize the grid and ``side_to_move`` into a position string."""
        ranks: List[str] = []
        for row in range(SIZE - 1, -1, -1):
            run = 0
            out = []
            for col in range(SIZE):
                piece = self.grid[row][col]
                if piece is None:
                    run += 1
                    continue
                if run:
                    out.append(str(run))
                    run = 0
                out.append(piece.to_char())
            if run:
                out.append(str(run))
            ranks.append("".join(out))
        return "/".join(ranks) + " " + SIDE_TO_CHAR[side_to_move]

    # --- Queries ---
    @staticmethod
    def in_bounds(row: int, col: int) -> bool:
        return 0 <= row < SIZE and 0 <= col < SIZE

    def occupant_at(self, row: int, col: int) -> Optional[Piece]:
        if not self.in_bounds(row, col):
            raise ValueError(f"square out of bounds: ({row}, {col})")
        return self.grid[row][col]

    def pieces(self, owner: Optional[str] = None) -> Iterator[Piece]:
        """Yield occupants row-major, optionally filtered by owner."""
        for row in self.grid:
            for piece in row:
                if piece is not None and (owner is None or piece.owner == owner):
                    yield piece

    def piece_by_id(self, pid: int) -> Optional[Piece]:
        for piece in self.pieces():
            if piece.id == pid:
                return piece
        return None

    def count(self, owner: str) -> int:
        return sum(1 for _ in self.pieces(owner))

    # --- Raw slot mutation (no rule checks) ---
    def place(self, piece: Piece, row: int, col: int) -> None:
        if not self.in_bounds(row, col):
            raise ValueError(f"square out of bounds: ({row}, {col})")
        self.grid[row][col] = piece

    def remove(self, row: int, col: int) -> Optional[Piece]:
        if not self.in_bounds(row, col):
            raise ValueError(f"square out of bounds: ({row}, {col})")
        piece = self.grid[row][col]
        self.grid[row][col] = None
        return piece

    def add(self, piece: Piece) -> Piece:
        """Put a newly created piece on its own square and assign its id.

        Raises:
            ValueError: If the square is taken or out of bounds.
        """
        if self.occupant_at(piece.row, piece.col) is not None:
            raise ValueError(f"square already occupied: ({piece.row}, {piece.col})")
        piece.id = self._next_id
        self._next_id += 1
        self.place(piece, piece.row, piece.col)
        return piece
