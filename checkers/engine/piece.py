from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

from .move import IllegalMoveError, Move, Square, square_to_str

if TYPE_CHECKING:
    from .board import Board


logger = logging.getLogger(__name__)


# Team identifiers. Dark starts on rows 0..2 and moves first.
DARK = "dark"
LIGHT = "light"
OWNERS = (DARK, LIGHT)

FORWARD = {DARK: 1, LIGHT: -1}
PROMOTION_ROW = {DARK: 7, LIGHT: 0}

ALL_DIRECTIONS: Tuple[Square, ...] = ((1, 1), (1, -1), (-1, 1), (-1, -1))


def opponent(owner: str) -> str:
    if owner == DARK:
        return LIGHT
    if owner == LIGHT:
        return DARK
    raise ValueError(f"unknown owner: {owner!r}")


def directions(owner: str, king: bool) -> Tuple[Square, ...]:
    """Return the unit deltas a piece may travel along.

    Men move toward the opponent's back rank only; kings use all four
    diagonals. Steps and captures share the same direction set.
    """
    if king:
        return ALL_DIRECTIONS
    dr = FORWARD[owner]
    return ((dr, 1), (dr, -1))


class MoveKind(Enum):
    STEP = "step"
    CAPTURE = "capture"
    ILLEGAL = "illegal"


@dataclass(eq=False)
class Piece:
    """A single draughts piece and the rules that govern it.

    The board is never stored on the piece; every rules query receives it
    as an argument so the grid has exactly one owner (the game).

    Attributes:
        owner (str): ``DARK`` or ``LIGHT``; fixed at creation.
        row (int): Current row, kept in sync with the board grid by ``move``.
        col (int): Current column.
        king (bool): Crowned flag; once set it never reverts.
        selected (bool): Presentation flag toggled by the turn controller.
        capturing (bool): Set after a capture when a further capture is
            available from the landing square.
        id (int): Stable handle assigned at setup.
    """

    owner: str
    row: int
    col: int
    king: bool = False
    selected: bool = False
    capturing: bool = False
    id: int = -1

    def __post_init__(self) -> None:
        if self.owner not in OWNERS:
            raise ValueError(f"unknown owner: {self.owner!r}")

    @property
    def position(self) -> Square:
        return self.row, self.col

    def directions(self) -> Tuple[Square, ...]:
        return directions(self.owner, self.king)

    def to_char(self) -> str:
        ch = "d" if self.owner == DARK else "l"
        return ch.upper() if self.king else ch

    # --- Rules ---
    def classify(self, board: "Board", row: int, col: int) -> MoveKind:
        """Classify moving this piece to ``(row, col)`` on ``board``."""
        if not board.in_bounds(row, col) or not self._on_board(board):
            return MoveKind.ILLEGAL
        if board.occupant_at(row, col) is not None:
            return MoveKind.ILLEGAL
        delta = (row - self.row, col - self.col)
        for dr, dc in self.directions():
            if delta == (dr, dc):
                return MoveKind.STEP
            if delta == (2 * dr, 2 * dc):
                if self._is_opponent(board.occupant_at(self.row + dr, self.col + dc)):
                    return MoveKind.CAPTURE
                return MoveKind.ILLEGAL
        return MoveKind.ILLEGAL

    def is_valid_move(self, board: "Board", row: int, col: int) -> bool:
        return self.classify(board, row, col) is not MoveKind.ILLEGAL

    def has_valid_move(self, board: "Board") -> bool:
        """Whether at least one step or capture exists from the current square."""
        if not self._on_board(board):
            return False
        return any(
            self._can_step(board, dr, dc) or self._can_capture(board, dr, dc)
            for dr, dc in self.directions()
        )

    def capture_available(self, board: "Board") -> bool:
        """Whether a capture jump exists from the current square."""
        if not self._on_board(board):
            return False
        return any(self._can_capture(board, dr, dc) for dr, dc in self.directions())

    def valid_destinations(self, board: "Board") -> List[Square]:
        if not self._on_board(board):
            return []
        out: List[Square] = []
        for dr, dc in self.directions():
            if self._can_step(board, dr, dc):
                out.append((self.row + dr, self.col + dc))
            if self._can_capture(board, dr, dc):
                out.append((self.row + 2 * dr, self.col + 2 * dc))
        return out

    def capture_destinations(self, board: "Board") -> List[Square]:
        if not self._on_board(board):
            return []
        return [
            (self.row + 2 * dr, self.col + 2 * dc)
            for dr, dc in self.directions()
            if self._can_capture(board, dr, dc)
        ]

    def move(self, board: "Board", row: int, col: int) -> Move:
        """Execute a move that ``is_valid_move`` has accepted.

        A capture removes the jumped piece and then re-checks for a further
        capture from the landing square (with the piece's status before any
        crowning on this move). Landing on the promotion row crowns the
        piece for either kind of move.

        Returns:
            Move: Record of what happened.

        Raises:
            IllegalMoveError: If the destination is not a legal step or
                capture. The board is left untouched in that case.
        """
        kind = self.classify(board, row, col)
        if kind is MoveKind.ILLEGAL:
            raise IllegalMoveError(
                f"illegal move for {self.owner} piece at {self.position}: ({row}, {col})"
            )
        self.capturing = False
        origin = self.position
        captured = None
        if kind is MoveKind.CAPTURE:
            captured = ((self.row + row) // 2, (self.col + col) // 2)
            board.remove(*captured)
        self._relocate(board, row, col)
        if kind is MoveKind.CAPTURE:
            self.capturing = self.capture_available(board)

        promoted = False
        if not self.king and row == PROMOTION_ROW[self.owner]:
            self.king = True
            promoted = True
            logger.debug("piece %d crowned on %s", self.id, square_to_str(self.position))

        mv = Move(origin, self.position, captured=captured, promoted=promoted)
        logger.debug("%s played %s (capturing=%s)", self.owner, mv.to_notation(), self.capturing)
        return mv

    def select(self) -> None:
        self.selected = True

    def deselect(self) -> None:
        self.selected = False

    # --- Helpers ---
    def _on_board(self, board: "Board") -> bool:
        return board.in_bounds(self.row, self.col) and board.occupant_at(self.row, self.col) is self

    def _is_opponent(self, other: Optional["Piece"]) -> bool:
        return other is not None and other.owner != self.owner

    def _can_step(self, board: "Board", dr: int, dc: int) -> bool:
        r, c = self.row + dr, self.col + dc
        return board.in_bounds(r, c) and board.occupant_at(r, c) is None

    def _can_capture(self, board: "Board", dr: int, dc: int) -> bool:
        r, c = self.row + 2 * dr, self.col + 2 * dc
        if not board.in_bounds(r, c) or board.occupant_at(r, c) is not None:
            return False
        return self._is_opponent(board.occupant_at(self.row + dr, self.col + dc))

    def _relocate(self, board: "Board", row: int, col: int) -> None:
        board.remove(self.row, self.col)
        board.place(self, row, col)
        self.row, self.col = row, col
