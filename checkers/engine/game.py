from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .board import Board, is_playing_square
from .move import IllegalMoveError, Move, Square
from .piece import DARK, OWNERS, Piece, opponent


logger = logging.getLogger(__name__)


class Phase(Enum):
    IDLE = "idle"
    SELECTED = "selected"
    MUST_CONTINUE_CAPTURE = "must_continue_capture"


class InputOutcome(Enum):
    IGNORED = "ignored"
    SELECTED = "selected"
    DESELECTED = "deselected"
    MOVED = "moved"
    CONTINUE_CAPTURE = "continue_capture"


@dataclass
class TurnState:
    """Whose turn it is and which piece (by id) the input is acting on."""

    active: str = DARK
    phase: Phase = Phase.IDLE
    selected_id: Optional[int] = None


# (owner, row, col, king) as exchanged with the persistence layer
PieceTuple = Tuple[str, int, int, bool]


@dataclass
class Game:
    """Turn controller around a board.

    Responsibility: selection state and turn alternation. Every rule decision
    is delegated to ``Piece``; the controller only decides whether a
    completed move ends the turn or forces the same piece to keep capturing.
    """

    board: Board
    state: TurnState = field(default_factory=TurnState)
    mandatory_capture: bool = False
    move_history: List[Move] = field(default_factory=list)

    @classmethod
    def new(cls, mandatory_capture: bool = False) -> "Game":
        return cls(board=Board.startpos(), mandatory_capture=mandatory_capture)

    @classmethod
    def from_position(cls, position: str, mandatory_capture: bool = False) -> "Game":
        board, active = Board.from_position(position)
        return cls(board=board, state=TurnState(active=active), mandatory_capture=mandatory_capture)

    @classmethod
    def from_records(
        cls, active: str, records: Iterable[PieceTuple], mandatory_capture: bool = False
    ) -> "Game":
        """Rebuild a game from persisted piece records.

        Raises:
            ValueError: On an unknown owner, a piece on a light square or two
                pieces on one square.
        """
        if active not in OWNERS:
            raise ValueError(f"unknown owner: {active!r}")
        board = Board.empty()
        for owner, row, col, king in records:
            if not is_playing_square(row, col):
                raise ValueError(f"piece on a light square: ({row}, {col})")
            board.add(Piece(owner, row, col, king=king))
        return cls(board=board, state=TurnState(active=active), mandatory_capture=mandatory_capture)

    def to_position(self) -> str:
        return self.board.to_position(self.state.active)

    def to_records(self) -> List[PieceTuple]:
        return [(p.owner, p.row, p.col, p.king) for p in self.board.pieces()]

    # --- Selection helpers ---
    @property
    def active(self) -> str:
        return self.state.active

    @property
    def selected(self) -> Optional[Piece]:
        if self.state.selected_id is None:
            return None
        return self.board.piece_by_id(self.state.selected_id)

    def _capture_pending(self) -> bool:
        """Whether the active player has any capture on the board (strict mode)."""
        return any(p.capture_available(self.board) for p in self.board.pieces(self.active))

    def _can_select(self, piece: Piece) -> bool:
        if piece.owner != self.active or not piece.has_valid_move(self.board):
            return False
        if self.mandatory_capture and self._capture_pending():
            return piece.capture_available(self.board)
        return True

    def _select(self, piece: Piece) -> None:
        piece.select()
        self.state.selected_id = piece.id
        self.state.phase = Phase.SELECTED

    def _clear_selection(self) -> None:
        piece = self.selected
        if piece is not None:
            piece.deselect()
        self.state.selected_id = None
        self.state.phase = Phase.IDLE

    def _accepts(self, piece: Piece, row: int, col: int) -> bool:
        if not piece.is_valid_move(self.board, row, col):
            return False
        captures_only = self.state.phase is Phase.MUST_CONTINUE_CAPTURE or (
            self.mandatory_capture and self._capture_pending()
        )
        if captures_only:
            return (row, col) in piece.capture_destinations(self.board)
        return True

    # --- Input ---
    def handle_input(self, row: int, col: int) -> InputOutcome:
        """Process one target-square event.

        Out-of-bounds squares, foreign pieces and illegal destinations are
        no-ops. During a capture chain only a further capture by the same
        piece is accepted; the piece cannot be deselected or swapped.
        """
        if not self.board.in_bounds(row, col):
            return InputOutcome.IGNORED

        piece = self.selected
        if piece is None:
            target = self.board.occupant_at(row, col)
            if target is not None and self._can_select(target):
                self._select(target)
                return InputOutcome.SELECTED
            return InputOutcome.IGNORED

        if piece.position == (row, col):
            if self.state.phase is Phase.MUST_CONTINUE_CAPTURE:
                return InputOutcome.IGNORED
            self._clear_selection()
            return InputOutcome.DESELECTED

        if not self._accepts(piece, row, col):
            return InputOutcome.IGNORED

        mv = piece.move(self.board, row, col)
        self.move_history.append(mv)
        if piece.capturing:
            self.state.phase = Phase.MUST_CONTINUE_CAPTURE
            return InputOutcome.CONTINUE_CAPTURE

        self._clear_selection()
        self.state.active = opponent(self.state.active)
        logger.debug("turn passes to %s", self.state.active)
        return InputOutcome.MOVED

    def apply_move(self, from_sq: Square, to_sq: Square) -> InputOutcome:
        """Select ``from_sq`` (if needed) and move it to ``to_sq``.

        The move is checked before any selection changes, so a refused move
        leaves the turn state untouched.

        Raises:
            IllegalMoveError: If the move is not accepted.
        """
        piece = self.selected
        if piece is None or piece.position != from_sq:
            if self.state.phase is Phase.MUST_CONTINUE_CAPTURE:
                raise IllegalMoveError("capture chain must continue with the same piece")
            piece = self.board.occupant_at(*from_sq) if self.board.in_bounds(*from_sq) else None
            if piece is None or not self._can_select(piece):
                raise IllegalMoveError("no movable piece of the side to move on that square")
        if not self.board.in_bounds(*to_sq) or not self._accepts(piece, *to_sq):
            raise IllegalMoveError("illegal move")
        if self.selected is not piece:
            self._clear_selection()
            self._select(piece)
        return self.handle_input(*to_sq)

    # --- Queries ---
    def legal_moves(self) -> List[Move]:
        """Moves available to the active player in the current phase."""
        if self.state.phase is Phase.MUST_CONTINUE_CAPTURE:
            candidates = [self.selected] if self.selected is not None else []
        else:
            candidates = [p for p in self.board.pieces(self.active) if self._can_select(p)]
        moves: List[Move] = []
        for piece in candidates:
            for dest in piece.valid_destinations(self.board):
                if not self._accepts(piece, *dest):
                    continue
                captured = None
                if abs(dest[0] - piece.row) == 2:
                    captured = ((dest[0] + piece.row) // 2, (dest[1] + piece.col) // 2)
                moves.append(Move(piece.position, dest, captured=captured))
        return moves

    def game_over(self) -> bool:
        """The side to move has no piece with a valid move."""
        return not any(p.has_valid_move(self.board) for p in self.board.pieces(self.active))

    def winner(self) -> Optional[str]:
        return opponent(self.active) if self.game_over() else None

    def last_move(self) -> Optional[Move]:
        return self.move_history[-1] if self.move_history else None

    def move_history_notation(self) -> List[str]:
        return [m.to_notation() for m in self.move_history]

    def snapshot(self) -> Dict[str, Any]:
        """Read-only view for presentation layers."""
        return {
            "active": self.active,
            "phase": self.state.phase.value,
            "selected": list(self.selected.position) if self.selected is not None else None,
            "pieces": [
                {
                    "owner": p.owner,
                    "row": p.row,
                    "col": p.col,
                    "king": p.king,
                    "selected": p.selected,
                    "capturing": p.capturing,
                }
                for p in self.board.pieces()
            ],
        }
