from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from ..engine.board import is_playing_square
from ..engine.game import Game
from ..engine.piece import OWNERS


logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """A saved game could not be read or written."""


@dataclass(frozen=True)
class PieceRecord:
    owner: str
    row: int
    col: int
    king: bool = False

    def to_line(self) -> str:
        return f"{self.owner} {self.row} {self.col} {str(self.king).lower()}"


_BOOLS = {"true": True, "false": False}


def dump_state(active: str, records: Iterable[PieceRecord]) -> str:
    """Render the active player and piece records as flat text.

    The first line names the side to move; each following line is
    ``owner row col king``.
    """
    lines = [active]
    lines.extend(r.to_line() for r in records)
    return "\n".join(lines) + "\n"


def parse_state(text: str) -> Tuple[str, List[PieceRecord]]:
    """Parse text produced by ``dump_state``.

    Raises:
        PersistenceError: On an empty document, unknown owner, bad integer
            or boolean, or a square outside the board.
    """
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        raise PersistenceError("saved game is empty")
    active = lines[0]
    if active not in OWNERS:
        raise PersistenceError(f"invalid active player: {active!r}")
    records: List[PieceRecord] = []
    for lineno, line in enumerate(lines[1:], start=2):
        fields = line.split()
        if len(fields) != 4:
            raise PersistenceError(f"line {lineno}: expected 'owner row col king'")
        owner, row_s, col_s, king_s = fields
        if owner not in OWNERS:
            raise PersistenceError(f"line {lineno}: invalid owner {owner!r}")
        try:
            row, col = int(row_s), int(col_s)
        except ValueError as e:
            raise PersistenceError(f"line {lineno}: invalid square") from e
        if not (0 <= row <= 7 and 0 <= col <= 7):
            raise PersistenceError(f"line {lineno}: square out of bounds")
        if not is_playing_square(row, col):
            raise PersistenceError(f"line {lineno}: piece on a light square")
        if king_s.lower() not in _BOOLS:
            raise PersistenceError(f"line {lineno}: invalid king flag {king_s!r}")
        records.append(PieceRecord(owner, row, col, _BOOLS[king_s.lower()]))
    return active, records


def save_state(path: str, active: str, records: Iterable[PieceRecord]) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(dump_state(active, records))
    except OSError as e:
        raise PersistenceError(f"cannot write {path}: {e}") from e
    logger.info("saved game to %s", path)


def load_state(path: str) -> Tuple[str, List[PieceRecord]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise PersistenceError(f"cannot read {path}: {e}") from e
    active, records = parse_state(text)
    logger.info("loaded game from %s (%d pieces)", path, len(records))
    return active, records


def records_from_game(game: Game) -> List[PieceRecord]:
    return [PieceRecord(*t) for t in game.to_records()]


def game_from_records(
    active: str, records: Iterable[PieceRecord], mandatory_capture: bool = False
) -> Game:
    """Rebuild a ``Game``; overlapping pieces count as a corrupt save."""
    try:
        return Game.from_records(
            active,
            [(r.owner, r.row, r.col, r.king) for r in records],
            mandatory_capture=mandatory_capture,
        )
    except ValueError as e:
        raise PersistenceError(str(e)) from e
