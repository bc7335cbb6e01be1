from __future__ import annotations

import logging
import sys
from typing import Callable, List, Optional

from ...config import Settings, parse_bool
from ...engine.board import SIZE
from ...engine.game import Game, InputOutcome
from ...engine.move import IllegalMoveError, parse_move
from ...persistence.records import (
    PersistenceError,
    game_from_records,
    load_state,
    records_from_game,
    save_state,
)


logger = logging.getLogger(__name__)

Writer = Callable[[str], None]


class ConsoleSession:
    """Line-oriented command adapter around one ``Game``.

    Notes:
    - Core stays free of I/O; reading and writing happen here.
    - Commands: new, position, click, move, board, moves, setoption,
      save, load, quit.
    - Illegal input is reported but never changes the game.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.mandatory_capture = self.settings.mandatory_capture
        self.game: Game = Game.new(mandatory_capture=self.mandatory_capture)

    # ---- Command handlers ----
    def cmd_new(self, write: Writer) -> None:
        self.game = Game.new(mandatory_capture=self.mandatory_capture)
        write(f"ok turn {self.game.active}")

    def cmd_position(self, args: List[str], write: Writer) -> None:
        # position <placement> <side>
        try:
            self.game = Game.from_position(" ".join(args), mandatory_capture=self.mandatory_capture)
        except ValueError as e:
            write(f"error {e}")
            return
        write(f"ok turn {self.game.active}")

    def cmd_click(self, args: List[str], write: Writer) -> None:
        # click <row> <col>
        if len(args) != 2:
            write("error usage: click <row> <col>")
            return
        try:
            row, col = int(args[0]), int(args[1])
        except ValueError:
            write("error row and col must be integers")
            return
        outcome = self.game.handle_input(row, col)
        write(f"{outcome.value} turn {self.game.active}")
        if outcome is InputOutcome.MOVED and self.game.game_over():
            write(f"gameover winner {self.game.winner()}")

    def cmd_move(self, args: List[str], write: Writer) -> None:
        if len(args) != 1:
            write("error usage: move <from><to>")
            return
        try:
            from_sq, to_sq = parse_move(args[0])
            outcome = self.game.apply_move(from_sq, to_sq)
        except IllegalMoveError as e:
            write(f"illegal {e}")
            return
        except ValueError as e:
            write(f"error {e}")
            return
        write(f"{outcome.value} {self.game.last_move().to_notation()} turn {self.game.active}")
        if self.game.game_over():
            write(f"gameover winner {self.game.winner()}")

    def cmd_board(self, write: Writer) -> None:
        snap = self.game.snapshot()
        cells = [["." for _ in range(SIZE)] for _ in range(SIZE)]
        for p in snap["pieces"]:
            ch = "d" if p["owner"] == "dark" else "l"
            cells[p["row"]][p["col"]] = ch.upper() if p["king"] else ch
        for row in range(SIZE - 1, -1, -1):
            write(f"{row} " + " ".join(cells[row]))
        write("  " + " ".join(str(c) for c in range(SIZE)))
        selected = snap["selected"]
        sel = f" selected {selected[0]} {selected[1]}" if selected else ""
        write(f"turn {snap['active']} phase {snap['phase']}{sel}")

    def cmd_moves(self, write: Writer) -> None:
        write("moves " + " ".join(m.to_notation() for m in self.game.legal_moves()))

    def cmd_setoption(self, args: List[str], write: Writer) -> None:
        # setoption name <name> [value <value>]
        if args and args[0] == "name":
            args = args[1:]
        name_tokens: List[str] = []
        while args and args[0] != "value":
            name_tokens.append(args.pop(0))
        value = " ".join(args[1:]).strip() if args else ""
        name = "".join(name_tokens).strip().lower()
        if name != "mandatorycapture":
            write(f"error unknown option {' '.join(name_tokens)!r}")
            return
        try:
            self.mandatory_capture = parse_bool(value)
        except ValueError as e:
            write(f"error {e}")
            return
        self.game.mandatory_capture = self.mandatory_capture
        write(f"ok mandatorycapture {str(self.mandatory_capture).lower()}")

    def cmd_save(self, args: List[str], write: Writer) -> None:
        path = args[0] if args else self.settings.save_file
        save_state(path, self.game.active, records_from_game(self.game))
        write(f"saved {path}")

    def cmd_load(self, args: List[str], write: Writer) -> None:
        path = args[0] if args else self.settings.save_file
        active, records = load_state(path)
        self.game = game_from_records(active, records, mandatory_capture=self.mandatory_capture)
        write(f"loaded {path} turn {self.game.active}")

    def dispatch(self, line: str, write: Writer) -> bool:
        """Run one command line; returns False when the session should end."""
        parts = line.split()
        if not parts:
            return True
        cmd, args = parts[0].lower(), parts[1:]
        if cmd == "quit":
            return False
        if cmd == "new":
            self.cmd_new(write)
        elif cmd == "position":
            self.cmd_position(args, write)
        elif cmd == "click":
            self.cmd_click(args, write)
        elif cmd == "move":
            self.cmd_move(args, write)
        elif cmd == "board":
            self.cmd_board(write)
        elif cmd == "moves":
            self.cmd_moves(write)
        elif cmd == "setoption":
            self.cmd_setoption(args, write)
        elif cmd == "save":
            self.cmd_save(args, write)
        elif cmd == "load":
            self.cmd_load(args, write)
        else:
            write(f"error unknown command {cmd!r}")
        return True


def _default_writer(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def run_console(settings: Optional[Settings] = None, load_path: Optional[str] = None) -> int:
    """Read commands from stdin until ``quit`` or EOF.

    A save file that cannot be read or written ends the session with exit
    status 1.
    """
    session = ConsoleSession(settings)
    try:
        if load_path is not None:
            session.cmd_load([load_path], _default_writer)
        for raw in sys.stdin:
            if not session.dispatch(raw.strip(), _default_writer):
                break
    except PersistenceError as e:
        logger.error("save file error: %s", e)
        _default_writer(f"fatal {e}")
        return 1
    return 0
