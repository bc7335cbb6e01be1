from __future__ import annotations

import pytest

from checkers.engine.board import STARTPOS, Board
from checkers.engine.game import Game, InputOutcome, Phase, TurnState
from checkers.engine.move import IllegalMoveError
from checkers.engine.piece import DARK, LIGHT, Piece


def _game(*pieces: Piece, active: str = DARK, strict: bool = False) -> Game:
    b = Board.empty()
    for p in pieces:
        b.add(p)
    return Game(board=b, state=TurnState(active=active), mandatory_capture=strict)


def _chain_game() -> Game:
    return _game(Piece(DARK, 2, 1), Piece(LIGHT, 3, 2), Piece(LIGHT, 5, 4), Piece(DARK, 0, 7))


def test_new_game_state() -> None:
    g = Game.new()
    assert g.active == DARK
    assert g.state.phase is Phase.IDLE
    assert g.selected is None
    assert g.to_position() == STARTPOS


def test_select_then_step_flips_turn() -> None:
    g = Game.new()
    piece = g.board.occupant_at(2, 1)
    assert g.handle_input(2, 1) is InputOutcome.SELECTED
    assert piece.selected and g.state.phase is Phase.SELECTED
    assert g.handle_input(3, 2) is InputOutcome.MOVED
    assert g.board.occupant_at(3, 2) is piece
    assert not piece.king and not piece.selected
    assert g.active == LIGHT
    assert g.state.phase is Phase.IDLE and g.selected is None
    assert g.move_history_notation() == ["b3-c4"]


@pytest.mark.parametrize("square", [(5, 0), (0, 1), (3, 2), (-1, 4), (8, 8)])
def test_selection_refused(square) -> None:
    # Opponent piece, blocked own piece, empty square, off the board
    g = Game.new()
    before = g.to_position()
    assert g.handle_input(*square) is InputOutcome.IGNORED
    assert g.selected is None and g.to_position() == before


def test_clicking_selected_square_deselects() -> None:
    g = Game.new()
    g.handle_input(2, 1)
    assert g.handle_input(2, 1) is InputOutcome.DESELECTED
    assert g.selected is None
    assert not g.board.occupant_at(2, 1).selected
    assert g.active == DARK


def test_invalid_targets_are_noops_while_selected() -> None:
    g = Game.new()
    g.handle_input(2, 1)
    before = g.to_position()
    for target in [(4, 1), (2, 3), (1, 0), (9, 0), (3, 1)]:
        assert g.handle_input(*target) is InputOutcome.IGNORED
    assert g.to_position() == before
    assert g.selected is g.board.occupant_at(2, 1)
    assert g.active == DARK


def test_capture_chain_keeps_turn_until_done() -> None:
    g = _chain_game()
    piece = g.board.occupant_at(2, 1)
    assert g.handle_input(2, 1) is InputOutcome.SELECTED
    assert g.handle_input(4, 3) is InputOutcome.CONTINUE_CAPTURE
    assert g.board.occupant_at(3, 2) is None
    assert piece.capturing and piece.selected
    assert g.active == DARK
    assert g.state.phase is Phase.MUST_CONTINUE_CAPTURE

    # Neither deselecting, switching pieces, nor a plain step is accepted
    assert g.handle_input(4, 3) is InputOutcome.IGNORED
    assert g.handle_input(0, 7) is InputOutcome.IGNORED
    assert g.handle_input(5, 2) is InputOutcome.IGNORED
    assert g.selected is piece and g.active == DARK

    assert g.handle_input(6, 5) is InputOutcome.MOVED
    assert g.active == LIGHT
    assert g.board.count(LIGHT) == 0
    assert not piece.capturing and not piece.selected
    assert g.move_history_notation() == ["b3xd5", "d5xf7"]


def test_single_capture_without_continuation_flips_turn() -> None:
    g = _game(Piece(DARK, 2, 1), Piece(LIGHT, 3, 2), Piece(LIGHT, 7, 0))
    g.handle_input(2, 1)
    assert g.handle_input(4, 3) is InputOutcome.MOVED
    assert g.active == LIGHT


def test_turn_flips_once_per_completed_move() -> None:
    g = Game.new()
    flips = 0
    prev = g.active
    for frm, to in [((2, 1), (3, 2)), ((5, 0), (4, 1)), ((2, 3), (3, 4))]:
        g.handle_input(*frm)
        g.handle_input(*to)
        if g.active != prev:
            flips += 1
            prev = g.active
    assert flips == 3
    assert g.active == LIGHT


def test_relaxed_mode_allows_ignoring_capture() -> None:
    g = _game(Piece(DARK, 2, 1), Piece(DARK, 2, 5), Piece(LIGHT, 3, 2))
    assert g.handle_input(2, 5) is InputOutcome.SELECTED
    assert g.handle_input(3, 6) is InputOutcome.MOVED


def test_strict_mode_forces_capture() -> None:
    g = _game(Piece(DARK, 2, 1), Piece(DARK, 2, 5), Piece(LIGHT, 3, 2), strict=True)
    assert g.handle_input(2, 5) is InputOutcome.IGNORED
    assert g.handle_input(2, 1) is InputOutcome.SELECTED
    assert g.handle_input(3, 0) is InputOutcome.IGNORED
    assert g.handle_input(4, 3) is InputOutcome.MOVED
    assert [m.to_notation() for m in g.legal_moves()] == []


def test_legal_moves_from_start() -> None:
    g = Game.new()
    moves = {m.to_notation() for m in g.legal_moves()}
    assert len(moves) == 7
    assert {"b3-a4", "b3-c4", "h3-g4"} <= moves


def test_legal_moves_strict_lists_only_captures() -> None:
    g = _game(Piece(DARK, 2, 1), Piece(DARK, 2, 5), Piece(LIGHT, 3, 2), strict=True)
    assert [m.to_notation() for m in g.legal_moves()] == ["b3xd5"]
    g.mandatory_capture = False
    assert len(g.legal_moves()) == 4


def test_legal_moves_during_chain() -> None:
    g = _chain_game()
    g.handle_input(2, 1)
    g.handle_input(4, 3)
    assert [m.to_notation() for m in g.legal_moves()] == ["d5xf7"]


def test_apply_move() -> None:
    g = Game.new()
    assert g.apply_move((2, 1), (3, 2)) is InputOutcome.MOVED
    assert g.active == LIGHT


def test_apply_move_illegal_restores_selection() -> None:
    g = Game.new()
    with pytest.raises(IllegalMoveError):
        g.apply_move((2, 1), (4, 3))
    assert g.selected is None and g.state.phase is Phase.IDLE
    with pytest.raises(IllegalMoveError):
        g.apply_move((5, 0), (4, 1))
    assert g.active == DARK


def test_apply_move_failure_keeps_existing_selection() -> None:
    g = Game.new()
    assert g.handle_input(2, 1) is InputOutcome.SELECTED
    held = g.board.occupant_at(2, 1)

    # another piece, but the destination is not reachable from it
    with pytest.raises(IllegalMoveError):
        g.apply_move((2, 3), (4, 5))
    assert g.selected is held and held.selected is True
    assert g.state.phase is Phase.SELECTED
    assert g.board.occupant_at(2, 3).selected is False

    # destination is the selected piece's own square
    with pytest.raises(IllegalMoveError):
        g.apply_move((2, 1), (2, 1))
    assert g.selected is held and g.state.phase is Phase.SELECTED

    # a square holding nothing movable
    with pytest.raises(IllegalMoveError):
        g.apply_move((1, 0), (2, 1))
    assert g.selected is held and g.active == DARK

    assert g.apply_move((2, 3), (3, 4)) is InputOutcome.MOVED
    assert held.selected is False and g.selected is None


def test_apply_move_refuses_switch_mid_chain() -> None:
    g = _chain_game()
    g.apply_move((2, 1), (4, 3))
    with pytest.raises(IllegalMoveError):
        g.apply_move((0, 7), (1, 6))
    assert g.apply_move((4, 3), (6, 5)) is InputOutcome.MOVED


def test_game_over_and_winner() -> None:
    g = _game(Piece(DARK, 7, 0), Piece(LIGHT, 0, 1))
    assert g.game_over()
    assert g.winner() == LIGHT

    g2 = _game(Piece(LIGHT, 5, 0))
    assert g2.game_over() and g2.winner() == LIGHT

    assert not Game.new().game_over()
    assert Game.new().winner() is None


def test_records_roundtrip_ignores_transient_flags() -> None:
    g = _chain_game()
    g.handle_input(2, 1)
    g.handle_input(4, 3)
    records = g.to_records()
    g2 = Game.from_records(g.active, list(reversed(records)))
    assert g2.to_position() == g.to_position()
    assert g2.state.phase is Phase.IDLE
    assert all(not p.selected and not p.capturing for p in g2.board.pieces())


def test_from_records_rejects_overlap() -> None:
    with pytest.raises(ValueError):
        Game.from_records(DARK, [(DARK, 2, 1, False), (LIGHT, 2, 1, False)])
    with pytest.raises(ValueError):
        Game.from_records("red", [])


def test_from_records_rejects_light_square() -> None:
    with pytest.raises(ValueError):
        Game.from_records(DARK, [(DARK, 2, 2, False)])


def test_snapshot_exposes_flags() -> None:
    g = _chain_game()
    g.handle_input(2, 1)
    g.handle_input(4, 3)
    snap = g.snapshot()
    assert snap["active"] == DARK
    assert snap["phase"] == "must_continue_capture"
    assert snap["selected"] == [4, 3]
    mover = next(p for p in snap["pieces"] if (p["row"], p["col"]) == (4, 3))
    assert mover == {
        "owner": DARK,
        "row": 4,
        "col": 3,
        "king": False,
        "selected": True,
        "capturing": True,
    }
