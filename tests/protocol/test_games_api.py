from __future__ import annotations

from fastapi.testclient import TestClient

from checkers.config import Settings
from checkers.engine.board import STARTPOS
from checkers.protocol.http.app import create_app


CHAIN_POSITION = "8/8/4l3/8/2l5/1d6/8/8 d"


def _client(**kwargs) -> TestClient:
    return TestClient(create_app(Settings(**kwargs)))


def _new_game(client: TestClient, **body) -> str:
    r = client.post("/api/games", json=body) if body else client.post("/api/games")
    assert r.status_code == 200
    return r.json()["game_id"]


def test_create_game_and_get_state() -> None:
    client = _client()
    r = client.post("/api/games")
    assert r.status_code == 200
    body = r.json()
    assert body["game_id"]
    assert body["position"] == STARTPOS

    state = client.get(f"/api/games/{body['game_id']}/state").json()
    assert state["active_player"] == "dark"
    assert state["phase"] == "idle"
    assert state["selected"] is None
    assert len(state["pieces"]) == 24
    assert len(state["legal_moves"]) == 7
    assert state["game_over"] is False and state["winner"] is None
    assert state["last_move"] is None and state["move_history"] == []
    assert state["mandatory_capture"] is False


def test_unknown_game_404() -> None:
    client = _client()
    r = client.get("/api/games/does-not-exist/state")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"


def test_input_select_and_move() -> None:
    client = _client()
    gid = _new_game(client)

    r = client.post(f"/api/games/{gid}/input", json={"row": 2, "col": 1})
    assert r.status_code == 200
    assert r.json()["outcome"] == "selected"
    assert r.json()["state"]["selected"] == [2, 1]

    r = client.post(f"/api/games/{gid}/input", json={"row": 3, "col": 2})
    body = r.json()
    assert body["outcome"] == "moved"
    assert body["state"]["active_player"] == "light"
    assert body["state"]["last_move"] == "b3-c4"


def test_out_of_bounds_input_is_ignored() -> None:
    client = _client()
    gid = _new_game(client)
    r = client.post(f"/api/games/{gid}/input", json={"row": 12, "col": -3})
    assert r.status_code == 200
    assert r.json()["outcome"] == "ignored"
    assert r.json()["state"]["position"] == STARTPOS


def test_input_validation_error_422() -> None:
    client = _client()
    gid = _new_game(client)
    r = client.post(f"/api/games/{gid}/input", json={"row": 2})
    assert r.status_code == 422
    err = r.json()["error"]
    assert err["code"] == "unprocessable_entity"
    assert any(fe["field"].endswith("col") for fe in err["field_errors"])


def test_move_endpoint() -> None:
    client = _client()
    gid = _new_game(client)
    r = client.post(f"/api/games/{gid}/move", json={"move": "b3-c4"})
    assert r.status_code == 200
    assert r.json()["active_player"] == "light"
    assert r.json()["move_history"] == ["b3-c4"]


def test_move_endpoint_rejects_illegal_and_garbage() -> None:
    client = _client()
    gid = _new_game(client)
    r = client.post(f"/api/games/{gid}/move", json={"move": "b3-b5"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"

    r = client.post(f"/api/games/{gid}/move", json={"move": "zz"})
    assert r.status_code == 400

    state = client.get(f"/api/games/{gid}/state").json()
    assert state["position"] == STARTPOS and state["selected"] is None


def test_capture_chain_over_http() -> None:
    client = _client()
    gid = _new_game(client)
    r = client.post(f"/api/games/{gid}/position", json={"position": CHAIN_POSITION})
    assert r.status_code == 200
    assert r.json()["legal_moves"] == ["b3xd5", "b3-a4"]

    r = client.post(f"/api/games/{gid}/move", json={"move": "b3xd5"})
    state = r.json()
    assert state["phase"] == "must_continue_capture"
    assert state["active_player"] == "dark"
    assert state["legal_moves"] == ["d5xf7"]
    mover = next(p for p in state["pieces"] if p["selected"])
    assert mover["capturing"] is True

    r = client.post(f"/api/games/{gid}/move", json={"move": "d5xf7"})
    state = r.json()
    assert state["active_player"] == "light"
    assert state["game_over"] is True
    assert state["winner"] == "dark"


def test_set_position_validation() -> None:
    client = _client()
    gid = _new_game(client)
    r = client.post(f"/api/games/{gid}/position", json={"position": "not a position"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"


def test_mandatory_capture_flag() -> None:
    client = _client(mandatory_capture=True)
    gid = _new_game(client)
    assert client.get(f"/api/games/{gid}/state").json()["mandatory_capture"] is True

    gid2 = _new_game(client, mandatory_capture=False)
    assert client.get(f"/api/games/{gid2}/state").json()["mandatory_capture"] is False

    client.post(f"/api/games/{gid}/position", json={"position": CHAIN_POSITION})
    state = client.get(f"/api/games/{gid}/state").json()
    assert state["legal_moves"] == ["b3xd5"]


def test_export_and_import() -> None:
    client = _client()
    gid = _new_game(client)
    client.post(f"/api/games/{gid}/move", json={"move": "b3-c4"})
    exported = client.get(f"/api/games/{gid}/export").json()
    assert exported["text"].startswith("light\n")

    r = client.post("/api/games/import", json={"text": exported["text"]})
    assert r.status_code == 200
    new_id = r.json()["game_id"]
    assert new_id != gid
    assert r.json()["position"] == client.get(f"/api/games/{gid}/state").json()["position"]


def test_import_corrupt_text_400() -> None:
    client = _client()
    r = client.post("/api/games/import", json={"text": "dark\ndark 9 9 true\n"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"


def test_delete_game() -> None:
    client = _client()
    gid = _new_game(client)
    assert client.delete(f"/api/games/{gid}").json() == {"deleted": True}
    assert client.get(f"/api/games/{gid}/state").status_code == 404
    assert client.delete(f"/api/games/{gid}").status_code == 404
