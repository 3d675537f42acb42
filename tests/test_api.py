"""
Testing API via TestClient
- Trick: get_controller is overridden so the computer's move is predictable.
- Tool: app.dependency_overrides swaps the dependency for one test at a time.
"""

import pytest

import rps_api.main as app_main
from rps_api.lifecycle import MatchController
from rps_api.repository import DBGameStore

@pytest.fixture
def computer_plays(db_session):
    def _set(move: str):
        app_main.app.dependency_overrides[app_main.get_controller] = (
            lambda: MatchController(DBGameStore(db_session), draw_move=lambda: move)
        )
    return _set


def create_and_join(client, theme="galaxy"):
    created = client.post("/matches", json={"player_name": "Alice", "theme": theme})
    assert created.status_code == 201
    body = created.json()
    match_id = body["match"]["id"]
    alice_id = body["player"]["id"]

    joined = client.post(f"/matches/{match_id}/join", json={"player_name": "Bob"})
    assert joined.status_code == 200
    bob_id = joined.json()["player"]["id"]
    return match_id, alice_id, bob_id


def test_two_player_match_over_http(client):
    """
    Flow:
    1) Alice creates a galaxy match, Bob joins.
    2) Alice plays rock -> not complete yet.
    3) Bob plays scissors -> complete, Alice wins.
    4) A late move returns already_completed with the same results.
    """
    match_id, alice_id, bob_id = create_and_join(client)

    match = client.get(f"/matches/{match_id}").json()
    assert match["status"] == "in_progress"
    assert [p["player_name"] for p in match["participants"]] == ["Alice", "Bob"]

    r = client.post(f"/matches/{match_id}/moves", json={"player_id": alice_id, "move": "rock"})
    assert r.status_code == 200
    assert r.json()["game_complete"] is False

    r = client.post(f"/matches/{match_id}/moves", json={"player_id": bob_id, "move": "scissors"})
    assert r.status_code == 200
    body = r.json()
    assert body["game_complete"] is True
    assert body["results"] == {str(alice_id): "win", str(bob_id): "lose"}

    r = client.post(f"/matches/{match_id}/moves", json={"player_id": bob_id, "move": "paper"})
    assert r.status_code == 200
    assert r.json()["already_completed"] is True
    assert r.json()["results"] == {str(alice_id): "win", str(bob_id): "lose"}

    match = client.get(f"/matches/{match_id}").json()
    assert match["status"] == "completed"
    assert match["completed_at"] is not None

    recent = client.get("/matches/recent").json()["matches"]
    assert len(recent) == 1
    assert recent[0]["player1_name"] == "Alice"
    assert recent[0]["player1_result"] == "win"
    assert recent[0]["player2_choice"] == "scissors"


def test_create_validation_errors(client):
    r = client.post("/matches", json={"player_name": "", "theme": "galaxy"})
    assert r.status_code == 400
    r = client.post("/matches", json={"player_name": "Alice", "theme": "jungle"})
    assert r.status_code == 400
    # Missing field -> FastAPI request validation
    r = client.post("/matches", json={"player_name": "Alice"})
    assert r.status_code == 422
    # Longer than the name column -> 400, not a store failure
    r = client.post("/matches", json={"player_name": "A" * 65, "theme": "galaxy"})
    assert r.status_code == 400
    r = client.post("/play", json={"player_name": "A" * 65, "move": "rock"})
    assert r.status_code == 400


def test_join_errors(client):
    r = client.post("/matches/unknown/join", json={"player_name": "Bob"})
    assert r.status_code == 404

    match_id, _, _ = create_and_join(client)
    r = client.post(f"/matches/{match_id}/join", json={"player_name": "Carol"})
    assert r.status_code == 404


def test_move_errors(client):
    match_id, alice_id, _ = create_and_join(client)

    r = client.post(f"/matches/{match_id}/moves", json={"player_id": alice_id, "move": "lizard"})
    assert r.status_code == 400
    assert client.get(f"/matches/{match_id}").json()["participants"][0]["move"] is None

    r = client.post(f"/matches/{match_id}/moves", json={"player_id": alice_id, "move": "rock"})
    assert r.status_code == 200
    r = client.post(f"/matches/{match_id}/moves", json={"player_id": alice_id, "move": "paper"})
    assert r.status_code == 409

    r = client.post("/matches/nope/moves", json={"player_id": alice_id, "move": "rock"})
    assert r.status_code == 404


def test_find_waiting_match_by_theme(client):
    created = client.post("/matches", json={"player_name": "Alice", "theme": "halloween"}).json()

    r = client.get("/matches", params={"theme": "halloween"})
    assert r.status_code == 200
    assert r.json()["match"]["id"] == created["match"]["id"]

    r = client.get("/matches", params={"theme": "galaxy"})
    assert r.json()["match"] is None


def test_single_player_draw_updates_only_draws(client, computer_plays):
    computer_plays("paper")

    r = client.post("/play", json={"player_name": "Alice", "move": "paper"})
    assert r.status_code == 200
    body = r.json()
    assert body["computer_move"] == "paper"
    assert body["result"] == "draw"
    assert body["stats"]["draws"] == 1
    assert body["stats"]["wins"] == 0
    assert body["stats"]["losses"] == 0

    r = client.post("/play", json={"player_name": "Alice", "move": "lizard"})
    assert r.status_code == 400


def test_leaderboard_and_stats(client, computer_plays):
    computer_plays("scissors")
    client.post("/play", json={"player_name": "Alice", "move": "rock"})   # win
    client.post("/play", json={"player_name": "Alice", "move": "paper"})  # lose
    client.post("/play", json={"player_name": "Bob", "move": "rock"})     # win
    client.post("/play", json={"player_name": "Bob", "move": "rock"})     # win

    board = client.get("/leaderboard").json()["leaderboard"]
    assert [e["player_name"] for e in board] == ["Bob", "Alice"]
    assert board[1]["total_games"] == 2
    assert board[1]["win_percentage"] == 50

    stats = client.get("/stats").json()["stats"]
    assert stats["total_games"] == 4
    assert stats["total_players"] == 2

    player = client.get("/stats", params={"player": "Alice"}).json()
    assert player["player_stats"]["wins"] == 1
    assert len(player["recent_games"]) == 2

    nobody = client.get("/stats", params={"player": "Zed"}).json()
    assert nobody["player_stats"] is None
    assert nobody["recent_games"] == []


def test_record_and_list_games(client):
    r = client.post("/games", json={
        "player1_name": "Alice",
        "player2_name": "Bob",
        "player1_choice": "rock",
        "player2_choice": "scissors",
        "winner": "player1",
    })
    assert r.status_code == 201
    assert r.json()["game"]["game_mode"] == "local"

    r = client.post("/games", json={
        "player1_name": "Alice",
        "player2_name": "Bob",
        "player1_choice": "rock",
        "player2_choice": "spock",
    })
    assert r.status_code == 400

    games = client.get("/games", params={"player": "bob"}).json()["games"]
    assert len(games) == 1
    assert client.get("/games", params={"player": "carol"}).json()["games"] == []
