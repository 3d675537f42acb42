# tests/test_lifecycle.py
import pytest
from sqlalchemy.exc import OperationalError

from rps_api.errors import NotFoundError, StoreError, ValidationError
from rps_api.lifecycle import MatchController
from rps_api.repository import DBGameStore

def test_two_player_flow_on_db(db_session):
    controller = MatchController(DBGameStore(db_session))

    created = controller.create("Alice", "galaxy")
    match_id = created.match.id
    alice = created.player
    bob = controller.join(match_id, "Bob").player

    assert controller.submit_move(match_id, alice.id, "rock").status == "recorded"
    done = controller.submit_move(match_id, bob.id, "scissors")
    assert done.status == "completed"
    assert done.results == {alice.id: "win", bob.id: "lose"}

    match = controller.get_match(match_id)
    assert match.status == "completed"
    assert {p.player_name: p.result for p in match.participants} == {"Alice": "win", "Bob": "lose"}

    # Late call after completion does not touch stored outcomes or counters
    late = controller.submit_move(match_id, bob.id, "rock")
    assert late.status == "already_completed"
    assert late.results == {alice.id: "win", bob.id: "lose"}
    board = {c.player_name: (c.wins, c.losses, c.draws) for c in controller.leaderboard()}
    assert board == {"Alice": (1, 0, 0), "Bob": (0, 1, 0)}

def test_join_rules_on_db(db_session):
    controller = MatchController(DBGameStore(db_session))
    created = controller.create("Alice", "halloween")
    match_id = created.match.id

    # Creator joining their own waiting match: no duplicate row, still waiting
    again = controller.join(match_id, "Alice")
    assert again.match.status == "waiting"
    assert len(again.match.participants) == 1

    controller.join(match_id, "Bob")
    with pytest.raises(NotFoundError):
        controller.join(match_id, "Carol")
    assert len(controller.get_match(match_id).participants) == 2

def test_lizard_is_rejected_before_persistence(db_session):
    store = DBGameStore(db_session)
    controller = MatchController(store)
    created = controller.create("Alice", "galaxy")

    with pytest.raises(ValidationError):
        controller.submit_move(created.match.id, created.player.id, "lizard")
    assert [p.move for p in store.list_participants(created.match.id)] == [None]

def test_single_player_on_db(db_session):
    controller = MatchController(DBGameStore(db_session), draw_move=lambda: "rock")

    played = controller.play_vs_computer("Alice", "paper", theme="halloween")
    assert played.outcome == "win"
    assert played.game.winner == "player1"
    assert played.game.theme == "halloween"
    assert (played.stats.wins, played.stats.losses, played.stats.draws) == (1, 0, 0)

    played = controller.play_vs_computer("Alice", "rock")
    assert played.outcome == "draw"
    assert (played.stats.wins, played.stats.losses, played.stats.draws) == (1, 0, 1)

    found = controller.player_stats("Alice")
    assert found.player_stats.total_games == 2
    assert len(found.recent_games) == 2

def test_player_stats_exact_name_only(db_session):
    controller = MatchController(DBGameStore(db_session), draw_move=lambda: "rock")
    controller.play_vs_computer("Al", "rock")
    controller.play_vs_computer("Alice", "rock")

    found = controller.player_stats("Al")
    assert [g.player1_name for g in found.recent_games] == ["Al"]

def test_player_stats_keeps_games_buried_under_similar_names(db_session):
    store = DBGameStore(db_session)
    controller = MatchController(store, draw_move=lambda: "rock")
    controller.play_vs_computer("Al", "paper")
    # 55 newer games by a name that contains "Al"
    for _ in range(55):
        store.record_game("Alice", "Computer", "rock", "rock", "tie")

    found = controller.player_stats("Al")
    assert found.player_stats.total_games == 1
    assert [(g.player1_name, g.player1_choice) for g in found.recent_games] == [("Al", "paper")]
    assert len(controller.player_stats("Alice").recent_games) == 5

def test_failed_finalization_scores_nobody_and_can_be_retried(db_session, monkeypatch):
    """
    Flow:
    1) Alice plays rock; Bob plays scissors but the counter write for Bob fails.
    2) Nothing from the finalization sticks: match still in_progress, nobody scored.
    3) Bob retries -> the match completes from the stored moves, both scored once.
    """
    store = DBGameStore(db_session)
    controller = MatchController(store)
    created = controller.create("Alice", "galaxy")
    match_id = created.match.id
    alice = created.player
    bob = controller.join(match_id, "Bob").player
    controller.submit_move(match_id, alice.id, "rock")

    real_bump = store._bump

    def bump_fails_for_bob(player_name, attr):
        if player_name == "Bob":
            raise OperationalError("UPDATE leaderboard", {}, Exception("database is locked"))
        return real_bump(player_name, attr)

    monkeypatch.setattr(store, "_bump", bump_fails_for_bob)
    with pytest.raises(StoreError):
        controller.submit_move(match_id, bob.id, "scissors")
    monkeypatch.setattr(store, "_bump", real_bump)

    match = controller.get_match(match_id)
    assert match.status == "in_progress"
    assert match.outcomes() == {}
    assert store.read_counters("Alice") is None
    assert store.read_counters("Bob") is None

    retry = controller.submit_move(match_id, bob.id, "scissors")
    assert retry.status == "completed"
    assert retry.results == {alice.id: "win", bob.id: "lose"}
    board = {c.player_name: (c.wins, c.losses, c.draws) for c in controller.leaderboard()}
    assert board == {"Alice": (1, 0, 0), "Bob": (0, 1, 0)}

def test_overlong_names_are_rejected(db_session):
    store = DBGameStore(db_session)
    controller = MatchController(store, draw_move=lambda: "rock")
    with pytest.raises(ValidationError):
        controller.create("x" * 65, "galaxy")
    with pytest.raises(ValidationError):
        controller.play_vs_computer("x" * 65, "rock")
    assert store.count_games() == 0

    # Exactly at the column width is fine
    assert controller.create("x" * 64, "galaxy").player.name == "x" * 64

def test_record_game_validation(db_session):
    controller = MatchController(DBGameStore(db_session))
    with pytest.raises(ValidationError):
        controller.record_game("Alice", "Bob", "rock", "lizard")
    with pytest.raises(ValidationError):
        controller.record_game("Alice", "Bob", "rock", "paper", winner="nobody")
    with pytest.raises(ValidationError):
        controller.record_game("", "Bob", "rock", "paper")

    game = controller.record_game("Alice", "Bob", "rock", "paper", winner="player2")
    assert game.game_mode == "local"
    assert game.winner == "player2"
