"""
Testing pure game logic.
"""

import itertools

import pytest

from rps_api.engine import beats, is_valid_move, resolve, winner_label
from rps_api.types import MOVES

COMPLEMENT = {"win": "lose", "lose": "win", "draw": "draw"}

def test_resolve_all_nine_combinations_are_complementary():
    for move_a, move_b in itertools.product(MOVES, repeat=2):
        outcome_a, outcome_b = resolve(move_a, move_b)
        assert outcome_b == COMPLEMENT[outcome_a]
        # draw iff same move
        assert (outcome_a == "draw") == (move_a == move_b)

@pytest.mark.parametrize(
    "winner, loser",
    [("rock", "scissors"), ("scissors", "paper"), ("paper", "rock")],
)
def test_cyclic_dominance(winner, loser):
    assert resolve(winner, loser) == ("win", "lose")
    assert resolve(loser, winner) == ("lose", "win")
    assert beats(winner, loser) is True
    assert beats(loser, winner) is False

def test_is_valid_move():
    assert is_valid_move("rock") is True
    assert is_valid_move("lizard") is False
    assert is_valid_move("") is False
    assert is_valid_move(None) is False
    assert is_valid_move("Rock") is False

def test_winner_label():
    assert winner_label("win") == "player1"
    assert winner_label("lose") == "player2"
    assert winner_label("draw") == "tie"
