"""
Pure game logic (no HTTP, no storage).

Each move beats exactly one other move:
- rock beats scissors
- scissors beats paper
- paper beats rock

Callers validate moves before reaching resolve(); it assumes one of the three.
"""

from typing import Tuple
from .types import Move, Outcome, Winner, MOVES

# move -> the move it beats
BEATS = {
    "rock": "scissors",
    "scissors": "paper",
    "paper": "rock",
}

def is_valid_move(value) -> bool:
    return isinstance(value, str) and value in MOVES

def beats(move_a: Move, move_b: Move) -> bool:
    return BEATS[move_a] == move_b

def resolve(move_a: Move, move_b: Move) -> Tuple[Outcome, Outcome]:
    """
    Example:
      resolve("rock", "scissors") -> ("win", "lose")
      resolve("paper", "paper")   -> ("draw", "draw")
    The two outcomes are always complementary.
    """
    if move_a == move_b:
        return ("draw", "draw")
    if beats(move_a, move_b):
        return ("win", "lose")
    return ("lose", "win")

def winner_label(outcome_a: Outcome) -> Winner:
    """Outcome of the first side -> games.winner label."""
    if outcome_a == "win":
        return "player1"
    if outcome_a == "lose":
        return "player2"
    return "tie"
