"""
Labels for clarity.
"""

from typing import Literal, Tuple

Move = Literal["rock", "paper", "scissors"]
Outcome = Literal["win", "lose", "draw"]
MatchStatus = Literal["waiting", "in_progress", "completed"]
Theme = Literal["halloween", "galaxy"]
Winner = Literal["player1", "player2", "tie"]
GameMode = Literal["single_player", "local"]

MOVES: Tuple[str, ...] = ("rock", "paper", "scissors")
OUTCOMES: Tuple[str, ...] = ("win", "lose", "draw")
MATCH_STATUSES: Tuple[str, ...] = ("waiting", "in_progress", "completed")
THEMES: Tuple[str, ...] = ("halloween", "galaxy")
WINNERS: Tuple[str, ...] = ("player1", "player2", "tie")

COMPUTER_NAME = "Computer"
# players.name / leaderboard.player_name column width
MAX_NAME_LENGTH = 64
