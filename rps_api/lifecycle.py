"""
Match lifecycle: waiting -> in_progress -> completed.

MatchController is built per request around a store (DBGameStore or
InMemoryGameStore). It validates input, drives the status transitions and calls
the engine once both moves are in. The store does the conditional updates, so
the controller never needs a read-then-write pair to decide who finalizes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Literal, Optional

import structlog

from .engine import is_valid_move, resolve, winner_label
from .errors import ConflictError, NotFoundError, ValidationError
from .random_client import fetch_computer_move
from .store import Counters, GameRecord, MatchRecord, PlayerRecord
from .types import COMPUTER_NAME, MAX_NAME_LENGTH, MOVES, THEMES, WINNERS, Move, Outcome, Theme

logger = structlog.get_logger()

MoveStatus = Literal["recorded", "completed", "already_completed"]

@dataclass
class MatchJoined:
    match: MatchRecord
    player: PlayerRecord

@dataclass
class MoveResult:
    status: MoveStatus
    # player_id -> outcome; empty until the match completes
    results: Dict[int, Outcome] = field(default_factory=dict)

    @property
    def game_complete(self) -> bool:
        return self.status != "recorded"

@dataclass
class SinglePlayResult:
    player_name: str
    player_move: Move
    computer_move: Move
    outcome: Outcome
    game: GameRecord
    stats: Counters

@dataclass
class ChoiceShare:
    choice: str
    count: int
    percentage: int

@dataclass
class GlobalStats:
    total_games: int
    total_players: int
    choice_distribution: List[ChoiceShare]

@dataclass
class PlayerStats:
    player_stats: Optional[Counters]
    recent_games: List[GameRecord]


def _clean_name(player_name) -> str:
    name = player_name.strip() if isinstance(player_name, str) else ""
    if not name:
        raise ValidationError("Player name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Player name must be at most {MAX_NAME_LENGTH} characters")
    return name

def _check_theme(theme) -> Theme:
    if not theme:
        raise ValidationError("Theme is required")
    if theme not in THEMES:
        raise ValidationError(f"Invalid theme. Must be one of {', '.join(THEMES)}")
    return theme

def _check_move(move) -> Move:
    if not is_valid_move(move):
        raise ValidationError("Invalid move. Must be rock, paper, or scissors")
    return move


class MatchController:
    def __init__(self, store, draw_move: Callable[[], Move] = fetch_computer_move):
        self.store = store
        self.draw_move = draw_move

    # --- Two-player matches ---

    def create(self, player_name: str, theme: Theme) -> MatchJoined:
        theme = _check_theme(theme)
        name = _clean_name(player_name)

        player = self.store.find_or_create_player(name)
        match = self.store.create_match(theme, player.id)
        logger.info("match created", match_id=match.id, player_id=player.id, theme=theme)
        return MatchJoined(match=match, player=player)

    def join(self, match_id: str, player_name: str) -> MatchJoined:
        name = _clean_name(player_name)
        if not match_id:
            raise ValidationError("Match ID is required for joining")

        player = self.store.find_or_create_player(name)
        match = self.store.get_match_if_waiting(match_id)
        if match is None:
            raise NotFoundError("Match not found or not available")

        # Re-joining a match you are already in changes nothing
        if any(p.player_id == player.id for p in match.participants):
            return MatchJoined(match=match, player=player)

        if not self.store.join_match(match_id, player.id):
            # Another player took the second seat first
            raise NotFoundError("Match not found or not available")

        logger.info("match joined", match_id=match_id, player_id=player.id)
        return MatchJoined(match=self.store.get_match(match_id), player=player)

    def submit_move(self, match_id: str, player_id: int, move: Move) -> MoveResult:
        move = _check_move(move)

        match = self.store.get_match(match_id)
        if match is None:
            raise NotFoundError("Match not found")
        if match.status == "completed":
            return MoveResult(status="already_completed", results=match.outcomes())
        if not any(p.player_id == player_id for p in match.participants):
            raise NotFoundError("Player is not part of this match")

        if not self.store.set_move(match_id, player_id, move):
            # Our move is already stored; the match may have completed meanwhile
            current = self.store.get_match(match_id)
            if current.status == "completed":
                return MoveResult(status="already_completed", results=current.outcomes())
            if len(current.participants) < 2 or any(p.move is None for p in current.participants):
                raise ConflictError("Move already submitted for this match")
            # Both moves are in but nobody finalized: finish with the stored moves
            logger.info("finalizing from stored moves", match_id=match_id, player_id=player_id)

        participants = self.store.list_participants(match_id)
        if len(participants) < 2 or any(p.move is None for p in participants):
            return MoveResult(status="recorded")

        first, second = participants[0], participants[1]
        first_outcome, second_outcome = resolve(first.move, second.move)
        outcomes = {first.id: first_outcome, second.id: second_outcome}
        scores = {first.player_name: first_outcome, second.player_name: second_outcome}

        # Counters are bumped in the same transaction as the status change
        if not self.store.complete_match(match_id, outcomes, datetime.utcnow(), scores=scores):
            # The other submission finalized first
            logger.info("match already finalized", match_id=match_id, player_id=player_id)
            stored = self.store.get_match(match_id)
            return MoveResult(status="already_completed", results=stored.outcomes())

        logger.info(
            "match completed",
            match_id=match_id,
            results={first.player_name: first_outcome, second.player_name: second_outcome},
        )
        return MoveResult(
            status="completed",
            results={first.player_id: first_outcome, second.player_id: second_outcome},
        )

    # --- Single player ---

    def play_vs_computer(self, player_name: str, move: Move, theme: Optional[Theme] = None) -> SinglePlayResult:
        move = _check_move(move)
        name = _clean_name(player_name)
        if theme is not None:
            theme = _check_theme(theme)

        computer_move = self.draw_move()
        outcome, _ = resolve(move, computer_move)

        game = self.store.record_game(
            player1_name=name,
            player2_name=COMPUTER_NAME,
            player1_choice=move,
            player2_choice=computer_move,
            winner=winner_label(outcome),
            game_mode="single_player",
            theme=theme,
        )
        stats = self.store.increment(name, outcome)
        logger.info("single player game", player=name, move=move, computer_move=computer_move, outcome=outcome)
        return SinglePlayResult(
            player_name=name,
            player_move=move,
            computer_move=computer_move,
            outcome=outcome,
            game=game,
            stats=stats,
        )

    def record_game(
        self,
        player1_name: str,
        player2_name: str,
        player1_choice: Move,
        player2_choice: Move,
        winner: Optional[str] = None,
    ) -> GameRecord:
        """Save a game both players played on one device."""
        if not player1_name or not player2_name or not player1_choice or not player2_choice:
            raise ValidationError("Missing required fields")
        if not is_valid_move(player1_choice) or not is_valid_move(player2_choice):
            raise ValidationError("Invalid choice. Must be rock, paper, or scissors")
        if winner and winner not in WINNERS:
            raise ValidationError("Invalid winner value")

        return self.store.record_game(
            player1_name=_clean_name(player1_name),
            player2_name=_clean_name(player2_name),
            player1_choice=player1_choice,
            player2_choice=player2_choice,
            winner=winner or None,
            game_mode="local",
        )

    # --- Read side ---

    def get_match(self, match_id: str) -> MatchRecord:
        match = self.store.get_match(match_id)
        if match is None:
            raise NotFoundError("Match not found")
        return match

    def find_waiting_match(self, theme: Theme) -> Optional[MatchRecord]:
        return self.store.find_waiting_match(_check_theme(theme))

    def recent_matches(self, limit: int = 10) -> List[MatchRecord]:
        # A completed match always has both participants; skip anything odd
        return [m for m in self.store.recent_matches(limit) if len(m.participants) == 2]

    def leaderboard(self, limit: int = 50) -> List[Counters]:
        return self.store.leaderboard(limit)

    def player_stats(self, player_name: str) -> PlayerStats:
        name = _clean_name(player_name)
        return PlayerStats(
            player_stats=self.store.read_counters(name),
            recent_games=self.store.recent_games(name, limit=5),
        )

    def global_stats(self) -> GlobalStats:
        counts = self.store.choice_counts()
        total_choices = sum(counts.values())
        distribution = [
            ChoiceShare(
                choice=choice,
                count=counts.get(choice, 0),
                percentage=round(counts.get(choice, 0) / total_choices * 100) if total_choices else 0,
            )
            for choice in MOVES
        ]
        return GlobalStats(
            total_games=self.store.count_games(),
            total_players=self.store.count_players(),
            choice_distribution=distribution,
        )

    def list_games(self, limit: int = 10, offset: int = 0, player: Optional[str] = None) -> List[GameRecord]:
        return self.store.list_games(limit=limit, offset=offset, player=player)
