"""
In-memory store
Holds players, matches, leaderboard counters and game history in memory.

Same public methods as DBGameStore (repository.py), so the MatchController can
run against either one. Every conditional update happens under one lock.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from itertools import count
from threading import RLock
from typing import Dict, List, Optional
from uuid import uuid4

from .types import GameMode, MatchStatus, Move, Outcome, Theme, Winner

@dataclass
class PlayerRecord:
    id: int
    name: str

@dataclass
class ParticipantRecord:
    id: int
    match_id: str
    player_id: int
    player_name: str
    move: Optional[Move] = None
    result: Optional[Outcome] = None
    joined_at: datetime = field(default_factory=datetime.utcnow)

@dataclass
class MatchRecord:
    id: str
    theme: Theme
    status: MatchStatus = "waiting"
    created_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    participants: List[ParticipantRecord] = field(default_factory=list)

    def outcomes(self) -> Dict[int, Outcome]:
        """player_id -> result, for participants that have one."""
        return {p.player_id: p.result for p in self.participants if p.result is not None}

# Leaderboard row for one player
@dataclass
class Counters:
    player_name: str
    wins: int = 0
    losses: int = 0
    draws: int = 0
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def total_games(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def win_percentage(self) -> int:
        if self.total_games == 0:
            return 0
        return round(self.wins / self.total_games * 100)

# Flat record of a single-player (or locally played) game
@dataclass
class GameRecord:
    id: int
    player1_name: str
    player2_name: str
    player1_choice: Move
    player2_choice: Move
    winner: Optional[Winner]
    game_mode: GameMode = "single_player"
    theme: Optional[Theme] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

# outcome -> counter attribute
COUNTER_FIELDS = {"win": "wins", "lose": "losses", "draw": "draws"}


class InMemoryGameStore:
    def __init__(self) -> None:
        self._lock = RLock()
        self._player_ids = count(1)
        self._participant_ids = count(1)
        self._game_ids = count(1)
        self._players: Dict[str, PlayerRecord] = {}
        self._matches: Dict[str, MatchRecord] = {}
        self._counters: Dict[str, Counters] = {}
        self._games: List[GameRecord] = []

    # --- Players ---

    def find_or_create_player(self, name: str) -> PlayerRecord:
        with self._lock:
            player = self._players.get(name)
            if player is None:
                player = PlayerRecord(id=next(self._player_ids), name=name)
                self._players[name] = player
            return player

    # --- Matches ---

    def _copy(self, match: MatchRecord) -> MatchRecord:
        # Callers get snapshots; only store methods mutate the stored records
        return replace(match, participants=[replace(p) for p in match.participants])

    def _add_participant(self, match: MatchRecord, player_id: int) -> None:
        if any(p.player_id == player_id for p in match.participants):
            return
        name = next(p.name for p in self._players.values() if p.id == player_id)
        match.participants.append(
            ParticipantRecord(
                id=next(self._participant_ids),
                match_id=match.id,
                player_id=player_id,
                player_name=name,
            )
        )

    def create_match(self, theme: Theme, player_id: int) -> MatchRecord:
        with self._lock:
            match = MatchRecord(id=str(uuid4()), theme=theme)
            self._add_participant(match, player_id)
            self._matches[match.id] = match
            return self._copy(match)

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        with self._lock:
            match = self._matches.get(match_id)
            return self._copy(match) if match else None

    def get_match_if_waiting(self, match_id: str) -> Optional[MatchRecord]:
        with self._lock:
            match = self._matches.get(match_id)
            if match is None or match.status != "waiting":
                return None
            return self._copy(match)

    def find_waiting_match(self, theme: Theme) -> Optional[MatchRecord]:
        with self._lock:
            waiting = [m for m in self._matches.values() if m.status == "waiting" and m.theme == theme]
            if not waiting:
                return None
            return self._copy(min(waiting, key=lambda m: m.created_at))

    def join_match(self, match_id: str, player_id: int) -> bool:
        """Add the second participant and move waiting -> in_progress. False if no longer waiting."""
        with self._lock:
            match = self._matches.get(match_id)
            if match is None or match.status != "waiting":
                return False
            self._add_participant(match, player_id)
            match.status = "in_progress"
            return True

    def list_participants(self, match_id: str) -> List[ParticipantRecord]:
        with self._lock:
            match = self._matches.get(match_id)
            if match is None:
                return []
            return [replace(p) for p in match.participants]

    def set_move(self, match_id: str, player_id: int, move: Move) -> bool:
        """Record a move only if the participant has none yet."""
        with self._lock:
            match = self._matches.get(match_id)
            if match is None:
                return False
            for p in match.participants:
                if p.player_id == player_id and p.move is None:
                    p.move = move
                    return True
            return False

    def complete_match(
        self,
        match_id: str,
        outcomes: Dict[int, Outcome],
        completed_at: datetime,
        scores: Optional[Dict[str, Outcome]] = None,
    ) -> bool:
        """
        Compare-and-set: write outcomes (participant id -> outcome) and mark the
        match completed, only if it is not completed yet. `scores` (player name ->
        outcome) are added to the counters under the same lock.
        """
        # Resolve counter fields before touching anything
        bumps = {name: COUNTER_FIELDS[outcome] for name, outcome in (scores or {}).items()}
        with self._lock:
            match = self._matches.get(match_id)
            if match is None or match.status == "completed":
                return False
            for p in match.participants:
                if p.id in outcomes:
                    p.result = outcomes[p.id]
            match.status = "completed"
            match.completed_at = completed_at
            for player_name, attr in bumps.items():
                self._bump(player_name, attr)
            return True

    def recent_matches(self, limit: int = 10) -> List[MatchRecord]:
        with self._lock:
            done = [m for m in self._matches.values() if m.status == "completed"]
            done.sort(key=lambda m: m.completed_at, reverse=True)
            return [self._copy(m) for m in done[:limit]]

    # --- Leaderboard ---

    def _bump(self, player_name: str, attr: str) -> Counters:
        counters = self._counters.get(player_name)
        if counters is None:
            counters = Counters(player_name=player_name)
            self._counters[player_name] = counters
        setattr(counters, attr, getattr(counters, attr) + 1)
        counters.updated_at = datetime.utcnow()
        return counters

    def increment(self, player_name: str, outcome: Outcome) -> Counters:
        attr = COUNTER_FIELDS[outcome]
        with self._lock:
            return replace(self._bump(player_name, attr))

    def read_counters(self, player_name: str) -> Optional[Counters]:
        with self._lock:
            counters = self._counters.get(player_name)
            return replace(counters) if counters else None

    def leaderboard(self, limit: int = 50) -> List[Counters]:
        with self._lock:
            rows = sorted(self._counters.values(), key=lambda c: c.wins, reverse=True)
            return [replace(c) for c in rows[:limit]]

    def count_players(self) -> int:
        with self._lock:
            return len(self._counters)

    # --- Game history ---

    def record_game(
        self,
        player1_name: str,
        player2_name: str,
        player1_choice: Move,
        player2_choice: Move,
        winner: Optional[Winner],
        game_mode: GameMode = "single_player",
        theme: Optional[Theme] = None,
    ) -> GameRecord:
        with self._lock:
            game = GameRecord(
                id=next(self._game_ids),
                player1_name=player1_name,
                player2_name=player2_name,
                player1_choice=player1_choice,
                player2_choice=player2_choice,
                winner=winner,
                game_mode=game_mode,
                theme=theme,
            )
            self._games.append(game)
            return replace(game)

    def list_games(self, limit: int = 10, offset: int = 0, player: Optional[str] = None) -> List[GameRecord]:
        with self._lock:
            games = list(reversed(self._games))
            if player:
                needle = player.lower()
                games = [
                    g for g in games
                    if needle in g.player1_name.lower() or needle in g.player2_name.lower()
                ]
            return [replace(g) for g in games[offset:offset + limit]]

    def recent_games(self, player_name: str, limit: int = 5) -> List[GameRecord]:
        """Newest games where either seat is exactly `player_name`."""
        with self._lock:
            games = [
                g for g in reversed(self._games)
                if g.player1_name == player_name or g.player2_name == player_name
            ]
            return [replace(g) for g in games[:limit]]

    def count_games(self) -> int:
        with self._lock:
            return len(self._games)

    def choice_counts(self) -> Dict[str, int]:
        with self._lock:
            counts: Dict[str, int] = {}
            for g in self._games:
                for choice in (g.player1_choice, g.player2_choice):
                    counts[choice] = counts.get(choice, 0) + 1
            return counts
