"""
DB-backed repository with the same public API as the in-memory store (store.py).

Public methods:
- find_or_create_player(name) -> PlayerRecord
- create_match(theme, player_id) / get_match(id) / get_match_if_waiting(id) / find_waiting_match(theme)
- join_match(id, player_id) -> bool            (conditional: only while waiting)
- set_move(id, player_id, move) -> bool        (conditional: only while the move is NULL)
- complete_match(id, outcomes, at, scores) -> bool  (conditional: only while not completed; bumps counters in the same commit)
- increment(player_name, outcome) / read_counters(name) / leaderboard(limit)
- record_game(...) / list_games(...) / recent_games(name) / count_games() / count_players() / choice_counts()

Conditional updates run as single UPDATE ... WHERE statements, so two requests
racing on the same match cannot both win. Any SQLAlchemy failure is rolled back
and re-raised as StoreError.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional
from uuid import uuid4

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StoreError
from .models import (
    Game as GameORM,
    Leaderboard as LeaderboardORM,
    Match as MatchORM,
    MatchPlayer as MatchPlayerORM,
    Player as PlayerORM,
)
from .store import (
    COUNTER_FIELDS, Counters, GameRecord, MatchRecord, ParticipantRecord, PlayerRecord,
)
from .types import GameMode, Move, Outcome, Theme, Winner

logger = structlog.get_logger()

# --- ORM -> record builders ---

def _to_player(p: PlayerORM) -> PlayerRecord:
    return PlayerRecord(id=p.id, name=p.name)

def _to_participant(mp: MatchPlayerORM) -> ParticipantRecord:
    return ParticipantRecord(
        id=mp.id,
        match_id=mp.match_id,
        player_id=mp.player_id,
        player_name=mp.player.name,
        move=mp.move,
        result=mp.result,
        joined_at=mp.joined_at,
    )

def _to_match(m: MatchORM) -> MatchRecord:
    return MatchRecord(
        id=m.id,
        theme=m.theme,
        status=m.status,
        created_at=m.created_at,
        completed_at=m.completed_at,
        participants=[_to_participant(mp) for mp in m.participants],
    )

def _to_counters(row: LeaderboardORM) -> Counters:
    return Counters(
        player_name=row.player_name,
        wins=row.wins,
        losses=row.losses,
        draws=row.draws,
        updated_at=row.updated_at,
    )

def _to_game(g: GameORM) -> GameRecord:
    return GameRecord(
        id=g.id,
        player1_name=g.player1_name,
        player2_name=g.player2_name,
        player1_choice=g.player1_choice,
        player2_choice=g.player2_choice,
        winner=g.winner,
        game_mode=g.game_mode,
        theme=g.theme,
        created_at=g.created_at,
    )


class DBGameStore:
    """SQLAlchemy-backed store; one instance per request session."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("store operation failed", action=action, error=str(exc))
            raise StoreError(f"Failed to {action}") from exc

    # --- Players ---

    def _player_by_name(self, name: str) -> Optional[PlayerORM]:
        return self.db.execute(select(PlayerORM).where(PlayerORM.name == name)).scalar_one_or_none()

    def find_or_create_player(self, name: str) -> PlayerRecord:
        with self._guard("create player"):
            player = self._player_by_name(name)
            if player is not None:
                return _to_player(player)
            try:
                player = PlayerORM(name=name, created_at=datetime.utcnow())
                self.db.add(player)
                self.db.commit()
            except IntegrityError:
                # Someone inserted the same name between our select and insert
                self.db.rollback()
                player = self._player_by_name(name)
                if player is None:
                    raise
            return _to_player(player)

    # --- Matches ---

    def _participant(self, match_id: str, player_id: int) -> Optional[MatchPlayerORM]:
        return self.db.execute(
            select(MatchPlayerORM).where(
                MatchPlayerORM.match_id == match_id,
                MatchPlayerORM.player_id == player_id,
            )
        ).scalar_one_or_none()

    def create_match(self, theme: Theme, player_id: int) -> MatchRecord:
        with self._guard("create match"):
            now = datetime.utcnow()
            match = MatchORM(id=str(uuid4()), theme=theme, status="waiting", created_at=now)
            self.db.add(match)
            self.db.add(MatchPlayerORM(match_id=match.id, player_id=player_id, joined_at=now))
            self.db.commit()
            return self._load_match(match.id)

    def _load_match(self, match_id: str) -> Optional[MatchRecord]:
        match = self.db.get(MatchORM, match_id, populate_existing=True)
        return _to_match(match) if match else None

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        with self._guard("fetch match"):
            return self._load_match(match_id)

    def get_match_if_waiting(self, match_id: str) -> Optional[MatchRecord]:
        match = self.get_match(match_id)
        if match is None or match.status != "waiting":
            return None
        return match

    def find_waiting_match(self, theme: Theme) -> Optional[MatchRecord]:
        with self._guard("search for matches"):
            match = self.db.execute(
                select(MatchORM)
                .where(MatchORM.status == "waiting", MatchORM.theme == theme)
                .order_by(MatchORM.created_at.asc())
                .limit(1)
            ).scalar_one_or_none()
            return _to_match(match) if match else None

    def join_match(self, match_id: str, player_id: int) -> bool:
        with self._guard("join match"):
            result = self.db.execute(
                update(MatchORM)
                .where(MatchORM.id == match_id, MatchORM.status == "waiting")
                .values(status="in_progress")
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                return False
            if self._participant(match_id, player_id) is None:
                self.db.add(MatchPlayerORM(match_id=match_id, player_id=player_id, joined_at=datetime.utcnow()))
            self.db.commit()
            return True

    def list_participants(self, match_id: str) -> List[ParticipantRecord]:
        with self._guard("fetch participants"):
            rows = (
                self.db.execute(
                    select(MatchPlayerORM)
                    .where(MatchPlayerORM.match_id == match_id)
                    .order_by(MatchPlayerORM.id.asc())
                    .execution_options(populate_existing=True)
                )
                .scalars()
                .all()
            )
            return [_to_participant(mp) for mp in rows]

    def set_move(self, match_id: str, player_id: int, move: Move) -> bool:
        with self._guard("record move"):
            result = self.db.execute(
                update(MatchPlayerORM)
                .where(
                    MatchPlayerORM.match_id == match_id,
                    MatchPlayerORM.player_id == player_id,
                    MatchPlayerORM.move.is_(None),
                )
                .values(move=move)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            return result.rowcount == 1

    def complete_match(
        self,
        match_id: str,
        outcomes: Dict[int, Outcome],
        completed_at: datetime,
        scores: Optional[Dict[str, Outcome]] = None,
    ) -> bool:
        """
        Status CAS, outcome writes and counter bumps (`scores`: player name ->
        outcome) in one transaction. False if already completed. Any failure
        rolls the whole thing back, so the match stays open for a retry.
        """
        with self._guard("complete match"):
            result = self.db.execute(
                update(MatchORM)
                .where(MatchORM.id == match_id, MatchORM.status != "completed")
                .values(status="completed", completed_at=completed_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                return False
            for participant_id, outcome in outcomes.items():
                self.db.execute(
                    update(MatchPlayerORM)
                    .where(MatchPlayerORM.id == participant_id)
                    .values(result=outcome)
                    .execution_options(synchronize_session=False)
                )
            for player_name, outcome in (scores or {}).items():
                self._score(player_name, outcome)
            self.db.commit()
            return True

    def recent_matches(self, limit: int = 10) -> List[MatchRecord]:
        with self._guard("fetch recent matches"):
            rows = (
                self.db.execute(
                    select(MatchORM)
                    .where(MatchORM.status == "completed")
                    .order_by(MatchORM.completed_at.desc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [_to_match(m) for m in rows]

    # --- Leaderboard ---

    def _bump(self, player_name: str, attr: str) -> int:
        column = getattr(LeaderboardORM, attr)
        result = self.db.execute(
            update(LeaderboardORM)
            .where(LeaderboardORM.player_name == player_name)
            .values({attr: column + 1, "updated_at": datetime.utcnow()})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _score(self, player_name: str, outcome: Outcome) -> None:
        """Bump one counter inside the caller's transaction; inserts the row on first game."""
        attr = COUNTER_FIELDS[outcome]
        if self._bump(player_name, attr):
            return
        row = LeaderboardORM(player_name=player_name, wins=0, losses=0, draws=0,
                             updated_at=datetime.utcnow())
        setattr(row, attr, 1)
        try:
            # Savepoint, so a lost insert race keeps the outer transaction
            with self.db.begin_nested():
                self.db.add(row)
        except IntegrityError:
            # Row created concurrently; bump it instead
            self._bump(player_name, attr)

    def increment(self, player_name: str, outcome: Outcome) -> Counters:
        """Atomic counter bump, committed on its own."""
        with self._guard("update stats"):
            self._score(player_name, outcome)
            self.db.commit()
            return self.read_counters(player_name)

    def read_counters(self, player_name: str) -> Optional[Counters]:
        with self._guard("fetch player stats"):
            row = self.db.execute(
                select(LeaderboardORM)
                .where(LeaderboardORM.player_name == player_name)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            return _to_counters(row) if row else None

    def leaderboard(self, limit: int = 50) -> List[Counters]:
        with self._guard("fetch leaderboard"):
            rows = (
                self.db.execute(
                    select(LeaderboardORM)
                    .order_by(LeaderboardORM.wins.desc(), LeaderboardORM.id.asc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [_to_counters(r) for r in rows]

    def count_players(self) -> int:
        with self._guard("fetch stats"):
            return self.db.execute(select(func.count()).select_from(LeaderboardORM)).scalar_one()

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
        with self._guard("save game"):
            game = GameORM(
                player1_name=player1_name,
                player2_name=player2_name,
                player1_choice=player1_choice,
                player2_choice=player2_choice,
                winner=winner,
                game_mode=game_mode,
                theme=theme,
                created_at=datetime.utcnow(),
            )
            self.db.add(game)
            self.db.commit()
            self.db.refresh(game)
            return _to_game(game)

    def list_games(self, limit: int = 10, offset: int = 0, player: Optional[str] = None) -> List[GameRecord]:
        with self._guard("fetch games"):
            query = select(GameORM).order_by(GameORM.created_at.desc(), GameORM.id.desc())
            if player:
                pattern = f"%{player}%"
                query = query.where(or_(GameORM.player1_name.ilike(pattern), GameORM.player2_name.ilike(pattern)))
            rows = self.db.execute(query.offset(offset).limit(limit)).scalars().all()
            return [_to_game(g) for g in rows]

    def recent_games(self, player_name: str, limit: int = 5) -> List[GameRecord]:
        """Newest games where either seat is exactly `player_name`."""
        with self._guard("fetch player games"):
            rows = (
                self.db.execute(
                    select(GameORM)
                    .where(or_(GameORM.player1_name == player_name, GameORM.player2_name == player_name))
                    .order_by(GameORM.created_at.desc(), GameORM.id.desc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [_to_game(g) for g in rows]

    def count_games(self) -> int:
        with self._guard("fetch stats"):
            return self.db.execute(select(func.count()).select_from(GameORM)).scalar_one()

    def choice_counts(self) -> Dict[str, int]:
        with self._guard("fetch stats"):
            counts: Dict[str, int] = {}
            for column in (GameORM.player1_choice, GameORM.player2_choice):
                for choice, n in self.db.execute(select(column, func.count()).group_by(column)).all():
                    counts[choice] = counts.get(choice, 0) + n
            return counts
