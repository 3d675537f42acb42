"""
SQLAlchemy ORM models.

Tables:
- players: one row per player name (upsert-by-name)
- matches: one row per two-player match (status + theme + timestamps)
- match_players: one row per participant (move + result); unique per (match, player)
- leaderboard: per-player win/loss/draw counters
- games: flat history of single-player / locally played games
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String, Integer, DateTime, Enum, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .db import Base
from .types import MAX_NAME_LENGTH, GameMode, MatchStatus, Move, Outcome, Theme, Winner

MOVE_ENUM = Enum("rock", "paper", "scissors", name="move")
THEME_ENUM = Enum("halloween", "galaxy", name="theme")

class Player(Base):
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Uniqueness by name is what makes find_or_create_player an upsert
    name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

class Match(Base):
    __tablename__ = "matches"

    # UUIDs generated in code; stored as strings
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    theme: Mapped[Theme] = mapped_column(THEME_ENUM, nullable=False)
    status: Mapped[MatchStatus] = mapped_column(
        Enum("waiting", "in_progress", "completed", name="match_status"),
        nullable=False,
        default="waiting",
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    # Set only when the match completes
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Participants in join order
    participants: Mapped[list["MatchPlayer"]] = relationship(
        back_populates="match",
        cascade="all, delete-orphan",
        order_by="MatchPlayer.id.asc()",
    )

class MatchPlayer(Base):
    __tablename__ = "match_players"
    __table_args__ = (UniqueConstraint("match_id", "player_id", name="uq_match_player"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    match_id: Mapped[str] = mapped_column(String(36), ForeignKey("matches.id", ondelete="CASCADE"), index=True)
    match: Mapped[Match] = relationship(back_populates="participants")

    player_id: Mapped[int] = mapped_column(Integer, ForeignKey("players.id"), nullable=False)
    player: Mapped[Player] = relationship()

    # NULL until submitted / until both moves are in
    move: Mapped[Optional[Move]] = mapped_column(MOVE_ENUM, nullable=True)
    result: Mapped[Optional[Outcome]] = mapped_column(
        Enum("win", "lose", "draw", name="outcome"),
        nullable=True,
    )

    joined_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

class Leaderboard(Base):
    __tablename__ = "leaderboard"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), nullable=False, unique=True, index=True)

    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    draws: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

class Game(Base):
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    player1_name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), nullable=False, index=True)
    player2_name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), nullable=False, index=True)
    player1_choice: Mapped[Move] = mapped_column(MOVE_ENUM, nullable=False)
    player2_choice: Mapped[Move] = mapped_column(MOVE_ENUM, nullable=False)

    winner: Mapped[Optional[Winner]] = mapped_column(
        Enum("player1", "player2", "tie", name="winner"),
        nullable=True,
    )
    game_mode: Mapped[GameMode] = mapped_column(
        Enum("single_player", "local", name="game_mode"),
        nullable=False,
        default="single_player",
    )
    theme: Mapped[Optional[Theme]] = mapped_column(THEME_ENUM, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, index=True)
