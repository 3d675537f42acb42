"""
Explicit validation & Pydantic models
- Defines the structure of API requests and responses.
- Move/theme values are checked by the MatchController (400), not here,
  so a bad move never reaches the store.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field

Status = Literal["waiting", "in_progress", "completed"]

# --- Requests ---

class CreateMatchRequest(BaseModel):
    player_name: str = Field(..., description="Name of the creating player")
    theme: str = Field(..., description="halloween or galaxy")

    model_config = {
        "json_schema_extra": {
            "examples": [{"player_name": "Alice", "theme": "galaxy"}]
        }
    }

class JoinMatchRequest(BaseModel):
    player_name: str = Field(..., description="Name of the joining player")

class MoveRequest(BaseModel):
    player_id: int = Field(..., description="ID returned when creating/joining the match")
    move: str = Field(..., description="rock, paper or scissors")

class PlayRequest(BaseModel):
    player_name: str = Field(..., description="Name of the player")
    move: str = Field(..., description="rock, paper or scissors")
    theme: Optional[str] = Field(None, description="Cosmetic theme of the game")

class GameIn(BaseModel):
    player1_name: str
    player2_name: str
    player1_choice: str
    player2_choice: str
    winner: Optional[str] = Field(None, description="player1, player2 or tie")

# --- Responses ---

class PlayerOut(BaseModel):
    id: int
    name: str

class ParticipantOut(BaseModel):
    player_id: int
    player_name: str
    move: Optional[str] = Field(None, description="NULL until submitted")
    result: Optional[str] = None

class MatchOut(BaseModel):
    id: str
    theme: str
    status: Status
    created_at: datetime
    completed_at: Optional[datetime] = None
    participants: List[ParticipantOut] = Field(default_factory=list)

class MatchJoinedOut(BaseModel):
    success: bool = True
    match: MatchOut
    player: PlayerOut

class MatchLookupOut(BaseModel):
    match: Optional[MatchOut] = None

class MoveOut(BaseModel):
    success: bool = True
    game_complete: bool
    already_completed: bool = False
    # player id -> "win" | "lose" | "draw"
    results: Dict[int, str] = Field(default_factory=dict)

class RecentMatchOut(BaseModel):
    id: str
    theme: str
    created_at: datetime
    completed_at: Optional[datetime] = None
    player1_name: str
    player2_name: str
    player1_choice: Optional[str] = None
    player2_choice: Optional[str] = None
    player1_result: Optional[str] = None
    player2_result: Optional[str] = None

class RecentMatchesOut(BaseModel):
    matches: List[RecentMatchOut]

class CountersOut(BaseModel):
    player_name: str
    wins: int
    losses: int
    draws: int
    total_games: int
    win_percentage: int
    updated_at: datetime

class LeaderboardOut(BaseModel):
    leaderboard: List[CountersOut]

class GameOut(BaseModel):
    id: int
    player1_name: str
    player2_name: str
    player1_choice: str
    player2_choice: str
    winner: Optional[str] = None
    game_mode: str
    theme: Optional[str] = None
    created_at: datetime

class GameCreatedOut(BaseModel):
    success: bool = True
    game: GameOut

class GamesOut(BaseModel):
    games: List[GameOut]

class PlayOut(BaseModel):
    player_move: str
    computer_move: str
    result: Literal["win", "lose", "draw"]
    game: GameOut
    stats: CountersOut

class ChoiceShareOut(BaseModel):
    choice: str
    count: int
    percentage: int

class StatsBody(BaseModel):
    total_games: int
    total_players: int
    choice_distribution: List[ChoiceShareOut]

class StatsOut(BaseModel):
    stats: StatsBody

class PlayerStatsOut(BaseModel):
    player_stats: Optional[CountersOut] = None
    recent_games: List[GameOut] = Field(default_factory=list)
