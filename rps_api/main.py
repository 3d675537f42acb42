'''
Rock-Paper-Scissors Arena API

Two-player matches:
POST /matches                 -> create a match (waiting)
POST /matches/{id}/join       -> join a waiting match (in_progress)
POST /matches/{id}/moves      -> submit a move; completes the match once both moves are in
GET  /matches/{id}            -> match with participants
GET  /matches?theme=galaxy    -> oldest waiting match for a theme
GET  /matches/recent          -> recently completed matches

Single player & history:
POST /play                    -> play one game against the computer
POST /games                   -> record a game played on one device
GET  /games                   -> game history (limit, offset, player filter)

Extras:
GET  /leaderboard             -> win/loss/draw counters, most wins first
GET  /stats[?player=name]     -> global stats, or one player's stats + recent games
'''

from typing import Optional, Union
from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .logging import setup_logging
from .db import get_db                  # SQLAlchemy Session dependency
from .repository import DBGameStore     # DB-backed store
from .bootstrap_db import create_all    # dev-only: create tables
from .lifecycle import MatchController
from .store import Counters, GameRecord, MatchRecord
from .errors import ConflictError, GameError, NotFoundError, StoreError, ValidationError

from .schemas import (
    CreateMatchRequest,
    JoinMatchRequest,
    MoveRequest,
    PlayRequest,
    GameIn,
    PlayerOut,
    ParticipantOut,
    MatchOut,
    MatchJoinedOut,
    MatchLookupOut,
    MoveOut,
    RecentMatchOut,
    RecentMatchesOut,
    CountersOut,
    LeaderboardOut,
    GameOut,
    GameCreatedOut,
    GamesOut,
    PlayOut,
    ChoiceShareOut,
    StatsBody,
    StatsOut,
    PlayerStatsOut,
)

setup_logging()

app = FastAPI(title="Rock-Paper-Scissors Arena API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# --- Dev convenience: auto-create tables locally ---
if settings.APP_ENV == "local":
    @app.on_event("startup")
    def _dev_create_tables():
        create_all()

# Per-request controller bound to the current DB session
def get_controller(session = Depends(get_db)) -> MatchController:
    return MatchController(DBGameStore(session))

# Error kind -> HTTP status
STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StoreError, 500),
)

def to_http(exc: GameError) -> HTTPException:
    for kind, status in STATUS_BY_ERROR:
        if isinstance(exc, kind):
            return HTTPException(status_code=status, detail=str(exc))
    return HTTPException(status_code=500, detail="Internal server error")

# --- Record -> response builders ---

def _match_out(match: MatchRecord) -> MatchOut:
    return MatchOut(
        id=match.id,
        theme=match.theme,
        status=match.status,
        created_at=match.created_at,
        completed_at=match.completed_at,
        participants=[
            ParticipantOut(player_id=p.player_id, player_name=p.player_name, move=p.move, result=p.result)
            for p in match.participants
        ],
    )

def _counters_out(c: Counters) -> CountersOut:
    return CountersOut(
        player_name=c.player_name,
        wins=c.wins,
        losses=c.losses,
        draws=c.draws,
        total_games=c.total_games,
        win_percentage=c.win_percentage,
        updated_at=c.updated_at,
    )

def _game_out(g: GameRecord) -> GameOut:
    return GameOut(
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

# ---------------- Routes ----------------

@app.post("/matches", response_model=MatchJoinedOut, status_code=201, summary="Create a two-player match")
def create_match(
    payload: CreateMatchRequest,
    controller: MatchController = Depends(get_controller),
) -> MatchJoinedOut:
    try:
        joined = controller.create(payload.player_name, payload.theme)
    except GameError as exc:
        raise to_http(exc)
    return MatchJoinedOut(match=_match_out(joined.match), player=PlayerOut(id=joined.player.id, name=joined.player.name))

@app.get("/matches/recent", response_model=RecentMatchesOut, summary="Recently completed matches")
def recent_matches(
    limit: int = Query(10, ge=1, le=100),
    controller: MatchController = Depends(get_controller),
) -> RecentMatchesOut:
    try:
        matches = controller.recent_matches(limit)
    except GameError as exc:
        raise to_http(exc)

    out = []
    for m in matches:
        first, second = m.participants[0], m.participants[1]
        out.append(RecentMatchOut(
            id=m.id,
            theme=m.theme,
            created_at=m.created_at,
            completed_at=m.completed_at,
            player1_name=first.player_name,
            player2_name=second.player_name,
            player1_choice=first.move,
            player2_choice=second.move,
            player1_result=first.result,
            player2_result=second.result,
        ))
    return RecentMatchesOut(matches=out)

@app.get("/matches", response_model=MatchLookupOut, summary="Find a waiting match for a theme")
def find_waiting_match(
    theme: str,
    controller: MatchController = Depends(get_controller),
) -> MatchLookupOut:
    try:
        match = controller.find_waiting_match(theme)
    except GameError as exc:
        raise to_http(exc)
    return MatchLookupOut(match=_match_out(match) if match else None)

@app.get("/matches/{match_id}", response_model=MatchOut, summary="Get a match with its participants")
def get_match(
    match_id: str,
    controller: MatchController = Depends(get_controller),
) -> MatchOut:
    try:
        return _match_out(controller.get_match(match_id))
    except GameError as exc:
        raise to_http(exc)

@app.post("/matches/{match_id}/join", response_model=MatchJoinedOut, summary="Join a waiting match")
def join_match(
    match_id: str,
    payload: JoinMatchRequest,
    controller: MatchController = Depends(get_controller),
) -> MatchJoinedOut:
    try:
        joined = controller.join(match_id, payload.player_name)
    except GameError as exc:
        raise to_http(exc)
    return MatchJoinedOut(match=_match_out(joined.match), player=PlayerOut(id=joined.player.id, name=joined.player.name))

@app.post("/matches/{match_id}/moves", response_model=MoveOut, summary="Submit a move")
def submit_move(
    match_id: str,
    payload: MoveRequest,
    controller: MatchController = Depends(get_controller),
) -> MoveOut:
    try:
        result = controller.submit_move(match_id, payload.player_id, payload.move)
    except GameError as exc:
        raise to_http(exc)
    return MoveOut(
        game_complete=result.game_complete,
        already_completed=(result.status == "already_completed"),
        results=result.results,
    )

@app.post("/play", response_model=PlayOut, summary="Play one game against the computer")
def play(
    payload: PlayRequest,
    controller: MatchController = Depends(get_controller),
) -> PlayOut:
    try:
        played = controller.play_vs_computer(payload.player_name, payload.move, payload.theme)
    except GameError as exc:
        raise to_http(exc)
    return PlayOut(
        player_move=played.player_move,
        computer_move=played.computer_move,
        result=played.outcome,
        game=_game_out(played.game),
        stats=_counters_out(played.stats),
    )

@app.post("/games", response_model=GameCreatedOut, status_code=201, summary="Record a locally played game")
def record_game(
    payload: GameIn,
    controller: MatchController = Depends(get_controller),
) -> GameCreatedOut:
    try:
        game = controller.record_game(
            payload.player1_name,
            payload.player2_name,
            payload.player1_choice,
            payload.player2_choice,
            payload.winner,
        )
    except GameError as exc:
        raise to_http(exc)
    return GameCreatedOut(game=_game_out(game))

@app.get("/games", response_model=GamesOut, summary="Game history, newest first")
def list_games(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    player: Optional[str] = None,
    controller: MatchController = Depends(get_controller),
) -> GamesOut:
    try:
        games = controller.list_games(limit=limit, offset=offset, player=player)
    except GameError as exc:
        raise to_http(exc)
    return GamesOut(games=[_game_out(g) for g in games])

@app.get("/leaderboard", response_model=LeaderboardOut, summary="Get leaderboard")
def get_leaderboard(
    limit: int = Query(50, ge=1, le=500),
    controller: MatchController = Depends(get_controller),
) -> LeaderboardOut:
    try:
        rows = controller.leaderboard(limit)
    except GameError as exc:
        raise to_http(exc)
    return LeaderboardOut(leaderboard=[_counters_out(c) for c in rows])

# Two response shapes; FastAPI serializes whichever model we return
@app.get("/stats", response_model=None, summary="Global or per-player stats")
def get_stats(
    player: Optional[str] = None,
    controller: MatchController = Depends(get_controller),
) -> Union[PlayerStatsOut, StatsOut]:
    try:
        if player:
            found = controller.player_stats(player)
            return PlayerStatsOut(
                player_stats=_counters_out(found.player_stats) if found.player_stats else None,
                recent_games=[_game_out(g) for g in found.recent_games],
            )
        stats = controller.global_stats()
    except GameError as exc:
        raise to_http(exc)
    return StatsOut(stats=StatsBody(
        total_games=stats.total_games,
        total_players=stats.total_players,
        choice_distribution=[
            ChoiceShareOut(choice=c.choice, count=c.count, percentage=c.percentage)
            for c in stats.choice_distribution
        ],
    ))
