"""
Error kinds raised by the match controller and the stores.

Routes map them to HTTP statuses:
  ValidationError -> 400
  NotFoundError   -> 404
  ConflictError   -> 409
  StoreError      -> 500
"""


class GameError(Exception):
    """Base class for every error the game layer raises on purpose."""


class ValidationError(GameError):
    """Missing or invalid field (player name, move, theme, winner)."""


class NotFoundError(GameError):
    """Referenced match/participant does not exist or cannot be joined."""


class ConflictError(GameError):
    """Request clashes with stored state (e.g. a move was already submitted)."""


class StoreError(GameError):
    """Underlying persistence failure."""
