"""
- HTTP call with clear fallback
Draw the computer's move from random.org (one integer 0..2). If anything goes wrong
(no internet, timeout, bad response), we fall back to a local secure random generator
so the game still works.
"""

from secrets import randbelow

import requests
import structlog

from .config import settings
from .types import Move, MOVES

logger = structlog.get_logger()

RANDOM_URL = "https://www.random.org/integers/"

def local_move() -> Move:
    # randbelow(3) gives us 0, 1 or 2 with equal probability
    return MOVES[randbelow(len(MOVES))]

def fetch_computer_move() -> Move:
    if not settings.USE_RANDOM_ORG:
        return local_move()

    params = {
        "num": 1,
        "min": 0,
        "max": len(MOVES) - 1,
        "col": 1,
        "base": 10,
        "format": "plain",
        "rnd": "new",
    }

    try:
        response = requests.get(RANDOM_URL, params=params, timeout=settings.RANDOM_ORG_TIMEOUT)
        response.raise_for_status()

        # The body looks like "2\n"
        values = [line.strip() for line in response.text.splitlines() if line.strip()]
        if len(values) != 1:
            raise ValueError(f"random.org returned {len(values)} values, expected 1.")

        index = int(values[0])
        if index < 0 or index >= len(MOVES):
            raise ValueError("random.org number out of range 0..2.")

        return MOVES[index]

    except (requests.RequestException, ValueError) as exc:
        logger.warning("random.org unavailable, using local randomness", error=str(exc))
        return local_move()
