"""
Settings read from the environment.

A local .env is loaded first (dev convenience); in prod the platform injects env vars.
"""

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self) -> None:
        self.APP_ENV = os.getenv("APP_ENV", "local")
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rps.db")
        # Set SQL_ECHO=1 to print SQL during local debugging
        self.SQL_ECHO = _flag("SQL_ECHO", "0")

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_FORMAT = os.getenv("LOG_FORMAT", "console").lower()

        # Computer opponent: ask random.org first, fall back to local randomness
        self.USE_RANDOM_ORG = _flag("USE_RANDOM_ORG", "1")
        self.RANDOM_ORG_TIMEOUT = float(os.getenv("RANDOM_ORG_TIMEOUT", "3.0"))

        self.CORS_ORIGINS: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]


settings = Settings()
