"""
Single place to:
- Read DATABASE_URL from settings (.env / environment)
- Create a SQLAlchemy Engine (SQLite locally, MySQL via PyMySQL in prod)
- Create a Session factory (SessionLocal) for per-request DB sessions
- Provide get_db() dependency for FastAPI routes
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import settings

# SQLite connections are bound to their creating thread unless told otherwise;
# FastAPI runs sync routes in a threadpool.
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# pool_pre_ping=True = auto-detect dead connections (helps with long-lived processes).
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.SQL_ECHO,
    connect_args=connect_args,
)

# Each request gets its own session from this factory.
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

class Base(DeclarativeBase):
    pass

# FastAPI dependency that yields a DB session for the duration of a request
# and closes it even if exceptions happen.
def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
