"""Database connection and session management."""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import get_settings

settings = get_settings()


def build_engine(database_url: str) -> Engine:
    """
    Create a database engine for the given URL.

    SQLite is used for local runs and tests; handlers run in worker threads,
    so the connection must not be pinned to the creating thread.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Engine: configured SQLAlchemy engine
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        )

    # Conservative pool settings for a shared Postgres instance
    return create_engine(
        database_url,
        pool_pre_ping=True,          # Verify connections before using
        pool_size=3,
        max_overflow=7,
        pool_recycle=3600,           # Recycle connections every hour
        pool_timeout=30,
    )


engine = build_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
