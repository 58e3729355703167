"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from ..core.config import settings

logger = logging.getLogger(__name__)

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}


def build_engine(db_url: str, *, echo: bool = False) -> Engine:
    """Create an engine for ``db_url`` with backend-appropriate options."""
    if db_url.startswith("sqlite"):
        # SQLite connections are handed to worker threads by asyncio.to_thread
        sqlite_engine = create_engine(
            db_url, echo=echo, connect_args={"check_same_thread": False}, future=True
        )
        _enable_sqlite_foreign_keys(sqlite_engine)
        return sqlite_engine
    return create_engine(db_url, echo=echo, future=True, **_DEFAULT_POOL_KWARGS)


def _enable_sqlite_foreign_keys(target: Engine) -> None:
    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine: Engine = build_engine(settings.database_url, echo=settings.database_echo)


@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
    connection_record.info["connect_time"] = datetime.now()
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "engine",
    "get_db",
]
