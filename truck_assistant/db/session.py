"""Database engine and session lifecycle.

``Database`` is constructed by the application at startup, opened once
and closed on shutdown. Sessions are handed out per unit of work.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from truck_assistant.config import Settings
from truck_assistant.db.base import Base
from truck_assistant.db import models_db  # noqa: F401  (registers tables)

logger = structlog.get_logger()


class Database:
    """Owns the engine (connection pool) and the session factory."""

    def __init__(
        self,
        url: str,
        pool_size: int = 20,
        max_overflow: int = 0,
        pool_timeout: float = 2.0,
        pool_recycle: int = 30,
    ) -> None:
        self.url = url
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._pool_timeout = pool_timeout
        self._pool_recycle = pool_recycle
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout_seconds,
            pool_recycle=settings.db_pool_recycle_seconds,
        )

    # -- lifecycle ----------------------------------------------------------

    def open(self) -> None:
        if self._engine is not None:
            return
        if self.url.startswith("sqlite"):
            # In-memory SQLite must share one connection across sessions.
            self._engine = create_engine(
                self.url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)
        else:
            # Bounded pool: when exhausted, checkout fails after pool_timeout.
            self._engine = create_engine(
                self.url,
                pool_pre_ping=True,
                pool_size=self._pool_size,
                max_overflow=self._max_overflow,
                pool_timeout=self._pool_timeout,
                pool_recycle=self._pool_recycle,
            )
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=self._engine
        )
        logger.info("database_opened", dialect=self._engine.dialect.name)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("database_closed")
        self._engine = None
        self._session_factory = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    # -- sessions -----------------------------------------------------------

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not open")
        return self._session_factory()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a unit of work: commit on success, roll back on any error."""
        db = self.session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # -- maintenance --------------------------------------------------------

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("database_schema_created", tables=len(Base.metadata.tables))

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
