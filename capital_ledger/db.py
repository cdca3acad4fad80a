"""
db.py — Engine, session factory and transactional scope.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from capital_ledger.config import LedgerSettings
from capital_ledger.models import Base

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the SQLAlchemy engine for one ledger.

    Every unit of work goes through ``session_scope``: the session commits
    when the block exits normally and rolls back on any exception, so a
    failed write never leaves rows behind.
    """

    def __init__(self, settings: LedgerSettings) -> None:
        self.settings = settings
        connect_args = {}
        if settings.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(
            settings.database_url,
            echo=settings.echo_sql,
            connect_args=connect_args,
            pool_pre_ping=True,
        )
        self._session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    def create_all(self) -> "Database":
        """Create any missing tables. Returns self for chaining."""
        Base.metadata.create_all(bind=self.engine)
        logger.debug("Ledger tables ensured on %s", self.engine.url)
        return self

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
