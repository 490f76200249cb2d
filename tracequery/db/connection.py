"""SQLAlchemy engine & read-only connections.

Single shared engine with connection pooling.  Compiled dashboard queries
run through `execute_statement`, which sets the transaction to READ ONLY
before executing.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from tracequery.core.config import get_settings
from tracequery.core.logging import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def get_engine() -> Engine:
    """Return the shared SQLAlchemy engine (lazy-created, cached)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(
            settings.database_url,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
            echo=False,
        )
        logger.info("DB engine created  host=%s  db=%s", settings.postgres_host, settings.postgres_db)
    return _engine


@contextmanager
def readonly_connection() -> Generator[Connection, None, None]:
    """Yield a connection inside a READ ONLY transaction.

    The transaction is rolled back and the connection returned to the pool
    on exit; nothing a query does can persist.
    """
    engine = get_engine()
    with engine.connect() as conn:
        conn.execute(text("SET TRANSACTION READ ONLY"))
        try:
            yield conn
        finally:
            conn.rollback()
