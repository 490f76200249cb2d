"""
Read-only statement executor.

`execute_statement` is the database collaborator of the query pipeline:
  1. Opens a READ ONLY transaction (Postgres-enforced)
  2. Applies a per-statement timeout (statement_timeout)
  3. Runs the compiled text through text() with its bound parameters
  4. Returns the raw driver rows as dicts, untouched

Driver errors are not caught here; they reach the caller unmodified.
Converting cell types is the normalizer's job.
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import text

from tracequery.core.config import get_settings
from tracequery.core.logging import get_logger
from tracequery.db.connection import readonly_connection
from tracequery.query.sql import CompiledStatement

logger = get_logger(__name__)


def execute_statement(
    statement: CompiledStatement,
    timeout_ms: int | None = None,
) -> list[dict[str, Any]]:
    """Execute a compiled statement and return its rows keyed by column alias."""
    if timeout_ms is None:
        timeout_ms = get_settings().query_timeout_ms

    logger.info("Executing SQL (%d chars, %d params)", len(statement.text), len(statement.parameters))

    with readonly_connection() as conn:
        conn.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
        result = conn.execute(text(statement.text), statement.bind_params())
        columns = list(result.keys())
        rows = [dict(zip(columns, row)) for row in result.fetchall()]

    logger.info("Returned %d rows", len(rows))
    return rows
