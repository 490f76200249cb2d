"""
Query service -- orchestrates validate -> scope -> plan -> compile -> check -> execute -> normalize.

This is what the HTTP layer calls.  The tenant id arrives out-of-band (from
authentication), never from the query body.  Each call builds its own
QuerySpec and CompiledStatement; the only shared state is the read-only
registry.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from tracequery.core.errors import QueryError, UnsafeStatementError
from tracequery.core.logging import get_logger
from tracequery.core.utils import timer
from tracequery.db.executor import execute_statement
from tracequery.db.normalizer import normalize_rows
from tracequery.governance.registry import Registry, load_registry
from tracequery.governance.sql_safety import check_statement_safety
from tracequery.governance.validator import parse_query, validate_query
from tracequery.query.compiler import build_statement
from tracequery.query.sql import CompiledStatement

logger = get_logger(__name__)

Executor = Callable[[CompiledStatement], list[dict[str, Any]]]


@dataclass
class QueryResult:
    statement: CompiledStatement
    rows: list[dict[str, Any]] = field(default_factory=list)
    latency_ms: int = 0


def compile_request(
    raw: Any,
    tenant_id: str,
    registry: Registry | None = None,
) -> CompiledStatement:
    """Validate a raw query description and compile it for *tenant_id*.

    Raises
    ------
    QueryError
        Any validation, schema-resolution or semantic problem.
    """
    if registry is None:
        registry = load_registry()

    query = parse_query(raw, registry)
    statement = build_statement(query, tenant_id, registry)

    violations = check_statement_safety(statement)
    if violations:
        raise UnsafeStatementError(violations)
    return statement


def check_request(
    raw: Any,
    tenant_id: str,
    registry: Registry | None = None,
) -> list[str]:
    """Dry-run: return every problem the query would be rejected for."""
    if registry is None:
        registry = load_registry()

    errors = validate_query(raw, registry)
    if errors:
        return errors
    try:
        compile_request(raw, tenant_id, registry)
    except QueryError as exc:
        return [str(exc)]
    return []


def run_query(
    raw: Any,
    tenant_id: str,
    registry: Registry | None = None,
    executor: Executor | None = None,
) -> QueryResult:
    """End-to-end: raw query description -> normalized rows.

    Parameters
    ----------
    raw : Any
        Query description as received from the client.
    tenant_id : str
        Project id established by authentication.
    registry : Registry, optional
        Defaults to the process-wide registry.
    executor : callable, optional
        Database collaborator; defaults to `execute_statement`.
    """
    if executor is None:
        executor = execute_statement

    with timer() as t:
        statement = compile_request(raw, tenant_id, registry)
        raw_rows = executor(statement)
        rows = normalize_rows(raw_rows)

    logger.info("Query served  rows=%d  latency_ms=%d", len(rows), t["elapsed_ms"])
    return QueryResult(statement=statement, rows=rows, latency_ms=t["elapsed_ms"])
