"""
Validates an untyped query description and turns it into a QuerySpec.

Checks performed:
  1. Structural shape matches the query grammar (required keys, no unknown keys)
  2. Every keyword (aggregation, operator, direction, temporal unit) is allow-listed
  3. Every filter operator belongs to the allow-list of its filter kind
  4. ``limit``, if present, is a non-negative integer
  5. ``from`` names a table in the registry

Column references are *not* checked here; they fail with "column not found"
during compilation, which is the single place columns are resolved.
"""
from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from tracequery.core.errors import (
    QueryError,
    QueryValidationError,
    UnsupportedOperatorError,
)
from tracequery.core.logging import get_logger
from tracequery.governance.registry import Registry, load_registry
from tracequery.query.spec import QuerySpec

logger = get_logger(__name__)


def _location(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


def _errors_from_pydantic(exc: ValidationError) -> list[QueryValidationError]:
    errors: list[QueryValidationError] = []
    for err in exc.errors():
        loc = err.get("loc", ())
        field = _location(loc) or None
        if loc and loc[-1] == "operator" and err.get("type") == "literal_error":
            errors.append(UnsupportedOperatorError(err["msg"], field))
        else:
            errors.append(QueryValidationError(err["msg"], field))
    return errors


def parse_query(raw: Any, registry: Registry | None = None) -> QuerySpec:
    """Return a validated QuerySpec or raise the first problem found.

    Raises
    ------
    QueryValidationError
        The description does not match the grammar.
    UnknownTableError
        ``from`` is not a registered logical table.
    """
    if registry is None:
        registry = load_registry()

    try:
        query = QuerySpec.model_validate(raw)
    except ValidationError as exc:
        errors = _errors_from_pydantic(exc)
        logger.warning("Rejected query description: %s", [str(e) for e in errors])
        raise errors[0] from exc

    registry.resolve_table(query.from_)
    return query


def validate_query(raw: Any, registry: Registry | None = None) -> list[str]:
    """Return a list of validation error messages (empty list = valid)."""
    if registry is None:
        registry = load_registry()

    try:
        query = QuerySpec.model_validate(raw)
    except ValidationError as exc:
        return [str(e) for e in _errors_from_pydantic(exc)]

    try:
        registry.resolve_table(query.from_)
    except QueryError as exc:
        return [str(exc)]
    return []
