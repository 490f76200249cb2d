"""
Deterministic safety checks on a compiled statement.

The compiler should never produce anything that fails these checks; they are
the last gate before a statement reaches the database and catch a broken
registry entry or a compiler bug rather than user input.

Checks performed:
  1. Statement starts with SELECT (or WITH ... SELECT for the date series)
  2. Exactly one statement (a single trailing ';' at most)
  3. No SQL comments
  4. No write / DDL / privilege keywords
  5. Every placeholder has a bound value and vice versa
"""
from __future__ import annotations

import re

from tracequery.core.logging import get_logger
from tracequery.query.sql import PLACEHOLDER_PREFIX, CompiledStatement

logger = get_logger(__name__)

# ── Compiled patterns ────────────────────────────────────

_DANGEROUS_KW = re.compile(
    r"\b(DROP|ALTER|TRUNCATE|INSERT|UPDATE|DELETE|MERGE|GRANT|REVOKE|"
    r"CREATE|EXECUTE|EXEC|CALL|COPY|SET\s+ROLE|RESET\s+ROLE)\b",
    re.IGNORECASE,
)

_COMMENT = re.compile(r"--|/\*")

_PLACEHOLDER_RE = re.compile(rf"(?<![:\w]):{PLACEHOLDER_PREFIX}(\d+)\b")

# quoted identifiers may legitimately contain keywords, e.g. "update"
_QUOTED_IDENT = re.compile(r'"[^"]*"')


def check_statement_safety(statement: CompiledStatement) -> list[str]:
    """Return a list of safety violations (empty list = safe)."""
    errors: list[str] = []
    sql = statement.text.strip()
    unquoted = _QUOTED_IDENT.sub('""', sql)

    upper = sql.upper()
    if not (upper.startswith("SELECT") or upper.startswith("WITH")):
        errors.append("Statement must be a SELECT.")

    if ";" in unquoted.rstrip(";") or unquoted.count(";") > 1:
        errors.append("Multi-statement SQL is not allowed.")

    if _COMMENT.search(unquoted):
        errors.append("SQL comments are not allowed.")

    m = _DANGEROUS_KW.search(unquoted)
    if m:
        errors.append(f"Dangerous keyword detected: '{m.group(1).upper()}'.")

    placeholders = sorted(int(n) for n in _PLACEHOLDER_RE.findall(sql))
    expected = list(range(1, len(statement.parameters) + 1))
    if placeholders != expected:
        errors.append(
            f"Placeholder mismatch: {len(placeholders)} placeholder(s) for "
            f"{len(statement.parameters)} bound value(s)."
        )

    if errors:
        logger.warning("SQL safety violations: %s", errors)
    return errors
