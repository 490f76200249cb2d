"""
Error taxonomy for the query compiler.

Everything under ``QueryError`` is a client-side problem with the query
description and is safe to echo back to the caller.  ``UnrecognizedCellTypeError``
is a read-path invariant violation and deliberately sits outside that tree.
"""
from __future__ import annotations


class QueryError(Exception):
    """Base class for recoverable compile-path errors."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


# ── Shape ───────────────────────────────────────────────


class QueryValidationError(QueryError):
    """The query description does not match the query grammar."""


class UnsupportedOperatorError(QueryValidationError):
    """A filter uses an operator outside the allow-list for its kind."""


# ── Schema resolution ───────────────────────────────────


class SchemaResolutionError(QueryError):
    """A table or column reference does not resolve against the registry."""


class UnknownTableError(SchemaResolutionError):
    def __init__(self, table: str, field: str | None = "from"):
        super().__init__(f"Table '{table}' not found", field)
        self.table = table


class UnknownColumnError(SchemaResolutionError):
    def __init__(self, table: str, column: str, field: str | None = None):
        super().__init__(f"Column '{column}' not found in table '{table}'", field)
        self.table = table
        self.column = column


# ── Semantics ───────────────────────────────────────────


class QuerySemanticsError(QueryError):
    """The query is well-formed but asks for an unsupported combination."""


class MultipleDatetimeGroupByError(QuerySemanticsError):
    def __init__(self) -> None:
        super().__init__("Only one datetime group by is supported", "groupBy")


class MismatchedRangeColumnError(QuerySemanticsError):
    def __init__(self, group_column: str, lower_column: str, upper_column: str):
        super().__init__(
            "Min date column, max date column must match group by column "
            f"(group by '{group_column}', min '{lower_column}', max '{upper_column}')",
            "filter",
        )


class UnsafeStatementError(QueryError):
    """A compiled statement failed the final safety gate."""

    def __init__(self, violations: list[str]):
        super().__init__("; ".join(violations))
        self.violations = violations


# ── Read path ───────────────────────────────────────────


class UnrecognizedCellTypeError(TypeError):
    """The driver returned a cell whose Python type the normalizer does not know."""

    def __init__(self, column: str, value: object):
        super().__init__(f"Unknown type {type(value).__name__} for column '{column}'")
        self.column = column
        self.value_type = type(value)
