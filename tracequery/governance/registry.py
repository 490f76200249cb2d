"""
Loads, parses, and caches the table registry YAML into immutable objects.

The registry is the single source of truth for:
  - which logical tables exist and their physical FROM expression
  - which columns each table exposes, their semantic type and SQL expression
  - which columns carry a tenant (project) id that must always be filtered
  - which columns are backed by a database enum and need a cast on comparison

Every string that ends up as raw SQL text comes from here, so names and
casts are checked against a plain-identifier pattern at load time.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache
from typing import Any

import yaml

from tracequery.core.config import get_settings
from tracequery.core.errors import UnknownColumnError, UnknownTableError
from tracequery.core.logging import get_logger
from tracequery.query.sql import TrustedSql

logger = get_logger(__name__)

_REGISTRY_PATH = Path(__file__).resolve().parents[2] / "semantic_layer" / "table_definitions.yml"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SEMANTIC_TYPES = ("string", "number", "datetime")


class RegistryError(ValueError):
    """The registry file itself is malformed."""


# ── Typed domain objects ─────────────────────────────────

@dataclass(frozen=True)
class ColumnDefinition:
    name: TrustedSql
    internal: TrustedSql
    type: str  # string | number | datetime
    cast: TrustedSql | None = None


@dataclass(frozen=True)
class TableDefinition:
    name: TrustedSql
    source: TrustedSql
    columns: tuple[ColumnDefinition, ...]
    tenant_columns: tuple[str, ...] = field(default_factory=tuple)

    def column(self, name: str) -> ColumnDefinition | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


@dataclass(frozen=True)
class Registry:
    """Immutable lookup of logical tables, built once per process."""

    version: int
    tables: tuple[TableDefinition, ...]

    # ── Look-ups ─────────────────────────────────────

    def table(self, name: str) -> TableDefinition | None:
        for t in self.tables:
            if t.name == name:
                return t
        return None

    def table_names(self) -> list[str]:
        return [t.name for t in self.tables]

    def resolve_table(self, name: str) -> TableDefinition:
        table = self.table(name)
        if table is None:
            raise UnknownTableError(name)
        return table

    def resolve_column(
        self,
        table: TableDefinition,
        column: str,
        field: str | None = None,
    ) -> ColumnDefinition:
        col = table.column(column)
        if col is None:
            logger.warning("Column %s not found in table %s", column, table.name)
            raise UnknownColumnError(table.name, column, field)
        return col

    def get_tables_list(self) -> list[dict[str, Any]]:
        """Return tables as a list of dicts (for API responses)."""
        result = []
        for t in self.tables:
            result.append({
                "name": t.name,
                "columns": [{"name": c.name, "type": c.type} for c in t.columns],
            })
        return result


# ── Parsing ──────────────────────────────────────────────

def _identifier(value: Any, what: str) -> TrustedSql:
    if not isinstance(value, str) or not _IDENTIFIER_RE.match(value):
        raise RegistryError(f"Invalid {what} {value!r}: must be a plain identifier")
    return TrustedSql(value)


def _parse_column(raw: dict[str, Any]) -> ColumnDefinition:
    name = _identifier(raw.get("name"), "column name")
    col_type = raw.get("type", "string")
    if col_type not in SEMANTIC_TYPES:
        raise RegistryError(f"Column '{name}' has unknown type {col_type!r}")
    internal = raw.get("internal")
    if not isinstance(internal, str) or not internal.strip():
        raise RegistryError(f"Column '{name}' has no internal expression")
    cast = raw.get("cast")
    return ColumnDefinition(
        name=name,
        internal=TrustedSql(internal.strip()),
        type=col_type,
        cast=_identifier(cast, "cast type") if cast is not None else None,
    )


def _parse_table(raw: dict[str, Any]) -> TableDefinition:
    name = _identifier(raw.get("name"), "table name")
    source = raw.get("source")
    if not isinstance(source, str) or not source.strip():
        raise RegistryError(f"Table '{name}' has no source")

    columns = tuple(_parse_column(c) for c in raw.get("columns") or [])
    names = [c.name for c in columns]
    if len(names) != len(set(names)):
        raise RegistryError(f"Table '{name}' has duplicate column names")

    tenant_columns = tuple(raw.get("tenant_columns") or [])
    if not tenant_columns:
        raise RegistryError(f"Table '{name}' declares no tenant columns")
    for tc in tenant_columns:
        if tc not in names:
            raise RegistryError(f"Tenant column '{tc}' is not a column of table '{name}'")

    return TableDefinition(
        name=name,
        source=TrustedSql(" ".join(source.split())),
        columns=columns,
        tenant_columns=tenant_columns,
    )


def parse_registry(raw_yaml: dict[str, Any]) -> Registry:
    tables = tuple(_parse_table(t) for t in raw_yaml.get("tables", []))
    names = [t.name for t in tables]
    if len(names) != len(set(names)):
        raise RegistryError("Duplicate table names in registry")
    return Registry(version=raw_yaml.get("version", 1), tables=tables)


# ── Public API ───────────────────────────────────────────

def read_registry(path: str | Path) -> Registry:
    with open(path) as f:
        raw = yaml.safe_load(f)
    registry = parse_registry(raw)
    logger.info("Registry loaded  path=%s  tables=%d", path, len(registry.tables))
    return registry


@lru_cache
def load_registry() -> Registry:
    """Load and cache the process-wide registry."""
    path = get_settings().registry_path or _REGISTRY_PATH
    return read_registry(path)
