"""
SQL compiler -- turns a validated QuerySpec into one parameterized SELECT.

The compiler reads table sources and column expressions exclusively from the
registry and keywords exclusively from the fixed tables below.  Filter and
limit values only ever enter the statement through ``bind()``.

Statement shape::

    [WITH date_series AS (...)] SELECT ... FROM ... [WHERE | AND ...]
    [GROUP BY ...] [ORDER BY ...] [LIMIT :pN];

With a bucket plan the filters are appended to the LEFT JOIN condition
(``AND``) instead of opening a WHERE, so empty buckets survive the filters.
"""
from __future__ import annotations

from tracequery.core.errors import UnsupportedOperatorError
from tracequery.core.logging import get_logger
from tracequery.governance.registry import (
    ColumnDefinition,
    Registry,
    TableDefinition,
    load_registry,
)
from tracequery.governance.tenant import inject_tenant_filters
from tracequery.query.planner import SERIES_COLUMN, BucketPlan, plan_buckets
from tracequery.query.spec import (
    DatetimeFilter,
    DatetimeGroupBy,
    Filter,
    OrderBy,
    QuerySpec,
    SelectColumn,
    StringOptionsFilter,
)
from tracequery.query.sql import (
    EMPTY,
    CompiledStatement,
    Fragment,
    TrustedSql,
    bind,
    concat,
    join,
    quoted,
    raw,
    render,
)

logger = get_logger(__name__)


# ── Keyword tables ───────────────────────────────────────

_AGGREGATIONS: dict[str, TrustedSql] = {
    "SUM": TrustedSql("SUM"),
    "AVG": TrustedSql("AVG"),
    "COUNT": TrustedSql("COUNT"),
    "MAX": TrustedSql("MAX"),
    "MIN": TrustedSql("MIN"),
}

_PERCENTILES: dict[str, TrustedSql] = {
    "50thPercentile": TrustedSql("0.5"),
    "75thPercentile": TrustedSql("0.75"),
    "90thPercentile": TrustedSql("0.9"),
    "95thPercentile": TrustedSql("0.95"),
    "99thPercentile": TrustedSql("0.99"),
}

_OPERATORS: dict[str, dict[str, TrustedSql]] = {
    "string": {
        "=": TrustedSql("="),
        "!=": TrustedSql("<>"),
        "like": TrustedSql("LIKE"),
        "not like": TrustedSql("NOT LIKE"),
    },
    "number": {
        "=": TrustedSql("="),
        "!=": TrustedSql("<>"),
        "<": TrustedSql("<"),
        ">": TrustedSql(">"),
        "<=": TrustedSql("<="),
        ">=": TrustedSql(">="),
    },
    "datetime": {
        ">": TrustedSql(">"),
        "<": TrustedSql("<"),
        ">=": TrustedSql(">="),
        "<=": TrustedSql("<="),
    },
    "stringOptions": {
        "any of": TrustedSql("= ANY"),
        "none of": TrustedSql("<> ALL"),
    },
}

_DIRECTIONS: dict[str, TrustedSql] = {"ASC": TrustedSql("ASC"), "DESC": TrustedSql("DESC")}


def _kw(text: str) -> Fragment:
    return raw(TrustedSql(text))


# ── Column expressions ───────────────────────────────────

def column_alias(column: ColumnDefinition, agg: str | None = None) -> TrustedSql:
    """Output name of a (possibly aggregated) column, e.g. SUM + amount -> sumAmount."""
    if agg is None:
        return column.name
    name = column.name
    return TrustedSql(f"{agg.lower()}{name[:1].upper()}{name[1:]}")


def aggregated(column: ColumnDefinition, agg: str | None = None) -> Fragment:
    expression = raw(column.internal)
    if agg is None:
        return expression
    if agg in _PERCENTILES:
        return concat(
            _kw(f"percentile_disc({_PERCENTILES[agg]}) WITHIN GROUP (ORDER BY "),
            expression,
            _kw(")"),
        )
    if agg in _AGGREGATIONS:
        return concat(_kw(f"{_AGGREGATIONS[agg]}("), expression, _kw(")"))
    raise ValueError(f"Unknown aggregation '{agg}'")


def _select_item(
    registry: Registry,
    table: TableDefinition,
    item: SelectColumn,
    index: int,
) -> Fragment:
    column = registry.resolve_column(table, item.column, f"select.{index}.column")
    return concat(aggregated(column, item.agg), _kw(" AS "), quoted(column_alias(column, item.agg)))


def _order_item(
    registry: Registry,
    table: TableDefinition,
    item: OrderBy,
    index: int,
) -> Fragment:
    column = registry.resolve_column(table, item.column, f"orderBy.{index}.column")
    return concat(aggregated(column, item.agg), _kw(f" {_DIRECTIONS[item.direction]}"))


# ── Filters ──────────────────────────────────────────────

def _operator_sql(kind: str, operator: str, field: str) -> TrustedSql:
    try:
        return _OPERATORS[kind][operator]
    except KeyError:
        raise UnsupportedOperatorError(
            f"Operator '{operator}' is not supported for {kind} filters", field
        ) from None


def _filter_predicate(
    registry: Registry,
    table: TableDefinition,
    item: Filter,
    index: int,
) -> Fragment:
    field = f"filter.{index}"
    column = registry.resolve_column(table, item.column, f"{field}.column")
    operator = _operator_sql(item.type, item.operator, f"{field}.operator")

    # enum-backed columns compare against a cast value
    cast = EMPTY
    if column.cast is not None and not isinstance(item, DatetimeFilter):
        suffix = "[]" if isinstance(item, StringOptionsFilter) else ""
        cast = _kw(f' ::"{column.cast}"{suffix}')

    if isinstance(item, StringOptionsFilter):
        return concat(
            raw(column.internal),
            _kw(f" {operator}("),
            bind(list(item.value)),
            cast,
            _kw(")"),
        )
    return concat(raw(column.internal), _kw(f" {operator} "), bind(item.value), cast)


# ── Clauses ──────────────────────────────────────────────

def _group_by_clause(
    registry: Registry,
    table: TableDefinition,
    query: QuerySpec,
    plan: BucketPlan | None,
) -> Fragment:
    if not query.group_by and plan is None:
        return EMPTY

    terms: list[Fragment] = [SERIES_COLUMN] if plan else []
    for i, group in enumerate(query.group_by):
        column = registry.resolve_column(table, group.column, f"groupBy.{i}.column")
        if isinstance(group, DatetimeGroupBy) and plan is not None:
            continue  # the series column already stands in for it
        terms.append(raw(column.internal))

    if not terms:
        return EMPTY
    return concat(_kw(" GROUP BY "), join(terms, TrustedSql(", ")))


def _order_by_clause(
    registry: Registry,
    table: TableDefinition,
    query: QuerySpec,
    plan: BucketPlan | None,
) -> Fragment:
    terms: list[Fragment] = [concat(SERIES_COLUMN, _kw(" ASC"))] if plan else []
    terms.extend(_order_item(registry, table, o, i) for i, o in enumerate(query.order_by))
    if not terms:
        return EMPTY
    return concat(_kw(" ORDER BY "), join(terms, TrustedSql(", ")))


def compile_query(
    query: QuerySpec,
    registry: Registry,
    plan: BucketPlan | None = None,
) -> CompiledStatement:
    """Compile *query* (tenant filters already injected) into one statement.

    Raises
    ------
    UnknownTableError, UnknownColumnError
        A reference does not resolve against the registry.
    UnsupportedOperatorError
        A filter operator is not allowed for its filter kind.
    """
    table = registry.resolve_table(query.from_)

    select_items = [plan.select_item()] if plan else []
    select_items.extend(_select_item(registry, table, s, i) for i, s in enumerate(query.select))

    from_clause = plan.from_clause(table) if plan else _kw(f" FROM {table.source}")

    predicates = [_filter_predicate(registry, table, f, i) for i, f in enumerate(query.filter)]
    where_clause = EMPTY
    if predicates:
        where_clause = concat(
            _kw(" AND " if plan else " WHERE "),
            join(predicates, TrustedSql(" AND ")),
        )

    limit_clause = EMPTY
    if query.limit is not None:
        limit_clause = concat(_kw(" LIMIT "), bind(query.limit))

    statement = render(concat(
        plan.cte() if plan else EMPTY,
        _kw("SELECT "),
        join(select_items, TrustedSql(", ")),
        from_clause,
        where_clause,
        _group_by_clause(registry, table, query, plan),
        _order_by_clause(registry, table, query, plan),
        limit_clause,
        _kw(";"),
    ))

    logger.info(
        "Compiled query  table=%s  bucketed=%s  params=%d",
        table.name, plan is not None, len(statement.parameters),
    )
    logger.debug("Compiled SQL: %s", statement.text)
    return statement


def build_statement(
    query: QuerySpec,
    tenant_id: str,
    registry: Registry | None = None,
) -> CompiledStatement:
    """Scope *query* to *tenant_id*, plan time buckets, and compile it."""
    if registry is None:
        registry = load_registry()

    table = registry.resolve_table(query.from_)
    scoped = inject_tenant_filters(query, table, tenant_id)
    plan = plan_buckets(scoped, table, registry)
    return compile_query(scoped, registry, plan)
