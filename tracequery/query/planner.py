"""
Time-bucket planner -- gap-filled time series for datetime group-bys.

When a query groups by one datetime column and bounds that same column with
a lower (``>``/``>=``) and an upper (``<``/``<=``) filter, the compiler
replaces the plain FROM with a generated date series LEFT JOINed to the
table, so that buckets without rows still come back.

A datetime group-by without both bounds produces no plan; the query then
groups by the raw column instead.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import get_args

from tracequery.core.errors import (
    MismatchedRangeColumnError,
    MultipleDatetimeGroupByError,
    QueryValidationError,
)
from tracequery.core.logging import get_logger
from tracequery.governance.registry import ColumnDefinition, Registry, TableDefinition
from tracequery.query.spec import (
    LOWER_BOUND_OPERATORS,
    UPPER_BOUND_OPERATORS,
    DatetimeFilter,
    QuerySpec,
    TemporalUnit,
)
from tracequery.query.sql import Fragment, TrustedSql, bind, concat, quoted, raw

logger = get_logger(__name__)

TEMPORAL_UNITS: dict[str, TrustedSql] = {
    unit: TrustedSql(unit) for unit in get_args(TemporalUnit)
}

SERIES_COLUMN = raw(TrustedSql('date_series."date"'))


def temporal_unit_sql(unit: str) -> TrustedSql:
    try:
        return TEMPORAL_UNITS[unit]
    except KeyError:
        raise QueryValidationError(f"Unsupported temporal unit '{unit}'", "groupBy") from None


def date_trunc(unit: TrustedSql, expression: Fragment) -> Fragment:
    return concat(raw(TrustedSql(f"DATE_TRUNC('{unit}', ")), expression, raw(TrustedSql(")")))


@dataclass(frozen=True)
class BucketPlan:
    """A generated date series joined against the table being queried."""

    column: ColumnDefinition
    temporal_unit: TrustedSql
    lower: DatetimeFilter
    upper: DatetimeFilter

    def cte(self) -> Fragment:
        return concat(
            raw(TrustedSql("WITH date_series AS (SELECT generate_series(")),
            bind(self.lower.value),
            raw(TrustedSql(", ")),
            bind(self.upper.value),
            raw(TrustedSql(f", '1 {self.temporal_unit}'::interval) AS \"date\") ")),
        )

    def from_clause(self, table: TableDefinition) -> Fragment:
        return concat(
            raw(TrustedSql(f" FROM date_series LEFT JOIN {table.source} ON ")),
            date_trunc(self.temporal_unit, raw(self.column.internal)),
            raw(TrustedSql(" = ")),
            date_trunc(self.temporal_unit, SERIES_COLUMN),
        )

    def select_item(self) -> Fragment:
        return concat(SERIES_COLUMN, raw(TrustedSql(" AS ")), quoted(self.column.name))


def plan_buckets(
    query: QuerySpec,
    table: TableDefinition,
    registry: Registry,
) -> BucketPlan | None:
    """Return the bucket plan for *query*, or None when it needs none.

    Raises
    ------
    MultipleDatetimeGroupByError
        More than one group-by entry is a datetime dimension.
    MismatchedRangeColumnError
        The range bounds are on a different column than the datetime group-by.
    """
    datetime_groups = query.datetime_group_bys()
    if not datetime_groups:
        return None
    if len(datetime_groups) > 1:
        raise MultipleDatetimeGroupByError()

    group = datetime_groups[0]
    datetime_filters = query.datetime_filters()

    # Bucketing needs an explicit bounded range.
    lower = upper = None
    if len(datetime_filters) > 1:
        lower = next((f for f in datetime_filters if f.operator in LOWER_BOUND_OPERATORS), None)
        upper = next((f for f in datetime_filters if f.operator in UPPER_BOUND_OPERATORS), None)

    if lower is None or upper is None:
        logger.info(
            "No bounded range for datetime group by %s.%s -- grouping without a date series",
            table.name, group.column,
        )
        return None

    if lower.column != group.column or upper.column != group.column:
        raise MismatchedRangeColumnError(group.column, lower.column, upper.column)

    column = registry.resolve_column(table, group.column, "groupBy")
    return BucketPlan(
        column=column,
        temporal_unit=temporal_unit_sql(group.temporal_unit),
        lower=lower,
        upper=upper,
    )
