"""
QuerySpec -- the typed, validated form of a query description.

Every keyword-like field (aggregation, operator, direction, temporal unit,
filter kind) is a closed ``Literal`` so that pydantic rejects anything outside
the allow-lists before the compiler ever sees it.  Column and table names stay
plain strings here; they are resolved against the registry later.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt


# ── Allow-listed keywords ────────────────────────────────

Aggregation = Literal[
    "SUM",
    "AVG",
    "COUNT",
    "MAX",
    "MIN",
    "50thPercentile",
    "75thPercentile",
    "90thPercentile",
    "95thPercentile",
    "99thPercentile",
]
TemporalUnit = Literal["year", "month", "week", "day", "hour", "minute"]
Direction = Literal["ASC", "DESC"]

StringOperator = Literal["=", "!=", "like", "not like"]
NumberOperator = Literal["=", "!=", "<", ">", "<=", ">="]
DatetimeOperator = Literal[">", "<", ">=", "<="]
OptionsOperator = Literal["any of", "none of"]

FILTER_OPERATORS: dict[str, tuple[str, ...]] = {
    "string": get_args(StringOperator),
    "number": get_args(NumberOperator),
    "datetime": get_args(DatetimeOperator),
    "stringOptions": get_args(OptionsOperator),
}

LOWER_BOUND_OPERATORS = (">", ">=")
UPPER_BOUND_OPERATORS = ("<", "<=")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


# ── Select ───────────────────────────────────────────────

class SelectColumn(_Frozen):
    column: str
    agg: Aggregation | None = None


# ── Filters ──────────────────────────────────────────────

class StringFilter(_Frozen):
    type: Literal["string"]
    column: str
    operator: StringOperator
    value: str


class NumberFilter(_Frozen):
    type: Literal["number"]
    column: str
    operator: NumberOperator
    value: Union[StrictInt, StrictFloat]


class DatetimeFilter(_Frozen):
    type: Literal["datetime"]
    column: str
    operator: DatetimeOperator
    value: datetime


class StringOptionsFilter(_Frozen):
    type: Literal["stringOptions"]
    column: str
    operator: OptionsOperator
    value: tuple[str, ...] = Field(min_length=1)


Filter = Annotated[
    Union[StringFilter, NumberFilter, DatetimeFilter, StringOptionsFilter],
    Field(discriminator="type"),
]


# ── Group by / order by ──────────────────────────────────

class CategoricalGroupBy(_Frozen):
    # "string" is what older dashboard clients send
    type: Literal["categorical", "string"]
    column: str


class DatetimeGroupBy(_Frozen):
    type: Literal["datetime"]
    column: str
    temporal_unit: TemporalUnit = Field(alias="temporalUnit")


GroupBy = Annotated[
    Union[CategoricalGroupBy, DatetimeGroupBy],
    Field(discriminator="type"),
]


class OrderBy(_Frozen):
    column: str
    agg: Aggregation | None = None
    direction: Direction


# ── Query ────────────────────────────────────────────────

class QuerySpec(_Frozen):
    """Validated query over one logical table."""

    from_: str = Field(..., alias="from", description="Logical table name")
    select: tuple[SelectColumn, ...] = Field(..., min_length=1)
    filter: tuple[Filter, ...] = ()
    group_by: tuple[GroupBy, ...] = Field((), alias="groupBy")
    order_by: tuple[OrderBy, ...] = Field((), alias="orderBy")
    limit: StrictInt | None = Field(None, ge=0, description="Maximum rows to return")

    def datetime_filters(self) -> list[DatetimeFilter]:
        return [f for f in self.filter if isinstance(f, DatetimeFilter)]

    def datetime_group_bys(self) -> list[DatetimeGroupBy]:
        return [g for g in self.group_by if isinstance(g, DatetimeGroupBy)]
