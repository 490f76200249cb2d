"""
Tenant isolation for dashboard queries.

Every logical table declares, in the registry, the columns that hold the
project id of each entity it is built from.  A table that joins traces with
observations carries both ``tracesProjectId`` and ``observationsProjectId``
and receives a filter on each, because either side alone could leak rows of
another project through the join.

The filters are ordinary ``StringFilter`` values appended after the user's
filters, so they are compiled and parameter-bound exactly like user filters
and cannot be told apart or removed from the outside.
"""
from __future__ import annotations

from tracequery.core.errors import QueryValidationError
from tracequery.core.logging import get_logger
from tracequery.governance.registry import TableDefinition
from tracequery.query.spec import QuerySpec, StringFilter

logger = get_logger(__name__)


def mandatory_filters(table: TableDefinition, tenant_id: str) -> list[StringFilter]:
    """Return the tenant filters that must be applied to *table*."""
    if not isinstance(tenant_id, str) or not tenant_id:
        raise QueryValidationError("A non-empty tenant id is required", "tenant_id")

    return [
        StringFilter(type="string", column=column, operator="=", value=tenant_id)
        for column in table.tenant_columns
    ]


def inject_tenant_filters(
    query: QuerySpec,
    table: TableDefinition,
    tenant_id: str,
) -> QuerySpec:
    """Return a copy of *query* with the tenant filters appended."""
    scoped = mandatory_filters(table, tenant_id)
    logger.debug("Injecting %d tenant filter(s) for table=%s", len(scoped), table.name)
    return query.model_copy(update={"filter": (*query.filter, *scoped)})
