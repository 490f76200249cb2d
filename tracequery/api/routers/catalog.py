"""
GET /tables, GET /tables/{name} -- registry metadata endpoints.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from tracequery.governance.registry import Registry, load_registry

router = APIRouter()


class ColumnItem(BaseModel):
    name: str
    type: str


class TableItem(BaseModel):
    name: str
    columns: list[ColumnItem]


@router.get("/tables")
def list_tables(registry: Registry = Depends(load_registry)) -> dict:
    """Return logical table names (lightweight)."""
    return {"tables": registry.table_names()}


@router.get("/tables/{name}", response_model=TableItem)
def table_detail(name: str, registry: Registry = Depends(load_registry)) -> TableItem:
    """Return the queryable columns of one logical table."""
    table = registry.table(name)
    if table is None:
        raise HTTPException(status_code=404, detail=f"Table '{name}' not found")
    return TableItem(
        name=table.name,
        columns=[ColumnItem(name=c.name, type=c.type) for c in table.columns],
    )


@router.get("/catalog")
def full_catalog(registry: Registry = Depends(load_registry)) -> dict:
    """Return every table with its columns, for the dashboard builder."""
    return {"version": registry.version, "tables": registry.get_tables_list()}
