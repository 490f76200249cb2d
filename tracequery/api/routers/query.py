"""POST /query -- compile and run a dashboard query for the calling project."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException
from pydantic import BaseModel

from tracequery.core.errors import UnrecognizedCellTypeError
from tracequery.core.logging import get_logger
from tracequery.db.executor import execute_statement
from tracequery.governance.registry import Registry, load_registry
from tracequery.query.service import Executor, check_request, compile_request, run_query

logger = get_logger(__name__)
router = APIRouter()


class QueryResponse(BaseModel):
    rows: list[dict[str, Any]]
    latency_ms: int


class CompileResponse(BaseModel):
    sql: str
    parameters: list[Any]


class ValidateResponse(BaseModel):
    errors: list[str]
    is_valid: bool


def get_executor() -> Executor:
    return execute_statement


@router.post("", response_model=QueryResponse)
def query_endpoint(
    body: dict[str, Any] = Body(...),
    project_id: str = Header(..., alias="X-Project-Id"),
    registry: Registry = Depends(load_registry),
    executor: Executor = Depends(get_executor),
):
    """Full pipeline: description -> SQL -> rows."""
    try:
        result = run_query(body, project_id, registry=registry, executor=executor)
    except UnrecognizedCellTypeError as exc:
        logger.exception("Result normalization failed")
        raise HTTPException(status_code=500, detail=str(exc))

    return QueryResponse(rows=result.rows, latency_ms=result.latency_ms)


@router.post("/compile", response_model=CompileResponse)
def compile_endpoint(
    body: dict[str, Any] = Body(...),
    project_id: str = Header(..., alias="X-Project-Id"),
    registry: Registry = Depends(load_registry),
):
    """Dry-run: description -> parameterized SQL (nothing is executed)."""
    statement = compile_request(body, project_id, registry)
    return CompileResponse(sql=statement.text, parameters=list(statement.parameters))


@router.post("/validate", response_model=ValidateResponse)
def validate_endpoint(
    body: dict[str, Any] = Body(...),
    project_id: str = Header(..., alias="X-Project-Id"),
    registry: Registry = Depends(load_registry),
):
    """Return every reason the query would be rejected."""
    errors = check_request(body, project_id, registry)
    return ValidateResponse(errors=errors, is_valid=not errors)
