"""
FastAPI application entry-point.
"""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tracequery.api.routers import catalog, query
from tracequery.core.errors import (
    QueryError,
    QuerySemanticsError,
    QueryValidationError,
    SchemaResolutionError,
)
from tracequery.core.logging import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Trace Query",
    version="0.1.0",
    description="Tenant-scoped dashboard queries compiled from a fixed table registry",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query.router, prefix="/query", tags=["Query"])
app.include_router(catalog.router, tags=["Catalog"])


def _status_for(exc: QueryError) -> int:
    if isinstance(exc, QueryValidationError):
        return 422
    if isinstance(exc, (SchemaResolutionError, QuerySemanticsError)):
        return 400
    return 500


@app.exception_handler(QueryError)
async def query_error_handler(request: Request, exc: QueryError) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        logger.error("Query failed: %s", exc)
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "field": exc.field, "detail": exc.message},
    )


@app.get("/health")
def health():
    return {"status": "ok"}
