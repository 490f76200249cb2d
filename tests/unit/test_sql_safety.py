"""
Unit tests -- final safety gate on compiled statements.
"""
import pytest

from tracequery.governance.registry import load_registry
from tracequery.governance.sql_safety import check_statement_safety
from tracequery.query.compiler import build_statement
from tracequery.query.spec import QuerySpec
from tracequery.query.sql import CompiledStatement


@pytest.fixture(scope="module")
def registry():
    return load_registry()


def test_compiled_statements_pass(registry):
    query = QuerySpec.model_validate({
        "from": "traces_observations",
        "select": [{"column": "totalTokens", "agg": "SUM"}],
        "filter": [
            {"type": "datetime", "column": "timestamp", "operator": ">=", "value": "2024-01-01T00:00:00Z"},
            {"type": "datetime", "column": "timestamp", "operator": "<=", "value": "2024-01-31T00:00:00Z"},
            {"type": "string", "column": "type", "operator": "=", "value": "GENERATION"},
        ],
        "groupBy": [{"type": "datetime", "column": "timestamp", "temporalUnit": "week"}],
        "limit": 10,
    })
    assert check_statement_safety(build_statement(query, "p", registry)) == []


def test_simple_select_is_safe():
    stmt = CompiledStatement('SELECT t."id" AS "id" FROM traces t WHERE t."project_id" = :p1;', ("p",))
    assert check_statement_safety(stmt) == []


def test_keyword_inside_quoted_identifier_is_fine():
    stmt = CompiledStatement('SELECT t."update" AS "update" FROM traces t;', ())
    assert check_statement_safety(stmt) == []


def test_not_a_select():
    errors = check_statement_safety(CompiledStatement("DELETE FROM traces;", ()))
    assert any("SELECT" in e for e in errors)
    assert any("DELETE" in e for e in errors)


def test_multi_statement():
    errors = check_statement_safety(CompiledStatement("SELECT 1; SELECT 2;", ()))
    assert any("Multi-statement" in e for e in errors)


def test_comments():
    errors = check_statement_safety(CompiledStatement("SELECT 1 -- hi", ()))
    assert any("comments" in e for e in errors)


def test_dangerous_keyword():
    errors = check_statement_safety(CompiledStatement("SELECT 1 FROM t; DROP TABLE t", ()))
    assert any("DROP" in e for e in errors)


def test_placeholder_mismatch():
    errors = check_statement_safety(CompiledStatement("SELECT :p1, :p2;", ("only-one",)))
    assert any("Placeholder" in e for e in errors)


def test_interval_cast_is_not_a_placeholder():
    stmt = CompiledStatement("SELECT generate_series(:p1, :p2, '1 day'::interval);", (1, 2))
    assert check_statement_safety(stmt) == []
