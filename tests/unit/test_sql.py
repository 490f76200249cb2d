"""
Unit tests -- fragment builder: composition and placeholder numbering.
"""
import pytest

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


def test_raw_has_no_values():
    frag = raw(TrustedSql("SELECT 1"))
    assert frag.strings == ("SELECT 1",)
    assert frag.values == ()


def test_bind_holds_value_outside_text():
    frag = bind("x' OR '1'='1")
    assert frag.strings == ("", "")
    assert frag.values == ("x' OR '1'='1",)


def test_concat_merges_adjacent_text():
    frag = concat(raw(TrustedSql("a = ")), bind(1), raw(TrustedSql(" AND b = ")), bind(2))
    assert frag.strings == ("a = ", " AND b = ", "")
    assert frag.values == (1, 2)


def test_plus_operator():
    frag = raw(TrustedSql("x = ")) + bind(5)
    assert render(frag).text == "x = :p1"


def test_join_with_separator():
    frag = join([bind(1), bind(2), bind(3)], TrustedSql(", "))
    assert render(frag).text == ":p1, :p2, :p3"
    assert frag.values == (1, 2, 3)


def test_join_empty_is_empty():
    assert join([], TrustedSql(", ")).is_empty


def test_empty_fragment():
    assert EMPTY.is_empty
    assert not raw(TrustedSql("x")).is_empty


def test_quoted_identifier():
    assert render(quoted(TrustedSql("sumValue"))).text == '"sumValue"'


def test_render_numbers_placeholders_in_order():
    stmt = render(concat(raw(TrustedSql("a IN (")), bind("x"), raw(TrustedSql(", ")), bind("y"), raw(TrustedSql(")"))))
    assert stmt == CompiledStatement(text="a IN (:p1, :p2)", parameters=("x", "y"))


def test_bind_params_for_sqlalchemy():
    stmt = CompiledStatement(text="a = :p1 AND b = :p2", parameters=("x", 3))
    assert stmt.bind_params() == {"p1": "x", "p2": 3}


def test_malformed_fragment_rejected():
    with pytest.raises(ValueError):
        Fragment(("a", "b"), ())


def test_adding_non_fragment_fails():
    with pytest.raises(TypeError):
        raw(TrustedSql("a")) + "b"
