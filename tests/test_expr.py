"""Tests for expression construction in datamask._expr."""

import pytest

import datamask as dm
from datamask._expr import as_expr


class TestBuilders:
    def test_sym_is_default_mode(self) -> None:
        assert dm.sym("x") == dm.Symbol("x", dm.ResolutionMode.DEFAULT)

    def test_col_is_column_only_and_literal(self) -> None:
        assert dm.col("Sepal.Length") == dm.Symbol("Sepal.Length", dm.ResolutionMode.COLUMN_ONLY)

    def test_env_parses_reference(self) -> None:
        expected = dm.Attribute(dm.Symbol("input", dm.ResolutionMode.SCOPE_ONLY), "var")
        assert dm.env("input.var") == expected

    def test_env_item(self) -> None:
        expected = dm.Item(dm.Symbol("choices", dm.ResolutionMode.SCOPE_ONLY), dm.Literal(0))
        assert dm.env("choices[0]") == expected

    def test_ref_default_mode(self) -> None:
        assert dm.ref("input.min") == dm.Attribute(dm.Symbol("input"), "min")

    def test_col_at_wraps_key(self) -> None:
        assert dm.col_at("x") == dm.ColumnAt(dm.Literal("x"))
        assert dm.col_at(dm.env("var")) == dm.ColumnAt(dm.Symbol("var", dm.ResolutionMode.SCOPE_ONLY))

    def test_symbol_rejects_column_by_key_mode(self) -> None:
        with pytest.raises(ValueError, match="ColumnAt"):
            dm.Symbol("x", dm.ResolutionMode.COLUMN_BY_KEY)

    def test_lit_freezes_lists(self) -> None:
        assert dm.lit([1, 2]) == dm.Literal((1, 2))
        assert hash(dm.lit([1, 2])) == hash(dm.Literal((1, 2)))

    def test_as_expr_passes_through(self) -> None:
        node = dm.sym("x")
        assert as_expr(node) is node
        assert as_expr(3) == dm.Literal(3)

    def test_call(self) -> None:
        assert dm.call("mean", dm.sym("x")) == dm.Call("mean", (dm.sym("x"),))


class TestOperators:
    def test_comparison(self) -> None:
        expr = dm.sym("x") > 1
        assert expr == dm.BinaryOp(dm.BinaryOperator.GT, dm.sym("x"), dm.Literal(1))

    def test_reflected_comparison(self) -> None:
        expr = 1 < dm.sym("x")
        assert expr == dm.BinaryOp(dm.BinaryOperator.GT, dm.sym("x"), dm.Literal(1))

    def test_reflected_arithmetic(self) -> None:
        assert 10 - dm.sym("x") == dm.BinaryOp(dm.BinaryOperator.SUB, dm.Literal(10), dm.sym("x"))

    def test_equality_stays_structural(self) -> None:
        assert (dm.sym("x") == dm.sym("x")) is True
        assert dm.sym("x").eq(1) == dm.BinaryOp(dm.BinaryOperator.EQ, dm.sym("x"), dm.Literal(1))

    def test_and_flattens(self) -> None:
        a, b, c = dm.sym("a"), dm.sym("b"), dm.sym("c")
        assert (a & b & c) == dm.And((a, b, c))

    def test_or_and_not(self) -> None:
        a, b = dm.sym("a"), dm.sym("b")
        assert (a | ~b) == dm.Or((a, dm.Not(b)))

    def test_isin_freezes_values(self) -> None:
        expr = dm.sym("x").isin(["a", "b"])
        assert expr == dm.BinaryOp(dm.BinaryOperator.IN, dm.sym("x"), dm.Literal(("a", "b")))

    def test_attr_and_getitem(self) -> None:
        base = dm.env("input")
        assert base.attr("var") == dm.Attribute(base, "var")
        assert base["var"] == dm.Item(base, dm.Literal("var"))

    def test_negation(self) -> None:
        assert -dm.sym("x") == dm.UnaryOp(dm.UnaryOperator.NEG, dm.sym("x"))


class TestRendering:
    def test_filter_predicate(self) -> None:
        assert str(dm.col("x") > dm.env("min")) == "data.x > env.min"

    def test_indirection(self) -> None:
        expr = dm.col_at(dm.env("input.var")) > dm.env("input.min")
        assert str(expr) == "data[env.input.var] > env.input.min"

    def test_non_identifier_column(self) -> None:
        assert str(dm.col("my col")) == "data['my col']"

    def test_nested_operations_are_parenthesized(self) -> None:
        expr = (dm.sym("x") + 1) * 2
        assert str(expr) == "(x + 1) * 2"

    def test_logical(self) -> None:
        expr = (dm.sym("a") > 1) & ~dm.sym("flag")
        assert str(expr) == "(a > 1) & ~flag"

    def test_call(self) -> None:
        assert str(dm.call("round", dm.sym("x"), 2)) == "round(x, 2)"
