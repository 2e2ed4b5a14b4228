"""Tests for the condition expression evaluator."""

import logging

import pytest

from formctl.domain.errors import ExpressionError
from formctl.domain.expressions import (
    Condition,
    compare,
    evaluate,
    loose_equals,
    parse_expression,
    parse_literal,
    truthy,
)


class TestTruthTable:
    def test_relational_true(self) -> None:
        assert evaluate("model.age > 18", {"model": {"age": 20}}) is True

    def test_conjunction_short_of_one(self) -> None:
        context = {"model": {"age": 15, "active": True}}
        assert evaluate("model.age > 18 && model.active == true", context) is False

    def test_absent_expression_is_true(self) -> None:
        assert evaluate(None, {}) is True
        assert evaluate("   ", {}) is True

    def test_missing_path_is_null(self) -> None:
        assert evaluate("model.missing.path == 5", {"model": {}}) is False
        assert evaluate("model.missing.path == null", {"model": {}}) is True


class TestParsing:
    @pytest.mark.parametrize(
        ("token", "expected"),
        [
            ("true", True),
            ("false", False),
            ("null", None),
            ("18", 18),
            ("2.5", 2.5),
            ("'admin'", "admin"),
            ('"x y"', "x y"),
            ("open", "open"),
        ],
    )
    def test_literals(self, token: str, expected: object) -> None:
        assert parse_literal(token) == expected

    def test_two_character_operators_win(self) -> None:
        (cond,) = parse_expression("model.n >= 3")
        assert cond == Condition("model.n", ">=", 3)
        (cond,) = parse_expression("model.n <= 3")
        assert cond.op == "<="

    def test_bare_operand(self) -> None:
        assert parse_expression("model.active") == (Condition("model.active"),)

    @pytest.mark.parametrize(
        "expression",
        ["model.a == 1 || model.b == 2", "model.a == 1 && ", "model.a ==", "!model.a"],
    )
    def test_malformed(self, expression: str) -> None:
        with pytest.raises(ExpressionError):
            parse_expression(expression)

    def test_malformed_evaluates_false_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="formctl"):
            assert evaluate("model.a == 1 || model.b == 2", {"model": {"a": 1}}) is False
        assert "Could not evaluate" in caplog.text


class TestSemantics:
    def test_loose_equality(self) -> None:
        assert loose_equals("5", 5)
        assert loose_equals(True, 1)
        assert not loose_equals(None, 0)
        assert not loose_equals("", None)
        assert loose_equals(None, None)
        assert not loose_equals("abc", 0)

    def test_not_equals(self) -> None:
        assert evaluate("row.status != 'closed'", {"row": {"status": "open"}})
        assert not evaluate("row.status != closed", {"row": {"status": "closed"}})

    def test_relational_orders_null_as_zero(self) -> None:
        assert compare(None, ">", 1) is False
        assert compare(None, "<", 18) is True
        assert compare(None, ">=", 0) is True
        assert compare(1, ">", None) is True
        assert compare(None, "<", "abc") is False

    def test_cleared_and_empty_fields_order_alike(self) -> None:
        for value in (None, ""):
            assert evaluate("model.age < 18", {"model": {"age": value}}) is True
        assert evaluate("model.age < 18", {"model": {}}) is True

    def test_numeric_strings_compare_numerically(self) -> None:
        assert compare("10", ">", 9)
        assert evaluate("model.qty >= 2", {"model": {"qty": "2"}})

    def test_strings_compare_lexically(self) -> None:
        assert compare("b", ">", "a")

    def test_truthiness(self) -> None:
        assert evaluate("model.name", {"model": {"name": "x"}})
        assert not evaluate("model.name", {"model": {"name": ""}})
        assert not evaluate("model.name", {"model": {}})

    def test_empty_collections_are_truthy(self) -> None:
        assert evaluate("model.lines", {"model": {"lines": []}}) is True
        assert evaluate("model.address", {"model": {"address": {}}}) is True

    @pytest.mark.parametrize("value", [None, False, 0, 0.0, float("nan"), ""])
    def test_falsy_values(self, value: object) -> None:
        assert truthy(value) is False
        assert evaluate("model.v", {"model": {"v": value}}) is False

    @pytest.mark.parametrize("value", [[], {}, "0", "false", -1, True])
    def test_truthy_values(self, value: object) -> None:
        assert truthy(value) is True

    def test_row_context(self) -> None:
        assert evaluate("row.locked == false", {"row": {"locked": False}})
