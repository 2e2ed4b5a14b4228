"""Condition expressions — ``visibleWhen``, ``disabledWhen``, ``requiredWhen``.

Grammar (a flat conjunction, no OR, no grouping)::

    expr := cond ('&&' cond)*
    cond := operand op literal | operand

Operands are dot paths into the context (``model.address.country`` or
``row.status``); a bare operand tests truthiness, where empty lists and
mappings count as true.  Literals are ``true``, ``false``, ``null``, numbers,
or quoted/bare strings.

``==``/``!=`` use loose, coercing equality (numbers compare with numeric
strings and booleans as numbers, ``null`` only equals ``null``).  Relational
operators compare strings lexically and everything else numerically, with
``null`` ordered as zero.

:func:`evaluate` never raises: an absent expression is ``True`` (no rule means
always active) and any parse or evaluation failure is logged and yields
``False`` (fail closed).
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from formctl.domain.errors import ExpressionError
from formctl.domain.paths import get_by_path

logger = logging.getLogger(__name__)

# Two-character operators come before their one-character prefixes.
OPERATORS: tuple[str, ...] = ("==", "!=", ">=", "<=", ">", "<")

_CONJUNCTION = "&&"
_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_KEYWORDS: dict[str, Any] = {"true": True, "false": False, "null": None}
_OPERATOR_CHARS = frozenset("=!<>")


@dataclass(frozen=True)
class Condition:
    """One parsed comparison. ``op`` is None for a bare truthiness test."""

    operand: str
    op: str | None = None
    literal: Any = None


def parse_literal(token: str) -> Any:
    """Parse a literal token.

    Examples:
        >>> parse_literal("18"), parse_literal("'admin'"), parse_literal("null")
        (18, 'admin', None)
    """
    if token in _KEYWORDS:
        return _KEYWORDS[token]
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "'\"":
        return token[1:-1]
    if _NUMBER.match(token):
        try:
            return int(token)
        except ValueError:
            return float(token)
    return token


@lru_cache(maxsize=512)
def parse_expression(expression: str) -> tuple[Condition, ...]:
    """Parse *expression* into its conjunction of conditions.

    Raises:
        ExpressionError: On OR, empty conditions, or malformed operators.
    """
    if "||" in expression:
        raise ExpressionError("logical OR is not supported")

    conditions: list[Condition] = []
    for raw in expression.split(_CONJUNCTION):
        part = raw.strip()
        if not part:
            raise ExpressionError("empty condition")
        op = next((candidate for candidate in OPERATORS if candidate in part), None)
        if op is None:
            if _OPERATOR_CHARS & set(part):
                raise ExpressionError(f"malformed operator in {part!r}")
            conditions.append(Condition(operand=part))
            continue
        left, _, right = part.partition(op)
        left, right = left.strip(), right.strip()
        if not left or not right:
            raise ExpressionError(f"missing operand around {op!r} in {part!r}")
        conditions.append(Condition(operand=left, op=op, literal=parse_literal(right)))
    return tuple(conditions)


def resolve_operand(operand: str, context: Any) -> Any:
    """Literal keywords and numbers stand for themselves; anything else is a path."""
    if operand in _KEYWORDS or _NUMBER.match(operand):
        return parse_literal(operand)
    return get_by_path(context, operand)


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _NUMBER.match(text):
            return float(text)
    return math.nan


def loose_equals(left: Any, right: Any) -> bool:
    """Coercing equality.

    Examples:
        >>> loose_equals("5", 5), loose_equals(True, 1), loose_equals(None, 0)
        (True, True, False)
    """
    if left is None or right is None:
        return left is None and right is None
    numeric = (bool, int, float)
    if isinstance(left, numeric) or isinstance(right, numeric):
        if isinstance(left, numeric + (str,)) and isinstance(right, numeric + (str,)):
            a, b = _to_number(left), _to_number(right)
            return not (math.isnan(a) or math.isnan(b)) and a == b
    return bool(left == right)


def truthy(value: Any) -> bool:
    """Script-style truthiness: empty lists and mappings are true.

    Only ``None``, ``False``, zero, NaN and ``""`` are false.
    """
    if value is None or value is False or value == "":
        return False
    if isinstance(value, (int, float)):
        return not (value == 0 or math.isnan(value))
    return True


def compare(left: Any, op: str, right: Any) -> bool:
    """Apply *op*. Relational operators order null as zero."""
    if op == "==":
        return loose_equals(left, right)
    if op == "!=":
        return not loose_equals(left, right)
    left = 0 if left is None else left
    right = 0 if right is None else right
    if not (isinstance(left, str) and isinstance(right, str)):
        left, right = _to_number(left), _to_number(right)
        if math.isnan(left) or math.isnan(right):
            return False
    if op == ">":
        return left > right
    if op == "<":
        return left < right
    if op == ">=":
        return left >= right
    if op == "<=":
        return left <= right
    raise ExpressionError(f"unknown operator {op!r}")


def check(condition: Condition, context: Any) -> bool:
    value = resolve_operand(condition.operand, context)
    if condition.op is None:
        return truthy(value)
    return compare(value, condition.op, condition.literal)


def evaluate(expression: str | None, context: Any) -> bool:
    """Evaluate *expression* against *context*.

    Args:
        expression: e.g. ``"model.age > 18 && model.active == true"``.
        context: e.g. ``{"model": {"age": 20, "active": True}}``.
    """
    if expression is None or not str(expression).strip():
        return True
    try:
        return all(check(condition, context) for condition in parse_expression(str(expression)))
    except Exception as exc:
        logger.warning("Could not evaluate expression %r: %s", expression, exc)
        return False
