"""
Evaluation of the simple comparison expressions used by ``{#if}`` blocks
and ``{if:...}`` table row rules.
"""

import logging
import re
from collections.abc import Mapping

from .exceptions import InvalidConditionError
from .resolver import resolve, is_truthy

logger = logging.getLogger('json2docx')

# Longest operators first so ">=" is never read as ">" followed by "=".
CONDITION_SPLIT_PATTERN = re.compile(r'\s*(===|!==|==|!=|>=|<=|>|<)\s*')

_NUMBER_PATTERN = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$')


def evaluate_condition(condition, context):
    """Evaluate ``left op right`` or a bare path against ``context``.

    The left side is always a path. The right side is a number literal, a
    path that resolves to a non-empty value, or a (optionally quoted)
    string literal. Unparseable expressions evaluate to False.
    """
    try:
        return _evaluate(condition.strip(), context)
    except InvalidConditionError as e:
        logger.warning("Invalid condition '%s': %s", condition, e)
        return False


def _evaluate(condition, context):
    parts = CONDITION_SPLIT_PATTERN.split(condition)

    if len(parts) == 1:
        return is_truthy(resolve(condition, context))

    if len(parts) != 3:
        raise InvalidConditionError("expected a single comparison operator")

    left_path, operator, right_raw = parts
    if not left_path or not right_raw:
        raise InvalidConditionError("missing operand")

    left = resolve(left_path, context)
    if _is_number(right_raw):
        right = float(right_raw)
    else:
        right = resolve(right_raw, context)
        if right == '':
            right = _strip_quotes(right_raw)

    return compare(left, operator, right)


def evaluate_row_condition(row_data, field, operator, value):
    """Evaluate a table row rule ``{if:<field><op><value>}``.

    Ordering operators parse both sides as floats (a parse failure is
    False). Equality operators use loose equality against the literal.
    """
    if not isinstance(row_data, Mapping):
        return False

    field_value = row_data.get(field)
    literal = _strip_quotes(value.strip())

    try:
        if operator in ('>', '<', '>=', '<='):
            return compare(_to_float(field_value), operator, _to_float(literal))
        return compare(field_value, operator, literal)
    except InvalidConditionError as e:
        logger.debug("Row condition %s%s%s treated as false: %s", field, operator, value, e)
        return False


def compare(left, operator, right):
    """Apply ``operator`` with loose (string/number tolerant) semantics."""
    if operator in ('==', '==='):
        return loose_equals(left, right)
    if operator in ('!=', '!=='):
        return not loose_equals(left, right)
    if operator in ('>', '<', '>=', '<='):
        a, b = _ordering_operands(left, right)
        if operator == '>':
            return a > b
        if operator == '<':
            return a < b
        if operator == '>=':
            return a >= b
        return a <= b
    raise InvalidConditionError(f"unsupported operator {operator!r}")


def loose_equals(left, right):
    """Equality where ``"20" == 20`` and ``"Paid" == "Paid"`` both hold."""
    if _is_numeric(left) or _is_numeric(right):
        try:
            return _to_float(left) == _to_float(right)
        except InvalidConditionError:
            return False
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, str) or isinstance(right, str):
        return str(left) == str(right)
    return left == right


def _ordering_operands(left, right):
    if isinstance(left, str) and isinstance(right, str):
        return left, right
    return _to_float(left), _to_float(right)


def _is_numeric(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_number(text):
    return bool(_NUMBER_PATTERN.match(text))


def _to_float(value):
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and _is_number(value):
        return float(value)
    raise InvalidConditionError(f"not a number: {value!r}")


def _strip_quotes(text):
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
        return text[1:-1]
    return text.replace('"', '').replace("'", '')
