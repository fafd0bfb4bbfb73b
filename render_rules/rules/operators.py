"""
Operator predicates for leaf conditions.

Each predicate takes the looked-up row value and the condition's literal
value and returns a bool. Unsupported type combinations evaluate to False
rather than raising.
"""

import operator as op
from collections.abc import Mapping
from typing import Any, Callable, Dict

from shared.errors import UnknownOperatorError
from . import dates
from .models import Operator

Predicate = Callable[[Any, Any], bool]

MS_PER_MINUTE = 60_000

_NUMBER_TYPES = (int, float)
_SEQUENCE_TYPES = (list, tuple)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion.

    Booleans never equal numbers, ints and floats compare numerically,
    lists and mappings compare element by element.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right

    if isinstance(left, _NUMBER_TYPES) and isinstance(right, _NUMBER_TYPES):
        return left == right

    if isinstance(left, _SEQUENCE_TYPES) and isinstance(right, _SEQUENCE_TYPES):
        return len(left) == len(right) and all(
            strict_equals(a, b) for a, b in zip(left, right)
        )

    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(
            strict_equals(left[key], right[key]) for key in left
        )

    if isinstance(left, (_SEQUENCE_TYPES, Mapping)) or isinstance(right, (_SEQUENCE_TYPES, Mapping)):
        return False

    return bool(left == right)


def _contains_strict(items: Any, value: Any) -> bool:
    return any(strict_equals(item, value) for item in items)


def _equals(row_value: Any, value: Any) -> bool:
    return strict_equals(row_value, value)


def _not_equals(row_value: Any, value: Any) -> bool:
    return not strict_equals(row_value, value)


def _ordered(compare: Callable[[Any, Any], Any]) -> Predicate:
    def predicate(row_value: Any, value: Any) -> bool:
        try:
            return bool(compare(row_value, value))
        except TypeError:
            return False
    return predicate


def _contains(row_value: Any, value: Any) -> bool:
    return isinstance(row_value, _SEQUENCE_TYPES) and _contains_strict(row_value, value)


def _starts_with(row_value: Any, value: Any) -> bool:
    return isinstance(row_value, str) and isinstance(value, str) and row_value.startswith(value)


def _ends_with(row_value: Any, value: Any) -> bool:
    return isinstance(row_value, str) and isinstance(value, str) and row_value.endswith(value)


def _in(row_value: Any, value: Any) -> bool:
    return isinstance(value, _SEQUENCE_TYPES) and _contains_strict(value, row_value)


def _not_in(row_value: Any, value: Any) -> bool:
    return isinstance(value, _SEQUENCE_TYPES) and not _contains_strict(value, row_value)


def _date_compare(compare: Callable[[int, int], bool]) -> Predicate:
    """Compare two instants; False when either side is not a date."""
    def predicate(row_value: Any, value: Any) -> bool:
        left = dates.to_epoch_ms(row_value)
        right = dates.to_epoch_ms(value)
        if left is None or right is None:
            return False
        return compare(left, right)
    return predicate


def _now_relative(compare: Callable[[float, float], bool]) -> Predicate:
    """Compare the current time with the row instant shifted by ``value`` minutes."""
    def predicate(row_value: Any, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, _NUMBER_TYPES):
            return False
        base = dates.to_epoch_ms(row_value)
        if base is None:
            return False
        return compare(dates.now_ms(), base + value * MS_PER_MINUTE)
    return predicate


OPERATORS: Dict[str, Predicate] = {
    Operator.EQUALS.value: _equals,
    Operator.NOT_EQUALS.value: _not_equals,
    Operator.GREATER_THAN.value: _ordered(op.gt),
    Operator.LESS_THAN.value: _ordered(op.lt),
    Operator.CONTAINS.value: _contains,
    Operator.STARTS_WITH.value: _starts_with,
    Operator.ENDS_WITH.value: _ends_with,
    Operator.IN.value: _in,
    Operator.NOT_IN.value: _not_in,
    Operator.DATE_EQUALS.value: _date_compare(op.eq),
    Operator.DATE_NOT_EQUALS.value: _date_compare(op.ne),
    Operator.DATE_AFTER.value: _date_compare(op.gt),
    Operator.DATE_BEFORE.value: _date_compare(op.lt),
    Operator.DATE_ON_OR_AFTER.value: _date_compare(op.ge),
    Operator.DATE_ON_OR_BEFORE.value: _date_compare(op.le),
    Operator.NOW_AFTER_PLUS_MINUTES.value: _now_relative(op.gt),
    Operator.NOW_BEFORE_PLUS_MINUTES.value: _now_relative(op.lt),
}


def get_predicate(operator: Any) -> Predicate:
    """Look up the predicate for an operator name.

    Raises:
        UnknownOperatorError: If the operator is not supported.
    """
    if isinstance(operator, Operator):
        operator = operator.value
    try:
        return OPERATORS[operator]
    except (KeyError, TypeError):
        raise UnknownOperatorError(operator) from None


def apply_operator(operator: Any, row_value: Any, value: Any) -> bool:
    """Evaluate ``row_value <operator> value``."""
    return get_predicate(operator)(row_value, value)
