import logging
import math
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class ConditionOperator(StrEnum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    IN = "in"
    NOT_IN = "not_in"


def _to_number(value: Any) -> float:
    if isinstance(value, str) and not value.strip():
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _same_value(left: Any, right: Any) -> bool:
    # Booleans never equal numbers.
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right


def _in_list(value: Any, items: Any) -> bool:
    return isinstance(items, list) and any(_same_value(value, item) for item in items)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple)):
        return len(value) == 0
    return False


def _contains(field_value: Any, compare_value: Any) -> bool | None:
    if isinstance(field_value, str):
        return str(compare_value) in field_value
    if isinstance(field_value, (list, tuple)):
        return compare_value in field_value
    return None


def evaluate_condition(condition: dict[str, Any], parameters: dict[str, Any]) -> bool:
    field_value = parameters.get(condition.get("field", ""))
    compare_value = condition.get("value")
    operator = condition.get("operator")

    match operator:
        case ConditionOperator.EQUALS:
            return _same_value(field_value, compare_value)
        case ConditionOperator.NOT_EQUALS:
            return not _same_value(field_value, compare_value)
        # NaN comparisons are always false, which covers non-numeric input.
        case ConditionOperator.GREATER_THAN:
            return _to_number(field_value) > _to_number(compare_value)
        case ConditionOperator.LESS_THAN:
            return _to_number(field_value) < _to_number(compare_value)
        case ConditionOperator.GREATER_THAN_OR_EQUAL:
            return _to_number(field_value) >= _to_number(compare_value)
        case ConditionOperator.LESS_THAN_OR_EQUAL:
            return _to_number(field_value) <= _to_number(compare_value)
        case ConditionOperator.CONTAINS:
            return bool(_contains(field_value, compare_value))
        case ConditionOperator.NOT_CONTAINS:
            contained = _contains(field_value, compare_value)
            return True if contained is None else not contained
        case ConditionOperator.IS_EMPTY:
            return _is_empty(field_value)
        case ConditionOperator.IS_NOT_EMPTY:
            return not _is_empty(field_value)
        case ConditionOperator.IN:
            return _in_list(field_value, compare_value)
        case ConditionOperator.NOT_IN:
            return not _in_list(field_value, compare_value)

    logger.warning("automation_condition_unknown_operator operator=%s field=%s", operator, condition.get("field"))
    return False


def evaluate_conditions(conditions: dict[str, Any] | None, parameters: dict[str, Any]) -> bool:
    if not conditions:
        return True

    all_conditions = conditions.get("all") or []
    any_conditions = conditions.get("any") or []

    if all_conditions and not all(evaluate_condition(item, parameters) for item in all_conditions):
        return False
    if any_conditions and not any(evaluate_condition(item, parameters) for item in any_conditions):
        return False
    return True


_OPERATORS_BY_TYPE: dict[str, tuple[ConditionOperator, ...]] = {
    "number": (
        ConditionOperator.EQUALS,
        ConditionOperator.NOT_EQUALS,
        ConditionOperator.GREATER_THAN,
        ConditionOperator.LESS_THAN,
        ConditionOperator.GREATER_THAN_OR_EQUAL,
        ConditionOperator.LESS_THAN_OR_EQUAL,
        ConditionOperator.IS_EMPTY,
        ConditionOperator.IS_NOT_EMPTY,
    ),
    "string": (
        ConditionOperator.EQUALS,
        ConditionOperator.NOT_EQUALS,
        ConditionOperator.CONTAINS,
        ConditionOperator.NOT_CONTAINS,
        ConditionOperator.IS_EMPTY,
        ConditionOperator.IS_NOT_EMPTY,
        ConditionOperator.IN,
        ConditionOperator.NOT_IN,
    ),
    "boolean": (ConditionOperator.EQUALS, ConditionOperator.NOT_EQUALS),
}


def operators_for_type(parameter_type: str) -> tuple[ConditionOperator, ...]:
    return _OPERATORS_BY_TYPE.get(parameter_type, (ConditionOperator.EQUALS, ConditionOperator.NOT_EQUALS))
