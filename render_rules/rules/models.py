"""
Rule data models for the rule evaluator.
"""

from collections.abc import Mapping
from typing import Dict, Any, Optional, List, Union, Callable
from dataclasses import dataclass, field
from enum import Enum

from shared.config import BaseConfig
from shared.errors import MalformedRuleError


class _Missing:
    """Marker for a field that is absent from the row."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class Operator(str, Enum):
    """Condition operators."""
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    IN = "in"
    NOT_IN = "notIn"
    DATE_EQUALS = "dateEquals"
    DATE_NOT_EQUALS = "dateNotEquals"
    DATE_AFTER = "dateAfter"
    DATE_BEFORE = "dateBefore"
    DATE_ON_OR_AFTER = "dateOnOrAfter"
    DATE_ON_OR_BEFORE = "dateOnOrBefore"
    NOW_AFTER_PLUS_MINUTES = "nowAfterPlusMinutes"
    NOW_BEFORE_PLUS_MINUTES = "nowBeforePlusMinutes"


class RuleKind(str, Enum):
    """Structural kinds of rule node."""
    CONDITION = "condition"
    ANY = "any"
    ALL = "all"


_SEQUENCE_TYPES = (list, tuple)
_OPERATOR_VALUES = {operator.value for operator in Operator}


def is_condition(node: Any) -> bool:
    """Check whether a node has the condition shape."""
    return isinstance(node, Mapping) and "field" in node and "operator" in node and "value" in node


def is_any_group(node: Any) -> bool:
    """Check whether a node is an any group."""
    return isinstance(node, Mapping) and isinstance(node.get("any"), _SEQUENCE_TYPES)


def is_all_group(node: Any) -> bool:
    """Check whether a node is an all group."""
    return isinstance(node, Mapping) and isinstance(node.get("all"), _SEQUENCE_TYPES)


def classify_rule(node: Any) -> RuleKind:
    """Determine the kind of a rule node from its shape.

    Raises:
        MalformedRuleError: If the node is not a condition, any group or all group.
    """
    if is_condition(node):
        return RuleKind.CONDITION
    if is_any_group(node):
        return RuleKind.ANY
    if is_all_group(node):
        return RuleKind.ALL
    raise MalformedRuleError()


def is_negated(node: Any) -> bool:
    """Check whether a rule node carries ``not: true``."""
    return isinstance(node, Mapping) and bool(node.get("not", False))


def _child_to_dict(rule: Any) -> Any:
    # Mapping children of typed groups are passed through as they are
    return rule.to_dict() if isinstance(rule, (Condition, AnyGroup, AllGroup)) else rule


@dataclass(frozen=True)
class Condition:
    """Leaf predicate comparing one row field to a literal."""
    field: str
    operator: Union[Operator, str]
    value: Any
    negate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        operator = self.operator.value if isinstance(self.operator, Operator) else self.operator
        data: Dict[str, Any] = {"field": self.field, "operator": operator, "value": self.value}
        if self.negate:
            data["not"] = True
        return data


@dataclass(frozen=True)
class AnyGroup:
    """Logical OR over child rules."""
    rules: List["RuleNode"] = field(default_factory=list)
    negate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"any": [_child_to_dict(rule) for rule in self.rules]}
        if self.negate:
            data["not"] = True
        return data


@dataclass(frozen=True)
class AllGroup:
    """Logical AND over child rules."""
    rules: List["RuleNode"] = field(default_factory=list)
    negate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"all": [_child_to_dict(rule) for rule in self.rules]}
        if self.negate:
            data["not"] = True
        return data


RuleNode = Union[Condition, AnyGroup, AllGroup]


def rule_from_dict(data: Any, path: str = "$") -> RuleNode:
    """Build typed rule nodes from a mapping tree.

    Every node is shape-checked, so a malformed node anywhere in the
    tree is reported before evaluation starts. Operator names are not
    checked here.
    """
    try:
        kind = classify_rule(data)
    except MalformedRuleError as e:
        raise MalformedRuleError(details={"path": path}) from e

    negate = is_negated(data)

    if kind == RuleKind.CONDITION:
        operator = data["operator"]
        if isinstance(operator, str) and operator in _OPERATOR_VALUES:
            operator = Operator(operator)
        return Condition(field=data["field"], operator=operator, value=data["value"], negate=negate)

    key = kind.value
    children = [
        rule_from_dict(child, f"{path}.{key}[{index}]")
        for index, child in enumerate(data[key])
    ]
    if kind == RuleKind.ANY:
        return AnyGroup(rules=children, negate=negate)
    return AllGroup(rules=children, negate=negate)


@dataclass(frozen=True)
class ErrorContext:
    """Context handed to the on_error callback."""
    rule: Any
    row: Any


ErrorCallback = Callable[[Exception, ErrorContext], Any]


@dataclass
class EvaluationOptions:
    """Options governing missing rows and error reporting."""
    treat_missing_row_as_false: bool = True
    on_error: Optional[ErrorCallback] = None
    max_depth: Optional[int] = None

    @classmethod
    def from_config(cls, config: BaseConfig, on_error: Optional[ErrorCallback] = None) -> "EvaluationOptions":
        """Build options from service configuration."""
        return cls(
            treat_missing_row_as_false=config.treat_missing_row_as_false,
            on_error=on_error,
            max_depth=config.max_rule_depth,
        )
