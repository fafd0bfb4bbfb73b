"""
render-rules: boolean rule tree evaluation against data rows.
"""

from shared.errors import (
    RuleEvaluationError, MissingRowError, InvalidRowTypeError,
    MalformedRuleError, UnknownOperatorError, RuleDepthExceededError
)
from .rules.engine import RuleEvaluator, evaluate
from .rules.models import (
    MISSING, Operator, RuleKind, Condition, AnyGroup, AllGroup, RuleNode,
    EvaluationOptions, ErrorContext, classify_rule, rule_from_dict
)
from .rules.dates import to_date, to_epoch_ms

__version__ = "1.0.0"

__all__ = [
    "evaluate",
    "RuleEvaluator",
    "EvaluationOptions",
    "ErrorContext",
    "Operator",
    "RuleKind",
    "Condition",
    "AnyGroup",
    "AllGroup",
    "RuleNode",
    "MISSING",
    "classify_rule",
    "rule_from_dict",
    "to_date",
    "to_epoch_ms",
    "RuleEvaluationError",
    "MissingRowError",
    "InvalidRowTypeError",
    "MalformedRuleError",
    "UnknownOperatorError",
    "RuleDepthExceededError",
]
