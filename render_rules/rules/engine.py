"""
Rule evaluation engine.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any, Optional

from shared.logging import get_logger
from shared.errors import (
    RuleEvaluationError, MissingRowError, InvalidRowTypeError,
    MalformedRuleError, RuleDepthExceededError
)
from .models import (
    MISSING, RuleKind, EvaluationOptions, ErrorContext,
    Condition, AnyGroup, AllGroup, classify_rule, is_negated
)
from .operators import apply_operator


_ROW_SEQUENCE_TYPES = (list, tuple)
_TYPED_NODES = (Condition, AnyGroup, AllGroup)


class RuleEvaluator:
    """Evaluates condition/any/all rule trees against rows.

    A row is a mapping of field names to values, or a list of such
    mappings; a list matches when any of its rows matches. Errors are
    either reported through ``options.on_error`` (the failing subtree
    then evaluates to False) or raised, aborting the whole evaluation.
    """

    def __init__(self, options: Optional[EvaluationOptions] = None):
        self.options = options or EvaluationOptions()
        self.logger = get_logger("render_rules.rule_evaluator")

    def evaluate(self, rule: Any, row: Any) -> bool:
        """Evaluate a rule against a row or list of rows."""
        if isinstance(rule, _TYPED_NODES):
            rule = rule.to_dict()
        return self._evaluate(rule, row, 0)

    def _evaluate(self, rule: Any, row: Any, depth: int) -> bool:
        result = self._resolve_row(rule, row, depth)
        return not result if is_negated(rule) else result

    def _resolve_row(self, rule: Any, row: Any, depth: int) -> bool:
        """Normalize the row shape, without applying the rule's negation."""
        if row is None:
            if self.options.treat_missing_row_as_false:
                return False
            return self._fail(MissingRowError(), rule, row)

        if isinstance(row, _ROW_SEQUENCE_TYPES):
            # An empty list never matches
            return any(self._resolve_row(rule, element, depth) for element in row)

        if not isinstance(row, Mapping):
            return self._fail(
                InvalidRowTypeError(details={"row_type": type(row).__name__}), rule, row
            )

        return self._evaluate_node(rule, row, depth)

    def _evaluate_node(self, rule: Any, row: Mapping, depth: int) -> bool:
        max_depth = self.options.max_depth
        if max_depth is not None and depth > max_depth:
            return self._fail(RuleDepthExceededError(max_depth), rule, row)

        try:
            kind = classify_rule(rule)
        except MalformedRuleError as e:
            return self._fail(e, rule, row)

        if kind == RuleKind.CONDITION:
            return self._evaluate_condition(rule, row)

        children = rule[kind.value]
        if kind == RuleKind.ANY:
            return any(self._evaluate(child, row, depth + 1) for child in children)
        return all(self._evaluate(child, row, depth + 1) for child in children)

    def _evaluate_condition(self, condition: Mapping, row: Mapping) -> bool:
        """Evaluate a single condition against a row mapping."""
        try:
            field = condition["field"]
            row_value = row[field] if field in row else MISSING
            return apply_operator(condition["operator"], row_value, condition["value"])
        except RecursionError:
            raise
        except Exception as e:
            if self.options.on_error is None:
                self._log_raised(e)
                raise
            self._report(e, condition, row)
            return False

    def _fail(self, error: RuleEvaluationError, rule: Any, row: Any) -> bool:
        """Report an error through on_error and return False, or raise it."""
        if self.options.on_error is None:
            self._log_raised(error)
            raise error
        self._report(error, rule, row)
        return False

    def _report(self, error: Exception, rule: Any, row: Any) -> None:
        self.logger.debug(
            "Rule evaluation error reported",
            code=_error_code(error),
            error=str(error)
        )
        # Exceptions from the callback propagate to the caller
        self.options.on_error(error, ErrorContext(rule=rule, row=row))

    def _log_raised(self, error: Exception) -> None:
        self.logger.debug(
            "Rule evaluation error raised",
            code=_error_code(error),
            error=str(error)
        )


def _error_code(error: Exception) -> str:
    if isinstance(error, RuleEvaluationError):
        return error.code
    return type(error).__name__


def evaluate(rule: Any, row: Any, options: Optional[EvaluationOptions] = None, **overrides: Any) -> bool:
    """Evaluate a rule against a row or list of rows.

    Args:
        rule: A condition, ``any`` group or ``all`` group, as a mapping or
            typed rule node. Any node may carry ``"not": True``.
        row: A mapping, a list of mappings, or None.
        options: Evaluation options; defaults to ``EvaluationOptions()``.
        **overrides: Option fields overriding those in ``options``, e.g.
            ``on_error=callback`` or ``treat_missing_row_as_false=False``.

    Returns:
        True if the row (or any row in the list) satisfies the rule.

    Raises:
        RuleEvaluationError: On a missing or invalid row, a malformed rule,
            an unknown operator or excessive nesting, when no ``on_error``
            callback is configured.
    """
    if overrides:
        options = dataclasses.replace(options or EvaluationOptions(), **overrides)
    return RuleEvaluator(options).evaluate(rule, row)
