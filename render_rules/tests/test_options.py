"""
Unit tests for evaluation options: missing rows, on_error and depth limits.
"""

import pytest
from unittest.mock import MagicMock

from render_rules.rules.engine import RuleEvaluator, evaluate
from render_rules.rules.models import EvaluationOptions, ErrorContext
from shared.config import get_config
from shared.errors import (
    MissingRowError, InvalidRowTypeError, MalformedRuleError,
    UnknownOperatorError, RuleDepthExceededError
)


@pytest.fixture
def rule():
    """Create a simple condition."""
    return {"field": "age", "operator": "equals", "value": 30}


@pytest.fixture
def on_error():
    """Create an on_error spy."""
    return MagicMock()


def reported_error(on_error):
    """Return the (error, context) pair from a single on_error call."""
    on_error.assert_called_once()
    error, context = on_error.call_args[0]
    return error, context


class TestTreatMissingRowAsFalse:
    """Test cases for the treat_missing_row_as_false option."""

    def test_default_returns_false(self, rule):
        """Test a missing row is false by default."""
        assert evaluate(rule, None) is False
        assert evaluate(rule, None, EvaluationOptions()) is False

    def test_explicit_true_returns_false(self, rule):
        """Test treat_missing_row_as_false=True."""
        assert evaluate(rule, None, treat_missing_row_as_false=True) is False

    def test_false_without_on_error_raises(self, rule):
        """Test a missing row raises when not treated as false."""
        with pytest.raises(MissingRowError, match="Row is null or undefined"):
            evaluate(rule, None, treat_missing_row_as_false=False)

    def test_false_with_nested_rule_raises(self):
        """Test the missing row check happens before rule inspection."""
        complex_rule = {
            "all": [
                {"field": "age", "operator": "greaterThan", "value": 18},
                {"field": "status", "operator": "equals", "value": "active"},
            ]
        }
        with pytest.raises(MissingRowError):
            evaluate(complex_rule, None, EvaluationOptions(treat_missing_row_as_false=False))

    def test_false_with_on_error_reports(self, rule, on_error):
        """Test a missing row is reported to on_error and evaluates to False."""
        result = evaluate(rule, None, treat_missing_row_as_false=False, on_error=on_error)

        assert result is False
        error, context = reported_error(on_error)
        assert isinstance(error, MissingRowError)
        assert error.message == "Row is null or undefined"
        assert context == ErrorContext(rule=rule, row=None)


class TestOnError:
    """Test cases for the on_error callback."""

    def test_unknown_operator(self, on_error):
        """Test unknown operators are reported and evaluate to False."""
        rule = {"field": "x", "operator": "unknown", "value": 1}
        row = {"x": 1}

        assert evaluate(rule, row, on_error=on_error) is False
        error, context = reported_error(on_error)
        assert isinstance(error, UnknownOperatorError)
        assert str(error) == "Unknown operator: unknown"
        assert context.rule == rule
        assert context.row == row

    @pytest.mark.parametrize("row", ["not an object", 123, 4.5, True])
    def test_invalid_row_type(self, rule, on_error, row):
        """Test scalar rows are reported."""
        assert evaluate(rule, row, on_error=on_error) is False
        error, context = reported_error(on_error)
        assert isinstance(error, InvalidRowTypeError)
        assert str(error) == "Row must be an object or an array of objects"
        assert context == ErrorContext(rule=rule, row=row)

    def test_malformed_rule(self, on_error):
        """Test malformed rules are reported."""
        rule = {"invalid": "structure"}
        row = {"age": 30}

        assert evaluate(rule, row, on_error=on_error) is False
        error, context = reported_error(on_error)
        assert isinstance(error, MalformedRuleError)
        assert str(error) == "Rule must be a condition, any group, or all group"
        assert context == ErrorContext(rule=rule, row=row)

    def test_not_called_on_success(self, rule, on_error):
        """Test on_error is not called when evaluation succeeds."""
        assert evaluate(rule, {"age": 30}, on_error=on_error) is True
        on_error.assert_not_called()

    def test_nested_error_reports_leaf(self, on_error):
        """Test the failing leaf, not the group, is reported."""
        bad_leaf = {"field": "x", "operator": "unknown", "value": 1}
        rule = {"all": [{"field": "age", "operator": "equals", "value": 30}, bad_leaf]}
        row = {"age": 30}

        assert evaluate(rule, row, on_error=on_error) is False
        error, context = reported_error(on_error)
        assert str(error) == "Unknown operator: unknown"
        assert context == ErrorContext(rule=bad_leaf, row=row)

    def test_any_continues_after_error(self, on_error):
        """Test an any group can still match after a reported error."""
        bad_leaf = {"field": "x", "operator": "unknown", "value": 1}
        rule = {"any": [bad_leaf, {"field": "y", "operator": "equals", "value": 2}]}
        row = {"y": 2}

        assert evaluate(rule, row, on_error=on_error) is True
        error, context = reported_error(on_error)
        assert context == ErrorContext(rule=bad_leaf, row=row)

    def test_all_stops_at_first_error(self, on_error):
        """Test an all group reports only the first error."""
        rule = {
            "all": [
                {"field": "x", "operator": "unknown1", "value": 1},
                {"field": "y", "operator": "unknown2", "value": 2},
            ]
        }
        assert evaluate(rule, {"x": 1, "y": 2}, on_error=on_error) is False
        error, _ = reported_error(on_error)
        assert str(error) == "Unknown operator: unknown1"

    def test_error_per_row(self, on_error):
        """Test each row visited before a match can report an error."""
        rule = {"field": "x", "operator": "unknown", "value": 1}
        rows = [{"x": 1}, {"x": 2}]

        assert evaluate(rule, rows, on_error=on_error) is False
        assert on_error.call_count == 2
        assert [c[0][1].row for c in on_error.call_args_list] == rows

    def test_negation_applies_to_reported_result(self, on_error):
        """Test a reported error is False before the node's negation."""
        rule = {"field": "x", "operator": "unknown", "value": 1, "not": True}
        assert evaluate(rule, {"x": 1}, on_error=on_error) is True
        on_error.assert_called_once()

    def test_callback_exception_propagates(self):
        """Test exceptions raised by on_error abort evaluation."""
        on_error = MagicMock(side_effect=RuntimeError("Callback error"))
        rule = {"field": "x", "operator": "unknown", "value": 1}

        with pytest.raises(RuntimeError, match="Callback error"):
            evaluate(rule, {"x": 1}, on_error=on_error)
        on_error.assert_called_once()

    def test_callback_exception_from_row_error_propagates(self, rule):
        """Test on_error exceptions propagate for row errors too."""
        on_error = MagicMock(side_effect=RuntimeError("Callback error"))
        with pytest.raises(RuntimeError, match="Callback error"):
            evaluate(rule, 5, on_error=on_error)

    def test_callback_return_value_ignored(self):
        """Test the on_error return value does not change the result."""
        on_error = MagicMock(return_value=True)
        rule = {"field": "x", "operator": "unknown", "value": 1}

        assert evaluate(rule, {"x": 1}, on_error=on_error) is False
        on_error.assert_called_once()

    def test_operator_exceptions_are_reported(self, on_error):
        """Test unexpected exceptions in a leaf are routed to on_error."""
        class ExplodingRow(dict):
            def __contains__(self, key):
                raise KeyError(key)

        rule = {"field": "x", "operator": "equals", "value": 1}
        assert evaluate(rule, ExplodingRow(), on_error=on_error) is False
        error, _ = reported_error(on_error)
        assert isinstance(error, KeyError)

    def test_operator_exceptions_propagate_without_on_error(self):
        """Test unexpected exceptions in a leaf propagate without on_error."""
        class ExplodingRow(dict):
            def __contains__(self, key):
                raise KeyError(key)

        with pytest.raises(KeyError):
            evaluate({"field": "x", "operator": "equals", "value": 1}, ExplodingRow())


class TestOptionsCompatibility:
    """Test cases for the different ways of passing options."""

    def test_no_options(self, rule):
        """Test evaluation without options."""
        assert evaluate(rule, {"age": 30}) is True
        assert evaluate(rule, None) is False

    def test_empty_options(self, rule):
        """Test evaluation with default options."""
        assert evaluate(rule, {"age": 30}, EvaluationOptions()) is True
        assert evaluate(rule, None, EvaluationOptions()) is False

    def test_overrides_extend_options(self, rule, on_error):
        """Test keyword overrides are applied on top of an options object."""
        options = EvaluationOptions(treat_missing_row_as_false=False)
        assert evaluate(rule, None, options, on_error=on_error) is False
        on_error.assert_called_once()
        assert options.on_error is None

    def test_evaluator_options(self, rule, on_error):
        """Test RuleEvaluator uses its options."""
        evaluator = RuleEvaluator(EvaluationOptions(treat_missing_row_as_false=False, on_error=on_error))
        assert evaluator.evaluate(rule, None) is False
        assert evaluator.evaluate(rule, {"age": 30}) is True
        on_error.assert_called_once()

    def test_unknown_override_rejected(self, rule):
        """Test unknown option names are rejected."""
        with pytest.raises(TypeError):
            evaluate(rule, {"age": 30}, onError=print)


class TestMaxDepth:
    """Test cases for the rule nesting limit."""

    NESTED = {"all": [{"any": [{"field": "x", "operator": "equals", "value": 1}]}]}

    def test_unlimited_by_default(self):
        """Test deep trees evaluate without a limit."""
        rule = {"field": "x", "operator": "equals", "value": 1}
        for _ in range(50):
            rule = {"all": [rule]}
        assert evaluate(rule, {"x": 1}) is True

    def test_within_limit(self):
        """Test trees at the limit evaluate normally."""
        assert evaluate(self.NESTED, {"x": 1}, max_depth=2) is True

    def test_exceeding_limit_raises(self):
        """Test trees beyond the limit raise."""
        with pytest.raises(RuleDepthExceededError, match="maximum depth of 1"):
            evaluate(self.NESTED, {"x": 1}, max_depth=1)

    def test_exceeding_limit_reported(self, on_error):
        """Test depth errors are reported through on_error."""
        assert evaluate(self.NESTED, {"x": 1}, max_depth=1, on_error=on_error) is False
        error, context = reported_error(on_error)
        assert isinstance(error, RuleDepthExceededError)
        assert error.details == {"max_depth": 1}
        assert context.rule == {"field": "x", "operator": "equals", "value": 1}

    def test_cyclic_rule_terminates(self, on_error):
        """Test a cyclic rule stops at the depth limit."""
        rule = {"any": []}
        rule["any"].append(rule)

        assert evaluate(rule, {"x": 1}, max_depth=10, on_error=on_error) is False
        on_error.assert_called_once()


class TestConfig:
    """Test cases for options built from configuration."""

    def test_defaults(self):
        """Test default configuration matches default options."""
        config = get_config()
        options = EvaluationOptions.from_config(config)

        assert options == EvaluationOptions()

    def test_from_environment(self, monkeypatch, rule):
        """Test options read from the environment."""
        monkeypatch.setenv("RENDER_RULES_TREAT_MISSING_ROW_AS_FALSE", "false")
        monkeypatch.setenv("RENDER_RULES_MAX_RULE_DEPTH", "3")

        options = EvaluationOptions.from_config(get_config())

        assert options.treat_missing_row_as_false is False
        assert options.max_depth == 3
        with pytest.raises(MissingRowError):
            evaluate(rule, None, options)

    def test_on_error_passed_through(self, on_error):
        """Test from_config keeps the supplied callback."""
        options = EvaluationOptions.from_config(get_config(), on_error=on_error)
        assert options.on_error is on_error
