"""
Shared error handling for render-rules.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class RuleEvaluationError(Exception):
    """Base exception for rule evaluation failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class MissingRowError(RuleEvaluationError, ValueError):
    """Row is absent and missing rows are not treated as false."""

    def __init__(self, message: str = "Row is null or undefined", details: Optional[Dict[str, Any]] = None):
        super().__init__("MISSING_ROW", message, details)


class InvalidRowTypeError(RuleEvaluationError, TypeError):
    """Row is neither a mapping nor a sequence of mappings."""

    def __init__(self, message: str = "Row must be an object or an array of objects", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_ROW_TYPE", message, details)


class MalformedRuleError(RuleEvaluationError, ValueError):
    """Rule node matches none of the condition, any or all shapes."""

    def __init__(self, message: str = "Rule must be a condition, any group, or all group", details: Optional[Dict[str, Any]] = None):
        super().__init__("MALFORMED_RULE", message, details)


class UnknownOperatorError(RuleEvaluationError, ValueError):
    """Condition references an unsupported operator."""

    def __init__(self, operator: Any, details: Optional[Dict[str, Any]] = None):
        self.operator = operator
        details = dict(details or {})
        details.setdefault("operator", operator if isinstance(operator, str) else repr(operator))
        super().__init__("UNKNOWN_OPERATOR", f"Unknown operator: {operator}", details)


class RuleDepthExceededError(RuleEvaluationError, ValueError):
    """Rule tree is nested deeper than the configured limit."""

    def __init__(self, max_depth: int, details: Optional[Dict[str, Any]] = None):
        self.max_depth = max_depth
        details = dict(details or {})
        details.setdefault("max_depth", max_depth)
        super().__init__(
            "RULE_DEPTH_EXCEEDED",
            f"Rule nesting exceeds maximum depth of {max_depth}",
            details
        )
