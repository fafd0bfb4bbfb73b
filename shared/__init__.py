"""
Shared utilities for render-rules.

This package aggregates common building blocks consumed by the rule
evaluator:

- config: Evaluation defaults via pydantic-settings
- logging: Structured logging with structlog
- errors: Canonical error types and responses

Cross-cutting logic should live here. Do not import from render_rules
into shared/.
"""
