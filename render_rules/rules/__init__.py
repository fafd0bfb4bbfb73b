"""
Rules engine package.

Evaluates declarative rule trees against data rows. A rule is a leaf
condition (field, operator, value) or an ``any``/``all`` group of rules,
and any node may be negated with ``"not": True``. Rows are mappings, or
lists of mappings matched with OR semantics.

Modules of interest:
- models: Operator names, rule node shapes, options and error context.
- dates: Permissive date parsing used by the date operators.
- operators: Predicate dispatch table for leaf conditions.
- engine: Recursive evaluator with missing-row and on_error handling.

Evaluation is synchronous and holds no state between calls.
"""
