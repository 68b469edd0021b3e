"""
Constant Evaluator - resolves closed expressions at compile time.

Used for metadata values and for naming the data type of a value choice.
Expressions are first tried as pure Python literals. Anything else is
evaluated in the namespace the generator is declared in; this can run
arbitrary code, so it is logged as a warning. Side-effecting metadata is an
anti-pattern, not a supported contract.
"""

from __future__ import annotations
import ast
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class ConstantEvaluator:
    """
    Evaluates expressions against the declaring namespace.

    Usage:
        evaluator = ConstantEvaluator(namespace=globals())
        value = evaluator.evaluate(ast.parse("[1, 2]", mode="eval").body)
    """
    namespace: dict[str, Any] = field(default_factory=dict)

    def evaluate(self, node: ast.expr) -> Any:
        """Evaluate a closed expression."""
        try:
            return ast.literal_eval(node)
        except (ValueError, TypeError, SyntaxError):
            pass

        logger.warning(
            "Evaluating non-literal expression %r in the declaring namespace",
            ast.unparse(node),
        )
        return self.evaluate_expression(node)

    def evaluate_expression(self, node: ast.expr) -> Any:
        """Evaluate any expression without the literal fast path or warning."""
        expression = ast.fix_missing_locations(ast.Expression(body=node))
        code = compile(expression, "<generator specification>", "eval")
        return eval(code, self.namespace)

