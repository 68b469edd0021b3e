"""
Specification Extractor - splits a generator body into metadata and rules.

The body is walked once, top level only:
- `if True:` blocks are flattened into the top level
- `key: expression` pairs become metadata (evaluated immediately)
- rule definitions are appended to the alternatives of their rule name

Alternatives keep source order; the order decides the index each one gets
in the implicit rule choice.
"""

from __future__ import annotations
import ast
import logging
from dataclasses import dataclass, field
from typing import Any

from ..errors import MalformedSpecError
from .evaluator import ConstantEvaluator
from .syntax import (
    RuleForm,
    extract_func_def,
    extract_metadata_pair,
    is_block,
    is_docstring,
    is_pass,
)

logger = logging.getLogger(__name__)


@dataclass
class RuleAlternative:
    """
    One body of a rule.

    internal_name is unset until the umbrella for the rule is built.
    Parameters are assumed, not verified, to match across alternatives.
    """
    parameters: ast.arguments
    body: ast.expr | list[ast.stmt]
    form: RuleForm
    internal_name: str | None = None
    lineno: int | None = None


RuleTable = dict[str, list[RuleAlternative]]


@dataclass
class ExtractedSpec:
    """Metadata and rules extracted from a generator body."""
    metadata: dict[str, Any] = field(default_factory=dict)
    rules: RuleTable = field(default_factory=dict)
    doc: str | None = None

    @property
    def rule_count(self) -> int:
        return len(self.rules)

    @property
    def alternative_count(self) -> int:
        return sum(len(alts) for alts in self.rules.values())


def extract(body: list[ast.stmt], evaluator: ConstantEvaluator | None = None) -> ExtractedSpec:
    """
    Extract metadata and rules from a generator body.

    Raises MalformedSpecError for a statement of no recognized shape.
    """
    evaluator = evaluator or ConstantEvaluator()
    spec = ExtractedSpec()

    statements = list(body)
    if statements and is_docstring(statements[0]):
        spec.doc = ast.get_docstring(ast.Module(body=statements[:1], type_ignores=[]))
        statements = statements[1:]

    _extract_from_block(statements, spec, evaluator)

    logger.debug(
        "Extracted %d metadata entries and %d rules (%d alternatives)",
        len(spec.metadata),
        spec.rule_count,
        spec.alternative_count,
    )
    return spec


def _extract_from_block(
    statements: list[ast.stmt],
    spec: ExtractedSpec,
    evaluator: ConstantEvaluator,
):
    for node in statements:
        if is_block(node):
            _extract_from_block(node.body, spec, evaluator)
            continue

        if is_pass(node):
            continue

        pair = extract_metadata_pair(node)
        if pair is not None:
            key, value_node = pair
            if key in spec.metadata:
                logger.debug("Metadata %r redefined; last definition wins", key)
            try:
                spec.metadata[key] = evaluator.evaluate(value_node)
            except Exception as e:
                raise MalformedSpecError(
                    f"Metadata value for {key!r} could not be evaluated: {e}", node
                ) from e
            continue

        definition = extract_func_def(node)
        if definition is not None:
            alternatives = spec.rules.setdefault(definition.name, [])
            alternatives.append(
                RuleAlternative(
                    parameters=definition.arguments,
                    body=definition.body,
                    form=definition.form,
                    lineno=getattr(node, "lineno", None),
                )
            )
            continue

        raise MalformedSpecError(
            "Unrecognised statement at the top level of the generator body", node
        )
