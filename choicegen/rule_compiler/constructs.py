"""
Construct Transformer - rewrites choice constructs inside rule bodies.

Recognized call shapes (a bare identifier counts as a call with no
parameters):

    mult(x)                 ->  x repeated 0..inf times
    plus(x)                 ->  x repeated 1..inf times
    reps(x, min, max)       ->  x repeated min..max times
    choose(Type, ...)       ->  a value of Type
    rule(...)               ->  call of the rule's umbrella procedure
    subgen                  ->  delegation to the sub-generator slot

Each choice construct registers a fresh choice point and becomes a call
against the derivation state. Anything else is recursed into and kept.
"""

from __future__ import annotations
import ast
import logging
from typing import Any

from ..errors import (
    ArgumentCountError,
    InvalidArgumentError,
    UnsupportedTypeError,
)
from ..spec_schema.datatypes import Int64, ValueKind, ValueType, VALUE_TYPES, lookup_type
from ..spec_schema.syntax import FunctionCall, extract_func_call
from .context import ChoiceKind, CompileContext, runtime_attr

logger = logging.getLogger(__name__)


SEQUENCE_CONSTRUCTS = ("mult", "plus", "reps")
VALUE_CONSTRUCT = "choose"

# Repetition counts are Int64; "unbounded" is its maximum
REPS_TYPE = Int64
MAX_REPS = Int64.max

_CONVERSION_ERRORS = (ValueError, TypeError, SyntaxError, OverflowError)


class ConstructTransformer(ast.NodeTransformer):
    """
    Structural rewriter for one compile context.

    A recognized construct is rewritten by its specific handler, which
    transforms its own sub-expressions; the generic recursion is not applied
    to it again.
    """

    def __init__(self, ctx: CompileContext):
        self.ctx = ctx

    def visit_Call(self, node: ast.Call) -> ast.AST:
        call = extract_func_call(node)
        if call is not None:
            rewritten = self._rewrite(call)
            if rewritten is not None:
                return ast.copy_location(rewritten, node)
        return self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> ast.AST:
        call = extract_func_call(node)
        if call is not None:
            rewritten = self._rewrite(call)
            if rewritten is not None:
                return ast.copy_location(rewritten, node)
        return node

    def _rewrite(self, call: FunctionCall) -> ast.expr | None:
        if call.name in SEQUENCE_CONSTRUCTS:
            return self.transform_sequence_choice(call)
        if call.name == VALUE_CONSTRUCT:
            return self.transform_value_choice(call)
        if self.ctx.is_rule(call.name):
            return self.transform_rule_call(call)
        if self.ctx.is_subgen(call.name):
            return self.transform_subgen_call(call)
        return None

    # Sequence choice

    def transform_sequence_choice(self, call: FunctionCall) -> ast.expr:
        """
        Rewrite mult/plus/reps to:

            [x for _idx in range(choose_reps(s, cpid, min, max, literal))]
        """
        construct, params = call.name, call.params
        self._check_positional(call)

        if len(params) < 1:
            raise ArgumentCountError(f"{construct} must specify the expression to repeat", call.node)

        # Usually a rule or sub-generator call, but any expression is allowed
        element = self.visit(params[0])

        if construct in ("mult", "plus"):
            if len(params) > 1:
                raise ArgumentCountError(
                    f"{construct} must have no parameters other than the expression to repeat",
                    call.node,
                )
            lower = 0 if construct == "mult" else 1
            min_node, min_value, min_literal = ast.Constant(lower), lower, True
            max_node, max_value, max_literal = ast.Constant(MAX_REPS), MAX_REPS, True
        else:
            if len(params) > 3:
                raise ArgumentCountError(
                    f"{construct} must have at most two parameters other than the expression to repeat",
                    call.node,
                )
            if len(params) >= 2:
                min_node, min_value, min_literal = self.literal_or_expression(params[1], REPS_TYPE)
            else:
                min_node, min_value, min_literal = ast.Constant(0), 0, True
            if len(params) >= 3:
                max_node, max_value, max_literal = self.literal_or_expression(params[2], REPS_TYPE)
            else:
                max_node, max_value, max_literal = ast.Constant(MAX_REPS), MAX_REPS, True

        info: dict[str, Any] = {}
        if min_literal:
            info["min"] = min_value
        if max_literal:
            info["max"] = max_value
        range_is_literal = min_literal and max_literal

        cp_id = self.ctx.record_choice_point(ChoiceKind.SEQUENCE, info)
        logger.debug("Sequence choice point %d for %s (literal range: %s)", cp_id, construct, range_is_literal)

        index = self.ctx.fresh_name("_idx")
        count = self.ctx.runtime_call(
            "choose_reps",
            [
                self.ctx.state_ref(),
                ast.Constant(cp_id),
                min_node,
                max_node,
                ast.Constant(range_is_literal),
            ],
        )
        return ast.ListComp(
            elt=element,
            generators=[
                ast.comprehension(
                    target=ast.Name(id=index, ctx=ast.Store()),
                    iter=ast.Call(func=ast.Name(id="range", ctx=ast.Load()), args=[count], keywords=[]),
                    ifs=[],
                    is_async=0,
                )
            ],
        )

    # Value choice

    def transform_value_choice(self, call: FunctionCall) -> ast.expr:
        """
        Rewrite choose(Type, ...) to:

            choose_number(s, cpid, Type, min, max, literal)

        except for string types, which go to the pattern compiler.
        """
        params = call.params
        self._check_positional(call)

        if len(params) < 1:
            raise ArgumentCountError("choose(...) must name a data type as its first parameter", call.node)

        datatype = self.resolve_datatype(params[0])
        if datatype.abstract:
            raise UnsupportedTypeError(
                f"first parameter to choose({datatype.name}, ...) must be a concrete data type",
                call.node,
            )

        if datatype.kind is ValueKind.BOOL:
            # 0 ~ false, 1 ~ true; the range cannot be restricted
            if len(params) > 1:
                raise ArgumentCountError(f"choose({datatype.name}) must have no further parameters", call.node)
            return self._choose_number(
                datatype,
                (ast.Constant(0), 0, True),
                (ast.Constant(1), 1, True),
            )

        if datatype.kind is ValueKind.CHAR:
            # no well-defined enumerable domain for characters
            raise UnsupportedTypeError(f"choose({datatype.name}, ...) is not currently supported", call.node)

        if datatype.kind in (ValueKind.INTEGER, ValueKind.FLOAT):
            if len(params) > 3:
                raise ArgumentCountError(
                    f"choose({datatype.name}, ...) must have at most two further parameters",
                    call.node,
                )
            if len(params) >= 2:
                lower = self.literal_or_expression(params[1], datatype)
            else:
                lower = (ast.Constant(datatype.min), datatype.min, True)
            if len(params) >= 3:
                upper = self.literal_or_expression(params[2], datatype)
            else:
                upper = (ast.Constant(datatype.max), datatype.max, True)
            return self._choose_number(datatype, lower, upper)

        if datatype.kind is ValueKind.STRING:
            if len(params) > 2:
                raise ArgumentCountError(
                    f"choose({datatype.name}, ...) must have at most one further parameter",
                    call.node,
                )
            pattern = ""  # any string
            if len(params) >= 2:
                node = params[1]
                if not (isinstance(node, ast.Constant) and isinstance(node.value, str)):
                    raise InvalidArgumentError(
                        f"pattern in choose({datatype.name}, ...) must be a literal string",
                        node,
                    )
                pattern = node.value
            return self.ctx.pattern_compiler.compile(pattern, datatype, self.ctx)

        raise UnsupportedTypeError(f"choose({datatype.name}, ...) is not supported", call.node)

    def _choose_number(
        self,
        datatype: ValueType,
        lower: tuple[ast.expr, Any, bool],
        upper: tuple[ast.expr, Any, bool],
    ) -> ast.expr:
        min_node, min_value, min_literal = lower
        max_node, max_value, max_literal = upper

        info: dict[str, Any] = {"datatype": datatype}
        if min_literal:
            info["min"] = min_value
        if max_literal:
            info["max"] = max_value
        range_is_literal = min_literal and max_literal

        cp_id = self.ctx.record_choice_point(ChoiceKind.VALUE, info)
        logger.debug("Value choice point %d for %s (literal range: %s)", cp_id, datatype.name, range_is_literal)

        return self.ctx.runtime_call(
            "choose_number",
            [
                self.ctx.state_ref(),
                ast.Constant(cp_id),
                runtime_attr(datatype.name),
                min_node,
                max_node,
                ast.Constant(range_is_literal),
            ],
        )

    def resolve_datatype(self, node: ast.expr) -> ValueType:
        """Resolve the literal data type named by the first parameter of choose."""
        if isinstance(node, ast.Name) and node.id in VALUE_TYPES:
            return VALUE_TYPES[node.id]

        if not isinstance(node, (ast.Name, ast.Attribute)):
            raise InvalidArgumentError("first parameter to choose(...) must be a literal data type", node)

        try:
            value = self.ctx.evaluator.evaluate_expression(node)
        except (NameError, AttributeError) as e:
            raise UnsupportedTypeError(
                f"first parameter to choose(...) is not a known data type: {e}", node
            ) from e

        datatype = lookup_type(value)
        if datatype is None:
            raise UnsupportedTypeError(f"choose({ast.unparse(node)}, ...) is not supported", node)
        return datatype

    # Calls

    def transform_rule_call(self, call: FunctionCall) -> ast.expr:
        """Rewrite rule(...) to rule__n(g, s, ...)."""
        params = [self.visit(p) for p in call.params]
        keywords = [ast.keyword(arg=k.arg, value=self.visit(k.value)) for k in call.keywords]
        return ast.Call(
            func=ast.Name(id=self.ctx.rule_names[call.name], ctx=ast.Load()),
            args=[self.ctx.gen_ref(), self.ctx.state_ref()] + params,
            keywords=keywords,
        )

    def transform_subgen_call(self, call: FunctionCall) -> ast.expr:
        """Rewrite subgen(...) to subgen(g, s, index)."""
        index = self.ctx.subgen_index(call.name)
        if call.params or call.keywords:
            # TODO: pass parameters through once sub-generators can declare them
            message = f"Parameters to sub-generator {call.name!r} are ignored"
            lineno = getattr(call.node, "lineno", None)
            if lineno is not None:
                message += f" (line {lineno})"
            logger.warning(message)
            self.ctx.warn(message)
        return self.ctx.runtime_call(
            "subgen",
            [self.ctx.gen_ref(), self.ctx.state_ref(), ast.Constant(index)],
        )

    # Helpers

    def literal_or_expression(self, node: ast.expr, datatype: ValueType) -> tuple[ast.expr, Any, bool]:
        """
        Interpret a bound as a literal of `datatype`, or else as an expression.

        Expressions may contain constructs of their own, so they are
        transformed too. Returns (emitted node, literal value, is literal).
        """
        try:
            value = datatype.convert(ast.literal_eval(node))
        except _CONVERSION_ERRORS:
            return self.visit(node), None, False
        return ast.Constant(value), value, True

    def _check_positional(self, call: FunctionCall):
        if call.keywords:
            raise InvalidArgumentError(f"{call.name} does not accept keyword arguments", call.node)
        for param in call.params:
            if isinstance(param, ast.Starred):
                raise InvalidArgumentError(f"{call.name} does not accept starred arguments", param)


def transform_body(body: list[ast.stmt], ctx: CompileContext) -> list[ast.stmt]:
    """Transform a rule body block."""
    transformer = ConstructTransformer(ctx)
    return [transformer.visit(statement) for statement in body]


def check_defaults(arguments: ast.arguments, ctx: CompileContext):
    """
    Reject choice constructs and rule or sub-generator references in
    parameter defaults. Defaults are evaluated once, when the procedures are
    loaded, so they are not rewritten.
    """
    defaults = list(arguments.defaults) + [d for d in arguments.kw_defaults if d is not None]
    for default in defaults:
        for node in ast.walk(default):
            call = extract_func_call(node)
            if call is None:
                continue
            if (
                call.name in SEQUENCE_CONSTRUCTS
                or call.name == VALUE_CONSTRUCT
                or ctx.is_rule(call.name)
                or ctx.is_subgen(call.name)
            ):
                raise InvalidArgumentError(
                    f"parameter defaults cannot refer to {call.name!r}", default
                )
