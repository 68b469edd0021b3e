"""
Pattern Compilers - turn `choose(String, pattern)` into an expression.

Generating strings that match a pattern is not done by the compiler. A
pattern compiler receives the literal pattern and registers whatever choice
points it needs in the compile context.
"""

from __future__ import annotations
import ast
from typing import Protocol

from ..spec_schema.datatypes import ValueType
from .context import ChoiceKind, CompileContext, runtime_attr


class PatternCompiler(Protocol):
    """Compiles a string pattern to an expression producing a value."""

    def compile(self, pattern: str, datatype: ValueType, ctx: CompileContext) -> ast.expr:
        ...


class DelegatingPatternCompiler:
    """
    Default pattern compiler.

    Registers a single value choice carrying the pattern and leaves the
    pattern semantics to the derivation state's choose_string operation.
    An empty pattern means any string.
    """

    def compile(self, pattern: str, datatype: ValueType, ctx: CompileContext) -> ast.expr:
        cp_id = ctx.record_choice_point(
            ChoiceKind.VALUE,
            {"datatype": datatype, "pattern": pattern},
        )
        return ctx.runtime_call(
            "choose_string",
            [
                ctx.state_ref(),
                ast.Constant(cp_id),
                runtime_attr(datatype.name),
                ast.Constant(pattern),
            ],
        )
