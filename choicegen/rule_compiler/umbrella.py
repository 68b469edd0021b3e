"""
Umbrella Procedures - the externally visible procedure of each rule.

For a rule with several alternatives the umbrella owns the implicit rule
choice point. In every case it records rule entry and exit around the call
of the alternative, so an early return inside a user-authored body cannot
skip the exit record:

    def expr__3(_g__1, _s__2, /, *params):
        runtime.record_start_of_rule(_s__2, 'expr__3')
        _chosen__9 = runtime.choose_rule(_s__2, cpid, 2)
        if _chosen__9 == 1:
            _result__8 = expr__6(_g__1, _s__2, *params)
        elif _chosen__9 == 2:
            _result__8 = expr__7(_g__1, _s__2, *params)
        runtime.record_end_of_rule(_s__2)
        return _result__8
"""

from __future__ import annotations
import ast
import copy
import logging

from ..spec_schema.extractor import RuleAlternative
from ..spec_schema.syntax import (
    as_statements,
    forward_arguments,
    function_def,
    with_leading_params,
)
from .constructs import check_defaults, transform_body
from .context import ChoiceKind, CompileContext

logger = logging.getLogger(__name__)


def build_umbrella(rule_name: str, alternatives: list[RuleAlternative], ctx: CompileContext) -> ast.FunctionDef:
    """
    Build the umbrella procedure for a rule.

    Assigns the internal name of every alternative. Parameters of the first
    alternative become the umbrella's parameters.
    """
    arguments = alternatives[0].parameters
    params, keywords = forward_arguments(arguments)
    result_var = ctx.fresh_name("_result")

    def call_alternative(alternative: RuleAlternative) -> ast.stmt:
        call = ast.Call(
            func=ast.Name(id=alternative.internal_name, ctx=ast.Load()),
            args=[ctx.gen_ref(), ctx.state_ref()] + copy.deepcopy(params),
            keywords=copy.deepcopy(keywords),
        )
        return ast.Assign(targets=[ast.Name(id=result_var, ctx=ast.Store())], value=call)

    if len(alternatives) > 1:
        chosen_var = ctx.fresh_name("_chosen")
        for alternative in alternatives:
            alternative.internal_name = ctx.fresh_name(rule_name)

        count = len(alternatives)
        cp_id = ctx.record_choice_point(
            ChoiceKind.RULE,
            {"rule_name": rule_name, "min": 1, "max": count},
        )
        logger.debug("Rule choice point %d for %r over %d alternatives", cp_id, rule_name, count)

        dispatch: list[ast.stmt] = [
            ast.Assign(
                targets=[ast.Name(id=chosen_var, ctx=ast.Store())],
                value=ctx.runtime_call(
                    "choose_rule",
                    [ctx.state_ref(), ast.Constant(cp_id), ast.Constant(count)],
                ),
            )
        ]

        # Build the if/elif chain from the last alternative backwards
        chain: ast.If | None = None
        for index in range(count, 0, -1):
            chain = ast.If(
                test=ast.Compare(
                    left=ast.Name(id=chosen_var, ctx=ast.Load()),
                    ops=[ast.Eq()],
                    comparators=[ast.Constant(index)],
                ),
                body=[call_alternative(alternatives[index - 1])],
                orelse=[chain] if chain is not None else [],
            )
        dispatch.append(chain)
    else:
        alternatives[0].internal_name = ctx.fresh_name(rule_name)
        dispatch = [call_alternative(alternatives[0])]

    # The internal name is recorded since user rule names need not be unique
    # across a generator and its sub-generators
    internal_name = ctx.rule_names[rule_name]
    body = (
        [
            ast.Expr(
                value=ctx.runtime_call(
                    "record_start_of_rule",
                    [ctx.state_ref(), ast.Constant(internal_name)],
                )
            )
        ]
        + dispatch
        + [
            ast.Expr(value=ctx.runtime_call("record_end_of_rule", [ctx.state_ref()])),
            ast.Return(value=ast.Name(id=result_var, ctx=ast.Load())),
        ]
    )

    node = function_def(
        internal_name,
        with_leading_params(copy.deepcopy(arguments), [ctx.gen_param, ctx.state_param]),
        body,
    )
    if alternatives[0].lineno is not None:
        node.lineno = node.end_lineno = alternatives[0].lineno
    return node


def build_alternative(alternative: RuleAlternative, ctx: CompileContext) -> ast.FunctionDef:
    """Rewrite one alternative, whatever its surface form, as a function."""
    check_defaults(alternative.parameters, ctx)
    body = transform_body(as_statements(alternative.body), ctx)
    node = function_def(
        alternative.internal_name,
        with_leading_params(alternative.parameters, [ctx.gen_param, ctx.state_param]),
        body,
    )
    if alternative.lineno is not None:
        node.lineno = node.end_lineno = alternative.lineno
    return node


def transform_rules(ctx: CompileContext) -> ast.Module:
    """
    Emit the umbrella and alternative procedures of every rule.

    Rules are processed in declaration order.
    """
    procedures: list[ast.stmt] = []
    for rule_name, alternatives in ctx.rules.items():
        procedures.append(build_umbrella(rule_name, alternatives, ctx))
        for alternative in alternatives:
            procedures.append(build_alternative(alternative, ctx))
    logger.debug(
        "Emitted %d procedures for %d rules of %s",
        len(procedures),
        len(ctx.rules),
        ctx.generator_name,
    )
    return ast.Module(body=procedures, type_ignores=[])
