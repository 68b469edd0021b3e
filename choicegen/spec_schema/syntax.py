"""
Syntax Node Utilities - recognize the surface shapes of a specification.

All helpers are pure: they inspect Python AST nodes and return the parts of
a recognized shape, or None when the node does not have that shape.
"""

from __future__ import annotations
import ast
from dataclasses import dataclass
from enum import Enum


class RuleForm(Enum):
    """Surface forms of a rule definition."""
    ASSIGNMENT = "assignment"  # name = expression
    LAMBDA = "lambda"  # name = lambda params: expression
    FUNCTION = "function"  # def name(params): ...


@dataclass
class FunctionDefinition:
    """A recognized rule definition."""
    name: str
    arguments: ast.arguments
    body: ast.expr | list[ast.stmt]
    form: RuleForm
    node: ast.stmt


@dataclass
class FunctionCall:
    """A recognized call shape: head identifier plus parameters."""
    name: str
    params: list[ast.expr]
    keywords: list[ast.keyword]
    node: ast.expr


def empty_arguments() -> ast.arguments:
    return ast.arguments(
        posonlyargs=[],
        args=[],
        vararg=None,
        kwonlyargs=[],
        kw_defaults=[],
        kwarg=None,
        defaults=[],
    )


def is_block(node: ast.AST) -> bool:
    """A nested block is `if <true literal>:` with no else branch."""
    if not isinstance(node, ast.If) or node.orelse:
        return False
    test = node.test
    if not isinstance(test, ast.Constant):
        return False
    return test.value is True or (type(test.value) is int and test.value == 1)


def is_docstring(node: ast.AST) -> bool:
    return (
        isinstance(node, ast.Expr)
        and isinstance(node.value, ast.Constant)
        and isinstance(node.value.value, str)
    )


def is_pass(node: ast.AST) -> bool:
    return isinstance(node, ast.Pass)


def extract_metadata_pair(node: ast.AST) -> tuple[str, ast.expr] | None:
    """
    Match `key: expression`.

    In Python this is an annotated name without a value.
    """
    if (
        isinstance(node, ast.AnnAssign)
        and node.value is None
        and node.simple
        and isinstance(node.target, ast.Name)
    ):
        return node.target.id, node.annotation
    return None


def extract_func_sig(node: ast.AST) -> tuple[str, ast.arguments] | None:
    """Extract (name, arguments) from a generator declaration."""
    if isinstance(node, ast.FunctionDef):
        return node.name, node.args
    return None


def extract_func_def(node: ast.AST) -> FunctionDefinition | None:
    """
    Extract a rule definition in one of its three forms:

        name = expression
        name = lambda params: expression
        def name(params): ...
    """
    if isinstance(node, ast.FunctionDef):
        return FunctionDefinition(
            name=node.name,
            arguments=node.args,
            body=node.body,
            form=RuleForm.FUNCTION,
            node=node,
        )

    if (
        isinstance(node, ast.Assign)
        and len(node.targets) == 1
        and isinstance(node.targets[0], ast.Name)
    ):
        name = node.targets[0].id
        if isinstance(node.value, ast.Lambda):
            return FunctionDefinition(
                name=name,
                arguments=node.value.args,
                body=node.value.body,
                form=RuleForm.LAMBDA,
                node=node,
            )
        return FunctionDefinition(
            name=name,
            arguments=empty_arguments(),
            body=node.value,
            form=RuleForm.ASSIGNMENT,
            node=node,
        )

    return None


def extract_func_call(node: ast.AST) -> FunctionCall | None:
    """
    Parse a call shape into head identifier and parameters.

    A bare identifier being read counts as a call with no parameters.
    """
    if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
        return FunctionCall(
            name=node.func.id,
            params=list(node.args),
            keywords=list(node.keywords),
            node=node,
        )
    if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load):
        return FunctionCall(name=node.id, params=[], keywords=[], node=node)
    return None


def is_simple_parameter(arg: ast.arg) -> bool:
    """An untyped positional parameter."""
    return arg.annotation is None and getattr(arg, "type_comment", None) is None


def forward_arguments(arguments: ast.arguments) -> tuple[list[ast.expr], list[ast.keyword]]:
    """
    Build the call parameters that forward every parameter of `arguments`
    to another function with the same signature.
    """
    params: list[ast.expr] = [
        ast.Name(id=a.arg, ctx=ast.Load())
        for a in arguments.posonlyargs + arguments.args
    ]
    if arguments.vararg is not None:
        params.append(
            ast.Starred(value=ast.Name(id=arguments.vararg.arg, ctx=ast.Load()), ctx=ast.Load())
        )
    keywords = [
        ast.keyword(arg=a.arg, value=ast.Name(id=a.arg, ctx=ast.Load()))
        for a in arguments.kwonlyargs
    ]
    if arguments.kwarg is not None:
        keywords.append(ast.keyword(arg=None, value=ast.Name(id=arguments.kwarg.arg, ctx=ast.Load())))
    return params, keywords


def with_leading_params(arguments: ast.arguments, names: list[str]) -> ast.arguments:
    """Copy `arguments` with positional-only parameters `names` in front."""
    leading = [ast.arg(arg=name, annotation=None) for name in names]
    return ast.arguments(
        posonlyargs=leading + list(arguments.posonlyargs),
        args=list(arguments.args),
        vararg=arguments.vararg,
        kwonlyargs=list(arguments.kwonlyargs),
        kw_defaults=list(arguments.kw_defaults),
        kwarg=arguments.kwarg,
        defaults=list(arguments.defaults),
    )


def as_statements(body: ast.expr | list[ast.stmt]) -> list[ast.stmt]:
    """Make a rule body a statement block."""
    if isinstance(body, list):
        return body
    return [ast.Return(value=body)]


def function_def(name: str, arguments: ast.arguments, body: list[ast.stmt]) -> ast.FunctionDef:
    node = ast.FunctionDef(
        name=name,
        args=arguments,
        body=body,
        decorator_list=[],
        returns=None,
        type_comment=None,
    )
    if "type_params" in ast.FunctionDef._fields:
        node.type_params = []
    return node


def class_def(name: str, bases: list[ast.expr], body: list[ast.stmt]) -> ast.ClassDef:
    node = ast.ClassDef(
        name=name,
        bases=bases,
        keywords=[],
        body=body,
        decorator_list=[],
    )
    if "type_params" in ast.ClassDef._fields:
        node.type_params = []
    return node


def merge_modules(first: ast.Module, second: ast.Module) -> ast.Module:
    """Merge two modules into a single one, preserving order."""
    return ast.Module(body=list(first.body) + list(second.body), type_ignores=[])
