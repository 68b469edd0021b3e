"""
Declaration Validation - checks the generator declaration itself.

Validates that:
1. The source holds exactly one generator declaration
2. The generator name and sub-generator slots are plain identifiers
3. Slots carry no annotations, defaults, or star forms
"""

from __future__ import annotations
import ast

from ..errors import InvalidSignatureError, MalformedSpecError
from .syntax import extract_func_sig, is_docstring, is_simple_parameter


def parse_specification(source: str, filename: str = "<generator specification>") -> tuple[list[ast.stmt], ast.FunctionDef]:
    """
    Parse specification source into (imports, declaration).

    A module docstring and import statements may precede or follow the
    single generator declaration.
    """
    try:
        module = ast.parse(source, filename=filename)
    except SyntaxError as e:
        raise MalformedSpecError(f"Specification is not valid Python: {e.msg} (line {e.lineno})") from e

    imports: list[ast.stmt] = []
    declarations: list[ast.stmt] = []
    for index, node in enumerate(module.body):
        if index == 0 and is_docstring(node):
            continue
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            imports.append(node)
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            declarations.append(node)
        else:
            raise MalformedSpecError("Unrecognised statement outside the generator declaration", node)

    if len(declarations) != 1:
        raise InvalidSignatureError(
            f"Expected exactly one generator declaration, found {len(declarations)}"
        )
    return imports, declarations[0]


def validate_signature(node: ast.stmt) -> tuple[str, list[str]]:
    """
    Validate the generator declaration.

    Returns (generator name, sub-generator slot names).
    Raises InvalidSignatureError listing every problem found.
    """
    signature = extract_func_sig(node)
    if signature is None:
        raise InvalidSignatureError("The generator declaration must be a plain function definition", node)

    name, arguments = signature
    errors: list[str] = []

    if arguments.posonlyargs:
        errors.append("positional-only markers are not allowed")
    if arguments.vararg is not None or arguments.kwarg is not None:
        errors.append("*args and **kwargs are not allowed")
    if arguments.kwonlyargs:
        errors.append("keyword-only parameters are not allowed")
    if arguments.defaults:
        errors.append("parameter defaults are not allowed")
    typed = [a.arg for a in arguments.args if not is_simple_parameter(a)]
    if typed:
        errors.append(f"remove type annotations from {', '.join(typed)}")
    if node.returns is not None:
        errors.append("remove the return annotation")

    if errors:
        raise InvalidSignatureError(
            f"The arguments to generator {name} are not valid: {'; '.join(errors)}", node
        )

    return name, [a.arg for a in arguments.args]
