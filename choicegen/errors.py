"""
Errors raised while compiling and instantiating generators.

Compile-time errors are fatal to the whole compilation: no generator
definition is produced and nothing is executed into the declaring namespace.
"""

from __future__ import annotations
import ast


class ChoicegenError(Exception):
    """Base class for all choicegen errors."""


class GeneratorCompileError(ChoicegenError):
    """Raised when a generator specification cannot be compiled."""

    def __init__(self, message: str, node: ast.AST | None = None):
        self.message = message
        self.node = node
        super().__init__(_describe(message, node))


class InvalidSignatureError(GeneratorCompileError):
    """Generator name or sub-generator parameters are not simple identifiers."""


class MalformedSpecError(GeneratorCompileError):
    """A top-level statement is neither metadata, a rule, nor a block."""


class UnsupportedTypeError(GeneratorCompileError):
    """A value choice names an unsupported or abstract data type."""


class ArgumentCountError(GeneratorCompileError):
    """A choice construct was given the wrong number of parameters."""


class InvalidArgumentError(GeneratorCompileError):
    """A choice construct parameter has the wrong shape."""


class EmissionError(GeneratorCompileError):
    """The emitted generator raised while being loaded into its namespace."""


class ArityError(ChoicegenError, ValueError):
    """Wrong number of sub-generators supplied to a generator."""


class SubgeneratorTypeError(ChoicegenError, TypeError):
    """A supplied sub-generator is not a generator."""


class ChoiceOutOfRangeError(ChoicegenError, ValueError):
    """A derivation state answered a rule choice with an invalid index."""


def _describe(message: str, node: ast.AST | None) -> str:
    if node is None:
        return message
    try:
        text = ast.unparse(node)
    except Exception:
        text = type(node).__name__
    if len(text) > 80:
        text = text[:77] + "..."
    lineno = getattr(node, "lineno", None)
    if lineno is not None:
        return f"{message} (line {lineno}: {text})"
    return f"{message} ({text})"
