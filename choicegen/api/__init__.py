"""
API Module - introspection surface for derivation and search engines.

An external engine reads a compiled generator's layout (metadata, choice
points, rule names, sub-generator slots) without re-running compilation.
"""

from .schemas import (
    ChoiceKindName,
    ChoicePointSchema,
    GeneratorSchema,
    describe_generator,
)

__all__ = [
    "ChoiceKindName",
    "ChoicePointSchema",
    "GeneratorSchema",
    "describe_generator",
]
