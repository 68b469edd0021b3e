"""
Choicegen - Grammar Generator Compiler

Compiles declarative generator specifications (rules, sub-generator slots
and embedded choice constructs) into executable generators. The compiled
generator:
- Exposes one procedure per rule
- Numbers every random decision as a choice point
- Describes all choice points for an external derivation engine
- Leaves every actual choice to a caller-supplied derivation state
"""

__version__ = "0.1.0"

from .errors import (
    ArgumentCountError,
    ArityError,
    ChoiceOutOfRangeError,
    ChoicegenError,
    EmissionError,
    GeneratorCompileError,
    InvalidArgumentError,
    InvalidSignatureError,
    MalformedSpecError,
    SubgeneratorTypeError,
    UnsupportedTypeError,
)
from .rule_compiler import (
    ChoiceKind,
    ChoicePoint,
    GeneratorCompiler,
    GeneratorDefinition,
    compile_generator,
    generator,
    load_generator,
)
from .runtime import DerivationState, Generator

__all__ = [
    "ArgumentCountError",
    "ArityError",
    "ChoiceOutOfRangeError",
    "ChoicegenError",
    "EmissionError",
    "GeneratorCompileError",
    "InvalidArgumentError",
    "InvalidSignatureError",
    "MalformedSpecError",
    "SubgeneratorTypeError",
    "UnsupportedTypeError",
    "ChoiceKind",
    "ChoicePoint",
    "GeneratorCompiler",
    "GeneratorDefinition",
    "compile_generator",
    "generator",
    "load_generator",
    "DerivationState",
    "Generator",
]
