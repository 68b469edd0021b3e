"""
Rule Compiler - compiles generator specifications into generators.

The rule compiler:
1. Extracts metadata and rule alternatives from the specification
2. Numbers every choice construct as a choice point
3. Builds umbrella procedures that make alternative selection a choice
4. Emits a generator class describing all choice points

The compiler never makes choices itself; a derivation state does at run time.
"""

from .compiler import GeneratorCompiler, compile_generator, generator, load_generator
from .context import ChoiceKind, ChoicePoint, CompileContext, NameAllocator
from .constructs import ConstructTransformer, transform_body
from .emitter import GeneratorDefinition, emit
from .patterns import DelegatingPatternCompiler, PatternCompiler
from .umbrella import build_umbrella, transform_rules

__all__ = [
    "GeneratorCompiler",
    "compile_generator",
    "generator",
    "load_generator",
    "ChoiceKind",
    "ChoicePoint",
    "CompileContext",
    "NameAllocator",
    "ConstructTransformer",
    "transform_body",
    "GeneratorDefinition",
    "emit",
    "DelegatingPatternCompiler",
    "PatternCompiler",
    "build_umbrella",
    "transform_rules",
]
