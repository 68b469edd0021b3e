"""
Generator Compiler - compiles a generator specification to a generator.

The compiler:
1. Validates the generator name and sub-generator slots
2. Extracts metadata and rules from the body
3. Rewrites rule bodies and builds umbrella procedures
4. Emits the generator class and loads everything into the namespace

Compilation is all-or-nothing: on any error the declaring namespace gets
back the bindings it had before compilation started.
"""

from __future__ import annotations
import ast
import inspect
import logging
import os
import random
import textwrap
import types
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator

from ..errors import MalformedSpecError
from ..spec_schema.evaluator import ConstantEvaluator
from ..spec_schema.extractor import extract
from ..spec_schema.validation import parse_specification, validate_signature
from .context import RUNTIME_ALIAS, CompileContext
from .emitter import GeneratorDefinition, emit
from .patterns import DelegatingPatternCompiler, PatternCompiler
from .umbrella import transform_rules

logger = logging.getLogger(__name__)

# Environment configuration
CHOICEGEN_SEED = os.getenv("CHOICEGEN_SEED", None)

_MISSING = object()


class GeneratorCompiler:
    """
    Compiles generator specifications.

    Usage:
        compiler = GeneratorCompiler(seed=42)
        definition = compiler.compile(source)
        gen = definition()
    """

    def __init__(
        self,
        seed: int | None = None,
        pattern_compiler: PatternCompiler | None = None,
    ):
        if seed is None and CHOICEGEN_SEED:
            seed = int(CHOICEGEN_SEED)
        self.seed = seed
        self.rng = random.Random(seed)
        self.pattern_compiler = pattern_compiler or DelegatingPatternCompiler()

    def compile(
        self,
        source: str,
        namespace: dict[str, Any] | None = None,
        filename: str | None = None,
    ) -> GeneratorDefinition:
        """
        Compile specification source.

        Args:
            source: Python source holding one generator declaration
            namespace: Globals the rules run in (a fresh module if None)
            filename: Reported in errors and tracebacks

        Returns:
            The loaded GeneratorDefinition
        """
        imports, declaration = parse_specification(source, filename or "<generator specification>")
        validate_signature(declaration)
        namespace = _prepare_namespace(namespace)
        with restored_on_error(namespace):
            # Metadata and data type names may refer to imported modules
            _run_imports(imports, namespace, filename)
            return self.compile_declaration(declaration, namespace, filename=filename)

    def compile_declaration(
        self,
        declaration: ast.stmt,
        namespace: dict[str, Any],
        filename: str | None = None,
    ) -> GeneratorDefinition:
        """
        Compile an already parsed generator declaration.

        If any stage fails, `namespace` is restored to the bindings it had
        before the call.
        """
        with restored_on_error(namespace):
            return self._compile_declaration(declaration, namespace, filename)

    def _compile_declaration(
        self,
        declaration: ast.stmt,
        namespace: dict[str, Any],
        filename: str | None,
    ) -> GeneratorDefinition:
        name, subgen_names = validate_signature(declaration)
        logger.debug("Compiling generator %s(%s)", name, ", ".join(subgen_names))

        evaluator = ConstantEvaluator(namespace=namespace)
        spec = extract(declaration.body, evaluator)

        ctx = CompileContext.create(
            generator_name=name,
            subgen_names=subgen_names,
            rules=spec.rules,
            rng=self.rng,
            evaluator=evaluator,
            pattern_compiler=self.pattern_compiler,
            reserved=set(namespace) | {name, RUNTIME_ALIAS},
        )
        rule_procedures = transform_rules(ctx)

        definition = emit(
            name,
            subgen_names,
            spec.metadata,
            ctx,
            rule_procedures,
            namespace,
            doc=spec.doc,
            filename=filename,
        )
        logger.debug(
            "Compiled generator %s: %d rules, %d choice points, offset %d",
            name,
            len(definition.rule_name_map),
            len(definition.choice_points),
            ctx.offset,
        )
        return definition


def _prepare_namespace(namespace: dict[str, Any] | None) -> dict[str, Any]:
    if namespace is not None:
        return namespace
    return vars(types.ModuleType("choicegen.generated"))


@contextmanager
def restored_on_error(namespace: dict[str, Any]) -> Iterator[None]:
    """
    Undo every binding made in `namespace` if the block raises.

    Names added are removed and names rebound get their old value back.
    """
    saved = dict(namespace)
    try:
        yield
    except BaseException:
        for key in [k for k in namespace if k not in saved]:
            del namespace[key]
        for key, value in saved.items():
            if namespace.get(key, _MISSING) is not value:
                namespace[key] = value
        raise


def _run_imports(imports: list[ast.stmt], namespace: dict[str, Any], filename: str | None):
    for node in imports:
        code = compile(ast.Module(body=[node], type_ignores=[]), filename or "<imports>", "exec")
        try:
            exec(code, namespace)
        except ImportError as e:
            raise MalformedSpecError(f"Import failed: {e}", node) from e


def compile_generator(
    source: str,
    namespace: dict[str, Any] | None = None,
    seed: int | None = None,
    pattern_compiler: PatternCompiler | None = None,
) -> GeneratorDefinition:
    """
    Convenience function to compile a specification.
    """
    compiler = GeneratorCompiler(seed=seed, pattern_compiler=pattern_compiler)
    return compiler.compile(source, namespace=namespace)


def load_generator(
    path: str | Path,
    namespace: dict[str, Any] | None = None,
    seed: int | None = None,
    pattern_compiler: PatternCompiler | None = None,
) -> GeneratorDefinition:
    """Compile a specification file."""
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    if namespace is None:
        namespace = _prepare_namespace(None)
        namespace["__file__"] = str(path)
    compiler = GeneratorCompiler(seed=seed, pattern_compiler=pattern_compiler)
    return compiler.compile(source, namespace=namespace, filename=str(path))


def generator(
    func: Callable[..., Any] | None = None,
    *,
    seed: int | None = None,
    pattern_compiler: PatternCompiler | None = None,
):
    """
    Decorator compiling a function body as a generator specification.

    The rules run in the globals of the function's module, so helpers may be
    defined before or after the generator. Closure variables are not visible.

    Usage:
        @generator
        def Digits():
            start = "".join(plus(digit))
            digit = str(choose(Int8, 0, 9))
    """
    def decorate(f: Callable[..., Any]) -> type:
        source = textwrap.dedent(inspect.getsource(f))
        _, declaration = parse_specification(source)
        ast.increment_lineno(declaration, f.__code__.co_firstlineno - 1)
        filename = inspect.getsourcefile(f) or f"<generator {f.__name__}>"

        compiler = GeneratorCompiler(seed=seed, pattern_compiler=pattern_compiler)
        definition = compiler.compile_declaration(declaration, f.__globals__, filename=filename)
        return definition.generator_class

    if func is None:
        return decorate
    return decorate(func)
