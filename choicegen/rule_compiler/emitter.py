"""
Generator Emitter - assembles and loads the compiled generator.

The emitted unit is one module: the rule procedures followed by a class
deriving from runtime.Generator that carries the metadata, the choice point
table and the rule name map. The module is executed into the declaring
namespace so that rule bodies see the names they were written against.
"""

from __future__ import annotations
import ast
import logging
from dataclasses import dataclass, field
from typing import Any

from .. import runtime
from ..errors import EmissionError
from ..spec_schema.syntax import class_def, function_def, merge_modules
from .context import RUNTIME_ALIAS, ChoicePointTable, CompileContext, runtime_attr

logger = logging.getLogger(__name__)


@dataclass
class GeneratorDefinition:
    """
    The compiled artifact of one generator specification.

    Calling the definition constructs a generator instance:

        definition = compile_generator(source)
        gen = definition(subgen_a, subgen_b)
    """
    name: str
    metadata: dict[str, Any]
    choice_points: ChoicePointTable
    rule_name_map: dict[str, str]
    subgen_names: tuple[str, ...]
    generator_class: type[runtime.Generator]
    source: str
    doc: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def subgen_arity(self) -> int:
        return len(self.subgen_names)

    @property
    def rule_procedures(self) -> dict[str, Any]:
        return self.generator_class.rule_procedures

    def __call__(self, *subgens: Any) -> runtime.Generator:
        return self.generator_class(*subgens)


def build_generator_class(
    name: str,
    subgen_names: list[str],
    ctx: CompileContext,
    bindings: dict[str, str],
    doc: str | None,
) -> ast.ClassDef:
    """
    Build the generator class.

    `bindings` maps class attributes to namespace names holding values that
    have no literal form (metadata, the choice point table).
    """
    def assign(attr: str, value: ast.expr) -> ast.stmt:
        return ast.Assign(targets=[ast.Name(id=attr, ctx=ast.Store())], value=value)

    procedure_names = list(ctx.rule_names.values()) + [
        alternative.internal_name
        for alternatives in ctx.rules.values()
        for alternative in alternatives
    ]

    body: list[ast.stmt] = []
    if doc:
        body.append(ast.Expr(value=ast.Constant(doc)))
    body += [
        assign("name", ast.Constant(name)),
        assign("subgen_names", ast.Tuple(elts=[ast.Constant(n) for n in subgen_names], ctx=ast.Load())),
        assign("subgen_arity", ast.Constant(len(subgen_names))),
    ]
    for attr, binding in bindings.items():
        body.append(assign(attr, ast.Name(id=binding, ctx=ast.Load())))
    body += [
        assign(
            "rule_names",
            ast.Dict(
                keys=[ast.Constant(k) for k in ctx.rule_names],
                values=[ast.Constant(v) for v in ctx.rule_names.values()],
            ),
        ),
        assign(
            "rule_procedures",
            ast.Dict(
                keys=[ast.Constant(n) for n in procedure_names],
                values=[ast.Name(id=n, ctx=ast.Load()) for n in procedure_names],
            ),
        ),
    ]

    # evaluate() runs in the globals of the declaring namespace
    evaluate_args = ast.arguments(
        posonlyargs=[],
        args=[ast.arg(arg="self", annotation=None), ast.arg(arg="expression", annotation=None)],
        vararg=None,
        kwonlyargs=[],
        kw_defaults=[],
        kwarg=None,
        defaults=[],
    )
    body.append(
        function_def(
            "evaluate",
            evaluate_args,
            [
                ast.Return(
                    value=ctx.runtime_call(
                        "evaluate",
                        [
                            ast.Name(id="expression", ctx=ast.Load()),
                            ast.Call(func=ast.Name(id="globals", ctx=ast.Load()), args=[], keywords=[]),
                        ],
                    )
                )
            ],
        )
    )

    return class_def(name, [runtime_attr("Generator")], body)


def emit(
    name: str,
    subgen_names: list[str],
    metadata: dict[str, Any],
    ctx: CompileContext,
    rule_procedures: ast.Module,
    namespace: dict[str, Any],
    doc: str | None = None,
    filename: str | None = None,
) -> GeneratorDefinition:
    """
    Emit the generator class, merge it with the rule procedures and load
    the result into `namespace`.

    Statements run one at a time so that a failure names the procedure
    that raised it. Cleaning up the namespace after a failure is left to
    the caller.
    """
    bindings = {
        "meta": ctx.fresh_name("_meta"),
        "choice_points": ctx.fresh_name("_choice_points"),
    }
    class_node = build_generator_class(name, subgen_names, ctx, bindings, doc)
    cleanup = ast.Delete(targets=[ast.Name(id=b, ctx=ast.Del()) for b in bindings.values()])

    module = merge_modules(rule_procedures, ast.Module(body=[class_node, cleanup], type_ignores=[]))
    ast.fix_missing_locations(module)
    source = ast.unparse(module)

    filename = filename or f"<generator {name}>"
    codes = [
        (statement, compile(ast.Module(body=[statement], type_ignores=[]), filename, "exec"))
        for statement in module.body
    ]

    namespace.setdefault("__name__", f"choicegen.generated.{name}")
    namespace[RUNTIME_ALIAS] = runtime
    namespace[bindings["meta"]] = metadata
    namespace[bindings["choice_points"]] = ctx.choice_points
    for statement, code in codes:
        try:
            exec(code, namespace)
        except Exception as e:
            raise EmissionError(f"Generator {name} failed to load: {e}", statement) from e

    generator_class = namespace[name]
    logger.debug(
        "Loaded generator %s with %d choice points and %d procedures",
        name,
        len(ctx.choice_points),
        len(generator_class.rule_procedures),
    )

    return GeneratorDefinition(
        name=name,
        metadata=metadata,
        choice_points=ctx.choice_points,
        rule_name_map=dict(ctx.rule_names),
        subgen_names=tuple(subgen_names),
        generator_class=generator_class,
        source=source,
        doc=doc,
        warnings=list(ctx.warnings),
    )
