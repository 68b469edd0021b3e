"""
Generator - the base class of every compiled generator.

A compiled generator class carries its tables as class attributes; an
instance only adds the sub-generators it was constructed with. Instances are
not mutated after construction: all run-time state lives in the derivation
state passed to each call.
"""

from __future__ import annotations
import ast
from typing import Any, Callable, Sequence, TYPE_CHECKING

from ..errors import ArityError, SubgeneratorTypeError

if TYPE_CHECKING:
    from .state import DerivationState


class Generator:
    """
    Base class for compiled generators.

    Usage:
        gen = ExprGen(digits_gen)
        value = gen.generate(state)
    """
    name: str = ""
    meta: dict[str, Any] = {}
    choice_points: dict = {}
    rule_names: dict[str, str] = {}
    rule_procedures: dict[str, Callable[..., Any]] = {}
    subgen_names: tuple[str, ...] = ()
    subgen_arity: int = 0

    def __init__(self, *subgens: Generator | Sequence[Generator]):
        # Accept both Gen(a, b) and Gen([a, b])
        if len(subgens) == 1 and isinstance(subgens[0], (list, tuple)):
            subgens = tuple(subgens[0])

        if len(subgens) != self.subgen_arity:
            raise ArityError(
                f"{self.name or type(self).__name__} expects {self.subgen_arity} "
                f"sub-generator(s), got {len(subgens)}"
            )

        invalid = [sg for sg in subgens if not isinstance(sg, Generator)]
        if invalid:
            raise SubgeneratorTypeError(
                f"Not all sub-generators of {self.name or type(self).__name__} "
                f"are generators: {invalid!r}"
            )

        self.subgens: tuple[Generator, ...] = tuple(subgens)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(repr(sg) for sg in self.subgens)})"

    @property
    def start_rule(self) -> str:
        """
        The rule a generation starts from.

        The `start` metadata entry if it names a rule, else a rule called
        `start`, else the first rule declared.
        """
        start = self.meta.get("start")
        if isinstance(start, str) and start in self.rule_names:
            return start
        if "start" in self.rule_names:
            return "start"
        if not self.rule_names:
            raise LookupError(f"Generator {self.name} has no rules")
        return next(iter(self.rule_names))

    def invoke(self, rule: str, state: DerivationState, *args: Any, **kwargs: Any) -> Any:
        """Call a rule by its user-facing name."""
        try:
            internal_name = self.rule_names[rule]
        except KeyError:
            raise LookupError(f"Generator {self.name} has no rule {rule!r}") from None
        return self.rule_procedures[internal_name](self, state, *args, **kwargs)

    def generate(self, state: DerivationState, rule: str | None = None) -> Any:
        """Produce one instance, starting from `rule` or the start rule."""
        return self.invoke(rule or self.start_rule, state)

    def run(self, parent: Generator, state: DerivationState) -> Any:
        """Run as a sub-generator of `parent`, sharing its derivation state."""
        return self.generate(state)

    def evaluate(self, expression: str | ast.expr) -> Any:
        """Evaluate an expression in the context the generator was declared in."""
        raise NotImplementedError("evaluate is provided by compiled generators")


def subgen(gen: Generator, state: DerivationState, index: int) -> Any:
    """Delegate to the sub-generator in slot `index`."""
    return gen.subgens[index].run(gen, state)


def evaluate(expression: str | ast.expr, namespace: dict[str, Any]) -> Any:
    if isinstance(expression, ast.AST):
        node = expression if isinstance(expression, ast.Expression) else ast.Expression(body=expression)
        expression = compile(ast.fix_missing_locations(node), "<generator expression>", "eval")
    return eval(expression, namespace)
