"""
Compile Context - mutable state threaded through one generator compilation.

Choice point ids are `offset + counter`, where the offset is a random 63-bit
number drawn once per generator. Ids within one generator are exact and
strictly increasing; ids across generators only collide with negligible
probability, which matters when generators are composed as sub-generators.
"""

from __future__ import annotations
import ast
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TYPE_CHECKING

from ..spec_schema.evaluator import ConstantEvaluator
from ..spec_schema.extractor import RuleTable

if TYPE_CHECKING:
    from .patterns import PatternCompiler


OFFSET_BITS = 63
RUNTIME_ALIAS = "_choicegen_runtime"


class ChoiceKind(Enum):
    """Kinds of choice points."""
    RULE = "rule"
    SEQUENCE = "sequence"
    VALUE = "value"


@dataclass
class ChoicePoint:
    """
    A numbered decision location.

    info keys: rule_name, min, max, datatype, pattern. min and max are only
    present when the bound is a literal known at compile time.
    """
    id: int
    kind: ChoiceKind
    info: dict[str, Any] = field(default_factory=dict)

    @property
    def rule_name(self) -> str | None:
        return self.info.get("rule_name")

    @property
    def datatype(self):
        return self.info.get("datatype")

    @property
    def min(self) -> Any:
        return self.info.get("min")

    @property
    def max(self) -> Any:
        return self.info.get("max")

    @property
    def has_literal_min(self) -> bool:
        return "min" in self.info

    @property
    def has_literal_max(self) -> bool:
        return "max" in self.info


ChoicePointTable = dict[int, ChoicePoint]


class NameAllocator:
    """
    Hands out identifiers unique to one compilation.

    Names get a monotonically increasing suffix and skip anything already
    bound in the namespace the generator is executed into.
    """

    def __init__(self, reserved: set[str] | None = None):
        self._counter = 0
        self._reserved = set(reserved or ())

    def fresh(self, base: str) -> str:
        while True:
            self._counter += 1
            name = f"{base}__{self._counter}"
            if name not in self._reserved:
                self._reserved.add(name)
                return name


def random_offset(rng: random.Random) -> int:
    """A random 63-bit offset, leaving headroom below 2**64 for the counter."""
    return rng.getrandbits(OFFSET_BITS)


@dataclass
class CompileContext:
    """
    Everything the construct transformer and umbrella builder share.

    Create with CompileContext.create() so that rule names are mapped to
    internal names before any rule body is transformed.
    """
    generator_name: str
    subgen_names: list[str]
    rules: RuleTable
    offset: int
    names: NameAllocator
    evaluator: ConstantEvaluator
    pattern_compiler: PatternCompiler
    gen_param: str = ""
    state_param: str = ""
    counter: int = 0
    choice_points: ChoicePointTable = field(default_factory=dict)
    rule_names: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        generator_name: str,
        subgen_names: list[str],
        rules: RuleTable,
        rng: random.Random,
        evaluator: ConstantEvaluator,
        pattern_compiler: PatternCompiler,
        reserved: set[str] | None = None,
    ) -> CompileContext:
        names = NameAllocator(reserved)
        ctx = cls(
            generator_name=generator_name,
            subgen_names=list(subgen_names),
            rules=rules,
            offset=random_offset(rng),
            names=names,
            evaluator=evaluator,
            pattern_compiler=pattern_compiler,
            gen_param=names.fresh("_g"),
            state_param=names.fresh("_s"),
        )
        # Declaration order keeps numbering deterministic for a fixed offset
        for rule_name in rules:
            ctx.rule_names[rule_name] = names.fresh(rule_name)
        return ctx

    def next_choice_point_id(self) -> int:
        self.counter += 1
        return self.offset + self.counter

    def record_choice_point(self, kind: ChoiceKind, info: dict[str, Any]) -> int:
        """Register a choice point and return its id."""
        cp_id = self.next_choice_point_id()
        self.choice_points[cp_id] = ChoicePoint(id=cp_id, kind=kind, info=info)
        return cp_id

    def fresh_name(self, base: str) -> str:
        return self.names.fresh(base)

    def is_rule(self, name: str) -> bool:
        return name in self.rules

    def is_subgen(self, name: str) -> bool:
        return name in self.subgen_names

    def subgen_index(self, name: str) -> int:
        return self.subgen_names.index(name)

    def warn(self, message: str):
        self.warnings.append(message)

    # Expression helpers used by the rewrites

    def gen_ref(self) -> ast.Name:
        return ast.Name(id=self.gen_param, ctx=ast.Load())

    def state_ref(self) -> ast.Name:
        return ast.Name(id=self.state_param, ctx=ast.Load())

    def runtime_call(self, function: str, params: list[ast.expr]) -> ast.Call:
        """Build `_choicegen_runtime.<function>(*params)`."""
        return ast.Call(
            func=runtime_attr(function),
            args=params,
            keywords=[],
        )


def runtime_attr(attr: str) -> ast.Attribute:
    return ast.Attribute(
        value=ast.Name(id=RUNTIME_ALIAS, ctx=ast.Load()),
        attr=attr,
        ctx=ast.Load(),
    )
