"""
Tests for the compile context.
"""

import random

from ..rule_compiler import ChoiceKind, ChoicePoint, CompileContext, DelegatingPatternCompiler, NameAllocator
from ..spec_schema import ConstantEvaluator, RuleAlternative, RuleForm
from ..spec_schema.syntax import empty_arguments


def make_context(rules=("start",), reserved=None, seed=0):
    table = {
        name: [RuleAlternative(parameters=empty_arguments(), body=[], form=RuleForm.FUNCTION)]
        for name in rules
    }
    return CompileContext.create(
        generator_name="G",
        subgen_names=["sub"],
        rules=table,
        rng=random.Random(seed),
        evaluator=ConstantEvaluator(),
        pattern_compiler=DelegatingPatternCompiler(),
        reserved=reserved,
    )


class TestNameAllocator:
    """Tests for NameAllocator."""

    def test_fresh_names_are_unique(self):
        names = NameAllocator()
        assert [names.fresh("x"), names.fresh("x"), names.fresh("y")] == ["x__1", "x__2", "y__3"]

    def test_reserved_names_are_skipped(self):
        names = NameAllocator(reserved={"x__1", "x__2"})
        assert names.fresh("x") == "x__3"


class TestCompileContext:
    """Tests for CompileContext."""

    def test_implicit_parameters_first(self):
        ctx = make_context(rules=["start", "item"])
        assert ctx.gen_param == "_g__1"
        assert ctx.state_param == "_s__2"
        assert ctx.rule_names == {"start": "start__3", "item": "item__4"}

    def test_choice_point_ids(self):
        ctx = make_context(seed=11)
        offset = random.Random(11).getrandbits(63)
        assert ctx.offset == offset
        first = ctx.record_choice_point(ChoiceKind.RULE, {"rule_name": "start", "min": 1, "max": 2})
        second = ctx.record_choice_point(ChoiceKind.SEQUENCE, {})
        assert (first, second) == (offset + 1, offset + 2)
        assert ctx.choice_points[first].rule_name == "start"
        assert ctx.offset < 2 ** 63

    def test_lookups(self):
        ctx = make_context()
        assert ctx.is_rule("start")
        assert not ctx.is_rule("sub")
        assert ctx.is_subgen("sub")
        assert ctx.subgen_index("sub") == 0

    def test_warnings(self):
        ctx = make_context()
        ctx.warn("careful")
        assert ctx.warnings == ["careful"]


class TestChoicePoint:
    """Tests for ChoicePoint accessors."""

    def test_literal_bounds(self):
        cp = ChoicePoint(id=1, kind=ChoiceKind.SEQUENCE, info={"min": 0})
        assert cp.has_literal_min
        assert not cp.has_literal_max
        assert cp.min == 0
        assert cp.max is None
        assert cp.datatype is None
