"""
Integration tests for generator compilation.

Tests:
- Choice point numbering across compilations
- Sub-generator slots and composition
- The emitted generator class
- The decorator and file loading entry points
- Compile failures leave nothing behind
"""

import logging
import random
import textwrap

import pytest

from .. import (
    ArityError,
    EmissionError,
    Generator,
    GeneratorCompiler,
    InvalidArgumentError,
    InvalidSignatureError,
    MalformedSpecError,
    SubgeneratorTypeError,
    compile_generator,
    generator,
    load_generator,
)
from ..rule_compiler import ChoiceKind
from .conftest import EXPR_SPEC, ScriptedState


def relative_layout(definition):
    """Choice points in id order, without the ids."""
    return [(cp.kind, cp.info) for _, cp in sorted(definition.choice_points.items())]


class TestChoicePointNumbering:
    """Tests for choice point ids."""

    def test_ids_follow_the_offset(self, compile_spec):
        """Ids are offset + 1, offset + 2, ... in order of registration."""
        definition = compile_spec(EXPR_SPEC, seed=1234)
        offset = random.Random(1234).getrandbits(63)
        ids = sorted(definition.choice_points)
        assert ids == list(range(offset + 1, offset + 1 + len(ids)))
        assert all(cp_id > offset for cp_id in ids)

    def test_ids_keyed_by_their_own_id(self, expr_definition):
        for cp_id, cp in expr_definition.choice_points.items():
            assert cp.id == cp_id

    def test_layout_in_declaration_order(self, expr_definition):
        """Rules are numbered in the order they are declared."""
        layout = relative_layout(expr_definition)
        assert [kind for kind, _ in layout] == [ChoiceKind.RULE, ChoiceKind.VALUE]
        assert layout[0][1]["rule_name"] == "expr"

    def test_same_layout_across_compilations(self, compile_spec):
        """Two compilations differ only in their offsets."""
        first = compile_spec(EXPR_SPEC, seed=1)
        second = compile_spec(EXPR_SPEC, seed=2)
        assert relative_layout(first) == relative_layout(second)
        assert set(first.choice_points).isdisjoint(second.choice_points)

    def test_seed_is_deterministic(self, compile_spec):
        first = compile_spec(EXPR_SPEC, seed=99)
        second = compile_spec(EXPR_SPEC, seed=99)
        assert list(first.choice_points) == list(second.choice_points)

    def test_compiler_draws_a_new_offset_per_generator(self):
        compiler = GeneratorCompiler(seed=5)
        first = compiler.compile(textwrap.dedent(EXPR_SPEC))
        second = compiler.compile(textwrap.dedent(EXPR_SPEC))
        assert min(first.choice_points) != min(second.choice_points)

    def test_seed_from_environment(self, monkeypatch):
        monkeypatch.setattr("choicegen.rule_compiler.compiler.CHOICEGEN_SEED", "77")
        assert GeneratorCompiler().seed == 77
        assert GeneratorCompiler(seed=3).seed == 3


PAIR_SPEC = '''
def Pair(left, right):
    second = right
    first = left
    start = first + "," + second
'''

LETTER_A = '''
def LetterA():
    start = "a"
'''

LETTER_B = '''
def LetterB():
    start = "b"
'''


@pytest.fixture
def letters(compile_spec):
    return compile_spec(LETTER_A)(), compile_spec(LETTER_B)()


class TestSubgenerators:
    """Tests for sub-generator slots."""

    def test_delegation_by_slot_position(self, compile_spec, letters):
        """Slots map to their declared position, whatever the rule order."""
        pair = compile_spec(PAIR_SPEC)
        assert pair.subgen_names == ("left", "right")
        assert pair.subgen_arity == 2
        assert pair(*letters).generate(ScriptedState()) == "a,b"
        assert pair(*reversed(letters)).generate(ScriptedState()) == "b,a"

    def test_subgenerators_share_the_state(self, compile_spec, letters):
        """Sub-generators record their rules on the parent's state."""
        pair = compile_spec(PAIR_SPEC)
        state = ScriptedState()
        pair(*letters).generate(state)
        assert len(state.of_kind("start")) == 5

    def test_list_of_subgenerators(self, compile_spec, letters):
        pair = compile_spec(PAIR_SPEC)
        assert pair(list(letters)).subgens == letters

    def test_wrong_arity(self, compile_spec, letters):
        pair = compile_spec(PAIR_SPEC)
        with pytest.raises(ArityError, match="expects 2"):
            pair(letters[0])

    def test_not_a_generator(self, compile_spec, letters):
        pair = compile_spec(PAIR_SPEC)
        with pytest.raises(SubgeneratorTypeError):
            pair(letters[0], "b")
        with pytest.raises(TypeError):
            pair(letters[0], object())

    def test_parameters_are_ignored_with_warning(self, compile_spec, letters, caplog):
        with caplog.at_level(logging.WARNING):
            definition = compile_spec('''
                def Wrap(inner):
                    start = inner(3)
            ''')
        assert len(definition.warnings) == 1
        assert "'inner'" in definition.warnings[0]
        assert "ignored" in caplog.text
        assert definition(letters[0]).generate(ScriptedState()) == "a"

    def test_rule_shadows_slot(self, compile_spec, letters):
        """A rule with the name of a slot takes precedence."""
        definition = compile_spec('''
            def Shadow(inner):
                start = inner
                inner = "rule"
        ''')
        assert definition(letters[0]).generate(ScriptedState()) == "rule"


class TestEmittedGenerator:
    """Tests for the emitted generator class."""

    def test_class_attributes(self, expr_definition):
        cls = expr_definition.generator_class
        assert issubclass(cls, Generator)
        assert cls.name == "ExprGen"
        assert cls.__doc__ == "Arithmetic expressions."
        assert cls.meta == {"generates": ["arithmetic expressions"]}
        assert cls.choice_points is expr_definition.choice_points
        assert cls.rule_names == expr_definition.rule_name_map
        assert cls.subgen_arity == 0

    def test_rule_name_map(self, expr_definition):
        """Every rule maps to a distinct internal umbrella name."""
        rule_names = expr_definition.rule_name_map
        assert list(rule_names) == ["start", "expr", "term"]
        assert len(set(rule_names.values())) == 3
        for rule, internal in rule_names.items():
            assert internal != rule
            assert internal.startswith(rule + "__")
            assert internal in expr_definition.rule_procedures

    def test_procedures_per_alternative(self, expr_definition):
        # 3 umbrellas and 4 alternatives
        assert len(expr_definition.rule_procedures) == 7

    def test_invoke_rule_directly(self, expr_definition):
        gen = expr_definition()
        assert gen.invoke("term", ScriptedState(numbers=[7])) == "7"
        assert gen.generate(ScriptedState(numbers=[5]), rule="term") == "5"
        with pytest.raises(LookupError):
            gen.invoke("missing", ScriptedState())

    def test_emitted_source(self, expr_definition):
        source = expr_definition.source
        assert "class ExprGen(_choicegen_runtime.Generator):" in source
        assert "_choicegen_runtime.record_start_of_rule(" in source
        assert "_choicegen_runtime.choose_rule(" in source
        assert "_choicegen_runtime.choose_number(" in source

    def test_namespace_after_compile(self):
        namespace = {"shout": lambda s: s.upper()}
        definition = compile_generator(textwrap.dedent('''
            def Loud():
                start = shout("hi")
        '''), namespace=namespace)
        assert namespace["Loud"] is definition.generator_class
        assert not [name for name in namespace if name.startswith(("_meta__", "_choice_points__"))]
        assert definition().generate(ScriptedState()) == "HI"

    def test_existing_names_are_not_overwritten(self):
        namespace = {f"start__{i}": i for i in range(1, 20)}
        definition = compile_generator("def G():\n    start = 'x'\n", namespace=namespace)
        assert definition.rule_name_map["start"] not in {f"start__{i}" for i in range(1, 20)}
        assert all(namespace[f"start__{i}"] == i for i in range(1, 20))

    def test_evaluate_in_declaring_namespace(self):
        definition = compile_generator("def G():\n    start = 'x'\n", namespace={"x": 5})
        assert definition().evaluate("x + 1") == 6

    def test_start_rule(self, compile_spec):
        """The start metadata entry, then a start rule, then the first rule."""
        by_meta = compile_spec('''
            def G():
                start: "other"
                first = "f"
                other = "o"
        ''')
        by_order = compile_spec('''
            def G():
                first = "f"
                other = "o"
        ''')
        assert by_meta().generate(ScriptedState()) == "o"
        assert by_order().generate(ScriptedState()) == "f"

    def test_empty_generator(self, compile_spec):
        definition = compile_spec('''
            def Empty():
                pass
        ''')
        assert definition.choice_points == {}
        with pytest.raises(LookupError):
            definition().generate(ScriptedState())


class TestCompileFailures:
    """Compilation is all-or-nothing."""

    def test_malformed_body_produces_nothing(self):
        namespace = {}
        with pytest.raises(MalformedSpecError):
            compile_generator(textwrap.dedent('''
                def Broken():
                    start = "s"
                    print("not a rule")
            '''), namespace=namespace)
        assert "Broken" not in namespace
        assert not [name for name in namespace if name.startswith("start__")]

    def test_rejected_spec_leaves_no_imports(self):
        """Imports of a rejected specification are not left behind."""
        namespace = {}
        with pytest.raises(InvalidSignatureError):
            compile_generator("import string\ndef G(a: int):\n    start = a\n", namespace=namespace)
        assert namespace == {}

    def test_rebound_names_are_restored(self):
        """Names an import rebound get their old value back."""
        namespace = {"string": "mine"}
        with pytest.raises(MalformedSpecError):
            compile_generator(textwrap.dedent('''
                import string
                def G():
                    alphabet: string.ascii_lowercase
                    print("not a rule")
            '''), namespace=namespace)
        assert namespace == {"string": "mine"}

    def test_failed_import(self):
        namespace = {}
        with pytest.raises(MalformedSpecError, match="Import failed"):
            compile_generator(
                "import choicegen_no_such_module\ndef G():\n    start = 'x'\n",
                namespace=namespace,
            )
        assert namespace == {}

    @pytest.mark.parametrize("signature", [
        "def pick(n=choose(Int8, 0, 9)):",
        "def pick(*, n=reps(start, 1, 2)):",
        "def pick(n=start):",
    ])
    def test_parameter_defaults_cannot_hold_constructs(self, signature):
        """Defaults are not rewritten, so constructs and rule names are rejected."""
        namespace = {}
        with pytest.raises(InvalidArgumentError, match="parameter defaults"):
            compile_generator(textwrap.dedent(f'''
                def G():
                    start = pick()
                    {signature}
                        return n
            '''), namespace=namespace)
        assert namespace == {}

    def test_load_failure_is_rolled_back(self):
        """A procedure that fails to load leaves the namespace as it was."""
        namespace = {"keep": 1}
        with pytest.raises(EmissionError, match="line 4") as exc_info:
            compile_generator(textwrap.dedent('''
                def G():
                    start = pick()
                    def pick(n=undefined_default):
                        return n
            '''), namespace=namespace)
        assert isinstance(exc_info.value.__cause__, NameError)
        assert namespace == {"keep": 1}

    def test_invalid_signature(self):
        with pytest.raises(InvalidSignatureError):
            compile_generator("def G(a: int):\n    start = a\n")

    def test_keyword_as_generator_name(self):
        """A reserved word cannot name a generator."""
        with pytest.raises(MalformedSpecError):
            compile_generator("def class():\n    pass\n")


def helper_name():
    return "world"


@generator(seed=7)
def Greeting():
    """Says hello."""
    start = salutation + ", " + helper_name()  # noqa: F821
    salutation = "hello"
    salutation = "hi"


@generator
def Digit():
    start = str(choose(Int8, 0, 9))  # noqa: F821


class TestEntryPoints:
    """Tests for the decorator and load_generator."""

    def test_decorator_returns_generator_class(self):
        assert issubclass(Greeting, Generator)
        assert Greeting.__doc__ == "Says hello."
        assert Greeting().generate(ScriptedState(rules=[2])) == "hi, world"

    def test_decorator_without_arguments(self):
        assert Digit().generate(ScriptedState(numbers=[4])) == "4"

    def test_decorated_generator_evaluates_in_module(self):
        assert Greeting().evaluate("helper_name()") == "world"

    def test_load_generator(self, tmp_path):
        path = tmp_path / "letters.py"
        path.write_text(textwrap.dedent('''
            """Letters."""
            import string

            def Letters():
                alphabet: string.ascii_lowercase[:3]
                start = choose(str, "[a-c]")
        '''))
        definition = load_generator(path, seed=1)
        assert definition.metadata == {"alphabet": "abc"}
        assert definition().generate(ScriptedState(strings=["b"])) == "b"

    def test_load_generator_reports_file(self, tmp_path):
        path = tmp_path / "broken.py"
        path.write_text("def Broken():\n    for x in y: pass\n")
        with pytest.raises(MalformedSpecError, match="line 2"):
            load_generator(path)
