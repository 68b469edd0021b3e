"""
Pytest fixtures for choicegen tests.
"""

import textwrap

import pytest

from ..rule_compiler import compile_generator
from ..runtime import DerivationState


class ScriptedState(DerivationState):
    """
    Derivation state answering choices from scripted queues.

    Unscripted choices take the lower bound (alternative 1 for rules).
    Every call is recorded in `calls`.
    """

    def __init__(self, rules=None, reps=None, numbers=None, strings=None):
        self.rules = list(rules or [])
        self.reps = list(reps or [])
        self.numbers = list(numbers or [])
        self.strings = list(strings or [])
        self.calls = []

    def choose_rule(self, cp_id, count):
        self.calls.append(("rule", cp_id, count))
        return self.rules.pop(0) if self.rules else 1

    def choose_reps(self, cp_id, min_reps, max_reps, range_is_literal):
        self.calls.append(("reps", cp_id, min_reps, max_reps, range_is_literal))
        return self.reps.pop(0) if self.reps else min_reps

    def choose_number(self, cp_id, datatype, min_value, max_value, range_is_literal):
        self.calls.append(("number", cp_id, datatype, min_value, max_value, range_is_literal))
        return self.numbers.pop(0) if self.numbers else min_value

    def choose_string(self, cp_id, datatype, pattern):
        self.calls.append(("string", cp_id, datatype, pattern))
        return self.strings.pop(0) if self.strings else "s"

    def record_start_of_rule(self, rule_name):
        self.calls.append(("start", rule_name))

    def record_end_of_rule(self):
        self.calls.append(("end",))

    def of_kind(self, kind):
        return [c for c in self.calls if c[0] == kind]


@pytest.fixture
def state() -> ScriptedState:
    """A fresh scripted derivation state."""
    return ScriptedState()


@pytest.fixture
def compile_spec():
    """Compile dedented specification source with a fixed seed."""
    def _compile(source, namespace=None, seed=1234):
        return compile_generator(textwrap.dedent(source), namespace=namespace, seed=seed)
    return _compile


EXPR_SPEC = '''
def ExprGen():
    """Arithmetic expressions."""
    generates: ["arithmetic expressions"]
    start = expr
    expr = term
    expr = term + "+" + expr
    def term():
        return str(choose(Int8, 0, 9))
'''


@pytest.fixture
def expr_definition(compile_spec):
    """Compiled arithmetic expression generator."""
    return compile_spec(EXPR_SPEC)
