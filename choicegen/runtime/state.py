"""
Derivation State - the interface emitted rule procedures call into.

The derivation state answers every choice point and records rule entry and
exit. Concrete engines (random sampling, search, replay) live outside this
package; they subclass DerivationState. One state per generation in flight.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any

from ..errors import ChoiceOutOfRangeError
from ..spec_schema.datatypes import ValueType


class DerivationState(ABC):
    """Answers choice points during one derivation."""

    @abstractmethod
    def choose_rule(self, cp_id: int, count: int) -> int:
        """Choose one of `count` rule alternatives; returns an index in [1, count]."""

    @abstractmethod
    def choose_reps(self, cp_id: int, min_reps: int, max_reps: int, range_is_literal: bool) -> int:
        """Choose a repetition count in [min_reps, max_reps]."""

    @abstractmethod
    def choose_number(
        self,
        cp_id: int,
        datatype: ValueType,
        min_value: Any,
        max_value: Any,
        range_is_literal: bool,
    ) -> Any:
        """Choose a value of `datatype` in [min_value, max_value]."""

    @abstractmethod
    def choose_string(self, cp_id: int, datatype: ValueType, pattern: str) -> str:
        """Choose a string matching `pattern` (empty means any string)."""

    def record_start_of_rule(self, rule_name: str):
        pass

    def record_end_of_rule(self):
        pass


def choose_rule(state: DerivationState, cp_id: int, count: int) -> int:
    index = state.choose_rule(cp_id, count)
    if not 1 <= index <= count:
        raise ChoiceOutOfRangeError(
            f"Choice point {cp_id} chose alternative {index}, expected 1..{count}"
        )
    return index


def choose_reps(state: DerivationState, cp_id: int, min_reps: int, max_reps: int, range_is_literal: bool) -> int:
    return state.choose_reps(cp_id, min_reps, max_reps, range_is_literal)


def choose_number(
    state: DerivationState,
    cp_id: int,
    datatype: ValueType,
    min_value: Any,
    max_value: Any,
    range_is_literal: bool,
) -> Any:
    value = state.choose_number(cp_id, datatype, min_value, max_value, range_is_literal)
    return datatype.coerce(value)


def choose_string(state: DerivationState, cp_id: int, datatype: ValueType, pattern: str) -> str:
    return state.choose_string(cp_id, datatype, pattern)


def record_start_of_rule(state: DerivationState, rule_name: str):
    state.record_start_of_rule(rule_name)


def record_end_of_rule(state: DerivationState):
    state.record_end_of_rule()
