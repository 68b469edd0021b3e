"""
Runtime - what compiled rule procedures call at generation time.

Compiled code refers to this package through a single alias in the
declaring namespace, so every name used by emitted code is exported here,
including the value types.
"""

from ..spec_schema.datatypes import *  # noqa: F401,F403
from ..spec_schema.datatypes import VALUE_TYPES
from .generator import Generator, evaluate, subgen
from .state import (
    DerivationState,
    choose_number,
    choose_reps,
    choose_rule,
    choose_string,
    record_end_of_rule,
    record_start_of_rule,
)

__all__ = [
    "Generator",
    "DerivationState",
    "choose_rule",
    "choose_reps",
    "choose_number",
    "choose_string",
    "record_start_of_rule",
    "record_end_of_rule",
    "subgen",
    "evaluate",
] + list(VALUE_TYPES)
