"""Specification schema - surface syntax, value types, and extraction."""

from .datatypes import ValueKind, ValueType, VALUE_TYPES, lookup_type
from .evaluator import ConstantEvaluator
from .extractor import ExtractedSpec, RuleAlternative, RuleTable, extract
from .syntax import RuleForm
from .validation import parse_specification, validate_signature

__all__ = [
    "ValueKind",
    "ValueType",
    "VALUE_TYPES",
    "lookup_type",
    "ConstantEvaluator",
    "ExtractedSpec",
    "RuleAlternative",
    "RuleTable",
    "extract",
    "RuleForm",
    "parse_specification",
    "validate_signature",
]
