"""
Value Types - the data types a value choice can range over.

Each type knows its natural bounds and how to convert a literal bound
written in a specification. Conversion failure is how the compiler tells a
compile-time literal from an expression evaluated at run time.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any
import math
import struct


class ValueKind(Enum):
    """Families of value types."""
    BOOL = "bool"
    CHAR = "char"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    NUMBER = "number"  # abstract numeric families only


@dataclass(frozen=True)
class ValueType:
    """
    A named value type.

    Abstract types exist so that a specification naming them gets a clear
    error rather than an unknown-name failure.
    """
    name: str
    kind: ValueKind
    abstract: bool = False
    min: Any = None
    max: Any = None
    bits: int = 0

    def __repr__(self) -> str:
        return self.name

    def convert(self, value: Any) -> Any:
        """
        Convert a literal to this type.

        Raises TypeError or ValueError if the literal is not representable.
        """
        if self.kind is ValueKind.BOOL:
            if isinstance(value, bool):
                return int(value)
            if isinstance(value, int) and value in (0, 1):
                return value
            raise ValueError(f"{value!r} is not a {self.name}")

        if self.kind is ValueKind.INTEGER:
            if isinstance(value, bool):
                value = int(value)
            elif isinstance(value, float):
                if not value.is_integer():
                    raise ValueError(f"{value!r} is not integral")
                value = int(value)
            elif not isinstance(value, int):
                raise TypeError(f"{value!r} is not an integer")
            if not self.min <= value <= self.max:
                raise ValueError(f"{value!r} is outside the range of {self.name}")
            return value

        if self.kind is ValueKind.FLOAT:
            if not isinstance(value, (int, float)):
                raise TypeError(f"{value!r} is not a number")
            value = float(value)
            if math.isnan(value):
                raise ValueError("NaN is not a valid bound")
            return _round_to_precision(value, self.bits)

        raise TypeError(f"literals of {self.name} are not convertible")

    def coerce(self, value: Any) -> Any:
        """Decode a value chosen by a derivation state."""
        if self.kind is ValueKind.BOOL:
            return bool(value)
        return value


def _round_to_precision(value: float, bits: int) -> float:
    if math.isinf(value) or bits == 64:
        return value
    fmt = {16: "<e", 32: "<f"}[bits]
    # struct.pack raises OverflowError for values beyond the format's range
    return struct.unpack(fmt, struct.pack(fmt, value))[0]


def _signed(bits: int) -> ValueType:
    return ValueType(
        name=f"Int{bits}",
        kind=ValueKind.INTEGER,
        min=-(2 ** (bits - 1)),
        max=2 ** (bits - 1) - 1,
        bits=bits,
    )


def _unsigned(bits: int) -> ValueType:
    return ValueType(
        name=f"UInt{bits}",
        kind=ValueKind.INTEGER,
        min=0,
        max=2 ** bits - 1,
        bits=bits,
    )


def _float(bits: int) -> ValueType:
    return ValueType(
        name=f"Float{bits}",
        kind=ValueKind.FLOAT,
        min=-math.inf,
        max=math.inf,
        bits=bits,
    )


Bool = ValueType("Bool", ValueKind.BOOL, min=0, max=1, bits=1)
Char = ValueType("Char", ValueKind.CHAR)
Int8 = _signed(8)
Int16 = _signed(16)
Int32 = _signed(32)
Int64 = _signed(64)
Int128 = _signed(128)
UInt8 = _unsigned(8)
UInt16 = _unsigned(16)
UInt32 = _unsigned(32)
UInt64 = _unsigned(64)
UInt128 = _unsigned(128)
Float16 = _float(16)
Float32 = _float(32)
Float64 = _float(64)
String = ValueType("String", ValueKind.STRING)

# Abstract types
Integer = ValueType("Integer", ValueKind.INTEGER, abstract=True)
Signed = ValueType("Signed", ValueKind.INTEGER, abstract=True)
Unsigned = ValueType("Unsigned", ValueKind.INTEGER, abstract=True)
AbstractFloat = ValueType("AbstractFloat", ValueKind.FLOAT, abstract=True)
Real = ValueType("Real", ValueKind.NUMBER, abstract=True)
Number = ValueType("Number", ValueKind.NUMBER, abstract=True)
AbstractString = ValueType("AbstractString", ValueKind.STRING, abstract=True)


VALUE_TYPES: dict[str, ValueType] = {
    t.name: t
    for t in [
        Bool, Char,
        Int8, Int16, Int32, Int64, Int128,
        UInt8, UInt16, UInt32, UInt64, UInt128,
        Float16, Float32, Float64,
        String,
        Integer, Signed, Unsigned, AbstractFloat, Real, Number, AbstractString,
    ]
}

# Python builtins accepted in place of a registry name
BUILTIN_TYPES: dict[type, ValueType] = {
    bool: Bool,
    int: Int64,
    float: Float64,
    str: String,
}


def lookup_type(value: Any) -> ValueType | None:
    """Map an evaluated object to a value type, or None."""
    if isinstance(value, ValueType):
        return value
    if isinstance(value, type):
        return BUILTIN_TYPES.get(value)
    return None


__all__ = ["ValueKind", "ValueType", "VALUE_TYPES", "BUILTIN_TYPES", "lookup_type"] + list(VALUE_TYPES)
