"""
Runtime values for the pest interpreter.

A value is one of three immutable kinds: String, Integer (signed 64-bit)
or Boolean. Coercions between kinds are total and never inspect the
contents of a String: a String is 0 as an Integer and true as a Boolean.
Scripts that need the number inside captured text must say so
explicitly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


INT64_MODULUS = 1 << 64
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


class ValueType(Enum):
    """The three runtime value kinds."""
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"


def canonical_text(s: str) -> str:
    """
    Put text in the form received lines are decoded to.

    Strings carry bytes that are not valid UTF-8 as surrogate escapes.
    Escaped bytes that do form valid UTF-8 (``"\\xc3\\xa9"``) are folded
    into the characters they spell, so two strings are equal exactly
    when their wire bytes are.
    """
    return s.encode("utf-8", "surrogateescape").decode("utf-8", "surrogateescape")


def wrap_int64(n: int) -> int:
    """Reduce an arbitrary int to signed 64-bit two's complement."""
    n &= INT64_MODULUS - 1
    if n > INT64_MAX:
        n -= INT64_MODULUS
    return n


@dataclass(frozen=True)
class Value:
    """
    A runtime value.

    The `data` field holds the Python object (str, int or bool).
    The `type` field tells which coercion rules apply.
    """
    data: Union[str, int, bool]
    type: ValueType

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.type.value})"

    def as_string(self) -> str:
        """Text form: identity, decimal digits, or 'true'/'false'."""
        if self.type == ValueType.STRING:
            return self.data
        if self.type == ValueType.BOOLEAN:
            return "true" if self.data else "false"
        return str(self.data)

    def as_int(self) -> int:
        """Integer form: only Integers carry a number, everything else is 0."""
        if self.type == ValueType.INTEGER:
            return self.data
        return 0

    def as_bool(self) -> bool:
        """Boolean form: only Booleans can be false."""
        if self.type == ValueType.BOOLEAN:
            return self.data
        return True


# Convenience constructors

def int_val(n: int) -> Value:
    """Create an integer value, wrapping to 64 bits."""
    return Value(wrap_int64(int(n)), ValueType.INTEGER)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return Value(bool(b), ValueType.BOOLEAN)


def string_val(s: str) -> Value:
    """Create a string value in canonical form."""
    return Value(canonical_text(str(s)), ValueType.STRING)
