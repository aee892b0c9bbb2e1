"""Runtime values for the Kotoba evaluator.

Numbers, Booleans, Strings and Nil are carried as Python ``float``, ``bool``,
``str`` and ``None``. Only callables get dedicated classes.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from kotoba.ast import Program

if TYPE_CHECKING:
    from kotoba.environment import Environment


KIND_NUMBER = "Number"
KIND_BOOLEAN = "Boolean"
KIND_STRING = "String"
KIND_NIL = "Nil"
KIND_FUNCTION = "Function"


@dataclass(eq=False)
class Function:
    """User-defined closure over the frame that was active at declaration."""

    name: str
    params: list[str]
    body: Program
    closure: "Environment"

    @property
    def arity(self) -> int:
        return len(self.params)

    def __repr__(self) -> str:
        return f"<fn {self.name}>"


@dataclass(eq=False)
class Builtin:
    """Host-provided primitive callable from Kotoba code."""

    name: str
    arity: int
    impl: Callable[..., Any]

    def __repr__(self) -> str:
        return f"<builtin {self.name}>"


def kind_of(value: Any) -> str:
    """Return the Kotoba kind name of a runtime value."""
    # bool must be tested before float: True is also an int.
    if isinstance(value, bool):
        return KIND_BOOLEAN
    if isinstance(value, float):
        return KIND_NUMBER
    if isinstance(value, str):
        return KIND_STRING
    if value is None:
        return KIND_NIL
    if isinstance(value, (Function, Builtin)):
        return KIND_FUNCTION
    raise TypeError(f"not a Kotoba value: {value!r}")


def is_callable(value: Any) -> bool:
    return isinstance(value, (Function, Builtin))


def values_equal(left: Any, right: Any) -> bool:
    """Compare by kind, then by value; values of different kinds are never equal."""
    kind = kind_of(left)
    if kind != kind_of(right):
        return False
    if kind == KIND_FUNCTION:
        return left is right
    return bool(left == right)


def format_number(value: float) -> str:
    """Render a double in plain decimal form."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    # Shortest round-trip digits, written out without an exponent.
    return format(Decimal(repr(value)), "f")


def render(value: Any) -> str:
    """Text written by `print` for a value."""
    kind = kind_of(value)
    if kind == KIND_NUMBER:
        return format_number(value)
    if kind == KIND_BOOLEAN:
        return "true" if value else "false"
    if kind == KIND_STRING:
        return value
    if kind == KIND_NIL:
        return "nil"
    return repr(value)


def to_json(value: Any) -> Any:
    """JSON-compatible form of a value for service responses."""
    kind = kind_of(value)
    if kind == KIND_NUMBER:
        if math.isnan(value) or math.isinf(value):
            return format_number(value)
        return int(value) if value.is_integer() else value
    if kind == KIND_FUNCTION:
        return repr(value)
    return value
