"""
Defines the runtime values of the Sable language.

A Value is one of a closed set of variants: Number, Boolean, String, Object,
Subroutine and Null. Consumers dispatch on the variant with `match`; two
values are type-compatible exactly when they are the same variant, whatever
their payload.
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TYPE_CHECKING

from sable.sable_errors import ParseError, SableTypeError, InvalidArgumentsError

if TYPE_CHECKING:
    from sable.sable_scope import ScopeMap

NUMBER_MIN = -(2 ** 63)
NUMBER_MAX = 2 ** 63 - 1

_NUMERIC_LITERAL = re.compile(r"[+-]?[0-9]+")

_ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    "'": "'",
    '"': '"',
}


def unquote(text: str) -> str:
    """Strips the quotes from a string literal and decodes its escape sequences.

    The first character is the terminator and must be ' or ". Only the
    escapes \\n \\t \\r \\\\ \\' \\" are understood.
    """
    already_parsed = "Attempted to unquote an already unquoted string"
    if len(text) < 2:
        raise ParseError(already_parsed)
    terminator = text[0]
    if terminator not in ('"', "'"):
        raise ParseError(already_parsed)

    out = []
    backslash = False
    for i in range(1, len(text)):
        c = text[i]
        if c == '\\' and not backslash:
            backslash = True
            continue
        if c == terminator and not backslash:
            if i != len(text) - 1:
                raise ParseError("While parsing string, met terminator before end of string")
            return ''.join(out)
        if backslash:
            if c not in _ESCAPES:
                raise ParseError("Found unknown escaped sequence while parsing string")
            out.append(_ESCAPES[c])
        else:
            out.append(c)
        backslash = False

    raise ParseError("String parsing unexpectedly cut short")


def _checked(n: int) -> int:
    if n < NUMBER_MIN or n > NUMBER_MAX:
        raise SableTypeError("Number overflow")
    return n


class Value:
    """Base class of every Sable runtime value."""

    type_name = "value"

    # -- literal construction -------------------------------------------

    @staticmethod
    def from_string_literal(literal: str) -> 'String':
        return String(unquote(literal))

    @staticmethod
    def from_numeric_literal(literal: str) -> 'Number':
        if not _NUMERIC_LITERAL.fullmatch(literal):
            raise ParseError(f"Invalid digit found in numeric literal '{literal}'")
        n = int(literal)
        if n < NUMBER_MIN or n > NUMBER_MAX:
            raise ParseError(f"Numeric literal '{literal}' is out of range")
        return Number(n)

    @staticmethod
    def from_boolean_literal(literal: str) -> 'Boolean':
        if literal == "true":
            return TRUE
        if literal == "false":
            return FALSE
        raise ParseError(f"Couldn't form boolean literal from '{literal}'")

    # -- type checks ------------------------------------------------------

    def same_type(self, other: 'Value') -> bool:
        return type(self) is type(other)

    def clone(self) -> 'Value':
        """Scalars and subroutines are immutable, so a clone is the value itself."""
        return self

    def _as_number(self) -> int:
        match self:
            case Number(n):
                return n
            case _:
                raise SableTypeError("Expected number")

    # -- arithmetic -------------------------------------------------------

    def add(self, other: 'Value') -> 'Number':
        return Number(_checked(self._as_number() + other._as_number()))

    def subtract(self, other: 'Value') -> 'Number':
        return Number(_checked(self._as_number() - other._as_number()))

    def multiply(self, other: 'Value') -> 'Number':
        return Number(_checked(self._as_number() * other._as_number()))

    def negate(self) -> 'Number':
        return Number(_checked(-self._as_number()))

    def inverse(self) -> 'Boolean':
        match self:
            case Boolean(b):
                return Boolean(not b)
            case _:
                raise SableTypeError("Cannot inverse a non-boolean")

    # -- comparison -------------------------------------------------------

    def compare(self, other: 'Value', allow_type_mismatch: bool = False) -> 'Boolean':
        """Equality. `==` calls this with allow_type_mismatch=False, `===` with True."""
        if not self.same_type(other):
            if allow_type_mismatch:
                return FALSE
            raise SableTypeError(
                "Cannot compare between values of different types. Try using '===' or '!=='"
            )
        match self:
            case Null():
                if not allow_type_mismatch:
                    raise SableTypeError("Can't compare null values. Use '===' or '!=='")
                return TRUE
            case Number(v) | Boolean(v) | String(v):
                return Boolean(v == other.value)
            case Subroutine():
                return Boolean(self == other)
            case _:
                raise SableTypeError("Cannot compare values of this type")

    def compare_inequality(self, other: 'Value', op: str) -> 'Boolean':
        if not isinstance(self, Number) or not isinstance(other, Number):
            raise SableTypeError(f"Operator '{op}' requires two numbers")
        try:
            fn = _INEQUALITIES[op]
        except KeyError:
            raise NotImplementedError(f"Unimplemented comparison operator: {op}")
        return Boolean(fn(self.value, other.value))


_INEQUALITIES = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class Number(Value):
    value: int
    type_name = "number"

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Boolean(Value):
    value: bool
    type_name = "boolean"

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class String(Value):
    value: str
    type_name = "string"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Null(Value):
    type_name = "null"

    def __str__(self) -> str:
        return "null"


class Object(Value):
    """A record value. Its fields are the bindings of an owned ScopeMap."""
    type_name = "object"

    def __init__(self, scope: Optional['ScopeMap'] = None):
        if scope is None:
            from sable.sable_scope import ScopeMap
            scope = ScopeMap()
        self.scope = scope

    def clone(self) -> 'Object':
        return Object(self.scope.copy())

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Object):
            return NotImplemented
        return self.scope == other.scope

    __hash__ = None

    def __repr__(self) -> str:
        return f"Object({self.scope!r})"

    def __str__(self) -> str:
        return "[object]"


NativeCallback = Callable[['ScopeMap', List[Value]], Value]


class Subroutine(Value):
    """A callable value. `arity` is None for variadic subroutines.

    The callback is shared by every clone; equality is identity of the callback.
    """
    type_name = "function"

    def __init__(self, callback: NativeCallback, arity: Optional[int] = None, name: Optional[str] = None):
        self.callback = callback
        self.arity = arity
        self.name = name or getattr(callback, '__name__', None)

    def call(self, context: 'ScopeMap', args: List[Value]) -> Value:
        if self.arity is not None and len(args) != self.arity:
            raise InvalidArgumentsError(
                f"Incorrect number of arguments: expected {self.arity}, got {len(args)}"
            )
        result = self.callback(context, args)
        return NULL if result is None else result

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Subroutine):
            return NotImplemented
        return self.callback is other.callback and self.arity == other.arity

    def __hash__(self) -> int:
        return hash((id(self.callback), self.arity))

    def __repr__(self) -> str:
        arity = "*" if self.arity is None else self.arity
        return f"<Subroutine {self.name or '<anonymous>'}/{arity}>"

    def __str__(self) -> str:
        return "[function]"


TRUE = Boolean(True)
FALSE = Boolean(False)
NULL = Null()


__all__ = [
    "unquote",
    "Value",
    "Number",
    "Boolean",
    "String",
    "Null",
    "Object",
    "Subroutine",
    "TRUE",
    "FALSE",
    "NULL",
]
