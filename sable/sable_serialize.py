from __future__ import annotations

import collections.abc
import json
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from sable.sable_errors import SableTypeError, SableError, ParseError
from sable.sable_scope import ScopeMap
from sable.sable_values import (
    Value, Number, Boolean, String, Null, Object, Subroutine, NULL,
)


# --------------------------
# Python <-> Sable values
# --------------------------

def to_value(data: Any, *, mutable: bool = False) -> Value:
    """
    Convert native Python data into a Sable value.
    Mappings become Objects whose fields are variables when `mutable`, else constants.
    Plain callables become variadic native subroutines.
    """
    if isinstance(data, Value):
        return data
    if data is None:
        return NULL
    # bool is a subclass of int, so check it first
    if isinstance(data, bool):
        return Boolean(data)
    if isinstance(data, int):
        return Value.from_numeric_literal(str(data))
    if isinstance(data, str):
        return String(data)
    if isinstance(data, collections.abc.Mapping):
        scope = ScopeMap()
        for key, item in data.items():
            scope.define_binding(str(key), to_value(item, mutable=mutable), mutable)
        return Object(scope)
    if callable(data):
        return wrap_callable(data)
    raise SableTypeError(f"Cannot convert {type(data).__name__} to a Sable value")


def to_python(value: Value) -> Any:
    """Convert a Sable value into plain Python data (objects become dicts)."""
    match value:
        case Number(n) | Boolean(n) | String(n):
            return n
        case Null():
            return None
        case Object():
            return {ident: to_python(binding.value) for ident, binding in value.scope.items()}
        case Subroutine():
            return value
        case _:
            raise SableTypeError(f"Cannot convert {value!r} to Python data")


def wrap_callable(fn, arity: Optional[int] = None, name: Optional[str] = None) -> Subroutine:
    """Expose a Python function as a native subroutine.

    Arguments are handed over as Python data; the result is converted back.
    """
    def callback(context, args):
        try:
            result = fn(*[to_python(a) for a in args])
        except SableError:
            raise
        except (TypeError, ValueError) as e:
            raise SableTypeError(str(e)) from e
        return to_value(result)

    return Subroutine(callback, arity, name or getattr(fn, '__name__', None))


# --------------------------
# Text formats
# --------------------------

def detect_format(path: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns 'json' or 'yaml'. Uses the file extension first, then sniffs the data.
    """
    if path:
        ext = Path(path).suffix.lower()
        if ext == ".json":
            return 'json'
        if ext in (".yaml", ".yml"):
            return 'yaml'
    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
        # YAML is a superset of JSON
        return 'yaml'
    return None


def deserialize(text: str, *, fmt: Optional[str] = None) -> Any:
    f = fmt or detect_format(data_hint=text)
    try:
        if f == 'json':
            return json.loads(text)
        if f == 'yaml':
            return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ParseError(f"Invalid {f} data: {e}") from e
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = True) -> str:
    """
    Convert a Sable value (or plain Python data) into JSON or YAML text.
    """
    built = to_python(value) if isinstance(value, Value) else value
    f = (fmt or '').lower()
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def load_globals(path: str) -> Dict[str, Value]:
    """Read a JSON/YAML mapping and convert each entry into a constant Sable value."""
    text = Path(path).read_text(encoding="utf-8")
    data = deserialize(text, fmt=detect_format(path, text))
    if data is None:
        return {}
    if not isinstance(data, collections.abc.Mapping):
        raise SableTypeError(f"Globals file must contain a mapping, not {type(data).__name__}")
    return {str(k): to_value(v) for k, v in data.items()}


__all__ = [
    "to_value",
    "to_python",
    "wrap_callable",
    "detect_format",
    "deserialize",
    "serialize",
    "load_globals",
]
