"""
A pretty-printer for Sable values.
"""
from sable.sable_interpreter import ScriptFunction
from sable.sable_values import Number, Boolean, String, Null, Object, Subroutine

_ESCAPES = {
    '\\': '\\\\',
    '"': '\\"',
    '\n': '\\n',
    '\t': '\\t',
    '\r': '\\r',
}


class Printer:
    """Formats Sable values into readable, source-like strings."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format a value."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            # Default to Python's repr for unknown types
            return repr(obj)
        return handler(obj, level)

    def _create_handlers(self):
        return {
            Number: self._pformat_primitive,
            Boolean: self._pformat_primitive,
            Null: self._pformat_primitive,
            String: self._pformat_string,
            Object: self._pformat_object,
            Subroutine: self._pformat_subroutine,
        }

    def _pformat_primitive(self, obj, level):
        return str(obj)

    def _pformat_string(self, obj, level):
        return '"' + ''.join(_ESCAPES.get(c, c) for c in obj.value) + '"'

    def _pformat_object(self, obj, level):
        fields = list(obj.scope.items())
        if not fields:
            return "{}"

        outer_indent = self._indent_char * level
        inner_indent = self._indent_char * (level + 1)
        lines = [
            f"{inner_indent}{name}: {self.pformat(binding.value, level + 1)}"
            for name, binding in fields
        ]
        return "{\n" + ",\n".join(lines) + f"\n{outer_indent}}}"

    def _pformat_subroutine(self, obj, level):
        callback = obj.callback
        if isinstance(callback, ScriptFunction):
            return f"function {callback.name}({', '.join(callback.params)})"
        return f"[native function {obj.name or '<anonymous>'}]"
