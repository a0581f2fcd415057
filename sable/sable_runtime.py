"""
The Sable runtime front-end: runs scripts for a host, collects side effects
and turns failures into structured results.
"""

import inspect
import os
import sys
import traceback
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from sable.sable_errors import SableError, SableException, SableTypeError, InvalidArgumentsError
from sable.sable_interpreter import Interpreter, unwrap_return
from sable.sable_parser import SableParser
from sable.sable_printer import Printer
from sable.sable_scope import ScopeMap
from sable.sable_serialize import to_python, to_value
from sable.sable_values import Value, String, Number, Subroutine, NULL

# ===================================================================
# 1. Host objects
# ===================================================================


def sable_api_method(func):
    """A decorator to explicitly mark methods as callable from Sable code."""
    func._is_sable_api = True
    return func


class SableHost(ABC):
    """The base class for any Python object exposed to the Sable interpreter.

    Only methods marked with @sable_api_method are visible to scripts.
    """

    def api_methods(self) -> Dict[str, Any]:
        found = {}
        for name, member in inspect.getmembers(self):
            if not callable(member) or name.startswith('_'):
                continue
            # Decorator may mark the bound method or the underlying function
            func = getattr(member, "__func__", member)
            if getattr(func, "_is_sable_api", False):
                found[name] = member
        return found


def _native(fn, name: str, convert: bool = False) -> Subroutine:
    """Wraps a Python callable as a Subroutine, taking its arity from the signature.

    A `*args` parameter makes the subroutine variadic; its fixed parameters are
    still required. With `convert`, arguments and results go through sable_serialize.
    """
    params = inspect.signature(fn).parameters.values()
    positional = [p for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
    variadic = any(p.kind == p.VAR_POSITIONAL for p in params)
    required = len(positional)

    def callback(context: ScopeMap, args: List[Value]) -> Value:
        if variadic and len(args) < required:
            raise InvalidArgumentsError(
                f"Incorrect number of arguments: expected at least {required}, got {len(args)}"
            )
        if convert:
            return to_value(fn(*[to_python(a) for a in args]))
        return fn(*args)

    return Subroutine(callback, None if variadic else required, name)


# ===================================================================
# 2. Standard library
# ===================================================================


class StdLib:
    """Python implementations of the Sable built-ins.

    Every method named `_x` is installed as the constant `x`.
    """

    def __init__(self, runner: 'ScriptRunner'):
        self.runner = runner

    def _log(self, *args):
        self.runner.side_effects.append({'topics': ['stdout'], 'message': ' '.join(str(a) for a in args)})
        return NULL

    def _emit(self, topic, *args):
        self.runner.side_effects.append({'topics': [str(topic)], 'message': ' '.join(str(a) for a in args)})
        return NULL

    def _type_of(self, value):
        return String(value.type_name)

    def _to_string(self, value):
        return String(str(value))

    def _length(self, value):
        match value:
            case String(text):
                return Number(len(text))
            case _:
                raise SableTypeError("Expected string")

    def _throw(self, message):
        raise SableException(str(message))

    def install(self, scope: ScopeMap):
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                ident = name[1:]
                scope.define_constant(ident, _native(member, ident))


# ===================================================================
# 3. Script Execution
# ===================================================================

Token = Dict[str, Any]


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_token and self.error_token.get('line') is not None:
            line = self.error_token.get('line')
            col = self.error_token.get('col')
            if not msg.startswith("Error on line "):
                col_info = f", col {col}" if col is not None else ""
                return f"Error on line {line}{col_info}: {msg}"
        return msg


class ScriptRunner:
    """Parses and executes Sable code against a persistent root scope."""

    def __init__(self, host_object: Optional[SableHost] = None, load_stdlib: bool = True):
        self.host_object = host_object
        self.root_scope = ScopeMap()
        self.interpreter = Interpreter(self.root_scope, SableParser())
        self.side_effects: List[Dict] = []
        self.printer = Printer()

        if load_stdlib:
            StdLib(self).install(self.root_scope)
        self._bind_host_api_methods()

    def _bind_host_api_methods(self):
        """Bind @sable_api_method methods of the host into the root scope."""
        host = self.host_object
        if not host:
            return
        for name, member in host.api_methods().items():
            self.root_scope.define_constant(name, _native(member, name, convert=True))

    def define_globals(self, values: Dict[str, Value]):
        for ident, value in values.items():
            self.interpreter.define_constant(ident, value)

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script."""
        return self._run(source_code, self.interpreter.run_script)

    def handle_expression(self, source_code: str) -> ExecutionResult:
        return self._run(source_code, self.interpreter.run_expression)

    def _run(self, source_code: str, run) -> ExecutionResult:
        # Clear side effects for each run
        self.side_effects = []
        self.interpreter.current_node = None
        try:
            value = unwrap_return(run(source_code))
        except SableError as e:
            return self._error_result(*self._format_sable_error(e, source_code))
        except Exception as e:
            if os.environ.get("SABLE_DEBUG"):
                traceback.print_exc(file=sys.stderr)
            return self._error_result(self._format_internal_error(e), None)
        return ExecutionResult(status='success', value=value, side_effects=self.side_effects)

    def _error_result(self, msg: str, token: Optional[Token]) -> ExecutionResult:
        self.side_effects.append({'topics': ['stderr'], 'message': msg})
        return ExecutionResult(
            status='error',
            error_message=msg,
            error_token=token,
            side_effects=self.side_effects,
        )

    def _format_internal_error(self, e: Exception) -> str:
        match e:
            case NotImplementedError():
                return f"NotImplementedError: {e}"
            case RecursionError():
                return "InternalError: maximum recursion depth exceeded"
            case _:
                return f"InternalError: {e}"

    def _format_sable_error(self, e: SableError, source: str) -> tuple[str, Optional[Token]]:
        msg = str(e)
        token = None
        if e.trace:
            # A function body may come from an earlier run; the outermost call site is in this source
            loc = e.trace[-1].get('call_site')
        else:
            # Fall back to the last node the interpreter visited
            loc = e.loc or getattr(self.interpreter.current_node, "loc", None)
        if loc:
            line = loc.get('line')
            col = loc.get('col')
            token = {'line': line, 'col': col, 'text': loc.get('text')}
            if line is not None:
                context = self._source_context(source, line, col)
                if context:
                    msg = f"{msg}\n{context}"

        st = self._format_stacktrace(e)
        if st:
            msg += "\n" + st
        return msg, token

    def _source_context(self, source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            ln = str(i).rjust(width)
            out.append(f"{prefix} {ln} | {lines[i - 1]}")
            if i == line and col is not None:
                caret = " " * max(col - 1, 0)
                out.append(f"  {' ' * width} | {caret}^")
        return "\n".join(out)

    def _format_stacktrace(self, e: SableError) -> str:
        if not e.trace:
            return ""
        frames = []
        # Outermost call first
        for frame in reversed(e.trace):
            name = frame.get('name') or '<call>'
            args = " ".join(self.printer.pformat(a).replace("\n", " ") for a in frame.get('args') or [])
            frames.append(f"({name} {args})" if args else f"({name})")
        return "Sable stacktrace: " + " ".join(frames)
