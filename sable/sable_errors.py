"""
Error types raised by the Sable interpreter.

Every failure inside the language is a SableError. The `kind` label is what
users see ("TypeError: ...") and is independent of the Python class name so
that Sable errors never shadow Python's own builtins.
"""

from typing import Any, Dict, List, Optional


class SableError(Exception):
    """Base class for all errors surfaced by a Sable program."""
    kind = "Error"

    def __init__(self, message: str, loc: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        # Source location of the offending node; filled in while unwinding.
        self.loc = loc
        # Calls the error unwound through, innermost first.
        self.trace: List[Dict[str, Any]] = []

    def attach_loc(self, loc: Optional[Dict[str, Any]]):
        """Records `loc` unless a more specific location is already known."""
        if self.loc is None and loc:
            self.loc = loc
        return self

    def add_frame(self, name: Optional[str], args: List[Any], call_site: Optional[Dict[str, Any]] = None):
        self.trace.append({'name': name, 'args': list(args), 'call_site': call_site})
        return self

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class ParseError(SableError):
    """Malformed source text or literal."""
    kind = "ParseError"


class SableTypeError(SableError):
    """Tag mismatch, immutability violation or wrong operand kind."""
    kind = "TypeError"


class SableReferenceError(SableError):
    """Identifier is not bound in any frame."""
    kind = "ReferenceError"


class InvalidArgumentsError(SableError):
    """Subroutine called with the wrong number of arguments."""
    kind = "InvalidArgumentsError"


class DoubleDefinitionError(SableError):
    """Name already defined in the top frame."""
    kind = "DoubleDefinitionError"


class SableException(SableError):
    """An exception thrown by script or host code and never caught."""
    kind = "Uncaught exception"


__all__ = [
    "SableError",
    "ParseError",
    "SableTypeError",
    "SableReferenceError",
    "InvalidArgumentsError",
    "DoubleDefinitionError",
    "SableException",
]
