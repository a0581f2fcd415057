"""
Bindings and the layered scope map that holds them.
"""

from typing import Dict, Iterator, List, Optional, Tuple

from sable.sable_errors import DoubleDefinitionError, SableReferenceError, SableTypeError
from sable.sable_values import Value, Object


class Binding:
    """A named storage slot: one value plus a mutability flag.

    The variant of the stored value is fixed for the lifetime of the binding.
    """
    __slots__ = ("mutable", "value")

    def __init__(self, value: Value, mutable: bool):
        self.mutable = mutable
        self.value = value

    @classmethod
    def constant(cls, value: Value) -> 'Binding':
        return cls(value, False)

    @classmethod
    def variable(cls, value: Value) -> 'Binding':
        return cls(value, True)

    def set_value(self, value: Value):
        if not self.value.same_type(value):
            raise SableTypeError("Type mismatch in binding assignment")
        if not self.mutable:
            raise SableTypeError("Cannot mutably access binding because it is constant")
        self.value = value

    def copy(self) -> 'Binding':
        return Binding(self.value.clone(), self.mutable)

    def __eq__(self, other):
        if not isinstance(other, Binding):
            return NotImplemented
        return self.mutable == other.mutable and self.value == other.value

    __hash__ = None

    def __repr__(self) -> str:
        kind = "var" if self.mutable else "const"
        return f"<{kind} {self.value!r}>"


Frame = Dict[str, Binding]


class ScopeMap:
    """An ordered stack of frames mapping identifiers to bindings.

    Lookup walks from the most recently pushed frame to the oldest, so inner
    frames shadow outer ones. Definitions only ever go into the top frame.
    """

    def __init__(self, frames: Optional[List[Frame]] = None):
        self.frames: List[Frame] = frames if frames else [{}]

    @property
    def top(self) -> Frame:
        return self.frames[-1]

    def new_nested_context(self) -> 'ScopeMap':
        """A child scope that sees (and can assign) every outer binding.

        Outer frames are shared rather than copied; the child's own
        definitions go into a fresh top frame the parent never sees.
        """
        return ScopeMap(self.frames + [{}])

    def copy(self) -> 'ScopeMap':
        """A fully independent copy: every frame, binding and object value."""
        return ScopeMap([{k: b.copy() for k, b in frame.items()} for frame in self.frames])

    def has_on_top(self, ident: str) -> bool:
        return ident in self.top

    def has(self, ident: str) -> bool:
        return any(ident in frame for frame in self.frames)

    def set(self, ident: str, binding: Binding):
        self.top[ident] = binding

    def define_binding(self, ident: str, value: Value, mutable: bool):
        if self.has_on_top(ident):
            raise DoubleDefinitionError(f"Cannot define '{ident}' because it has already been defined")
        self.set(ident, Binding(value, mutable))

    def define_constant(self, ident: str, value: Value):
        self.define_binding(ident, value, False)

    def define_variable(self, ident: str, value: Value):
        self.define_binding(ident, value, True)

    def get(self, ident: str) -> Binding:
        for frame in reversed(self.frames):
            binding = frame.get(ident)
            if binding is not None:
                return binding
        raise SableReferenceError(f"'{ident}' does not exist")

    # Bindings are live slots in Python; kept for symmetry with the host API.
    get_mut = get

    def items(self) -> Iterator[Tuple[str, Binding]]:
        """Visible (name, binding) pairs, outer to inner, shadowed names omitted."""
        seen = {}
        for frame in self.frames:
            for ident, binding in frame.items():
                seen[ident] = binding
        return iter(seen.items())

    def names(self) -> List[str]:
        return [ident for ident, _ in self.items()]

    def __contains__(self, ident: str) -> bool:
        return self.has(ident)

    def __getitem__(self, ident: str) -> Value:
        return self.get(ident).value

    def __len__(self) -> int:
        return len(self.names())

    def __eq__(self, other):
        if not isinstance(other, ScopeMap):
            return NotImplemented
        return dict(self.items()) == dict(other.items())

    __hash__ = None

    def __repr__(self) -> str:
        inner = ', '.join(f"{k}: {b!r}" for k, b in self.items())
        return f"<ScopeMap depth={len(self.frames)} {{{inner}}}>"


def make_object(fields: Dict[str, Value], mutable: bool = True) -> Object:
    """Builds an Object whose fields are all variables (or all constants)."""
    scope = ScopeMap()
    for ident, value in fields.items():
        scope.define_binding(ident, value, mutable)
    return Object(scope)


__all__ = ["Binding", "ScopeMap", "make_object"]
