import pytest

from sable.sable_errors import DoubleDefinitionError, SableReferenceError, SableTypeError
from sable.sable_scope import Binding, ScopeMap, make_object
from sable.sable_values import Number, String, Object


def test_binding_set_value():
    b = Binding.variable(Number(1))
    b.set_value(Number(2))
    assert b.value == Number(2)


def test_binding_rejects_type_change_before_constness():
    b = Binding.constant(Number(1))
    with pytest.raises(SableTypeError) as ei:
        b.set_value(String("x"))
    assert "Type mismatch" in ei.value.message
    with pytest.raises(SableTypeError) as ei:
        b.set_value(Number(2))
    assert "constant" in ei.value.message


def test_define_and_get():
    scope = ScopeMap()
    scope.define_variable("x", Number(1))
    assert scope.get("x").value == Number(1)
    assert "x" in scope
    assert scope["x"] == Number(1)


def test_double_definition_in_top_frame():
    scope = ScopeMap()
    scope.define_constant("x", Number(1))
    with pytest.raises(DoubleDefinitionError):
        scope.define_variable("x", Number(2))


def test_missing_identifier():
    with pytest.raises(SableReferenceError) as ei:
        ScopeMap().get("nope")
    assert ei.value.message == "'nope' does not exist"


def test_set_overwrites_unconditionally():
    scope = ScopeMap()
    scope.define_constant("x", Number(1))
    scope.set("x", Binding.constant(String("s")))
    assert scope["x"] == String("s")


def test_nested_context_shadows_and_does_not_leak():
    outer = ScopeMap()
    outer.define_variable("x", Number(1))
    inner = outer.new_nested_context()
    inner.define_variable("x", Number(2))
    inner.define_variable("y", Number(3))
    assert inner["x"] == Number(2)
    assert outer["x"] == Number(1)
    assert not outer.has("y")
    assert inner.has_on_top("x")
    assert not outer.new_nested_context().has_on_top("x")


def test_nested_context_shares_outer_bindings():
    outer = ScopeMap()
    outer.define_variable("x", Number(1))
    inner = outer.new_nested_context()
    inner.get("x").set_value(Number(5))
    assert outer["x"] == Number(5)
    # Frame list is shared by reference, not copied
    assert inner.frames[0] is outer.frames[0]


def test_copy_is_deep():
    scope = ScopeMap()
    scope.define_variable("obj", make_object({"a": Number(1)}))
    copied = scope.copy()
    copied["obj"].scope.get("a").set_value(Number(9))
    assert scope["obj"].scope["a"] == Number(1)
    assert copied != scope


def test_items_inner_wins():
    outer = ScopeMap()
    outer.define_variable("x", Number(1))
    outer.define_variable("y", Number(2))
    inner = outer.new_nested_context()
    inner.define_constant("x", Number(3))
    items = dict(inner.items())
    assert items["x"].value == Number(3)
    assert not items["x"].mutable
    assert sorted(inner.names()) == ["x", "y"]
    assert len(inner) == 2


def test_make_object_constant_fields():
    obj = make_object({"a": Number(1)}, mutable=False)
    assert isinstance(obj, Object)
    with pytest.raises(SableTypeError):
        obj.scope.get("a").set_value(Number(2))
