import pytest

from flinkop.scheme import (
    GroupKind,
    GroupResource,
    GroupVersion,
    Scheme,
    SchemeBuilder,
    add_to_scheme,
)


class Widget:
    pass


class Gadget:
    pass


GV = GroupVersion("flink.k8s.io", "v1beta1")


def test_with_kind_keeps_group():
    assert GV.with_kind("FlinkApplication") == GroupKind("flink.k8s.io", "FlinkApplication")


def test_with_resource_keeps_group():
    assert GV.with_resource("flinkapplications") == GroupResource("flink.k8s.io", "flinkapplications")


def test_string_forms():
    assert str(GV) == "flink.k8s.io/v1beta1"
    assert str(GroupVersion("", "v1")) == "v1"
    assert str(GroupKind("", "Pod")) == "Pod"
    assert str(GroupKind("flink.k8s.io", "FlinkApplication")) == "FlinkApplication.flink.k8s.io"


def test_register_and_lookup_round_trip():
    scheme = Scheme()
    scheme.add_known_types(GV, Widget, Gadget)
    assert scheme.type_for(GV, "Widget") is Widget
    assert scheme.kind_for(Gadget()) == (GV, "Gadget")
    assert scheme.kind_for(Widget) == (GV, "Widget")


def test_registering_twice_is_idempotent():
    scheme = Scheme()
    scheme.add_known_types(GV, Widget)
    scheme.add_known_types(GV, Widget)
    assert scheme.kind_for(Widget) == (GV, "Widget")


def test_conflicting_registration_raises():
    scheme = Scheme()
    scheme.add_known_types(GV, Widget)
    other = type("Widget", (), {})
    with pytest.raises(ValueError):
        scheme.add_known_types(GV, other)


def test_non_class_is_rejected():
    with pytest.raises(TypeError):
        Scheme().add_known_types(GV, Widget())


def test_unknown_lookups_raise_key_error():
    scheme = Scheme()
    with pytest.raises(KeyError):
        scheme.kind_for(Widget())
    with pytest.raises(KeyError):
        scheme.type_for(GV, "Widget")


def test_builder_runs_functions_in_order():
    calls = []
    builder = SchemeBuilder(lambda s: calls.append("first"))
    builder.register(lambda s: calls.append("second"))
    builder.add_to_scheme(Scheme())
    assert calls == ["first", "second"]


def test_builder_stops_on_first_error():
    calls = []

    def failing(scheme):
        raise RuntimeError("boom")

    builder = SchemeBuilder(failing, lambda s: calls.append("after"))
    with pytest.raises(RuntimeError, match="boom"):
        builder.add_to_scheme(Scheme())
    assert calls == []


def test_add_to_scheme_registers_v1beta1_types():
    from flinkop import v1beta1

    scheme = Scheme()
    add_to_scheme(scheme)
    assert scheme.type_for(GV, "FlinkApplication") is v1beta1.FlinkApplication
    assert scheme.type_for(GV, "FlinkApplicationList") is v1beta1.FlinkApplicationList