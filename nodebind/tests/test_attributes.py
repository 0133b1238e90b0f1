import pytest
from nodebind import (
    Element,
    PathObserver,
    ReactiveDict,
    UnsupportedTargetError,
    bind,
    bindings_of,
    flush_effects,
    unbind,
)


def test_attribute():
    model = ReactiveDict(a=1, b=2)
    el = Element("div")
    bind(el, "foo", PathObserver(model, "a"))
    bind(el, "bar", PathObserver(model, "b"))
    assert el.get_attribute("foo") == "1"
    assert el.get_attribute("bar") == "2"

    model["a"] = "x"
    model["b"] = None
    flush_effects()
    assert el.get_attribute("foo") == "x"
    assert el.get_attribute("bar") == ""


def test_attribute_unreachable_path_is_empty():
    el = Element("div")
    bind(el, "foo", PathObserver(ReactiveDict(), "a.b"))
    assert el.get_attribute("foo") == ""


def test_attribute_one_time():
    el = Element("div")
    assert bind(el, "foo", 42, one_time=True) == 42
    assert el.get_attribute("foo") == "42"
    assert bindings_of(el) == {}


def test_attribute_unbind_keeps_last_value():
    model = ReactiveDict(a="kept")
    el = Element("div")
    bind(el, "foo", PathObserver(model, "a"))
    unbind(el, "foo")
    model["a"] = "changed"
    flush_effects()
    assert el.get_attribute("foo") == "kept"


class TestConditionalAttribute:
    def test_presence_follows_truthiness(self):
        model = ReactiveDict(on=True)
        el = Element("div", {"hidden?": "static"})
        bind(el, "hidden?", PathObserver(model, "on"))
        assert not el.has_attribute("hidden?")
        assert el.get_attribute("hidden") == ""

        model["on"] = False
        flush_effects()
        assert not el.has_attribute("hidden")

        model["on"] = "yes"
        flush_effects()
        assert el.get_attribute("hidden") == ""

    def test_slot_key_drops_the_marker(self):
        el = Element("div")
        bind(el, "disabled?", PathObserver(ReactiveDict(d=1), "d"))
        assert set(bindings_of(el)) == {"disabled"}
        unbind(el, "disabled")
        assert bindings_of(el) == {}

    def test_unbind_with_the_bound_key(self):
        model = ReactiveDict(on=True)
        el = Element("div")
        binding = bind(el, "hidden?", PathObserver(model, "on"))

        unbind(el, "hidden?")
        assert not binding.is_open
        assert bindings_of(el) == {}

        model["on"] = False
        flush_effects()
        assert el.get_attribute("hidden") == ""

    def test_replaces_plain_binding_of_same_attribute(self):
        model = ReactiveDict(text="plain", flag=False)
        el = Element("div")
        plain = bind(el, "hidden", PathObserver(model, "text"))
        bind(el, "hidden?", PathObserver(model, "flag"))
        assert not plain.is_open
        assert not el.has_attribute("hidden")

        model["text"] = "stale"
        flush_effects()
        assert not el.has_attribute("hidden")

    def test_one_time(self):
        el = Element("div", {"hidden?": ""})
        bind(el, "hidden?", 0, one_time=True)
        assert el.attributes == {}

    def test_bare_marker_is_unsupported(self):
        with pytest.raises(UnsupportedTargetError):
            bind(Element("div"), "?", PathObserver(ReactiveDict(), "x"))


class TestEventHandler:
    def test_live_handler_is_resolved_per_event(self):
        calls = []
        model = ReactiveDict(handler=lambda e: calls.append(("first", e.type)))
        el = Element("button")
        bind(el, "on-click", PathObserver(model, "handler"))
        assert not el.has_attribute("on-click")

        el.fire("click")
        model["handler"] = lambda e: calls.append(("second", e.type))
        # No flush needed: the handler is read when the event fires
        el.fire("click")
        assert calls == [("first", "click"), ("second", "click")]

    def test_non_callable_value_is_skipped(self):
        model = ReactiveDict(handler=None)
        el = Element("button")
        bind(el, "on-click", PathObserver(model, "handler"))
        el.fire("click")

    def test_unbind_detaches_listener(self):
        calls = []
        model = ReactiveDict(handler=calls.append)
        el = Element("button")
        bind(el, "on-click", PathObserver(model, "handler"))
        unbind(el, "on-click")
        assert not el.has_listeners("click")
        el.fire("click")
        assert calls == []

    def test_one_time_attaches_directly(self):
        calls = []
        el = Element("button")
        handler = calls.append
        assert bind(el, "on-custom", handler, one_time=True) is handler
        el.fire("custom")
        assert [e.type for e in calls] == ["custom"]

    def test_one_time_requires_a_callable(self):
        with pytest.raises(UnsupportedTargetError, match="callable"):
            bind(Element("button"), "on-click", "not a function", one_time=True)

    def test_missing_event_name(self):
        with pytest.raises(UnsupportedTargetError, match="event name"):
            bind(Element("button"), "on-", PathObserver(ReactiveDict(), "x"))
