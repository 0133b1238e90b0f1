import logging

import pytest
from conftest import FakeObservable
from nodebind import (
    BindContext,
    Binding,
    Comment,
    Document,
    Element,
    PathObserver,
    ReactiveDict,
    Text,
    UnsupportedTargetError,
    bind,
    bindings_of,
    create_element,
    flush_effects,
    observer_count,
    unbind,
    unbind_all,
    unbind_subtree,
)
from nodebind.adapters import ATTRIBUTE, EVENT_HANDLER, GENERIC, TEXT_CONTENT
from nodebind.registry import BindingRegistry, resolve_adapter
from nodebind.dom import NodeKind


class TestTextContent:
    def test_live(self):
        model = ReactiveDict(a=1)
        text = Text()
        binding = bind(text, "textContent", PathObserver(model, "a"))
        assert isinstance(binding, Binding)
        assert text.data == "1"

        model["a"] = "b"
        assert text.data == "1"
        flush_effects()
        assert text.data == "b"

    def test_value_conversion(self):
        model = ReactiveDict(a=232.0)
        text = Text()
        bind(text, "textContent", PathObserver(model, "a"))
        assert text.data == "232"

        model["a"] = True
        flush_effects()
        assert text.data == "true"

    def test_none_renders_empty(self):
        model = ReactiveDict(a="x")
        text = Text()
        bind(text, "textContent", PathObserver(model, "a"))
        model["a"] = None
        flush_effects()
        assert text.data == ""

    def test_unreachable_path_renders_empty(self):
        text = Text("previous")
        bind(text, "textContent", PathObserver(ReactiveDict(), "a.b"))
        assert text.data == ""

    def test_comment(self):
        model = ReactiveDict(a="note")
        comment = Comment()
        bind(comment, "textContent", PathObserver(model, "a"))
        assert comment.data == "note"

    def test_one_time(self):
        text = Text()
        assert bind(text, "textContent", "fixed", one_time=True) == "fixed"
        assert text.data == "fixed"
        assert bindings_of(text) == {}

    def test_one_time_never_subscribes(self):
        source = FakeObservable("v")
        text = Text()
        assert bind(text, "textContent", source, one_time=True) is source
        assert source.opens == 0

    def test_one_time_path_value_does_not_react(self):
        model = ReactiveDict(a="first")
        text = Text()
        bind(text, "textContent", PathObserver(model, "a").value, one_time=True)
        model["a"] = "second"
        flush_effects()
        assert text.data == "first"

    def test_one_time_leaves_live_binding_in_place(self):
        source = FakeObservable("live")
        text = Text()
        live = bind(text, "textContent", source)
        bind(text, "textContent", "once", one_time=True)
        assert text.data == "once"
        assert live.is_open
        source.notify("again")
        assert text.data == "again"

    def test_generic_property(self):
        model = ReactiveDict(a="via data")
        text = Text()
        bind(text, "data", PathObserver(model, "a"))
        assert text.data == "via data"


class TestSlots:
    def test_rebind_closes_previous_binding_first(self):
        text = Text()
        first = FakeObservable("one")
        second = FakeObservable("two")

        old = bind(text, "textContent", first)
        new = bind(text, "textContent", second)
        assert old.state.value == "closed"
        assert first.closes == 1
        assert text.data == "two"
        assert bindings_of(text)["textContent"] is new

        # The replaced source keeps firing: nothing reaches the node
        first.notify("stale")
        assert text.data == "two"
        old.set_value("ignored")
        assert first.writes == []

    def test_rebind_with_path_observers(self):
        model = ReactiveDict(a="a", b="b")
        text = Text()
        bind(text, "textContent", PathObserver(model, "a"))
        bind(text, "textContent", PathObserver(model, "b"))
        assert text.data == "b"

        model["a"] = "stale"
        flush_effects()
        assert text.data == "b"

        model["b"] = "fresh"
        flush_effects()
        assert text.data == "fresh"

    def test_unbind_accepts_the_select_alias(self):
        select = create_element("select")
        source = FakeObservable(0)
        bind(select, "selectedIndex", source)
        unbind(select, "selectedindex")
        assert source.closes == 1
        assert bindings_of(select) == {}

    def test_node_is_forgotten_once_its_last_slot_closes(self, ctx):
        el = Element("div")
        title = bind(el, "title", FakeObservable("t"))
        bind(el, "hidden?", FakeObservable(True))
        assert el in ctx.registry

        title.close()
        assert el in ctx.registry
        unbind(el, "hidden?")
        assert el not in ctx.registry

    def test_unbind_subtree_releases_every_node(self, ctx):
        root = Element("div")
        child = root.append_child(Element("span"))
        text = child.append_child(Text())
        bind(root, "title", FakeObservable("r"))
        bind(text, "textContent", FakeObservable("t"))

        unbind_subtree(root)
        assert root not in ctx.registry
        assert text not in ctx.registry

    def test_unbind_is_idempotent(self):
        source = FakeObservable("x")
        text = Text()
        bind(text, "textContent", source)

        unbind(text, "textContent")
        assert "textContent" not in bindings_of(text)
        unbind(text, "textContent")
        assert "textContent" not in bindings_of(text)
        assert source.closes == 1

    def test_closing_a_binding_empties_its_slot(self):
        text = Text()
        binding = bind(text, "textContent", FakeObservable())
        binding.close()
        assert bindings_of(text) == {}

    def test_stale_release_keeps_new_binding(self):
        registry = BindingRegistry()
        text = Text()
        old = registry.bind(text, "textContent", FakeObservable("a"))
        new = registry.bind(text, "textContent", FakeObservable("b"))
        old.close()
        assert registry.get(text, "textContent") is new

    def test_unbind_all(self):
        el = Element("div")
        sources = [FakeObservable("1"), FakeObservable("2")]
        bind(el, "title", sources[0])
        bind(el, "lang", sources[1])
        assert set(bindings_of(el)) == {"title", "lang"}

        unbind_all(el)
        assert bindings_of(el) == {}
        assert [s.closes for s in sources] == [1, 1]

    def test_unbind_subtree_reaches_shadow_content(self):
        host = Element("div")
        light = host.append_child(Text())
        shadow_text = host.attach_shadow().append_child(Text())
        sources = [FakeObservable("h"), FakeObservable("l"), FakeObservable("s")]
        bind(host, "title", sources[0])
        bind(light, "textContent", sources[1])
        bind(shadow_text, "textContent", sources[2])

        unbind_subtree(host)
        assert [s.closes for s in sources] == [1, 1, 1]
        assert bindings_of(light) == {}
        assert bindings_of(shadow_text) == {}

    def test_bindings_of_is_a_read_only_snapshot(self):
        text = Text()
        bind(text, "textContent", FakeObservable())
        snapshot = bindings_of(text)
        with pytest.raises(TypeError):
            snapshot["other"] = None  # type: ignore[index]
        unbind(text, "textContent")
        assert "textContent" in snapshot

    def test_registries_are_independent(self):
        text = Text()
        with BindContext() as other:
            bind(text, "textContent", FakeObservable("scoped"))
            assert set(other.registry.bindings_of(text)) == {"textContent"}
        assert bindings_of(text) == {}


class TestDispatch:
    def test_resolve_adapter(self):
        assert resolve_adapter(NodeKind.TEXT, "textContent") is TEXT_CONTENT
        assert resolve_adapter(NodeKind.TEXT, "data") is GENERIC
        assert resolve_adapter(NodeKind.ELEMENT, "title") is ATTRIBUTE
        assert resolve_adapter(NodeKind.TEXT_INPUT, "on-input") is EVENT_HANDLER

    def test_document_is_not_bindable(self, caplog):
        with caplog.at_level(logging.ERROR, logger="nodebind.errors"):
            with pytest.raises(UnsupportedTargetError):
                bind(Document(), "title", FakeObservable())
        assert "binding.unsupported" in caplog.text

    @pytest.mark.parametrize("key", ["", "missing", "_data", "append_child"])
    def test_text_node_bad_keys(self, key):
        with pytest.raises(UnsupportedTargetError):
            bind(Text(), key, FakeObservable())

    def test_unsupported_is_also_a_type_error(self):
        with pytest.raises(TypeError):
            bind(Text(), "missing", FakeObservable())

    def test_non_strict_reports_and_returns_none(self, caplog):
        source = FakeObservable()
        with BindContext(strict=False):
            with caplog.at_level(logging.ERROR, logger="nodebind.errors"):
                assert bind(Text(), "missing", source) is None
        assert "Cannot bind 'missing' on a text node" in caplog.text
        assert source.opens == 0

    def test_live_binding_needs_an_observable(self):
        with pytest.raises(TypeError, match="one_time=True"):
            bind(Text(), "textContent", "plain")

    def test_push_errors_are_reported(self, caplog):
        class Gauge(Text):
            _level = 0

            @property
            def level(self):
                return self._level

            @level.setter
            def level(self, value):
                if value < 0:
                    raise ValueError("negative level")
                self._level = value

        source = FakeObservable(1)
        gauge = Gauge()
        bind(gauge, "level", source)
        with caplog.at_level(logging.ERROR, logger="nodebind.errors"):
            source.notify(-1)
        assert gauge.level == 1
        assert "code=binding.push" in caplog.text

    def test_failed_initial_assignment_leaves_no_binding(self):
        class Picky(Text):
            @property
            def level(self):
                return 0

            @level.setter
            def level(self, value):
                raise ValueError("rejected")

        source = FakeObservable(1)
        node = Picky()
        with pytest.raises(ValueError):
            bind(node, "level", source)
        assert bindings_of(node) == {}
        assert source.closes == 1


def test_teardown_leaves_no_open_observers():
    model = ReactiveDict(a="x", flag=True, handler=None)
    before = observer_count()
    root = Element("div")
    text = root.append_child(Text())
    field = root.append_child(create_element("input", type="checkbox"))
    bind(text, "textContent", PathObserver(model, "a"))
    bind(root, "hidden?", PathObserver(model, "flag"))
    bind(root, "on-click", PathObserver(model, "handler"))
    bind(field, "checked", PathObserver(model, "flag"))
    assert observer_count() == before + 4

    unbind_subtree(root)
    assert observer_count() == before
    assert not field.has_listeners("click")
    assert not root.has_listeners("click")
