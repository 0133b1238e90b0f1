"""
Synchronization policies for non-interactive targets: plain properties, text
nodes, attributes (including presence-only ones) and event handlers.

An adapter knows how to present a value on a node (`assign`) and how to wire
a live binding (`attach`). The registry picks the adapter and owns the
binding's lifecycle; adapters never store bindings themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional

from nodebind.errors import ErrorCode, report

if TYPE_CHECKING:
    from nodebind.binding import Binding
    from nodebind.context import BindContext
    from nodebind.dom import Element, Node

CONDITIONAL_SUFFIX = "?"
EVENT_PREFIX = "on-"


def sanitize_value(value: Any) -> Any:
    return "" if value is None else value


def reporting(
    code: ErrorCode, binding: "Binding", fn: Callable[..., Any]
) -> Callable[..., None]:
    """Wrap a push or pull handler so that failures are reported instead of
    propagating into the flush or the event dispatch that called it."""

    def wrapper(*args: Any) -> None:
        try:
            fn(*args)
        except Exception as exc:
            report(
                exc,
                code=code,
                details={"key": binding.key, "node": repr(binding.node)},
            )

    return wrapper


class Adapter:
    """Default policy: push-only, one value assignment per notification."""

    def slot_key(self, key: str) -> str:
        return key

    def validate(self, node: "Node", key: str, source: Any, one_time: bool) -> Optional[str]:
        """Reason why (node, key) cannot be bound, or None."""
        return None

    def prepare(self, node: "Node", key: str) -> None:
        """Runs before any binding, one-time or live."""

    def assign(self, node: "Node", key: str, value: Any, ctx: "BindContext") -> None:
        raise NotImplementedError

    def bind_once(self, node: "Node", key: str, value: Any, ctx: "BindContext") -> None:
        self.assign(node, key, value, ctx)

    def attach(self, node: "Node", key: str, binding: "Binding", ctx: "BindContext") -> None:
        push = reporting("binding.push", binding, lambda v: self.assign(node, key, v, ctx))
        self.assign(node, key, binding.open(push), ctx)


class GenericAdapter(Adapter):
    """`node.<key> = value` for nodes without a dedicated policy."""

    def validate(self, node, key, source, one_time):
        if not key.isidentifier() or key.startswith("_"):
            return "not a property name"
        if not hasattr(node, key) or callable(getattr(node, key)):
            return f"{type(node).__name__} has no property {key!r}"
        return None

    def assign(self, node, key, value, ctx):
        setattr(node, key, value)


class TextContentAdapter(Adapter):
    def assign(self, node, key, value, ctx):
        node.data = sanitize_value(value)  # type: ignore[attr-defined]


class AttributeAdapter(Adapter):
    def validate(self, node, key, source, one_time):
        if any(c.isspace() for c in key):
            return "attribute names cannot contain whitespace"
        return None

    def assign(self, node, key, value, ctx):
        node.set_attribute(key, sanitize_value(value))  # type: ignore[attr-defined]


class ConditionalAttributeAdapter(AttributeAdapter):
    """`name?` keys: the attribute is present (and empty) while the value is
    truthy, absent otherwise."""

    def slot_key(self, key: str) -> str:
        return key[: -len(CONDITIONAL_SUFFIX)]

    def validate(self, node, key, source, one_time):
        if not self.slot_key(key):
            return "missing attribute name before '?'"
        return super().validate(node, key, source, one_time)

    def prepare(self, node, key):
        element: Element = node  # type: ignore[assignment]
        element.remove_attribute(key)

    def assign(self, node, key, value, ctx):
        element: Element = node  # type: ignore[assignment]
        name = self.slot_key(key)
        if value:
            element.set_attribute(name, "")
        else:
            element.remove_attribute(name)


class EventHandlerAdapter(Adapter):
    """`on-<event>` keys attach a listener instead of touching attributes.

    A live binding resolves the handler on every event, so the observable can
    swap the function at any time.
    """

    @staticmethod
    def event_type(key: str) -> str:
        return key[len(EVENT_PREFIX) :]

    def validate(self, node, key, source, one_time):
        if not self.event_type(key):
            return "missing event name after 'on-'"
        if one_time and not callable(source):
            return f"one-time event handler must be callable, got {type(source).__name__}"
        return None

    def assign(self, node, key, value, ctx):
        node.add_event_listener(self.event_type(key), value)

    def attach(self, node, key, binding, ctx):
        binding.open(lambda _value: None)

        def handler(event: Any) -> None:
            fn = binding.discard_changes()
            if callable(fn):
                fn(event)

        binding.listen(node, self.event_type(key), handler)


GENERIC = GenericAdapter()
TEXT_CONTENT = TextContentAdapter()
ATTRIBUTE = AttributeAdapter()
CONDITIONAL_ATTRIBUTE = ConditionalAttributeAdapter()
EVENT_HANDLER = EventHandlerAdapter()
