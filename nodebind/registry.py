"""
Binding slot registry and dispatch.

Every node has at most one live Binding per key. `bind` looks up the adapter
for (node kind, key), closes whatever the slot held before, opens the new
binding and records it. A slot only exists while its binding is open: closing
a binding through any route empties its slot, and a node with no open slot is
forgotten. Live bindings keep their node alive until they are closed, so
discarded subtrees must be released with `unbind_subtree`.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional

from nodebind.adapters import (
    ATTRIBUTE,
    CONDITIONAL_ATTRIBUTE,
    CONDITIONAL_SUFFIX,
    EVENT_HANDLER,
    EVENT_PREFIX,
    GENERIC,
    TEXT_CONTENT,
    Adapter,
)
from nodebind.binding import Binding
from nodebind.dom import Element, Node, NodeKind
from nodebind.errors import UnsupportedTargetError, report
from nodebind.forms import CHECKED, OPTION_VALUE, SELECT_VALUE, SELECTED_INDEX, VALUE
from nodebind.observe import Observable

if TYPE_CHECKING:
    from nodebind.context import BindContext

logger = logging.getLogger(__name__)

ELEMENT_KINDS = frozenset(
    {
        NodeKind.ELEMENT,
        NodeKind.TEXT_INPUT,
        NodeKind.CHECKBOX,
        NodeKind.RADIO,
        NodeKind.TEXTAREA,
        NodeKind.SELECT,
        NodeKind.OPTION,
        NodeKind.FORM,
    }
)

ADAPTERS: dict[tuple[NodeKind, str], Adapter] = {
    (NodeKind.TEXT, "textContent"): TEXT_CONTENT,
    (NodeKind.COMMENT, "textContent"): TEXT_CONTENT,
    (NodeKind.TEXT_INPUT, "value"): VALUE,
    (NodeKind.TEXTAREA, "value"): VALUE,
    (NodeKind.CHECKBOX, "value"): VALUE,
    (NodeKind.RADIO, "value"): VALUE,
    (NodeKind.CHECKBOX, "checked"): CHECKED,
    (NodeKind.RADIO, "checked"): CHECKED,
    (NodeKind.SELECT, "selectedIndex"): SELECTED_INDEX,
    (NodeKind.SELECT, "value"): SELECT_VALUE,
    (NodeKind.OPTION, "value"): OPTION_VALUE,
}

# Used when no (kind, key) entry exists. Documents and shadow roots have none.
FALLBACKS: dict[NodeKind, Adapter] = {
    NodeKind.TEXT: GENERIC,
    NodeKind.COMMENT: GENERIC,
    **{kind: ATTRIBUTE for kind in ELEMENT_KINDS},
}

KEY_ALIASES: dict[tuple[NodeKind, str], str] = {
    # Attribute names arrive lowercased from markup
    (NodeKind.SELECT, "selectedindex"): "selectedIndex",
}


def normalize_key(kind: NodeKind, key: str) -> str:
    return KEY_ALIASES.get((kind, key), key)


def slot_for(kind: NodeKind, key: str) -> str:
    """Slot that `bind(node, key, ...)` stores its binding under."""
    key = normalize_key(kind, key)
    try:
        return resolve_adapter(kind, key).slot_key(key)
    except UnsupportedTargetError:
        return key


def resolve_adapter(kind: NodeKind, key: str) -> Adapter:
    if not key:
        raise UnsupportedTargetError(kind, key, "empty key")
    if kind in ELEMENT_KINDS:
        if key.startswith(EVENT_PREFIX):
            return EVENT_HANDLER
        if key.endswith(CONDITIONAL_SUFFIX):
            return CONDITIONAL_ATTRIBUTE
    adapter = ADAPTERS.get((kind, key)) or FALLBACKS.get(kind)
    if adapter is None:
        raise UnsupportedTargetError(kind, key, "no binding policy for this node kind")
    return adapter


class BindingRegistry:
    def __init__(self) -> None:
        self._slots: dict[Node, dict[str, Binding]] = {}

    def __contains__(self, node: object) -> bool:
        return node in self._slots

    def get(self, node: Node, key: str) -> Optional[Binding]:
        slots = self._slots.get(node)
        return slots.get(key) if slots else None

    def bindings_of(self, node: Node) -> Mapping[str, Binding]:
        return MappingProxyType(dict(self._slots.get(node) or {}))

    def adapter_for(self, node: Node, key: str) -> Adapter:
        kind = node.kind
        return resolve_adapter(kind, normalize_key(kind, key))

    def bind(
        self,
        node: Node,
        key: str,
        source: Any,
        one_time: bool = False,
        ctx: "Optional[BindContext]" = None,
    ) -> Any:
        """Bind `source` to `key` on `node`.

        With `one_time`, the value is presented once and returned unchanged.
        Otherwise `source` must be an Observable; the previous binding of the
        slot is closed first, and the new Binding is returned with its current
        value already applied.
        """
        from nodebind.context import BindContext

        ctx = ctx or BindContext.get()
        kind = node.kind
        key = normalize_key(kind, key)
        try:
            adapter = resolve_adapter(kind, key)
            reason = adapter.validate(node, key, source, one_time)
            if reason is not None:
                raise UnsupportedTargetError(kind, key, reason)
        except UnsupportedTargetError as exc:
            report(exc, code="binding.unsupported", details={"node": repr(node)})
            if ctx.strict:
                raise
            return None

        adapter.prepare(node, key)
        if one_time:
            adapter.bind_once(node, key, source, ctx)
            return source

        if not isinstance(source, Observable):
            raise TypeError(
                f"Live binding of {key!r} needs an Observable, got {type(source).__name__}. "
                "Pass one_time=True to present a plain value."
            )

        slot = adapter.slot_key(key)
        previous = self.get(node, slot)
        if previous is not None:
            previous.close()

        binding = Binding(node, slot, source)
        binding.add_cleanup(lambda: self._release(node, slot, binding))
        try:
            adapter.attach(node, key, binding, ctx)
        except BaseException:
            binding.close()
            raise
        if binding.is_open:
            self._slots.setdefault(node, {})[slot] = binding
        logger.debug("Bound %r on %r", slot, node)
        return binding

    def _release(self, node: Node, key: str, binding: Binding) -> None:
        slots = self._slots.get(node)
        if slots is not None and slots.get(key) is binding:
            del slots[key]
            if not slots:
                del self._slots[node]

    def unbind(self, node: Node, key: str) -> None:
        binding = self.get(node, slot_for(node.kind, key))
        if binding is not None:
            binding.close()

    def unbind_all(self, node: Node) -> None:
        for binding in list(self.bindings_of(node).values()):
            binding.close()

    def unbind_subtree(self, root: Node) -> None:
        self.unbind_all(root)
        if isinstance(root, Element) and root.shadow_root is not None:
            self.unbind_subtree(root.shadow_root)
        for child in list(root.children):
            self.unbind_subtree(child)


def _registry(ctx: "Optional[BindContext]") -> BindingRegistry:
    from nodebind.context import BindContext

    return (ctx or BindContext.get()).registry


def bind(
    node: Node,
    key: str,
    source: Any,
    one_time: bool = False,
    ctx: "Optional[BindContext]" = None,
) -> Any:
    return _registry(ctx).bind(node, key, source, one_time=one_time, ctx=ctx)


def unbind(node: Node, key: str, ctx: "Optional[BindContext]" = None) -> None:
    _registry(ctx).unbind(node, key)


def unbind_all(node: Node, ctx: "Optional[BindContext]" = None) -> None:
    _registry(ctx).unbind_all(node)


def unbind_subtree(root: Node, ctx: "Optional[BindContext]" = None) -> None:
    _registry(ctx).unbind_subtree(root)


def bindings_of(node: Node, ctx: "Optional[BindContext]" = None) -> Mapping[str, Binding]:
    return _registry(ctx).bindings_of(node)
