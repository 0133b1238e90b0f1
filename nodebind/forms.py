"""
Two-way bindings for form controls.

Each control key has a push path (observable -> control, with a sanitized
presentation value) and, for interactive controls, a pull path: the control's
natural user event reads the control's state and sends it upstream.

A pull always runs the same sequence before returning to the event handler
that triggered it:

    set_value(current) -> discard_changes() -> post-event hook -> flush

Discarding keeps the value that was just pushed from echoing back as an
external change. The flush makes every reaction (radio siblings, select and
option coordination, an upstream observer that rejects the value) visible
before the user's event handler continues.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from nodebind.adapters import Adapter, reporting, sanitize_value
from nodebind.dom import InputElement, NodeKind
from nodebind.features import get_capabilities
from nodebind.radio import uncheck_associated_bindings
from nodebind.select import update_option

if TYPE_CHECKING:
    from nodebind.binding import Binding
    from nodebind.context import BindContext
    from nodebind.dom import Node


def event_for_control(node: "Node", key: str, ctx: "BindContext") -> str:
    """User event that pulls `key` from `node`."""
    kind = node.kind
    if key == "checked" and kind is NodeKind.CHECKBOX:
        return ctx.checkbox_event or get_capabilities().checkbox_event
    if key == "checked" or kind is NodeKind.SELECT:
        return "change"
    return "input"


def sanitize_index(value: Any, option_count: int) -> int:
    """Selected index to display for a bound value. Anything that is not an
    index of an existing option selects the first one."""
    if isinstance(value, bool):
        return 0
    try:
        index = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return index if 0 <= index < option_count else 0


class ControlAdapter(Adapter):
    """Push and pull for one property of a form control. Before binding, the
    static attribute of the same name is removed so the declarative default
    cannot fight the bound value."""

    def prepare(self, node, key):
        node.remove_attribute(key)  # type: ignore[attr-defined]

    def read(self, node: "Node", key: str) -> Any:
        return getattr(node, key)

    def post_event(self, node: "Node", ctx: "BindContext") -> None:
        pass

    def attach(self, node, key, binding, ctx):
        super().attach(node, key, binding, ctx)
        binding.listen(node, event_for_control(node, key, ctx), self._pull(node, key, binding, ctx))

    def _pull(
        self, node: "Node", key: str, binding: "Binding", ctx: "BindContext"
    ) -> Callable[[Any], None]:
        def pull(_event: Any) -> None:
            if not binding.is_open:
                return
            binding.set_value(self.read(node, key))
            binding.discard_changes()
            self.post_event(node, ctx)
            ctx.flush()

        return reporting("binding.pull", binding, pull)


class ValueAdapter(ControlAdapter):
    """`value` of text-like inputs and textareas."""

    def assign(self, node, key, value, ctx):
        node.value = sanitize_value(value)  # type: ignore[attr-defined]

    def read(self, node, key):
        if isinstance(node, InputElement) and node.type == "number":
            return node.value_as_number
        return node.value  # type: ignore[attr-defined]


class CheckedAdapter(ControlAdapter):
    """`checked` of checkboxes and radios."""

    def assign(self, node, key, value, ctx):
        node.checked = bool(value)  # type: ignore[attr-defined]

    def post_event(self, node, ctx):
        # Only the radio being checked gets an event, so the rest of its group
        # is updated through their bindings.
        if node.kind is NodeKind.RADIO and node.checked:  # type: ignore[attr-defined]
            uncheck_associated_bindings(node, ctx.registry)  # type: ignore[arg-type]


class SelectedIndexAdapter(ControlAdapter):
    def assign(self, node, key, value, ctx):
        node.selected_index = sanitize_index(value, len(node.options))  # type: ignore[attr-defined]

    def read(self, node, key):
        return node.selected_index  # type: ignore[attr-defined]


class SelectValueAdapter(ControlAdapter):
    def assign(self, node, key, value, ctx):
        node.value = sanitize_value(value)  # type: ignore[attr-defined]


class OptionValueAdapter(ControlAdapter):
    """`value` of an option. Push only: edits reach the select's own binding
    through `update_option`."""

    def assign(self, node, key, value, ctx):
        update_option(node, value, ctx)  # type: ignore[arg-type]

    def attach(self, node, key, binding, ctx):
        Adapter.attach(self, node, key, binding, ctx)


VALUE = ValueAdapter()
CHECKED = CheckedAdapter()
SELECTED_INDEX = SelectedIndexAdapter()
SELECT_VALUE = SelectValueAdapter()
OPTION_VALUE = OptionValueAdapter()
