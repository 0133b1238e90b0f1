"""
Minimal mutable document tree used as the binding host.

It models just enough of a browser document for the binding engine: typed
nodes, string attributes, event listeners with bubbling, form controls with
their user-facing state (dirty values, checkedness, selectedness), forms,
radio exclusivity and tree-scopes (documents and shadow roots) with
identifier lookup.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterator, Optional, Sequence, TypeVar

from nodebind.errors import report


class NodeKind(str, Enum):
    TEXT = "text"
    COMMENT = "comment"
    ELEMENT = "element"
    TEXT_INPUT = "text-input"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    TEXTAREA = "textarea"
    SELECT = "select"
    OPTION = "option"
    FORM = "form"
    DOCUMENT = "document"
    SHADOW_ROOT = "shadow-root"


Listener = Callable[["Event"], Any]
NodeT = TypeVar("NodeT", bound="Node")


def to_dom_string(value: Any) -> str:
    """String conversion the way a document stores attribute and text values."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class Event:
    def __init__(
        self,
        type: str,
        bubbles: bool = False,
        cancelable: bool = False,
        detail: Any = None,
    ) -> None:
        self.type = type
        self.bubbles = bubbles
        self.cancelable = cancelable
        self.detail = detail
        self.target: Optional[Node] = None
        self.current_target: Optional[Node] = None
        self.default_prevented = False
        self.propagation_stopped = False

    def prevent_default(self) -> None:
        if self.cancelable:
            self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True

    def __repr__(self) -> str:  # pragma: no cover - trivial formatting
        return f"Event(type={self.type!r}, target={self.target!r})"


class Node:
    kind: NodeKind

    def __init__(self) -> None:
        self.parent: Optional[Node] = None
        self.children: list[Node] = []
        self._listeners: dict[str, list[Listener]] = {}

    # --- Tree structure --------------------------------------------------------
    def append_child(self, child: "NodeT") -> "NodeT":
        return self.insert_before(child, None)

    def insert_before(self, child: "NodeT", reference: Optional[Node]) -> "NodeT":
        if child is self or child.contains(self):
            raise ValueError("A node cannot be inserted into itself")
        if child.parent is not None:
            child.parent.remove_child(child)
        if reference is None:
            self.children.append(child)
        else:
            self.children.insert(self.children.index(reference), child)
        child.parent = self
        return child

    def remove_child(self, child: "NodeT") -> "NodeT":
        self.children.remove(child)
        child.parent = None
        return child

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)

    def contains(self, other: Optional[Node]) -> bool:
        while other is not None:
            if other is self:
                return True
            other = other.parent
        return False

    def root(self) -> Node:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def tree_scope(self) -> Optional["TreeScope"]:
        root = self.root()
        return root if isinstance(root, TreeScope) else None

    def iter_descendants(self) -> Iterator[Node]:
        for child in list(self.children):
            yield child
            yield from child.iter_descendants()

    @property
    def text_content(self) -> str:
        return "".join(
            node.data for node in self.iter_descendants() if isinstance(node, Text)
        )

    @text_content.setter
    def text_content(self, value: Any) -> None:
        for child in list(self.children):
            self.remove_child(child)
        text = to_dom_string(value)
        if text:
            self.append_child(Text(text))

    # --- Events ----------------------------------------------------------------
    def add_event_listener(self, type: str, listener: Listener) -> None:
        listeners = self._listeners.setdefault(type, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_event_listener(self, type: str, listener: Listener) -> None:
        listeners = self._listeners.get(type)
        if listeners and listener in listeners:
            listeners.remove(listener)
            if not listeners:
                del self._listeners[type]

    def has_listeners(self, type: str) -> bool:
        return bool(self._listeners.get(type))

    def _invoke_listeners(self, event: Event) -> None:
        # Listeners added during dispatch do not run; removed ones do not either
        for listener in list(self._listeners.get(event.type, ())):
            if listener not in self._listeners.get(event.type, ()):
                continue
            try:
                listener(event)
            except Exception as exc:
                report(
                    exc,
                    code="listener",
                    details={"event": event.type, "node": repr(self)},
                )

    def dispatch_event(self, event: Event) -> bool:
        """Deliver `event` to this node, then to its ancestors if it bubbles.
        Returns False if a listener prevented the default action."""
        event.target = self
        node: Optional[Node] = self
        while node is not None:
            event.current_target = node
            node._invoke_listeners(event)
            if event.propagation_stopped or not event.bubbles:
                break
            node = node.parent
        event.current_target = None
        return not event.default_prevented

    def fire(self, type: str, bubbles: bool = True) -> bool:
        return self.dispatch_event(Event(type, bubbles=bubbles))


class CharacterData(Node):
    def __init__(self, data: Any = "") -> None:
        super().__init__()
        self._data = to_dom_string(data)

    @property
    def data(self) -> str:
        return self._data

    @data.setter
    def data(self, value: Any) -> None:
        self._data = to_dom_string(value)

    @property
    def text_content(self) -> str:
        return self.data

    @text_content.setter
    def text_content(self, value: Any) -> None:
        self.data = to_dom_string(value)

    def append_child(self, child):
        raise ValueError(f"{type(self).__name__} nodes cannot have children")

    def insert_before(self, child, reference):
        raise ValueError(f"{type(self).__name__} nodes cannot have children")


class Text(CharacterData):
    kind = NodeKind.TEXT

    def __repr__(self) -> str:  # pragma: no cover - trivial formatting
        return f"Text({_short_text(self.data)!r})"


class Comment(CharacterData):
    kind = NodeKind.COMMENT

    def __repr__(self) -> str:  # pragma: no cover - trivial formatting
        return f"Comment({_short_text(self.data)!r})"


# ============================================================================
# Elements
# ============================================================================


class Element(Node):
    kind = NodeKind.ELEMENT

    def __init__(self, tag: str, attributes: Optional[dict[str, Any]] = None) -> None:
        super().__init__()
        self.tag = tag.lower()
        self.attributes: dict[str, str] = {}
        self.shadow_root: Optional[ShadowRoot] = None
        for name, value in (attributes or {}).items():
            self.set_attribute(name, value)

    def __repr__(self) -> str:  # pragma: no cover - trivial formatting
        return f"<{self.tag}{_short_attributes(self.attributes)}>"

    # --- Attributes --------------------------------------------------------------
    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        if not name or any(c.isspace() for c in name):
            raise ValueError(f"Invalid attribute name: {name!r}")
        self.attributes[name] = to_dom_string(value)

    def remove_attribute(self, name: str) -> None:
        self.attributes.pop(name, None)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    @property
    def id(self) -> str:
        return self.attributes.get("id", "")

    @id.setter
    def id(self, value: Any) -> None:
        self.set_attribute("id", value)

    def attach_shadow(self) -> ShadowRoot:
        if self.shadow_root is not None:
            raise ValueError(f"{self!r} already hosts a shadow root")
        self.shadow_root = ShadowRoot(self)
        return self.shadow_root


class FormAssociated(Element):
    """Controls that belong to a form: the one named by their `form`
    attribute in their tree-scope, else their nearest ancestor form."""

    @property
    def form(self) -> Optional[FormElement]:
        form_id = self.get_attribute("form")
        if form_id is not None:
            scope = self.tree_scope()
            owner = scope.get_element_by_id(form_id) if scope is not None else None
            return owner if isinstance(owner, FormElement) else None
        node = self.parent
        while node is not None:
            if isinstance(node, FormElement):
                return node
            node = node.parent
        return None

    @property
    def name(self) -> str:
        return self.attributes.get("name", "")

    @name.setter
    def name(self, value: Any) -> None:
        self.set_attribute("name", value)


class InputElement(FormAssociated):
    def __init__(self, tag: str = "input", attributes: Optional[dict[str, Any]] = None) -> None:
        # None means "not dirty": the content attribute provides the state
        self._value: Optional[str] = None
        self._checked: Optional[bool] = None
        super().__init__(tag, attributes)

    @property
    def kind(self) -> NodeKind:  # type: ignore[override]
        input_type = self.type
        if input_type == "checkbox":
            return NodeKind.CHECKBOX
        if input_type == "radio":
            return NodeKind.RADIO
        return NodeKind.TEXT_INPUT

    @property
    def type(self) -> str:
        return self.attributes.get("type", "text").lower() or "text"

    @type.setter
    def type(self, value: str) -> None:
        self.set_attribute("type", value)

    @property
    def value(self) -> str:
        if self._value is not None:
            return self._value
        return self.attributes.get("value", "")

    @value.setter
    def value(self, value: Any) -> None:
        self._value = to_dom_string(value)

    @property
    def value_as_number(self) -> Optional[float]:
        if self.type not in ("number", "range"):
            return None
        try:
            return float(self.value)
        except ValueError:
            return None

    @property
    def checked(self) -> bool:
        if self._checked is not None:
            return self._checked
        return self.has_attribute("checked")

    @checked.setter
    def checked(self, value: Any) -> None:
        self._checked = bool(value)
        if self._checked and self.kind is NodeKind.RADIO:
            from nodebind.radio import associated_radios

            for radio in associated_radios(self):
                radio._checked = False

    def click(self) -> bool:
        return self.dispatch_event(Event("click", bubbles=True, cancelable=True))

    def dispatch_event(self, event: Event) -> bool:
        kind = self.kind
        if event.type != "click" or kind not in (NodeKind.CHECKBOX, NodeKind.RADIO):
            return super().dispatch_event(event)

        # Activation behavior: the state flips before listeners observe the
        # click, and is restored if the click is cancelled.
        previous = self._checked
        was_checked = self.checked
        if kind is NodeKind.CHECKBOX:
            self.checked = not was_checked
        else:
            self.checked = True
        not_cancelled = super().dispatch_event(event)
        if not not_cancelled:
            self._checked = previous
            return False
        if self.checked != was_checked:
            self.fire("input")
            self.fire("change")
        return True


class TextAreaElement(FormAssociated):
    kind = NodeKind.TEXTAREA

    def __init__(self, tag: str = "textarea", attributes: Optional[dict[str, Any]] = None) -> None:
        self._value: Optional[str] = None
        super().__init__(tag, attributes)

    @property
    def value(self) -> str:
        if self._value is not None:
            return self._value
        return self.text_content

    @value.setter
    def value(self, value: Any) -> None:
        self._value = to_dom_string(value)


class SelectElement(FormAssociated):
    kind = NodeKind.SELECT

    def __init__(self, tag: str = "select", attributes: Optional[dict[str, Any]] = None) -> None:
        # Set when an assignment matched no option: nothing is displayed
        self._cleared = False
        super().__init__(tag, attributes)

    @property
    def multiple(self) -> bool:
        return self.has_attribute("multiple")

    @property
    def options(self) -> list[OptionElement]:
        result: list[OptionElement] = []
        for child in self.children:
            if isinstance(child, OptionElement):
                result.append(child)
            elif isinstance(child, Element) and child.tag == "optgroup":
                result.extend(c for c in child.children if isinstance(c, OptionElement))
        return result

    @property
    def selected_index(self) -> int:
        options = self.options
        for index, option in enumerate(options):
            if option.selected:
                return index
        if self._cleared or self.multiple or not options:
            return -1
        # A single-choice list displays its first option by default
        return 0

    @selected_index.setter
    def selected_index(self, index: int) -> None:
        options = self.options
        for i, option in enumerate(options):
            option._selected = i == index
        self._cleared = not 0 <= index < len(options)

    @property
    def value(self) -> str:
        options = self.options
        index = self.selected_index
        return options[index].value if 0 <= index < len(options) else ""

    @value.setter
    def value(self, value: Any) -> None:
        wanted = to_dom_string(value)
        found = False
        for option in self.options:
            option._selected = not found and option.value == wanted
            found = found or option._selected
        self._cleared = not found

    def add_option(self, value: Any = None, text: str = "") -> OptionElement:
        option = OptionElement()
        if text:
            option.append_child(Text(text))
        if value is not None:
            option.value = value
        return self.append_child(option)


class OptionElement(Element):
    kind = NodeKind.OPTION

    def __init__(self, tag: str = "option", attributes: Optional[dict[str, Any]] = None) -> None:
        self._selected: Optional[bool] = None
        super().__init__(tag, attributes)

    @property
    def value(self) -> str:
        if "value" in self.attributes:
            return self.attributes["value"]
        return " ".join(self.text_content.split())

    @value.setter
    def value(self, value: Any) -> None:
        self.set_attribute("value", value)

    @property
    def selected(self) -> bool:
        if self._selected is not None:
            return self._selected
        return self.has_attribute("selected")

    @selected.setter
    def selected(self, value: Any) -> None:
        select = self.owner_select
        if value and select is not None and not select.multiple:
            for option in select.options:
                option._selected = False
            select._cleared = False
        self._selected = bool(value)

    @property
    def owner_select(self) -> Optional[SelectElement]:
        parent = self.parent
        if isinstance(parent, Element) and parent.tag == "optgroup":
            parent = parent.parent
        return parent if isinstance(parent, SelectElement) else None

    @property
    def index(self) -> int:
        select = self.owner_select
        if select is None:
            return 0
        return select.options.index(self)


class FormElement(Element):
    kind = NodeKind.FORM

    def __init__(self, tag: str = "form", attributes: Optional[dict[str, Any]] = None) -> None:
        super().__init__(tag, attributes)

    @property
    def elements(self) -> list[FormAssociated]:
        scope: Node = self.tree_scope() or self.root()
        return [
            node
            for node in scope.iter_descendants()
            if isinstance(node, FormAssociated) and node.form is self
        ]


# ============================================================================
# Tree-scopes
# ============================================================================


class TreeScope(Node):
    """Root of a tree that supports identifier lookup."""

    def get_element_by_id(self, id: str) -> Optional[Element]:
        for element in self.iter_elements():
            if element.attributes.get("id") == id:
                return element
        return None

    def iter_elements(self) -> Iterator[Element]:
        for node in self.iter_descendants():
            if isinstance(node, Element):
                yield node


class Document(TreeScope):
    kind = NodeKind.DOCUMENT

    def __init__(self) -> None:
        super().__init__()
        self.body = self.append_child(Element("body"))

    def create_element(self, tag: str, **attributes: Any) -> Element:
        return create_element(tag, **attributes)

    def create_text_node(self, data: Any = "") -> Text:
        return Text(data)

    def __repr__(self) -> str:  # pragma: no cover - trivial formatting
        return "#document"


class ShadowRoot(TreeScope):
    kind = NodeKind.SHADOW_ROOT

    def __init__(self, host: Element) -> None:
        super().__init__()
        self.host = host

    def __repr__(self) -> str:  # pragma: no cover - trivial formatting
        return f"#shadow-root({self.host!r})"


_ELEMENT_CLASSES: dict[str, Callable[..., Element]] = {
    "input": InputElement,
    "textarea": TextAreaElement,
    "select": SelectElement,
    "option": OptionElement,
    "form": FormElement,
}


def create_element(tag: str, **attributes: Any) -> Element:
    """Create the element class matching `tag`. Keyword arguments become
    attributes; a trailing underscore is dropped (`for_="x"`)."""
    attrs = {name.rstrip("_"): value for name, value in attributes.items()}
    cls = _ELEMENT_CLASSES.get(tag.lower())
    if cls is None:
        return Element(tag, attrs)
    return cls(tag, attrs)


# ----------------------------------------------------------------------------
# Formatting helpers (internal)
# ----------------------------------------------------------------------------


def _short_text(text: str, max_len: int = 24) -> str:
    return text if len(text) <= max_len else text[: max_len - 1] + "…"


def _short_attributes(attributes: dict[str, str], max_items: int = 4) -> str:
    if not attributes:
        return ""
    items: Sequence[tuple[str, str]] = list(attributes.items())
    parts = [f'{k}="{_short_text(v)}"' for k, v in items[:max_items]]
    if len(items) > max_items:
        parts.append(f"…(+{len(items) - max_items})")
    return " " + " ".join(parts)
