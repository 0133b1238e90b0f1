"""
Binding handles.

A Binding links one (node, key) slot to one observable. It goes through
NEW -> OPEN -> CLOSED exactly once. Everything it sets up (the subscription,
event listeners, slot bookkeeping) is recorded as a cleanup action, and the
first `close()` runs them all, last registered first. Later calls, including
re-entrant ones from inside a cleanup, do nothing.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from nodebind.observe import Observable

if TYPE_CHECKING:
    from nodebind.dom import Listener, Node
    from nodebind.helpers import Cleanup

logger = logging.getLogger(__name__)


class BindingState(str, Enum):
    NEW = "new"
    OPEN = "open"
    CLOSED = "closed"


class Binding:
    def __init__(self, node: "Node", key: str, observable: Observable) -> None:
        self.node = node
        self.key = key
        self.observable = observable
        self.state = BindingState.NEW
        self._cleanups = ExitStack()

    def __repr__(self) -> str:  # pragma: no cover - trivial formatting
        return f"Binding(key={self.key!r}, state={self.state.value}, node={self.node!r})"

    @property
    def is_open(self) -> bool:
        return self.state is BindingState.OPEN

    def open(self, push: Callable[[Any], Any]) -> Any:
        """Subscribe to the observable and return its current value. `push`
        receives later values for as long as the binding stays open."""
        if self.state is not BindingState.NEW:
            raise RuntimeError(f"Cannot open a binding in state {self.state.value!r}")

        def deliver(value: Any) -> None:
            if self.state is BindingState.OPEN:
                push(value)

        self.state = BindingState.OPEN
        self._cleanups.callback(self.observable.close)
        return self.observable.open(deliver)

    def add_cleanup(self, cleanup: "Cleanup") -> None:
        if self.state is BindingState.CLOSED:
            cleanup()
            return
        self._cleanups.callback(cleanup)

    def listen(self, target: "Node", event_type: str, handler: "Listener") -> None:
        """Attach `handler` to `target` until the binding closes."""
        target.add_event_listener(event_type, handler)
        self.add_cleanup(lambda: target.remove_event_listener(event_type, handler))

    def set_value(self, value: Any) -> None:
        if self.state is BindingState.OPEN:
            self.observable.set_value(value)

    def discard_changes(self) -> Optional[Any]:
        if self.state is BindingState.OPEN:
            return self.observable.discard_changes()
        return None

    def close(self) -> None:
        if self.state is BindingState.CLOSED:
            return
        self.state = BindingState.CLOSED
        logger.debug("Closing binding %r on %r", self.key, self.node)
        self._cleanups.close()
