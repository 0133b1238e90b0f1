"""
Observable contract consumed by the binding engine, and a path-based
reference implementation on top of the reactive core.

The engine only relies on the four methods of `Observable`. Values are pushed
to the `open` callback at flush checkpoints, never synchronously on write.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from nodebind.helpers import UNSET
from nodebind.model import ReactiveDict
from nodebind.reactive import Effect, untrack

logger = logging.getLogger(__name__)


@runtime_checkable
class Observable(Protocol):
    def open(self, callback: Callable[[Any], Any]) -> Any:
        """Subscribe `callback` to future values and return the current one."""
        ...

    def close(self) -> None: ...

    def set_value(self, value: Any) -> None: ...

    def discard_changes(self) -> Any:
        """Forget pending changes so they are not reported, and return the
        current value."""
        ...


PathLike = str | Sequence[str]

_open_observers = 0


def observer_count() -> int:
    """Number of observers currently open in this process."""
    return _open_observers


def parse_path(path: PathLike | None) -> tuple[str, ...]:
    if path is None:
        return ()
    if isinstance(path, str):
        path = path.strip()
        return tuple(path.split(".")) if path else ()
    return tuple(str(segment) for segment in path)


def _get_segment(obj: Any, segment: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        # ReactiveDict registers a dependency even for missing keys
        return obj[segment] if isinstance(obj, ReactiveDict) else obj.get(segment)
    if isinstance(obj, Sequence) and not isinstance(obj, str):
        try:
            return obj[int(segment)]
        except (ValueError, IndexError):
            return None
    return getattr(obj, segment, None)


class PathObserver:
    """Observes the value at `path` inside `model`.

    An empty path observes the model itself. A path that cannot be followed
    to the end yields `None`.
    """

    def __init__(self, model: Any, path: PathLike | None = None, name: Optional[str] = None):
        self.model = model
        self.path = parse_path(path)
        self.name = name or ".".join(self.path) or "<model>"
        self._callback: Optional[Callable[[Any], Any]] = None
        self._effect: Optional[Effect] = None
        self._last_value: Any = UNSET
        self.closed = False

    def __repr__(self) -> str:  # pragma: no cover - trivial formatting
        state = "closed" if self.closed else "open" if self._effect else "new"
        return f"PathObserver(path={self.name!r}, {state})"

    def _read(self) -> Any:
        value = self.model
        for segment in self.path:
            value = _get_segment(value, segment)
        return value

    def _check(self):
        value = self._read()
        if self._last_value is UNSET:
            self._last_value = value
            return
        last = self._last_value
        if value is last or (type(value) is type(last) and value == last):
            return
        self._last_value = value
        if self._callback is not None:
            # Callbacks must not subscribe this observer to what they read
            with untrack():
                self._callback(value)

    def open(self, callback: Callable[[Any], Any]) -> Any:
        global _open_observers
        if self.closed:
            raise RuntimeError(f"Observer {self.name!r} has been closed")
        if self._effect is not None:
            raise RuntimeError(f"Observer {self.name!r} is already open")
        self._callback = callback
        self._effect = Effect(self._check, name=f"observe:{self.name}", immediate=True)
        _open_observers += 1
        return self._last_value

    @property
    def value(self) -> Any:
        with untrack():
            return self._read()

    def set_value(self, value: Any) -> None:
        if not self.path:
            return
        with untrack():
            parent = self.model
            for segment in self.path[:-1]:
                parent = _get_segment(parent, segment)
        if parent is None:
            logger.debug("Dropped write to unreachable path %s", self.name)
            return
        last = self.path[-1]
        if isinstance(parent, MutableMapping):
            parent[last] = value
        elif isinstance(parent, list):
            try:
                parent[int(last)] = value
            except (ValueError, IndexError):
                logger.debug("Dropped write to unreachable path %s", self.name)
        else:
            setattr(parent, last, value)

    def discard_changes(self) -> Any:
        value = self.value
        if self._effect is not None:
            self._last_value = value
        return value

    def close(self) -> None:
        global _open_observers
        if self.closed:
            return
        self.closed = True
        self._callback = None
        if self._effect is not None:
            self._effect.dispose()
            self._effect = None
            _open_observers -= 1
