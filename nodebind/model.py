from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from nodebind.reactive import Signal


class ReactiveDict(dict[str, Any]):
    """A dict with per-key reactivity, used as the model behind observers.

    - Reading a key registers a dependency on that key's Signal
    - Reading a missing key returns `None` and stays reactive: a later write
      to that key notifies whoever read it
    - Writing a key updates only that key's Signal
    - Deleting a key writes `None` to its Signal (preserving subscriptions)
    - Iteration and len are NOT reactive
    """

    __slots__ = ("_signals",)

    def __init__(self, initial: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        super().__init__()
        self._signals: dict[str, Signal[Any]] = {}
        for k, v in {**(initial or {}), **kwargs}.items():
            v = wrap_collections(v)
            super().__setitem__(k, v)
            self._signals[k] = Signal(v, name=k)

    def _signal(self, key: str) -> Signal[Any]:
        sig = self._signals.get(key)
        if sig is None:
            # Lazily create missing keys so they can be observed before they exist
            sig = self._signals[key] = Signal(None, name=key)
        return sig

    def __getitem__(self, key: str) -> Any:
        return self._signal(key).read()

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        self._signal(key).write(None)
        if super().__contains__(key):
            super().__delitem__(key)

    def get(self, key: str, default: Any = None) -> Any:
        value = self[key]
        return default if value is None else value

    def __iter__(self) -> Iterator[str]:
        return super().__iter__()

    def set(self, key: str, value: Any) -> None:
        value = wrap_collections(value)
        sig = self._signals.get(key)
        if sig is None:
            self._signals[key] = Signal(value, name=key)
        else:
            sig.write(value)
        super().__setitem__(key, value)

    def update(self, values: Mapping[str, Any] = (), **kwargs: Any) -> None:  # type: ignore[override]
        for k, v in {**dict(values), **kwargs}.items():
            self.set(k, v)


def wrap_collections(value: Any) -> Any:
    if isinstance(value, ReactiveDict):
        return value
    if isinstance(value, dict):
        return ReactiveDict(value)
    return value
