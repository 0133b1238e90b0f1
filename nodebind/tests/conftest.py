from typing import Any, Callable, Optional

import pytest
from nodebind import reactive
from nodebind.context import BindContext
from nodebind.features import reset_capabilities
from nodebind.reactive import GlobalBatch


class FakeObservable:
    """Observable whose notifications are delivered by hand."""

    def __init__(self, value: Any = None) -> None:
        self.value = value
        self.callback: Optional[Callable[[Any], Any]] = None
        self.opens = 0
        self.closes = 0
        self.writes: list[Any] = []
        self.discards = 0

    def open(self, callback):
        self.opens += 1
        self.callback = callback
        return self.value

    def close(self):
        self.closes += 1

    def set_value(self, value):
        self.writes.append(value)
        self.value = value

    def discard_changes(self):
        self.discards += 1
        return self.value

    def notify(self, value):
        self.value = value
        assert self.callback is not None
        self.callback(value)


@pytest.fixture(autouse=True)
def _nodebind_context():
    token = reactive.BATCH.set(GlobalBatch())
    reset_capabilities()
    with BindContext() as ctx:
        yield ctx
    reset_capabilities()
    reactive.BATCH.reset(token)


@pytest.fixture
def ctx(_nodebind_context):
    return _nodebind_context
