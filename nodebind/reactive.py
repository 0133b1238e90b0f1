"""
Reference change-detection subsystem.

Signals hold values, effects re-run when a signal they read changes. Re-runs
are never immediate: a write queues the dependent effects on the current
batch and they only run when the batch is flushed. A flush is the "checkpoint"
at which pending notifications are delivered, synchronously and in order.
"""

import logging
from contextvars import ContextVar
from typing import Callable, Generic, Optional, TypeVar

from nodebind.scheduling import schedule_on_loop

T = TypeVar("T")

logger = logging.getLogger(__name__)

# NOTE: globals at the bottom of the file


# Collects the signals read while an effect runs.
class Scope:
    def __init__(self):
        # Lists keep insertion order
        self.deps: list[Signal] = []

    def register_dep(self, value: "Signal"):
        if value not in self.deps:
            self.deps.append(value)

    def __enter__(self):
        self._prev = SCOPE.get()
        SCOPE.set(self)
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        SCOPE.set(self._prev)
        self._prev = None


class EmptyScope(Scope):
    def register_dep(self, value: "Signal"):
        pass


class Signal(Generic[T]):
    def __init__(self, value: T, name: Optional[str] = None):
        self.value = value
        self.name = name
        self.obs: list[Effect] = []
        self.last_change = -1

    def read(self) -> T:
        if scope := SCOPE.get():
            scope.register_dep(self)
        return self.value

    def __call__(self) -> T:
        return self.read()

    def write(self, value: T):
        # Equal values of different types (1 and True) still count as a change
        if type(value) is type(self.value) and value == self.value:
            return
        increment_epoch()
        self.value = value
        self.last_change = epoch()
        # Observers may dispose themselves while being notified
        for obs in self.obs.copy():
            obs.schedule()

    def __repr__(self) -> str:  # pragma: no cover - trivial formatting
        return f"Signal(name={self.name!r}, value={self.value!r})"


EffectFn = Callable[[], None]


class Effect:
    def __init__(
        self,
        fn: EffectFn,
        name: Optional[str] = None,
        immediate: bool = False,
        lazy: bool = False,
    ):
        self.fn: EffectFn = fn
        self.name: Optional[str] = name
        self.deps: list[Signal] = []
        self.runs: int = 0
        self.last_run: int = -1
        self.batch: Optional[Batch] = None
        self.disposed = False

        if immediate and lazy:
            raise ValueError("An effect cannot be both immediate and lazy")

        # Will either run the effect now or add it to the current batch
        if immediate:
            self.run()
        elif not lazy:
            self.schedule()

    def dispose(self):
        if self.disposed:
            return
        self.disposed = True
        for dep in self.deps:
            if self in dep.obs:
                dep.obs.remove(self)
        self.deps = []
        # The batch may be mid-flush and already have swapped its queue out
        if self.batch and self in self.batch.effects:
            self.batch.effects.remove(self)
        self.batch = None

    def schedule(self):
        if self.disposed:
            return
        batch = BATCH.get()
        batch.register_effect(self)
        self.batch = batch

    def _should_run(self):
        if self.disposed:
            return False
        return self.runs == 0 or self._deps_changed_since_last_run()

    def _deps_changed_since_last_run(self):
        for dep in self.deps:
            if dep.last_change > self.last_run:
                return True
        return False

    def __call__(self):
        self.run()

    def run(self):
        if self.disposed:
            return
        prev_deps = set(self.deps)
        execution_epoch = epoch()
        with Scope() as scope:
            # Clear batch *before* running as we may update a signal that causes
            # this effect to be rescheduled.
            self.batch = None
            self.fn()
            self.runs += 1
            self.last_run = execution_epoch

        # The effect function may have disposed of its own effect
        if self.disposed:
            return

        self.deps = scope.deps
        new_deps = set(self.deps)
        for dep in new_deps - prev_deps:
            dep.obs.append(self)
        for dep in prev_deps - new_deps:
            dep.obs.remove(self)

        if self._deps_changed_since_last_run():
            self.schedule()


class Batch:
    MAX_ITERS = 10000

    def __init__(self) -> None:
        self.effects: list[Effect] = []

    def register_effect(self, effect: Effect):
        if effect not in self.effects:
            self.effects.append(effect)

    @property
    def pending(self) -> int:
        return len(self.effects)

    def flush(self):
        global_batch = BATCH.get()
        token = None
        if global_batch is not self:
            token = BATCH.set(self)

        iters = 0
        try:
            while len(self.effects) > 0:
                if iters > self.MAX_ITERS:
                    raise RuntimeError(
                        f"More than {self.MAX_ITERS} flush iterations. There is likely an update cycle between observers.\n"
                        "This is most often caused by an observer callback writing a value that re-triggers itself."
                    )

                current_effects = self.effects
                self.effects = []

                for effect in current_effects:
                    if effect._should_run():
                        effect.run()

                iters += 1
        finally:
            if token:
                BATCH.reset(token)

    def __enter__(self):
        self._token = BATCH.set(self)
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        self.flush()
        # Reset AFTER flushing, as the batch needs to capture any effects
        # triggered while flushing.
        BATCH.reset(self._token)


class GlobalBatch(Batch):
    """Process-wide batch. When a host event loop is reachable, a flush is
    scheduled on it as soon as the first effect is queued. Without a loop,
    notifications wait for an explicit `flush_effects()`."""

    def __init__(self) -> None:
        self.is_scheduled = False
        super().__init__()

    def register_effect(self, effect: Effect):
        if not self.is_scheduled:
            self.is_scheduled = schedule_on_loop(self.flush)
            if self.is_scheduled:
                logger.debug("Scheduled flush of the global batch on the host loop")
        return super().register_effect(effect)

    def flush(self):
        try:
            super().flush()
        finally:
            self.is_scheduled = False


def flush_effects():
    """Flush checkpoint: deliver every pending notification now."""
    BATCH.get().flush()


def batch():
    return Batch()


def untrack():
    return EmptyScope()


# --- Globals ---
class Epoch:
    current: int = 0


EPOCH = ContextVar("nodebind_epoch", default=Epoch())
SCOPE: ContextVar[Optional[Scope]] = ContextVar("nodebind_scope", default=None)
BATCH: ContextVar[Batch] = ContextVar("nodebind_batch", default=GlobalBatch())


def epoch():
    return EPOCH.get().current


def increment_epoch():
    EPOCH.get().current += 1
