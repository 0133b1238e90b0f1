from __future__ import annotations

import logging
import os
from contextvars import ContextVar, Token
from types import TracebackType
from typing import TYPE_CHECKING, Callable, Literal, Optional, TypedDict, Unpack

from nodebind.reactive import flush_effects

if TYPE_CHECKING:
    from nodebind.registry import BindingRegistry

logger = logging.getLogger(__name__)

CheckboxEvent = Literal["click", "change"]


class BindConfig(TypedDict, total=False):
    # Raise UnsupportedTargetError after reporting it (otherwise bind returns None)
    strict: bool
    # Event that pulls a checkbox's state; None runs the host probe
    checkbox_event: Optional[CheckboxEvent]
    # Flush checkpoint forced at the end of every pull
    flush: Callable[[], None]


def _env_config() -> BindConfig:
    config: BindConfig = {}
    strict = os.environ.get("NODEBIND_STRICT")
    if strict is not None:
        config["strict"] = strict.strip().lower() not in ("0", "false", "no", "off")
    checkbox_event = os.environ.get("NODEBIND_CHECKBOX_EVENT")
    if checkbox_event in ("click", "change"):
        config["checkbox_event"] = checkbox_event  # type: ignore[typeddict-item]
    elif checkbox_event:
        logger.warning(
            "Ignoring NODEBIND_CHECKBOX_EVENT=%r, expected 'click' or 'change'",
            checkbox_event,
        )
    return config


class BindContext:
    """The registry and configuration that module-level `bind` calls use.

    A default context exists for the whole process. Entering another one
    scopes a separate registry and/or configuration:

        with BindContext(strict=False):
            bind(node, "value", observer)
    """

    def __init__(
        self,
        registry: "Optional[BindingRegistry]" = None,
        **config: Unpack[BindConfig],
    ) -> None:
        from nodebind.registry import BindingRegistry

        self.registry = registry if registry is not None else BindingRegistry()
        self.config: BindConfig = {**_env_config(), **config}
        self._token: "Optional[Token[Optional[BindContext]]]" = None

    @property
    def strict(self) -> bool:
        return self.config.get("strict", True)

    @property
    def checkbox_event(self) -> Optional[CheckboxEvent]:
        return self.config.get("checkbox_event")

    def flush(self) -> None:
        self.config.get("flush", flush_effects)()

    @classmethod
    def get(cls) -> "BindContext":
        ctx = BIND_CONTEXT.get()
        if ctx is None:
            ctx = _default_context()
        return ctx

    def __enter__(self) -> "BindContext":
        self._token = BIND_CONTEXT.set(self)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_val: BaseException | None = None,
        exc_tb: TracebackType | None = None,
    ) -> Literal[False]:
        if self._token is not None:
            BIND_CONTEXT.reset(self._token)
            self._token = None
        return False


_DEFAULT_CONTEXT: Optional[BindContext] = None


def _default_context() -> BindContext:
    global _DEFAULT_CONTEXT
    if _DEFAULT_CONTEXT is None:
        _DEFAULT_CONTEXT = BindContext()
    return _DEFAULT_CONTEXT


BIND_CONTEXT: ContextVar[Optional[BindContext]] = ContextVar(
    "nodebind_context", default=None
)
