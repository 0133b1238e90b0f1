from __future__ import annotations

import logging
import traceback
from typing import Any, Literal

logger = logging.getLogger(__name__)

ErrorCode = Literal[
    "binding.unsupported",
    "binding.pull",
    "binding.push",
    "listener",
    "probe",
]


class NodeBindError(Exception):
    """Base class for errors raised by nodebind."""


class UnsupportedTargetError(NodeBindError, TypeError):
    """A bind call targets a (node kind, key) pair that no adapter handles."""

    def __init__(self, kind: Any, key: str, reason: str | None = None) -> None:
        self.kind = kind
        self.key = key
        self.reason = reason
        message = f"Cannot bind {key!r} on a {getattr(kind, 'value', kind)} node"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


def _format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def report(
    exc: BaseException,
    *,
    code: ErrorCode,
    details: dict[str, Any] | None = None,
    message: str | None = None,
) -> None:
    """Emit a diagnostic for an error that is not propagated to the caller."""
    logger.error(
        "nodebind error code=%s message=%s details=%s\n%s",
        code,
        message or str(exc),
        details or {},
        _format_stack(exc),
    )


__all__ = ["ErrorCode", "NodeBindError", "UnsupportedTargetError", "report"]
