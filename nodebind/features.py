"""
Host capability detection.

Hosts differ in which of `click` and `change` a checkbox fires first, and
some fire only one of them. The probe runs once per process, the first time a
live checkbox binding needs it, and the result is cached here until
`reset_capabilities()` is called.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from nodebind.dom import Element, Event, InputElement
from nodebind.errors import report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostCapabilities:
    # First event a checkbox fires on user activation
    checkbox_event: str


def detect_capabilities() -> HostCapabilities:
    container = Element("div")
    checkbox = container.append_child(InputElement(attributes={"type": "checkbox"}))
    seen: list[str] = []
    checkbox.add_event_listener("click", lambda _: seen.append("click"))
    checkbox.add_event_listener("change", lambda _: seen.append("change"))
    checkbox.dispatch_event(Event("click", bubbles=True, cancelable=True))

    # A host that only fires one event is assumed to fire `change`
    checkbox_event = "change" if len(seen) == 1 else (seen[0] if seen else "change")
    return HostCapabilities(checkbox_event=checkbox_event)


_capabilities: Optional[HostCapabilities] = None


def get_capabilities() -> HostCapabilities:
    global _capabilities
    if _capabilities is None:
        try:
            _capabilities = detect_capabilities()
        except Exception as exc:
            report(exc, code="probe", message="Host capability probe failed")
            _capabilities = HostCapabilities(checkbox_event="change")
        logger.debug("Detected host capabilities: %s", _capabilities)
    return _capabilities


def reset_capabilities() -> None:
    global _capabilities
    _capabilities = None
