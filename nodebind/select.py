"""
Keeps a select's bound value in step with edits to its options' values.

An option does not hold on to its select or to the select's binding. Both are
looked up when the option's value changes: the select through the tree, its
`value` binding through the registry.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from nodebind.adapters import sanitize_value

if TYPE_CHECKING:
    from nodebind.context import BindContext
    from nodebind.dom import OptionElement

logger = logging.getLogger(__name__)


def update_option(option: "OptionElement", value: Any, ctx: "BindContext") -> None:
    select = option.owner_select
    select_binding = ctx.registry.get(select, "value") if select is not None else None

    if select is None or select_binding is None:
        option.value = sanitize_value(value)
        return

    old_value = select.value
    option.value = sanitize_value(value)
    new_value = select.value
    if new_value != old_value:
        logger.debug("Option edit moved bound select value %r -> %r", old_value, new_value)
        select_binding.set_value(new_value)
        select_binding.discard_changes()
        ctx.flush()
