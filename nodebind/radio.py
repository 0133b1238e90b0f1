"""
Radio group resolution.

A radio group is never stored: it is recomputed from the tree whenever a
radio is checked. Membership is scoped by the radio's form when it has one,
and otherwise by its tree-scope, where only form-less radios count. The two
never mix.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from nodebind.dom import InputElement, Node, NodeKind

if TYPE_CHECKING:
    from nodebind.registry import BindingRegistry


def _radios(nodes: Iterable[Node]) -> Iterator[InputElement]:
    for node in nodes:
        if isinstance(node, InputElement) and node.kind is NodeKind.RADIO:
            yield node


def associated_radios(radio: InputElement) -> list[InputElement]:
    """Other radios that are mutually exclusive with `radio`."""
    name = radio.name
    if not name:
        return []

    form = radio.form
    if form is not None:
        return [el for el in _radios(form.elements) if el is not radio and el.name == name]

    scope = radio.tree_scope()
    if scope is None:
        return []
    return [
        el
        for el in _radios(scope.iter_elements())
        if el is not radio and el.name == name and el.form is None
    ]


def uncheck_associated_bindings(radio: InputElement, registry: "BindingRegistry") -> None:
    """Push `False` through the live `checked` binding of every radio in the
    group of `radio`. Radios without one are left alone."""
    for other in associated_radios(radio):
        binding = registry.get(other, "checked")
        if binding is not None:
            # Straight to the source, bypassing the sibling's own event path
            binding.set_value(False)
