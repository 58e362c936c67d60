"""Structural equality and hashing up to variable renaming.

Variables are numbered in the order they are first reached by a depth-first
walk over the node's fields. Definitions come before uses in that walk
(function parameters before the body, loop variables before the loop body,
block iteration variables before the block body), so two nodes are
structurally equal when they only differ in the identity or the name of the
variables they define. Free variables are numbered the same way.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any

from ._expr import Var


def _canonical(node: Any, numbering: dict[Var, int]) -> Any:
    match node:
        case Var():
            index = numbering.setdefault(node, len(numbering))
            return (Var, index, node.dtype, _canonical(node.type_annotation, numbering))
        case tuple() | list():
            return tuple(_canonical(item, numbering) for item in node)
        case frozenset():
            return frozenset(_canonical(item, numbering) for item in node)
        case _ if is_dataclass(node) and not isinstance(node, type):
            return (type(node), *(_canonical(getattr(node, f.name), numbering) for f in fields(node)))
        case _:
            return (type(node), node)


def structural_key(node: Any) -> Any:
    """Return a hashable value that is equal for structurally equal nodes."""
    return _canonical(node, {})


def structural_equal(lhs: Any, rhs: Any) -> bool:
    """Compare two IR nodes up to a consistent renaming of their variables.

    Example:
        >>> i, j = Var("i"), Var("j")
        >>> structural_equal(i + 1, j + 1)
        True
        >>> structural_equal(i + j, j + j)
        False

    """
    return structural_key(lhs) == structural_key(rhs)


def structural_hash(node: Any) -> int:
    return hash(structural_key(node))
