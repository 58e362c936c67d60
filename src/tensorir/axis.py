"""Block iteration-variable (axis) declarations.

Each declaration creates one iteration variable in the innermost block and
binds it to an expression, usually a variable of an enclosing loop.

Example:
    >>> with T.grid(128, 64) as (i, k):
    ...     with T.block("sum"):
    ...         vi, vk = T.axis.remap("SR", [i, k])

"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ._builder import IRBuilder, current_builder
from ._dtype import DataType
from ._errors import ArgumentShapeError
from ._frames import BlockFrame, ForFrame
from ._ir import IterVar, IterVarKind, Range, Var, convert

_REMAP_KINDS = {
    "S": IterVarKind.SPATIAL,
    "R": IterVarKind.REDUCE,
    "C": IterVarKind.SCAN,
    "O": IterVarKind.OPAQUE,
}


def _as_range(dom: Any) -> Range:
    if isinstance(dom, Range):
        return dom
    if isinstance(dom, Sequence) and len(dom) == 2:  # noqa: PLR2004
        return Range.from_bounds(dom[0], dom[1])
    return Range.from_min_extent(0, dom)


def _declare(kind: IterVarKind, dom: Any, binding: Any, dtype: str | DataType, name: str, caller: str) -> Var:
    frame = current_builder(caller).current_frame(BlockFrame, caller)
    element_type = DataType.parse(dtype)
    var = Var(name, element_type)
    frame.iter_vars.append(IterVar(_as_range(dom), var, kind))
    frame.iter_values.append(convert(binding, element_type))
    return var


def spatial(dom: Any, binding: Any, dtype: str | DataType = "int32", *, name: str = "v") -> Var:
    """Declare a spatial axis over `dom` bound to `binding`.

    `dom` is a `Range`, a ``(start, stop)`` pair, or an extent.
    """
    return _declare(IterVarKind.SPATIAL, dom, binding, dtype, name, "T.axis.spatial")


def reduce(dom: Any, binding: Any, dtype: str | DataType = "int32", *, name: str = "v") -> Var:
    """Declare a reduction axis over `dom` bound to `binding`."""
    return _declare(IterVarKind.REDUCE, dom, binding, dtype, name, "T.axis.reduce")


def scan(dom: Any, binding: Any, dtype: str | DataType = "int32", *, name: str = "v") -> Var:
    return _declare(IterVarKind.SCAN, dom, binding, dtype, name, "T.axis.scan")


def opaque(dom: Any, binding: Any, dtype: str | DataType = "int32", *, name: str = "v") -> Var:
    return _declare(IterVarKind.OPAQUE, dom, binding, dtype, name, "T.axis.opaque")


def _loop_domain(builder: IRBuilder, binding: Any) -> Range:
    if isinstance(binding, Var):
        for frame in reversed(builder.frames):
            if not isinstance(frame, ForFrame):
                continue
            for var, dom in zip(frame.vars, frame.doms, strict=True):
                if var is binding:
                    return dom
    msg = (
        f"T.axis.remap: cannot infer the domain of {binding!r}: "
        "each binding must be the variable of an enclosing loop."
    )
    raise ArgumentShapeError(msg)


def remap(kinds: str, bindings: Sequence[Any], dtype: str | DataType = "int32") -> Var | list[Var]:
    """Declare one axis per character of `kinds`, bound to the matching binding.

    Each binding must be the variable of an enclosing loop; the axis domain is
    that loop's range. Kind characters are ``S`` (spatial), ``R`` (reduce),
    ``C`` (scan) and ``O`` (opaque). Each axis is named after its binding
    with a ``v`` prefix.

    Returns:
        The new axis variable when `kinds` has one character, otherwise the
        list of axis variables in order.

    Raises:
        ArgumentShapeError: On a length mismatch, an unknown kind character or
            a binding that is not an enclosing loop variable.

    """
    if len(kinds) != len(bindings):
        msg = f"T.axis.remap: got {len(kinds)} kinds ('{kinds}') but {len(bindings)} bindings."
        raise ArgumentShapeError(msg)
    builder = current_builder("T.axis.remap")
    builder.current_frame(BlockFrame, "T.axis.remap")

    decomposed: list[tuple[IterVarKind, Range, Any]] = []
    for char, binding in zip(kinds, bindings, strict=True):
        kind = _REMAP_KINDS.get(char)
        if kind is None:
            msg = f"T.axis.remap: unknown axis kind '{char}' in '{kinds}', expected one of {''.join(_REMAP_KINDS)}."
            raise ArgumentShapeError(msg)
        decomposed.append((kind, _loop_domain(builder, binding), binding))

    iter_vars = [
        _declare(kind, dom, binding, dtype, f"v{binding.name}", "T.axis.remap") for kind, dom, binding in decomposed
    ]
    if len(iter_vars) == 1:
        return iter_vars[0]
    return iter_vars
