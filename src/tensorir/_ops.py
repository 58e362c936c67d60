"""Stateless leaf constructors: buffers, pointers and dtype helpers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ._builder import active_builder
from ._dtype import HANDLE, INT32, DataType
from ._errors import ArgumentShapeError
from ._ir import (
    Buffer,
    BufferType,
    IntImm,
    PointerType,
    PrimExpr,
    PrimType,
    Var,
    cast,
    const_int,
    convert,
    freeze_annotations,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

DEFAULT_ALIGNMENT = 64


def as_shape(shape: Any) -> tuple[PrimExpr, ...]:
    """Normalize a shape given as one extent or a sequence of extents."""
    if isinstance(shape, Sequence) and not isinstance(shape, str):
        return tuple(convert(extent) for extent in shape)
    return (convert(shape),)


def as_annotations(caller: str, mapping: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Copy an annotation mapping, rejecting values that cannot be frozen into the IR."""
    if mapping is None:
        return None
    try:
        freeze_annotations(mapping)
    except ArgumentShapeError as e:
        msg = f"{caller}: {e}"
        raise ArgumentShapeError(msg) from e
    return dict(mapping)


def buffer_decl(  # noqa: PLR0913
    shape: Any,
    dtype: str | DataType = "float32",
    name: str = "buffer",
    data: Var | None = None,
    strides: Sequence[Any] | None = None,
    elem_offset: Any = None,
    scope: str = "global",
    align: int = -1,
    offset_factor: int = 0,
    buffer_type: str = "default",
    axis_separators: Sequence[int] | None = None,
) -> Buffer:
    """Declare a buffer.

    Args:
        shape: The shape before flattening, one extent or a sequence of extents.
        dtype: The element data type.
        name: The buffer name.
        data: The data pointer. A fresh handle variable in `scope` by default.
        strides: The stride of each dimension, empty for compact buffers.
        elem_offset: Offset of the first element. A fresh variable when
            `offset_factor` is non-zero, 0 otherwise.
        scope: The storage scope of the data pointer.
        align: Alignment in bytes; non-positive values select the default (64).
        offset_factor: The factor `elem_offset` must be a multiple of.
        buffer_type: ``"default"`` or ``"auto_broadcast"``.
        axis_separators: Strictly increasing positions in ``[0, ndim]``.

    Returns:
        The declared buffer. When an IRBuilder is active the buffer is
        registered with it, so later scopes may realize it.

    Raises:
        ArgumentShapeError: If `buffer_type` or `axis_separators` is invalid.

    """
    element_type = DataType.parse(dtype)
    dims = as_shape(shape)
    try:
        kind = BufferType(buffer_type)
    except ValueError as e:
        msg = f"Invalid buffer type '{buffer_type}' for buffer '{name}': expected 'default' or 'auto_broadcast'."
        raise ArgumentShapeError(msg) from e

    separators = tuple(axis_separators or ())
    if any(not 0 <= sep <= len(dims) for sep in separators) or list(separators) != sorted(set(separators)):
        msg = (
            f"Invalid axis separators {list(separators)} for buffer '{name}' with {len(dims)} dimensions:"
            " expected strictly increasing positions within [0, ndim]."
        )
        raise ArgumentShapeError(msg)

    if data is None:
        data = Var(name, HANDLE, PointerType(PrimType(element_type), scope))
    if elem_offset is None:
        elem_offset = Var(f"{name}_elem_offset", INT32) if offset_factor != 0 else IntImm(0)

    buffer = Buffer(
        data=data,
        dtype=element_type,
        shape=dims,
        strides=tuple(convert(stride) for stride in strides or ()),
        elem_offset=convert(elem_offset),
        name=name,
        data_alignment=align if align > 0 else DEFAULT_ALIGNMENT,
        offset_factor=offset_factor,
        buffer_type=kind,
        axis_separators=tuple(IntImm(sep) for sep in separators),
    )
    builder = active_builder()
    if builder is not None:
        builder.register_buffer(buffer)
    return buffer


def ptr(dtype: str | DataType, storage_scope: str = "global") -> Var:
    """Create a handle variable pointing at elements of `dtype`."""
    return Var("ptr", HANDLE, PointerType(PrimType(DataType.parse(dtype)), storage_scope))


def shape_size(shape: Sequence[PrimExpr]) -> int | None:
    """Product of a constant shape, None if any extent is symbolic."""
    size = 1
    for extent in shape:
        value = const_int(extent)
        if value is None:
            return None
        size *= value
    return size


def _dtype_func(dtype: str) -> Callable[[Any], PrimExpr]:
    target = DataType.parse(dtype)

    def func(expr: Any = None) -> PrimExpr:
        if expr is None:
            return Var("", target)
        return cast(target, expr)

    func.__name__ = dtype
    func.__doc__ = f"Cast `expr` to {target}, or create a fresh {target} variable when `expr` is omitted."
    return func


int8 = _dtype_func("int8")
int16 = _dtype_func("int16")
int32 = _dtype_func("int32")
int64 = _dtype_func("int64")
uint8 = _dtype_func("uint8")
uint16 = _dtype_func("uint16")
uint32 = _dtype_func("uint32")
uint64 = _dtype_func("uint64")
float8 = _dtype_func("float8")
float16 = _dtype_func("float16")
float32 = _dtype_func("float32")
float64 = _dtype_func("float64")
int32x4 = _dtype_func("int32x4")
int32x8 = _dtype_func("int32x8")
int32x16 = _dtype_func("int32x16")
boolean = _dtype_func("bool")
handle = _dtype_func("handle")
void = _dtype_func("void")
