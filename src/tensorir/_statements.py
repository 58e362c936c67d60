"""Statements that write into the innermost open frame without opening a new one."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from ._builder import current_builder
from ._dtype import HANDLE, DataType
from ._errors import ArgumentShapeError, DuplicateSettingError, ScopeMismatchError
from ._frames import BlockFrame, PrimFuncFrame
from ._ir import (
    Buffer,
    BufferLoad,
    BufferRegion,
    BufferStore,
    Evaluate,
    MatchBufferRegion,
    PointerType,
    Prefetch,
    PrimType,
    TupleType,
    Var,
    convert,
)
from ._ops import as_annotations, buffer_decl

if TYPE_CHECKING:
    from ._ir import PrimExpr, Range, Stmt
    from ._ir._type import Type

# =============================================================================
# Function frame
# =============================================================================


def arg(name: str, obj: Var | Buffer) -> Var | Buffer:
    """Append a parameter to the innermost function.

    A `Var` is added as is. A `Buffer` adds a fresh handle parameter named
    `name` and binds the buffer to it.
    """
    builder = current_builder("T.arg")
    frame = builder.current_frame(PrimFuncFrame, "T.arg")
    if isinstance(obj, Var):
        if frame.has_param(obj):
            msg = f"T.arg: variable '{obj.name}' is already a parameter of the prim_func frame."
            raise ArgumentShapeError(msg)
        frame.params.append(obj)
        return obj
    if isinstance(obj, Buffer):
        if any(buffer is obj for _, buffer in frame.buffer_map):
            msg = f"T.arg: buffer '{obj.name}' is already bound to a parameter of the prim_func frame."
            raise ArgumentShapeError(msg)
        param = Var(name, HANDLE)
        frame.params.append(param)
        frame.buffer_map.append((param, obj))
        builder.register_buffer(obj)
        return obj
    msg = f"T.arg: expected a Var or a Buffer for '{name}', got {type(obj).__name__}."
    raise ArgumentShapeError(msg)


def func_name(name: str) -> None:
    frame = current_builder("T.func_name").current_frame(PrimFuncFrame, "T.func_name")
    if frame.name is not None:
        msg = f"T.func_name: duplicate setting of 'name' on prim_func frame (already '{frame.name}')."
        raise DuplicateSettingError(msg)
    frame.name = name


def func_attr(attrs: Mapping[str, Any]) -> None:
    frame = current_builder("T.func_attr").current_frame(PrimFuncFrame, "T.func_attr")
    if frame.attrs is not None:
        msg = "T.func_attr: duplicate setting of 'attrs' on prim_func frame."
        raise DuplicateSettingError(msg)
    frame.attrs = as_annotations("T.func_attr", attrs)


def func_ret(ret_type: Type | str | DataType) -> Type:
    """Declare the return type of the innermost function. A dtype means a primitive type."""
    frame = current_builder("T.func_ret").current_frame(PrimFuncFrame, "T.func_ret")
    if frame.ret_type is not None:
        msg = "T.func_ret: duplicate setting of 'ret_type' on prim_func frame."
        raise DuplicateSettingError(msg)
    if isinstance(ret_type, str | DataType):
        ret_type = PrimType(DataType.parse(ret_type))
    if not isinstance(ret_type, PrimType | PointerType | TupleType):
        msg = f"T.func_ret: expected a type, got {type(ret_type).__name__}."
        raise ArgumentShapeError(msg)
    frame.ret_type = ret_type
    return ret_type


def match_buffer(  # noqa: PLR0913
    param: Var | BufferRegion,
    shape: Any,
    dtype: str | DataType = "float32",
    data: Var | None = None,
    strides: Sequence[Any] | None = None,
    elem_offset: Any = None,
    scope: str = "global",
    align: int = -1,
    offset_factor: int = 0,
    buffer_type: str = "default",
    axis_separators: Sequence[int] | None = None,
    *,
    name: str | None = None,
) -> Buffer:
    """Match a buffer against a function parameter or a region.

    Directly inside a function, `param` must be one of its parameters. Directly
    inside a block, `param` is a `BufferRegion` and the match is recorded in
    the block's match buffers.
    """
    builder = current_builder("T.match_buffer")
    frame = builder.last_frame()
    if isinstance(frame, PrimFuncFrame):
        if not isinstance(param, Var) or not frame.has_param(param):
            msg = f"T.match_buffer: {param!r} is not a parameter of the prim_func frame."
            raise ArgumentShapeError(msg)
        if any(var is param for var, _ in frame.buffer_map):
            msg = f"T.match_buffer: duplicate setting of a buffer for parameter '{param.name}'."
            raise DuplicateSettingError(msg)
        buffer = buffer_decl(
            shape, dtype, name or param.name, data, strides, elem_offset, scope, align, offset_factor,
            buffer_type, axis_separators,
        )
        frame.buffer_map.append((param, buffer))
        return buffer
    if isinstance(frame, BlockFrame):
        if not isinstance(param, BufferRegion):
            msg = f"T.match_buffer inside block '{frame.name}' expects a BufferRegion, got {type(param).__name__}."
            raise ArgumentShapeError(msg)
        buffer = buffer_decl(
            shape, dtype, name or f"{param.buffer.name}_match", data, strides, elem_offset, scope, align,
            offset_factor, buffer_type, axis_separators,
        )
        frame.match_buffers.append(MatchBufferRegion(buffer, param))
        return buffer
    innermost = frame.kind if frame is not None else "none"
    msg = f"T.match_buffer must be called directly inside a prim_func or block frame (innermost is {innermost})."
    raise ScopeMismatchError(msg)


def preflattened_buffer(  # noqa: PLR0913
    postflattened_buffer: Buffer,
    shape: Any,
    dtype: str | DataType = "float32",
    data: Var | None = None,
    strides: Sequence[Any] | None = None,
    elem_offset: Any = None,
    scope: str = "global",
    align: int = -1,
    offset_factor: int = 0,
    buffer_type: str = "default",
    axis_separators: Sequence[int] | None = None,
) -> Buffer:
    """Record the pre-flattening view of a buffer parameter."""
    frame = current_builder("T.preflattened_buffer").current_frame(PrimFuncFrame, "T.preflattened_buffer")
    param = next((var for var, buffer in frame.buffer_map if buffer is postflattened_buffer), None)
    if param is None:
        msg = f"T.preflattened_buffer: buffer '{postflattened_buffer.name}' is not bound to a function parameter."
        raise ArgumentShapeError(msg)
    if any(var is param for var, _ in frame.preflattened_buffer_map):
        msg = f"T.preflattened_buffer: duplicate setting for parameter '{param.name}'."
        raise DuplicateSettingError(msg)
    if data is None:
        data = postflattened_buffer.data
    buffer = buffer_decl(
        shape, dtype, f"{postflattened_buffer.name}_preflatten", data, strides, elem_offset, scope, align,
        offset_factor, buffer_type, axis_separators,
    )
    frame.preflattened_buffer_map.append((param, buffer))
    return buffer


def alloc_buffer(  # noqa: PLR0913
    shape: Any,
    dtype: str | DataType = "float32",
    data: Var | None = None,
    strides: Sequence[Any] | None = None,
    elem_offset: Any = None,
    scope: str = "global",
    align: int = -1,
    offset_factor: int = 0,
    buffer_type: str = "default",
    axis_separators: Sequence[int] | None = None,
    *,
    name: str = "buffer",
) -> Buffer:
    """Allocate a buffer in the innermost block, or in the function's root block."""
    builder = current_builder("T.alloc_buffer")
    frame = builder.last_frame()
    if not isinstance(frame, BlockFrame | PrimFuncFrame):
        innermost = frame.kind if frame is not None else "none"
        msg = f"T.alloc_buffer must be called directly inside a block or prim_func frame (innermost is {innermost})."
        raise ScopeMismatchError(msg)
    buffer = buffer_decl(
        shape, dtype, name, data, strides, elem_offset, scope, align, offset_factor, buffer_type, axis_separators,
    )
    if isinstance(frame, BlockFrame):
        frame.alloc_buffers.append(buffer)
    else:
        frame.root_alloc_buffers.append(buffer)
    return buffer


# =============================================================================
# Block frame
# =============================================================================


def _to_regions(caller: str, buffer_slices: tuple[Any, ...]) -> tuple[BufferRegion, ...]:
    if len(buffer_slices) == 1 and isinstance(buffer_slices[0], list | tuple):
        buffer_slices = tuple(buffer_slices[0])
    regions: list[BufferRegion] = []
    for item in buffer_slices:
        match item:
            case BufferRegion():
                regions.append(item)
            case Buffer():
                regions.append(BufferRegion.full(item))
            case BufferLoad():
                regions.append(BufferRegion.from_point(item))
            case _:
                msg = f"{caller}: expected a BufferRegion, Buffer or BufferLoad, got {type(item).__name__}."
                raise ArgumentShapeError(msg)
    return tuple(regions)


def where(predicate: Any) -> None:
    """Set the predicate of the innermost block."""
    frame = current_builder("T.where").current_frame(BlockFrame, "T.where")
    if frame.predicate is not None:
        msg = f"T.where: duplicate setting of 'predicate' on block frame '{frame.name}'."
        raise DuplicateSettingError(msg)
    frame.predicate = convert(predicate)


def reads(*buffer_slices: Any) -> None:
    """Declare the regions read by the innermost block."""
    frame = current_builder("T.reads").current_frame(BlockFrame, "T.reads")
    if frame.reads is not None:
        msg = f"T.reads: duplicate setting of 'reads' on block frame '{frame.name}'."
        raise DuplicateSettingError(msg)
    frame.reads = _to_regions("T.reads", buffer_slices)


def writes(*buffer_slices: Any) -> None:
    """Declare the regions written by the innermost block."""
    frame = current_builder("T.writes").current_frame(BlockFrame, "T.writes")
    if frame.writes is not None:
        msg = f"T.writes: duplicate setting of 'writes' on block frame '{frame.name}'."
        raise DuplicateSettingError(msg)
    frame.writes = _to_regions("T.writes", buffer_slices)


def block_attr(attrs: Mapping[str, Any]) -> None:
    """Set the annotations of the innermost block."""
    frame = current_builder("T.block_attr").current_frame(BlockFrame, "T.block_attr")
    if frame.annotations is not None:
        msg = f"T.block_attr: duplicate setting of 'annotations' on block frame '{frame.name}'."
        raise DuplicateSettingError(msg)
    frame.annotations = as_annotations("T.block_attr", attrs)


# =============================================================================
# Body statements
# =============================================================================


def _append(caller: str, stmt: Stmt) -> None:
    frame = current_builder(caller).last_frame()
    if frame is None:
        msg = f"{caller} requires an open frame to add the statement to."
        raise ScopeMismatchError(msg)
    frame.stmts.append(stmt)


def buffer_store(buffer: Buffer, value: Any, indices: Sequence[Any]) -> None:
    """Append ``buffer[indices] = value`` to the innermost frame."""
    if len(indices) != buffer.ndim:
        msg = f"T.buffer_store: buffer '{buffer.name}' has {buffer.ndim} dimensions, got {len(indices)} indices."
        raise ArgumentShapeError(msg)
    stored: PrimExpr = convert(value, buffer.dtype)
    _append("T.buffer_store", BufferStore(buffer, stored, tuple(convert(index) for index in indices)))


def prefetch(buffer: Buffer, bounds: Sequence[Range]) -> None:
    """Append a prefetch hint for `bounds` of `buffer` to the innermost frame."""
    if len(bounds) != buffer.ndim:
        msg = f"T.prefetch: buffer '{buffer.name}' has {buffer.ndim} dimensions, got {len(bounds)} bounds."
        raise ArgumentShapeError(msg)
    _append("T.prefetch", Prefetch(buffer, tuple(bounds)))


def evaluate(value: Any) -> None:
    """Append the evaluation of `value` to the innermost frame."""
    _append("T.evaluate", Evaluate(convert(value)))
