"""Buffers and buffer regions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from tensorir._dtype import DataType

from ._expr import BufferLoad, IntImm, PrimExpr, Range, Var, convert
from ._type import PointerType


class BufferType(StrEnum):
    DEFAULT = "default"
    AUTO_BROADCAST = "auto_broadcast"


@dataclass(frozen=True, slots=True)
class Buffer:
    """A multi-dimensional view over a data pointer.

    Attributes:
        data: The handle variable pointing at the first element.
        dtype: The element data type.
        shape: Extent of each dimension before flattening.
        strides: Stride of each dimension, empty for compact buffers.
        elem_offset: Offset of the first element, in elements.
        name: The buffer name.
        data_alignment: Alignment requirement of `data` in bytes.
        offset_factor: Factor that `elem_offset` must be a multiple of.
        buffer_type: Default or auto-broadcast.
        axis_separators: Positions in `shape` at which flattening starts a new
            physical axis.

    """

    data: Var
    dtype: DataType
    shape: tuple[PrimExpr, ...]
    strides: tuple[PrimExpr, ...]
    elem_offset: PrimExpr
    name: str
    data_alignment: int
    offset_factor: int
    buffer_type: BufferType = BufferType.DEFAULT
    axis_separators: tuple[IntImm, ...] = ()

    @property
    def ndim(self) -> int:
        return len(self.shape)

    def scope(self) -> str:
        """The storage scope of the data pointer."""
        annotation = self.data.type_annotation
        if isinstance(annotation, PointerType):
            return annotation.storage_scope
        return "global"

    def __getitem__(self, indices: Any) -> BufferLoad | BufferRegion:
        """Index the buffer.

        Integer or expression indices give a `BufferLoad`; a subscript that
        contains at least one slice gives a `BufferRegion`.
        """
        if not isinstance(indices, tuple):
            indices = (indices,)
        if any(isinstance(index, slice) for index in indices):
            return BufferRegion(self, tuple(_index_to_range(self, dim, index) for dim, index in enumerate(indices)))
        return BufferLoad(self, tuple(convert(index) for index in indices), self.dtype)

    def full_region(self) -> BufferRegion:
        return BufferRegion.full(self)


def _index_to_range(buffer: Buffer, dim: int, index: Any) -> Range:
    if not isinstance(index, slice):
        return Range.from_min_extent(index, 1)
    if index.step not in (None, 1):
        msg = f"Buffer '{buffer.name}' region slices must have unit step, got {index.step!r}"
        raise ValueError(msg)
    start = 0 if index.start is None else index.start
    stop = buffer.shape[dim] if index.stop is None else index.stop
    return Range.from_bounds(start, stop)


@dataclass(frozen=True, slots=True)
class BufferRegion:
    """A rectangular region of a buffer."""

    buffer: Buffer
    region: tuple[Range, ...]

    @classmethod
    def full(cls, buffer: Buffer) -> BufferRegion:
        return cls(buffer, tuple(Range.from_min_extent(0, extent) for extent in buffer.shape))

    @classmethod
    def from_point(cls, load: BufferLoad) -> BufferRegion:
        return cls(load.buffer, tuple(Range.from_min_extent(index, 1) for index in load.indices))


@dataclass(frozen=True, slots=True)
class MatchBufferRegion:
    """A buffer matched against a region of another buffer."""

    buffer: Buffer
    source: BufferRegion
