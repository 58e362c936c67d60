"""Type annotations attached to variables and function returns."""

from dataclasses import dataclass

from tensorir._dtype import DataType


@dataclass(frozen=True, slots=True)
class PrimType:
    """The type of a primitive scalar or vector value."""

    dtype: DataType


@dataclass(frozen=True, slots=True)
class PointerType:
    """A pointer into a given storage scope."""

    element_type: PrimType
    storage_scope: str = "global"


@dataclass(frozen=True, slots=True)
class TupleType:
    """A tuple type. The empty tuple is the void return type."""

    fields: tuple[PrimType | PointerType, ...] = ()


type Type = PrimType | PointerType | TupleType
