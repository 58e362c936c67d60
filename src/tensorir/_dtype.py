"""Element data types."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

_DTYPE_PATTERN = re.compile(r"^(int|uint|float|bfloat|handle|bool|void)(\d+)?(?:x(\d+))?$")

_DEFAULT_BITS = {
    "int": 32,
    "uint": 32,
    "float": 32,
    "bfloat": 16,
    "handle": 64,
    "bool": 1,
    "void": 0,
}


class TypeCode(StrEnum):
    """The type code of a data type."""

    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    BFLOAT = "bfloat"
    HANDLE = "handle"
    BOOL = "bool"
    VOID = "void"


@dataclass(frozen=True, slots=True)
class DataType:
    """A scalar or vector element type.

    Attributes:
        code: The type code.
        bits: Number of bits of a single lane.
        lanes: Number of lanes, 1 for scalars.

    Examples:
        >>> DataType.parse("int32x4")
        DataType(code=<TypeCode.INT: 'int'>, bits=32, lanes=4)
        >>> str(DataType.parse("bool"))
        'bool'

    """

    code: TypeCode
    bits: int
    lanes: int = 1

    @classmethod
    def parse(cls, value: str | DataType) -> DataType:
        """Parse a dtype string such as ``"float32"`` or ``"int32x4"``."""
        if isinstance(value, DataType):
            return value
        match = _DTYPE_PATTERN.match(value)
        if match is None:
            msg = f"Invalid data type string: '{value}'"
            raise ValueError(msg)
        code, bits, lanes = match.groups()
        if code in ("bool", "handle", "void") and bits is not None:
            msg = f"Data type '{code}' does not take a bit width: '{value}'"
            raise ValueError(msg)
        return cls(
            code=TypeCode(code),
            bits=int(bits) if bits is not None else _DEFAULT_BITS[code],
            lanes=int(lanes) if lanes is not None else 1,
        )

    def with_lanes(self, lanes: int) -> DataType:
        return DataType(self.code, self.bits, lanes)

    def element_of(self) -> DataType:
        return self.with_lanes(1)

    def is_int(self) -> bool:
        return self.code == TypeCode.INT

    def is_uint(self) -> bool:
        return self.code == TypeCode.UINT

    def is_float(self) -> bool:
        return self.code in (TypeCode.FLOAT, TypeCode.BFLOAT)

    def is_bool(self) -> bool:
        return self.code == TypeCode.BOOL

    def is_handle(self) -> bool:
        return self.code == TypeCode.HANDLE

    def is_void(self) -> bool:
        return self.code == TypeCode.VOID

    def is_scalar(self) -> bool:
        return self.lanes == 1

    def __str__(self) -> str:
        if self.code in (TypeCode.BOOL, TypeCode.HANDLE, TypeCode.VOID):
            base = str(self.code)
        else:
            base = f"{self.code}{self.bits}"
        return base if self.lanes == 1 else f"{base}x{self.lanes}"


INT32 = DataType(TypeCode.INT, 32)
INT64 = DataType(TypeCode.INT, 64)
FLOAT32 = DataType(TypeCode.FLOAT, 32)
BOOL = DataType(TypeCode.BOOL, 1)
HANDLE = DataType(TypeCode.HANDLE, 64)
VOID = DataType(TypeCode.VOID, 0)
