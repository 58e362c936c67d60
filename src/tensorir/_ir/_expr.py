"""Primitive expressions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from tensorir._dtype import BOOL, FLOAT32, HANDLE, INT32, INT64, DataType

if TYPE_CHECKING:
    from ._buffer import Buffer
    from ._type import Type

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


class PrimExpr:
    """Base class of all primitive expressions.

    Python operators build expression nodes. ``==`` is the dataclass value
    equality, with variables compared by identity; use :meth:`equal` to build
    an ``EQ`` node.
    """

    __slots__ = ()

    dtype: DataType

    def __add__(self, other: Any) -> PrimExpr:
        return _binary(Add, self, other)

    def __radd__(self, other: Any) -> PrimExpr:
        return _binary(Add, other, self)

    def __sub__(self, other: Any) -> PrimExpr:
        return _binary(Sub, self, other)

    def __rsub__(self, other: Any) -> PrimExpr:
        return _binary(Sub, other, self)

    def __mul__(self, other: Any) -> PrimExpr:
        return _binary(Mul, self, other)

    def __rmul__(self, other: Any) -> PrimExpr:
        return _binary(Mul, other, self)

    def __truediv__(self, other: Any) -> PrimExpr:
        return _binary(Div, self, other)

    def __rtruediv__(self, other: Any) -> PrimExpr:
        return _binary(Div, other, self)

    def __floordiv__(self, other: Any) -> PrimExpr:
        return _binary(FloorDiv, self, other)

    def __rfloordiv__(self, other: Any) -> PrimExpr:
        return _binary(FloorDiv, other, self)

    def __mod__(self, other: Any) -> PrimExpr:
        return _binary(FloorMod, self, other)

    def __rmod__(self, other: Any) -> PrimExpr:
        return _binary(FloorMod, other, self)

    def __neg__(self) -> PrimExpr:
        return _binary(Mul, self, -1)

    def __lt__(self, other: Any) -> PrimExpr:
        return _binary(LT, self, other)

    def __le__(self, other: Any) -> PrimExpr:
        return _binary(LE, self, other)

    def __gt__(self, other: Any) -> PrimExpr:
        return _binary(GT, self, other)

    def __ge__(self, other: Any) -> PrimExpr:
        return _binary(GE, self, other)

    def __and__(self, other: Any) -> PrimExpr:
        return _binary(And, self, other)

    def __or__(self, other: Any) -> PrimExpr:
        return _binary(Or, self, other)

    def __invert__(self) -> PrimExpr:
        return Not(self, dtype=BOOL.with_lanes(self.dtype.lanes))

    def equal(self, other: Any) -> PrimExpr:
        """Build an ``EQ`` node comparing this expression with `other`."""
        return _binary(EQ, self, other)

    def not_equal(self, other: Any) -> PrimExpr:
        """Build an ``NE`` node comparing this expression with `other`."""
        return _binary(NE, self, other)

    def astype(self, dtype: str | DataType) -> PrimExpr:
        return cast(dtype, self)


@dataclass(frozen=True, slots=True, eq=False)
class Var(PrimExpr):
    """A symbolic variable.

    Variables compare and hash by identity: two variables with the same name
    are still different variables. Use
    :func:`~tensorir._ir.structural_equal` to compare nodes up to a renaming
    of their variables.
    """

    name: str
    dtype: DataType = INT32
    type_annotation: Type | None = None


@dataclass(frozen=True, slots=True)
class IntImm(PrimExpr):
    value: int
    dtype: DataType = INT32


@dataclass(frozen=True, slots=True)
class FloatImm(PrimExpr):
    value: float
    dtype: DataType = FLOAT32


@dataclass(frozen=True, slots=True)
class StringImm(PrimExpr):
    value: str
    dtype: DataType = HANDLE


@dataclass(frozen=True, slots=True)
class Cast(PrimExpr):
    dtype: DataType
    value: PrimExpr


@dataclass(frozen=True, slots=True)
class BinaryOp(PrimExpr):
    a: PrimExpr
    b: PrimExpr
    dtype: DataType


@dataclass(frozen=True, slots=True)
class Add(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class Sub(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class Mul(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class Div(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class FloorDiv(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class FloorMod(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class Min(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class Max(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class EQ(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class NE(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class LT(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class LE(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class GT(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class GE(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class And(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class Or(BinaryOp):
    pass


@dataclass(frozen=True, slots=True)
class Not(PrimExpr):
    a: PrimExpr
    dtype: DataType = BOOL


@dataclass(frozen=True, slots=True)
class BufferLoad(PrimExpr):
    """Read of one element of a buffer."""

    buffer: Buffer
    indices: tuple[PrimExpr, ...]
    dtype: DataType


@dataclass(frozen=True, slots=True)
class Call(PrimExpr):
    """Call of a named intrinsic or external function."""

    op: str
    args: tuple[PrimExpr, ...] = field(default=())
    dtype: DataType = INT32


_COMPARE_OPS: tuple[type[BinaryOp], ...] = (EQ, NE, LT, LE, GT, GE, And, Or)

_FOLDERS = {
    Add: lambda a, b: a + b,
    Sub: lambda a, b: a - b,
    Mul: lambda a, b: a * b,
    Min: min,
    Max: max,
}


def convert(value: Any, dtype: DataType | None = None) -> PrimExpr:
    """Convert a Python scalar to an expression.

    Args:
        value: An expression, a bool, an int, a float or a str.
        dtype: Optional dtype hint used for Python ints and floats.

    Returns:
        The converted expression. Expressions are returned unchanged.

    Raises:
        TypeError: If the value cannot be converted.

    """
    if isinstance(value, PrimExpr):
        return value
    if isinstance(value, bool):
        return IntImm(int(value), BOOL)
    if isinstance(value, int):
        if dtype is not None and (dtype.is_int() or dtype.is_uint()):
            return IntImm(value, dtype.element_of())
        if dtype is not None and dtype.is_float():
            return FloatImm(float(value), dtype.element_of())
        return IntImm(value, INT32 if _INT32_MIN <= value <= _INT32_MAX else INT64)
    if isinstance(value, float):
        if dtype is not None and dtype.is_float():
            return FloatImm(value, dtype.element_of())
        return FloatImm(value, FLOAT32)
    if isinstance(value, str):
        return StringImm(value)
    msg = f"Cannot convert {value!r} of type '{type(value).__name__}' to an expression."
    raise TypeError(msg)


def cast(dtype: str | DataType, value: Any) -> PrimExpr:
    """Cast `value` to `dtype`, folding constants and no-op casts."""
    dtype = DataType.parse(dtype)
    expr = convert(value, dtype)
    if expr.dtype == dtype:
        return expr
    if isinstance(expr, IntImm) and dtype.is_scalar():
        if dtype.is_int() or dtype.is_uint() or dtype.is_bool():
            return IntImm(expr.value, dtype)
        if dtype.is_float():
            return FloatImm(float(expr.value), dtype)
    if isinstance(expr, FloatImm) and dtype.is_scalar() and dtype.is_float():
        return FloatImm(expr.value, dtype)
    return Cast(dtype, expr)


def _binary(op: type[BinaryOp], lhs: Any, rhs: Any) -> PrimExpr:
    if isinstance(lhs, PrimExpr):
        a = lhs
        b = convert(rhs, a.dtype)
    else:
        b = convert(rhs)
        a = convert(lhs, b.dtype)
    folder = _FOLDERS.get(op)
    if folder is not None and isinstance(a, IntImm) and isinstance(b, IntImm) and a.dtype == b.dtype:
        return IntImm(folder(a.value, b.value), a.dtype)
    if op in _COMPARE_OPS:
        return op(a, b, BOOL.with_lanes(a.dtype.lanes))
    return op(a, b, a.dtype)


def const_int(value: PrimExpr) -> int | None:
    """Return the integer value of a constant, or None for non-constants."""
    if isinstance(value, IntImm):
        return value.value
    return None


@dataclass(frozen=True, slots=True)
class Range:
    """A half-open integer interval given by its minimum and extent."""

    min: PrimExpr
    extent: PrimExpr

    @classmethod
    def from_min_extent(cls, min_value: Any, extent: Any) -> Range:
        min_expr = convert(min_value)
        return cls(min_expr, convert(extent, min_expr.dtype))

    @classmethod
    def from_bounds(cls, start: Any, stop: Any) -> Range:
        """Create the range ``[start, stop)``."""
        start_expr = convert(start)
        stop_expr = convert(stop, start_expr.dtype)
        if const_int(start_expr) == 0:
            return cls(start_expr, stop_expr)
        return cls(start_expr, stop_expr - start_expr)


class IterVarKind(StrEnum):
    """The role of an iteration variable."""

    SPATIAL = "spatial"
    REDUCE = "reduce"
    SCAN = "scan"
    OPAQUE = "opaque"
    THREAD_INDEX = "thread_index"


@dataclass(frozen=True, slots=True)
class IterVar:
    """An iteration variable together with its domain and role.

    Attributes:
        dom: The iteration domain, or None while still unknown (thread axes).
        var: The variable itself.
        kind: The role of the variable.
        thread_tag: The thread tag for thread-index variables.

    """

    dom: Range | None
    var: Var
    kind: IterVarKind
    thread_tag: str = ""
