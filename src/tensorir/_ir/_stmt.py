"""Statements."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from tensorir._dtype import DataType
from tensorir._errors import ArgumentShapeError

from ._buffer import Buffer, BufferRegion, MatchBufferRegion
from ._expr import IntImm, IterVar, PrimExpr, Range, StringImm, Var

type Annotations = tuple[tuple[str, Any], ...]


def freeze_annotations(mapping: Mapping[str, Any] | None) -> Annotations:
    """Turn an annotation mapping into a hashable, key-sorted tuple of pairs."""
    if not mapping:
        return ()
    return tuple((str(key), _freeze_value(value)) for key, value in sorted(mapping.items()))


def _freeze_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return freeze_annotations(value)
    if isinstance(value, list | tuple):
        return tuple(_freeze_value(item) for item in value)
    if isinstance(value, set | frozenset):
        return frozenset(_freeze_value(item) for item in value)
    return require_hashable(value, "annotation value")


def require_hashable(value: Any, what: str) -> Any:
    """Return `value`, or raise if it cannot be part of a hashable IR node."""
    try:
        hash(value)
    except TypeError as e:
        msg = f"Unhashable {what} {value!r} of type '{type(value).__name__}'."
        raise ArgumentShapeError(msg) from e
    return value


class Stmt:
    """Base class of all statements."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class BufferStore(Stmt):
    buffer: Buffer
    value: PrimExpr
    indices: tuple[PrimExpr, ...]


@dataclass(frozen=True, slots=True)
class Evaluate(Stmt):
    value: PrimExpr


@dataclass(frozen=True, slots=True)
class SeqStmt(Stmt):
    seq: tuple[Stmt, ...]


class ForKind(StrEnum):
    SERIAL = "serial"
    PARALLEL = "parallel"
    VECTORIZED = "vectorized"
    UNROLLED = "unrolled"
    THREAD_BINDING = "thread_binding"


@dataclass(frozen=True, slots=True)
class For(Stmt):
    """A loop over ``[min, min + extent)``.

    `thread_binding` is set for `ForKind.THREAD_BINDING` loops only.
    """

    loop_var: Var
    min: PrimExpr
    extent: PrimExpr
    kind: ForKind
    body: Stmt
    thread_binding: IterVar | None = None
    annotations: Annotations = ()


@dataclass(frozen=True, slots=True)
class While(Stmt):
    condition: PrimExpr
    body: Stmt


@dataclass(frozen=True, slots=True)
class IfThenElse(Stmt):
    condition: PrimExpr
    then_case: Stmt
    else_case: Stmt | None = None


@dataclass(frozen=True, slots=True)
class LetStmt(Stmt):
    var: Var
    value: PrimExpr
    body: Stmt


@dataclass(frozen=True, slots=True)
class Allocate(Stmt):
    buffer_var: Var
    dtype: DataType
    extents: tuple[PrimExpr, ...]
    condition: PrimExpr
    body: Stmt
    annotations: Annotations = ()


@dataclass(frozen=True, slots=True)
class AllocateConst(Stmt):
    buffer_var: Var
    dtype: DataType
    extents: tuple[PrimExpr, ...]
    data: tuple[int | float, ...]
    body: Stmt
    annotations: Annotations = ()


@dataclass(frozen=True, slots=True)
class AttrStmt(Stmt):
    node: Any
    attr_key: str
    value: PrimExpr
    body: Stmt


@dataclass(frozen=True, slots=True)
class AssertStmt(Stmt):
    condition: PrimExpr
    message: StringImm
    body: Stmt


@dataclass(frozen=True, slots=True)
class BufferRealize(Stmt):
    buffer: Buffer
    bounds: tuple[Range, ...]
    condition: PrimExpr
    body: Stmt


@dataclass(frozen=True, slots=True)
class Prefetch(Stmt):
    buffer: Buffer
    bounds: tuple[Range, ...]


@dataclass(frozen=True, slots=True)
class Block(Stmt):
    """A unit of computation with declared iteration variables and accesses."""

    iter_vars: tuple[IterVar, ...]
    reads: tuple[BufferRegion, ...]
    writes: tuple[BufferRegion, ...]
    name_hint: str
    body: Stmt
    init: Stmt | None = None
    alloc_buffers: tuple[Buffer, ...] = ()
    match_buffers: tuple[MatchBufferRegion, ...] = ()
    annotations: Annotations = ()


@dataclass(frozen=True, slots=True)
class BlockRealize(Stmt):
    """A block together with the values bound to its iteration variables."""

    iter_values: tuple[PrimExpr, ...]
    predicate: PrimExpr
    block: Block


def as_stmt(stmts: list[Stmt] | tuple[Stmt, ...]) -> Stmt:
    """Combine a body list into one statement.

    An empty list becomes ``Evaluate(0)``, a single statement is returned as
    is, and longer lists are wrapped in a `SeqStmt` in order.
    """
    if not stmts:
        return Evaluate(IntImm(0))
    if len(stmts) == 1:
        return stmts[0]
    return SeqStmt(tuple(stmts))
