"""Frames: the open scopes of the builder and their assembly rules.

Each frame accumulates state while it is the innermost open scope. When its
``with`` block ends the frame is popped and :func:`assemble` turns the
accumulated state into exactly one IR node, which is appended to the parent
frame's body (or becomes the builder's result for the outermost frame).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, assert_never

from ._builder import current_builder
from ._dtype import BOOL
from ._errors import ArgumentShapeError, PairingError, ScopeMismatchError
from ._ir import (
    Allocate,
    AllocateConst,
    AssertStmt,
    AttrStmt,
    Block,
    BlockRealize,
    BufferRealize,
    For,
    ForKind,
    IfThenElse,
    IntImm,
    IterVar,
    IterVarKind,
    LetStmt,
    PrimFunc,
    StringImm,
    TupleType,
    Var,
    While,
    as_stmt,
    freeze_annotations,
)

if TYPE_CHECKING:
    from types import TracebackType

    from ._dtype import DataType
    from ._ir import Buffer, BufferRegion, MatchBufferRegion, PrimExpr, Range, Stmt
    from ._ir._type import Type

logger = logging.getLogger(__name__)


class FrameKind(StrEnum):
    PRIM_FUNC = "prim_func"
    BLOCK = "block"
    BLOCK_INIT = "block_init"
    FOR = "for"
    IF = "if"
    THEN = "then"
    ELSE = "else"
    WHILE = "while"
    LET = "let"
    ALLOCATE = "allocate"
    ALLOCATE_CONST = "allocate_const"
    ATTR = "attr"
    ASSERT = "assert"
    LAUNCH_THREAD = "launch_thread"
    REALIZE = "realize"


@dataclass(slots=True, eq=False)
class IRBuilderFrame:
    """Base class of all frames.

    Frames are context managers. Entering pushes the frame onto the active
    builder; leaving pops it and, unless the block raised, assembles its node.
    """

    kind: ClassVar[FrameKind]

    stmts: list[Stmt] = field(default_factory=list, kw_only=True)

    def __enter__(self) -> Any:
        current_builder(f"{self.kind} frame").push(self)
        return self._enter_value()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        builder = current_builder(f"{self.kind} frame")
        builder.pop(self)
        if exc_type is not None:
            logger.debug("Discarding %s frame after %s", self.kind, exc_type.__name__)
            return
        builder.add_to_parent(assemble(self, builder.last_frame()))  # ty: ignore[invalid-argument-type]

    def _enter_value(self) -> Any:
        return self


@dataclass(slots=True, eq=False)
class PrimFuncFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.PRIM_FUNC

    name: str | None = None
    params: list[Var] = field(default_factory=list)
    buffer_map: list[tuple[Var, Buffer]] = field(default_factory=list)
    preflattened_buffer_map: list[tuple[Var, Buffer]] = field(default_factory=list)
    attrs: dict[str, Any] | None = None
    ret_type: Type | None = None
    root_alloc_buffers: list[Buffer] = field(default_factory=list)

    def has_param(self, var: Var) -> bool:
        return any(param is var for param in self.params)


@dataclass(slots=True, eq=False)
class BlockFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.BLOCK

    name: str
    no_realize: bool = False
    iter_vars: list[IterVar] = field(default_factory=list)
    iter_values: list[PrimExpr] = field(default_factory=list)
    reads: tuple[BufferRegion, ...] | None = None
    writes: tuple[BufferRegion, ...] | None = None
    init: Stmt | None = None
    alloc_buffers: list[Buffer] = field(default_factory=list)
    match_buffers: list[MatchBufferRegion] = field(default_factory=list)
    annotations: dict[str, Any] | None = None
    predicate: PrimExpr | None = None


@dataclass(slots=True, eq=False)
class BlockInitFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.BLOCK_INIT


@dataclass(slots=True, eq=False)
class ForFrame(IRBuilderFrame):
    """A loop nest of one loop per variable, outermost first.

    A frame with no variables (an empty grid) adds its body statements to the
    parent directly.
    """

    kind: ClassVar[FrameKind] = FrameKind.FOR

    vars: tuple[Var, ...]
    doms: tuple[Range, ...]
    for_kind: ForKind = ForKind.SERIAL
    thread: str | None = None
    annotations: dict[str, Any] | None = None

    def _enter_value(self) -> Any:
        if len(self.vars) == 1:
            return self.vars[0]
        return list(self.vars)


@dataclass(slots=True, eq=False)
class IfFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.IF

    condition: PrimExpr
    then_stmts: list[Stmt] | None = None
    else_stmts: list[Stmt] | None = None


@dataclass(slots=True, eq=False)
class ThenFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.THEN


@dataclass(slots=True, eq=False)
class ElseFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.ELSE


@dataclass(slots=True, eq=False)
class WhileFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.WHILE

    condition: PrimExpr


@dataclass(slots=True, eq=False)
class LetFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.LET

    var: Var
    value: PrimExpr

    def _enter_value(self) -> Any:
        return self.var


@dataclass(slots=True, eq=False)
class AllocateFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.ALLOCATE

    extents: tuple[PrimExpr, ...]
    dtype: DataType
    storage_scope: str
    condition: PrimExpr
    buffer_var: Var
    annotations: dict[str, Any] | None = None

    def _enter_value(self) -> Any:
        return self.buffer_var


@dataclass(slots=True, eq=False)
class AllocateConstFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.ALLOCATE_CONST

    data: tuple[int | float, ...]
    dtype: DataType
    extents: tuple[PrimExpr, ...]
    buffer_var: Var
    annotations: dict[str, Any] | None = None

    def _enter_value(self) -> Any:
        return self.buffer_var


@dataclass(slots=True, eq=False)
class AttrFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.ATTR

    node: Any
    attr_key: str
    value: PrimExpr


@dataclass(slots=True, eq=False)
class AssertFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.ASSERT

    condition: PrimExpr
    message: str


@dataclass(slots=True, eq=False)
class LaunchThreadFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.LAUNCH_THREAD

    iter_var: IterVar
    extent: PrimExpr

    def _enter_value(self) -> Any:
        return self.iter_var.var


@dataclass(slots=True, eq=False)
class RealizeFrame(IRBuilderFrame):
    kind: ClassVar[FrameKind] = FrameKind.REALIZE

    buffer_slice: BufferRegion
    storage_scope: str
    condition: PrimExpr


type Frame = (
    PrimFuncFrame
    | BlockFrame
    | BlockInitFrame
    | ForFrame
    | IfFrame
    | ThenFrame
    | ElseFrame
    | WhileFrame
    | LetFrame
    | AllocateFrame
    | AllocateConstFrame
    | AttrFrame
    | AssertFrame
    | LaunchThreadFrame
    | RealizeFrame
)


def assemble(frame: Frame, parent: IRBuilderFrame | None) -> PrimFunc | Stmt | tuple[Stmt, ...] | None:
    """Build the node of a closed frame.

    Args:
        frame: The frame that was just popped.
        parent: The frame that is now innermost, or None.

    Returns:
        The node to add to `parent`. ``None`` means the frame wrote its result
        into `parent` itself (Init, Then, Else); a tuple is spliced into the
        parent body (empty grid).

    Raises:
        ArgumentShapeError, PairingError, ScopeMismatchError: If the frame's
            accumulated state is not well formed.

    """
    body = as_stmt(frame.stmts)
    match frame:
        case PrimFuncFrame():
            return _assemble_prim_func(frame)
        case BlockFrame():
            return _assemble_block(frame)
        case BlockInitFrame():
            if not isinstance(parent, BlockFrame):
                msg = "T.init frame closed outside of a block frame."
                raise ScopeMismatchError(msg)
            parent.init = body
            return None
        case ForFrame():
            return _assemble_for(frame)
        case IfFrame():
            if frame.stmts:
                msg = "Statements inside T.If must be placed in a T.Then or T.Else frame."
                raise PairingError(msg)
            if frame.then_stmts is None:
                msg = "T.If frame closed without a T.Then branch."
                raise PairingError(msg)
            else_case = as_stmt(frame.else_stmts) if frame.else_stmts is not None else None
            return IfThenElse(frame.condition, as_stmt(frame.then_stmts), else_case)
        case ThenFrame():
            if not isinstance(parent, IfFrame):
                msg = "T.Then frame closed outside of a T.If frame."
                raise PairingError(msg)
            parent.then_stmts = list(frame.stmts)
            return None
        case ElseFrame():
            if not isinstance(parent, IfFrame):
                msg = "T.Else frame closed outside of a T.If frame."
                raise PairingError(msg)
            parent.else_stmts = list(frame.stmts)
            return None
        case WhileFrame():
            return While(frame.condition, body)
        case LetFrame():
            return LetStmt(frame.var, frame.value, body)
        case AllocateFrame():
            return Allocate(
                buffer_var=frame.buffer_var,
                dtype=frame.dtype,
                extents=frame.extents,
                condition=frame.condition,
                body=body,
                annotations=freeze_annotations(frame.annotations),
            )
        case AllocateConstFrame():
            return AllocateConst(
                buffer_var=frame.buffer_var,
                dtype=frame.dtype,
                extents=frame.extents,
                data=frame.data,
                body=body,
                annotations=freeze_annotations(frame.annotations),
            )
        case AttrFrame():
            return AttrStmt(frame.node, frame.attr_key, frame.value, body)
        case AssertFrame():
            return AssertStmt(frame.condition, StringImm(frame.message), body)
        case LaunchThreadFrame():
            attr_key = "virtual_thread" if frame.iter_var.thread_tag.startswith("vthread") else "thread_extent"
            return AttrStmt(frame.iter_var, attr_key, frame.extent, body)
        case RealizeFrame():
            buffer = frame.buffer_slice.buffer
            realize = BufferRealize(buffer, frame.buffer_slice.region, frame.condition, body)
            return AttrStmt(buffer.data, "realize_scope", StringImm(frame.storage_scope), realize)
        case _:
            assert_never(frame)


def _assemble_prim_func(frame: PrimFuncFrame) -> PrimFunc:
    seen: list[Var] = []
    for param in frame.params:
        if any(param is other for other in seen):
            msg = f"Parameter '{param.name}' is bound more than once in prim_func frame."
            raise ArgumentShapeError(msg)
        seen.append(param)
    for var, buffer in (*frame.buffer_map, *frame.preflattened_buffer_map):
        if not frame.has_param(var):
            msg = f"Buffer '{buffer.name}' is bound to '{var.name}', which is not a parameter of the prim_func frame."
            raise ArgumentShapeError(msg)

    body = as_stmt(frame.stmts)
    if frame.root_alloc_buffers:
        root = Block(
            iter_vars=(),
            reads=(),
            writes=(),
            name_hint="root",
            body=body,
            alloc_buffers=tuple(frame.root_alloc_buffers),
        )
        body = BlockRealize(iter_values=(), predicate=IntImm(1, BOOL), block=root)

    attrs = dict(frame.attrs or {})
    if frame.name is not None:
        attrs["global_symbol"] = frame.name
    return PrimFunc(
        params=tuple(frame.params),
        body=body,
        ret_type=frame.ret_type if frame.ret_type is not None else TupleType(),
        buffer_map=tuple(frame.buffer_map),
        preflattened_buffer_map=tuple(frame.preflattened_buffer_map),
        attrs=freeze_annotations(attrs),
    )


def _assemble_block(frame: BlockFrame) -> Block | BlockRealize:
    block = Block(
        iter_vars=tuple(frame.iter_vars),
        reads=frame.reads if frame.reads is not None else (),
        writes=frame.writes if frame.writes is not None else (),
        name_hint=frame.name,
        body=as_stmt(frame.stmts),
        init=frame.init,
        alloc_buffers=tuple(frame.alloc_buffers),
        match_buffers=tuple(frame.match_buffers),
        annotations=freeze_annotations(frame.annotations),
    )
    if frame.no_realize:
        if frame.iter_values:
            msg = f"Block '{frame.name}' has iteration variable bindings, which are not allowed with no_realize=True."
            raise ArgumentShapeError(msg)
        if frame.predicate is not None:
            msg = f"Block '{frame.name}' has a predicate, which is not allowed with no_realize=True."
            raise ArgumentShapeError(msg)
        return block
    predicate = frame.predicate if frame.predicate is not None else IntImm(1, BOOL)
    return BlockRealize(iter_values=tuple(frame.iter_values), predicate=predicate, block=block)


def _assemble_for(frame: ForFrame) -> For | tuple[Stmt, ...]:
    if not frame.vars:
        return tuple(frame.stmts)
    thread_binding = None
    if frame.for_kind == ForKind.THREAD_BINDING:
        if frame.thread is None:
            msg = "Thread-binding loop requires a thread tag."
            raise ArgumentShapeError(msg)
        loop_dtype = frame.vars[0].dtype
        thread_binding = IterVar(None, Var("iter", loop_dtype), IterVarKind.THREAD_INDEX, frame.thread)
    annotations = freeze_annotations(frame.annotations)
    node: Stmt = as_stmt(frame.stmts)
    for var, dom in zip(reversed(frame.vars), reversed(frame.doms), strict=True):
        node = For(
            loop_var=var,
            min=dom.min,
            extent=dom.extent,
            kind=frame.for_kind,
            body=node,
            thread_binding=thread_binding,
            annotations=annotations,
        )
    return node  # ty: ignore[invalid-return-type]
