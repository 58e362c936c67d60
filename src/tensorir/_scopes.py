"""Scope openers: each call returns a frame to be used in a ``with`` statement."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from ._builder import IRBuilder, active_builder, current_builder
from ._dtype import BOOL, HANDLE, INT32, DataType
from ._errors import ArgumentShapeError, DuplicateSettingError, PairingError
from ._frames import (
    AllocateConstFrame,
    AllocateFrame,
    AssertFrame,
    AttrFrame,
    BlockFrame,
    BlockInitFrame,
    ElseFrame,
    ForFrame,
    IfFrame,
    LaunchThreadFrame,
    LetFrame,
    PrimFuncFrame,
    RealizeFrame,
    ThenFrame,
    WhileFrame,
)
from ._ir import (
    Buffer,
    BufferRegion,
    ForKind,
    IntImm,
    IterVar,
    IterVarKind,
    PointerType,
    PrimType,
    Range,
    Var,
    const_int,
    convert,
    require_hashable,
)
from ._ops import as_annotations, as_shape, shape_size

if TYPE_CHECKING:
    from ._ir import PrimExpr


def prim_func() -> PrimFuncFrame:
    """Open a primitive function."""
    return PrimFuncFrame()


def block(name: str = "", no_realize: bool = False) -> BlockFrame:  # noqa: FBT001, FBT002
    """Open a block.

    Args:
        name: The block name.
        no_realize: Emit a bare `Block` instead of wrapping it in a `BlockRealize`.

    """
    return BlockFrame(name=name, no_realize=no_realize)


def init() -> BlockInitFrame:
    """Open the init sub-scope of the innermost block."""
    builder = current_builder("T.init")
    block_frame = builder.current_frame(BlockFrame, "T.init")
    if block_frame.init is not None:
        msg = f"T.init: block '{block_frame.name}' already has an init sub-scope."
        raise DuplicateSettingError(msg)
    return BlockInitFrame()


def _loop_range(start: Any, stop: Any, caller: str, name: str = "i") -> tuple[Var, Range]:
    if stop is None:
        start, stop = 0, start
    try:
        dom = Range.from_bounds(start, stop)
    except TypeError as e:
        msg = f"{caller}: cannot use ({start!r}, {stop!r}) as loop bounds."
        raise ArgumentShapeError(msg) from e
    for bound in (dom.min, dom.extent):
        if not (bound.dtype.is_int() or bound.dtype.is_uint()):
            msg = f"{caller}: loop bounds must be integers, got dtype {bound.dtype}."
            raise ArgumentShapeError(msg)
    extent = const_int(dom.extent)
    if extent is not None and extent < 0:
        msg = f"{caller}: stop ({stop!r}) is smaller than start ({start!r})."
        raise ArgumentShapeError(msg)
    dtype = dom.extent.dtype if dom.extent.dtype.bits > dom.min.dtype.bits else dom.min.dtype
    return Var(name, dtype), dom


def _for(
    start: Any,
    stop: Any,
    kind: ForKind,
    caller: str,
    annotations: Mapping[str, Any] | None,
    thread: str | None = None,
) -> ForFrame:
    var, dom = _loop_range(start, stop, caller)
    return ForFrame(
        vars=(var,),
        doms=(dom,),
        for_kind=kind,
        thread=thread,
        annotations=as_annotations(caller, annotations),
    )


def serial(start: Any, stop: Any = None, *, annotations: Mapping[str, Any] | None = None) -> ForFrame:
    """Open a serial loop over ``[start, stop)``; ``serial(n)`` loops over ``[0, n)``."""
    return _for(start, stop, ForKind.SERIAL, "T.serial", annotations)


def parallel(start: Any, stop: Any = None, *, annotations: Mapping[str, Any] | None = None) -> ForFrame:
    return _for(start, stop, ForKind.PARALLEL, "T.parallel", annotations)


def vectorized(start: Any, stop: Any = None, *, annotations: Mapping[str, Any] | None = None) -> ForFrame:
    return _for(start, stop, ForKind.VECTORIZED, "T.vectorized", annotations)


def unroll(start: Any, stop: Any = None, *, annotations: Mapping[str, Any] | None = None) -> ForFrame:
    return _for(start, stop, ForKind.UNROLLED, "T.unroll", annotations)


def thread_binding(
    start: Any,
    stop: Any = None,
    thread: str | None = None,
    *,
    annotations: Mapping[str, Any] | None = None,
) -> ForFrame:
    """Open a loop bound to the thread axis `thread` (e.g. ``"threadIdx.x"``)."""
    if thread is None:
        if isinstance(stop, str):
            start, stop, thread = 0, start, stop
        else:
            msg = "T.thread_binding requires a thread tag."
            raise ArgumentShapeError(msg)
    return _for(start, stop, ForKind.THREAD_BINDING, "T.thread_binding", annotations, thread=thread)


def grid(*extents: Any) -> ForFrame:
    """Open a nest of serial loops, one per extent, outermost first.

    ``grid()`` opens no loop: statements in its body go to the enclosing frame.
    A single sequence argument is unpacked, so ``grid([4, 8])`` equals ``grid(4, 8)``.
    """
    if len(extents) == 1 and isinstance(extents[0], Sequence):
        extents = tuple(extents[0])
    loop_vars: list[Var] = []
    doms: list[Range] = []
    for index, extent in enumerate(extents):
        var, dom = _loop_range(0, extent, "T.grid", f"i{index}" if len(extents) > 1 else "i")
        loop_vars.append(var)
        doms.append(dom)
    return ForFrame(vars=tuple(loop_vars), doms=tuple(doms), for_kind=ForKind.SERIAL)


def If(condition: Any) -> IfFrame:  # noqa: N802
    """Open a conditional. Its body must consist of `Then` and optionally `Else`."""
    return IfFrame(condition=convert(condition))


def Then() -> ThenFrame:  # noqa: N802
    """Open the then-branch of the innermost `If`."""
    builder = current_builder("T.Then")
    last = builder.last_frame()
    if not isinstance(last, IfFrame):
        msg = "T.Then must be used directly inside a T.If frame."
        raise PairingError(msg)
    if last.then_stmts is not None:
        msg = "T.Then: the T.If frame already has a then-branch."
        raise PairingError(msg)
    return ThenFrame()


def Else() -> ElseFrame:  # noqa: N802
    """Open the else-branch of the innermost `If`; its `Then` must be closed."""
    builder = current_builder("T.Else")
    last = builder.last_frame()
    if not isinstance(last, IfFrame):
        msg = "T.Else must be used directly inside a T.If frame."
        raise PairingError(msg)
    if last.then_stmts is None:
        msg = "T.Else must follow a closed T.Then branch."
        raise PairingError(msg)
    if last.else_stmts is not None:
        msg = "T.Else: the T.If frame already has an else-branch."
        raise PairingError(msg)
    return ElseFrame()


def While(condition: Any) -> WhileFrame:  # noqa: N802
    return WhileFrame(condition=convert(condition))


def Let(var: Var | str, value: Any) -> LetFrame:  # noqa: N802
    """Bind `var` to `value` over the body. A string creates a fresh variable."""
    value = convert(value)
    if isinstance(var, str):
        var = Var(var, value.dtype)
    return LetFrame(var=var, value=value)


def _storage_scope(builder: IRBuilder | None, scope: str) -> str:
    """Return `scope`, or the scope of the nearest enclosing allocation when empty."""
    if scope:
        return scope
    if builder is not None:
        for frame in reversed(builder.frames):
            if isinstance(frame, AllocateFrame | RealizeFrame):
                return frame.storage_scope
    return "global"


def allocate(
    extents: Any,
    dtype: str | DataType,
    scope: str = "",
    condition: Any = None,
    annotations: Mapping[str, Any] | None = None,
) -> AllocateFrame:
    """Open an allocation. Entering the frame yields the buffer variable.

    An empty `scope` inherits the scope of the enclosing allocation or
    realization, ``"global"`` at top level.
    """
    element_type = DataType.parse(dtype)
    storage_scope = _storage_scope(active_builder(), scope)
    return AllocateFrame(
        extents=as_shape(extents),
        dtype=element_type,
        storage_scope=storage_scope,
        condition=convert(condition) if condition is not None else IntImm(1, BOOL),
        buffer_var=Var("buffer", HANDLE, PointerType(PrimType(element_type), storage_scope)),
        annotations=as_annotations("T.allocate", annotations),
    )


def allocate_const(
    data: Sequence[int | float],
    dtype: str | DataType,
    extents: Any,
    annotations: Mapping[str, Any] | None = None,
) -> AllocateConstFrame:
    """Open a constant allocation holding `data` in row-major order."""
    element_type = DataType.parse(dtype)
    shape = as_shape(extents)
    values = tuple(data)
    size = shape_size(shape)
    if size is not None and size != len(values):
        msg = f"T.allocate_const: {len(values)} values do not fill extents of {size} elements."
        raise ArgumentShapeError(msg)
    return AllocateConstFrame(
        data=values,
        dtype=element_type,
        extents=shape,
        buffer_var=Var("buffer", HANDLE, PointerType(PrimType(element_type), "global")),
        annotations=as_annotations("T.allocate_const", annotations),
    )


def attr(node: Any, attr_key: str, value: Any) -> AttrFrame:
    """Attach the attribute `attr_key` of `node` to the body. `node` must be hashable."""
    return AttrFrame(node=require_hashable(node, "T.attr node"), attr_key=attr_key, value=convert(value))


def Assert(condition: Any, message: str) -> AssertFrame:  # noqa: N802
    return AssertFrame(condition=convert(condition), message=message)


def env_thread(thread_tag: str) -> Var:
    """Create a variable bound to the environment thread `thread_tag`."""
    builder = current_builder("T.env_thread")
    iter_var = IterVar(None, Var(thread_tag, INT32), IterVarKind.THREAD_INDEX, thread_tag)
    builder.register_env_thread(iter_var)
    return iter_var.var


def launch_thread(var: Var | str, extent: Any) -> LaunchThreadFrame:
    """Launch the environment thread `var` with `extent` threads.

    `var` must come from :func:`env_thread`; a thread tag string creates one.
    """
    builder = current_builder("T.launch_thread")
    if isinstance(var, str):
        var = env_thread(var)
    env = builder.find_env_thread(var)
    if env is None:
        msg = f"T.launch_thread: {var!r} is not an environment thread variable created by T.env_thread."
        raise ArgumentShapeError(msg)
    extent = convert(extent, env.var.dtype)
    iter_var = IterVar(Range.from_min_extent(0, extent), env.var, IterVarKind.THREAD_INDEX, env.thread_tag)
    return LaunchThreadFrame(iter_var=iter_var, extent=extent)


def realize(buffer_slice: BufferRegion | Buffer, storage_scope: str = "", condition: Any = True) -> RealizeFrame:
    """Realize a region of a declared buffer over the body."""
    builder = current_builder("T.realize")
    if isinstance(buffer_slice, Buffer):
        buffer_slice = BufferRegion.full(buffer_slice)
    if not builder.is_declared(buffer_slice.buffer):
        msg = f"T.realize: buffer '{buffer_slice.buffer.name}' has not been declared in this IRBuilder."
        raise ArgumentShapeError(msg)
    cond: PrimExpr = convert(condition)
    return RealizeFrame(
        buffer_slice=buffer_slice,
        storage_scope=_storage_scope(builder, storage_scope),
        condition=cond,
    )
