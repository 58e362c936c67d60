"""The active IR builder and its frame stack."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from scoped_context import NoContextError, ScopedContext

from ._errors import IRBuilderError, ScopeMismatchError, UnclosedScopeError
from ._ir import as_stmt

if TYPE_CHECKING:
    from types import TracebackType

    from ._frames import IRBuilderFrame
    from ._ir import Buffer, IterVar, PrimFunc, Stmt

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IRBuilder(ScopedContext):
    """The builder that collects frames into one IR node.

    Entering the builder makes it the current one for this execution context;
    frames opened afterwards are pushed onto its stack. When the outermost
    frame closes, its node becomes the builder's result.

    Example:
        >>> with IRBuilder() as ib:
        ...     with T.prim_func():
        ...         T.func_name("main")
        >>> func = ib.get()

    """

    frames: list[IRBuilderFrame] = field(default_factory=list)
    env_threads: list[IterVar] = field(default_factory=list)
    declared_buffers: list[Buffer] = field(default_factory=list)
    _result: PrimFunc | Stmt | None = field(default=None, repr=False)
    _has_result: bool = field(default=False, repr=False)

    def __enter__(self) -> Self:
        try:
            active = IRBuilder.current()
        except NoContextError:
            pass
        else:
            msg = f"Cannot enter an IRBuilder while another one is active ({active!r})"
            raise ScopeMismatchError(msg)
        ScopedContext.__enter__(self)
        logger.debug("Entered IRBuilder")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        unclosed = [frame.kind for frame in self.frames]
        ScopedContext.__exit__(self, exc_type, exc_value, traceback)
        logger.debug("Exited IRBuilder")
        if exc_type is None and unclosed:
            msg = f"IRBuilder exited with unclosed frames: {', '.join(unclosed)}"
            raise UnclosedScopeError(msg)

    def push(self, frame: IRBuilderFrame) -> None:
        """Push `frame` onto the stack, making it the current frame."""
        if not self.frames and self._has_result:
            msg = f"Cannot open a {frame.kind} frame: the IRBuilder has already produced its result."
            raise IRBuilderError(msg)
        self.frames.append(frame)
        logger.debug("Pushed %s frame (depth %d)", frame.kind, len(self.frames))

    def pop(self, frame: IRBuilderFrame) -> None:
        """Pop `frame`, which must be the current (innermost) frame."""
        if not self.frames:
            msg = f"Cannot close {frame.kind} frame: no frame is open."
            raise ScopeMismatchError(msg)
        if self.frames[-1] is not frame:
            msg = (
                f"Cannot close {frame.kind} frame: it is not the innermost open frame"
                f" (innermost is {self.frames[-1].kind})."
            )
            raise ScopeMismatchError(msg)
        self.frames.pop()
        logger.debug("Popped %s frame (depth %d)", frame.kind, len(self.frames))

    def last_frame(self) -> IRBuilderFrame | None:
        """Return the innermost open frame, if any."""
        return self.frames[-1] if self.frames else None

    def find_frame[F: IRBuilderFrame](self, frame_type: type[F]) -> F | None:
        """Return the nearest open frame of `frame_type`, innermost first.

        This is a read-only lookup: the frame found need not be the innermost one.
        """
        for frame in reversed(self.frames):
            if isinstance(frame, frame_type):
                return frame
        return None

    def current_frame[F: IRBuilderFrame](self, frame_type: type[F], caller: str) -> F:
        """Return the innermost frame, requiring it to be of `frame_type`.

        Args:
            frame_type: The frame class the caller mutates.
            caller: Name of the calling API, used in error messages.

        Raises:
            ScopeMismatchError: If no frame is open, or the innermost frame is
                of another kind.

        """
        last = self.last_frame()
        if isinstance(last, frame_type):
            return last
        expected = frame_type.kind
        if last is None:
            msg = f"{caller} requires an enclosing {expected} frame, but no frame is open."
        elif self.find_frame(frame_type) is not None:
            msg = f"{caller} must be called directly inside a {expected} frame, but the innermost frame is {last.kind}."
        else:
            msg = f"{caller} requires an enclosing {expected} frame, but none is open (innermost is {last.kind})."
        raise ScopeMismatchError(msg)

    def add_to_parent(self, node: PrimFunc | Stmt | tuple[Stmt, ...] | None) -> None:
        """Hand an assembled node to the innermost frame, or make it the result.

        A tuple of statements is spliced into the parent body in order; None
        adds nothing.
        """
        if node is None:
            return
        parent = self.last_frame()
        if parent is not None:
            if isinstance(node, tuple):
                parent.stmts.extend(node)
            else:
                parent.stmts.append(node)  # ty: ignore[invalid-argument-type]
            return
        if self._has_result:
            msg = "The IRBuilder has already produced its result."
            raise IRBuilderError(msg)
        if isinstance(node, tuple):
            node = as_stmt(node)
        self._result = node
        self._has_result = True
        logger.debug("IRBuilder produced %s", type(node).__name__)

    def register_buffer(self, buffer: Buffer) -> None:
        self.declared_buffers.append(buffer)

    def is_declared(self, buffer: Buffer) -> bool:
        return any(declared is buffer for declared in self.declared_buffers)

    def register_env_thread(self, iter_var: IterVar) -> None:
        self.env_threads.append(iter_var)

    def find_env_thread(self, var: Any) -> IterVar | None:
        for iter_var in self.env_threads:
            if iter_var.var is var:
                return iter_var
        return None

    @property
    def is_defined(self) -> bool:
        """Whether the outermost frame has closed and produced a result."""
        return self._has_result

    def get(self) -> PrimFunc | Stmt:
        """Return the node produced by the outermost frame."""
        if not self._has_result:
            msg = "The IRBuilder has not produced a result yet: no outermost frame has closed."
            raise IRBuilderError(msg)
        return self._result  # ty: ignore[invalid-return-type]


def current_builder(caller: str) -> IRBuilder:
    """Return the active builder.

    Raises:
        ScopeMismatchError: If no builder is active.

    """
    try:
        return IRBuilder.current()
    except NoContextError as e:
        msg = f"{caller} must be used inside an active IRBuilder."
        raise ScopeMismatchError(msg) from e


def active_builder() -> IRBuilder | None:
    """Return the active builder, or None outside of any builder."""
    try:
        return IRBuilder.current()
    except NoContextError:
        return None
