"""Tests for loop frames."""

import pytest

import tensorir as T
from tensorir import ArgumentShapeError, IRBuilder, Var
from tensorir._dtype import INT64
from tensorir._ir import Evaluate, For, ForKind, IntImm, IterVarKind, SeqStmt, Stmt, structural_equal


def _build(frame_factory, n_stmts: int = 1) -> Stmt:
    with IRBuilder() as ib:
        with T.prim_func():
            with frame_factory():
                for k in range(n_stmts):
                    T.evaluate(k)
    return ib.get().body


class TestSerial:
    def test_single_bound(self) -> None:
        loop = _build(lambda: T.serial(4))

        assert isinstance(loop, For)
        assert loop.min == IntImm(0)
        assert loop.extent == IntImm(4)
        assert loop.kind == ForKind.SERIAL
        assert loop.body == Evaluate(IntImm(0))

    def test_start_stop(self) -> None:
        loop = _build(lambda: T.serial(2, 10))

        assert loop.min == IntImm(2)
        assert loop.extent == IntImm(8)

    def test_symbolic_extent(self) -> None:
        n = Var("n")

        loop = _build(lambda: T.serial(n))

        assert loop.extent is n

    def test_loop_var_dtype_follows_bounds(self) -> None:
        loop = _build(lambda: T.serial(T.int64(16)))

        assert loop.loop_var.dtype == INT64

    def test_yields_loop_var(self) -> None:
        with IRBuilder() as ib:
            with T.serial(4) as i:
                T.evaluate(i)

        assert ib.get().loop_var is i

    def test_annotations(self) -> None:
        loop = _build(lambda: T.serial(4, annotations={"pragma_unroll": 1}))

        assert loop.annotations == (("pragma_unroll", 1),)

    def test_stop_before_start(self) -> None:
        with pytest.raises(ArgumentShapeError, match="smaller than start"):
            T.serial(8, 4)

    def test_non_integer_bounds(self) -> None:
        with pytest.raises(ArgumentShapeError, match="must be integers"):
            T.serial(0.5)

    def test_unconvertible_bounds(self) -> None:
        with pytest.raises(ArgumentShapeError, match="loop bounds"):
            T.serial(object())

    def test_body_sequence(self) -> None:
        loop = _build(lambda: T.serial(4), n_stmts=2)

        assert loop.body == SeqStmt((Evaluate(IntImm(0)), Evaluate(IntImm(1))))


class TestLoopKinds:
    @pytest.mark.parametrize(
        ("factory", "kind"),
        [
            (T.parallel, ForKind.PARALLEL),
            (T.vectorized, ForKind.VECTORIZED),
            (T.unroll, ForKind.UNROLLED),
        ],
    )
    def test_kind(self, factory, kind: ForKind) -> None:
        loop = _build(lambda: factory(8))

        assert loop.kind == kind
        assert loop.thread_binding is None

    def test_thread_binding(self) -> None:
        loop = _build(lambda: T.thread_binding(0, 32, "threadIdx.x"))

        assert loop.kind == ForKind.THREAD_BINDING
        assert loop.extent == IntImm(32)
        assert loop.thread_binding.kind == IterVarKind.THREAD_INDEX
        assert loop.thread_binding.thread_tag == "threadIdx.x"
        assert loop.thread_binding.dom is None

    def test_thread_binding_short_form(self) -> None:
        short = _build(lambda: T.thread_binding(32, "threadIdx.x"))
        full = _build(lambda: T.thread_binding(0, 32, thread="threadIdx.x"))

        assert structural_equal(short, full)

    def test_thread_binding_needs_tag(self) -> None:
        with pytest.raises(ArgumentShapeError, match="thread tag"):
            T.thread_binding(32)


class TestGrid:
    def test_nest_order(self) -> None:
        with IRBuilder() as ib:
            with T.grid(4, 8) as (i, j):
                T.evaluate(i + j)

        outer = ib.get()

        assert isinstance(outer, For)
        assert outer.loop_var is i
        assert outer.extent == IntImm(4)
        inner = outer.body
        assert isinstance(inner, For)
        assert inner.loop_var is j
        assert inner.extent == IntImm(8)

    def test_sequence_argument(self) -> None:
        assert structural_equal(_build(lambda: T.grid([4, 8])), _build(lambda: T.grid(4, 8)))

    def test_single_extent_equals_serial(self) -> None:
        assert structural_equal(_build(lambda: T.grid([16])), _build(lambda: T.serial(0, 16)))

    def test_single_extent_yields_var(self) -> None:
        with IRBuilder(), T.prim_func(), T.grid(16) as i:
            assert isinstance(i, Var)

    @pytest.mark.parametrize("args", [(), ([],)])
    def test_empty_grid_splices_body(self, args: tuple) -> None:
        with IRBuilder() as ib:
            with T.prim_func():
                T.evaluate(0)
                with T.grid(*args) as loop_vars:
                    assert loop_vars == []
                    T.evaluate(1)
                    T.evaluate(2)

        body = ib.get().body

        assert body == SeqStmt((Evaluate(IntImm(0)), Evaluate(IntImm(1)), Evaluate(IntImm(2))))

    def test_empty_grid_without_body(self) -> None:
        assert _build(lambda: T.grid(), n_stmts=0) == Evaluate(IntImm(0))
