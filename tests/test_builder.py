"""Tests for the IRBuilder context and its frame stack."""

import threading

import pytest

import tensorir as T
from tensorir import IRBuilder, IRBuilderError, PrimFunc, ScopeMismatchError, UnclosedScopeError
from tensorir._builder import active_builder
from tensorir._ir import Evaluate, For, IntImm, SeqStmt, TupleType


class TestBuilderContext:
    def test_empty_function(self) -> None:
        with IRBuilder() as ib:
            with T.prim_func():
                pass

        func = ib.get()

        assert isinstance(func, PrimFunc)
        assert func.params == ()
        assert func.body == Evaluate(IntImm(0))
        assert func.ret_type == TupleType()

    def test_active_only_inside_with(self) -> None:
        assert active_builder() is None
        with IRBuilder() as ib:
            assert active_builder() is ib
        assert active_builder() is None

    def test_nested_builder_rejected(self) -> None:
        with IRBuilder() as ib:
            with pytest.raises(ScopeMismatchError, match="another one is active"), IRBuilder():
                pass
            assert active_builder() is ib

    def test_sequential_builders_are_independent(self) -> None:
        with IRBuilder() as first:
            with T.prim_func():
                T.func_name("first")
        with IRBuilder() as second:
            with T.prim_func():
                T.func_name("second")

        assert first.get().name == "first"
        assert second.get().name == "second"

    def test_get_before_result(self) -> None:
        with IRBuilder() as ib:
            assert not ib.is_defined
            with pytest.raises(IRBuilderError, match="not produced a result"):
                ib.get()

    def test_second_outermost_frame_rejected(self) -> None:
        with IRBuilder() as ib:
            with T.prim_func():
                pass
            with pytest.raises(IRBuilderError, match="already produced"), T.prim_func():
                pass

        assert ib.is_defined

    def test_unclosed_frame(self) -> None:
        with pytest.raises(UnclosedScopeError, match="prim_func"), IRBuilder():
            T.prim_func().__enter__()

    def test_frames_outside_builder(self) -> None:
        with pytest.raises(ScopeMismatchError, match="active IRBuilder"), T.prim_func():
            pass

    def test_leaf_outside_builder(self) -> None:
        with pytest.raises(ScopeMismatchError, match="T.func_name must be used inside an active IRBuilder"):
            T.func_name("main")


class TestThreadIsolation:
    def test_builders_on_separate_threads(self) -> None:
        seen: dict[str, object] = {}

        def build_on_worker() -> None:
            seen["active_at_start"] = active_builder()
            with IRBuilder() as worker_ib:
                with T.prim_func():
                    T.func_name("worker")
                    seen["worker_frames"] = len(worker_ib.frames)
            seen["worker_result"] = worker_ib.get()

        with IRBuilder() as ib:
            with T.prim_func(), T.serial(4):
                worker = threading.Thread(target=build_on_worker)
                worker.start()
                worker.join()

                assert len(ib.frames) == 2
                assert active_builder() is ib

        assert seen["active_at_start"] is None
        assert seen["worker_frames"] == 1
        worker_result = seen["worker_result"]
        assert isinstance(worker_result, PrimFunc)
        assert worker_result.name == "worker"
        assert ib.get().name is None
        assert isinstance(ib.get().body, For)


class TestFrameStack:
    def test_push_pop_balance(self) -> None:
        with IRBuilder() as ib:
            with T.prim_func():
                assert len(ib.frames) == 1
                with T.serial(4):
                    assert len(ib.frames) == 2
                assert len(ib.frames) == 1
            assert ib.frames == []

    def test_close_out_of_order(self) -> None:
        with IRBuilder() as ib:
            outer = T.prim_func()
            outer.__enter__()
            inner = T.serial(4)
            inner.__enter__()

            with pytest.raises(ScopeMismatchError, match="not the innermost"):
                outer.__exit__(None, None, None)

            inner.__exit__(None, None, None)
            outer.__exit__(None, None, None)

        assert isinstance(ib.get(), PrimFunc)

    def test_body_preserves_call_order(self) -> None:
        with IRBuilder() as ib:
            with T.prim_func():
                T.evaluate(1)
                with T.serial(2):
                    T.evaluate(2)
                T.evaluate(3)

        body = ib.get().body

        assert isinstance(body, SeqStmt)
        assert body.seq[0] == Evaluate(IntImm(1))
        assert isinstance(body.seq[1], For)
        assert body.seq[2] == Evaluate(IntImm(3))

    def test_statement_frame_as_result(self) -> None:
        with IRBuilder() as ib:
            with T.serial(4) as i:
                T.evaluate(i)

        loop = ib.get()

        assert isinstance(loop, For)
        assert loop.body == Evaluate(i)

    def test_failed_scope_is_discarded(self) -> None:
        with IRBuilder() as ib:
            with T.prim_func():
                with pytest.raises(RuntimeError, match="boom"), T.serial(4):
                    T.evaluate(0)
                    msg = "boom"
                    raise RuntimeError(msg)
                T.evaluate(1)

        assert ib.get().body == Evaluate(IntImm(1))
        assert ib.frames == []

    def test_leaf_without_open_frame(self) -> None:
        with IRBuilder(), pytest.raises(ScopeMismatchError, match="requires an open frame"):
            T.evaluate(0)
