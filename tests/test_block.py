"""Tests for block frames: regions, predicates, init and annotations."""

import pytest

import tensorir as T
from tensorir import ArgumentShapeError, DuplicateSettingError, IRBuilder, ScopeMismatchError
from tensorir._dtype import BOOL, FLOAT32
from tensorir._ir import LT, Block, BlockRealize, BufferRegion, BufferStore, FloatImm, IntImm, Range, Stmt


def _single_block(body: Stmt) -> BlockRealize:
    assert isinstance(body, BlockRealize)
    return body


class TestRegions:
    def test_reads_twice(self) -> None:
        A = T.buffer_decl((16,), name="A")
        with IRBuilder(), T.block("b"):
            T.reads(A)
            with pytest.raises(DuplicateSettingError, match="'reads' on block frame 'b'"):
                T.reads(A)

    def test_writes_twice(self) -> None:
        A = T.buffer_decl((16,), name="A")
        with IRBuilder(), T.block("b"):
            T.writes(A)
            with pytest.raises(DuplicateSettingError, match="'writes'"):
                T.writes(A)

    def test_reads_outside_block(self) -> None:
        A = T.buffer_decl((16,), name="A")
        with IRBuilder(), T.prim_func(), pytest.raises(ScopeMismatchError, match="requires an enclosing block"):
            T.reads(A)

    def test_reads_not_innermost(self) -> None:
        A = T.buffer_decl((16,), name="A")
        with IRBuilder(), T.block("b"), T.serial(4), pytest.raises(ScopeMismatchError, match="directly inside"):
            T.reads(A)

    def test_mixed_region_forms(self) -> None:
        A = T.buffer_decl((16,), name="A")
        B = T.buffer_decl((8,), name="B")
        with IRBuilder() as ib:
            with T.serial(16) as i:
                with T.block("b"):
                    T.reads([A[i], B, A[0:4]])

        block = _single_block(ib.get().body).block

        assert block.reads == (
            BufferRegion(A, (Range(i, IntImm(1)),)),
            BufferRegion.full(B),
            BufferRegion(A, (Range(IntImm(0), IntImm(4)),)),
        )
        assert block.writes == ()

    def test_invalid_region(self) -> None:
        with IRBuilder(), T.block("b"), pytest.raises(ArgumentShapeError, match="expected a BufferRegion"):
            T.reads(3)


class TestWhere:
    def test_predicate(self) -> None:
        with IRBuilder() as ib:
            with T.serial(128) as i:
                with T.block("b"):
                    T.where(i < 100)

        realize = _single_block(ib.get().body)

        assert realize.predicate == LT(i, IntImm(100), BOOL)

    def test_default_predicate(self) -> None:
        with IRBuilder() as ib:
            with T.block("b"):
                pass

        assert ib.get().predicate == IntImm(1, BOOL)

    def test_twice(self) -> None:
        with IRBuilder(), T.block("b"):
            T.where(True)
            with pytest.raises(DuplicateSettingError, match="predicate"):
                T.where(False)

    def test_outside_block(self) -> None:
        with IRBuilder(), T.prim_func(), pytest.raises(ScopeMismatchError):
            T.where(True)


class TestInit:
    def test_init_statement(self) -> None:
        A = T.buffer_decl((16,), name="A")
        C = T.buffer_decl((1,), name="C")
        with IRBuilder() as ib:
            with T.serial(16) as k:
                with T.block("sum"):
                    vk = T.axis.reduce(16, k)
                    with T.init():
                        T.buffer_store(C, 0.0, [0])
                    T.buffer_store(C, C[0] + A[vk], [0])

        block = _single_block(ib.get().body).block

        assert block.init == BufferStore(C, FloatImm(0.0, FLOAT32), (IntImm(0),))
        assert isinstance(block.body, BufferStore)

    def test_init_twice(self) -> None:
        with IRBuilder(), T.block("b"):
            with T.init():
                T.evaluate(0)
            with pytest.raises(DuplicateSettingError, match="already has an init"):
                T.init()

    def test_init_outside_block(self) -> None:
        with IRBuilder(), T.prim_func(), pytest.raises(ScopeMismatchError, match="block"):
            T.init()


class TestNoRealize:
    def test_bare_block(self) -> None:
        with IRBuilder() as ib:
            with T.prim_func():
                with T.block("root", no_realize=True):
                    T.evaluate(0)

        body = ib.get().body

        assert isinstance(body, Block)
        assert body.name_hint == "root"

    def test_rejects_bindings(self) -> None:
        with IRBuilder(), T.prim_func(), T.serial(4) as i:
            with pytest.raises(ArgumentShapeError, match="no_realize"), T.block("b", no_realize=True):
                T.axis.spatial(4, i)

    def test_rejects_predicate(self) -> None:
        with IRBuilder(), T.prim_func():
            with pytest.raises(ArgumentShapeError, match="predicate"), T.block("b", no_realize=True):
                T.where(True)


class TestBlockContents:
    def test_block_attr(self) -> None:
        with IRBuilder() as ib:
            with T.block("b"):
                T.block_attr({"b": [1, 2], "a": 1})

        block = ib.get().block

        assert block.annotations == (("a", 1), ("b", (1, 2)))

    def test_block_attr_freezes_sets(self) -> None:
        with IRBuilder() as ib:
            with T.block("b"):
                T.block_attr({"tags": {"x", "y"}})

        block = ib.get().block

        assert block.annotations == (("tags", frozenset({"x", "y"})),)
        assert isinstance(hash(block), int)

    def test_block_attr_unhashable_value(self) -> None:
        with IRBuilder(), T.block("b"):
            with pytest.raises(ArgumentShapeError, match="T.block_attr: Unhashable annotation value"):
                T.block_attr({"buf": bytearray(b"ab")})

    def test_block_attr_twice(self) -> None:
        with IRBuilder(), T.block("b"):
            T.block_attr({"a": 1})
            with pytest.raises(DuplicateSettingError, match="annotations"):
                T.block_attr({"a": 2})

    def test_alloc_buffer(self) -> None:
        with IRBuilder() as ib:
            with T.block("b"):
                local = T.alloc_buffer((4,), "float32", scope="local", name="local")

        block = ib.get().block

        assert block.alloc_buffers == (local,)
        assert local.scope() == "local"

    def test_match_buffer_region(self) -> None:
        A = T.buffer_decl((16,), name="A")
        with IRBuilder() as ib:
            with T.block("b"):
                sub = T.match_buffer(A[0:4], (4,))

        block = ib.get().block

        assert len(block.match_buffers) == 1
        assert block.match_buffers[0].buffer is sub
        assert block.match_buffers[0].source == BufferRegion(A, (Range(IntImm(0), IntImm(4)),))
        assert sub.name == "A_match"

    def test_match_buffer_needs_region(self) -> None:
        with IRBuilder(), T.block("b"), pytest.raises(ArgumentShapeError, match="BufferRegion"):
            T.match_buffer(T.Var("a"), (4,))

    def test_nested_blocks(self) -> None:
        with IRBuilder() as ib:
            with T.block("outer"):
                with T.block("inner"):
                    T.evaluate(0)

        outer = ib.get().block

        assert isinstance(outer.body, BlockRealize)
        assert outer.body.block.name_hint == "inner"
