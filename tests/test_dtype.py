"""Tests for data types and the dtype cast helpers."""

import pytest

import tensorir as T
from tensorir._dtype import BOOL, FLOAT32, HANDLE, INT32, INT64, VOID, DataType, TypeCode
from tensorir._ir import Cast, FloatImm, IntImm, Var


class TestParse:
    def test_scalar(self) -> None:
        assert DataType.parse("float32") == DataType(TypeCode.FLOAT, 32)
        assert DataType.parse("int64") == INT64

    def test_vector(self) -> None:
        dtype = DataType.parse("int32x4")

        assert dtype.lanes == 4
        assert dtype.element_of() == INT32
        assert not dtype.is_scalar()

    def test_default_bits(self) -> None:
        assert DataType.parse("bool") == BOOL
        assert DataType.parse("handle") == HANDLE
        assert DataType.parse("void") == VOID
        assert DataType.parse("int") == INT32

    def test_passes_datatype_through(self) -> None:
        assert DataType.parse(FLOAT32) is FLOAT32

    @pytest.mark.parametrize("text", ["foo", "bool8", "int32x", ""])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ValueError, match="(?i)data type"):
            DataType.parse(text)


class TestStr:
    @pytest.mark.parametrize("text", ["int8", "uint16", "float64", "int32x8", "bool", "handle", "void"])
    def test_roundtrip(self, text: str) -> None:
        assert str(DataType.parse(text)) == text


class TestPredicates:
    def test_kinds(self) -> None:
        assert INT32.is_int()
        assert DataType.parse("uint8").is_uint()
        assert DataType.parse("bfloat16").is_float()
        assert BOOL.is_bool()
        assert HANDLE.is_handle()
        assert VOID.is_void()
        assert not FLOAT32.is_int()


class TestCastHelpers:
    def test_constant_is_folded(self) -> None:
        assert T.int32(5) == IntImm(5, INT32)
        assert T.float32(1) == FloatImm(1.0, FLOAT32)
        assert T.boolean(1) == IntImm(1, BOOL)

    def test_expression_is_wrapped(self) -> None:
        x = Var("x")

        assert T.int64(x) == Cast(INT64, x)

    def test_noop_cast_returns_input(self) -> None:
        x = Var("x")

        assert T.int32(x) is x

    def test_no_argument_creates_variable(self) -> None:
        var = T.float16()

        assert isinstance(var, Var)
        assert var.dtype == DataType.parse("float16")

    def test_vector_helper(self) -> None:
        assert T.int32x4().dtype == DataType.parse("int32x4")

    def test_helper_names(self) -> None:
        assert T.boolean.__name__ == "bool"
        assert T.uint8.__name__ == "uint8"
