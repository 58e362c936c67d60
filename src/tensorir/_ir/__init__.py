"""Immutable IR node types.

These are the values the builder assembles. Every node is a frozen dataclass.
Variables compare by identity; structural_equal and structural_hash compare
nodes up to a renaming of their variables, which is also how PrimFunc
implements == and hash().

Key types:
- PrimExpr and its subclasses: primitive expressions
- Buffer, BufferRegion: memory views
- Stmt and its subclasses: statements, including Block/BlockRealize
- PrimFunc: a sealed primitive function
- IRModule: named functions collected into one program unit
"""

from ._buffer import Buffer, BufferRegion, BufferType, MatchBufferRegion
from ._expr import (
    EQ,
    GE,
    GT,
    LE,
    LT,
    NE,
    Add,
    And,
    BinaryOp,
    BufferLoad,
    Call,
    Cast,
    Div,
    FloatImm,
    FloorDiv,
    FloorMod,
    IntImm,
    IterVar,
    IterVarKind,
    Max,
    Min,
    Mul,
    Not,
    Or,
    PrimExpr,
    Range,
    StringImm,
    Sub,
    Var,
    cast,
    const_int,
    convert,
)
from ._function import CallTIR, ExternFunc, GlobalVar, GraphFunc, IRModule, PrimFunc
from ._stmt import (
    Allocate,
    AllocateConst,
    AssertStmt,
    AttrStmt,
    Block,
    BlockRealize,
    BufferRealize,
    BufferStore,
    Evaluate,
    For,
    ForKind,
    IfThenElse,
    LetStmt,
    Prefetch,
    SeqStmt,
    Stmt,
    While,
    as_stmt,
    freeze_annotations,
    require_hashable,
)
from ._structural import structural_equal, structural_hash, structural_key
from ._type import PointerType, PrimType, TupleType

__all__ = [
    "EQ",
    "GE",
    "GT",
    "LE",
    "LT",
    "NE",
    "Add",
    "Allocate",
    "AllocateConst",
    "And",
    "AssertStmt",
    "AttrStmt",
    "BinaryOp",
    "Block",
    "BlockRealize",
    "Buffer",
    "BufferLoad",
    "BufferRealize",
    "BufferRegion",
    "BufferStore",
    "BufferType",
    "Call",
    "CallTIR",
    "Cast",
    "Div",
    "Evaluate",
    "ExternFunc",
    "FloatImm",
    "FloorDiv",
    "FloorMod",
    "For",
    "ForKind",
    "GlobalVar",
    "GraphFunc",
    "IRModule",
    "IfThenElse",
    "IntImm",
    "IterVar",
    "IterVarKind",
    "LetStmt",
    "MatchBufferRegion",
    "Max",
    "Min",
    "Mul",
    "Not",
    "Or",
    "PointerType",
    "Prefetch",
    "PrimExpr",
    "PrimFunc",
    "PrimType",
    "Range",
    "SeqStmt",
    "Stmt",
    "StringImm",
    "Sub",
    "TupleType",
    "Var",
    "While",
    "as_stmt",
    "cast",
    "const_int",
    "convert",
    "freeze_annotations",
    "require_hashable",
    "structural_equal",
    "structural_hash",
    "structural_key",
]
