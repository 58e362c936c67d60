"""Scoped builder for tensor-level IR functions."""

__all__ = [
    "ArgumentShapeError",
    "Assert",
    "Buffer",
    "BufferRegion",
    "CallTIR",
    "DataType",
    "DuplicateSettingError",
    "Else",
    "ExternFunc",
    "ExtractedTask",
    "GlobalVar",
    "GraphFunc",
    "IRBuilder",
    "IRBuilderError",
    "IRModule",
    "If",
    "Let",
    "PairingError",
    "PrimFunc",
    "Range",
    "ScopeMismatchError",
    "TaskSummary",
    "Then",
    "UnclosedScopeError",
    "Var",
    "While",
    "alloc_buffer",
    "allocate",
    "allocate_const",
    "arg",
    "attr",
    "axis",
    "block",
    "block_attr",
    "boolean",
    "buffer_decl",
    "buffer_store",
    "env_thread",
    "evaluate",
    "extract_tasks",
    "float8",
    "float16",
    "float32",
    "float64",
    "func_attr",
    "func_name",
    "func_ret",
    "grid",
    "handle",
    "init",
    "int8",
    "int16",
    "int32",
    "int32x4",
    "int32x8",
    "int32x16",
    "int64",
    "launch_thread",
    "match_buffer",
    "parallel",
    "preflattened_buffer",
    "prefetch",
    "prim_func",
    "ptr",
    "reads",
    "realize",
    "serial",
    "structural_equal",
    "structural_hash",
    "thread_binding",
    "uint8",
    "uint16",
    "uint32",
    "uint64",
    "unroll",
    "vectorized",
    "void",
    "where",
    "writes",
]

from . import axis
from ._builder import IRBuilder
from ._dtype import DataType
from ._errors import (
    ArgumentShapeError,
    DuplicateSettingError,
    IRBuilderError,
    PairingError,
    ScopeMismatchError,
    UnclosedScopeError,
)
from ._ir import (
    Buffer,
    BufferRegion,
    CallTIR,
    ExternFunc,
    GlobalVar,
    GraphFunc,
    IRModule,
    PrimFunc,
    Range,
    Var,
    structural_equal,
    structural_hash,
)
from ._ops import (
    boolean,
    buffer_decl,
    float8,
    float16,
    float32,
    float64,
    handle,
    int8,
    int16,
    int32,
    int32x4,
    int32x8,
    int32x16,
    int64,
    ptr,
    uint8,
    uint16,
    uint32,
    uint64,
    void,
)
from ._scopes import (
    Assert,
    Else,
    If,
    Let,
    Then,
    While,
    allocate,
    allocate_const,
    attr,
    block,
    env_thread,
    grid,
    init,
    launch_thread,
    parallel,
    prim_func,
    realize,
    serial,
    thread_binding,
    unroll,
    vectorized,
)
from ._statements import (
    alloc_buffer,
    arg,
    block_attr,
    buffer_store,
    evaluate,
    func_attr,
    func_name,
    func_ret,
    match_buffer,
    preflattened_buffer,
    prefetch,
    reads,
    where,
    writes,
)
from ._tasks import ExtractedTask, TaskSummary, extract_tasks
