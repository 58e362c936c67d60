"""A small network of tensor functions.

Run ``tensorir tasks examples/matmul.py`` to list its tuning tasks.
"""

import tensorir as T
from tensorir import CallTIR, ExternFunc, GlobalVar, GraphFunc, IRBuilder, IRModule, PrimFunc


def matmul(m: int, n: int, k: int) -> PrimFunc:
    with IRBuilder() as ib:
        with T.prim_func():
            T.func_name("matmul")
            T.func_attr({"tir.noalias": True})
            A = T.arg("A", T.buffer_decl((m, k), "float32", name="A"))
            B = T.arg("B", T.buffer_decl((k, n), "float32", name="B"))
            C = T.arg("C", T.buffer_decl((m, n), "float32", name="C"))
            with T.grid(m, n, k) as (i, j, r):
                with T.block("C"):
                    vi, vj, vk = T.axis.remap("SSR", [i, j, r])
                    T.reads(A[vi, vk], B[vk, vj])
                    T.writes(C[vi, vj])
                    with T.init():
                        T.buffer_store(C, 0.0, [vi, vj])
                    T.buffer_store(C, C[vi, vj] + A[vi, vk] * B[vk, vj], [vi, vj])
    return ib.get()


def relu(m: int, n: int) -> PrimFunc:
    with IRBuilder() as ib:
        with T.prim_func():
            T.func_name("relu")
            A = T.arg("A", T.buffer_decl((m, n), "float32", name="A"))
            B = T.arg("B", T.buffer_decl((m, n), "float32", name="B"))
            with T.grid(m, n) as (i, j):
                with T.block("B"):
                    vi, vj = T.axis.remap("SS", [i, j])
                    with T.If(A[vi, vj] > 0.0):
                        with T.Then():
                            T.buffer_store(B, A[vi, vj], [vi, vj])
                        with T.Else():
                            T.buffer_store(B, 0.0, [vi, vj])
    return ib.get()


def scale_gpu(n: int) -> PrimFunc:
    with IRBuilder() as ib:
        with T.prim_func():
            T.func_name("scale_gpu")
            A = T.arg("A", T.buffer_decl((n,), "float32", name="A"))
            with T.thread_binding(n // 32, "blockIdx.x") as bx:
                with T.thread_binding(32, "threadIdx.x") as tx:
                    with T.block("A"):
                        vi = T.axis.spatial(n, bx * 32 + tx)
                        T.buffer_store(A, A[vi] * 2.0, [vi])
    return ib.get()


mod = IRModule.from_funcs(
    {
        "dense0": matmul(128, 128, 64),
        "relu0": relu(128, 128),
        "dense1": matmul(128, 128, 64),
        "relu1": relu(128, 128),
        "dense2": matmul(128, 10, 128),
        "scale": scale_gpu(1024),
        "main": GraphFunc(
            (
                CallTIR(GlobalVar("dense0")),
                CallTIR(GlobalVar("relu0")),
                CallTIR(GlobalVar("dense1")),
                CallTIR(GlobalVar("relu1")),
                CallTIR(ExternFunc("softmax")),
                CallTIR(GlobalVar("dense2")),
                CallTIR(GlobalVar("scale")),
            ),
        ),
    },
)
