"""Functions and modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ._stmt import Annotations, Stmt
from ._structural import structural_equal, structural_hash
from ._type import TupleType

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from ._buffer import Buffer
    from ._expr import PrimExpr, Var
    from ._type import Type


@dataclass(frozen=True, slots=True, eq=False)
class PrimFunc:
    """A sealed primitive function.

    Functions compare and hash structurally, up to a renaming of their
    variables, so two functions built by the same declarative sequence are
    equal.

    Attributes:
        params: Positional parameters, in binding order.
        body: The function body.
        ret_type: The return type, void by default.
        buffer_map: Pairs of (parameter, buffer bound to that parameter).
        preflattened_buffer_map: Pairs of (parameter, pre-flattening buffer view).
        attrs: Function attributes, including ``global_symbol`` when named.

    """

    params: tuple[Var, ...]
    body: Stmt
    ret_type: Type = field(default_factory=TupleType)
    buffer_map: tuple[tuple[Var, Buffer], ...] = ()
    preflattened_buffer_map: tuple[tuple[Var, Buffer], ...] = ()
    attrs: Annotations = ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrimFunc):
            return NotImplemented
        return structural_equal(self, other)

    def __hash__(self) -> int:
        return structural_hash(self)

    @property
    def name(self) -> str | None:
        return self.get_attr("global_symbol")

    def get_attr(self, key: str, default: Any = None) -> Any:
        for attr_key, value in self.attrs:
            if attr_key == key:
                return value
        return default

    def buffer_of(self, param: Var) -> Buffer | None:
        """Return the buffer bound to `param`, if any."""
        for var, buffer in self.buffer_map:
            if var is param:
                return buffer
        return None


@dataclass(frozen=True, slots=True)
class GlobalVar:
    """The name under which a function is registered in a module."""

    name_hint: str


@dataclass(frozen=True, slots=True)
class ExternFunc:
    """An external function that is not defined in the module."""

    global_symbol: str


@dataclass(frozen=True, slots=True)
class CallTIR:
    """A graph-level call of a primitive function (or an external function)."""

    callee: GlobalVar | ExternFunc
    args: tuple[PrimExpr, ...] = ()


@dataclass(frozen=True, slots=True)
class GraphFunc:
    """A graph-level function in A-normal form: an ordered list of calls."""

    bindings: tuple[CallTIR, ...] = ()


type BaseFunc = PrimFunc | GraphFunc


@dataclass(slots=True)
class IRModule:
    """An ordered collection of named functions."""

    functions: dict[GlobalVar, BaseFunc] = field(default_factory=dict)

    @classmethod
    def from_funcs(cls, funcs: Mapping[str, BaseFunc]) -> IRModule:
        mod = cls()
        for name, func in funcs.items():
            mod.add(name, func)
        return mod

    def add(self, name: str, func: BaseFunc) -> GlobalVar:
        """Register `func` under `name`."""
        global_var = GlobalVar(name)
        if global_var in self.functions:
            msg = f"Function with name '{name}' already exists in the module."
            raise KeyError(msg)
        self.functions[global_var] = func
        return global_var

    def get_global_var(self, name: str) -> GlobalVar:
        global_var = GlobalVar(name)
        if global_var not in self.functions:
            msg = f"Function '{name}' not found in the module."
            raise KeyError(msg)
        return global_var

    def lookup(self, global_var: GlobalVar | str) -> BaseFunc:
        if isinstance(global_var, str):
            global_var = self.get_global_var(global_var)
        try:
            return self.functions[global_var]
        except KeyError as e:
            msg = f"Function '{global_var.name_hint}' not found in the module."
            raise KeyError(msg) from e

    def prim_funcs(self) -> Iterator[tuple[GlobalVar, PrimFunc]]:
        for global_var, func in self.functions.items():
            if isinstance(func, PrimFunc):
                yield global_var, func

    def __len__(self) -> int:
        return len(self.functions)

    def __contains__(self, name: object) -> bool:
        if isinstance(name, str):
            name = GlobalVar(name)
        return name in self.functions
