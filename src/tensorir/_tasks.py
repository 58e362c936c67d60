"""Tuning-task extraction from a module.

The extractor deduplicates prim functions by structural equality, up to a
renaming of their variables (see :func:`~tensorir._ir.structural_key`). The weight
of a task is the number of graph-level calls that reach any function
structurally equal to the task's function. Say three functions ``fn1``,
``fn2`` and ``fn3`` are structurally equal and are called 5, 3 and 2 times:
one task is extracted, named after the first callee seen, with weight 10.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from ._ir import ExternFunc, GraphFunc, IRModule, PrimFunc, structural_key

logger = logging.getLogger(__name__)


class TaskSummary(BaseModel):
    """Serializable summary of an extracted task."""

    task_name: str
    target: str
    weight: int
    num_params: int


@dataclass(slots=True)
class ExtractedTask:
    """A tuning task: one distinct prim function and how often it is called.

    Attributes:
        task_name: Name of the first callee that produced this task.
        mod: A module holding the function under the name ``main``.
        target: The compilation target the task is extracted for.
        dispatched: Candidate modules for the task, initially just `mod`.
        weight: Number of calls to structurally equal functions.

    """

    task_name: str
    mod: IRModule
    target: str
    dispatched: list[IRModule] = field(default_factory=list)
    weight: int = 1

    @property
    def func(self) -> PrimFunc:
        func = self.mod.lookup("main")
        if not isinstance(func, PrimFunc):
            msg = f"Task '{self.task_name}' does not hold a prim function."
            raise TypeError(msg)
        return func

    def summary(self) -> TaskSummary:
        return TaskSummary(
            task_name=self.task_name,
            target=self.target,
            weight=self.weight,
            num_params=len(self.func.params),
        )


def _parse_mod(func: PrimFunc) -> IRModule:
    return IRModule.from_funcs({"main": func})


def extract_tasks(mod: IRModule, target: str) -> list[ExtractedTask]:
    """Extract deduplicated tuning tasks from the graph functions of `mod`.

    Args:
        mod: The module. Its graph functions are visited in module order and
            their calls in binding order.
        target: The compilation target recorded on each task.

    Returns:
        The tasks in the order their first call was seen.

    Raises:
        TypeError: If a call targets a graph function instead of a prim function.
        KeyError: If a call targets a name missing from the module.

    """
    tasks: list[ExtractedTask] = []
    func_to_task: dict[Any, ExtractedTask] = {}

    for global_var, func in mod.functions.items():
        if not isinstance(func, GraphFunc):
            continue
        logger.debug("Visiting graph function '%s'", global_var.name_hint)
        for call in func.bindings:
            if isinstance(call.callee, ExternFunc):
                logger.debug("  Skipping external call to '%s'", call.callee.global_symbol)
                continue
            callee = mod.lookup(call.callee)
            if not isinstance(callee, PrimFunc):
                msg = f"Call target '{call.callee.name_hint}' is not a prim function."
                raise TypeError(msg)

            key = structural_key(callee)
            task = func_to_task.get(key)
            if task is not None:
                task.weight += 1
                logger.debug("  Call to '%s' reuses task '%s'", call.callee.name_hint, task.task_name)
                continue

            task_mod = _parse_mod(callee)
            task = ExtractedTask(
                task_name=call.callee.name_hint,
                mod=task_mod,
                target=target,
                dispatched=[task_mod],
                weight=1,
            )
            tasks.append(task)
            func_to_task[key] = task
            logger.debug("  New task '%s'", task.task_name)

    return tasks
