# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Function-backed tasks.

:class:`FunctionTask` adapts a pair of callables to the :class:`Task`
protocol, and :func:`task` does the same as a decorator::

    async def release(ctx):
        await inventory.release(ctx["reserve"])

    @task("reserve", rollback=release)
    async def reserve(ctx):
        return await inventory.reserve(sku, qty)

    tx.add(reserve)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pyrollback.transaction.context import ResultContext

TaskFn = Callable[[ResultContext], Any]


@dataclass(frozen=True)
class FunctionTask:
    """A :class:`Task` whose behaviour is supplied as callables.

    Both callables take the :class:`ResultContext` and may be plain functions
    or coroutine functions.  Without *rollback_fn* the rollback is a no-op.
    """

    name: str
    execute_fn: TaskFn
    rollback_fn: TaskFn | None = None

    def execute(self, context: ResultContext) -> Any:
        return self.execute_fn(context)

    def rollback(self, context: ResultContext) -> Any:
        if self.rollback_fn is None:
            return None
        return self.rollback_fn(context)


def task(name: str, rollback: TaskFn | None = None) -> Callable[[TaskFn], FunctionTask]:
    """Turn the decorated function into a :class:`FunctionTask` named *name*.

    Args:
        name: Task name; its result is stored under this key.
        rollback: Optional compensation callable.
    """

    def decorator(func: TaskFn) -> FunctionTask:
        return FunctionTask(name=name, execute_fn=func, rollback_fn=rollback)

    return decorator
