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
"""Port protocols for the transaction engine.

These ``@runtime_checkable`` ``Protocol`` definitions form the boundary
between the engine and the code that plugs into it: the tasks it runs and
the observability sinks it reports to.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pyrollback.transaction.context import ResultContext


@runtime_checkable
class Task(Protocol):
    """A named unit of forward work plus its compensating action.

    Both methods may be plain functions or coroutines; the engine awaits the
    return value when it is awaitable.  A
    :class:`~pyrollback.transaction.transaction.Transaction` is itself a
    ``Task``, which is how transactions nest.
    """

    name: str

    def execute(self, context: ResultContext) -> Any | Awaitable[Any]:
        """Run the task and return its result.

        *context* holds the results of every task that completed before this
        one; it never contains this task's own result.
        """
        ...

    def rollback(self, context: ResultContext) -> None | Awaitable[None]:
        """Undo the effects of a successful :meth:`execute`."""
        ...


@runtime_checkable
class TransactionEventsPort(Protocol):
    """Port for emitting lifecycle events from the transaction engine.

    Adapters integrate with observability back-ends (metrics, tracing, audit
    logs) without coupling the engine to any specific vendor.
    """

    async def on_start(self, name: str, correlation_id: str) -> None:
        """Fired when a named transaction begins execution."""
        ...

    async def on_task_success(
        self,
        name: str,
        correlation_id: str,
        task_name: str,
        stage: int,
        latency_ms: float,
    ) -> None:
        """Fired when an individual task completes successfully."""
        ...

    async def on_task_failed(
        self,
        name: str,
        correlation_id: str,
        task_name: str,
        stage: int,
        error: Exception,
        latency_ms: float,
    ) -> None:
        """Fired when an individual task raises from ``execute``."""
        ...

    async def on_rolled_back(
        self,
        name: str,
        correlation_id: str,
        task_name: str,
        stage: int,
        error: Exception | None,
    ) -> None:
        """Fired after a task's rollback has been attempted.

        *error* is ``None`` when the rollback itself succeeded.
        """
        ...

    async def on_completed(self, name: str, correlation_id: str, success: bool) -> None:
        """Fired when ``execute`` finishes (committed or compensated)."""
        ...
