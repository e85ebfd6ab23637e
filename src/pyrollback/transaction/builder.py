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
"""Transaction builder — fluent DSL for programmatic transaction creation.

Example::

    tx = (
        TransactionBuilder("order")
        .task("reserve").execute(reserve_fn).rollback(release_fn).add()
        .task("charge").execute(charge_fn).rollback(refund_fn).add()
        .include(shipping_transaction)
        .events(LoggerEventsAdapter())
        .build()
    )
"""

from __future__ import annotations

from pyrollback.transaction.function_task import FunctionTask, TaskFn
from pyrollback.transaction.ports import Task, TransactionEventsPort
from pyrollback.transaction.transaction import Transaction


class TaskBuilder:
    """Builder for a single function-backed task.

    Call :meth:`add` to finalise the task and return the parent
    :class:`TransactionBuilder` for continued chaining.
    """

    def __init__(self, name: str, parent: TransactionBuilder) -> None:
        self._name = name
        self._parent = parent
        self._execute_fn: TaskFn | None = None
        self._rollback_fn: TaskFn | None = None

    # ── Fluent setters ────────────────────────────────────────

    def execute(self, func: TaskFn) -> TaskBuilder:
        """Set the forward action for this task."""
        self._execute_fn = func
        return self

    def rollback(self, func: TaskFn) -> TaskBuilder:
        """Set the compensating action for this task."""
        self._rollback_fn = func
        return self

    # ── Finalisation ──────────────────────────────────────────

    def add(self) -> TransactionBuilder:
        """Finalise this task and return the parent builder for chaining."""
        if self._execute_fn is None:
            raise ValueError(f"Task '{self._name}' has no execute handler.")
        self._parent.include(
            FunctionTask(name=self._name, execute_fn=self._execute_fn, rollback_fn=self._rollback_fn)
        )
        return self._parent


class TransactionBuilder:
    """Fluent builder producing a :class:`Transaction`."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._tasks: list[Task] = []
        self._events: TransactionEventsPort | None = None

    def task(self, name: str) -> TaskBuilder:
        """Start defining a function-backed task called *name*."""
        return TaskBuilder(name, self)

    def include(self, *tasks: Task) -> TransactionBuilder:
        """Append ready-made tasks, including nested transactions."""
        self._tasks.extend(tasks)
        return self

    def events(self, events: TransactionEventsPort) -> TransactionBuilder:
        """Attach a lifecycle events sink."""
        self._events = events
        return self

    def build(self) -> Transaction:
        """Create the transaction with every task added so far."""
        transaction = Transaction(self._name, events=self._events)
        transaction.add(*self._tasks)
        return transaction
