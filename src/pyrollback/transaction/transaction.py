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
"""Transaction — runs tasks in order and compensates completed ones on failure."""

from __future__ import annotations

import logging
import time
from typing import Any

from pyrollback.kernel.exceptions import (
    EmptyTransactionException,
    InvalidStageException,
    RollbackException,
    TransactionAlreadyExecutedException,
    TransactionException,
    TransactionNotFinishedException,
)
from pyrollback.transaction.compensator import Compensator
from pyrollback.transaction.context import ResultContext
from pyrollback.transaction.events import CompositeEventsAdapter
from pyrollback.transaction.invoker import TaskInvoker
from pyrollback.transaction.ports import Task, TransactionEventsPort
from pyrollback.transaction.types import TransactionState

logger = logging.getLogger(__name__)


class Transaction:
    """An ordered group of tasks executed as a unit.

    Tasks run one at a time in the order they were added.  Each receives the
    :class:`ResultContext` holding the results of the tasks before it.  If a
    task raises, every task that already completed is rolled back in reverse
    order and :class:`TransactionException` is raised carrying the original
    failure plus any rollback failures.

    A ``Transaction`` satisfies the :class:`Task` protocol, so it can be added
    to another transaction.  The outer transaction then sees the inner one's
    :class:`ResultContext` under the inner transaction's name.

    Example::

        tx = Transaction("order")
        tx.add(reserve_stock, charge_card, ship)
        results = await tx.execute()
        results["charge_card"], results[0], results.final

    Args:
        name: Name of the transaction; used as its task name when nested.
        events: Optional lifecycle events sink.
        invoker: Invoker used to call task methods.
        compensator: Compensator used for the reverse rollback sweep.
    """

    def __init__(
        self,
        name: str,
        *,
        events: TransactionEventsPort | None = None,
        invoker: TaskInvoker | None = None,
        compensator: Compensator | None = None,
    ) -> None:
        self.name = name
        self._tasks: list[Task] = []
        self._state = TransactionState.NOT_STARTED
        self._results: ResultContext | None = None
        # Event sink failures are logged by the composite, never raised here.
        self._events = CompositeEventsAdapter(events) if events is not None else None
        self._invoker = invoker or TaskInvoker()
        self._compensator = compensator or Compensator(self._invoker, self._events)

    # ── registration ──────────────────────────────────────────

    def add(self, *tasks: Task) -> None:
        """Append one or more tasks, preserving call order."""
        self._tasks.extend(tasks)

    # ── read-only state ───────────────────────────────────────

    @property
    def state(self) -> TransactionState:
        """Current lifecycle state.

        ``RUNNING`` covers both the forward pass of :meth:`execute` and the
        sweep of a manual :meth:`rollback`, so either call made while the other
        is in progress is rejected with an invalid-operation error.
        """
        return self._state

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def results(self) -> ResultContext | None:
        """Results of the current run; ``None`` before execute and after a rollback."""
        return self._results

    def __repr__(self) -> str:
        return f"Transaction(name={self.name!r}, state={self._state.value}, tasks={len(self._tasks)})"

    # ── execute ───────────────────────────────────────────────

    async def execute(self, context: ResultContext | None = None) -> ResultContext:
        """Execute every task in registration order.

        *context* is accepted so a transaction can run as a task of another
        transaction; the tasks of this transaction only see its own results.

        If the awaiting task is cancelled while a task runs, the completed
        tasks are rolled back and the transaction is reset before the
        cancellation propagates unchanged.

        Returns:
            The :class:`ResultContext`, addressable by stage index and task
            name, with ``final`` set to the last task's result.

        Raises:
            EmptyTransactionException: If no task was added.
            TransactionAlreadyExecutedException: If the transaction is running
                or has already finished.
            TransactionException: If a task fails.  Completed tasks have been
                rolled back before this is raised.
        """
        if not self._tasks:
            raise EmptyTransactionException(self.name)
        if self._state is not TransactionState.NOT_STARTED:
            raise TransactionAlreadyExecutedException(self.name, self._state.value)

        self._state = TransactionState.RUNNING
        tasks = list(self._tasks)
        results = ResultContext()
        self._results = results
        stage = -1

        try:
            await self._emit("on_start", self.name, results.correlation_id)
            logger.debug(
                "Executing transaction '%s' with %d task(s) [correlation_id=%s]",
                self.name,
                len(tasks),
                results.correlation_id,
            )

            for task in tasks:
                started = time.perf_counter()
                try:
                    result = await self._invoker.invoke_execute(task, results)
                except Exception as cause:
                    latency_ms = (time.perf_counter() - started) * 1000
                    await self._emit(
                        "on_task_failed",
                        self.name,
                        results.correlation_id,
                        task.name,
                        stage + 1,
                        cause,
                        latency_ms,
                    )
                    logger.warning(
                        "Task '%s' of transaction '%s' failed: %s. Rolling back %d completed task(s).",
                        task.name,
                        self.name,
                        cause,
                        stage + 1,
                    )
                    rollback_errors = await self._unwind(tasks, stage, results)
                    raise TransactionException(
                        self.name,
                        cause,
                        rollback_errors,
                        results=results,
                        failed_task=task.name,
                        stage=stage + 1,
                    ) from cause

                stage = results.record(task.name, result)
                latency_ms = (time.perf_counter() - started) * 1000
                logger.debug("Task '%s' (stage %d) of transaction '%s' completed", task.name, stage, self.name)
                await self._emit(
                    "on_task_success",
                    self.name,
                    results.correlation_id,
                    task.name,
                    stage,
                    latency_ms,
                )
        except BaseException as interrupt:
            # Still RUNNING here means the run was interrupted from outside, e.g. cancelled.
            if self._state is TransactionState.RUNNING:
                logger.warning(
                    "Transaction '%s' interrupted (%s). Rolling back %d completed task(s).",
                    self.name,
                    type(interrupt).__name__,
                    stage + 1,
                )
                await self._unwind(tasks, stage, results)
            raise

        results.set_final(results[stage])
        self._state = TransactionState.FINISHED

        logger.info("Transaction '%s' finished [correlation_id=%s]", self.name, results.correlation_id)
        await self._emit("on_completed", self.name, results.correlation_id, True)
        return results

    async def _unwind(self, tasks: list[Task], stage: int, results: ResultContext) -> list[Exception]:
        """Roll back stages ``stage..0`` and reset the transaction."""
        try:
            return await self._compensator.rollback(self.name, tasks, stage, results)
        finally:
            self._reset()
            await self._emit("on_completed", self.name, results.correlation_id, False)

    # ── rollback ──────────────────────────────────────────────

    async def rollback(self, context: ResultContext | None = None, *, stage: int | None = None) -> None:
        """Roll back a finished transaction, last task first.

        The tasks receive this transaction's own :class:`ResultContext` from
        its successful run; *context* is accepted for :class:`Task`
        conformance when the transaction is nested.

        Args:
            context: The caller's context (unused by this transaction's tasks).
            stage: Highest stage to roll back, defaulting to the last task.
                ``-1`` rolls back nothing but still resets the transaction.

        Raises:
            TransactionNotFinishedException: If the transaction has not
                finished successfully.
            InvalidStageException: If *stage* is outside ``-1..len(tasks)-1``.
            RollbackException: If one or more task rollbacks failed.  Every
                task was still attempted.
        """
        if self._state is not TransactionState.FINISHED or self._results is None:
            raise TransactionNotFinishedException(self.name, self._state.value)

        last_stage = self._results.stage_count - 1
        if stage is None:
            stage = last_stage
        elif not -1 <= stage <= last_stage:
            raise InvalidStageException(self.name, stage, self._results.stage_count)

        results = self._results
        self._state = TransactionState.RUNNING
        logger.info("Rolling back transaction '%s' from stage %d", self.name, stage)

        try:
            errors = await self._compensator.rollback(self.name, self._tasks, stage, results)
        finally:
            self._reset()

        if errors:
            raise RollbackException(self.name, errors)

    # ── helpers ───────────────────────────────────────────────

    def _reset(self) -> None:
        self._state = TransactionState.NOT_STARTED
        self._results = None

    async def _emit(self, method: str, *args: Any) -> None:
        if self._events is not None:
            await getattr(self._events, method)(*args)
