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
"""Compensator -- rolls back completed tasks in reverse order.

Every task from the given stage down to stage 0 gets exactly one rollback
attempt.  A failing rollback never stops the sweep: its exception is
collected and the sweep moves on to the previous task.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from pyrollback.transaction.invoker import TaskInvoker

if TYPE_CHECKING:
    from pyrollback.transaction.context import ResultContext
    from pyrollback.transaction.ports import Task, TransactionEventsPort

logger = logging.getLogger(__name__)


class Compensator:
    """Executes the reverse compensation sweep for a transaction."""

    def __init__(
        self,
        invoker: TaskInvoker | None = None,
        events_port: TransactionEventsPort | None = None,
    ) -> None:
        self._invoker = invoker or TaskInvoker()
        self._events_port = events_port

    async def rollback(
        self,
        name: str,
        tasks: Sequence[Task],
        stage: int,
        context: ResultContext,
    ) -> list[Exception]:
        """Roll back ``tasks[stage]`` down to ``tasks[0]``.

        Returns:
            The rollback failures in the order they were attempted.  An empty
            list means every compensation succeeded.
        """
        errors: list[Exception] = []

        for index in range(stage, -1, -1):
            task = tasks[index]
            try:
                await self._invoker.invoke_rollback(task, context)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Rollback of task '%s' (stage %d) in transaction '%s' failed: %s",
                    task.name,
                    index,
                    name,
                    exc,
                )
                errors.append(exc)
                await self._emit_rolled_back(name, task.name, index, context, exc)
            else:
                logger.debug("Rolled back task '%s' (stage %d) in transaction '%s'", task.name, index, name)
                await self._emit_rolled_back(name, task.name, index, context, None)

        return errors

    async def _emit_rolled_back(
        self,
        name: str,
        task_name: str,
        stage: int,
        context: ResultContext,
        error: Exception | None,
    ) -> None:
        """Emit an ``on_rolled_back`` event if the events port is configured."""
        if self._events_port is not None:
            await self._events_port.on_rolled_back(
                name, context.correlation_id, task_name, stage, error,
            )
