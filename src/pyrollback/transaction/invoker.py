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
"""Task invoker — call task methods whether they are sync or async."""

from __future__ import annotations

import inspect
from typing import Any

from pyrollback.transaction.context import ResultContext
from pyrollback.transaction.ports import Task


class TaskInvoker:
    """Invokes ``execute`` and ``rollback`` on tasks, awaiting when needed."""

    async def invoke_execute(self, task: Task, context: ResultContext) -> Any:
        """Run *task* against *context* and return its result."""
        return await self._call(task.execute(context))

    async def invoke_rollback(self, task: Task, context: ResultContext) -> None:
        """Run *task*'s compensation against *context*."""
        await self._call(task.rollback(context))

    @staticmethod
    async def _call(outcome: Any) -> Any:
        # Plain functions have already run; coroutines and futures still need awaiting.
        if inspect.isawaitable(outcome):
            return await outcome
        return outcome
