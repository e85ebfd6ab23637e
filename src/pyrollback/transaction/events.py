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
"""Observability adapters for transaction lifecycle events.

This module provides two ``TransactionEventsPort`` implementations:

* :class:`LoggerEventsAdapter` -- writes a log message for every lifecycle
  event emitted by the transaction engine.
* :class:`CompositeEventsAdapter` -- fans-out each event to an ordered
  sequence of child adapters, absorbing individual adapter failures so that
  one broken sink never silences the others.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pyrollback.transaction.ports import TransactionEventsPort

_logger = logging.getLogger("pyrollback.transaction.events")

DEFAULT_EVENT_LOGGER = "pyrollback.transaction.events"


# ---------------------------------------------------------------------------
# LoggerEventsAdapter
# ---------------------------------------------------------------------------


class LoggerEventsAdapter:
    """Logs transaction lifecycle events via the standard ``logging`` module.

    Successful operations log at ``INFO``; task and rollback failures log at
    ``WARNING``.

    Args:
        logger_name: Name of the logger the messages are written to.
    """

    def __init__(self, logger_name: str = DEFAULT_EVENT_LOGGER) -> None:
        self._logger = logging.getLogger(logger_name)

    async def on_start(self, name: str, correlation_id: str) -> None:
        self._logger.info("Transaction '%s' started [correlation_id=%s]", name, correlation_id)

    async def on_task_success(
        self,
        name: str,
        correlation_id: str,
        task_name: str,
        stage: int,
        latency_ms: float,
    ) -> None:
        self._logger.info(
            "Task '%s' succeeded [transaction=%s, stage=%d, latency=%.1fms]",
            task_name,
            name,
            stage,
            latency_ms,
        )

    async def on_task_failed(
        self,
        name: str,
        correlation_id: str,
        task_name: str,
        stage: int,
        error: Exception,
        latency_ms: float,
    ) -> None:
        self._logger.warning(
            "Task '%s' failed [transaction=%s, stage=%d, latency=%.1fms]: %s",
            task_name,
            name,
            stage,
            latency_ms,
            error,
        )

    async def on_rolled_back(
        self,
        name: str,
        correlation_id: str,
        task_name: str,
        stage: int,
        error: Exception | None,
    ) -> None:
        if error is None:
            self._logger.info("Task '%s' rolled back [transaction=%s, stage=%d]", task_name, name, stage)
        else:
            self._logger.warning(
                "Task '%s' rollback failed [transaction=%s, stage=%d]: %s", task_name, name, stage, error
            )

    async def on_completed(self, name: str, correlation_id: str, success: bool) -> None:
        self._logger.info(
            "Transaction '%s' completed [correlation_id=%s, success=%s]",
            name,
            correlation_id,
            success,
        )


# ---------------------------------------------------------------------------
# CompositeEventsAdapter
# ---------------------------------------------------------------------------


class CompositeEventsAdapter:
    """Broadcasts transaction events to multiple ``TransactionEventsPort`` adapters.

    If an individual adapter raises an exception, the error is logged and
    the remaining adapters still receive the event.

    Args:
        *adapters: One or more :class:`TransactionEventsPort` implementations
            to broadcast events to.
    """

    def __init__(self, *adapters: TransactionEventsPort) -> None:
        self._adapters: Sequence[TransactionEventsPort] = adapters

    @property
    def adapters(self) -> tuple[TransactionEventsPort, ...]:
        return tuple(self._adapters)

    # -- internal broadcast helper ------------------------------------------

    async def _broadcast(self, method: str, *args: object, **kwargs: object) -> None:
        for adapter in self._adapters:
            try:
                await getattr(adapter, method)(*args, **kwargs)
            except Exception:
                _logger.error(
                    "Events adapter %r failed on %s",
                    adapter,
                    method,
                    exc_info=True,
                )

    # -- TransactionEventsPort interface ------------------------------------

    async def on_start(self, name: str, correlation_id: str) -> None:
        await self._broadcast("on_start", name, correlation_id)

    async def on_task_success(
        self,
        name: str,
        correlation_id: str,
        task_name: str,
        stage: int,
        latency_ms: float,
    ) -> None:
        await self._broadcast(
            "on_task_success",
            name,
            correlation_id,
            task_name,
            stage,
            latency_ms=latency_ms,
        )

    async def on_task_failed(
        self,
        name: str,
        correlation_id: str,
        task_name: str,
        stage: int,
        error: Exception,
        latency_ms: float,
    ) -> None:
        await self._broadcast(
            "on_task_failed",
            name,
            correlation_id,
            task_name,
            stage,
            error=error,
            latency_ms=latency_ms,
        )

    async def on_rolled_back(
        self,
        name: str,
        correlation_id: str,
        task_name: str,
        stage: int,
        error: Exception | None,
    ) -> None:
        await self._broadcast("on_rolled_back", name, correlation_id, task_name, stage, error=error)

    async def on_completed(self, name: str, correlation_id: str, success: bool) -> None:
        await self._broadcast("on_completed", name, correlation_id, success=success)
