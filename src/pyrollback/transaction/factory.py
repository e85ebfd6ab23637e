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
"""Transaction factory — builds transactions wired from configuration."""

from __future__ import annotations

import logging

from pyrollback.core.config import Config
from pyrollback.transaction.events import CompositeEventsAdapter, LoggerEventsAdapter
from pyrollback.transaction.ports import Task, TransactionEventsPort
from pyrollback.transaction.properties import TransactionProperties
from pyrollback.transaction.transaction import Transaction

_logger = logging.getLogger(__name__)


class TransactionFactory:
    """Creates :class:`Transaction` instances sharing one events configuration.

    When ``events_enabled`` is set, every transaction reports to a
    :class:`LoggerEventsAdapter`, followed by *events* if one is supplied.

    Args:
        properties: Engine configuration; defaults apply when omitted.
        events: Additional events sink (metrics, tracing, audit).
    """

    def __init__(
        self,
        properties: TransactionProperties | None = None,
        events: TransactionEventsPort | None = None,
    ) -> None:
        self._properties = properties or TransactionProperties()
        self._events = self._build_events(self._properties, events)

    @classmethod
    def from_config(cls, config: Config, events: TransactionEventsPort | None = None) -> TransactionFactory:
        """Bind :class:`TransactionProperties` from *config* and build a factory."""
        return cls(config.bind(TransactionProperties), events)

    @property
    def properties(self) -> TransactionProperties:
        return self._properties

    @property
    def events(self) -> TransactionEventsPort | None:
        return self._events

    def create(self, name: str, *tasks: Task) -> Transaction:
        """Create a transaction called *name*, pre-loaded with *tasks*."""
        transaction = Transaction(name, events=self._events)
        transaction.add(*tasks)
        return transaction

    @staticmethod
    def _build_events(
        properties: TransactionProperties,
        extra: TransactionEventsPort | None,
    ) -> TransactionEventsPort | None:
        adapters: list[TransactionEventsPort] = []
        if properties.events_enabled:
            adapters.append(LoggerEventsAdapter(properties.event_logger))
        if extra is not None:
            adapters.append(extra)

        if not adapters:
            _logger.debug("Transaction events disabled")
            return None
        if len(adapters) == 1:
            return adapters[0]
        return CompositeEventsAdapter(*adapters)
