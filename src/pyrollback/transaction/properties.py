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
"""Transaction engine configuration properties.

YAML structure::

    pyrollback:
      transaction:
        events_enabled: true
        event_logger: pyrollback.transaction.events
"""

from __future__ import annotations

from dataclasses import dataclass

from pyrollback.core.config import config_properties
from pyrollback.transaction.events import DEFAULT_EVENT_LOGGER


@config_properties(prefix="pyrollback.transaction")
@dataclass
class TransactionProperties:
    """Configuration for transactions created by :class:`TransactionFactory`."""

    events_enabled: bool = True
    event_logger: str = DEFAULT_EVENT_LOGGER
