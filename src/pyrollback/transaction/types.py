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
"""Shared types for the pyrollback.transaction module."""

from __future__ import annotations

from enum import StrEnum


class TransactionState(StrEnum):
    """Lifecycle state of a :class:`~pyrollback.transaction.transaction.Transaction`.

    ``NOT_STARTED -> RUNNING`` on entry to ``execute``; ``RUNNING -> FINISHED``
    once every task succeeds. Any compensation, whether triggered by a failing
    task or requested directly, returns the transaction to ``NOT_STARTED``.
    """

    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
