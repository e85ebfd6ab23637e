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
"""pyrollback Transaction — ordered tasks with automatic reverse compensation."""

from __future__ import annotations

from pyrollback.transaction.builder import TaskBuilder, TransactionBuilder
from pyrollback.transaction.compensator import Compensator
from pyrollback.transaction.context import ResultContext
from pyrollback.transaction.events import CompositeEventsAdapter, LoggerEventsAdapter
from pyrollback.transaction.factory import TransactionFactory
from pyrollback.transaction.function_task import FunctionTask, task
from pyrollback.transaction.invoker import TaskInvoker
from pyrollback.transaction.ports import Task, TransactionEventsPort
from pyrollback.transaction.properties import TransactionProperties
from pyrollback.transaction.transaction import Transaction
from pyrollback.transaction.types import TransactionState

__all__ = [
    "Compensator",
    "CompositeEventsAdapter",
    "FunctionTask",
    "LoggerEventsAdapter",
    "ResultContext",
    "Task",
    "TaskBuilder",
    "TaskInvoker",
    "Transaction",
    "TransactionBuilder",
    "TransactionEventsPort",
    "TransactionFactory",
    "TransactionProperties",
    "TransactionState",
    "task",
]
