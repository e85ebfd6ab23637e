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
"""pyrollback — compensating transactions for asyncio.

Run an ordered sequence of tasks; if one fails, every task that already
completed is rolled back in reverse order before the failure is raised.
"""

from __future__ import annotations

from pyrollback.kernel.exceptions import (
    EmptyTransactionException,
    InvalidOperationException,
    InvalidStageException,
    PyRollbackException,
    RollbackException,
    TransactionAlreadyExecutedException,
    TransactionException,
    TransactionNotFinishedException,
)
from pyrollback.transaction import (
    FunctionTask,
    ResultContext,
    Task,
    Transaction,
    TransactionBuilder,
    TransactionFactory,
    TransactionState,
    task,
)

__version__ = "0.1.0"

__all__ = [
    "EmptyTransactionException",
    "FunctionTask",
    "InvalidOperationException",
    "InvalidStageException",
    "PyRollbackException",
    "ResultContext",
    "RollbackException",
    "Task",
    "Transaction",
    "TransactionAlreadyExecutedException",
    "TransactionBuilder",
    "TransactionException",
    "TransactionFactory",
    "TransactionNotFinishedException",
    "TransactionState",
    "__version__",
    "task",
]
