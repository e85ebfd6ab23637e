"""Unified exception hierarchy for pyrollback.

All library exceptions inherit from PyRollbackException, enabling unified
error handling: catch PyRollbackException to handle everything the engine
raises, or catch specific subclasses for targeted handling.

Categories:
- InvalidOperationException: engine usage errors (precondition violations)
- TransactionException: a task failed and completed tasks were compensated
- RollbackException: a direct rollback finished with compensation failures
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyrollback.transaction.context import ResultContext


# =============================================================================
# Base Exception
# =============================================================================


class PyRollbackException(Exception):
    """Base exception for all pyrollback errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "TRANSACTION_EMPTY").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Invalid Operation Exceptions
# =============================================================================


class InvalidOperationException(PyRollbackException):
    """The engine was used in a way its lifecycle does not allow."""


class EmptyTransactionException(InvalidOperationException):
    """A transaction was executed without any registered task."""

    def __init__(self, name: str) -> None:
        super().__init__(
            "A Transaction can only be executed with at least one Task.",
            code="TRANSACTION_EMPTY",
            context={"transaction": name},
        )


class TransactionAlreadyExecutedException(InvalidOperationException):
    """A transaction was executed while running or after it finished."""

    def __init__(self, name: str, state: str) -> None:
        super().__init__(
            "A Transaction can only be executed once.",
            code="TRANSACTION_ALREADY_EXECUTED",
            context={"transaction": name, "state": state},
        )


class TransactionNotFinishedException(InvalidOperationException):
    """A rollback was requested for a transaction that has not finished."""

    def __init__(self, name: str, state: str) -> None:
        super().__init__(
            "A Transaction cannot be rolled back until it has been executed fully.",
            code="TRANSACTION_NOT_FINISHED",
            context={"transaction": name, "state": state},
        )


class InvalidStageException(InvalidOperationException):
    """A rollback stage outside the transaction's task range was requested."""

    def __init__(self, name: str, stage: int, task_count: int) -> None:
        super().__init__(
            f"Stage {stage} is out of range for a Transaction with {task_count} Task(s).",
            code="TRANSACTION_INVALID_STAGE",
            context={"transaction": name, "stage": stage, "task_count": task_count},
        )


# =============================================================================
# Execution Exceptions
# =============================================================================


class TransactionException(PyRollbackException):
    """A task failed during execute; completed tasks were rolled back.

    Attributes:
        cause: The exception raised by the failing task.
        rollback_errors: Every exception raised while compensating, in the
            order rollback was attempted. Empty when compensation was clean.
        results: The partial results visible when the failure occurred.
    """

    def __init__(
        self,
        name: str,
        cause: Exception,
        rollback_errors: list[Exception] | None = None,
        results: ResultContext | None = None,
        failed_task: str | None = None,
        stage: int = -1,
    ) -> None:
        self.cause = cause
        self.rollback_errors: list[Exception] = list(rollback_errors or [])
        self.results = results
        message = f"Transaction '{name}' failed: {cause}"
        if self.rollback_errors:
            message += f" ({len(self.rollback_errors)} rollback error(s))"
        super().__init__(
            message,
            code="TRANSACTION_FAILED",
            context={"transaction": name, "failed_task": failed_task, "stage": stage},
        )


class RollbackException(PyRollbackException):
    """A direct rollback completed but one or more tasks failed to compensate.

    Unlike :class:`TransactionException` there is no ``cause``: nothing failed
    in the forward direction.
    """

    def __init__(self, name: str, rollback_errors: list[Exception]) -> None:
        self.rollback_errors: list[Exception] = list(rollback_errors)
        super().__init__(
            f"Transaction '{name}' rollback finished with {len(self.rollback_errors)} error(s)",
            code="TRANSACTION_ROLLBACK_FAILED",
            context={"transaction": name},
        )

