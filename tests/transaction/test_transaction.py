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
"""Tests for Transaction — forward execution, compensation and lifecycle."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from pyrollback.kernel.exceptions import (
    EmptyTransactionException,
    InvalidOperationException,
    InvalidStageException,
    RollbackException,
    TransactionAlreadyExecutedException,
    TransactionException,
    TransactionNotFinishedException,
)
from pyrollback.transaction.context import ResultContext
from pyrollback.transaction.ports import Task
from pyrollback.transaction.transaction import Transaction
from pyrollback.transaction.types import TransactionState

pytestmark = pytest.mark.anyio


# ── Helpers ──────────────────────────────────────────────────


class _RecordingTask:
    """Task that appends ``execute:<name>`` / ``rollback:<name>`` to a shared journal."""

    def __init__(
        self,
        name: str,
        journal: list[str],
        result: Any = None,
        *,
        compute: Callable[[ResultContext], Any] | None = None,
        error: Exception | None = None,
        rollback_error: Exception | None = None,
    ) -> None:
        self.name = name
        self._journal = journal
        self._result = result
        self._compute = compute
        self._error = error
        self._rollback_error = rollback_error
        self.seen: dict[str | int, Any] | None = None
        self.rollback_contexts: list[ResultContext] = []

    async def execute(self, context: ResultContext) -> Any:
        self._journal.append(f"execute:{self.name}")
        self.seen = context.to_dict()
        if self._error is not None:
            raise self._error
        if self._compute is not None:
            return self._compute(context)
        return self._result

    async def rollback(self, context: ResultContext) -> None:
        self._journal.append(f"rollback:{self.name}")
        self.rollback_contexts.append(context)
        if self._rollback_error is not None:
            raise self._rollback_error


class _SyncTask:
    def __init__(self, name: str, result: Any) -> None:
        self.name = name
        self._result = result
        self.rolled_back = 0

    def execute(self, context: ResultContext) -> Any:
        return self._result

    def rollback(self, context: ResultContext) -> None:
        self.rolled_back += 1


@pytest.fixture
def journal() -> list[str]:
    return []


# ── Registration ─────────────────────────────────────────────


class TestAdd:
    def test_add_preserves_call_order(self, journal: list[str]) -> None:
        a, b, c = (_RecordingTask(n, journal) for n in "abc")
        tx = Transaction("tx")
        tx.add(a, b)
        tx.add(c)
        assert tx.tasks == (a, b, c)

    def test_add_nothing_is_allowed(self) -> None:
        tx = Transaction("tx")
        tx.add()
        assert tx.tasks == ()

    def test_new_transaction_is_not_started(self) -> None:
        tx = Transaction("tx")
        assert tx.state is TransactionState.NOT_STARTED
        assert tx.results is None
        assert repr(tx) == "Transaction(name='tx', state=NOT_STARTED, tasks=0)"

    def test_transaction_is_a_task(self) -> None:
        assert isinstance(Transaction("inner"), Task)


# ── Successful execution ─────────────────────────────────────


class TestExecuteSuccess:
    async def test_executes_all_tasks_in_order(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(*(_RecordingTask(n, journal) for n in ("a", "b", "c")))

        await tx.execute()

        assert journal == ["execute:a", "execute:b", "execute:c"]

    async def test_results_by_index_name_and_final(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("task1", journal, 7), _RecordingTask("task2", journal, {"message": "42"}))

        results = await tx.execute()

        assert results[0] == 7
        assert results["task1"] == 7
        assert results[1] == {"message": "42"}
        assert results["task2"]["message"] == "42"
        assert results.final == {"message": "42"}
        assert results["final"] is results["task2"]

    async def test_intermediate_results_are_passed_on(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(
            _RecordingTask("A", journal, 7),
            _RecordingTask("B", journal, compute=lambda ctx: ctx["A"] + 7),
        )

        results = await tx.execute()

        assert results["A"] == 7
        assert results["B"] == 14
        assert results.final == 14
        assert dict(results) == {0: 7, 1: 14, "A": 7, "B": 14, "final": 14}

    async def test_task_sees_only_earlier_results(self, journal: list[str]) -> None:
        a = _RecordingTask("a", journal, 1)
        b = _RecordingTask("b", journal, 2)
        c = _RecordingTask("c", journal, 3)
        tx = Transaction("tx")
        tx.add(a, b, c)

        await tx.execute()

        assert a.seen == {}
        assert b.seen == {0: 1, "a": 1}
        assert c.seen == {0: 1, 1: 2, "a": 1, "b": 2}

    async def test_no_rollback_on_success(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal), _RecordingTask("b", journal))

        await tx.execute()

        assert not any(entry.startswith("rollback:") for entry in journal)

    async def test_state_finished_and_results_kept(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal, "done"))

        results = await tx.execute()

        assert tx.state is TransactionState.FINISHED
        assert tx.results is results

    async def test_state_is_running_while_tasks_execute(self) -> None:
        tx = Transaction("tx")
        observed: list[TransactionState] = []

        class _StateObserver:
            name = "observer"

            def execute(self, context: ResultContext) -> None:
                observed.append(tx.state)

            def rollback(self, context: ResultContext) -> None:
                pass

        tx.add(_StateObserver())
        await tx.execute()

        assert observed == [TransactionState.RUNNING]

    async def test_sync_tasks_are_supported(self) -> None:
        a, b = _SyncTask("a", 1), _SyncTask("b", 2)
        tx = Transaction("tx")
        tx.add(a, b)

        results = await tx.execute()

        assert results.to_dict() == {0: 1, 1: 2, "a": 1, "b": 2, "final": 2}

    async def test_none_final_result(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal, None))

        results = await tx.execute()

        assert results.has_final
        assert results["final"] is None


# ── Preconditions ────────────────────────────────────────────


class TestExecutePreconditions:
    async def test_execute_without_tasks(self) -> None:
        tx = Transaction("noTasks")

        with pytest.raises(EmptyTransactionException, match="at least one Task"):
            await tx.execute()

        assert tx.state is TransactionState.NOT_STARTED

    async def test_execute_twice(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal))
        await tx.execute()
        journal.clear()

        with pytest.raises(TransactionAlreadyExecutedException, match="only be executed once"):
            await tx.execute()

        assert journal == []
        assert tx.state is TransactionState.FINISHED

    async def test_execute_while_running(self) -> None:
        tx = Transaction("tx")
        errors: list[Exception] = []

        class _Reentrant:
            name = "reentrant"

            async def execute(self, context: ResultContext) -> None:
                try:
                    await tx.execute()
                except InvalidOperationException as exc:
                    errors.append(exc)

            def rollback(self, context: ResultContext) -> None:
                pass

        tx.add(_Reentrant())
        await tx.execute()

        assert len(errors) == 1
        assert isinstance(errors[0], TransactionAlreadyExecutedException)
        assert errors[0].context["state"] == "RUNNING"

    async def test_empty_check_precedes_state_check(self) -> None:
        tx = Transaction("tx")
        with pytest.raises(EmptyTransactionException):
            await tx.execute()
        with pytest.raises(EmptyTransactionException):
            await tx.execute()


# ── Failure and compensation ─────────────────────────────────


class TestExecuteFailure:
    async def test_rolls_back_completed_tasks(self, journal: list[str]) -> None:
        cause = RuntimeError("Test Error")
        tx = Transaction("tx")
        tx.add(_RecordingTask("A", journal), _RecordingTask("B", journal, error=cause))

        with pytest.raises(TransactionException) as exc_info:
            await tx.execute()

        assert journal == ["execute:A", "execute:B", "rollback:A"]
        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause
        assert exc_info.value.rollback_errors == []

    async def test_failure_at_k_rolls_back_prefix_in_descending_order(self, journal: list[str]) -> None:
        tasks = [_RecordingTask(f"t{i}", journal) for i in range(5)]
        tasks[3] = _RecordingTask("t3", journal, error=ValueError("t3 failed"))
        tx = Transaction("tx")
        tx.add(*tasks)

        with pytest.raises(TransactionException):
            await tx.execute()

        assert journal == [
            "execute:t0",
            "execute:t1",
            "execute:t2",
            "execute:t3",
            "rollback:t2",
            "rollback:t1",
            "rollback:t0",
        ]

    async def test_first_task_failure_rolls_back_nothing(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal, error=RuntimeError("x")), _RecordingTask("b", journal))

        with pytest.raises(TransactionException) as exc_info:
            await tx.execute()

        assert journal == ["execute:a"]
        assert exc_info.value.context == {"transaction": "tx", "failed_task": "a", "stage": 0}

    async def test_rollback_errors_are_reported(self, journal: list[str]) -> None:
        rollback_error = RuntimeError("Error in rollback")
        cause = RuntimeError("Test Error")
        tx = Transaction("tx")
        tx.add(
            _RecordingTask("A", journal, rollback_error=rollback_error),
            _RecordingTask("B", journal, error=cause),
        )

        with pytest.raises(TransactionException) as exc_info:
            await tx.execute()

        assert exc_info.value.cause is cause
        assert exc_info.value.rollback_errors == [rollback_error]

    async def test_rollback_failure_does_not_abort_compensation(self, journal: list[str]) -> None:
        err_b, err_d = ValueError("b"), ValueError("d")
        tx = Transaction("tx")
        tx.add(
            _RecordingTask("a", journal),
            _RecordingTask("b", journal, rollback_error=err_b),
            _RecordingTask("c", journal),
            _RecordingTask("d", journal, rollback_error=err_d),
            _RecordingTask("e", journal, error=RuntimeError("e")),
        )

        with pytest.raises(TransactionException) as exc_info:
            await tx.execute()

        assert [e for e in journal if e.startswith("rollback:")] == [
            "rollback:d",
            "rollback:c",
            "rollback:b",
            "rollback:a",
        ]
        assert exc_info.value.rollback_errors == [err_d, err_b]

    async def test_rollback_receives_partial_context(self, journal: list[str]) -> None:
        a = _RecordingTask("a", journal, 1)
        b = _RecordingTask("b", journal, 2)
        tx = Transaction("tx")
        tx.add(a, b, _RecordingTask("c", journal, error=RuntimeError("c")))

        with pytest.raises(TransactionException) as exc_info:
            await tx.execute()

        partial = exc_info.value.results
        assert partial is not None
        assert a.rollback_contexts == [partial]
        assert b.rollback_contexts[0] is partial
        assert partial.to_dict() == {0: 1, 1: 2, "a": 1, "b": 2}
        assert not partial.has_final

    async def test_state_resets_after_compensation(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal), _RecordingTask("b", journal, error=RuntimeError("b")))

        with pytest.raises(TransactionException):
            await tx.execute()

        assert tx.state is TransactionState.NOT_STARTED
        assert tx.results is None

    async def test_failed_transaction_can_be_executed_again(self) -> None:
        attempts: list[int] = []

        class _Flaky:
            name = "flaky"

            def execute(self, context: ResultContext) -> str:
                attempts.append(1)
                if len(attempts) == 1:
                    raise ConnectionError("transient")
                return "ok"

            def rollback(self, context: ResultContext) -> None:
                pass

        tx = Transaction("tx")
        tx.add(_Flaky())

        with pytest.raises(TransactionException):
            await tx.execute()
        results = await tx.execute()

        assert results.final == "ok"
        assert tx.state is TransactionState.FINISHED

    async def test_cancellation_rolls_back_and_resets(self, journal: list[str]) -> None:
        entered = asyncio.Event()

        class _Blocking:
            name = "blocking"

            async def execute(self, context: ResultContext) -> None:
                journal.append("execute:blocking")
                entered.set()
                await asyncio.Event().wait()

            async def rollback(self, context: ResultContext) -> None:
                journal.append("rollback:blocking")

        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal, 1), _Blocking(), _RecordingTask("c", journal))

        run = asyncio.ensure_future(tx.execute())
        await entered.wait()
        run.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run

        assert journal == ["execute:a", "execute:blocking", "rollback:a"]
        assert tx.state is TransactionState.NOT_STARTED
        assert tx.results is None

    async def test_timeout_rolls_back_and_resets(self, journal: list[str]) -> None:
        async def slow(context: ResultContext) -> None:
            await asyncio.sleep(10)

        slow_task = _RecordingTask("slow", journal)
        slow_task.execute = slow  # type: ignore[method-assign]
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal), _RecordingTask("b", journal), slow_task)

        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.05):
                await tx.execute()

        assert journal == ["execute:a", "execute:b", "rollback:b", "rollback:a"]
        assert tx.state is TransactionState.NOT_STARTED

        journal.clear()
        tx.tasks[2].execute = lambda context: "fast"  # type: ignore[method-assign]
        assert (await tx.execute()).final == "fast"

    async def test_cancellation_reports_unsuccessful_completion(self, journal: list[str]) -> None:
        events_port = AsyncMock()
        tx = Transaction("tx", events=events_port)
        tx.add(_RecordingTask("a", journal), _RecordingTask("b", journal, error=asyncio.CancelledError()))

        with pytest.raises(asyncio.CancelledError):
            await tx.execute()

        assert journal == ["execute:a", "execute:b", "rollback:a"]
        events_port.on_task_failed.assert_not_awaited()
        events_port.on_completed.assert_awaited_once()
        assert events_port.on_completed.await_args.kwargs == {"success": False}

    async def test_failure_is_logged(self, journal: list[str], caplog: pytest.LogCaptureFixture) -> None:
        tx = Transaction("orders")
        tx.add(_RecordingTask("a", journal), _RecordingTask("b", journal, error=RuntimeError("declined")))

        with caplog.at_level("WARNING", logger="pyrollback.transaction.transaction"):
            with pytest.raises(TransactionException):
                await tx.execute()

        assert "Task 'b' of transaction 'orders' failed: declined. Rolling back 1 completed task(s)." in caplog.text


# ── Direct rollback ──────────────────────────────────────────


class TestRollback:
    async def test_rollback_before_execute(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal))

        with pytest.raises(TransactionNotFinishedException, match="cannot be rolled back"):
            await tx.rollback(ResultContext())

        assert journal == []

    async def test_rollback_after_failed_execute(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal, error=RuntimeError("a")))
        with pytest.raises(TransactionException):
            await tx.execute()

        with pytest.raises(TransactionNotFinishedException):
            await tx.rollback()

    async def test_rollback_all_in_reverse_order(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(*(_RecordingTask(n, journal) for n in ("a", "b", "c")))
        await tx.execute()
        journal.clear()

        await tx.rollback()

        assert journal == ["rollback:c", "rollback:b", "rollback:a"]
        assert tx.state is TransactionState.NOT_STARTED
        assert tx.results is None

    async def test_rollback_tasks_receive_own_results(self, journal: list[str]) -> None:
        a = _RecordingTask("a", journal, 1)
        tx = Transaction("tx")
        tx.add(a)
        results = await tx.execute()

        await tx.rollback(ResultContext())

        assert a.rollback_contexts[0] is results

    async def test_second_rollback_fails(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal))
        await tx.execute()
        await tx.rollback()

        with pytest.raises(TransactionNotFinishedException):
            await tx.rollback()

    async def test_rollback_errors_are_collected(self, journal: list[str]) -> None:
        err_a, err_c = ValueError("a"), ValueError("c")
        tx = Transaction("tx")
        tx.add(
            _RecordingTask("a", journal, rollback_error=err_a),
            _RecordingTask("b", journal),
            _RecordingTask("c", journal, rollback_error=err_c),
        )
        await tx.execute()
        journal.clear()

        with pytest.raises(RollbackException) as exc_info:
            await tx.rollback()

        assert journal == ["rollback:c", "rollback:b", "rollback:a"]
        assert exc_info.value.rollback_errors == [err_c, err_a]
        assert not isinstance(exc_info.value, TransactionException)
        assert tx.state is TransactionState.NOT_STARTED

    async def test_rollback_up_to_stage(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(*(_RecordingTask(n, journal) for n in ("a", "b", "c")))
        await tx.execute()
        journal.clear()

        await tx.rollback(stage=1)

        assert journal == ["rollback:b", "rollback:a"]
        assert tx.state is TransactionState.NOT_STARTED

    async def test_rollback_stage_minus_one_only_resets(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal))
        await tx.execute()
        journal.clear()

        await tx.rollback(stage=-1)

        assert journal == []
        assert tx.state is TransactionState.NOT_STARTED

    @pytest.mark.parametrize("stage", [-2, 3, 10])
    async def test_rollback_stage_out_of_range(self, journal: list[str], stage: int) -> None:
        tx = Transaction("tx")
        tx.add(*(_RecordingTask(n, journal) for n in ("a", "b", "c")))
        await tx.execute()
        journal.clear()

        with pytest.raises(InvalidStageException):
            await tx.rollback(stage=stage)

        assert journal == []
        assert tx.state is TransactionState.FINISHED

    async def test_rolled_back_transaction_can_execute_again(self, journal: list[str]) -> None:
        tx = Transaction("tx")
        tx.add(_RecordingTask("a", journal, "v"))
        await tx.execute()
        await tx.rollback()

        results = await tx.execute()

        assert results.final == "v"
        assert journal == ["execute:a", "rollback:a", "execute:a"]

    async def test_state_is_running_during_rollback(self) -> None:
        tx = Transaction("tx")
        observed: list[TransactionState] = []
        rejected: list[InvalidOperationException] = []

        class _Observer:
            name = "observer"

            def execute(self, context: ResultContext) -> None:
                return None

            async def rollback(self, context: ResultContext) -> None:
                observed.append(tx.state)
                try:
                    await tx.execute()
                except InvalidOperationException as exc:
                    rejected.append(exc)

        tx.add(_Observer())
        await tx.execute()
        await tx.rollback()

        assert observed == [TransactionState.RUNNING]
        assert len(rejected) == 1
        assert isinstance(rejected[0], TransactionAlreadyExecutedException)
        assert tx.state is TransactionState.NOT_STARTED


# ── Events ───────────────────────────────────────────────────


class TestEvents:
    @pytest.fixture
    def events_port(self) -> AsyncMock:
        return AsyncMock()

    async def test_success_events(self, journal: list[str], events_port: AsyncMock) -> None:
        tx = Transaction("tx", events=events_port)
        tx.add(_RecordingTask("a", journal, 1), _RecordingTask("b", journal, 2))

        results = await tx.execute()

        corr = results.correlation_id
        events_port.on_start.assert_awaited_once_with("tx", corr)
        assert [c.args[2:4] for c in events_port.on_task_success.await_args_list] == [("a", 0), ("b", 1)]
        events_port.on_completed.assert_awaited_once_with("tx", corr, success=True)
        events_port.on_task_failed.assert_not_awaited()
        events_port.on_rolled_back.assert_not_awaited()

    async def test_failure_events(self, journal: list[str], events_port: AsyncMock) -> None:
        cause = RuntimeError("b")
        tx = Transaction("tx", events=events_port)
        tx.add(_RecordingTask("a", journal), _RecordingTask("b", journal, error=cause))

        with pytest.raises(TransactionException) as exc_info:
            await tx.execute()

        corr = exc_info.value.results.correlation_id  # type: ignore[union-attr]
        failed = events_port.on_task_failed.await_args
        assert failed.args[:4] == ("tx", corr, "b", 1)
        assert failed.kwargs["error"] is cause
        events_port.on_rolled_back.assert_awaited_once_with("tx", corr, "a", 0, error=None)
        events_port.on_completed.assert_awaited_once_with("tx", corr, success=False)

    async def test_broken_events_sink_does_not_change_outcome(self, journal: list[str]) -> None:
        broken = AsyncMock()
        broken.on_task_success.side_effect = RuntimeError("sink down")
        tx = Transaction("tx", events=broken)
        tx.add(_RecordingTask("a", journal, 1))

        results = await tx.execute()

        assert results.final == 1
        assert journal == ["execute:a"]
