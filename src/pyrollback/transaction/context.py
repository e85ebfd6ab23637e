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
"""ResultContext — accumulated task results threaded through a transaction."""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from typing import Any, TypeVar

T = TypeVar("T")

FINAL_KEY = "final"


class ResultContext(Mapping[str | int, Any]):
    """Results of the tasks that completed so far, addressable by stage or name.

    The same entry is reachable two ways: ``ctx[0]`` is the result of the first
    task to complete and ``ctx["reserve"]`` the result of the task named
    ``reserve``.  The reserved ``"final"`` key (also :attr:`final`) holds the
    last task's result once every task has succeeded.

    Entries are only appended by the owning transaction, strictly in
    completion order, so a task running at stage *i* sees stages ``0..i-1``.

    As a mapping it exposes every key it answers to: the stage indices, then
    each task name once, then ``"final"`` once it is set.  A repeated task
    name aliases its latest stage; :attr:`stage_count` counts the results
    themselves.
    """

    def __init__(self, correlation_id: str | None = None) -> None:
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self._results: list[Any] = []
        self._names: list[str] = []
        self._by_name: dict[str, int] = {}
        self._final: Any = None
        self._has_final = False

    # ── engine-side writers ───────────────────────────────────

    def record(self, name: str, result: Any) -> int:
        """Append *result* for the task *name* and return its stage index."""
        stage = len(self._results)
        self._results.append(result)
        self._names.append(name)
        self._by_name[name] = stage
        return stage

    def set_final(self, result: Any) -> None:
        """Fill the ``final`` slot once the whole sequence has succeeded."""
        self._final = result
        self._has_final = True

    # ── Mapping protocol ──────────────────────────────────────

    def __getitem__(self, key: str | int) -> Any:
        if isinstance(key, bool):
            raise KeyError(key)
        if isinstance(key, int):
            if 0 <= key < len(self._results):
                return self._results[key]
            raise KeyError(key)
        if key == FINAL_KEY:
            if not self._has_final:
                raise KeyError(key)
            return self._final
        try:
            return self._results[self._by_name[key]]
        except KeyError:
            raise KeyError(key) from None

    def __iter__(self) -> Iterator[str | int]:
        yield from range(len(self._results))
        yield from (name for name in self._by_name if name != FINAL_KEY)
        if self._has_final:
            yield FINAL_KEY

    def __len__(self) -> int:
        aliases = len(self._by_name) - (FINAL_KEY in self._by_name)
        return len(self._results) + aliases + self._has_final

    def __repr__(self) -> str:
        entries = ", ".join(f"{name!r}: {result!r}" for name, result in zip(self._names, self._results))
        return f"ResultContext({{{entries}}}, final={self._final!r})"

    # ── query helpers ─────────────────────────────────────────

    @property
    def final(self) -> Any:
        """The last task's result, or ``None`` until every task has succeeded."""
        return self._final

    @property
    def has_final(self) -> bool:
        return self._has_final

    @property
    def stage_count(self) -> int:
        """Number of tasks that have completed."""
        return len(self._results)

    def names(self) -> list[str]:
        """Task names in stage order (duplicates included)."""
        return list(self._names)

    def get_as(self, key: str | int, expected_type: type[T]) -> T:
        """Return the entry for *key*, checking it is an instance of *expected_type*.

        Raises:
            KeyError: If *key* has no entry.
            TypeError: If the stored value has a different type.
        """
        value = self[key]
        if not isinstance(value, expected_type):
            raise TypeError(
                f"Result {key!r} is {type(value).__name__}, expected {expected_type.__name__}"
            )
        return value

    def to_dict(self) -> dict[str | int, Any]:
        """Return a plain dict with index keys, name keys and ``final`` when set."""
        return dict(self)
