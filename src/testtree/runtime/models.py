"""Runtime task model as reported by the test-execution process."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TaskType(str, Enum):
    SUITE = "suite"
    TEST = "test"


class ResultState(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    TODO = "todo"
    RUN = "run"
    ONLY = "only"


@dataclass(frozen=True, slots=True)
class TaskResult:
    """Result snapshot. Replaced wholesale on every update, never patched."""

    state: ResultState
    duration_ms: float | None = None
    error_message: str | None = None


@dataclass(frozen=True, slots=True)
class ConsoleLogEntry:
    content: str
    task_id: str | None = None
    stream: str = "stdout"
    time: float | None = None


@dataclass(eq=False)
class RuntimeTask:
    """A suite or test as the runtime sees it.

    File-level tasks are suites with a ``filepath`` and no parent.
    """

    id: str
    type: TaskType
    name: str
    parent_id: str | None = None
    file_id: str | None = None
    result: TaskResult | None = None
    tasks: list[RuntimeTask] = field(default_factory=list)
    filepath: str | None = None
    mode: str = "run"
    logs: list[ConsoleLogEntry] = field(default_factory=list)

    @property
    def is_file(self) -> bool:
        return self.filepath is not None and self.parent_id is None

    def walk(self) -> list[RuntimeTask]:
        """This task and every descendant, depth first."""
        out: list[RuntimeTask] = []
        stack = [self]
        while stack:
            task = stack.pop()
            out.append(task)
            stack.extend(reversed(task.tasks))
        return out


# (task id, new result or None to clear)
TaskResultPack = tuple[str, TaskResult | None]
