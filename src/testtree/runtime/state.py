"""Deduplicated index of runtime tasks.

Fed by collected / taskUpdate / consoleLog events in arrival order. Nothing
here raises on bad input: problems are recorded as unhandled errors so the
event stream keeps flowing.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from testtree.core.errors import StaleEventRace, TestTreeError
from testtree.core.logging import get_logger
from testtree.runtime.models import (
    ConsoleLogEntry,
    ResultState,
    RuntimeTask,
    TaskResultPack,
    TaskType,
)

log = get_logger("runtime.state")


@dataclass(frozen=True, slots=True)
class UnhandledError:
    kind: str
    error: BaseException

    def to_dict(self) -> dict[str, object]:
        if isinstance(self.error, TestTreeError):
            return {"kind": self.kind, **self.error.to_dict()}
        return {"kind": self.kind, "message": str(self.error)}


class StateManager:
    """Runtime tasks keyed by id, plus file-level tasks keyed by path."""

    def __init__(self) -> None:
        self.files_map: dict[str, RuntimeTask] = {}
        self.id_map: dict[str, RuntimeTask] = {}
        self._errors: list[UnhandledError] = []
        # Output from module scope, or for tasks not collected yet
        self.unattached_logs: list[ConsoleLogEntry] = []

    # -- Errors --

    def catch_error(self, err: BaseException, kind: str) -> None:
        if any(e.error is err for e in self._errors):
            return
        self._errors.append(UnhandledError(kind=kind, error=err))
        log.warning("unhandled_error_recorded", kind=kind, error=str(err))

    def clear_errors(self) -> None:
        self._errors.clear()

    def get_unhandled_errors(self) -> list[UnhandledError]:
        return list(self._errors)

    # -- Queries --

    def get_files(self, keys: Iterable[str] | None = None) -> list[RuntimeTask]:
        if keys is not None:
            return [self.files_map[key] for key in keys if key in self.files_map]
        return list(self.files_map.values())

    def get_filepaths(self) -> list[str]:
        return list(self.files_map)

    def get_failed_filepaths(self) -> list[str]:
        return [
            path
            for path, task in self.files_map.items()
            if task.result is not None and task.result.state is ResultState.FAIL
        ]

    def file_of(self, task: RuntimeTask) -> RuntimeTask | None:
        """The file-level task owning task (itself for file tasks)."""
        if task.file_id is not None and task.file_id in self.id_map:
            return self.id_map[task.file_id]
        current: RuntimeTask | None = task
        while current is not None and current.parent_id is not None:
            current = self.id_map.get(current.parent_id)
        return current if current is not None and current.is_file else None

    def tests(self) -> list[RuntimeTask]:
        """Every known test task, in file order."""
        return [
            task
            for file in self.files_map.values()
            for task in file.walk()
            if task.type is TaskType.TEST
        ]

    # -- Ingestion --

    def collect_files(self, files: Sequence[RuntimeTask]) -> None:
        for file in files:
            if file.filepath is None:
                continue
            self.files_map[file.filepath] = file
            self._update_id(file)

    def _update_id(self, task: RuntimeTask) -> None:
        stack = [task]
        while stack:
            current = stack.pop()
            if self.id_map.get(current.id) is current:
                continue
            self.id_map[current.id] = current
            if current.type is TaskType.SUITE:
                stack.extend(reversed(current.tasks))

    def update_tasks(self, packs: Iterable[TaskResultPack]) -> list[RuntimeTask]:
        """Replace results of known tasks. Returns the tasks that changed."""
        updated: list[RuntimeTask] = []
        for task_id, result in packs:
            task = self.id_map.get(task_id)
            if task is None:
                race = StaleEventRace.for_task(task_id)
                log.debug("stale_task_update_dropped", task_id=task_id, code=race.code.value)
                continue
            task.result = result
            updated.append(task)
        return updated

    def update_user_log(self, entry: ConsoleLogEntry) -> None:
        task = self.id_map.get(entry.task_id) if entry.task_id else None
        if task is not None:
            task.logs.append(entry)
            return
        self.unattached_logs.append(entry)
        log.debug("console_log_unattached", task_id=entry.task_id, stream=entry.stream)
