"""Decoding of runtime transport messages.

Wire format (one JSON object per message)::

    {"type": "collected", "files": [<task>, ...]}
    {"type": "taskUpdate", "packs": [["<task id>", <result> | null], ...]}
    {"type": "consoleLog", "log": {"content": "...", "taskId": "...", "type": "stdout"}}
    {"type": "finished", "files": [<task>, ...], "aborted": false}

where ``<task>`` is ``{"id", "type": "suite"|"test", "name", "filepath"?,
"mode"?, "result"?, "tasks"?}`` and ``<result>`` is ``{"state", "duration"?,
"errors"?: [{"message"}]}``.

Frames that are not JSON objects or carry an unknown ``type`` raise
TransportError. A known message whose payload does not validate raises
IngestError, which the session records and skips.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from testtree.core.errors import IngestError, TransportError
from testtree.runtime.models import (
    ConsoleLogEntry,
    ResultState,
    RuntimeTask,
    TaskResult,
    TaskResultPack,
    TaskType,
)

# -- Wire models --

_STATE_ALIASES = {"running": "run"}


class _WireError(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = ""


class _WireResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    state: Literal["pass", "fail", "skip", "todo", "run", "running", "only", "none"]
    duration: float | None = None
    errors: list[_WireError] = Field(default_factory=list)

    def to_result(self) -> TaskResult | None:
        if self.state == "none":
            return None
        state = ResultState(_STATE_ALIASES.get(self.state, self.state))
        message = self.errors[0].message if self.errors else None
        return TaskResult(state=state, duration_ms=self.duration, error_message=message)


class _WireTask(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    type: Literal["suite", "test", "custom"]
    name: str
    mode: str = "run"
    filepath: str | None = None
    result: _WireResult | None = None
    tasks: list[_WireTask] = Field(default_factory=list)

    def to_task(self, parent_id: str | None = None, file_id: str | None = None) -> RuntimeTask:
        task = RuntimeTask(
            id=self.id,
            type=TaskType.SUITE if self.type == "suite" else TaskType.TEST,
            name=self.name,
            parent_id=parent_id,
            file_id=file_id,
            result=self.result.to_result() if self.result else None,
            filepath=self.filepath if parent_id is None else None,
            mode=self.mode,
        )
        owner = file_id or self.id
        task.tasks = [child.to_task(parent_id=self.id, file_id=owner) for child in self.tasks]
        return task


class _WireLog(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    content: str
    task_id: str | None = Field(default=None, alias="taskId")
    type: str = "stdout"
    time: float | None = None


class _CollectedFrame(BaseModel):
    files: list[_WireTask] = Field(default_factory=list)


class _TaskUpdateFrame(BaseModel):
    packs: list[tuple[str, _WireResult | None]] = Field(default_factory=list)


class _ConsoleLogFrame(BaseModel):
    log: _WireLog


class _FinishedFrame(BaseModel):
    files: list[_WireTask] = Field(default_factory=list)
    aborted: bool = False


# -- Decoded messages --


@dataclass(frozen=True, slots=True)
class Collected:
    files: list[RuntimeTask]


@dataclass(frozen=True, slots=True)
class TaskUpdate:
    packs: list[TaskResultPack]


@dataclass(frozen=True, slots=True)
class ConsoleLog:
    entry: ConsoleLogEntry


@dataclass(frozen=True, slots=True)
class Finished:
    files: list[RuntimeTask] = field(default_factory=list)
    aborted: bool = False


TransportMessage = Collected | TaskUpdate | ConsoleLog | Finished

MESSAGE_TYPES = ("collected", "taskUpdate", "consoleLog", "finished")


def decode_message(raw: str | bytes | Mapping[str, Any]) -> TransportMessage:
    """Decode one transport frame.

    Raises:
        TransportError: The frame is not a JSON object or its type is unknown.
        IngestError: The type is known but the payload is invalid.
    """
    if isinstance(raw, str | bytes):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            text = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else raw
            raise TransportError.malformed(f"invalid JSON: {e}", raw=text) from e
    else:
        data = raw

    if not isinstance(data, Mapping):
        raise TransportError.malformed(f"expected an object, got {type(data).__name__}")
    kind = data.get("type")
    if kind not in MESSAGE_TYPES:
        raise TransportError.malformed(f"unknown message type {kind!r}")

    try:
        match kind:
            case "collected":
                collected = _CollectedFrame.model_validate(data)
                return Collected(files=[f.to_task() for f in collected.files])
            case "taskUpdate":
                update = _TaskUpdateFrame.model_validate(data)
                return TaskUpdate(
                    packs=[(tid, res.to_result() if res else None) for tid, res in update.packs]
                )
            case "consoleLog":
                wire = _ConsoleLogFrame.model_validate(data).log
                return ConsoleLog(
                    entry=ConsoleLogEntry(
                        content=wire.content, task_id=wire.task_id, stream=wire.type, time=wire.time
                    )
                )
            case _:
                finished = _FinishedFrame.model_validate(data)
                return Finished(
                    files=[f.to_task() for f in finished.files], aborted=finished.aborted
                )
    except ValidationError as e:
        err = e.errors()[0]
        loc = ".".join(str(part) for part in err["loc"])
        raise IngestError.invalid_payload(str(kind), f"{loc}: {err['msg']}") from e


async def iter_frames(lines: Iterable[str]) -> AsyncIterator[str]:
    """Yield non-blank lines of a JSON-lines recording as a message stream."""
    for line in lines:
        if line.strip():
            yield line
