"""Runtime task ingestion."""

from testtree.runtime.models import (
    ConsoleLogEntry,
    ResultState,
    RuntimeTask,
    TaskResult,
    TaskResultPack,
    TaskType,
)
from testtree.runtime.state import StateManager, UnhandledError
from testtree.runtime.transport import (
    Collected,
    ConsoleLog,
    Finished,
    TaskUpdate,
    TransportMessage,
    decode_message,
)

__all__ = [
    "Collected",
    "ConsoleLog",
    "ConsoleLogEntry",
    "Finished",
    "ResultState",
    "RuntimeTask",
    "StateManager",
    "TaskResult",
    "TaskResultPack",
    "TaskType",
    "TaskUpdate",
    "TransportMessage",
    "UnhandledError",
    "decode_message",
]
