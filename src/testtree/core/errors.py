"""testtree error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Parse
- 4xxx: Tree invariants
- 5xxx: Reconciliation (recovered, recorded rather than raised)
- 6xxx: Transport
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Parse (3xxx)
    PARSE_SYNTAX_ERROR = 3001
    PARSE_NO_GRAMMAR = 3002
    PARSE_UNREADABLE = 3003

    # Tree (4xxx)
    TREE_INVALID_BLOCK = 4001

    # Reconciliation (5xxx)
    RUNTIME_TASK_UNMATCHED = 5001
    RUNTIME_STALE_EVENT = 5002
    RUNTIME_INGEST_FAILED = 5003

    # Transport (6xxx)
    TRANSPORT_MALFORMED_MESSAGE = 6001
    TRANSPORT_CLOSED = 6002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_TIMEOUT = 9002


@dataclass(frozen=True, slots=True)
class TestTreeError(Exception):
    """Base error with structured context."""

    __test__ = False

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'PARSE_SYNTAX_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(TestTreeError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class ParseError(TestTreeError):
    """A single test file could not be parsed.

    Isolated to that file: the caller keeps the file's previous tree.
    """

    @classmethod
    def syntax(cls, path: str, error_count: int) -> "ParseError":
        return cls(
            code=ErrorCode.PARSE_SYNTAX_ERROR,
            message=f"Syntax errors in {path} ({error_count} error nodes)",
            retryable=True,
            details={"path": path, "error_count": error_count},
        )

    @classmethod
    def no_grammar(cls, path: str, language: str) -> "ParseError":
        return cls(
            code=ErrorCode.PARSE_NO_GRAMMAR,
            message=f"No tree-sitter grammar available for {language} ({path})",
            details={"path": path, "language": language},
        )

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "ParseError":
        return cls(
            code=ErrorCode.PARSE_UNREADABLE,
            message=f"Cannot read {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )


class InvariantViolation(TestTreeError):
    """Extractor/tree contract breach. Fatal to the current parse operation."""

    @classmethod
    def invalid_block(cls, path: str, kind: Any, name: str) -> "InvariantViolation":
        return cls(
            code=ErrorCode.TREE_INVALID_BLOCK,
            message=f"Block '{name}' in {path} has invalid kind {kind!r}",
            details={"path": path, "kind": str(kind), "name": name},
        )


class UnmatchedRuntimeTask(TestTreeError):
    """Runtime reported a task with no static counterpart."""

    @classmethod
    def for_task(cls, task_id: str, name: str, kind: str) -> "UnmatchedRuntimeTask":
        return cls(
            code=ErrorCode.RUNTIME_TASK_UNMATCHED,
            message=f"No {kind} node matches runtime task '{name}'",
            details={"task_id": task_id, "name": name, "kind": kind},
        )


class StaleEventRace(TestTreeError):
    """A task update arrived before the task was collected."""

    @classmethod
    def for_task(cls, task_id: str) -> "StaleEventRace":
        return cls(
            code=ErrorCode.RUNTIME_STALE_EVENT,
            message=f"Update for unknown task {task_id} dropped",
            details={"task_id": task_id},
        )


class IngestError(TestTreeError):
    """A structurally valid event carried a payload that could not be ingested."""

    @classmethod
    def invalid_payload(cls, event: str, reason: str) -> "IngestError":
        return cls(
            code=ErrorCode.RUNTIME_INGEST_FAILED,
            message=f"Invalid '{event}' payload: {reason}",
            details={"event": event, "reason": reason},
        )


class TransportError(TestTreeError):
    """Transport-level failure surfaced to the execution collaborator."""

    @classmethod
    def malformed(cls, reason: str, raw: str | None = None) -> "TransportError":
        details: dict[str, Any] = {"reason": reason}
        if raw is not None:
            details["raw"] = raw[:200]
        return cls(
            code=ErrorCode.TRANSPORT_MALFORMED_MESSAGE,
            message=f"Malformed transport message: {reason}",
            details=details,
        )

    @classmethod
    def closed(cls, reason: str) -> "TransportError":
        return cls(
            code=ErrorCode.TRANSPORT_CLOSED,
            message=f"Transport closed unexpectedly: {reason}",
            retryable=True,
            details={"reason": reason},
        )


class InternalError(TestTreeError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
