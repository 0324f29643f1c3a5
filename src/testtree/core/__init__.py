"""Core module exports."""

from testtree.core.errors import (
    ConfigError,
    ErrorCode,
    IngestError,
    InternalError,
    InvariantViolation,
    ParseError,
    StaleEventRace,
    TestTreeError,
    TransportError,
    UnmatchedRuntimeTask,
)
from testtree.core.logging import (
    bind_run_id,
    configure_logging,
    current_run_id,
    get_logger,
    unbind_run_id,
)
from testtree.core.progress import pluralize, spinner, status

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "IngestError",
    "InternalError",
    "InvariantViolation",
    "ParseError",
    "StaleEventRace",
    "TestTreeError",
    "TransportError",
    "UnmatchedRuntimeTask",
    # Logging
    "bind_run_id",
    "configure_logging",
    "current_run_id",
    "get_logger",
    "unbind_run_id",
    # Progress
    "pluralize",
    "spinner",
    "status",
]
