"""Interfaces to the collaborators around the reconciliation engine.

The engine never spawns processes, draws widgets, or watches disks
itself. It talks to:

- an ExecutionBackend, which runs tests and honours a rerun filter,
- a TreeListener, which renders node lifecycle and state transitions,
- whatever produces FileChange notifications.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from testtree.tree.nodes import TreeNode

RerunFilter = Callable[[str], bool]


class FileChangeKind(str, Enum):
    """Kind of file change detected."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class FileChange:
    """A file-system notification carrying an absolute path."""

    path: Path
    kind: FileChangeKind


class ExecutionBackend(Protocol):
    """Runs tests on behalf of the engine."""

    def run_files(self, filepaths: Sequence[str], name_pattern: str | None = None) -> None:
        """Request execution of the given files, optionally filtered by test name.

        Must be safe to call more than once for the same run.
        """
        ...

    def set_rerun_filter(self, predicate: RerunFilter | None) -> None:
        """Install the predicate consulted before the backend reruns a file.

        None removes any filter and lets the backend rerun as it sees fit.
        """
        ...


class TreeListener(Protocol):
    """Receives node lifecycle and run-state notifications."""

    def node_created(self, node: TreeNode) -> None: ...

    def node_updated(self, node: TreeNode) -> None: ...

    def node_disposed(self, node_id: str) -> None: ...

    def started(self, node_id: str) -> None: ...

    def passed(self, node_id: str, duration_ms: float | None) -> None: ...

    def failed(self, node_id: str, message: str) -> None: ...

    def skipped(self, node_id: str) -> None: ...


class NullListener:
    """Listener that ignores everything. Subclass and override what you need."""

    def node_created(self, node: TreeNode) -> None:
        pass

    def node_updated(self, node: TreeNode) -> None:
        pass

    def node_disposed(self, node_id: str) -> None:
        pass

    def started(self, node_id: str) -> None:
        pass

    def passed(self, node_id: str, duration_ms: float | None) -> None:
        pass

    def failed(self, node_id: str, message: str) -> None:
        pass

    def skipped(self, node_id: str) -> None:
        pass
