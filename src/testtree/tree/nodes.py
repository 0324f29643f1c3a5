"""Persistent test tree nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class NodeKind(str, Enum):
    FILE = "file"
    SUITE = "suite"
    CASE = "case"


class RunState(str, Enum):
    """Per-case run state. WAITING until the first event of a run."""

    WAITING = "waiting"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


OPEN_TAG = "open"


@dataclass(frozen=True, slots=True)
class SourceRange:
    """Lines 1-based, columns 0-based."""

    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass(eq=False)
class TreeNode:
    """Base node. Identity is the id; nodes compare by object identity."""

    id: str
    name: str
    range: SourceRange | None = None
    tags: set[str] = field(default_factory=set)

    kind = NodeKind.CASE

    @property
    def children(self) -> list[TreeNode]:
        return []


@dataclass(eq=False)
class FileNode(TreeNode):
    """A test file. `name` is its display label."""

    path: Path = field(default_factory=Path)
    uri: str = ""
    resolved: bool = False
    _children: list[TreeNode] = field(default_factory=list, repr=False)

    kind = NodeKind.FILE

    @property
    def children(self) -> list[TreeNode]:
        return self._children

    @children.setter
    def children(self, value: list[TreeNode]) -> None:
        self._children = value


@dataclass(eq=False)
class SuiteNode(TreeNode):
    full_name: str = ""
    is_parameterized: bool = False
    modifiers: tuple[str, ...] = ()
    _children: list[TreeNode] = field(default_factory=list, repr=False)

    kind = NodeKind.SUITE

    @property
    def children(self) -> list[TreeNode]:
        return self._children

    @children.setter
    def children(self, value: list[TreeNode]) -> None:
        self._children = value


@dataclass(eq=False)
class CaseNode(TreeNode):
    full_name: str = ""
    is_parameterized: bool = False
    modifiers: tuple[str, ...] = ()
    run_state: RunState = RunState.WAITING
    message: str | None = None
    duration_ms: float | None = None

    kind = NodeKind.CASE

    def reset(self) -> None:
        self.run_state = RunState.WAITING
        self.message = None
        self.duration_ms = None
