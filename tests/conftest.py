"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides recording doubles for the engine's collaborators.
"""

import sys
from collections.abc import Sequence
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of testtree modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("testtree"):
        del sys.modules[module_name]

from testtree.collaborators import NullListener, RerunFilter  # noqa: E402
from testtree.tree.nodes import TreeNode  # noqa: E402


class RecordingListener(NullListener):
    """Collects every notification as (event, node_id, extra) tuples."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, object]] = []

    def node_created(self, node: TreeNode) -> None:
        self.events.append(("created", node.id, None))

    def node_updated(self, node: TreeNode) -> None:
        self.events.append(("updated", node.id, None))

    def node_disposed(self, node_id: str) -> None:
        self.events.append(("disposed", node_id, None))

    def started(self, node_id: str) -> None:
        self.events.append(("started", node_id, None))

    def passed(self, node_id: str, duration_ms: float | None) -> None:
        self.events.append(("passed", node_id, duration_ms))

    def failed(self, node_id: str, message: str) -> None:
        self.events.append(("failed", node_id, message))

    def skipped(self, node_id: str) -> None:
        self.events.append(("skipped", node_id, None))

    def of(self, kind: str) -> list[str]:
        return [node_id for event, node_id, _ in self.events if event == kind]


class FakeBackend:
    """ExecutionBackend double that records run requests."""

    def __init__(self) -> None:
        self.runs: list[tuple[list[str], str | None]] = []
        self.rerun_filter: RerunFilter | None = None

    def run_files(self, filepaths: Sequence[str], name_pattern: str | None = None) -> None:
        self.runs.append((list(filepaths), name_pattern))

    def set_rerun_filter(self, predicate: RerunFilter | None) -> None:
        self.rerun_filter = predicate


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


MATH_SOURCE = """\
import { describe, expect, it } from 'vitest'

describe('math', () => {
  it('adds', () => {
    expect(1 + 1).toBe(2)
  })
  it('subtracts', () => {
    expect(2 - 1).toBe(1)
  })
})
"""


@pytest.fixture
def math_workspace(tmp_path: Path) -> Path:
    """Workspace with test/math.test.ts and a non-test source file."""
    (tmp_path / "test").mkdir()
    (tmp_path / "src").mkdir()
    (tmp_path / "test" / "math.test.ts").write_text(MATH_SOURCE)
    (tmp_path / "src" / "math.ts").write_text("export const add = (a, b) => a + b\n")
    return tmp_path
