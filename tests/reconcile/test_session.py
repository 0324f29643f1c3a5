"""End-to-end tests for ReconciliationSession."""

import re
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from conftest import FakeBackend, RecordingListener
from testtree.collaborators import FileChange, FileChangeKind
from testtree.config.models import DiscoveryConfig
from testtree.core.errors import ErrorCode
from testtree.discovery.discoverer import TestFileDiscoverer
from testtree.reconcile.scheduler import RerunAction
from testtree.reconcile.session import ReconciliationSession, RunSummary, name_pattern_for
from testtree.runtime.transport import Finished
from testtree.tree.model import TestTree
from testtree.tree.nodes import CaseNode, RunState, SuiteNode


@pytest.fixture
def session(
    math_workspace: Path, listener: RecordingListener, backend: FakeBackend
) -> ReconciliationSession:
    tree = TestTree(listener=listener, workspace_roots=[math_workspace])
    discoverer = TestFileDiscoverer.for_workspace(math_workspace, tree, DiscoveryConfig())
    discoverer.discover_all()
    return ReconciliationSession(tree, discoverer, backend=backend)


@pytest.fixture
def math_path(math_workspace: Path) -> str:
    return str(math_workspace / "test" / "math.test.ts")


def collected(path: str) -> dict[str, Any]:
    return {
        "type": "collected",
        "files": [
            {
                "id": "f1",
                "type": "suite",
                "name": "test/math.test.ts",
                "filepath": path,
                "tasks": [
                    {
                        "id": "s1",
                        "type": "suite",
                        "name": "math",
                        "tasks": [
                            {"id": "t1", "type": "test", "name": "adds"},
                            {"id": "t2", "type": "test", "name": "subtracts"},
                        ],
                    }
                ],
            }
        ],
    }


def update(*packs: tuple[str, dict[str, Any] | None]) -> dict[str, Any]:
    return {"type": "taskUpdate", "packs": [list(p) for p in packs]}


def _cases(session: ReconciliationSession, path: str) -> dict[str, CaseNode]:
    node = session.tree.file_for(path)
    assert node is not None
    return {case.name: case for case in session.tree.iter_cases(node)}


async def _frames(*frames: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
    for frame in frames:
        yield frame


class TestEndToEnd:
    def test_collect_update_finish(self, session: ReconciliationSession, math_path: str) -> None:
        # Given
        session.feed(collected(math_path))

        # When
        session.feed(update(("t1", {"state": "pass", "duration": 3})))
        failure = {"state": "fail", "errors": [{"message": "expected 2 to be 1"}]}
        session.feed(update(("t2", failure)))
        session.feed({"type": "finished"})

        # Then
        cases = _cases(session, math_path)
        assert cases["adds"].run_state is RunState.PASSED
        assert cases["subtracts"].run_state is RunState.FAILED
        assert cases["subtracts"].message == "expected 2 to be 1"
        run = session.current_run
        assert run is not None and run.finished and not run.active
        assert session.status().summary_text() == "1/2 passed (50%, 0 skipped)"

    def test_collect_resolves_lazy_file(self, session: ReconciliationSession, math_path: str) -> None:
        file_node = session.tree.file_for(math_path)
        assert file_node is not None and not file_node.resolved

        session.feed(collected(math_path))

        assert file_node.resolved
        assert set(_cases(session, math_path)) == {"adds", "subtracts"}

    def test_update_before_collect_is_dropped(
        self, session: ReconciliationSession, math_path: str
    ) -> None:
        # Given
        session.feed(update(("t1", {"state": "pass"})))

        # When
        session.feed(collected(math_path))

        # Then
        assert all(c.run_state is RunState.WAITING for c in _cases(session, math_path).values())
        assert session.state.get_unhandled_errors() == []

        session.feed(update(("t1", {"state": "pass"})))
        assert _cases(session, math_path)["adds"].run_state is RunState.PASSED

    def test_finish_skips_unexecuted(self, session: ReconciliationSession, math_path: str) -> None:
        session.feed(collected(math_path))
        session.feed(update(("t1", {"state": "pass"})))

        session.feed({"type": "finished"})

        assert _cases(session, math_path)["subtracts"].run_state is RunState.SKIPPED
        assert session.status() == RunSummary(passed=1, failed=0, skipped=1)

    def test_aborted_run(self, session: ReconciliationSession, math_path: str) -> None:
        session.feed(collected(math_path))

        message = session.feed({"type": "finished", "aborted": True})

        assert isinstance(message, Finished)
        run = session.current_run
        assert run is not None and run.aborted

    def test_invalid_payload_is_recorded(
        self, session: ReconciliationSession, math_path: str
    ) -> None:
        assert session.feed({"type": "taskUpdate", "packs": "nope"}) is None

        (error,) = session.state.get_unhandled_errors()
        assert error.kind == "taskUpdate"
        assert error.to_dict()["code"] == ErrorCode.RUNTIME_INGEST_FAILED.value

        session.feed(collected(math_path))
        assert session.state.get_filepaths() == [math_path]


class TestRuns:
    def test_active_run_is_reused(self, session: ReconciliationSession) -> None:
        first = session.start_run(["a"])

        second = session.start_run(["b"])

        assert second is first
        assert first.files == ["a", "b"]

    def test_new_run_after_finish(self, session: ReconciliationSession, math_path: str) -> None:
        first = session.start_run()
        session.feed(collected(math_path))
        session.feed({"type": "finished"})

        assert session.start_run() is not first

    def test_run_single_case(
        self,
        session: ReconciliationSession,
        backend: FakeBackend,
        math_path: str,
    ) -> None:
        # Given
        session.feed(collected(math_path))
        adds = _cases(session, math_path)["adds"]
        adds.run_state = RunState.PASSED

        # When
        session.run_tests([adds])

        # Then
        ((files, pattern),) = backend.runs
        assert files == [math_path]
        assert pattern is not None
        assert re.search(pattern, "math adds")
        assert not re.search(pattern, "math subtracts")
        assert adds.run_state is RunState.WAITING

    def test_run_everything(
        self, session: ReconciliationSession, backend: FakeBackend, math_path: str
    ) -> None:
        session.run_tests()

        assert backend.runs == [([math_path], None)]

    def test_cancel_stops_applying(self, session: ReconciliationSession, math_path: str) -> None:
        session.feed(collected(math_path))
        session.start_run()

        session.cancel()
        session.feed(update(("t1", {"state": "pass"})))

        assert not session.subscribed
        assert _cases(session, math_path)["adds"].run_state is RunState.WAITING
        run = session.current_run
        assert run is not None and run.cancelled

    def test_dispose_removes_rerun_filter(
        self, session: ReconciliationSession, backend: FakeBackend
    ) -> None:
        assert backend.rerun_filter is not None

        session.dispose()
        session.dispose()

        assert backend.rerun_filter is None


class TestConsume:
    @pytest.mark.asyncio
    async def test_applies_frames_in_order(
        self, session: ReconciliationSession, math_path: str
    ) -> None:
        await session.consume(
            _frames(
                collected(math_path),
                update(("t1", {"state": "running"})),
                update(("t1", {"state": "pass"})),
                {"type": "finished"},
            )
        )

        assert _cases(session, math_path)["adds"].run_state is RunState.PASSED

    @pytest.mark.asyncio
    async def test_stops_after_cancel(self, session: ReconciliationSession, math_path: str) -> None:
        async def stream() -> AsyncIterator[dict[str, Any]]:
            yield collected(math_path)
            session.cancel()
            yield update(("t1", {"state": "pass"}))

        await session.consume(stream())

        assert _cases(session, math_path)["adds"].run_state is RunState.WAITING


class TestFileChanges:
    def test_modified_test_file_reruns_when_tracked(
        self,
        session: ReconciliationSession,
        backend: FakeBackend,
        math_path: str,
    ) -> None:
        # Given
        session.discoverer.resolve(math_path)
        session.scheduler.track_tests([math_path])
        Path(math_path).write_text("it('multiplies', () => {})\n")

        # When
        decision = session.handle_file_changes(
            [FileChange(Path(math_path), FileChangeKind.MODIFIED)], {math_path}
        )

        # Then
        assert decision.action is RerunAction.RUN
        assert backend.runs == [([math_path], None)]
        assert set(_cases(session, math_path)) == {"multiplies"}
        assert session.current_run is not None

    def test_source_change_runs_affected_test_in_every_file_mode(
        self,
        session: ReconciliationSession,
        backend: FakeBackend,
        math_workspace: Path,
        math_path: str,
    ) -> None:
        # Given
        session.scheduler.track_every_file()
        source = math_workspace / "src" / "math.ts"

        # When
        decision = session.handle_file_changes(
            [FileChange(source, FileChangeKind.MODIFIED)], {math_path}
        )

        # Then
        assert decision.action is RerunAction.RUN
        assert backend.runs == [([math_path], None)]
        assert session.current_run is not None
        assert session.current_run.files == [math_path]

    def test_untracked_change_collects(
        self,
        session: ReconciliationSession,
        backend: FakeBackend,
        math_path: str,
    ) -> None:
        decision = session.handle_file_changes(
            [FileChange(Path(math_path), FileChangeKind.MODIFIED)], {math_path}
        )

        assert decision.action is RerunAction.COLLECT
        assert backend.runs == [([math_path], "$a")]
        assert session.current_run is None

    def test_deleted_file_removed(
        self, session: ReconciliationSession, math_path: str
    ) -> None:
        changed_tests = {math_path}
        Path(math_path).unlink()

        session.handle_file_changes(
            [FileChange(Path(math_path), FileChangeKind.DELETED)], changed_tests
        )

        assert session.tree.file_for(math_path) is None
        assert changed_tests == set()


class TestNamePattern:
    def test_file_selects_everything(self, tmp_path: Path) -> None:
        tree = TestTree()
        node = tree.get_or_create_file(tmp_path / "a.test.ts")

        assert name_pattern_for([node]) is None

    def test_suite_selects_descendants(self) -> None:
        suite = SuiteNode(id="s", name="math", full_name="math")

        pattern = name_pattern_for([suite])

        assert pattern is not None
        assert re.search(pattern, "math")
        assert re.search(pattern, "math adds")
        assert not re.search(pattern, "mathematics")

    def test_several_cases(self) -> None:
        a = CaseNode(id="a", name="a", full_name="s a")
        b = CaseNode(id="b", name="b", full_name="s b")

        pattern = name_pattern_for([a, b])

        assert pattern is not None
        assert re.search(pattern, "s a")
        assert re.search(pattern, "s b")
        assert not re.search(pattern, "s c")


class TestRunSummary:
    def test_empty(self) -> None:
        assert RunSummary().summary_text() == "0/0 passed (0%, 0 skipped)"

    def test_rounding(self) -> None:
        summary = RunSummary(passed=2, failed=1, skipped=4)

        assert summary.summary_text() == "2/3 passed (67%, 4 skipped)"
