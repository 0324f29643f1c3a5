"""Reconciliation session: one workspace, one tree, one runtime stream.

The session owns the run record and drives the pipeline

    transport frame -> StateManager -> RunStateSynchronizer -> TestTree

one message at a time, in arrival order. Nothing here runs tests: run
requests go to the injected ExecutionBackend.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable, Mapping, MutableSet, Sequence
from dataclasses import dataclass
from typing import Any

from testtree.collaborators import ExecutionBackend, FileChange, FileChangeKind
from testtree.config.models import TestTreeConfig
from testtree.core.errors import IngestError
from testtree.core.logging import bind_run_id, get_logger, unbind_run_id
from testtree.discovery.discoverer import TestFileDiscoverer
from testtree.reconcile.matcher import TaskMatcher, name_to_regex
from testtree.reconcile.scheduler import ContinuousRunScheduler, RerunAction, RerunDecision
from testtree.reconcile.synchronizer import RunStateSynchronizer, TestRun
from testtree.runtime.models import ResultState, RuntimeTask
from testtree.runtime.state import StateManager
from testtree.runtime.transport import (
    Collected,
    ConsoleLog,
    Finished,
    TaskUpdate,
    TransportMessage,
    decode_message,
)
from testtree.tree.model import TestTree
from testtree.tree.nodes import CaseNode, FileNode, RunState, SuiteNode, TreeNode

log = get_logger("reconcile.session")

Frame = str | bytes | Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class RunSummary:
    passed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed

    def summary_text(self) -> str:
        """Render as ``3/4 passed (75%, 1 skipped)``."""
        percent = round(self.passed / self.total * 100) if self.total else 0
        return f"{self.passed}/{self.total} passed ({percent}%, {self.skipped} skipped)"


def name_pattern_for(nodes: Sequence[TreeNode]) -> str | None:
    """Test-name regex selecting exactly the given suites and cases.

    Returns None when any node is a file, since whole files need no filter.
    """
    if not nodes or any(isinstance(node, FileNode) for node in nodes):
        return None
    alternatives: list[str] = []
    for node in nodes:
        if not isinstance(node, SuiteNode | CaseNode):
            return None
        source = name_to_regex(node.full_name)
        # A suite selects everything nested under it
        alternatives.append(source + "(?: .*)?" if isinstance(node, SuiteNode) else source)
    if len(alternatives) == 1:
        return f"^{alternatives[0]}$"
    return "^(?:" + "|".join(alternatives) + ")$"


class ReconciliationSession:
    """Created and disposed explicitly per workspace; collaborators are injected."""

    def __init__(
        self,
        tree: TestTree,
        discoverer: TestFileDiscoverer,
        *,
        matcher: TaskMatcher | None = None,
        state: StateManager | None = None,
        backend: ExecutionBackend | None = None,
        scheduler: ContinuousRunScheduler | None = None,
    ) -> None:
        self.tree = tree
        self.discoverer = discoverer
        self.state = state or StateManager()
        self.backend = backend
        self.scheduler = scheduler or ContinuousRunScheduler()
        self.synchronizer = RunStateSynchronizer(
            tree, matcher or TaskMatcher(), resolve_file=self._resolve_file
        )
        self._run: TestRun | None = None
        self._subscribed = True
        self._disposed = False
        if backend is not None:
            self.scheduler.install(backend)

    @classmethod
    def from_config(
        cls,
        tree: TestTree,
        discoverer: TestFileDiscoverer,
        config: TestTreeConfig,
        backend: ExecutionBackend | None = None,
    ) -> ReconciliationSession:
        return cls(
            tree,
            discoverer,
            matcher=TaskMatcher.from_config(config.matcher),
            backend=backend,
        )

    @property
    def current_run(self) -> TestRun | None:
        return self._run

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    def _resolve_file(self, filepath: str) -> FileNode:
        return self.discoverer.resolve(filepath)

    # -- Runs --

    def start_run(self, files: Iterable[str] = ()) -> TestRun:
        """Return the in-flight run, or start a new one."""
        if self._run is not None and self._run.active:
            self._run.files.extend(f for f in files if f not in self._run.files)
            return self._run
        self._run = TestRun(files=list(files))
        self._subscribed = True
        bind_run_id(self._run.run_id)
        log.info("run_started", files=len(self._run.files))
        return self._run

    def run_tests(self, nodes: Sequence[TreeNode] | None = None) -> TestRun:
        """Ask the backend to run nodes (every known file when None)."""
        if nodes:
            files: list[str] = []
            for node in nodes:
                file_node = node if isinstance(node, FileNode) else self.tree.file_of(node.id)
                if file_node is not None and str(file_node.path) not in files:
                    files.append(str(file_node.path))
            pattern = name_pattern_for(nodes)
            targets = [case for node in nodes for case in self.tree.iter_cases(node)]
        else:
            files = self.state.get_filepaths() or [str(f.path) for f in self.tree.files()]
            pattern = None
            targets = list(self.tree.iter_cases())

        run = self.start_run(files)
        for case in targets:
            self.synchronizer.transition(case, RunState.WAITING)
        if self.backend is not None:
            self.backend.run_files(files, pattern)
        log.info("run_requested", files=len(files), name_pattern=pattern)
        return run

    def cancel(self) -> None:
        """Sever the event subscription. Applied states stay as they are."""
        self._subscribed = False
        if self._run is not None and self._run.active:
            self._run.cancelled = True
            log.info("run_cancelled")
        unbind_run_id()

    def dispose(self) -> None:
        if self._disposed:
            return
        self.cancel()
        self.scheduler.uninstall()
        self._disposed = True
        log.debug("session_disposed")

    # -- Ingestion --

    async def consume(self, stream: AsyncIterable[Frame]) -> None:
        """Apply every frame of stream in order until cancelled.

        Raises:
            TransportError: A frame could not be decoded at all.
        """
        async for raw in stream:
            if not self._subscribed:
                log.debug("frame_ignored_unsubscribed")
                break
            self.feed(raw)

    def feed(self, raw: Frame) -> TransportMessage | None:
        """Decode and apply one frame. Invalid payloads are recorded, not raised."""
        try:
            message = decode_message(raw)
        except IngestError as e:
            self.state.catch_error(e, e.details.get("event", "unknown"))
            return None
        self.ingest(message)
        return message

    def ingest(self, message: TransportMessage) -> None:
        if not self._subscribed:
            return
        match message:
            case Collected(files=files):
                self.state.collect_files(files)
                for file in files:
                    if file.filepath is not None:
                        self._resolve_file(file.filepath)
            case TaskUpdate(packs=packs):
                updated = self.state.update_tasks(packs)
                owners: list[RuntimeTask] = []
                for task in updated:
                    owner = self.state.file_of(task)
                    if owner is not None and owner not in owners:
                        owners.append(owner)
                if owners:
                    run = self.start_run()
                    self.synchronizer.sync_files(run, owners, finished=False)
            case ConsoleLog(entry=entry):
                self.state.update_user_log(entry)
            case Finished(files=files, aborted=aborted):
                if files:
                    self.state.collect_files(files)
                run = self.start_run()
                self.synchronizer.sync_files(run, files or self.state.get_files(), finished=True)
                run.finished = True
                run.aborted = aborted
                log.info(
                    "run_finished",
                    aborted=aborted,
                    summary=self.status().summary_text(),
                )
                unbind_run_id()

    # -- Continuous run --

    def handle_file_changes(
        self,
        changes: Sequence[FileChange],
        changed_tests: MutableSet[str],
    ) -> RerunDecision:
        """Refresh the tree for changes, then let the scheduler pick a rerun."""
        for change in changes:
            self.discoverer.handle_change(change)
            if change.kind is FileChangeKind.DELETED:
                changed_tests.discard(str(change.path))

        decision = self.scheduler.schedule([str(c.path) for c in changes], changed_tests)
        if decision.action is RerunAction.IDLE or self.backend is None:
            return decision

        if decision.action is RerunAction.RUN:
            self.start_run(decision.files)
        self.backend.run_files(list(decision.files), decision.name_pattern)
        return decision

    # -- Status --

    def status(self) -> RunSummary:
        passed = failed = skipped = 0
        for task in self.state.tests():
            if task.result is None:
                skipped += 1
            elif task.result.state is ResultState.PASS:
                passed += 1
            elif task.result.state is ResultState.FAIL:
                failed += 1
            elif task.result.state in (ResultState.SKIP, ResultState.TODO):
                skipped += 1
        return RunSummary(passed=passed, failed=failed, skipped=skipped)
