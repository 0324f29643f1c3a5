"""Propagates runtime results onto the static tree.

Per case: ``waiting -> running -> {passed, failed, skipped}``, and
``waiting -> skipped`` when a run finishes without executing the case.
Suites carry no state of their own; they are recursed into with their
children as the candidate pool, so matching never crosses sibling subtrees.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from uuid import uuid4

from testtree.core.logging import get_logger
from testtree.reconcile.matcher import CandidatePool, MatchRecord, TaskMatcher, kind_for
from testtree.runtime.models import ResultState, RuntimeTask, TaskResult, TaskType
from testtree.tree.model import TestTree
from testtree.tree.nodes import CaseNode, FileNode, RunState, TreeNode

log = get_logger("reconcile.synchronizer")

FileResolver = Callable[[str], FileNode | None]

_RESULT_STATES: dict[ResultState, RunState | None] = {
    ResultState.PASS: RunState.PASSED,
    ResultState.FAIL: RunState.FAILED,
    ResultState.SKIP: RunState.SKIPPED,
    ResultState.TODO: RunState.SKIPPED,
    ResultState.RUN: RunState.RUNNING,
    ResultState.ONLY: None,
}


@dataclass
class TestRun:
    """One execution request. At most one is active per session."""

    __test__ = False

    run_id: str = field(default_factory=lambda: uuid4().hex[:12])
    files: list[str] = field(default_factory=list)
    finished: bool = False
    aborted: bool = False
    cancelled: bool = False

    @property
    def active(self) -> bool:
        return not (self.finished or self.cancelled)


def target_state(result: TaskResult | None, finished: bool) -> RunState | None:
    """Run state for a result, or None when no transition applies."""
    if result is None:
        return RunState.SKIPPED if finished else None
    return _RESULT_STATES[result.state]


class RunStateSynchronizer:
    def __init__(
        self,
        tree: TestTree,
        matcher: TaskMatcher,
        resolve_file: FileResolver | None = None,
    ) -> None:
        self._tree = tree
        self._matcher = matcher
        self._resolve_file = resolve_file or tree.get_or_create_file

    def sync_files(
        self,
        run: TestRun,
        files: Sequence[RuntimeTask],
        *,
        finished: bool,
    ) -> list[MatchRecord]:
        """Apply the results of file-level runtime tasks to the tree.

        Updates for a finished or cancelled run are ignored.
        """
        if not run.active:
            log.debug("closed_run_update_ignored", run_id=run.run_id, files=len(files))
            return []

        records: list[MatchRecord] = []
        for file_task in files:
            if file_task.filepath is None:
                continue
            file_node = self._resolve_file(file_task.filepath)
            if file_node is None:
                log.debug("runtime_file_unresolved", filepath=file_task.filepath)
                continue
            self._sync(file_node.children, file_task.tasks, finished, records)
        return records

    def _sync(
        self,
        nodes: Sequence[TreeNode],
        tasks: Sequence[RuntimeTask],
        finished: bool,
        records: list[MatchRecord],
    ) -> None:
        pool = CandidatePool(nodes)
        failed: set[str] = set()
        for task in tasks:
            record = self._matcher.match_record(task, pool, kind_for(task.type))
            records.append(record)
            node = record.node
            if node is None:
                continue
            if task.type is TaskType.SUITE:
                self._sync(node.children, task.tasks, finished, records)
                continue
            if not isinstance(node, CaseNode):
                continue

            state = target_state(task.result, finished)
            if state is None:
                continue
            # One failing row of a parameterized case keeps it failed
            if node.id in failed and not record.exact:
                continue
            result = task.result
            self.transition(
                node,
                state,
                message=(result.error_message or "") if result and state is RunState.FAILED else None,
                duration_ms=result.duration_ms if result else None,
            )
            if state is RunState.FAILED:
                failed.add(node.id)

    def transition(
        self,
        node: CaseNode,
        state: RunState,
        *,
        message: str | None = None,
        duration_ms: float | None = None,
    ) -> bool:
        """Move a case to state and notify. Returns False for a repeat."""
        if node.run_state is state and node.message == message:
            return False
        node.run_state = state
        node.message = message
        node.duration_ms = duration_ms

        listener = self._tree.listener
        match state:
            case RunState.RUNNING:
                listener.started(node.id)
            case RunState.PASSED:
                listener.passed(node.id, duration_ms)
            case RunState.FAILED:
                listener.failed(node.id, message or "")
            case RunState.SKIPPED:
                listener.skipped(node.id)
            case RunState.WAITING:
                listener.node_updated(node)
        log.debug("case_transitioned", node_id=node.id, state=state.value)
        return True
