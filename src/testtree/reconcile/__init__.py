"""Reconciliation of runtime results with the static tree."""

from testtree.reconcile.matcher import CandidatePool, MatchRecord, TaskMatcher, name_to_regex
from testtree.reconcile.scheduler import (
    COLLECT_NAME_PATTERN,
    ContinuousRunScheduler,
    RerunAction,
    RerunDecision,
)
from testtree.reconcile.session import ReconciliationSession, RunSummary, name_pattern_for
from testtree.reconcile.synchronizer import RunStateSynchronizer, TestRun, target_state

__all__ = [
    "COLLECT_NAME_PATTERN",
    "CandidatePool",
    "ContinuousRunScheduler",
    "MatchRecord",
    "ReconciliationSession",
    "RerunAction",
    "RerunDecision",
    "RunStateSynchronizer",
    "RunSummary",
    "TaskMatcher",
    "TestRun",
    "name_pattern_for",
    "name_to_regex",
    "target_state",
]
