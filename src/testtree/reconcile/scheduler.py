"""Continuous-run scheduling policy.

Decides, for one tick of file changes, whether to rerun tests and which.
The caller resolves which test files a change affects (import graphs are
not computed here); the scheduler only filters that changed-test set.

Modes:

- disabled: changes to test files are collected with a name pattern that
  never matches, so the tree refreshes without running anything. Other
  changes are dropped.
- every file: any change reruns every changed test with the active filter.
- explicit: only changed tests that are watched rerun. A watched entry
  ending in a path separator watches everything below it.
"""

from __future__ import annotations

import os
from collections.abc import MutableSet, Sequence
from dataclasses import dataclass
from enum import Enum

from testtree.collaborators import ExecutionBackend
from testtree.core.logging import get_logger

log = get_logger("reconcile.scheduler")

# Matches no test name: end of input followed by a character
COLLECT_NAME_PATTERN = "$a"


class RerunAction(str, Enum):
    IDLE = "idle"
    COLLECT = "collect"
    RUN = "run"


@dataclass(frozen=True, slots=True)
class RerunDecision:
    action: RerunAction
    files: tuple[str, ...] = ()
    name_pattern: str | None = None


IDLE = RerunDecision(RerunAction.IDLE)


class ContinuousRunScheduler:
    def __init__(self) -> None:
        self._files: list[str] = []
        self._name_pattern: str | None = None
        self._watch_every_file = False
        self._rerun_triggered = False
        self._enabled = False
        self._backend: ExecutionBackend | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def watch_every_file(self) -> bool:
        return self._watch_every_file

    @property
    def files(self) -> list[str]:
        return list(self._files)

    @property
    def name_pattern(self) -> str | None:
        return self._name_pattern

    @property
    def rerun_triggered(self) -> bool:
        return self._rerun_triggered

    # -- Tracking --

    def track_tests(self, files: Sequence[str], name_pattern: str | None = None) -> None:
        """Watch an explicit list of test files or directories."""
        self._enabled = True
        self._files = list(files)
        self._watch_every_file = False
        self._name_pattern = name_pattern
        self._rerun_triggered = False
        log.info("continuous_run_tracking", files=len(self._files), name_pattern=name_pattern)

    def track_every_file(self) -> None:
        self._enabled = True
        self._watch_every_file = True
        self._files = []
        self._name_pattern = None
        self._rerun_triggered = False
        log.info("continuous_run_tracking_all")

    def stop_tracking(self) -> None:
        self._enabled = False
        log.info("continuous_run_stopped")

    def mark_rerun(self, rerun: bool = True) -> None:
        self._rerun_triggered = rerun

    def is_test_file_watched(self, test_file: str) -> bool:
        for entry in self._files:
            if entry == test_file:
                return True
            if entry.endswith(("/", os.sep)) and test_file.startswith(entry):
                return True
        return False

    # -- Backend seam --

    def install(self, backend: ExecutionBackend) -> None:
        """Populate the backend's rerun-candidate filter with this policy."""
        self._backend = backend
        backend.set_rerun_filter(self.is_rerun_candidate)

    def uninstall(self) -> None:
        if self._backend is not None:
            self._backend.set_rerun_filter(None)
            self._backend = None

    def is_rerun_candidate(self, test_file: str) -> bool:
        if not self._enabled:
            return False
        return self._watch_every_file or self.is_test_file_watched(test_file)

    # -- Policy --

    def schedule(self, changed_files: Sequence[str], changed_tests: MutableSet[str]) -> RerunDecision:
        """Decide what one tick of changes reruns.

        changed_tests is the caller's changed-test bookkeeping and is
        updated in place: cleared on a dropped change, narrowed to the
        watched entries in explicit mode.
        """
        if not changed_files:
            return IDLE
        trigger = changed_files[0]
        is_test_trigger = trigger in changed_tests

        if not self._enabled:
            if not is_test_trigger:
                changed_tests.clear()
                log.debug("change_ignored", trigger=trigger)
                return IDLE
            files = tuple(sorted(changed_tests))
            log.info("collect_scheduled", files=len(files))
            return RerunDecision(RerunAction.COLLECT, files, COLLECT_NAME_PATTERN)

        self._rerun_triggered = True

        if self._watch_every_file:
            if not changed_tests:
                log.debug("rerun_skipped_no_tests", trigger=trigger)
                return IDLE
            files = tuple(sorted(changed_tests))
            log.info("rerun_scheduled", mode="every_file", files=len(files))
            return RerunDecision(RerunAction.RUN, files, self._name_pattern)

        watched = {test for test in changed_tests if self.is_test_file_watched(test)}
        for test in list(changed_tests):
            if test not in watched:
                changed_tests.discard(test)
        if not watched:
            log.debug("rerun_skipped_unwatched", trigger=trigger)
            return IDLE
        files = tuple(sorted(watched))
        log.info("rerun_scheduled", mode="explicit", files=len(files))
        return RerunDecision(RerunAction.RUN, files, self._name_pattern)
