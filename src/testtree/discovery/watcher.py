"""File watcher adapter using watchfiles.

Turns raw watchfiles batches into FileChange batches for every watched file.
Source changes are forwarded too; the scheduler decides what they rerun.
watchfiles already debounces; the window comes from WatchConfig.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from watchfiles import Change, awatch

from testtree.collaborators import FileChange, FileChangeKind
from testtree.config.models import WatchConfig
from testtree.core.logging import get_logger
from testtree.discovery.filters import PRUNABLE_DIRS, FileFilter

log = get_logger("discovery.watcher")

_KINDS = {
    Change.added: FileChangeKind.CREATED,
    Change.modified: FileChangeKind.MODIFIED,
    Change.deleted: FileChangeKind.DELETED,
}

ChangeCallback = Callable[[list[FileChange]], Awaitable[None] | None]


def to_file_changes(raw: Iterable[tuple[Change, str]], file_filter: FileFilter) -> list[FileChange]:
    """Map one watchfiles batch to file changes, last event per path wins."""
    latest: dict[Path, FileChangeKind] = {}
    for change, raw_path in raw:
        path = Path(raw_path)
        if file_filter.watches(path):
            latest[path] = _KINDS[change]
    return [FileChange(path=path, kind=kind) for path, kind in sorted(latest.items())]


def _watch_filter(change: Change, path: str) -> bool:  # noqa: ARG001
    return not any(part in PRUNABLE_DIRS for part in Path(path).parts)


@dataclass
class WorkspaceWatcher:
    """Watches a workspace root and reports file changes in batches."""

    file_filter: FileFilter
    on_change: ChangeCallback
    debounce_ms: int = 500
    step_ms: int = 50

    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False)

    @classmethod
    def from_config(
        cls, file_filter: FileFilter, on_change: ChangeCallback, config: WatchConfig
    ) -> WorkspaceWatcher:
        return cls(file_filter, on_change, debounce_ms=config.debounce_ms, step_ms=config.step_ms)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def batches(self) -> AsyncIterator[list[FileChange]]:
        """Yield non-empty FileChange batches until stop() is called."""
        async for raw in awatch(
            self.file_filter.root,
            watch_filter=_watch_filter,
            debounce=self.debounce_ms,
            step=self.step_ms,
            stop_event=self._stop_event,
            ignore_permission_denied=True,
        ):
            changes = to_file_changes(raw, self.file_filter)
            if changes:
                log.debug("changes_detected", count=len(changes))
                yield changes

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())
        log.info("file_watcher_started", root=str(self.file_filter.root), debounce_ms=self.debounce_ms)

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        log.info("file_watcher_stopped")

    async def _run(self) -> None:
        async for changes in self.batches():
            result = self.on_change(changes)
            if inspect.isawaitable(result):
                await result
