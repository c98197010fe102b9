"""Reconcile external file changes with open editor buffers.

The assistant edits files on disk while the user may hold the same files in
buffers. Unmodified buffers are reloaded silently; buffers with unsaved edits
are left untouched and the user is warned.
"""

from __future__ import annotations

import asyncio
import logging as py_logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from watchfiles import Change, awatch

from claudeterm.editor import EditorHost, NotifyLevel
from claudeterm.errors import ClaudeTermError

logger = py_logging.getLogger(__name__)


class RefreshDecision(str, Enum):
    RELOAD = "reload"
    SKIP_UNSAVED_CONFLICT = "skip-unsaved-conflict"
    SKIP_UNAFFECTED = "skip-unaffected"
    RELOAD_FAILED = "reload-failed"


@dataclass(frozen=True)
class RefreshOutcome:
    path: str
    decision: RefreshDecision
    bufnr: int | None = None


class FileRefreshBridge:
    def __init__(self, editor: EditorHost, *, enabled: bool = True, show_notifications: bool = True) -> None:
        self.editor = editor
        self.enabled = enabled
        self.show_notifications = show_notifications

    def on_external_change(self, file_path: str | Path) -> list[RefreshOutcome]:
        """Decide, per matching buffer, whether a change on disk is applied."""
        if not self.enabled:
            return []
        path = str(file_path)
        buffers = self.editor.find_buffers(file_path)
        if not buffers:
            logger.debug("External change unaffected path=%s", path)
            return [RefreshOutcome(path=path, decision=RefreshDecision.SKIP_UNAFFECTED)]

        outcomes: list[RefreshOutcome] = []
        for bufnr in buffers:
            if self.editor.buffer_is_modified(bufnr):
                logger.warning("External change conflicts with unsaved buffer bufnr=%s path=%s", bufnr, path)
                self.editor.notify(
                    f"{path} changed on disk but has unsaved edits; not reloading",
                    NotifyLevel.WARN,
                )
                outcomes.append(RefreshOutcome(path, RefreshDecision.SKIP_UNSAVED_CONFLICT, bufnr))
                continue
            try:
                self.editor.reload_buffer(bufnr)
            except (OSError, UnicodeDecodeError, ClaudeTermError) as exc:
                logger.warning("Reload failed bufnr=%s path=%s error=%s", bufnr, path, exc)
                self.editor.notify(f"Could not reload {path}: {exc}", NotifyLevel.WARN)
                outcomes.append(RefreshOutcome(path, RefreshDecision.RELOAD_FAILED, bufnr))
                continue
            logger.debug("Reloaded buffer bufnr=%s path=%s", bufnr, path)
            if self.show_notifications:
                self.editor.notify(f"Reloaded {path} after external change", NotifyLevel.INFO)
            outcomes.append(RefreshOutcome(path, RefreshDecision.RELOAD, bufnr))
        return outcomes


@dataclass
class RefreshWatcher:
    """Feeds file changes under project roots into a refresh bridge.

    Uses ``watchfiles.awatch``; added and modified files are dispatched,
    deletions are ignored.
    """

    bridge: FileRefreshBridge
    debounce_ms: int = 100
    watching: bool = False

    _task: asyncio.Task | None = field(default=None, repr=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    _roots: tuple[Path, ...] = field(default=(), repr=False)

    async def start(self, roots: Iterable[str | Path]) -> None:
        if not self.bridge.enabled:
            logger.debug("Auto-reload disabled; watcher not started")
            return
        resolved = tuple(sorted({Path(root).expanduser().resolve() for root in roots}))
        if not resolved:
            return
        await self.stop()
        self._roots = resolved
        self._stop_event = asyncio.Event()
        self.watching = True
        self._task = asyncio.create_task(self._watch_loop())
        logger.info("Watching %d project root(s) for external changes", len(resolved))

    async def stop(self) -> None:
        self.watching = False
        self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def dispatch(self, changes: Iterable[tuple[Change, str]]) -> list[RefreshOutcome]:
        outcomes: list[RefreshOutcome] = []
        seen: set[str] = set()
        for change_type, change_path in sorted(changes, key=lambda item: item[1]):
            if change_type not in (Change.modified, Change.added) or change_path in seen:
                continue
            seen.add(change_path)
            outcomes.extend(self.bridge.on_external_change(change_path))
        return outcomes

    async def _watch_loop(self) -> None:
        try:
            async for changes in awatch(
                *self._roots,
                stop_event=self._stop_event,
                debounce=self.debounce_ms,
                rust_timeout=500,
            ):
                if not self.watching:
                    break
                try:
                    self.dispatch(changes)
                except Exception:
                    logger.exception("Dispatching %d change(s) failed; watcher keeps running", len(changes))
        except asyncio.CancelledError:
            pass
