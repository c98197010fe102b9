"""Toggle/open/focus lifecycle of project-keyed assistant sessions."""

from __future__ import annotations

import hashlib
import logging as py_logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from claudeterm.editor import EditorHost
from claudeterm.errors import ClaudeTermError, ExitCode
from claudeterm.terminal.command import compose
from claudeterm.terminal.models import GLOBAL_KEY, Instance, ProjectKey, SessionEvent, WindowState
from claudeterm.terminal.pty_backend import PtyBackend
from claudeterm.terminal.registry import InstanceRegistry

logger = py_logging.getLogger(__name__)

BUFFER_PREFIX = "claude-code"
_SANITIZE_PATTERN = re.compile(r"[^A-Za-z0-9._-]+")


def buffer_name_for(key: ProjectKey) -> str:
    cleaned = _SANITIZE_PATTERN.sub("-", str(key)).strip("-") or "default"
    digest = hashlib.sha1(str(key).encode("utf-8")).hexdigest()[:8]
    return f"{BUFFER_PREFIX}-{cleaned}-{digest}"


@dataclass
class SessionContext:
    """All mutable session state: the registry and its current-key pointer."""

    registry: InstanceRegistry = field(default_factory=InstanceRegistry)
    events: list[SessionEvent] = field(default_factory=list)


class SessionManager:
    def __init__(
        self,
        editor: EditorHost,
        backend: PtyBackend,
        *,
        command: str = "claude",
        command_variants: Mapping[str, str] | None = None,
        multi_instance: bool = True,
        enter_insert: bool = True,
        context: SessionContext | None = None,
    ) -> None:
        self.editor = editor
        self.backend = backend
        self.command = command
        self.command_variants = dict(command_variants or {})
        self.multi_instance = multi_instance
        self.enter_insert = enter_insert
        self.context = context or SessionContext()
        self.context.registry.bind(self._buffer_is_live, on_evict=self._release)

    @property
    def registry(self) -> InstanceRegistry:
        return self.context.registry

    def session_key(self, project_root: str | Path) -> ProjectKey:
        if not self.multi_instance:
            return GLOBAL_KEY
        return ProjectKey(str(project_root))

    def list_instances(self) -> list[Instance]:
        instances = (self.registry.get(key) for key in self.registry.keys())
        return [instance for instance in instances if instance is not None]

    def list_events(self) -> list[SessionEvent]:
        return list(self.context.events)

    def get_current_buffer(self) -> int | None:
        key = self.registry.get_current()
        if key is None:
            return None
        instance = self.registry.get(key)
        return instance.bufnr if instance else None

    def toggle(self, key: ProjectKey, command: str | None = None) -> Instance:
        """Create, show or hide the session for ``key``.

        Hiding only closes the windows; the process keeps running.
        """
        self.registry.set_current(key)
        instance = self.registry.get(key)
        if instance is not None and not self.backend.is_alive(instance.terminal_id):
            self._record(key, "stale", "Process exited; recreating session.")
            self.registry.remove(key)
            self.editor.delete_buffer(instance.bufnr)
            instance = None

        if instance is None:
            instance = self._create(key, command or self.command)
            self._show(instance)
            return instance

        windows = self._windows_for(instance)
        if windows:
            for win in windows:
                self.editor.hide_window(win)
            instance.window_state = WindowState.CLOSED
            self._record(key, "hide", "Terminal window hidden.")
        else:
            self._show(instance)
        return instance

    def toggle_with_variant(self, key: ProjectKey, variant_name: str | None) -> Instance:
        # Variants only affect fresh launches; a running session keeps its command.
        return self.toggle(key, compose(self.command, variant_name, self.command_variants))

    def send_text(self, key: ProjectKey, text: str) -> Instance:
        if not text:
            raise ClaudeTermError(
                "Nothing to send.",
                code=ExitCode.NOTHING_TO_SEND,
                hint="Provide a non-empty payload.",
            )
        self.registry.set_current(key)
        instance = self.registry.get(key)
        if instance is None:
            instance = self.toggle(key)

        channel = self.editor.buffer_channel(instance.bufnr)
        if channel is None or not self.backend.is_alive(channel):
            self._record(key, "send-failed", "Terminal channel is gone.")
            raise ClaudeTermError(
                "Assistant terminal job not found.",
                code=ExitCode.NO_CHANNEL,
                hint="Toggle the assistant terminal to start a new session.",
            )
        self.backend.write(channel, text)
        self._record(key, "send", f"Sent {len(text)} characters.")
        self.focus(instance)
        return instance

    def focus(self, instance: Instance) -> None:
        windows = self._windows_for(instance)
        if not windows:
            self._show(instance)
            return
        self.editor.focus_window(windows[0])
        instance.window_state = WindowState.FOCUSED
        if self.enter_insert:
            self.editor.enter_insert_mode()

    def close(self, key: ProjectKey) -> None:
        instance = self.registry.remove(key)
        if instance is None:
            return
        for win in self._windows_for(instance):
            self.editor.hide_window(win)
        instance.window_state = WindowState.CLOSED
        self._record(key, "close", "Session closed.")

    def close_all(self) -> None:
        for key in self.registry.keys():
            self.close(key)

    def _create(self, key: ProjectKey, command: str) -> Instance:
        terminal_id = buffer_name_for(key)
        if self.backend.has_session(terminal_id):
            self.backend.stop(terminal_id)
        cwd = key if key != GLOBAL_KEY else None
        handle = self.backend.start(terminal_id, command=command, cwd=cwd)
        bufnr = self.editor.create_terminal_buffer(terminal_id, handle.terminal_id)
        instance = Instance(key=key, handle=handle, bufnr=bufnr, command=command, window_state=WindowState.OPEN)
        self.registry.put(key, instance)
        self._record(key, "create", f"Launched `{command}`.")
        return instance

    def _show(self, instance: Instance) -> None:
        win = self.editor.open_window(instance.bufnr)
        instance.window_state = WindowState.OPEN
        self.editor.focus_window(win)
        instance.window_state = WindowState.FOCUSED
        if self.enter_insert:
            self.editor.enter_insert_mode()
        self._record(instance.key, "show", "Terminal window focused.")

    def _windows_for(self, instance: Instance) -> list[int]:
        return [win for win in self.editor.list_windows() if self.editor.window_buffer(win) == instance.bufnr]

    def _buffer_is_live(self, instance: Instance) -> bool:
        return self.editor.buffer_is_valid(instance.bufnr)

    def _release(self, instance: Instance) -> None:
        if not self.backend.has_session(instance.terminal_id):
            return
        try:
            self.backend.stop(instance.terminal_id)
        except ClaudeTermError as exc:
            logger.warning("Failed to release session key=%s: %s", instance.key, exc)
        self._record(instance.key, "release", "Process handle released.")

    def _record(self, key: str, step: str, message: str) -> None:
        self.context.events.append(SessionEvent(key=key, step=step, message=message))
        logger.info("session-event key=%s step=%s message=%s", key, step, message)
