"""Editor-facing entry points for driving assistant sessions."""

from __future__ import annotations

import logging as py_logging
from pathlib import Path

from claudeterm.config import AppConfig
from claudeterm.editor import EditorHost, NotifyLevel
from claudeterm.errors import ClaudeTermError, ExitCode
from claudeterm.project import ProjectResolver
from claudeterm.refresh import FileRefreshBridge, RefreshOutcome, RefreshWatcher
from claudeterm.terminal import Instance, ProjectKey, PtyBackend, SessionManager, VariantNotFound, lookup_variant

logger = py_logging.getLogger(__name__)


class ClaudeTerm:
    """Wires the resolver, session manager and refresh bridge to one editor.

    Core errors never escape these methods: they become editor warnings and
    abort only the current operation.
    """

    def __init__(
        self,
        config: AppConfig,
        editor: EditorHost,
        *,
        backend: PtyBackend | None = None,
        resolver: ProjectResolver | None = None,
    ) -> None:
        self.config = config
        self.editor = editor
        self.resolver = resolver or ProjectResolver(use_git_root=config.use_git_root, cwd=editor.cwd)
        self.sessions = SessionManager(
            editor,
            backend or PtyBackend(),
            command=config.command,
            command_variants=config.command_variants,
            multi_instance=config.multi_instance,
            enter_insert=config.enter_insert and not config.start_in_normal_mode,
        )
        self.refresh = FileRefreshBridge(
            editor,
            enabled=config.auto_reload,
            show_notifications=config.show_notifications,
        )

    def key_for(self, file_path: str | Path | None = None) -> ProjectKey:
        return self.sessions.session_key(self.resolver.resolve(file_path))

    def toggle(self, key: ProjectKey | None = None, command: str | None = None) -> Instance | None:
        try:
            return self.sessions.toggle(key or self.key_for(), command)
        except ClaudeTermError as exc:
            self._warn(exc)
            return None

    def toggle_with_variant(self, variant_name: str | None, key: ProjectKey | None = None) -> Instance | None:
        if isinstance(lookup_variant(variant_name, self.config.command_variants), VariantNotFound):
            logger.debug("Unknown command variant %r; plain toggle", variant_name)
            return self.toggle(key)
        try:
            return self.sessions.toggle_with_variant(key or self.key_for(), variant_name)
        except ClaudeTermError as exc:
            self._warn(exc)
            return None

    def send_text(self, file_path: str | Path | None, text: str) -> Instance | None:
        """Deliver ``text`` to the session owning ``file_path``."""
        try:
            if not file_path or Path(file_path).is_dir():
                raise ClaudeTermError(
                    "No file to address the assistant session",
                    code=ExitCode.NOTHING_TO_SEND,
                    hint="Send from a buffer backed by a file.",
                )
            return self.sessions.send_text(self.key_for(file_path), text)
        except ClaudeTermError as exc:
            self._warn(exc)
            return None

    def send_current_file_path(self) -> Instance | None:
        current_file = self.editor.buffer_name(self.editor.current_buffer())
        if not current_file or Path(current_file).is_dir():
            self._warn(
                ClaudeTermError("No file to send to the assistant", code=ExitCode.NOTHING_TO_SEND)
            )
            return None

        # Paths stay absolute outside a repository.
        file_path = self.resolver.relative_path(current_file, self.resolver.git_root(current_file))
        try:
            instance = self.sessions.send_text(self.key_for(current_file), file_path)
        except ClaudeTermError as exc:
            self._warn(exc)
            return None
        self.editor.notify(f"Sent file path: {file_path}", NotifyLevel.INFO)
        return instance

    def get_current_buffer(self) -> int | None:
        return self.sessions.get_current_buffer()

    def force_insert_mode(self) -> None:
        bufnr = self.get_current_buffer()
        if bufnr is None or self.editor.current_buffer() != bufnr:
            return
        if self.config.start_in_normal_mode:
            return
        self.editor.enter_insert_mode()

    def on_external_change(self, file_path: str | Path) -> list[RefreshOutcome]:
        return self.refresh.on_external_change(file_path)

    async def start_refresh_watcher(self) -> RefreshWatcher:
        watcher = RefreshWatcher(self.refresh, debounce_ms=self.config.watch_debounce_ms)
        roots = {Path(instance.key) for instance in self.sessions.list_instances() if Path(instance.key).is_dir()}
        if not roots:
            roots = {Path(self.resolver.resolve())}
        await watcher.start(roots)
        return watcher

    def _warn(self, exc: ClaudeTermError) -> None:
        logger.warning("Operation aborted (code=%s): %s", int(exc.code), exc.message)
        level = NotifyLevel.WARN if exc.code in (ExitCode.NO_CHANNEL, ExitCode.NOTHING_TO_SEND) else NotifyLevel.ERROR
        self.editor.notify(str(exc), level)
