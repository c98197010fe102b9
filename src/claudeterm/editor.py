"""Editor host boundary and a headless in-memory implementation."""

from __future__ import annotations

import logging as py_logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from claudeterm.errors import ClaudeTermError, ExitCode

logger = py_logging.getLogger(__name__)


class NotifyLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class EditorHost(Protocol):
    def cwd(self) -> Path: ...

    def create_terminal_buffer(self, name: str, channel: str) -> int: ...

    def buffer_is_valid(self, bufnr: int) -> bool: ...

    def buffer_name(self, bufnr: int) -> str: ...

    def buffer_is_modified(self, bufnr: int) -> bool: ...

    def buffer_channel(self, bufnr: int) -> str | None: ...

    def find_buffers(self, path: str | Path) -> list[int]: ...

    def delete_buffer(self, bufnr: int) -> None: ...

    def reload_buffer(self, bufnr: int) -> None: ...

    def current_buffer(self) -> int: ...

    def list_windows(self) -> list[int]: ...

    def window_buffer(self, win: int) -> int: ...

    def open_window(self, bufnr: int) -> int: ...

    def hide_window(self, win: int) -> None: ...

    def focus_window(self, win: int) -> None: ...

    def enter_insert_mode(self) -> None: ...

    def notify(self, message: str, level: NotifyLevel = NotifyLevel.INFO) -> None: ...


@dataclass
class _Buffer:
    name: str
    path: Path | None = None
    content: str = ""
    modified: bool = False
    channel: str | None = None


class HeadlessEditor:
    """Editor host without a UI: file buffers are backed by disk."""

    def __init__(self, cwd: str | Path | None = None) -> None:
        self._cwd = Path(cwd).expanduser().resolve() if cwd else Path.cwd().resolve()
        self._buffers: dict[int, _Buffer] = {}
        self._windows: dict[int, int] = {}
        self._next_bufnr = 1
        self._next_win = 1000
        self._current_win = self.open_window(self._add_buffer(_Buffer(name="")))
        self.insert_mode = False
        self.notifications: list[tuple[str, NotifyLevel]] = []

    def cwd(self) -> Path:
        return self._cwd

    def open_file(self, path: str | Path) -> int:
        resolved = Path(path).expanduser()
        if not resolved.is_absolute():
            resolved = self._cwd / resolved
        resolved = resolved.resolve()
        existing = self.find_buffers(resolved)
        if existing:
            bufnr = existing[0]
        else:
            content = resolved.read_text(encoding="utf-8") if resolved.is_file() else ""
            bufnr = self._add_buffer(_Buffer(name=str(resolved), path=resolved, content=content))
        self._windows[self._current_win] = bufnr
        return bufnr

    def edit(self, bufnr: int, content: str) -> None:
        buffer = self._require(bufnr)
        buffer.content = content
        buffer.modified = True

    def write(self, bufnr: int) -> None:
        buffer = self._require(bufnr)
        if buffer.path is None:
            raise ClaudeTermError(
                f"Buffer {bufnr} has no file name.",
                code=ExitCode.VALIDATION_ERROR,
                hint="Open a file before writing.",
            )
        buffer.path.write_text(buffer.content, encoding="utf-8")
        buffer.modified = False

    def buffer_content(self, bufnr: int) -> str:
        return self._require(bufnr).content

    def delete_buffer(self, bufnr: int) -> None:
        self._require(bufnr)
        for win in [win for win, shown in self._windows.items() if shown == bufnr]:
            self.hide_window(win)
        del self._buffers[bufnr]

    def create_terminal_buffer(self, name: str, channel: str) -> int:
        return self._add_buffer(_Buffer(name=name, channel=channel))

    def buffer_is_valid(self, bufnr: int) -> bool:
        return bufnr in self._buffers

    def buffer_name(self, bufnr: int) -> str:
        return self._require(bufnr).name

    def buffer_is_modified(self, bufnr: int) -> bool:
        return self._require(bufnr).modified

    def buffer_channel(self, bufnr: int) -> str | None:
        buffer = self._buffers.get(bufnr)
        return buffer.channel if buffer else None

    def find_buffers(self, path: str | Path) -> list[int]:
        target = Path(path).expanduser()
        if not target.is_absolute():
            target = self._cwd / target
        target = target.resolve()
        return sorted(
            bufnr for bufnr, buffer in self._buffers.items() if buffer.path is not None and buffer.path == target
        )

    def reload_buffer(self, bufnr: int) -> None:
        buffer = self._require(bufnr)
        if buffer.path is None:
            return
        try:
            buffer.content = buffer.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Reload skipped; file vanished path=%s", buffer.path)
            return
        buffer.modified = False

    def current_buffer(self) -> int:
        return self._windows[self._current_win]

    def current_window(self) -> int:
        return self._current_win

    def list_windows(self) -> list[int]:
        return sorted(self._windows)

    def window_buffer(self, win: int) -> int:
        if win not in self._windows:
            raise ClaudeTermError(f"Window not found: {win}", code=ExitCode.VALIDATION_ERROR)
        return self._windows[win]

    def open_window(self, bufnr: int) -> int:
        self._require(bufnr)
        win = self._next_win
        self._next_win += 1
        self._windows[win] = bufnr
        return win

    def hide_window(self, win: int) -> None:
        if win not in self._windows:
            return
        if len(self._windows) == 1:
            # The last window stays; it falls back to a scratch buffer.
            self._windows[win] = self._add_buffer(_Buffer(name=""))
            return
        del self._windows[win]
        if self._current_win == win:
            self._current_win = min(self._windows)
            self.insert_mode = False

    def focus_window(self, win: int) -> None:
        if win not in self._windows:
            raise ClaudeTermError(f"Window not found: {win}", code=ExitCode.VALIDATION_ERROR)
        if win != self._current_win:
            self.insert_mode = False
        self._current_win = win

    def enter_insert_mode(self) -> None:
        self.insert_mode = True

    def notify(self, message: str, level: NotifyLevel = NotifyLevel.INFO) -> None:
        self.notifications.append((message, level))
        log_level = {
            NotifyLevel.INFO: py_logging.INFO,
            NotifyLevel.WARN: py_logging.WARNING,
            NotifyLevel.ERROR: py_logging.ERROR,
        }[level]
        logger.log(log_level, "notify %s", message)

    def _add_buffer(self, buffer: _Buffer) -> int:
        bufnr = self._next_bufnr
        self._next_bufnr += 1
        self._buffers[bufnr] = buffer
        return bufnr

    def _require(self, bufnr: int) -> _Buffer:
        buffer = self._buffers.get(bufnr)
        if buffer is None:
            raise ClaudeTermError(f"Buffer not found: {bufnr}", code=ExitCode.VALIDATION_ERROR)
        return buffer
