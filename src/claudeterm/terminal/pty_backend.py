"""PTY process lifecycle for assistant sessions."""

from __future__ import annotations

import atexit
import logging as py_logging
import subprocess
import sys
from collections.abc import Callable
from contextlib import suppress

from claudeterm.errors import ClaudeTermError, ExitCode
from claudeterm.terminal.command import split_command
from claudeterm.terminal.models import PtyHandle

logger = py_logging.getLogger(__name__)

PtySpawn = Callable[[list[str], str | None, dict[str, str] | None], object]


class _PexpectProcess:
    """Adapts ``pexpect.spawn`` to the pywinpty ``PtyProcess`` surface."""

    def __init__(self, child: object) -> None:
        self._child = child

    def write(self, payload: str) -> None:
        self._child.send(payload)

    def isalive(self) -> bool:
        return bool(self._child.isalive())

    def interact(self) -> None:
        self._child.interact()

    def close(self, force: bool = True) -> None:
        self._child.close(force=force)

    def terminate(self) -> None:
        self._child.terminate(force=True)


def _spawn_with_pexpect(command: list[str], cwd: str | None, env: dict[str, str] | None) -> object:
    try:
        import pexpect
    except Exception as exc:
        raise ClaudeTermError(
            "pexpect backend is unavailable.",
            code=ExitCode.RUNTIME_ERROR,
            hint="Install claudeterm with its POSIX dependencies.",
        ) from exc

    child = pexpect.spawn(
        command[0],
        command[1:],
        cwd=cwd,
        env=env,
        encoding="utf-8",
        codec_errors="replace",
    )
    return _PexpectProcess(child)


def _spawn_with_pywinpty(command: list[str], cwd: str | None, env: dict[str, str] | None) -> object:
    try:
        from winpty import PtyProcess
    except Exception as exc:
        raise ClaudeTermError(
            "pywinpty backend is unavailable.",
            code=ExitCode.RUNTIME_ERROR,
            hint="Install claudeterm with its Windows dependencies.",
        ) from exc

    kwargs: dict[str, object] = {}
    if cwd:
        kwargs["cwd"] = cwd
    if env:
        kwargs["env"] = env
    return PtyProcess.spawn(subprocess.list2cmdline(command), **kwargs)


def default_spawn() -> PtySpawn:
    if sys.platform == "win32":
        return _spawn_with_pywinpty
    return _spawn_with_pexpect


class PtyBackend:
    def __init__(self, spawn: PtySpawn | None = None) -> None:
        self._spawn = spawn or default_spawn()
        self._sessions: dict[str, object] = {}
        atexit.register(self.stop_all)

    def start(
        self,
        terminal_id: str,
        *,
        command: str,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> PtyHandle:
        if terminal_id in self._sessions:
            raise ClaudeTermError(
                f"Terminal already started: {terminal_id}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Stop the current PTY session before starting a new one.",
            )

        argv = split_command(command)
        try:
            process = self._spawn(argv, cwd, env)
        except ClaudeTermError:
            raise
        except Exception as exc:
            raise ClaudeTermError(
                "Failed to start PTY process.",
                code=ExitCode.RUNTIME_ERROR,
                hint=str(exc) or f"Check that `{argv[0]}` is installed and on PATH.",
            ) from exc

        handle = PtyHandle(terminal_id=terminal_id, command=tuple(argv), cwd=cwd)
        self._sessions[terminal_id] = process
        logger.debug("PTY started terminal=%s command=%s cwd=%s", terminal_id, argv, cwd)
        return handle

    def has_session(self, terminal_id: str) -> bool:
        return terminal_id in self._sessions

    def is_alive(self, terminal_id: str) -> bool:
        process = self._sessions.get(terminal_id)
        if process is None:
            return False
        return _is_alive(process)

    def write(self, terminal_id: str, payload: str) -> None:
        process = self._require_session(terminal_id)
        try:
            process.write(payload)
        except Exception as exc:
            raise ClaudeTermError(
                f"Failed to write to terminal {terminal_id}.",
                code=ExitCode.NO_CHANNEL,
                hint=str(exc) or "Verify terminal process health.",
            ) from exc

    def interact(self, terminal_id: str) -> None:
        process = self._require_session(terminal_id)
        if not hasattr(process, "interact"):
            raise ClaudeTermError(
                "Interactive passthrough is not supported by this PTY backend.",
                code=ExitCode.RUNTIME_ERROR,
                hint="Run claudeterm on a POSIX terminal.",
            )
        process.interact()

    def stop(self, terminal_id: str) -> None:
        process = self._sessions.pop(terminal_id, None)
        if process is None:
            raise ClaudeTermError(
                f"Terminal not running: {terminal_id}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Select an active terminal session.",
            )
        self._close_session(process)
        logger.debug("PTY stopped terminal=%s", terminal_id)

    def stop_all(self) -> None:
        while self._sessions:
            terminal_id, process = self._sessions.popitem()
            self._close_session(process)
            logger.debug("PTY stopped terminal=%s", terminal_id)

    def _require_session(self, terminal_id: str) -> object:
        process = self._sessions.get(terminal_id)
        if process is None:
            raise ClaudeTermError(
                f"Terminal not running: {terminal_id}",
                code=ExitCode.NO_CHANNEL,
                hint="Toggle the assistant terminal to start a new session.",
            )
        return process

    def _close_session(self, process: object) -> None:
        # pexpect and pywinpty both close with force; a stuck child is terminated.
        try:
            process.close()
        except Exception as exc:
            logger.debug("PTY close failed: %s", exc)
        if _is_alive(process) and hasattr(process, "terminate"):
            with suppress(Exception):
                process.terminate()


def _is_alive(process: object) -> bool:
    if hasattr(process, "isalive"):
        try:
            return bool(process.isalive())
        except Exception:
            return True
    return True
