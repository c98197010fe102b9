from __future__ import annotations

import pytest

from claudeterm.errors import ClaudeTermError, ExitCode
from claudeterm.terminal import PtyBackend


class _FakePty:
    def __init__(self, *, sticky_alive: bool = False) -> None:
        self.writes: list[str] = []
        self.closed = False
        self.terminated = False
        self.exited = False
        self.sticky_alive = sticky_alive

    def write(self, payload: str) -> None:
        if self.exited:
            raise OSError("Input/output error")
        self.writes.append(payload)

    def close(self) -> None:
        self.closed = True

    def terminate(self) -> None:
        self.terminated = True

    def isalive(self) -> bool:
        if self.exited:
            return False
        if self.sticky_alive:
            return not self.terminated
        return not self.closed


def test_backend_spawns_split_command_in_cwd() -> None:
    seen: list[tuple[list[str], str | None]] = []

    def spawn(command: list[str], cwd: str | None, _env: dict[str, str] | None) -> _FakePty:
        seen.append((command, cwd))
        return _FakePty()

    backend = PtyBackend(spawn=spawn)
    handle = backend.start("t1", command="claude --continue", cwd="/repo")

    assert seen == [(["claude", "--continue"], "/repo")]
    assert handle.command == ("claude", "--continue")
    assert backend.has_session("t1") is True


def test_backend_writes_payload_verbatim() -> None:
    pty = _FakePty()
    backend = PtyBackend(spawn=lambda _c, _cwd, _env: pty)
    backend.start("t1", command="claude")

    backend.write("t1", "src/main.py")
    backend.write("t1", "@README.md ")

    assert pty.writes == ["src/main.py", "@README.md "]


def test_backend_reports_liveness() -> None:
    pty = _FakePty()
    backend = PtyBackend(spawn=lambda _c, _cwd, _env: pty)
    backend.start("t1", command="claude")

    assert backend.is_alive("t1") is True
    pty.exited = True
    assert backend.is_alive("t1") is False
    assert backend.has_session("t1") is True
    assert backend.is_alive("missing") is False


def test_write_to_exited_process_is_a_channel_error() -> None:
    pty = _FakePty()
    backend = PtyBackend(spawn=lambda _c, _cwd, _env: pty)
    backend.start("t1", command="claude")
    pty.exited = True

    with pytest.raises(ClaudeTermError) as exc:
        backend.write("t1", "hello")

    assert exc.value.code == ExitCode.NO_CHANNEL


def test_backend_rejects_duplicate_starts_and_missing_sessions() -> None:
    backend = PtyBackend(spawn=lambda _c, _cwd, _env: _FakePty())
    backend.start("t1", command="claude")

    with pytest.raises(ClaudeTermError):
        backend.start("t1", command="claude")
    with pytest.raises(ClaudeTermError) as exc:
        backend.write("missing", "hello")
    assert exc.value.code == ExitCode.NO_CHANNEL


def test_spawn_failure_is_wrapped() -> None:
    def spawn(_command: list[str], _cwd: str | None, _env: dict[str, str] | None) -> object:
        raise FileNotFoundError("claude: not found")

    backend = PtyBackend(spawn=spawn)

    with pytest.raises(ClaudeTermError) as exc:
        backend.start("t1", command="claude")

    assert exc.value.code == ExitCode.RUNTIME_ERROR
    assert backend.has_session("t1") is False


def test_backend_stop_and_stop_all_close_orphan_processes() -> None:
    spawned: list[_FakePty] = []

    def spawn(_command: list[str], _cwd: str | None, _env: dict[str, str] | None) -> _FakePty:
        instance = _FakePty(sticky_alive=True)
        spawned.append(instance)
        return instance

    backend = PtyBackend(spawn=spawn)
    backend.start("t1", command="claude")
    backend.start("t2", command="claude")

    backend.stop("t1")
    assert spawned[0].closed is True
    assert spawned[0].terminated is True

    backend.stop_all()
    assert spawned[1].closed is True
    assert backend.has_session("t2") is False


def test_interact_requires_backend_support() -> None:
    backend = PtyBackend(spawn=lambda _c, _cwd, _env: _FakePty())
    backend.start("t1", command="claude")

    with pytest.raises(ClaudeTermError):
        backend.interact("t1")

