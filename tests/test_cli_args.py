from __future__ import annotations

from pathlib import Path

import pytest

from claudeterm import cli
from claudeterm.errors import ExitCode
from claudeterm.terminal import PtyBackend


class _InteractivePty:
    def __init__(self) -> None:
        self.interacted = False
        self.closed = False

    def write(self, _payload: str) -> None:
        return None

    def interact(self) -> None:
        self.interacted = True

    def close(self) -> None:
        self.closed = True

    def isalive(self) -> bool:
        return not self.closed


def _config(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text('command = "claude"\nuse_git_root = false\n', encoding="utf-8")
    return path


def test_cli_help_includes_public_flags() -> None:
    help_text = cli.build_parser().format_help()

    for flag in ("--variant", "--config", "--print-key", "--print-command", "--log-level", "--log-file"):
        assert flag in help_text


def test_invalid_log_level_returns_error_code() -> None:
    assert cli.main(["--log-level", "loud"]) != 0


def test_print_key_uses_project_of_path(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    project = tmp_path / "proj"
    project.mkdir()

    code = cli.main(
        [str(project), "--print-key", "--config", str(_config(tmp_path)), "--log-file", str(tmp_path / "log")]
    )

    assert code == 0
    assert capsys.readouterr().out.strip() == str(project.resolve())


def test_print_command_applies_variant(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(
        ["--print-command", "--variant", "continue", "--config", str(_config(tmp_path)), "--log-file", str(tmp_path / "log")]
    )

    assert code == 0
    assert capsys.readouterr().out.strip() == "claude --continue"


def test_default_run_hands_terminal_to_assistant(tmp_path: Path) -> None:
    spawned: list[_InteractivePty] = []

    def backend_factory() -> PtyBackend:
        def spawn(_command: list[str], _cwd: str | None, _env: dict[str, str] | None) -> _InteractivePty:
            pty = _InteractivePty()
            spawned.append(pty)
            return pty

        return PtyBackend(spawn=spawn)

    code = cli.main(
        [str(tmp_path), "--config", str(_config(tmp_path)), "--log-file", str(tmp_path / "log")],
        backend_factory=backend_factory,
    )

    assert code == int(ExitCode.SUCCESS)
    assert spawned[0].interacted is True
    assert spawned[0].closed is True


def test_launch_failure_maps_to_runtime_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    def backend_factory() -> PtyBackend:
        def spawn(_command: list[str], _cwd: str | None, _env: dict[str, str] | None) -> object:
            raise FileNotFoundError("claude")

        return PtyBackend(spawn=spawn)

    code = cli.main(
        [str(tmp_path), "--config", str(_config(tmp_path)), "--log-file", str(tmp_path / "log")],
        backend_factory=backend_factory,
    )

    assert code == int(ExitCode.RUNTIME_ERROR)
    assert "Failed to start PTY process" in capsys.readouterr().err
