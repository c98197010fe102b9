"""Project root resolution used as the session key."""

from __future__ import annotations

import logging as py_logging
import os
import subprocess
from collections.abc import Callable
from pathlib import Path

from claudeterm.terminal.models import ProjectKey

logger = py_logging.getLogger(__name__)


def _canonical(path: str | Path) -> Path:
    return Path(os.path.realpath(os.path.expanduser(str(path))))


def _lookup_dir(path: Path) -> Path:
    candidate = path
    while not candidate.exists() and candidate != candidate.parent:
        candidate = candidate.parent
    if candidate.is_dir():
        return candidate
    return candidate.parent


def find_git_root(path: str | Path, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run) -> Path | None:
    """Return the enclosing repository (or worktree) root of ``path``, if any."""
    directory = _lookup_dir(_canonical(path))
    try:
        result = runner(
            ["git", "-C", str(directory), "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.debug("git unavailable for root lookup path=%s error=%s", directory, exc)
        return None
    if result.returncode != 0:
        logger.debug("No git root path=%s stderr=%s", directory, (result.stderr or "").strip())
        return None
    root = (result.stdout or "").strip()
    if not root:
        return None
    return _canonical(root)


class ProjectResolver:
    def __init__(
        self,
        *,
        use_git_root: bool = True,
        cwd: Callable[[], str | Path] | None = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self.use_git_root = use_git_root
        self._cwd = cwd or Path.cwd
        self._runner = runner

    def resolve(self, file_path: str | Path | None = None) -> ProjectKey:
        if self.use_git_root:
            root = self.git_root(file_path)
            if root is not None:
                return ProjectKey(str(root))
        return ProjectKey(str(_canonical(self._cwd())))

    def git_root(self, file_path: str | Path | None = None) -> Path | None:
        return find_git_root(file_path or self._cwd(), runner=self._runner)

    def relative_path(self, file_path: str | Path, root: str | Path | None) -> str:
        """Path of ``file_path`` relative to ``root``, else absolute."""
        absolute = Path(os.path.abspath(os.path.expanduser(str(file_path))))
        if root is None:
            return str(absolute)
        for candidate in (absolute, _canonical(absolute)):
            try:
                relative = candidate.relative_to(root)
            except ValueError:
                continue
            if str(relative) != ".":
                return relative.as_posix()
        return str(absolute)
