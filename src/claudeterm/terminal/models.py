"""Session domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NewType

ProjectKey = NewType("ProjectKey", str)

GLOBAL_KEY = ProjectKey("global")


class WindowState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    FOCUSED = "focused"


@dataclass(frozen=True)
class PtyHandle:
    terminal_id: str
    command: tuple[str, ...]
    cwd: str | None = None


@dataclass
class Instance:
    key: ProjectKey
    handle: PtyHandle
    bufnr: int
    command: str
    window_state: WindowState = WindowState.CLOSED

    @property
    def terminal_id(self) -> str:
        return self.handle.terminal_id


@dataclass(frozen=True)
class SessionEvent:
    key: str
    step: str
    message: str

