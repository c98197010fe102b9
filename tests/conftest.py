from __future__ import annotations

from pathlib import Path

import pytest

_WATCHER_TEST_FILES = {
    "test_refresh_watcher.py",
}


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))

        if path.name in _WATCHER_TEST_FILES:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def _no_command_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CLAUDETERM_COMMAND", raising=False)
