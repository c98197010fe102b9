"""Project-keyed registry of live assistant sessions."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Callable, Iterator

from claudeterm.terminal.models import Instance, ProjectKey

logger = py_logging.getLogger(__name__)

InstanceValidator = Callable[[Instance], bool]
EvictHook = Callable[[Instance], None]


class InstanceRegistry:
    """Maps project keys to live instances and tracks the current key.

    Entries are validated lazily: ``get`` drops an instance whose buffer the
    editor no longer confirms, so callers never see a stale entry.
    """

    def __init__(
        self,
        validator: InstanceValidator | None = None,
        *,
        on_evict: EvictHook | None = None,
    ) -> None:
        self._validator = validator or (lambda _instance: True)
        self._on_evict = on_evict
        self._instances: dict[ProjectKey, Instance] = {}
        self._current: ProjectKey | None = None

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, key: object) -> bool:
        return key in self._instances

    def __iter__(self) -> Iterator[ProjectKey]:
        return iter(sorted(self._instances))

    def keys(self) -> list[ProjectKey]:
        return sorted(self._instances)

    def get(self, key: ProjectKey) -> Instance | None:
        instance = self._instances.get(key)
        if instance is None:
            return None
        if self._validator(instance):
            return instance
        logger.debug("Pruning stale instance key=%s bufnr=%s", key, instance.bufnr)
        self._evict(key)
        return None

    def put(self, key: ProjectKey, instance: Instance) -> None:
        previous = self._instances.get(key)
        if previous is not None and previous is not instance:
            self._evict(key)
        self._instances[key] = instance

    def remove(self, key: ProjectKey) -> Instance | None:
        if key not in self._instances:
            return None
        return self._evict(key)

    def bind(self, validator: InstanceValidator, *, on_evict: EvictHook | None = None) -> None:
        """Install the liveness check and release hook of the owning manager."""
        self._validator = validator
        self._on_evict = on_evict

    def set_current(self, key: ProjectKey) -> None:
        self._current = key

    def get_current(self) -> ProjectKey | None:
        return self._current

    def _evict(self, key: ProjectKey) -> Instance:
        instance = self._instances.pop(key)
        if self._on_evict is not None:
            self._on_evict(instance)
        return instance
