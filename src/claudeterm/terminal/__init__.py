"""Assistant session domain package."""

from .command import VariantFound, VariantLookup, VariantNotFound, compose, lookup_variant, split_command
from .models import GLOBAL_KEY, Instance, ProjectKey, PtyHandle, SessionEvent, WindowState
from .pty_backend import PtyBackend
from .registry import InstanceRegistry
from .service import SessionContext, SessionManager, buffer_name_for

__all__ = [
    "buffer_name_for",
    "compose",
    "GLOBAL_KEY",
    "Instance",
    "InstanceRegistry",
    "lookup_variant",
    "ProjectKey",
    "PtyBackend",
    "PtyHandle",
    "SessionContext",
    "SessionEvent",
    "SessionManager",
    "split_command",
    "VariantFound",
    "VariantLookup",
    "VariantNotFound",
    "WindowState",
]
