"""Launch command composition for assistant sessions."""

from __future__ import annotations

import shlex
from collections.abc import Mapping
from dataclasses import dataclass

from claudeterm.errors import ClaudeTermError, ExitCode


@dataclass(frozen=True)
class VariantFound:
    args: str


@dataclass(frozen=True)
class VariantNotFound:
    name: str = ""


VariantLookup = VariantFound | VariantNotFound


def lookup_variant(variant_name: str | None, variant_table: Mapping[str, str] | None) -> VariantLookup:
    name = (variant_name or "").strip()
    if not name or not variant_table or name not in variant_table:
        return VariantNotFound(name=name)
    return VariantFound(args=variant_table[name])


def compose(
    base_command: str,
    variant_name: str | None,
    variant_table: Mapping[str, str] | None,
) -> str:
    """Return the launch command with the named variant's arguments appended.

    An empty or unknown variant name yields ``base_command`` unchanged.
    """
    lookup = lookup_variant(variant_name, variant_table)
    if isinstance(lookup, VariantNotFound):
        return base_command
    return f"{base_command} {lookup.args}"


def split_command(command: str) -> list[str]:
    try:
        argv = shlex.split(command)
    except ValueError as exc:
        raise ClaudeTermError(
            f"Cannot parse launch command: {command}",
            code=ExitCode.VALIDATION_ERROR,
            hint=str(exc),
        ) from exc
    if not argv:
        raise ClaudeTermError(
            "Launch command cannot be empty.",
            code=ExitCode.VALIDATION_ERROR,
            hint="Set `command` in the claudeterm config.",
        )
    return argv
