"""XDG config loading/saving."""

from __future__ import annotations

import os
import sys
from contextlib import suppress
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from claudeterm.logging import LOG_LEVELS, normalize_level

DEFAULT_CONFIG_PATH = Path("~/.config/claudeterm/config.toml").expanduser()
DEFAULT_COMMAND = "claude"
DEFAULT_COMMAND_VARIANTS: dict[str, str] = {
    "continue": "--continue",
    "resume": "--resume",
    "verbose": "--verbose",
}
DEFAULT_WATCH_DEBOUNCE_MS = 100
COMMAND_ENV = "CLAUDETERM_COMMAND"

_BOOL_FIELDS = (
    "use_git_root",
    "multi_instance",
    "auto_reload",
    "show_notifications",
    "enter_insert",
    "start_in_normal_mode",
)


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    command: str = DEFAULT_COMMAND
    command_variants: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_COMMAND_VARIANTS))
    use_git_root: bool = True
    multi_instance: bool = True
    auto_reload: bool = True
    show_notifications: bool = True
    watch_debounce_ms: int = Field(default=DEFAULT_WATCH_DEBOUNCE_MS, ge=0, le=10_000)
    enter_insert: bool = True
    start_in_normal_mode: bool = False
    log_level: str = "INFO"

    @field_validator("command")
    @classmethod
    def _validate_command(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Launch command cannot be empty")
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = normalize_level(value)
        if normalized not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value}")
        return normalized


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _toml_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Unsupported TOML scalar type: {type(value)!r}")


def _normalize_variants(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return dict(DEFAULT_COMMAND_VARIANTS)
    normalized: dict[str, str] = {}
    for name, args in value.items():
        if not isinstance(name, str) or not isinstance(args, str):
            continue
        key = name.strip()
        if not key or not args.strip():
            continue
        normalized[key] = args.strip()
    return normalized


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()

    command = raw.get("command", cfg.command)
    if isinstance(command, str) and command.strip():
        cfg.command = command

    cfg.command_variants = _normalize_variants(raw.get("command_variants", cfg.command_variants))

    for name in _BOOL_FIELDS:
        value = raw.get(name, getattr(cfg, name))
        if isinstance(value, bool):
            setattr(cfg, name, value)

    debounce = raw.get("watch_debounce_ms", cfg.watch_debounce_ms)
    if isinstance(debounce, int) and not isinstance(debounce, bool) and 0 <= debounce <= 10_000:
        cfg.watch_debounce_ms = debounce

    log_level = raw.get("log_level", cfg.log_level)
    if isinstance(log_level, str) and normalize_level(log_level) in LOG_LEVELS:
        cfg.log_level = log_level

    return cfg


def _apply_env(cfg: AppConfig) -> AppConfig:
    env_command = os.getenv(COMMAND_ENV, "").strip()
    if env_command:
        cfg.command = env_command
    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _apply_env(AppConfig())
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _apply_env(AppConfig())
    if not isinstance(raw, dict):
        return _apply_env(AppConfig())
    return _apply_env(_sanitize(raw))


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)

    lines = [f"command = {_toml_scalar(config.command)}"]
    lines.extend(f"{name} = {_toml_scalar(getattr(config, name))}" for name in _BOOL_FIELDS)
    lines.append(f"watch_debounce_ms = {_toml_scalar(config.watch_debounce_ms)}")
    lines.append(f"log_level = {_toml_scalar(config.log_level)}")

    lines.append("")
    lines.append("[command_variants]")
    for name, args in sorted(_normalize_variants(config.command_variants).items()):
        lines.append(f'"{_escape(name)}" = {_toml_scalar(args)}')

    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with suppress(OSError):
        resolved.chmod(0o600)
    return resolved
