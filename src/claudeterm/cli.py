"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .app import ClaudeTerm
from .config import load_config
from .editor import HeadlessEditor, NotifyLevel
from .errors import ClaudeTermError, ExitCode, user_facing_error
from .logging import LOG_LEVELS, configure_logging, default_log_path, normalize_level
from .terminal import PtyBackend, compose

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


def _log_level_type(value: str) -> str:
    normalized = normalize_level(value)
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claudeterm",
        description="Run the AI assistant CLI in a session bound to the project root of PATH.",
    )
    parser.add_argument("path", nargs="?", type=Path, default=None)
    parser.add_argument("--variant", default="", help="Named command variant, e.g. continue")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--print-key", action="store_true", help="Print the session key and exit")
    parser.add_argument("--print-command", action="store_true", help="Print the launch command and exit")
    parser.add_argument("--log-level", type=_log_level_type, default=None)
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _editor_cwd(path: Path | None) -> Path:
    if path is None:
        return Path.cwd()
    resolved = path.expanduser().resolve()
    return resolved if resolved.is_dir() else resolved.parent


def run_session(app: ClaudeTerm, editor: HeadlessEditor, variant: str) -> int:
    instance = app.toggle_with_variant(variant)
    if instance is None:
        for message, level in editor.notifications:
            if level != NotifyLevel.INFO:
                print(user_facing_error(message), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)
    try:
        app.sessions.backend.interact(instance.terminal_id)
    finally:
        app.sessions.close_all()
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    backend_factory: Callable[[], PtyBackend] | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    config = load_config(namespace.config)
    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    level = namespace.log_level or config.log_level
    logger = configure_logging(level=level if level in LOG_LEVELS else "INFO", log_file=log_path)

    try:
        editor = HeadlessEditor(cwd=_editor_cwd(namespace.path))
        backend = backend_factory() if backend_factory else PtyBackend()
        app = ClaudeTerm(config, editor, backend=backend)

        if namespace.print_key:
            print(app.key_for(namespace.path))
            return int(ExitCode.SUCCESS)
        if namespace.print_command:
            print(compose(config.command, namespace.variant, config.command_variants))
            return int(ExitCode.SUCCESS)

        logger.debug("Starting assistant session path=%s variant=%s", namespace.path, namespace.variant)
        return run_session(app, editor, namespace.variant)
    except ClaudeTermError as exc:
        logger.error(
            "Handled ClaudeTermError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        print(user_facing_error("Unexpected runtime failure", hint=f"Inspect logs: {log_path}"), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
