# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing console helpers plus the developer debug logger.

Results and progress go to stdout through :func:`info` and :func:`ok`.
Warnings and failures go to stderr so callers piping ``tfsel which`` or
``tfsel list`` never see them mixed into the result.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Final

from rich.text import Text

from .config import VERBOSE_ENV
from .console import detect_tty, get_console_manager

_ROOT_LOGGER_NAME: Final[str] = "tfsel"


def emoji(symbol: str, enable: bool) -> str:
    """Return ``symbol`` when emoji output is enabled, otherwise blank."""

    return symbol if enable else ""


def _print_line(
    msg: str,
    *,
    style: str | None,
    use_emoji: bool,
    use_color: bool | None = None,
    stderr: bool = False,
) -> None:
    """Render ``msg`` to the console using shared styling helpers.

    Args:
        msg: Message text to print to the console.
        style: Rich style name to apply when colour output is active.
        use_emoji: Flag indicating whether emoji output is desired.
        use_color: Optional explicit colour flag overriding TTY detection.
        stderr: Route the line to the diagnostic stream.
    """

    color_enabled = detect_tty(stderr=stderr) if use_color is None else use_color
    console = get_console_manager().get(color=color_enabled, emoji=use_emoji, stderr=stderr)
    text = Text(msg)
    if style and color_enabled:
        text.stylize(style)
    console.print(text)


def info(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Emit an informational message on stdout."""

    prefix = emoji("ℹ️ ", use_emoji)
    _print_line(f"{prefix}{msg}", style="cyan", use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Emit a success message on stdout."""

    prefix = emoji("✅ ", use_emoji)
    _print_line(f"{prefix}{msg}", style="green", use_emoji=use_emoji, use_color=use_color)


def warn(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Emit a warning on stderr."""

    prefix = emoji("⚠️ ", use_emoji)
    _print_line(
        f"{prefix}WARNING: {msg}",
        style="yellow",
        use_emoji=use_emoji,
        use_color=use_color,
        stderr=True,
    )


def fail(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Emit a single-line error on stderr."""

    prefix = emoji("❌ ", use_emoji)
    _print_line(
        f"{prefix}Error: {msg}",
        style="red",
        use_emoji=use_emoji,
        use_color=use_color,
        stderr=True,
    )


def get_logger(name: str) -> logging.Logger:
    """Return the debug logger for module ``name``."""

    return logging.getLogger(name)


def configure_verbose(enabled: bool | None = None) -> None:
    """Stream ``tfsel`` debug records to stderr when verbosity is requested.

    Args:
        enabled: Explicit flag; ``None`` defers to the ``TFSEL_VERBOSE`` variable.
    """

    if enabled is None:
        enabled = os.environ.get(VERBOSE_ENV, "").strip().lower() in {"1", "true", "yes", "on"}
    if not enabled:
        return
    logger = logging.getLogger(_ROOT_LOGGER_NAME)
    if getattr(logger, "_tfsel_verbose_configured", False):
        return
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    setattr(logger, "_tfsel_verbose_configured", True)


__all__ = [
    "configure_verbose",
    "emoji",
    "fail",
    "get_logger",
    "info",
    "ok",
    "warn",
]
