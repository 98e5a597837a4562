# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring the tfsel commands."""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Final

import typer

from ..config import LinkStrategyName, load_settings
from ..errors import TfselError, UsageError
from ..logging import configure_verbose, fail, ok
from ..platform import detect_platform
from ..remote import list_remote_versions
from ..tools import Tool
from ..versions import filter_by_prefix, parse_version, render_versions
from .context import CLIContext, get_cli_context
from .typer_ext import create_typer

REMOTE_TOKENS: Final[frozenset[str]] = frozenset({"remote", "r"})
TOOL_HELP: Final[str] = "Tool to manage: tf, terraform, tg or terragrunt."
VERSION_HELP: Final[str] = "Exact semantic version, e.g. 1.5.7."

app = create_typer(
    name="tfsel",
    help="Install, verify and switch between Terraform and Terragrunt versions.",
    add_completion=False,
    no_args_is_help=True,
)


@contextmanager
def _reported_errors(use_emoji: bool) -> Iterator[None]:
    """Report :class:`TfselError` as one ``Error:`` line and exit with status 1."""

    try:
        yield
    except TfselError as exc:
        fail(str(exc), use_emoji=use_emoji)
        raise typer.Exit(code=1) from exc


def _resolve_tool(raw: str) -> Tool:
    try:
        return Tool.from_alias(raw)
    except ValueError as exc:
        raise UsageError(str(exc)) from exc


@app.callback()
def main_callback(
    ctx: typer.Context,
    home: Path | None = typer.Option(
        None,
        "--home",
        help="Root directory holding bin, etc and opt (default: ~/.tfsel or $TFSEL_HOME).",
    ),
    link_strategy: LinkStrategyName | None = typer.Option(
        None,
        "--link-strategy",
        case_sensitive=False,
        help="How bin/<tool> references the selected version.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Print debug diagnostics on stderr.",
    ),
    emoji: bool = typer.Option(
        True,
        "--emoji/--no-emoji",
        help="Toggle emoji in CLI output.",
    ),
) -> None:
    """Install, verify and switch between Terraform and Terragrunt versions."""

    with _reported_errors(emoji):
        settings = load_settings(
            os.environ,
            home=home,
            link_strategy=link_strategy,
            verbose=True if verbose else None,
        )
    configure_verbose(settings.verbose)
    ctx.obj = CLIContext(settings, use_emoji=emoji)


@app.command("list")
def list_command(
    ctx: typer.Context,
    tool: str = typer.Argument(..., metavar="TOOL", help=TOOL_HELP),
    source: str | None = typer.Argument(
        None,
        metavar="[remote|r]",
        help="List published versions instead of installed ones.",
    ),
    prefix: str | None = typer.Option(None, "--prefix", help="Only show versions starting with this text."),
    pre: bool = typer.Option(False, "--pre", help="Include prerelease versions in remote listings."),
) -> None:
    """List installed versions, or published versions with ``remote``."""

    state = get_cli_context(ctx)
    with _reported_errors(state.use_emoji):
        target = _resolve_tool(tool)
        if source is None:
            versions = state.selection.list_installed(target)
            if prefix:
                versions = filter_by_prefix(versions, prefix)
        elif source.lower() in REMOTE_TOKENS:
            versions = list_remote_versions(target, state.fetcher, include_prerelease=pre, prefix=prefix)
        else:
            raise UsageError(f"Unknown listing source '{source}'; expected 'remote' or 'r'")
    if versions:
        typer.echo(render_versions(versions))


@app.command("install")
def install_command(
    ctx: typer.Context,
    tool: str = typer.Argument(..., metavar="TOOL", help=TOOL_HELP),
    version: str = typer.Argument(..., metavar="VERSION", help=VERSION_HELP),
    os_name: str | None = typer.Option(None, "--os", help="Download the build for this OS instead of the host's."),
    arch: str | None = typer.Option(
        None,
        "--arch",
        help="Download the build for this architecture instead of the host's.",
    ),
) -> None:
    """Download, verify and install one exact version."""

    state = get_cli_context(ctx)
    with _reported_errors(state.use_emoji):
        target = _resolve_tool(tool)
        exact = parse_version(version)
        platform_info = detect_platform(
            os_override=os_name or state.settings.os,
            arch_override=arch or state.settings.arch,
        )
        message = state.installer.install(target, exact, platform_info)
    ok(message, use_emoji=state.use_emoji)


@app.command("select")
def select_command(
    ctx: typer.Context,
    tool: str = typer.Argument(..., metavar="TOOL", help=TOOL_HELP),
    version: str = typer.Argument(..., metavar="VERSION", help=VERSION_HELP),
) -> None:
    """Make an installed version the active one."""

    state = get_cli_context(ctx)
    with _reported_errors(state.use_emoji):
        message = state.selection.select(_resolve_tool(tool), parse_version(version))
    ok(message, use_emoji=state.use_emoji)


@app.command("remove")
def remove_command(
    ctx: typer.Context,
    tool: str = typer.Argument(..., metavar="TOOL", help=TOOL_HELP),
    version: str = typer.Argument(..., metavar="VERSION", help=VERSION_HELP),
) -> None:
    """Delete an installed version."""

    state = get_cli_context(ctx)
    with _reported_errors(state.use_emoji):
        message = state.selection.remove(_resolve_tool(tool), parse_version(version))
    ok(message, use_emoji=state.use_emoji)


@app.command("which")
def which_command(
    ctx: typer.Context,
    tool: str = typer.Argument(..., metavar="TOOL", help=TOOL_HELP),
) -> None:
    """Print the active version, or nothing when none is selected."""

    state = get_cli_context(ctx)
    with _reported_errors(state.use_emoji):
        active = state.selection.which(_resolve_tool(tool))
    if active:
        typer.echo(active)


def main() -> None:
    """Run the tfsel command line."""

    app(prog_name="tfsel")


__all__ = ["app", "main"]
