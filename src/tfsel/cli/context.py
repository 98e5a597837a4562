# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-invocation state shared by the tfsel commands."""

from __future__ import annotations

from functools import cached_property

import typer

from ..config import Settings
from ..fetch import ArtifactFetcher, HttpFetcher
from ..install import InstallEngine
from ..layout import LayoutPaths, ensure
from ..logging import warn
from ..selection import SelectionEngine, resolve_link_strategy


def build_fetcher(settings: Settings) -> ArtifactFetcher:
    """Return the HTTPS fetcher configured by ``settings``."""

    return HttpFetcher(connect_timeout=settings.connect_timeout)


class CLIContext:
    """Lazily build the layout, fetcher and engines a command needs.

    Nothing touches the filesystem until a command asks for the layout, so
    ``--help`` never creates the home directory.
    """

    def __init__(self, settings: Settings, *, use_emoji: bool) -> None:
        self.settings = settings
        self.use_emoji = use_emoji

    @cached_property
    def layout(self) -> LayoutPaths:
        return ensure(self.settings.home)

    @cached_property
    def fetcher(self) -> ArtifactFetcher:
        return build_fetcher(self.settings)

    @cached_property
    def selection(self) -> SelectionEngine:
        strategy = resolve_link_strategy(self.settings.link_strategy, self.layout.bin)
        return SelectionEngine(self.layout, strategy)

    @cached_property
    def installer(self) -> InstallEngine:
        return InstallEngine(self.layout, self.fetcher, on_warning=self.warn)

    def warn(self, message: str) -> None:
        warn(message, use_emoji=self.use_emoji)


def get_cli_context(ctx: typer.Context) -> CLIContext:
    """Return the :class:`CLIContext` stored by the application callback."""

    state = ctx.find_object(CLIContext)
    if state is None:
        raise RuntimeError("tfsel command invoked without the application callback")
    return state


__all__ = ["CLIContext", "build_fetcher", "get_cli_context"]
