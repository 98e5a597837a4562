# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Select, remove and identify installed versions through the ``bin`` link.

The active version is never written down anywhere. ``bin/<tool>`` either
references an artifact under ``opt/<tool>`` or it does not, and every query
answers by inspecting the filesystem again.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from .config import LinkStrategyName
from .errors import FilesystemError, NotInstalledError, filesystem_errors
from .integrity import file_sha256
from .layout import LayoutPaths
from .logging import get_logger
from .tools import Tool
from .versions import SemanticVersion, try_parse_version

LOGGER = get_logger(__name__)


class LinkStrategy(ABC):
    """Strategy object describing how ``bin/<tool>`` references an artifact."""

    name: LinkStrategyName

    @abstractmethod
    def link(self, artifact: Path, link: Path) -> None:
        """Create ``link`` so that running it runs ``artifact``.

        Args:
            artifact: Installed artifact under ``opt/<tool>``.
            link: Active link path; guaranteed absent when called.
        """

    def is_same(self, link: Path, artifact: Path) -> bool:
        """Return ``True`` when ``link`` currently resolves to ``artifact``."""

        return os.path.samefile(link, artifact)


class SymlinkStrategy(LinkStrategy):
    """Point ``bin/<tool>`` at the artifact with a symbolic link."""

    name = LinkStrategyName.SYMLINK

    def link(self, artifact: Path, link: Path) -> None:
        link.symlink_to(artifact.absolute())


class HardlinkStrategy(LinkStrategy):
    """Make ``bin/<tool>`` a second directory entry for the artifact inode."""

    name = LinkStrategyName.HARDLINK

    def link(self, artifact: Path, link: Path) -> None:
        link.hardlink_to(artifact)


class CopyStrategy(LinkStrategy):
    """Copy the artifact when the filesystem supports neither link type.

    Identity checks degrade to comparing SHA-256 digests, so two installed
    versions with identical content are indistinguishable.
    """

    name = LinkStrategyName.COPY

    def link(self, artifact: Path, link: Path) -> None:
        shutil.copy2(artifact, link)

    def is_same(self, link: Path, artifact: Path) -> bool:
        if os.path.samefile(link, artifact):
            return True
        return file_sha256(link) == file_sha256(artifact)


_STRATEGIES: dict[LinkStrategyName, type[LinkStrategy]] = {
    LinkStrategyName.SYMLINK: SymlinkStrategy,
    LinkStrategyName.HARDLINK: HardlinkStrategy,
    LinkStrategyName.COPY: CopyStrategy,
}


def probe_link_strategy(directory: Path) -> LinkStrategy:
    """Return the first link strategy ``directory`` supports.

    Symbolic links are tried first, then hard links; copying always works.

    Args:
        directory: Directory that will hold the active links.

    Returns:
        LinkStrategy: Supported strategy.

    Raises:
        FilesystemError: If ``directory`` is not writable at all.
    """

    with filesystem_errors("probe links in", directory), tempfile.TemporaryDirectory(
        prefix=".tfsel-probe-",
        dir=directory,
    ) as scratch:
        source = Path(scratch) / "source"
        source.write_bytes(b"")
        for strategy_type in (SymlinkStrategy, HardlinkStrategy):
            strategy = strategy_type()
            try:
                strategy.link(source, Path(scratch) / strategy.name.value)
            except (OSError, NotImplementedError) as exc:
                LOGGER.debug("%s links unsupported in %s: %s", strategy.name.value, directory, exc)
                continue
            return strategy
    return CopyStrategy()


def resolve_link_strategy(configured: LinkStrategyName, bin_dir: Path) -> LinkStrategy:
    """Return the strategy named by ``configured``, probing ``bin_dir`` for ``auto``."""

    if configured is LinkStrategyName.AUTO:
        strategy = probe_link_strategy(bin_dir)
    else:
        strategy = _STRATEGIES[configured]()
    LOGGER.debug("using %s link strategy", strategy.name.value)
    return strategy


def _entry_exists(path: Path) -> bool:
    """Return ``True`` for any directory entry, dangling symlinks included."""

    return path.is_symlink() or path.exists()


class SelectionEngine:
    """Reconcile ``bin/<tool>`` with the artifacts installed under ``opt/<tool>``."""

    def __init__(self, layout: LayoutPaths, strategy: LinkStrategy) -> None:
        self._layout = layout
        self._strategy = strategy

    @property
    def strategy(self) -> LinkStrategy:
        """Return the link strategy used to create and compare ``bin`` entries."""
        return self._strategy

    def list_installed(self, tool: Tool) -> list[SemanticVersion]:
        """Return installed versions of ``tool``, newest first.

        Only regular files whose name is a canonical version count; hidden
        partial files and anything else in the directory are ignored.

        Raises:
            FilesystemError: If the tool directory cannot be read.
        """

        return [version for version, _ in self._installed_entries(tool)]

    def _installed_entries(self, tool: Tool) -> list[tuple[SemanticVersion, Path]]:
        tool_dir = self._layout.tool_dir(tool)
        entries: dict[SemanticVersion, Path] = {}
        with filesystem_errors("list", tool_dir):
            if not tool_dir.is_dir():
                return []
            children = list(tool_dir.iterdir())
        for child in children:
            version = try_parse_version(child.name)
            if version is None or str(version) != child.name or not child.is_file():
                LOGGER.debug("ignoring %s", child)
                continue
            entries[version] = child
        return sorted(entries.items(), key=lambda item: item[0], reverse=True)

    def select(self, tool: Tool, version: SemanticVersion) -> str:
        """Make ``version`` the active version of ``tool``.

        Args:
            tool: Managed tool.
            version: Installed version to activate.

        Returns:
            str: ``Selected <tool> <version>``; also returned when the version
            was already active, in which case nothing changes on disk.

        Raises:
            NotInstalledError: If ``version`` is not installed.
            FilesystemError: If the link cannot be replaced.
        """

        artifact = self._layout.artifact_path(tool, version)
        message = f"Selected {tool.value} {version}"
        if not artifact.is_file():
            raise NotInstalledError(tool.value, str(version))
        link = self._layout.link_path(tool)
        with filesystem_errors("select", link):
            if link.exists() and self._matches(link, artifact):
                LOGGER.debug("%s %s already active", tool.value, version)
                return message
            if _entry_exists(link):
                link.unlink()
            self._strategy.link(artifact, link)
        LOGGER.debug("linked %s -> %s (%s)", link, artifact, self._strategy.name.value)
        return message

    def remove(self, tool: Tool, version: SemanticVersion) -> str:
        """Delete the installed artifact for ``version`` if there is one.

        A symbolic ``bin`` link left dangling by the deletion is removed as
        well. Hard links and copies keep working and are left in place.

        Returns:
            str: ``Removed <tool> <version>``, also for versions never installed.

        Raises:
            FilesystemError: If the artifact or a dangling link cannot be deleted.
        """

        artifact = self._layout.artifact_path(tool, version)
        if _entry_exists(artifact):
            with filesystem_errors("remove", artifact):
                artifact.unlink()
            link = self._layout.link_path(tool)
            if link.is_symlink() and not link.exists():
                with filesystem_errors("remove", link):
                    link.unlink()
                LOGGER.debug("removed dangling link %s", link)
        else:
            LOGGER.debug("%s %s is not installed; nothing to remove", tool.value, version)
        return f"Removed {tool.value} {version}"

    def which(self, tool: Tool) -> str:
        """Return the active version of ``tool``, or an empty string.

        A missing or dangling ``bin`` link means no version is active. When
        the link exists but matches no installed artifact the result is also
        empty. With hard links or copies this includes a version removed
        while selected: ``bin/<tool>`` still runs it, but it is no longer
        installed, so nothing is reported until another version is selected.
        """

        link = self._layout.link_path(tool)
        try:
            link_size = link.stat().st_size
        except FileNotFoundError:
            return ""
        except OSError as exc:
            raise FilesystemError("inspect", link, exc.strerror or str(exc)) from exc
        for version, artifact in self._installed_entries(tool):
            with filesystem_errors("inspect", artifact):
                if artifact.stat().st_size != link_size:
                    continue
                if self._strategy.is_same(link, artifact):
                    return str(version)
        return ""

    def _matches(self, link: Path, artifact: Path) -> bool:
        if link.stat().st_size != artifact.stat().st_size:
            return False
        return self._strategy.is_same(link, artifact)


__all__ = [
    "CopyStrategy",
    "HardlinkStrategy",
    "LinkStrategy",
    "SelectionEngine",
    "SymlinkStrategy",
    "probe_link_strategy",
    "resolve_link_strategy",
]
