# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""On-disk layout of the tfsel home directory.

Directory structure::

    <root>/
        bin/<tool-executable>     - active link for each tool
        etc/<tool>.asc            - optional trusted OpenPGP public key
        opt/<tool>/<version>      - installed artifacts
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from .errors import filesystem_errors
from .tools import Tool
from .versions import SemanticVersion

KEY_SUFFIX = ".asc"


@dataclass(frozen=True, slots=True)
class LayoutPaths:
    """Resolved paths below one tfsel root."""

    root: Path

    _BIN_DIR: ClassVar[str] = "bin"
    _ETC_DIR: ClassVar[str] = "etc"
    _OPT_DIR: ClassVar[str] = "opt"

    @property
    def bin(self) -> Path:
        """Directory holding the active links."""
        return self.root / self._BIN_DIR

    @property
    def etc(self) -> Path:
        """Directory holding trusted public keys."""
        return self.root / self._ETC_DIR

    @property
    def opt(self) -> Path:
        """Directory holding per-tool artifact directories."""
        return self.root / self._OPT_DIR

    def tool_dir(self, tool: Tool) -> Path:
        """Return ``opt/<tool>``."""
        return self.opt / tool.value

    def artifact_path(self, tool: Tool, version: SemanticVersion) -> Path:
        """Return ``opt/<tool>/<version>``."""
        return self.tool_dir(tool) / str(version)

    def link_path(self, tool: Tool) -> Path:
        """Return ``bin/<tool-executable>``."""
        return self.bin / tool.executable_name

    def key_path(self, tool: Tool) -> Path:
        """Return ``etc/<tool>.asc``."""
        return self.etc / f"{tool.value}{KEY_SUFFIX}"

    def directories(self) -> tuple[Path, ...]:
        """Return every directory the layout requires, parents first."""
        return (self.root, self.bin, self.etc, self.opt, *(self.tool_dir(tool) for tool in Tool))


def ensure(root: Path) -> LayoutPaths:
    """Create the directory tree below ``root`` if it is missing.

    Args:
        root: tfsel home directory.

    Returns:
        LayoutPaths: Paths below ``root``.

    Raises:
        FilesystemError: If a directory cannot be created.
    """

    paths = LayoutPaths(root.expanduser())
    for directory in paths.directories():
        with filesystem_errors("create directory", directory):
            directory.mkdir(parents=True, exist_ok=True)
    return paths


__all__ = ["LayoutPaths", "ensure"]
