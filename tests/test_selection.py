# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for selecting, removing and identifying the active version."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from tfsel.config import LinkStrategyName
from tfsel.errors import NotInstalledError
from tfsel.install import InstallEngine
from tfsel.layout import LayoutPaths
from tfsel.selection import (
    CopyStrategy,
    HardlinkStrategy,
    LinkStrategy,
    SelectionEngine,
    SymlinkStrategy,
    probe_link_strategy,
    resolve_link_strategy,
)
from tfsel.tools import Tool
from tfsel.versions import parse_version, render_versions

TF = Tool.TERRAFORM
V113 = parse_version("1.1.3")
V124 = parse_version("1.2.4")


def _install_fake(layout: LayoutPaths, tool: Tool, version: str, payload: bytes | None = None) -> Path:
    artifact = layout.artifact_path(tool, parse_version(version))
    artifact.write_bytes(payload if payload is not None else f"{tool.value} {version}".encode())
    artifact.chmod(0o755)
    return artifact


@pytest.fixture(params=[SymlinkStrategy, HardlinkStrategy, CopyStrategy], ids=["symlink", "hardlink", "copy"])
def strategy(request: pytest.FixtureRequest) -> LinkStrategy:
    return request.param()


def test_select_requires_installed_version(layout: LayoutPaths, strategy: LinkStrategy) -> None:
    engine = SelectionEngine(layout, strategy)

    with pytest.raises(NotInstalledError) as excinfo:
        engine.select(TF, V124)

    assert str(excinfo.value) == "terraform version 1.2.4 is not installed. Run 'tfsel install terraform 1.2.4'"
    assert list(layout.bin.iterdir()) == []


def test_which_is_empty_without_link(layout: LayoutPaths, strategy: LinkStrategy) -> None:
    _install_fake(layout, TF, "1.2.4")

    assert SelectionEngine(layout, strategy).which(TF) == ""


def test_select_switches_between_versions(layout: LayoutPaths, strategy: LinkStrategy) -> None:
    _install_fake(layout, TF, "1.2.4")
    _install_fake(layout, TF, "1.1.3")
    engine = SelectionEngine(layout, strategy)

    assert engine.select(TF, V124) == "Selected terraform 1.2.4"
    assert engine.which(TF) == "1.2.4"
    assert engine.select(TF, V113) == "Selected terraform 1.1.3"
    assert engine.which(TF) == "1.1.3"
    assert layout.link_path(TF).read_bytes() == b"terraform 1.1.3"


def test_select_twice_is_a_no_op(layout: LayoutPaths, strategy: LinkStrategy) -> None:
    artifact = _install_fake(layout, TF, "1.2.4")
    engine = SelectionEngine(layout, strategy)
    engine.select(TF, V124)
    link = layout.link_path(TF)
    before = os.lstat(link)

    assert engine.select(TF, V124) == "Selected terraform 1.2.4"

    after = os.lstat(link)
    assert (before.st_ino, before.st_mtime_ns) == (after.st_ino, after.st_mtime_ns)
    assert [path.name for path in layout.bin.iterdir()] == [link.name]
    assert strategy.is_same(link, artifact)


def test_symlink_strategy_creates_symbolic_link(layout: LayoutPaths) -> None:
    artifact = _install_fake(layout, TF, "1.2.4")

    SelectionEngine(layout, SymlinkStrategy()).select(TF, V124)

    link = layout.link_path(TF)
    assert link.is_symlink()
    assert link.resolve() == artifact.resolve()


def test_hardlink_strategy_shares_the_inode(layout: LayoutPaths) -> None:
    artifact = _install_fake(layout, TF, "1.2.4")

    SelectionEngine(layout, HardlinkStrategy()).select(TF, V124)

    link = layout.link_path(TF)
    assert not link.is_symlink()
    assert os.path.samefile(link, artifact)
    assert artifact.stat().st_nlink == 2


def test_select_replaces_dangling_symlink(layout: LayoutPaths) -> None:
    _install_fake(layout, TF, "1.2.4")
    link = layout.link_path(TF)
    link.symlink_to(layout.tool_dir(TF) / "0.0.1")

    SelectionEngine(layout, SymlinkStrategy()).select(TF, V124)

    assert link.resolve() == layout.artifact_path(TF, V124).resolve()


def test_remove_of_never_installed_version_succeeds(layout: LayoutPaths, strategy: LinkStrategy) -> None:
    assert SelectionEngine(layout, strategy).remove(TF, parse_version("0.12.31")) == "Removed terraform 0.12.31"


def test_remove_symlinked_version_clears_the_link(layout: LayoutPaths) -> None:
    _install_fake(layout, TF, "1.2.4")
    engine = SelectionEngine(layout, SymlinkStrategy())
    engine.select(TF, V124)

    assert engine.remove(TF, V124) == "Removed terraform 1.2.4"

    link = layout.link_path(TF)
    assert not link.is_symlink()
    assert not link.exists()
    assert engine.which(TF) == ""


def test_remove_other_version_keeps_the_link(layout: LayoutPaths) -> None:
    _install_fake(layout, TF, "1.2.4")
    _install_fake(layout, TF, "1.1.3")
    engine = SelectionEngine(layout, SymlinkStrategy())
    engine.select(TF, V124)

    engine.remove(TF, V113)

    assert engine.which(TF) == "1.2.4"
    assert engine.list_installed(TF) == [V124]


@pytest.mark.parametrize("strategy_type", [HardlinkStrategy, CopyStrategy])
def test_remove_keeps_hardlinks_and_copies(layout: LayoutPaths, strategy_type: type[LinkStrategy]) -> None:
    _install_fake(layout, TF, "1.1.3")
    engine = SelectionEngine(layout, strategy_type())
    engine.select(TF, V113)

    engine.remove(TF, V113)

    link = layout.link_path(TF)
    assert link.read_bytes() == b"terraform 1.1.3"
    assert engine.which(TF) == ""


def test_which_ignores_link_matching_no_installed_version(layout: LayoutPaths, strategy: LinkStrategy) -> None:
    _install_fake(layout, TF, "1.2.4")
    layout.link_path(TF).write_bytes(b"some other terraform build")

    assert SelectionEngine(layout, strategy).which(TF) == ""


def test_copy_strategy_compares_content(layout: LayoutPaths) -> None:
    _install_fake(layout, TF, "1.2.4", payload=b"A" * 64)
    _install_fake(layout, TF, "1.1.3", payload=b"B" * 64)
    engine = SelectionEngine(layout, CopyStrategy())

    engine.select(TF, V113)

    assert not layout.link_path(TF).is_symlink()
    assert engine.which(TF) == "1.1.3"


def test_list_installed_skips_foreign_entries(layout: LayoutPaths) -> None:
    for version in ("1.1.3", "1.10.0", "1.2.4", "1.5.0-rc1"):
        _install_fake(layout, TF, version)
    tool_dir = layout.tool_dir(TF)
    (tool_dir / ".1.3.0.partial").write_bytes(b"half")
    (tool_dir / "notes.txt").write_text("hello", encoding="utf-8")
    (tool_dir / "v1.4.0").write_bytes(b"tagged")
    (tool_dir / "1.6.0").mkdir()

    versions = SelectionEngine(layout, SymlinkStrategy()).list_installed(TF)

    assert render_versions(versions) == "1.10.0\n1.5.0-rc1\n1.2.4\n1.1.3"


def test_list_installed_is_empty_for_fresh_layout(layout: LayoutPaths) -> None:
    assert SelectionEngine(layout, SymlinkStrategy()).list_installed(Tool.TERRAGRUNT) == []


def test_probe_prefers_symlinks(tmp_path: Path) -> None:
    strategy = probe_link_strategy(tmp_path)

    assert isinstance(strategy, SymlinkStrategy)
    assert list(tmp_path.iterdir()) == []


def test_probe_falls_back_to_hardlink_then_copy(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(self: Path, target: Path) -> None:
        raise OSError("operation not permitted")

    monkeypatch.setattr(Path, "symlink_to", refuse)
    assert isinstance(probe_link_strategy(tmp_path), HardlinkStrategy)

    monkeypatch.setattr(Path, "hardlink_to", refuse)
    assert isinstance(probe_link_strategy(tmp_path), CopyStrategy)


def test_resolve_link_strategy_honours_explicit_choice(tmp_path: Path) -> None:
    assert isinstance(resolve_link_strategy(LinkStrategyName.COPY, tmp_path), CopyStrategy)
    assert isinstance(resolve_link_strategy(LinkStrategyName.HARDLINK, tmp_path), HardlinkStrategy)
    assert isinstance(resolve_link_strategy(LinkStrategyName.AUTO, tmp_path), SymlinkStrategy)


def test_install_select_remove_scenario(layout: LayoutPaths, releases, target) -> None:
    releases.publish(TF, "1.2.4", b"terraform 1.2.4")
    releases.publish(TF, "1.1.3", b"terraform 1.1.3")
    installer = InstallEngine(layout, releases.fetcher, on_warning=lambda message: None)
    engine = SelectionEngine(layout, SymlinkStrategy())

    installer.install(TF, V124, target)
    installer.install(TF, V113, target)
    engine.select(TF, V113)

    assert render_versions(engine.list_installed(TF)) == "1.2.4\n1.1.3"
    assert engine.which(TF) == "1.1.3"

    engine.remove(TF, V113)

    assert engine.which(TF) == ""
    assert not layout.link_path(TF).is_symlink()
    assert render_versions(engine.list_installed(TF)) == "1.2.4"


def test_hardlink_scenario_keeps_running_removed_version(layout: LayoutPaths, releases, target) -> None:
    releases.publish(TF, "1.2.4", b"terraform 1.2.4")
    releases.publish(TF, "1.1.3", b"terraform 1.1.3")
    installer = InstallEngine(layout, releases.fetcher, on_warning=lambda message: None)
    engine = SelectionEngine(layout, HardlinkStrategy())

    installer.install(TF, V124, target)
    installer.install(TF, V113, target)
    engine.select(TF, V113)
    engine.remove(TF, V113)

    assert engine.which(TF) == ""
    assert layout.link_path(TF).read_bytes() == b"terraform 1.1.3"
