# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for release archive extraction."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest

from tfsel.archive import extract_member
from tfsel.errors import ArchiveEntryMissingError, FilesystemError


def _write_zip(path: Path, entries: dict[str, bytes]) -> Path:
    with zipfile.ZipFile(path, "w") as archive:
        for name, payload in entries.items():
            archive.writestr(name, payload)
    return path


def test_extracts_only_the_named_member(tmp_path: Path) -> None:
    archive = _write_zip(
        tmp_path / "terraform.zip",
        {"terraform": b"binary", "LICENSE.txt": b"license", "../escape": b"nope"},
    )
    destination = tmp_path / "out" / "terraform"
    destination.parent.mkdir()

    assert extract_member(archive, "terraform", destination) == destination
    assert destination.read_bytes() == b"binary"
    assert sorted(path.name for path in destination.parent.iterdir()) == ["terraform"]
    assert not (tmp_path / "escape").exists()


def test_missing_member_raises(tmp_path: Path) -> None:
    archive = _write_zip(tmp_path / "terraform.zip", {"README.md": b"docs"})

    with pytest.raises(ArchiveEntryMissingError) as excinfo:
        extract_member(archive, "terraform.exe", tmp_path / "terraform.exe")

    assert excinfo.value.entry == "terraform.exe"
    assert excinfo.value.archive == "terraform.zip"


def test_directory_entry_is_not_an_executable(tmp_path: Path) -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("terraform/", b"")
    archive_path = tmp_path / "terraform.zip"
    archive_path.write_bytes(buffer.getvalue())

    with pytest.raises(ArchiveEntryMissingError):
        extract_member(archive_path, "terraform/", tmp_path / "terraform")


def test_corrupt_archive_is_a_filesystem_error(tmp_path: Path) -> None:
    archive_path = tmp_path / "terraform.zip"
    archive_path.write_bytes(b"this is not a zip file")

    with pytest.raises(FilesystemError, match="read archive"):
        extract_member(archive_path, "terraform", tmp_path / "terraform")
