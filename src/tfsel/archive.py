# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Extraction of the single executable shipped inside a release archive."""

from __future__ import annotations

import shutil
import zipfile
from pathlib import Path

from .errors import ArchiveEntryMissingError, FilesystemError
from .logging import get_logger

LOGGER = get_logger(__name__)


def _select_zip_member(archive: zipfile.ZipFile, member_name: str, *, context: str) -> zipfile.ZipInfo:
    """Return the archive entry named ``member_name``.

    Args:
        archive: Open ZIP archive.
        member_name: Exact entry name expected at the archive root.
        context: Archive name used for error reporting.

    Returns:
        zipfile.ZipInfo: Entry metadata ready for extraction.

    Raises:
        ArchiveEntryMissingError: If the entry is absent or is a directory.
    """

    try:
        info = archive.getinfo(member_name)
    except KeyError as exc:
        raise ArchiveEntryMissingError(member_name, context) from exc
    if info.is_dir():
        raise ArchiveEntryMissingError(member_name, context)
    return info


def extract_member(archive_path: Path, member_name: str, destination: Path) -> Path:
    """Copy one entry of the ZIP at ``archive_path`` into ``destination``.

    Only the named entry is read; its stored path is never used to build the
    output location, so hostile entry names cannot escape ``destination``.

    Args:
        archive_path: Downloaded ZIP archive.
        member_name: Entry to extract, e.g. ``terraform``.
        destination: Output file path.

    Returns:
        Path: ``destination``.

    Raises:
        ArchiveEntryMissingError: If the archive lacks ``member_name``.
        FilesystemError: If the archive is not a readable ZIP file.
    """

    try:
        with zipfile.ZipFile(archive_path) as archive:
            info = _select_zip_member(archive, member_name, context=archive_path.name)
            with archive.open(info) as source, destination.open("wb") as target:
                shutil.copyfileobj(source, target)
    except zipfile.BadZipFile as exc:
        raise FilesystemError("read archive", archive_path, str(exc)) from exc
    LOGGER.debug("extracted %s from %s", member_name, archive_path.name)
    return destination


__all__ = ["extract_member"]
