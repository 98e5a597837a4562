# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Error taxonomy shared by the install, integrity and selection layers.

Every error raised on purpose derives from :class:`TfselError` so the CLI can
report it as a single diagnostic line. Warnings never use these types; they
are emitted through :mod:`tfsel.logging` and the operation continues.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


class TfselError(RuntimeError):
    """Base class for user-facing failures."""


class ConfigError(TfselError):
    """Raised when configuration input is invalid."""


class UsageError(TfselError, ValueError):
    """Raised when a command-line argument is not recognised."""


class InvalidVersionError(TfselError, ValueError):
    """Raised when a CLI target is not a semantic version."""

    def __init__(self, value: str) -> None:
        super().__init__(f"'{value}' is not a valid semantic version (expected MAJOR.MINOR.PATCH[-PRERELEASE])")
        self.value = value


class UnsupportedPlatformError(TfselError):
    """Raised when no release exists for the requested OS/architecture pair."""

    def __init__(self, os_name: str, arch: str) -> None:
        super().__init__(f"Unsupported platform: {os_name}-{arch}")
        self.os_name = os_name
        self.arch = arch


class TransportError(TfselError):
    """Raised when a remote resource cannot be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class HttpStatusError(TransportError):
    """Raised when the remote answers with a non-2xx status."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(url, f"HTTP {status}")
        self.status = status

    @property
    def not_found(self) -> bool:
        """Return ``True`` when the remote reported the resource as absent."""

        return self.status == 404


class NotFoundError(HttpStatusError):
    """Raised when the remote answers HTTP 404."""

    def __init__(self, url: str) -> None:
        super().__init__(url, 404)


class ChecksumMismatchError(TfselError):
    """Raised when a downloaded file does not match its published digest."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"File sha256 checksum mismatch: expected '{expected}', got '{actual}'")
        self.expected = expected
        self.actual = actual


class ManifestEntryMissingError(TfselError):
    """Raised when a checksum manifest does not list the downloaded file."""

    def __init__(self, filename: str) -> None:
        super().__init__(f"Checksum manifest has no entry for '{filename}'")
        self.filename = filename


class SignatureInvalidError(TfselError):
    """Raised when a detached signature validates against none of the trusted keys."""

    def __init__(self, subject: str = "checksum manifest") -> None:
        super().__init__(f"PGP signature verification failed for {subject}")
        self.subject = subject


class SignatureBackendError(TfselError):
    """Raised when the OpenPGP backend cannot load a key or run at all."""


class ArchiveEntryMissingError(TfselError):
    """Raised when a release archive lacks the expected executable."""

    def __init__(self, entry: str, archive: str) -> None:
        super().__init__(f"Release archive {archive} has no entry named '{entry}'")
        self.entry = entry
        self.archive = archive


class NotInstalledError(TfselError):
    """Raised when selecting a version that has no installed artifact."""

    def __init__(self, tool: str, version: str) -> None:
        super().__init__(f"{tool} version {version} is not installed. Run 'tfsel install {tool} {version}'")
        self.tool = tool
        self.version = version


class FilesystemError(TfselError):
    """Raised when a filesystem operation fails (permissions, disk full, ...)."""

    def __init__(self, action: str, path: Path, reason: str) -> None:
        super().__init__(f"Unable to {action} {path}: {reason}")
        self.action = action
        self.path = path
        self.reason = reason


@contextmanager
def filesystem_errors(action: str, path: Path) -> Iterator[None]:
    """Translate ``OSError`` raised inside the block into :class:`FilesystemError`.

    Args:
        action: Verb phrase describing the attempted operation.
        path: Path the operation targets.

    Raises:
        FilesystemError: If the wrapped block raises ``OSError``.
    """

    try:
        yield
    except OSError as exc:
        raise FilesystemError(action, path, exc.strerror or str(exc)) from exc


__all__ = [
    "ArchiveEntryMissingError",
    "ChecksumMismatchError",
    "ConfigError",
    "FilesystemError",
    "HttpStatusError",
    "InvalidVersionError",
    "ManifestEntryMissingError",
    "NotFoundError",
    "NotInstalledError",
    "SignatureBackendError",
    "SignatureInvalidError",
    "TfselError",
    "TransportError",
    "UnsupportedPlatformError",
    "UsageError",
    "filesystem_errors",
]
