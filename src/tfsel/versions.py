# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Semantic version parsing, ordering and filtering helpers."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Final

from .errors import InvalidVersionError

_IDENTIFIER: Final[str] = r"(?:0|[1-9][0-9]*|[0-9]*[a-zA-Z-][0-9a-zA-Z-]*)"
SEMVER_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<major>0|[1-9][0-9]*)\.(?P<minor>0|[1-9][0-9]*)\.(?P<patch>0|[1-9][0-9]*)"
    rf"(?:-(?P<prerelease>{_IDENTIFIER}(?:\.{_IDENTIFIER})*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$",
)
TAG_PREFIX: Final[str] = "v"


def _identifier_key(identifier: str) -> tuple[int, int, str]:
    """Return a sort key placing numeric identifiers before alphanumeric ones."""

    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


@total_ordering
@dataclass(frozen=True, slots=True)
class SemanticVersion:
    """Immutable ``MAJOR.MINOR.PATCH[-PRERELEASE]`` version.

    Build metadata is accepted while parsing but never stored, so two
    versions differing only in build metadata compare (and hash) equal.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = field(default=())

    @property
    def is_prerelease(self) -> bool:
        """Return ``True`` when the version carries a prerelease tag."""

        return bool(self.prerelease)

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            return f"{core}-{'.'.join(self.prerelease)}"
        return core

    def _precedence(self) -> tuple[object, ...]:
        # A release outranks any of its prereleases.
        pre_rank = (1,) if not self.prerelease else (0, tuple(_identifier_key(part) for part in self.prerelease))
        return (self.major, self.minor, self.patch, pre_rank)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence() < other._precedence()


def try_parse_version(text: str) -> SemanticVersion | None:
    """Return the parsed version or ``None`` when ``text`` is malformed.

    Args:
        text: Candidate version string.

    Returns:
        SemanticVersion | None: Parsed version, ``None`` on grammar mismatch.
    """

    match = SEMVER_PATTERN.match(text.strip())
    if match is None:
        return None
    prerelease = match.group("prerelease")
    return SemanticVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=tuple(prerelease.split(".")) if prerelease else (),
    )


def parse_version(text: str) -> SemanticVersion:
    """Parse an explicit version target supplied by the user.

    Args:
        text: Version string such as ``"1.5.7"`` or ``"1.6.0-beta1"``.

    Returns:
        SemanticVersion: Parsed version.

    Raises:
        InvalidVersionError: If ``text`` does not follow the semantic version grammar.
    """

    version = try_parse_version(text)
    if version is None:
        raise InvalidVersionError(text)
    return version


def parse_all(candidates: Iterable[str]) -> list[SemanticVersion]:
    """Parse heterogeneous version strings, dropping anything malformed.

    A single leading ``v`` is tolerated so raw git tags can be fed directly.

    Args:
        candidates: Version-ish strings scraped from remote listings or file names.

    Returns:
        list[SemanticVersion]: Unique versions sorted newest first.
    """

    parsed: set[SemanticVersion] = set()
    for raw in candidates:
        text = raw.strip()
        if text.startswith(TAG_PREFIX):
            text = text[len(TAG_PREFIX) :]
        version = try_parse_version(text)
        if version is not None:
            parsed.add(version)
    return sorted(parsed, reverse=True)


def filter_stable(versions: Iterable[SemanticVersion]) -> list[SemanticVersion]:
    """Return ``versions`` without prereleases, preserving order."""

    return [version for version in versions if not version.is_prerelease]


def filter_by_prefix(versions: Iterable[SemanticVersion], prefix: str) -> list[SemanticVersion]:
    """Return versions whose rendering starts with ``prefix``, preserving order."""

    return [version for version in versions if str(version).startswith(prefix)]


def render_versions(versions: Sequence[SemanticVersion]) -> str:
    """Return ``versions`` rendered one per line."""

    return "\n".join(str(version) for version in versions)


__all__ = [
    "SEMVER_PATTERN",
    "SemanticVersion",
    "filter_by_prefix",
    "filter_stable",
    "parse_all",
    "parse_version",
    "render_versions",
    "try_parse_version",
]
