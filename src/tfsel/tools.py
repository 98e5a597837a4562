# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Closed set of managed tools and the release layout each one publishes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from .platform import PlatformInfo, host_exe_suffix
from .versions import SemanticVersion

TF_RELEASES_URL: Final[str] = "https://releases.hashicorp.com/terraform/"
TG_GIT_REPOSITORY_URL: Final[str] = "https://github.com/gruntwork-io/terragrunt"
TG_RELEASES_DOWNLOAD_URL: Final[str] = f"{TG_GIT_REPOSITORY_URL}/releases/download"
KEY_ID_LENGTH: Final[int] = 8


class Tool(StrEnum):
    """Managed executables. The member set is fixed."""

    TERRAFORM = "terraform"
    TERRAGRUNT = "terragrunt"

    @classmethod
    def from_alias(cls, raw: str) -> Tool:
        """Return the tool matching a CLI alias such as ``tf`` or ``terragrunt``.

        Args:
            raw: Alias typed by the user.

        Returns:
            Tool: Matching tool.

        Raises:
            ValueError: If ``raw`` names no known tool.
        """

        token = raw.strip().lower()
        for tool in cls:
            if token in tool.aliases:
                return tool
        raise ValueError(f"Tool must be one of: {', '.join(all_aliases())}")

    @property
    def aliases(self) -> tuple[str, ...]:
        """Return accepted CLI spellings, short form first."""

        match self:
            case Tool.TERRAFORM:
                return ("tf", "terraform")
            case Tool.TERRAGRUNT:
                return ("tg", "terragrunt")

    @property
    def executable_name(self) -> str:
        """Return the file name of the active link under ``bin``."""

        return f"{self.value}{host_exe_suffix()}"

    def release_assets(self, version: SemanticVersion, target: PlatformInfo) -> ReleaseAssets:
        """Return download locations for ``version`` built for ``target``.

        Args:
            version: Exact release to download.
            target: Platform the asset is built for.

        Returns:
            ReleaseAssets: URLs and file names published for the release.
        """

        match self:
            case Tool.TERRAFORM:
                base = f"{TF_RELEASES_URL}{version}/"
                filename = f"terraform_{version}_{target.tag}.zip"
                return ReleaseAssets(
                    filename=filename,
                    url=f"{base}{filename}",
                    checksums_url=f"{base}terraform_{version}_SHA256SUMS",
                    archive_member=f"terraform{target.exe_suffix}",
                    signature_url_prefix=f"{base}terraform_{version}_SHA256SUMS",
                )
            case Tool.TERRAGRUNT:
                base = f"{TG_RELEASES_DOWNLOAD_URL}/v{version}/"
                filename = f"terragrunt_{target.tag}{target.exe_suffix}"
                return ReleaseAssets(
                    filename=filename,
                    url=f"{base}{filename}",
                    checksums_url=f"{base}SHA256SUMS",
                    archive_member=None,
                    signature_url_prefix=None,
                )


@dataclass(frozen=True, slots=True)
class ReleaseAssets:
    """Remote files making up one published release of a tool.

    Attributes:
        filename: Name of the downloadable asset, as listed in the checksum manifest.
        url: Download URL of the asset.
        checksums_url: URL of the ``SHA256SUMS`` manifest.
        archive_member: Entry to extract when the asset is a ZIP archive.
        signature_url_prefix: Manifest URL that detached signatures extend with
            ``.<key-id>.sig``; ``None`` when the publisher signs nothing.
    """

    filename: str
    url: str
    checksums_url: str
    archive_member: str | None
    signature_url_prefix: str | None

    def signature_url(self, fingerprint: str) -> str | None:
        """Return the detached signature URL for the key with ``fingerprint``."""

        if self.signature_url_prefix is None:
            return None
        key_id = fingerprint.upper()[-KEY_ID_LENGTH:]
        return f"{self.signature_url_prefix}.{key_id}.sig"


def all_aliases() -> tuple[str, ...]:
    """Return every accepted tool alias in declaration order."""

    return tuple(alias for tool in Tool for alias in tool.aliases)


__all__ = [
    "KEY_ID_LENGTH",
    "ReleaseAssets",
    "TF_RELEASES_URL",
    "TG_GIT_REPOSITORY_URL",
    "TG_RELEASES_DOWNLOAD_URL",
    "Tool",
    "all_aliases",
]
