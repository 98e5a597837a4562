# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Download, verify and place release artifacts under ``opt/<tool>``.

Nothing reaches ``opt`` until every verification step that applies has
passed. The verified executable is copied next to its final path under a
hidden partial name and renamed into place, so an interrupted install never
leaves something that looks like an installed version.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO, Final, Protocol

from .archive import extract_member
from .errors import NotFoundError, filesystem_errors
from .fetch import ArtifactFetcher, Missing
from .integrity import SignatureVerifier, check_sha256, expected_checksum, is_trusted_key_file
from .layout import LayoutPaths
from .logging import get_logger
from .platform import PlatformInfo
from .tools import ReleaseAssets, Tool
from .versions import SemanticVersion

LOGGER = get_logger(__name__)

EXECUTABLE_MODE: Final[int] = 0o755
PARTIAL_SUFFIX: Final[str] = ".partial"

WarningSink = Callable[[str], None]


class DetachedVerifier(Protocol):
    """Subset of :class:`~tfsel.integrity.SignatureVerifier` used while installing."""

    @property
    def fingerprint(self) -> str: ...

    def verify_detached(self, signature: bytes, payload: bytes) -> object: ...

    def __enter__(self) -> DetachedVerifier: ...

    def __exit__(self, *exc_info: object) -> None: ...


VerifierFactory = Callable[[str], DetachedVerifier]


def _log_warning(message: str) -> None:
    LOGGER.warning(message)


class InstallEngine:
    """Install exact tool versions after checksum and signature verification."""

    def __init__(
        self,
        layout: LayoutPaths,
        fetcher: ArtifactFetcher,
        *,
        on_warning: WarningSink | None = None,
        verifier_factory: VerifierFactory = SignatureVerifier,
    ) -> None:
        self._layout = layout
        self._fetcher = fetcher
        self._warn = on_warning or _log_warning
        self._verifier_factory = verifier_factory

    def install(self, tool: Tool, version: SemanticVersion, target: PlatformInfo) -> str:
        """Install ``version`` of ``tool`` built for ``target``.

        Args:
            tool: Managed tool.
            version: Exact release to install.
            target: Platform whose release asset is downloaded.

        Returns:
            str: ``Installed <tool> <version>``. Also returned, without any
            network traffic, when the version is already installed.

        Raises:
            TransportError: If a required download fails.
            NotFoundError: If the release is missing, or the checksum manifest
                is missing while a trusted key for a signed tool is provisioned.
            ChecksumMismatchError: If the asset does not match the manifest.
            ManifestEntryMissingError: If the manifest does not list the asset.
            SignatureInvalidError: If the manifest signature does not verify.
            SignatureBackendError: If the OpenPGP backend cannot load the key.
            ArchiveEntryMissingError: If the release archive lacks the executable.
            FilesystemError: If the artifact cannot be written.
        """

        message = f"Installed {tool.value} {version}"
        artifact = self._layout.artifact_path(tool, version)
        if artifact.exists():
            LOGGER.debug("%s already present", artifact)
            return message

        assets = tool.release_assets(version, target)
        with tempfile.TemporaryDirectory(prefix="tfsel-") as scratch:
            scratch_dir = Path(scratch)
            download_path = scratch_dir / assets.filename
            with filesystem_errors("write", download_path), download_path.open("w+b") as handle:
                self._fetcher.fetch_to_file(assets.url, handle)
                self._verify(tool, assets, handle)
            executable = download_path
            if assets.archive_member is not None:
                extracted_dir = scratch_dir / "extracted"
                extracted_dir.mkdir()
                executable = extract_member(download_path, assets.archive_member, extracted_dir / assets.archive_member)
            self._place(executable, artifact)
        LOGGER.debug("installed %s", artifact)
        return message

    def _verify(self, tool: Tool, assets: ReleaseAssets, handle: BinaryIO) -> None:
        manifest = self._fetcher.fetch_optional_text(assets.checksums_url)
        if isinstance(manifest, Missing):
            # A provisioned key makes the signed manifest mandatory.
            if assets.signature_url_prefix is not None and is_trusted_key_file(self._layout.key_path(tool)):
                raise NotFoundError(manifest.url)
            self._warn(f"Skipping SHA256 file integrity check: no checksum file found at {manifest.url}")
            return
        self._verify_manifest_signature(tool, assets, manifest)
        check_sha256(handle, expected_checksum(manifest, assets.filename))

    def _verify_manifest_signature(self, tool: Tool, assets: ReleaseAssets, manifest: str) -> None:
        key_path = self._layout.key_path(tool)
        trusted = is_trusted_key_file(key_path)
        if assets.signature_url_prefix is None:
            if trusted:
                self._warn(f"Skipping PGP signature verification: {tool.value} releases are not signed")
            return
        if not trusted:
            self._warn(
                "Skipping PGP signature verification "
                f"(install a read-only public key at {key_path} to enable it)",
            )
            return

        with filesystem_errors("read", key_path):
            armored_key = key_path.read_text(encoding="utf-8")
        with self._verifier_factory(armored_key) as verifier:
            signature_url = assets.signature_url(verifier.fingerprint)
            if signature_url is None:
                return
            signature = self._fetcher.fetch_bytes(signature_url)
            verifier.verify_detached(signature, manifest.encode("utf-8"))
        LOGGER.debug("checksum manifest signature verified with %s", key_path)

    def _place(self, source: Path, artifact: Path) -> None:
        partial = artifact.with_name(f".{artifact.name}{PARTIAL_SUFFIX}")
        with filesystem_errors("install", artifact):
            try:
                shutil.copyfile(source, partial)
                partial.chmod(EXECUTABLE_MODE)
                os.replace(partial, artifact)
            except OSError:
                partial.unlink(missing_ok=True)
                raise


__all__ = ["EXECUTABLE_MODE", "InstallEngine", "VerifierFactory", "WarningSink"]
