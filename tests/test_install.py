# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the install engine using an in-memory fetcher."""

from __future__ import annotations

import hashlib
import io
import os
import stat
import zipfile

import pytest

from tfsel.errors import (
    ArchiveEntryMissingError,
    ChecksumMismatchError,
    HttpStatusError,
    ManifestEntryMissingError,
    NotFoundError,
    TransportError,
)
from tfsel.install import InstallEngine
from tfsel.tools import Tool
from tfsel.versions import parse_version

V124 = parse_version("1.2.4")


def _engine(layout, fetcher, warnings: list[str] | None = None) -> InstallEngine:
    sink = warnings.append if warnings is not None else (lambda message: None)
    return InstallEngine(layout, fetcher, on_warning=sink)


def _opt_entries(layout, tool: Tool) -> list[str]:
    return sorted(path.name for path in layout.tool_dir(tool).iterdir())


def test_install_extracts_terraform_and_marks_executable(layout, releases, target) -> None:
    releases.publish(Tool.TERRAFORM, "1.2.4", b"terraform 1.2.4 binary")
    warnings: list[str] = []

    message = _engine(layout, releases.fetcher, warnings).install(Tool.TERRAFORM, V124, target)

    artifact = layout.artifact_path(Tool.TERRAFORM, V124)
    assert message == "Installed terraform 1.2.4"
    assert artifact.read_bytes() == b"terraform 1.2.4 binary"
    assert stat.S_IMODE(artifact.stat().st_mode) == 0o755
    assert _opt_entries(layout, Tool.TERRAFORM) == ["1.2.4"]
    assert len(warnings) == 1
    assert "PGP signature verification" in warnings[0]
    assert str(layout.key_path(Tool.TERRAFORM)) in warnings[0]


def test_install_places_terragrunt_binary_as_is(layout, releases, target) -> None:
    assets = releases.publish(Tool.TERRAGRUNT, "0.45.2", b"terragrunt binary")
    warnings: list[str] = []

    message = _engine(layout, releases.fetcher, warnings).install(Tool.TERRAGRUNT, parse_version("0.45.2"), target)

    assert message == "Installed terragrunt 0.45.2"
    assert assets.url == (
        "https://github.com/gruntwork-io/terragrunt/releases/download/v0.45.2/terragrunt_linux_amd64"
    )
    assert layout.artifact_path(Tool.TERRAGRUNT, parse_version("0.45.2")).read_bytes() == b"terragrunt binary"
    assert warnings == []


def test_terragrunt_with_provisioned_key_warns_that_releases_are_unsigned(layout, releases, target) -> None:
    releases.publish(Tool.TERRAGRUNT, "0.45.2", b"terragrunt binary")
    key_path = layout.key_path(Tool.TERRAGRUNT)
    key_path.write_text("armored", encoding="utf-8")
    key_path.chmod(0o444)
    warnings: list[str] = []

    _engine(layout, releases.fetcher, warnings).install(Tool.TERRAGRUNT, parse_version("0.45.2"), target)

    assert warnings == ["Skipping PGP signature verification: terragrunt releases are not signed"]


def test_install_is_idempotent_without_network(layout, releases, target) -> None:
    releases.publish(Tool.TERRAFORM, "1.2.4", b"terraform")
    engine = _engine(layout, releases.fetcher)
    engine.install(Tool.TERRAFORM, V124, target)
    calls_after_first = list(releases.fetcher.calls)

    assert engine.install(Tool.TERRAFORM, V124, target) == "Installed terraform 1.2.4"
    assert releases.fetcher.calls == calls_after_first


def test_checksum_mismatch_leaves_nothing_installed(layout, releases, target) -> None:
    releases.publish(Tool.TERRAFORM, "1.2.4", b"terraform", checksum="f" * 64)

    with pytest.raises(ChecksumMismatchError) as excinfo:
        _engine(layout, releases.fetcher).install(Tool.TERRAFORM, V124, target)

    assert excinfo.value.expected == "f" * 64
    assert _opt_entries(layout, Tool.TERRAFORM) == []


def test_missing_manifest_warns_and_installs(layout, releases, target) -> None:
    assets = releases.publish(Tool.TERRAFORM, "1.2.4", b"terraform", manifest=False)
    warnings: list[str] = []

    _engine(layout, releases.fetcher, warnings).install(Tool.TERRAFORM, V124, target)

    assert warnings == [f"Skipping SHA256 file integrity check: no checksum file found at {assets.checksums_url}"]
    assert _opt_entries(layout, Tool.TERRAFORM) == ["1.2.4"]


def test_manifest_server_error_is_fatal(layout, releases, target) -> None:
    assets = releases.publish(Tool.TERRAFORM, "1.2.4", b"terraform", manifest=False)
    releases.fetcher.failures[assets.checksums_url] = HttpStatusError(assets.checksums_url, 500)

    with pytest.raises(HttpStatusError):
        _engine(layout, releases.fetcher).install(Tool.TERRAFORM, V124, target)

    assert _opt_entries(layout, Tool.TERRAFORM) == []


def test_manifest_without_entry_is_fatal(layout, releases, target) -> None:
    assets = releases.publish(Tool.TERRAFORM, "1.2.4", b"terraform", manifest=False)
    releases.fetcher.resources[assets.checksums_url] = f"{'0' * 64}  terraform_1.2.4_darwin_arm64.zip\n".encode()

    with pytest.raises(ManifestEntryMissingError):
        _engine(layout, releases.fetcher).install(Tool.TERRAFORM, V124, target)

    assert _opt_entries(layout, Tool.TERRAFORM) == []


def test_missing_release_is_not_found(layout, fetcher, target) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        _engine(layout, fetcher).install(Tool.TERRAFORM, parse_version("9.9.9"), target)

    assert excinfo.value.status == 404
    assert "terraform_9.9.9_linux_amd64.zip" in excinfo.value.url


def test_download_failure_propagates(layout, releases, target) -> None:
    assets = releases.publish(Tool.TERRAFORM, "1.2.4", b"terraform")
    releases.fetcher.failures[assets.url] = TransportError(assets.url, "timed out")

    with pytest.raises(TransportError, match="timed out"):
        _engine(layout, releases.fetcher).install(Tool.TERRAFORM, V124, target)

    assert _opt_entries(layout, Tool.TERRAFORM) == []


def test_archive_without_executable_is_rejected(layout, fetcher, target) -> None:
    assets = Tool.TERRAFORM.release_assets(V124, target)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("README.md", b"docs only")
    body = buffer.getvalue()
    fetcher.resources[assets.url] = body
    fetcher.resources[assets.checksums_url] = f"{hashlib.sha256(body).hexdigest()}  {assets.filename}\n".encode()

    with pytest.raises(ArchiveEntryMissingError) as excinfo:
        _engine(layout, fetcher).install(Tool.TERRAFORM, V124, target)

    assert excinfo.value.entry == "terraform"
    assert _opt_entries(layout, Tool.TERRAFORM) == []


def test_signature_skipped_when_key_is_writable(layout, releases, target) -> None:
    releases.publish(Tool.TERRAFORM, "1.2.4", b"terraform")
    key_path = layout.key_path(Tool.TERRAFORM)
    key_path.write_text("armored", encoding="utf-8")
    os.chmod(key_path, 0o644)
    verifiers: list[str] = []
    warnings: list[str] = []

    engine = InstallEngine(
        layout,
        releases.fetcher,
        on_warning=warnings.append,
        verifier_factory=lambda armored: verifiers.append(armored),
    )
    engine.install(Tool.TERRAFORM, V124, target)

    assert verifiers == []
    assert len(warnings) == 1
    assert "read-only public key" in warnings[0]


def test_missing_manifest_is_fatal_when_a_trusted_key_is_provisioned(layout, releases, target) -> None:
    assets = releases.publish(Tool.TERRAFORM, "1.2.4", b"unverified terraform", manifest=False)
    key_path = layout.key_path(Tool.TERRAFORM)
    key_path.write_text("armored", encoding="utf-8")
    key_path.chmod(0o444)
    verifiers: list[str] = []
    warnings: list[str] = []

    engine = InstallEngine(
        layout,
        releases.fetcher,
        on_warning=warnings.append,
        verifier_factory=lambda armored: verifiers.append(armored),
    )
    with pytest.raises(NotFoundError) as excinfo:
        engine.install(Tool.TERRAFORM, V124, target)

    assert excinfo.value.url == assets.checksums_url
    assert verifiers == []
    assert warnings == []
    assert _opt_entries(layout, Tool.TERRAFORM) == []
