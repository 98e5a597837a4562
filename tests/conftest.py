# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import hashlib
import io
import zipfile
from collections.abc import Mapping
from pathlib import Path
from typing import BinaryIO

import pytest

from tfsel.errors import NotFoundError
from tfsel.fetch import Missing
from tfsel.layout import LayoutPaths, ensure
from tfsel.platform import PlatformInfo
from tfsel.tools import ReleaseAssets, Tool
from tfsel.versions import parse_version


def build_zip(member: str, payload: bytes) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(member, payload)
    return buffer.getvalue()


class FakeFetcher:
    """In-memory fetcher serving registered URLs and answering 404 otherwise."""

    def __init__(
        self,
        resources: Mapping[str, bytes] | None = None,
        failures: Mapping[str, Exception] | None = None,
    ) -> None:
        self.resources: dict[str, bytes] = dict(resources or {})
        self.failures: dict[str, Exception] = dict(failures or {})
        self.calls: list[str] = []

    def _lookup(self, url: str) -> bytes | Missing:
        self.calls.append(url)
        if url in self.failures:
            raise self.failures[url]
        if url not in self.resources:
            return Missing(url)
        return self.resources[url]

    def _require(self, url: str) -> bytes:
        body = self._lookup(url)
        if isinstance(body, Missing):
            raise NotFoundError(url)
        return body

    def fetch_to_file(self, url: str, handle: BinaryIO) -> int:
        body = self._require(url)
        handle.write(body)
        return len(body)

    def fetch_text(self, url: str, *, accept: str = "text/plain") -> str:
        return self._require(url).decode("utf-8")

    def fetch_bytes(self, url: str) -> bytes:
        return self._require(url)

    def fetch_optional_text(self, url: str) -> str | Missing:
        body = self._lookup(url)
        if isinstance(body, Missing):
            return body
        return body.decode("utf-8")


class FakeReleases:
    """Publish release assets and manifests on a :class:`FakeFetcher`."""

    def __init__(self, fetcher: FakeFetcher, target: PlatformInfo) -> None:
        self.fetcher = fetcher
        self.target = target

    def publish(
        self,
        tool: Tool,
        version: str,
        payload: bytes,
        *,
        manifest: bool = True,
        checksum: str | None = None,
    ) -> ReleaseAssets:
        assets = tool.release_assets(parse_version(version), self.target)
        body = build_zip(assets.archive_member, payload) if assets.archive_member else payload
        self.fetcher.resources[assets.url] = body
        if manifest:
            digest = checksum or hashlib.sha256(body).hexdigest()
            lines = f"{'0' * 64}  unrelated_file.zip\n{digest}  {assets.filename}\n"
            self.fetcher.resources[assets.checksums_url] = lines.encode()
        return assets


@pytest.fixture
def target() -> PlatformInfo:
    return PlatformInfo(os="linux", arch="amd64")


@pytest.fixture
def layout(tmp_path: Path) -> LayoutPaths:
    """Return an initialised tfsel home below ``tmp_path``."""
    return ensure(tmp_path / "tfsel-home")


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def releases(fetcher: FakeFetcher, target: PlatformInfo) -> FakeReleases:
    return FakeReleases(fetcher, target)
