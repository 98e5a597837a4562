# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""HTTPS retrieval of release assets, manifests and signatures."""

from __future__ import annotations

import http.client
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Final, Protocol
from urllib.parse import urljoin, urlparse

from . import __version__
from .config import DEFAULT_CONNECT_TIMEOUT
from .errors import HttpStatusError, NotFoundError, TransportError
from .logging import get_logger

LOGGER = get_logger(__name__)

HTTPS_SCHEME: Final[str] = "https"
HTTP_NOT_FOUND: Final[int] = 404
HTTP_REDIRECT_STATUSES: Final[frozenset[int]] = frozenset({301, 302, 303, 307, 308})
MAX_REDIRECTS: Final[int] = 5
CHUNK_SIZE: Final[int] = 64 * 1024
USER_AGENT: Final[str] = f"tfsel/{__version__}"
OCTET_STREAM: Final[str] = "application/octet-stream"
TEXT_PLAIN: Final[str] = "text/plain"

ConnectionFactory = Callable[..., http.client.HTTPConnection]


@dataclass(frozen=True, slots=True)
class Missing:
    """Result variant for a resource the remote reports as absent (HTTP 404)."""

    url: str


class ArtifactFetcher(Protocol):
    """Capability used by the installer to retrieve remote resources."""

    def fetch_to_file(self, url: str, handle: BinaryIO) -> int:
        """Stream ``url`` into ``handle`` and return the number of bytes written."""
        ...

    def fetch_text(self, url: str, *, accept: str = TEXT_PLAIN) -> str:
        """Return the body of ``url`` decoded as UTF-8."""
        ...

    def fetch_bytes(self, url: str) -> bytes:
        """Return the raw body of ``url``."""
        ...

    def fetch_optional_text(self, url: str) -> str | Missing:
        """Return the body of ``url`` or :class:`Missing` when it answers 404."""
        ...


def _request_target(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path or "/"
    if parsed.query:
        path = f"{path}?{parsed.query}"
    return path


class HttpFetcher:
    """Blocking HTTPS client with a fixed connect timeout and safe redirects."""

    def __init__(
        self,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float | None = None,
        user_agent: str = USER_AGENT,
        max_redirects: int = MAX_REDIRECTS,
        connection_factory: ConnectionFactory = http.client.HTTPSConnection,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._user_agent = user_agent
        self._max_redirects = max_redirects
        self._connection_factory = connection_factory

    def _connect(self, connection: http.client.HTTPConnection) -> None:
        connection.connect()
        sock = getattr(connection, "sock", None)
        if sock is not None:
            # The connect timeout only bounds connection setup.
            sock.settimeout(self._read_timeout)

    @contextmanager
    def _exchange(self, url: str, accept: str) -> Iterator[http.client.HTTPResponse | Missing]:
        """Yield the final response for ``url`` after following redirects.

        Args:
            url: HTTPS URL to request.
            accept: ``Accept`` header value.

        Yields:
            HTTPResponse | Missing: Open 2xx response, or :class:`Missing` for 404.

        Raises:
            HttpStatusError: If the final status is neither 2xx nor 404.
            TransportError: If the URL is not HTTPS, redirects loop, or the network fails.
        """

        current = url
        for _ in range(self._max_redirects + 1):
            parsed = urlparse(current)
            if parsed.scheme != HTTPS_SCHEME or not parsed.hostname:
                raise TransportError(current, "only HTTPS URLs are allowed")
            LOGGER.debug("GET %s", current)
            connection = self._connection_factory(parsed.hostname, parsed.port, timeout=self._connect_timeout)
            try:
                self._connect(connection)
                connection.request(
                    "GET",
                    _request_target(current),
                    headers={"User-Agent": self._user_agent, "Accept": accept},
                )
                response = connection.getresponse()
            except (OSError, http.client.HTTPException) as exc:
                connection.close()
                raise TransportError(current, str(exc) or exc.__class__.__name__) from exc

            status = response.status
            if status in HTTP_REDIRECT_STATUSES:
                location = response.getheader("Location")
                connection.close()
                if not location:
                    raise TransportError(current, f"HTTP {status} redirect without a Location header")
                current = urljoin(current, location)
                continue
            if status == HTTP_NOT_FOUND:
                connection.close()
                yield Missing(url)
                return
            if not 200 <= status < 300:
                connection.close()
                raise HttpStatusError(url, status)
            try:
                yield response
            finally:
                connection.close()
            return
        raise TransportError(url, f"exceeded {self._max_redirects} redirects")

    def fetch_to_file(self, url: str, handle: BinaryIO) -> int:
        """Stream ``url`` into ``handle``.

        Raises:
            NotFoundError: If the remote answers 404.
        """

        written = 0
        with self._exchange(url, OCTET_STREAM) as response:
            if isinstance(response, Missing):
                raise NotFoundError(url)
            while True:
                try:
                    chunk = response.read(CHUNK_SIZE)
                except (OSError, http.client.HTTPException) as exc:
                    raise TransportError(url, str(exc) or exc.__class__.__name__) from exc
                if not chunk:
                    break
                # Local write failures propagate as OSError for the caller to classify.
                handle.write(chunk)
                written += len(chunk)
        LOGGER.debug("downloaded %d bytes from %s", written, url)
        return written

    def _read_body(self, url: str, accept: str) -> bytes | Missing:
        with self._exchange(url, accept) as response:
            if isinstance(response, Missing):
                return response
            try:
                return response.read()
            except (OSError, http.client.HTTPException) as exc:
                raise TransportError(url, str(exc) or exc.__class__.__name__) from exc

    def fetch_bytes(self, url: str) -> bytes:
        """Return the raw body of ``url``.

        Raises:
            NotFoundError: If the remote answers 404.
        """

        body = self._read_body(url, OCTET_STREAM)
        if isinstance(body, Missing):
            raise NotFoundError(url)
        return body

    def fetch_text(self, url: str, *, accept: str = TEXT_PLAIN) -> str:
        """Return the body of ``url`` decoded as UTF-8.

        Raises:
            NotFoundError: If the remote answers 404.
        """

        body = self._read_body(url, accept)
        if isinstance(body, Missing):
            raise NotFoundError(url)
        return body.decode("utf-8", errors="replace")

    def fetch_optional_text(self, url: str) -> str | Missing:
        """Return the body of ``url`` or :class:`Missing` when the remote answers 404."""

        body = self._read_body(url, TEXT_PLAIN)
        if isinstance(body, Missing):
            return body
        return body.decode("utf-8", errors="replace")


__all__ = ["ArtifactFetcher", "HttpFetcher", "Missing", "USER_AGENT"]
