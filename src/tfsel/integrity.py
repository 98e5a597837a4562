# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Checksum and detached-signature verification for downloaded releases."""

from __future__ import annotations

import hashlib
import re
import stat
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import BinaryIO, Final

import gnupg

from .errors import (
    ChecksumMismatchError,
    ManifestEntryMissingError,
    SignatureBackendError,
    SignatureInvalidError,
)
from .logging import get_logger

LOGGER = get_logger(__name__)

CHUNK_SIZE: Final[int] = 1024 * 1024
SIGNING_CAPABILITY: Final[str] = "s"
_WRITE_BITS: Final[int] = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH


def sha256_hexdigest(stream: BinaryIO) -> str:
    """Return the SHA-256 digest of ``stream`` read from its first byte.

    The stream is rewound before hashing and again afterwards so the caller
    can keep reading it from the start regardless of its prior position.

    Args:
        stream: Seekable binary stream.

    Returns:
        str: Lowercase hex digest.
    """

    stream.seek(0)
    hasher = hashlib.sha256()
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        hasher.update(chunk)
    stream.seek(0)
    return hasher.hexdigest()


def file_sha256(path: Path) -> str:
    """Return the SHA-256 digest of the file at ``path``."""

    with path.open("rb") as handle:
        return sha256_hexdigest(handle)


def check_sha256(stream: BinaryIO, expected_hex: str) -> None:
    """Verify that ``stream`` hashes to ``expected_hex``.

    Args:
        stream: Seekable binary stream; left positioned at offset zero.
        expected_hex: Published digest.

    Raises:
        ChecksumMismatchError: If the digests differ.
    """

    expected = expected_hex.strip().lower()
    actual = sha256_hexdigest(stream)
    if actual != expected:
        raise ChecksumMismatchError(expected, actual)
    LOGGER.debug("sha256 verified: %s", actual)


def expected_checksum(manifest: str, filename: str) -> str:
    """Return the digest listed for ``filename`` in a ``SHA256SUMS`` manifest.

    Args:
        manifest: Manifest text, one ``<hex>  <filename>`` pair per line.
        filename: Asset name to look up.

    Returns:
        str: Lowercase hex digest.

    Raises:
        ManifestEntryMissingError: If the manifest does not list ``filename``.
    """

    pattern = re.compile(rf"^([A-Fa-f0-9]{{64}})\s+\*?{re.escape(filename)}\s*$", re.MULTILINE)
    match = pattern.search(manifest)
    if match is None:
        raise ManifestEntryMissingError(filename)
    return match.group(1).lower()


def is_trusted_key_file(path: Path) -> bool:
    """Return ``True`` when ``path`` is a regular file with no write permission bits.

    Args:
        path: Candidate public key file.

    Returns:
        bool: Whether the key may be used for signature verification.
    """

    try:
        mode = path.stat().st_mode
    except FileNotFoundError:
        return False
    return stat.S_ISREG(mode) and not mode & _WRITE_BITS


@dataclass(frozen=True, slots=True)
class KeyCandidate:
    """One key able to validate signatures: the primary or a subkey."""

    fingerprint: str
    capabilities: str
    primary: bool

    @property
    def can_sign(self) -> bool:
        """Return ``True`` when the key itself carries the signing capability."""

        # Lowercase flags describe this key; uppercase ones aggregate the whole keyblock.
        return SIGNING_CAPABILITY in self.capabilities


class SignatureVerifier:
    """Verify detached OpenPGP signatures against one armored public key.

    The key is imported into a private temporary keyring so the user's own
    GnuPG configuration is never read or modified. Use as a context manager::

        with SignatureVerifier(armored_key) as verifier:
            verifier.verify_detached(signature, payload)
    """

    def __init__(self, armored_key: str, *, gpg_binary: str = "gpg") -> None:
        self._armored_key = armored_key
        self._gpg_binary = gpg_binary
        self._homedir: tempfile.TemporaryDirectory[str] | None = None
        self._gpg: gnupg.GPG | None = None
        self._fingerprint: str | None = None
        self._candidates: tuple[KeyCandidate, ...] = ()

    def __enter__(self) -> SignatureVerifier:
        self._homedir = tempfile.TemporaryDirectory(prefix="tfsel-gnupg-", ignore_cleanup_errors=True)
        try:
            self._gpg = gnupg.GPG(gpgbinary=self._gpg_binary, gnupghome=self._homedir.name)
        except (OSError, ValueError) as exc:
            self.close()
            raise SignatureBackendError(f"Unable to run {self._gpg_binary}: {exc}") from exc
        try:
            self._load_key()
        except SignatureBackendError:
            self.close()
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Discard the temporary keyring."""

        self._gpg = None
        if self._homedir is not None:
            self._homedir.cleanup()
            self._homedir = None

    @property
    def fingerprint(self) -> str:
        """Return the primary key fingerprint in uppercase hex."""

        if self._fingerprint is None:
            raise SignatureBackendError("Public key has not been loaded")
        return self._fingerprint

    @property
    def candidates(self) -> Sequence[KeyCandidate]:
        """Return the primary key followed by its subkeys in listed order."""

        return self._candidates

    def _require_gpg(self) -> gnupg.GPG:
        if self._gpg is None:
            raise SignatureBackendError("SignatureVerifier must be used as a context manager")
        return self._gpg

    def _load_key(self) -> None:
        gpg = self._require_gpg()
        imported = gpg.import_keys(self._armored_key)
        if not imported.fingerprints:
            raise SignatureBackendError("Trusted public key file contains no usable OpenPGP key")
        listed = gpg.list_keys()
        if not listed:
            raise SignatureBackendError("Trusted public key could not be listed after import")
        primary = listed[0]
        self._fingerprint = str(primary["fingerprint"]).upper()
        candidates = [
            KeyCandidate(fingerprint=self._fingerprint, capabilities=str(primary.get("cap", "")), primary=True),
        ]
        for subkey in primary.get("subkeys", []):
            # python-gnupg lists subkeys as [keyid, capabilities, fingerprint, keygrip?].
            if len(subkey) < 3 or not subkey[2]:
                continue
            candidates.append(
                KeyCandidate(fingerprint=str(subkey[2]).upper(), capabilities=str(subkey[1]), primary=False),
            )
        self._candidates = tuple(candidates)
        LOGGER.debug(
            "loaded public key %s with %d signing candidate(s)",
            self._fingerprint,
            sum(1 for candidate in self._candidates if candidate.can_sign),
        )

    def verify_detached(self, signature: bytes, payload: bytes) -> KeyCandidate:
        """Verify ``signature`` over ``payload``.

        Candidates are tried in order (primary first, then subkeys); keys
        without the signing capability are skipped. The first candidate the
        signature validates against wins.

        Args:
            signature: Detached signature, binary or armored.
            payload: Exact bytes that were signed.

        Returns:
            KeyCandidate: Key that produced the signature.

        Raises:
            SignatureInvalidError: If no signing-capable candidate validates the signature.
        """

        gpg = self._require_gpg()
        if self._homedir is None:
            raise SignatureBackendError("Temporary keyring is not available")
        signature_path = Path(self._homedir.name) / "detached.sig"
        signature_path.write_bytes(signature)
        verified = gpg.verify_data(str(signature_path), payload)
        signer = str(getattr(verified, "fingerprint", "") or "").upper()
        if verified.valid and signer:
            for candidate in self._candidates:
                if candidate.can_sign and candidate.fingerprint == signer:
                    LOGGER.debug("signature validated by %s key %s", "primary" if candidate.primary else "sub", signer)
                    return candidate
        LOGGER.debug("signature rejected: status=%s", getattr(verified, "status", None))
        raise SignatureInvalidError()


def verify_detached_signature(armored_key: str, signature: bytes, payload: bytes) -> KeyCandidate:
    """Verify ``signature`` over ``payload`` with a one-shot temporary keyring."""

    with SignatureVerifier(armored_key) as verifier:
        return verifier.verify_detached(signature, payload)


__all__ = [
    "KeyCandidate",
    "SignatureVerifier",
    "check_sha256",
    "expected_checksum",
    "file_sha256",
    "is_trusted_key_file",
    "sha256_hexdigest",
    "verify_detached_signature",
]
