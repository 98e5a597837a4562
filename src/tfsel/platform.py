# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Map the running interpreter's OS and CPU onto release asset names."""

from __future__ import annotations

import platform as _platform
import sys
from dataclasses import dataclass
from typing import Final

from .errors import UnsupportedPlatformError

OS_ALIASES: Final[dict[str, str]] = {
    "linux": "linux",
    "darwin": "darwin",
    "windows": "windows",
    "freebsd": "freebsd",
    "openbsd": "openbsd",
}

ARCH_ALIASES: Final[dict[str, str]] = {
    "amd64": "amd64",
    "x86_64": "amd64",
    "x64": "amd64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "386": "386",
    "armv7l": "arm",
    "arm": "arm",
}

WINDOWS_OS: Final[str] = "windows"
EXE_SUFFIX: Final[str] = ".exe"


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    """Release-naming view of a target platform (``linux``/``amd64`` style)."""

    os: str
    arch: str

    @property
    def exe_suffix(self) -> str:
        """Return the executable suffix used by release assets for this OS."""

        return EXE_SUFFIX if self.os == WINDOWS_OS else ""

    @property
    def tag(self) -> str:
        """Return the ``<os>_<arch>`` tag embedded in asset file names."""

        return f"{self.os}_{self.arch}"


def normalize_platform(os_name: str, arch: str) -> PlatformInfo:
    """Return a :class:`PlatformInfo` from loosely spelled OS/arch names.

    Args:
        os_name: Operating system name (``Linux``, ``darwin``, ``Windows`` ...).
        arch: CPU architecture (``x86_64``, ``aarch64``, ``amd64`` ...).

    Returns:
        PlatformInfo: Canonical release-naming pair.

    Raises:
        UnsupportedPlatformError: If either component has no release mapping.
    """

    os_key = OS_ALIASES.get(os_name.strip().lower())
    arch_key = ARCH_ALIASES.get(arch.strip().lower())
    if os_key is None or arch_key is None:
        raise UnsupportedPlatformError(os_name, arch)
    return PlatformInfo(os=os_key, arch=arch_key)


def detect_platform(*, os_override: str | None = None, arch_override: str | None = None) -> PlatformInfo:
    """Return the platform matching the current system, honouring overrides.

    Args:
        os_override: Optional OS name replacing the detected one.
        arch_override: Optional architecture replacing the detected one.

    Returns:
        PlatformInfo: Canonical platform description.
    """

    system = os_override or ("windows" if sys.platform.startswith("win") else _platform.system())
    machine = arch_override or _platform.machine()
    return normalize_platform(system, machine)


def host_exe_suffix() -> str:
    """Return the executable suffix for the interpreter's own platform."""

    return EXE_SUFFIX if sys.platform.startswith("win") else ""


__all__ = [
    "ARCH_ALIASES",
    "OS_ALIASES",
    "PlatformInfo",
    "detect_platform",
    "host_exe_suffix",
    "normalize_platform",
]
