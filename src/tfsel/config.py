# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Runtime settings resolved from the environment and CLI flags."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

DEFAULT_HOME_DIR_NAME: Final[str] = ".tfsel"
DEFAULT_CONNECT_TIMEOUT: Final[float] = 10.0

HOME_ENV: Final[str] = "TFSEL_HOME"
LINK_STRATEGY_ENV: Final[str] = "TFSEL_LINK_STRATEGY"
CONNECT_TIMEOUT_ENV: Final[str] = "TFSEL_CONNECT_TIMEOUT"
OS_ENV: Final[str] = "TFSEL_OS"
ARCH_ENV: Final[str] = "TFSEL_ARCH"
VERBOSE_ENV: Final[str] = "TFSEL_VERBOSE"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


class LinkStrategyName(str, Enum):
    """Enumerate the ways ``bin/<tool>`` may reference the selected artifact."""

    AUTO = "auto"
    SYMLINK = "symlink"
    HARDLINK = "hardlink"
    COPY = "copy"


def default_home() -> Path:
    """Return ``~/.tfsel``."""

    return Path.home() / DEFAULT_HOME_DIR_NAME


class Settings(BaseModel):
    """Validated settings for one CLI invocation."""

    model_config = ConfigDict(validate_assignment=True, frozen=False)

    home: Path = Field(default_factory=default_home)
    link_strategy: LinkStrategyName = LinkStrategyName.AUTO
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0)
    os: str | None = None
    arch: str | None = None
    verbose: bool = False

    @field_validator("home", mode="before")
    @classmethod
    def _expand_home(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("home directory must not be empty")
        if isinstance(value, (str, Path)):
            return Path(value).expanduser()
        return value

    @field_validator("os", "arch", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def _settings_from_environ(environ: Mapping[str, str]) -> dict[str, Any]:
    """Return raw setting values found in ``environ``."""

    values: dict[str, Any] = {}
    if environ.get(HOME_ENV):
        values["home"] = environ[HOME_ENV]
    if environ.get(LINK_STRATEGY_ENV):
        values["link_strategy"] = environ[LINK_STRATEGY_ENV].strip().lower()
    if environ.get(CONNECT_TIMEOUT_ENV):
        values["connect_timeout"] = environ[CONNECT_TIMEOUT_ENV]
    if environ.get(OS_ENV):
        values["os"] = environ[OS_ENV]
    if environ.get(ARCH_ENV):
        values["arch"] = environ[ARCH_ENV]
    if environ.get(VERBOSE_ENV):
        values["verbose"] = environ[VERBOSE_ENV].strip().lower() in _TRUTHY
    return values


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "settings"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid settings: " + "; ".join(parts)


def load_settings(environ: Mapping[str, str], **overrides: Any) -> Settings:
    """Build :class:`Settings` from environment variables and explicit overrides.

    Overrides whose value is ``None`` are ignored so CLI options left unset
    do not mask environment values.

    Args:
        environ: Environment mapping, usually ``os.environ``.
        **overrides: Values supplied on the command line.

    Returns:
        Settings: Validated settings.

    Raises:
        ConfigError: If any value fails validation.
    """

    values = _settings_from_environ(environ)
    values.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(_format_validation_error(exc)) from exc


__all__ = [
    "ARCH_ENV",
    "CONNECT_TIMEOUT_ENV",
    "HOME_ENV",
    "LINK_STRATEGY_ENV",
    "LinkStrategyName",
    "OS_ENV",
    "Settings",
    "VERBOSE_ENV",
    "default_home",
    "load_settings",
]
