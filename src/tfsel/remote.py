# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Discovery of the versions each tool has published."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from subprocess import CompletedProcess  # nosec B404
from typing import Final

from .errors import TransportError
from .fetch import ArtifactFetcher
from .logging import get_logger
from .process_utils import SubprocessExecutionError, run_command
from .tools import TF_RELEASES_URL, TG_GIT_REPOSITORY_URL, Tool
from .versions import SemanticVersion, filter_by_prefix, filter_stable, parse_all

LOGGER = get_logger(__name__)

TF_RELEASE_ANCHOR: Final[re.Pattern[str]] = re.compile(
    r"terraform_([0-9]+\.[0-9]+\.[0-9]+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)",
)
TAG_REF_PREFIX: Final[str] = "refs/tags/"
PEELED_SUFFIX: Final[str] = "^{}"
GIT_TIMEOUT_SECONDS: Final[float] = 60.0

CommandRunner = Callable[[Sequence[str]], CompletedProcess[str]]


def _run_git(args: Sequence[str]) -> CompletedProcess[str]:
    return run_command(args, timeout=GIT_TIMEOUT_SECONDS)


def scrape_terraform_versions(html: str) -> list[str]:
    """Return raw version strings linked from the Terraform releases index page."""

    return TF_RELEASE_ANCHOR.findall(html)


def parse_tag_refs(output: str) -> list[str]:
    """Return tag names from ``git ls-remote --tags`` output.

    Peeled entries (``refs/tags/v1.0.0^{}``) duplicate their annotated tag
    and are dropped.

    Args:
        output: Lines of ``<sha>\\t<ref>``.

    Returns:
        list[str]: Tag names without the ``refs/tags/`` prefix.
    """

    tags: list[str] = []
    for line in output.splitlines():
        _, _, ref = line.strip().partition("\t")
        if not ref.startswith(TAG_REF_PREFIX) or ref.endswith(PEELED_SUFFIX):
            continue
        tags.append(ref[len(TAG_REF_PREFIX) :])
    return tags


def list_git_tags(repository: str, *, runner: CommandRunner = _run_git) -> list[str]:
    """Return the tag names published by the git ``repository``.

    Raises:
        TransportError: If git is unavailable or the remote cannot be listed.
    """

    try:
        completed = runner(["git", "ls-remote", "--tags", repository])
    except FileNotFoundError as exc:
        raise TransportError(repository, str(exc)) from exc
    except SubprocessExecutionError as exc:
        reason = (exc.stderr or "").strip() or f"git exited with status {exc.returncode}"
        raise TransportError(repository, reason) from exc
    return parse_tag_refs(completed.stdout)


def _select(
    candidates: Iterable[str],
    *,
    include_prerelease: bool,
    prefix: str | None,
) -> list[SemanticVersion]:
    versions = parse_all(candidates)
    if not include_prerelease:
        versions = filter_stable(versions)
    if prefix:
        versions = filter_by_prefix(versions, prefix)
    return versions


def list_remote_versions(
    tool: Tool,
    fetcher: ArtifactFetcher,
    *,
    include_prerelease: bool = False,
    prefix: str | None = None,
    runner: CommandRunner = _run_git,
) -> list[SemanticVersion]:
    """Return the published versions of ``tool``, newest first.

    Args:
        tool: Managed tool.
        fetcher: HTTPS fetcher used for the Terraform release index.
        include_prerelease: Keep alpha, beta and rc releases.
        prefix: Keep only versions whose rendering starts with this text.
        runner: Command runner used for ``git ls-remote``.

    Returns:
        list[SemanticVersion]: Unique versions sorted newest first.

    Raises:
        TransportError: If the listing source cannot be reached.
    """

    match tool:
        case Tool.TERRAFORM:
            candidates = scrape_terraform_versions(fetcher.fetch_text(TF_RELEASES_URL, accept="text/html"))
        case Tool.TERRAGRUNT:
            candidates = list_git_tags(TG_GIT_REPOSITORY_URL, runner=runner)
    LOGGER.debug("found %d raw %s release names", len(candidates), tool.value)
    return _select(candidates, include_prerelease=include_prerelease, prefix=prefix)


__all__ = [
    "list_git_tags",
    "list_remote_versions",
    "parse_tag_refs",
    "scrape_terraform_versions",
]
