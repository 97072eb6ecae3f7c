"""
Command line git ref fetcher.

Lists remotes with ``git ls-remote`` through GitPython's command wrapper.
GitPython is synchronous, so each call runs in a worker thread via
``asyncio.to_thread()``.

``--symref`` (git >= 2.8) lets the remote report which branch HEAD points
at; older clients only learn HEAD's commit. ls-remote carries no object
data, so tag timestamps and reachable-commit lookups are unavailable.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import git
from git.exc import GitCommandError, GitCommandNotFound

from gitsource.logging_config import get_logger
from gitsource.remote import RemoteRepository
from gitsource.vcs.protocol import DefaultRef, RawRef, RefFetcherError, RefKind, RemoteUnavailable

logger = get_logger(__name__)

SYMREF_MIN_VERSION = (2, 8)
PEELED_SUFFIX = "^{}"


def parse_ls_remote(output: str) -> list[RawRef]:
    """Parse ``git ls-remote`` output into raw refs.

    Annotated tags appear twice: the tag object, then the peeled commit
    with a ``^{}`` suffix. The two lines are folded into one RawRef.
    """
    targets: dict[str, tuple[str, RefKind, str]] = {}
    peeled: dict[str, str] = {}
    order: list[str] = []

    for line in output.splitlines():
        sha, sep, ref_name = line.strip().partition("\t")
        if not sep or sha.startswith("ref:"):
            continue
        if ref_name.endswith(PEELED_SUFFIX):
            peeled[ref_name.removesuffix(PEELED_SUFFIX)] = sha
            continue
        if ref_name.startswith(RefKind.BRANCH.prefix):
            kind = RefKind.BRANCH
        elif ref_name.startswith(RefKind.TAG.prefix):
            kind = RefKind.TAG
        else:
            continue
        targets[ref_name] = (sha, kind, ref_name.removeprefix(kind.prefix))
        order.append(ref_name)

    return [
        RawRef(
            name=targets[ref_name][2],
            target=targets[ref_name][0],
            kind=targets[ref_name][1],
            peeled=peeled.get(ref_name),
        )
        for ref_name in order
    ]


def parse_default_ref(output: str) -> DefaultRef | None:
    """Parse ``git ls-remote [--symref] <url> HEAD`` output."""
    name: str | None = None
    commit: str | None = None
    for line in output.splitlines():
        left, sep, right = line.strip().partition("\t")
        if not sep or right != "HEAD":
            continue
        if left.startswith("ref: "):
            name = left.removeprefix("ref: ").removeprefix(RefKind.BRANCH.prefix)
        else:
            commit = left
    if commit is None:
        return None
    return DefaultRef(commit=commit, name=name)


def _failure_reason(e: GitCommandError) -> str:
    """stderr of a failed git command without GitPython's framing."""
    reason = str(e.stderr or "").strip()
    return reason.removeprefix("stderr:").strip().strip("'").strip()


class GitCliRefFetcher:
    """RefFetcher backed by the git executable."""

    def __init__(self, executable: str = "git", timeout_seconds: int = 60) -> None:
        if executable != "git":
            # GitPython keeps the executable path process-wide.
            git.refresh(path=executable)
        self._git = git.Git()
        self._git.update_environment(GIT_TERMINAL_PROMPT="0")
        self._timeout = timeout_seconds
        self._version: tuple[int, int] | None = None

    @property
    def supports_symbolic_ref_names(self) -> bool:
        return self._version is not None and self._version >= SYMREF_MIN_VERSION

    def _ls_remote_sync(self, url: str, *options: str, pattern: str | None = None) -> str:
        args = [*options, url]
        if pattern is not None:
            args.append(pattern)
        try:
            return self._git.ls_remote(*args, kill_after_timeout=self._timeout)
        except GitCommandNotFound as e:
            raise RefFetcherError(f"git executable not found: {e}") from e
        except GitCommandError as e:
            reason = _failure_reason(e)
            logger.warning("git ls-remote failed", remote=url, status=e.status, error=reason)
            raise RemoteUnavailable(url, reason) from e

    async def _ls_remote(self, url: str, *options: str, pattern: str | None = None) -> str:
        return await asyncio.to_thread(self._ls_remote_sync, url, *options, pattern=pattern)

    def _version_sync(self) -> tuple[int, int]:
        try:
            info = self._git.version_info
        except (GitCommandNotFound, GitCommandError) as e:
            raise RefFetcherError(f"could not determine git version: {e}") from e
        return info[0], info[1]

    async def version(self) -> tuple[int, int]:
        """Installed git version, read once."""
        if self._version is None:
            self._version = await asyncio.to_thread(self._version_sync)
            logger.debug("git version detected", version=self._version)
        return self._version

    async def list_refs(
        self,
        repo: RemoteRepository,
        want_branches: bool,
        want_tags: bool,
    ) -> list[RawRef]:
        if not want_branches and not want_tags:
            return []
        args = []
        if want_branches:
            args.append("--heads")
        if want_tags:
            args.append("--tags")
        output = await self._ls_remote(repo.url, *args)
        return parse_ls_remote(output)

    async def resolve_tag_timestamp(
        self, repo: RemoteRepository, ref: RawRef
    ) -> datetime | None:
        return ref.timestamp

    async def resolve_default_ref(self, repo: RemoteRepository) -> DefaultRef | None:
        await self.version()
        args = ["--symref"] if self.supports_symbolic_ref_names else []
        output = await self._ls_remote(repo.url, *args, pattern="HEAD")
        return parse_default_ref(output)

    async def find_commits(self, repo: RemoteRepository, prefix: str) -> list[str]:
        return []
