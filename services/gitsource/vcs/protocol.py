"""
Ref fetcher protocol and types for gitsource.

Defines the RefFetcher Protocol that every remote listing backend must
satisfy, along with the raw ref data it returns and its exceptions. The
discovery core treats implementations as a black box.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gitsource.remote import RemoteRepository

# --- Data Types ---


class RefKind(StrEnum):
    """Namespace a remote ref lives in."""

    BRANCH = "branch"
    TAG = "tag"

    @property
    def prefix(self) -> str:
        return "refs/heads/" if self is RefKind.BRANCH else "refs/tags/"


@dataclass(frozen=True)
class RawRef:
    """A single ref as reported by the remote.

    `peeled` is the commit an annotated tag points at; `timestamp` is the
    tag object's creation time when the backend reports it.
    """

    name: str
    target: str
    kind: RefKind
    peeled: str | None = None
    timestamp: datetime | None = None

    @property
    def commit(self) -> str:
        """The commit this ref ultimately resolves to."""
        return self.peeled or self.target

    @property
    def full_name(self) -> str:
        return self.kind.prefix + self.name

    @property
    def annotated(self) -> bool:
        return self.peeled is not None and self.peeled != self.target


@dataclass(frozen=True)
class DefaultRef:
    """The remote's HEAD pointer.

    `name` is the branch HEAD symbolically points at, or None when the
    backend cannot report symbolic ref names.
    """

    commit: str
    name: str | None = None


# --- Exceptions ---


class RefFetcherError(Exception):
    """Base exception for ref fetcher operations."""


class RemoteUnavailable(RefFetcherError):
    """Raised when the remote cannot be reached, refuses access or times out."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        message = f"Remote unavailable: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


# --- Protocol ---


@runtime_checkable
class RefFetcher(Protocol):
    """Protocol defining the remote listing interface.

    All I/O methods are async. Implementations must satisfy this interface
    structurally (duck typing), no inheritance required. Every method may
    raise RemoteUnavailable.
    """

    @property
    def supports_symbolic_ref_names(self) -> bool:
        """Whether resolve_default_ref can report the name HEAD points at."""
        ...

    async def list_refs(
        self,
        repo: RemoteRepository,
        want_branches: bool,
        want_tags: bool,
    ) -> list[RawRef]:
        """List the branches and/or tags of a remote.

        Args:
            repo: Remote to list.
            want_branches: Include refs/heads/*.
            want_tags: Include refs/tags/*.

        Returns:
            Raw refs in no particular order.
        """
        ...

    async def resolve_tag_timestamp(
        self, repo: RemoteRepository, ref: RawRef
    ) -> datetime | None:
        """Resolve the timestamp of a tag.

        Annotated tags use the tag object's time, lightweight tags the
        time of the commit they point at. Returns None when unknown.
        """
        ...

    async def resolve_default_ref(self, repo: RemoteRepository) -> DefaultRef | None:
        """Resolve the remote's HEAD. Returns None if the remote has no HEAD."""
        ...

    async def find_commits(self, repo: RemoteRepository, prefix: str) -> list[str]:
        """Find full ids of reachable commits starting with a hex prefix.

        Returns an empty list when the backend cannot look up commits.
        """
        ...
