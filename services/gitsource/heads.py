"""
Discovered heads and revisions.

Heads are identified by name within their namespace: a branch and a tag
sharing a name are two distinct heads. The canonical discovery result is
ordered by name so repeated discoveries against an unchanged remote
compare (and serialize) identically.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from gitsource.vcs.protocol import RawRef, RefKind

# Tie-break for a branch and a tag with the same name
_KIND_RANK = {"branch": 0, "tag": 1, "commit": 2}


@dataclass(frozen=True)
class Head:
    """A named, discoverable pointer on the remote."""

    name: str

    kind: ClassVar[str] = "head"

    @property
    def ref_name(self) -> str:
        return self.name

    def sort_key(self) -> tuple[str, int]:
        return (self.name, _KIND_RANK.get(self.kind, len(_KIND_RANK)))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "kind": self.kind}

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class BranchHead(Head):
    kind: ClassVar[str] = "branch"

    @property
    def ref_name(self) -> str:
        return RefKind.BRANCH.prefix + self.name


@dataclass(frozen=True)
class TagHead(Head):
    """A tag head. The timestamp is metadata, not identity."""

    timestamp: datetime | None = field(default=None, compare=False)

    kind: ClassVar[str] = "tag"

    @property
    def ref_name(self) -> str:
        return RefKind.TAG.prefix + self.name

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        return data


@dataclass(frozen=True)
class CommitHead(Head):
    """A head standing for a bare commit, named by its full id."""

    kind: ClassVar[str] = "commit"


def head_for(ref: RawRef, timestamp: datetime | None = None) -> Head:
    """Build the head variant matching a raw ref."""
    if ref.kind is RefKind.TAG:
        return TagHead(ref.name, timestamp=timestamp)
    return BranchHead(ref.name)


def sort_heads(heads: list[Head]) -> tuple[Head, ...]:
    return tuple(sorted(heads, key=Head.sort_key))


@dataclass(frozen=True)
class ResolvedRevision:
    """A concrete commit bound to a head.

    `abbreviation` records the abbreviated hash the revision was resolved
    from, if any.
    """

    head: Head
    commit: str
    abbreviation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "head": self.head.to_dict(),
            "commit": self.commit,
            "abbreviation": self.abbreviation,
        }


@dataclass(frozen=True, eq=False)
class DiscoveryResult:
    """Outcome of one discovery pass: ordered heads plus the ref snapshot."""

    heads: tuple[Head, ...] = ()
    refs: tuple[RawRef, ...] = ()
    commits: dict[Head, str] = field(default_factory=dict)

    def revision_for(self, head: Head) -> str | None:
        """Commit a discovered head currently resolves to."""
        return self.commits.get(head)

    def names(self) -> list[str]:
        return [head.name for head in self.heads]

    def find(self, name: str) -> list[Head]:
        """Discovered heads with the given name, branches first."""
        return [head for head in self.heads if head.name == name]

    def branch_heads_at(self, commit: str) -> list[BranchHead]:
        return [
            head
            for head in self.heads
            if isinstance(head, BranchHead) and self.commits.get(head) == commit
        ]

    def known_commits(self) -> set[str]:
        """Every commit id the ref snapshot points at, annotated tags peeled."""
        return {ref.commit for ref in self.refs}

    def __len__(self) -> int:
        return len(self.heads)
