"""
Checkout extensions and the checkout descriptor.

Extensions are frozen value objects so two extensions of the same type
with the same properties compare equal; merging a list of them is then a
plain order-preserving de-duplication.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class Extension:
    """Base type for checkout extensions."""

    @property
    def type_name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, **asdict(self)}


@dataclass(frozen=True)
class SourceDefaults(Extension):
    """Baseline checkout behaviour every discovered source carries."""

    include_tags: bool = False


@dataclass(frozen=True)
class PinnedRevision(Extension):
    """Forces the build to check out exactly this commit."""

    commit: str


@dataclass(frozen=True)
class IgnoreNotifyCommit(Extension):
    """Builds are not triggered by commit notifications."""


@dataclass(frozen=True)
class LocalBranch(Extension):
    """Check out to a local branch instead of a detached HEAD."""

    local_branch: str = "**"


def merge_extensions(*groups: list[Extension] | tuple[Extension, ...]) -> list[Extension]:
    """Concatenate extension groups, dropping repeats of equal extensions."""
    merged: list[Extension] = []
    for group in groups:
        for extension in group:
            if extension not in merged:
                merged.append(extension)
    return merged


@dataclass(frozen=True)
class RemoteConfig:
    """One remote of a checkout descriptor."""

    name: str
    url: str
    refspec: str
    credentials_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CheckoutDescriptor:
    """Everything a build needs to check out a head or a pinned revision."""

    remotes: tuple[RemoteConfig, ...]
    branches: tuple[str, ...]
    extensions: tuple[Extension, ...] = field(default=())

    def extensions_of(self, kind: type[Extension]) -> list[Extension]:
        return [ext for ext in self.extensions if isinstance(ext, kind)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "remotes": [remote.to_dict() for remote in self.remotes],
            "branches": list(self.branches),
            "extensions": [ext.to_dict() for ext in self.extensions],
        }
