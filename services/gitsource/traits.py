"""
Discovery traits.

A trait is a small, independently pluggable policy. Each trait opts into
any of three hook points by implementing the matching capability:

- DiscoversRefs: declares which ref namespaces it wants listed.
- FiltersHeads: vetoes candidate refs.
- DecoratesCheckout: contributes checkout extensions.

A TraitChain composes an ordered list of traits. Ref kinds are only listed
when some trait asks for them; with no discovery trait configured nothing
is discovered at all.

Traits are frozen dataclasses so a trait list is hashable and can take
part in the discovery cache key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from gitsource.extensions import Extension, IgnoreNotifyCommit, LocalBranch
from gitsource.logging_config import get_logger
from gitsource.remote import ConfigurationInvalid
from gitsource.vcs.protocol import RawRef, RefKind

logger = get_logger(__name__)

# --- Capabilities ---


@runtime_checkable
class DiscoversRefs(Protocol):
    def wanted_kinds(self) -> frozenset[RefKind]: ...


@runtime_checkable
class FiltersHeads(Protocol):
    def rejects(self, ref: RawRef) -> bool: ...


@runtime_checkable
class DecoratesCheckout(Protocol):
    def extensions(self) -> list[Extension]: ...


# --- Trait variants ---


@dataclass(frozen=True)
class BranchDiscoveryTrait:
    """Discover branches."""

    def wanted_kinds(self) -> frozenset[RefKind]:
        return frozenset({RefKind.BRANCH})


@dataclass(frozen=True)
class TagDiscoveryTrait:
    """Discover tags, optionally resolving their timestamps."""

    timestamps: bool = True

    def wanted_kinds(self) -> frozenset[RefKind]:
        return frozenset({RefKind.TAG})


@dataclass(frozen=True)
class WildcardFilterTrait:
    """Space separated include/exclude glob patterns on head names."""

    includes: str = "*"
    excludes: str = ""

    def rejects(self, ref: RawRef) -> bool:
        included = any(fnmatchcase(ref.name, pattern) for pattern in self.includes.split())
        if not included:
            return True
        return any(fnmatchcase(ref.name, pattern) for pattern in self.excludes.split())


@dataclass(frozen=True)
class RegexFilterTrait:
    """Only keep heads whose whole name matches a regular expression."""

    pattern: str = ".*"

    def __post_init__(self) -> None:
        try:
            re.compile(self.pattern)
        except re.error as e:
            raise ConfigurationInvalid(f"Invalid head name pattern {self.pattern!r}: {e}") from e

    def rejects(self, ref: RawRef) -> bool:
        return re.fullmatch(self.pattern, ref.name) is None


@dataclass(frozen=True)
class IgnoreOnPushNotificationTrait:
    """Builds from this source ignore commit notifications."""

    def extensions(self) -> list[Extension]:
        return [IgnoreNotifyCommit()]


@dataclass(frozen=True)
class LocalBranchTrait:
    """Check out builds to a local branch."""

    local_branch: str = "**"

    def __post_init__(self) -> None:
        if not self.local_branch.strip():
            raise ConfigurationInvalid("Local branch name must not be empty")

    def extensions(self) -> list[Extension]:
        return [LocalBranch(self.local_branch)]


# --- Composition ---


class TraitChain:
    """Ordered composition of traits.

    Each capability is answered by iterating the traits that implement it;
    a trait that does not implement a hook point is simply skipped there.
    """

    def __init__(self, traits: list[Any] | tuple[Any, ...] = ()) -> None:
        self._traits = tuple(traits)

    @property
    def traits(self) -> tuple[Any, ...]:
        return self._traits

    def wanted_kinds(self) -> frozenset[RefKind]:
        kinds: frozenset[RefKind] = frozenset()
        for trait in self._traits:
            if isinstance(trait, DiscoversRefs):
                kinds |= trait.wanted_kinds()
        return kinds

    def wants(self, kind: RefKind) -> bool:
        return kind in self.wanted_kinds()

    def wants_tag_timestamps(self) -> bool:
        return any(
            isinstance(trait, TagDiscoveryTrait) and trait.timestamps for trait in self._traits
        )

    def rejects(self, ref: RawRef) -> bool:
        """Whether any filtering trait, in order, rejects the ref."""
        for trait in self._traits:
            if isinstance(trait, FiltersHeads) and trait.rejects(ref):
                return True
        return False

    def extensions(self) -> list[Extension]:
        contributed: list[Extension] = []
        for trait in self._traits:
            if isinstance(trait, DecoratesCheckout):
                contributed.extend(trait.extensions())
        return contributed

    def __len__(self) -> int:
        return len(self._traits)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self._traits)


# --- Registry ---


TRAIT_REGISTRY: dict[str, type] = {
    "branch-discovery": BranchDiscoveryTrait,
    "tag-discovery": TagDiscoveryTrait,
    "wildcard-filter": WildcardFilterTrait,
    "regex-filter": RegexFilterTrait,
    "ignore-on-push-notification": IgnoreOnPushNotificationTrait,
    "local-branch": LocalBranchTrait,
}


class TraitConfig(BaseModel):
    """Declarative trait configuration, e.g. ``{"kind": "tag-discovery"}``."""

    kind: str = Field(description="Registered trait name")
    options: dict[str, Any] = Field(default_factory=dict)


def build_trait(config: TraitConfig) -> Any:
    """Instantiate a registered trait from its configuration."""
    trait_cls = TRAIT_REGISTRY.get(config.kind)
    if trait_cls is None:
        raise ConfigurationInvalid(
            f"Unknown trait: {config.kind}. Must be one of {sorted(TRAIT_REGISTRY)}"
        )
    try:
        return trait_cls(**config.options)
    except TypeError as e:
        raise ConfigurationInvalid(f"Invalid options for trait {config.kind}: {e}") from e


def build_traits(configs: list[TraitConfig]) -> tuple[Any, ...]:
    """Instantiate an ordered trait list, failing on the first bad entry."""
    traits = []
    for config in configs:
        try:
            traits.append(build_trait(config))
        except ConfigurationInvalid as e:
            logger.warning("Invalid trait configuration", trait=config.kind, error=str(e))
            raise
    return tuple(traits)
