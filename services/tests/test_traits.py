"""Tests for discovery traits, trait composition and the trait registry."""

import pytest

from gitsource.extensions import IgnoreNotifyCommit, LocalBranch
from gitsource.remote import ConfigurationInvalid
from gitsource.traits import (
    TRAIT_REGISTRY,
    BranchDiscoveryTrait,
    DecoratesCheckout,
    DiscoversRefs,
    FiltersHeads,
    IgnoreOnPushNotificationTrait,
    LocalBranchTrait,
    RegexFilterTrait,
    TagDiscoveryTrait,
    TraitChain,
    TraitConfig,
    WildcardFilterTrait,
    build_trait,
    build_traits,
)
from gitsource.vcs.protocol import RawRef, RefKind


def branch(name: str) -> RawRef:
    return RawRef(name=name, target="a" * 40, kind=RefKind.BRANCH)


def tag(name: str) -> RawRef:
    return RawRef(name=name, target="b" * 40, kind=RefKind.TAG)


class TestCapabilities:
    def test_discovery_traits(self):
        assert isinstance(BranchDiscoveryTrait(), DiscoversRefs)
        assert isinstance(TagDiscoveryTrait(), DiscoversRefs)
        assert not isinstance(BranchDiscoveryTrait(), FiltersHeads)

    def test_filter_traits(self):
        assert isinstance(WildcardFilterTrait(), FiltersHeads)
        assert isinstance(RegexFilterTrait(), FiltersHeads)
        assert not isinstance(WildcardFilterTrait(), DiscoversRefs)

    def test_decorating_traits(self):
        assert isinstance(IgnoreOnPushNotificationTrait(), DecoratesCheckout)
        assert isinstance(LocalBranchTrait(), DecoratesCheckout)

    def test_traits_are_hashable(self):
        traits = (BranchDiscoveryTrait(), TagDiscoveryTrait(), WildcardFilterTrait("*", "tmp*"))
        assert hash(traits) == hash(
            (BranchDiscoveryTrait(), TagDiscoveryTrait(), WildcardFilterTrait("*", "tmp*"))
        )


class TestWildcardFilter:
    def test_include_all_by_default(self):
        assert not WildcardFilterTrait().rejects(branch("anything/goes"))

    def test_excludes(self):
        trait = WildcardFilterTrait(includes="*", excludes="feature/* tmp")
        assert trait.rejects(branch("feature/login"))
        assert trait.rejects(branch("tmp"))
        assert not trait.rejects(branch("master"))

    def test_includes(self):
        trait = WildcardFilterTrait(includes="master release-*")
        assert not trait.rejects(branch("release-1.0"))
        assert trait.rejects(branch("dev"))

    def test_applies_to_tags(self):
        assert WildcardFilterTrait(includes="v*").rejects(tag("nightly"))


class TestRegexFilter:
    def test_full_match_required(self):
        trait = RegexFilterTrait(pattern="v\\d+")
        assert not trait.rejects(tag("v12"))
        assert trait.rejects(tag("v12-rc"))

    def test_invalid_pattern(self):
        with pytest.raises(ConfigurationInvalid, match="Invalid head name pattern"):
            RegexFilterTrait(pattern="(unclosed")


class TestTraitChain:
    def test_empty_chain_wants_nothing(self):
        chain = TraitChain()
        assert chain.wanted_kinds() == frozenset()
        assert not chain.wants(RefKind.BRANCH)
        assert chain.extensions() == []

    def test_kinds_union(self):
        chain = TraitChain([BranchDiscoveryTrait(), TagDiscoveryTrait()])
        assert chain.wanted_kinds() == {RefKind.BRANCH, RefKind.TAG}

    def test_tag_timestamps(self):
        assert TraitChain([TagDiscoveryTrait()]).wants_tag_timestamps()
        assert not TraitChain([TagDiscoveryTrait(timestamps=False)]).wants_tag_timestamps()
        assert not TraitChain([BranchDiscoveryTrait()]).wants_tag_timestamps()

    def test_any_filter_rejects(self):
        chain = TraitChain(
            [
                BranchDiscoveryTrait(),
                WildcardFilterTrait(excludes="wip"),
                RegexFilterTrait(pattern="[a-z]+"),
            ]
        )
        assert chain.rejects(branch("wip"))
        assert chain.rejects(branch("Release"))
        assert not chain.rejects(branch("master"))

    def test_extensions_in_trait_order(self):
        chain = TraitChain(
            [LocalBranchTrait("main"), BranchDiscoveryTrait(), IgnoreOnPushNotificationTrait()]
        )
        assert chain.extensions() == [LocalBranch("main"), IgnoreNotifyCommit()]

    def test_iterates_traits(self):
        traits = [BranchDiscoveryTrait(), TagDiscoveryTrait()]
        chain = TraitChain(traits)
        assert list(chain) == traits
        assert len(chain) == 2


class TestRegistry:
    def test_all_traits_registered(self):
        assert set(TRAIT_REGISTRY) == {
            "branch-discovery",
            "tag-discovery",
            "wildcard-filter",
            "regex-filter",
            "ignore-on-push-notification",
            "local-branch",
        }

    def test_build_with_options(self):
        trait = build_trait(
            TraitConfig(kind="wildcard-filter", options={"includes": "*", "excludes": "tmp"})
        )
        assert trait == WildcardFilterTrait(includes="*", excludes="tmp")

    def test_build_preserves_order(self):
        traits = build_traits(
            [TraitConfig(kind="tag-discovery"), TraitConfig(kind="branch-discovery")]
        )
        assert traits == (TagDiscoveryTrait(), BranchDiscoveryTrait())

    def test_unknown_trait(self):
        with pytest.raises(ConfigurationInvalid, match="Unknown trait: nope"):
            build_trait(TraitConfig(kind="nope"))

    def test_unexpected_option(self):
        with pytest.raises(ConfigurationInvalid, match="Invalid options for trait"):
            build_trait(TraitConfig(kind="branch-discovery", options={"depth": 3}))

    def test_invalid_option_value(self):
        with pytest.raises(ConfigurationInvalid):
            build_traits(
                [
                    TraitConfig(kind="branch-discovery"),
                    TraitConfig(kind="local-branch", options={"local_branch": "  "}),
                ]
            )
