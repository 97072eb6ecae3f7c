"""Tests for checkout descriptor assembly."""

import pytest

from gitsource.extensions import (
    CheckoutDescriptor,
    IgnoreNotifyCommit,
    LocalBranch,
    PinnedRevision,
    RemoteConfig,
    SourceDefaults,
    merge_extensions,
)
from gitsource.heads import BranchHead, ResolvedRevision, TagHead
from gitsource.remote import RemoteRepository
from gitsource.services.checkout_service import assemble
from gitsource.traits import (
    BranchDiscoveryTrait,
    IgnoreOnPushNotificationTrait,
    LocalBranchTrait,
    TagDiscoveryTrait,
    TraitChain,
)

COMMIT = "beaded4deed2bed4feed2deaf78933d0f97a5a34"


class TestMergeExtensions:
    def test_drops_equal_extensions(self):
        merged = merge_extensions(
            [SourceDefaults(), LocalBranch("**")],
            [LocalBranch("**"), IgnoreNotifyCommit()],
            [IgnoreNotifyCommit()],
        )
        assert merged == [SourceDefaults(), LocalBranch("**"), IgnoreNotifyCommit()]

    def test_keeps_distinct_properties(self):
        merged = merge_extensions([LocalBranch("**")], [LocalBranch("main")])
        assert merged == [LocalBranch("**"), LocalBranch("main")]


class TestAssemble:
    def test_branch_checkout(self, repo):
        descriptor = assemble(repo, BranchHead("master"), None, TraitChain([BranchDiscoveryTrait()]))

        assert descriptor == CheckoutDescriptor(
            remotes=(
                RemoteConfig(
                    name="origin",
                    url=repo.url,
                    refspec="+refs/heads/*:refs/remotes/origin/*",
                ),
            ),
            branches=("refs/heads/master",),
            extensions=(SourceDefaults(include_tags=False),),
        )

    def test_tag_discovery_fetches_tags(self, repo):
        chain = TraitChain([BranchDiscoveryTrait(), TagDiscoveryTrait()])
        descriptor = assemble(repo, TagHead("v1"), None, chain)

        assert descriptor.branches == ("refs/tags/v1",)
        assert descriptor.remotes[0].refspec.endswith("+refs/tags/*:refs/tags/*")
        assert descriptor.extensions[0] == SourceDefaults(include_tags=True)

    def test_pinned_revision_added_once(self, repo):
        head = BranchHead("master")
        revision = ResolvedRevision(head=head, commit=COMMIT)
        descriptor = assemble(
            repo,
            head,
            revision,
            TraitChain(),
            [PinnedRevision("0" * 40), PinnedRevision(COMMIT)],
        )

        assert descriptor.extensions_of(PinnedRevision) == [PinnedRevision(COMMIT)]

    def test_user_and_trait_extensions_deduplicated(self, repo):
        chain = TraitChain([IgnoreOnPushNotificationTrait(), LocalBranchTrait("**")])
        descriptor = assemble(
            repo,
            BranchHead("master"),
            None,
            chain,
            [LocalBranch("**"), IgnoreNotifyCommit()],
        )

        assert descriptor.extensions == (
            SourceDefaults(include_tags=False),
            LocalBranch("**"),
            IgnoreNotifyCommit(),
        )

    def test_credentials_carried(self):
        repo = RemoteRepository(
            url="git@git.example.com:acme/widgets.git", credentials_id="deploy-key"
        )
        descriptor = assemble(repo, BranchHead("master"), None, TraitChain())
        assert descriptor.remotes[0].credentials_id == "deploy-key"

    def test_revision_of_another_head(self, repo):
        revision = ResolvedRevision(head=BranchHead("dev"), commit=COMMIT)
        with pytest.raises(ValueError, match="does not belong"):
            assemble(repo, BranchHead("master"), revision, TraitChain())

    def test_to_dict(self, repo):
        head = BranchHead("master")
        descriptor = assemble(
            repo, head, ResolvedRevision(head=head, commit=COMMIT), TraitChain()
        )
        assert descriptor.to_dict()["extensions"] == [
            {"type": "SourceDefaults", "include_tags": False},
            {"type": "PinnedRevision", "commit": COMMIT},
        ]
