"""Checkout descriptor assembly.

Builds the descriptor a build uses to check out a head: the remote and
its refspec, the branch to build and the merged extension list. A pinned
revision adds exactly one PinnedRevision; a bare head leaves the build
following the ref.
"""

from gitsource.extensions import (
    CheckoutDescriptor,
    Extension,
    PinnedRevision,
    RemoteConfig,
    SourceDefaults,
    merge_extensions,
)
from gitsource.heads import Head, ResolvedRevision
from gitsource.remote import RemoteRepository
from gitsource.traits import TraitChain
from gitsource.vcs.protocol import RefKind


def assemble(
    repo: RemoteRepository,
    head: Head,
    revision: ResolvedRevision | None,
    chain: TraitChain,
    user_extensions: list[Extension] | tuple[Extension, ...] = (),
) -> CheckoutDescriptor:
    """Assemble the checkout descriptor for a head, optionally pinned.

    Raises:
        ValueError: If the revision belongs to a different head.
    """
    if revision is not None and revision.head != head:
        raise ValueError(f"Revision {revision.commit} does not belong to head {head.name}")

    include_tags = chain.wants(RefKind.TAG)
    remote = RemoteConfig(
        name=repo.remote_name,
        url=repo.url,
        refspec=repo.refspec_string(include_tags=include_tags),
        credentials_id=repo.credentials_id,
    )

    extensions = merge_extensions(
        [SourceDefaults(include_tags=include_tags)],
        [ext for ext in user_extensions if not isinstance(ext, PinnedRevision)],
        chain.extensions(),
    )
    if revision is not None:
        extensions.append(PinnedRevision(commit=revision.commit))

    return CheckoutDescriptor(
        remotes=(remote,),
        branches=(head.ref_name,),
        extensions=tuple(extensions),
    )
