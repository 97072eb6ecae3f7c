"""Head resolution.

Turns the raw refs listed by a RefFetcher into the ordered, de-duplicated
set of heads a trait chain selects. Ref kinds no trait asks for are never
listed, so a source without discovery traits performs no remote call.
"""

from datetime import datetime

from gitsource.heads import DiscoveryResult, Head, head_for, sort_heads
from gitsource.logging_config import get_logger
from gitsource.remote import RemoteRepository
from gitsource.traits import TraitChain
from gitsource.vcs.protocol import RawRef, RefFetcher, RefKind

logger = get_logger(__name__)


def _candidate(repo: RemoteRepository, chain: TraitChain, ref: RawRef) -> bool:
    """Whether a raw ref survives kind selection, refspecs and trait filters."""
    if not chain.wants(ref.kind):
        return False
    if ref.kind is RefKind.BRANCH and not repo.selects_branch(ref.name):
        return False
    return not chain.rejects(ref)


async def _tag_timestamp(
    repo: RemoteRepository, fetcher: RefFetcher, ref: RawRef
) -> datetime | None:
    if ref.timestamp is not None:
        return ref.timestamp
    return await fetcher.resolve_tag_timestamp(repo, ref)


async def resolve_heads(
    repo: RemoteRepository,
    chain: TraitChain,
    fetcher: RefFetcher,
) -> DiscoveryResult:
    """List the remote and resolve the heads the trait chain selects.

    Raises:
        RemoteUnavailable: If the remote cannot be listed. Nothing is
            returned for a partial listing.
    """
    kinds = chain.wanted_kinds()
    if not kinds:
        logger.debug("No discovery traits configured", remote=repo.url)
        return DiscoveryResult()

    refs = await fetcher.list_refs(
        repo,
        want_branches=RefKind.BRANCH in kinds,
        want_tags=RefKind.TAG in kinds,
    )

    enrich_tags = chain.wants_tag_timestamps()
    seen: set[tuple[str, RefKind]] = set()
    heads: list[Head] = []
    commits: dict[Head, str] = {}

    for ref in refs:
        if not _candidate(repo, chain, ref):
            continue
        identity = (ref.name, ref.kind)
        if identity in seen:
            continue
        seen.add(identity)

        timestamp = None
        if ref.kind is RefKind.TAG and enrich_tags:
            timestamp = await _tag_timestamp(repo, fetcher, ref)

        head = head_for(ref, timestamp=timestamp)
        heads.append(head)
        commits[head] = ref.commit

    result = DiscoveryResult(heads=sort_heads(heads), refs=tuple(refs), commits=commits)
    logger.info(
        "Heads discovered",
        remote=repo.url,
        refs=len(refs),
        heads=len(result.heads),
    )
    return result
