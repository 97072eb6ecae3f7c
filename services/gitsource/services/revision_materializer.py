"""Revision materialization.

Resolves a revision specifier against a discovery result, in order:

1. the name of a discovered head (branches win over tags of the same name),
2. a full commit id,
3. an unambiguous abbreviated commit id.

Anything else, including blank input and ambiguous prefixes, is "not
found" and returned as None rather than raised.
"""

import re

from gitsource.heads import CommitHead, DiscoveryResult, ResolvedRevision
from gitsource.logging_config import get_logger
from gitsource.remote import RemoteRepository
from gitsource.vcs.protocol import RefFetcher

logger = get_logger(__name__)

MIN_ABBREV_LENGTH = 4
FULL_HASH_LENGTHS = (40, 64)

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def _looks_like_hash(specifier: str) -> bool:
    return MIN_ABBREV_LENGTH <= len(specifier) <= max(FULL_HASH_LENGTHS) and bool(
        _HEX_RE.match(specifier)
    )


def resolve_head_name(specifier: str, result: DiscoveryResult) -> ResolvedRevision | None:
    """Resolve a specifier naming a discovered head."""
    for head in result.find(specifier):
        commit = result.revision_for(head)
        if commit is not None:
            return ResolvedRevision(head=head, commit=commit)
    return None


async def materialize(
    repo: RemoteRepository,
    specifier: str,
    result: DiscoveryResult,
    fetcher: RefFetcher,
) -> ResolvedRevision | None:
    """Resolve a branch, tag or commit specifier to a concrete revision."""
    if not specifier or not specifier.strip():
        return None

    resolved = resolve_head_name(specifier, result)
    if resolved is not None:
        return resolved

    if not _looks_like_hash(specifier):
        logger.debug("Revision not found", remote=repo.url, revision=specifier)
        return None

    prefix = specifier.lower()
    known = result.known_commits()
    known.update(commit.lower() for commit in await fetcher.find_commits(repo, prefix))

    if len(prefix) in FULL_HASH_LENGTHS and prefix in known:
        return ResolvedRevision(head=CommitHead(prefix), commit=prefix)

    matches = sorted(commit for commit in known if commit.startswith(prefix))
    if len(matches) == 1:
        commit = matches[0]
        abbreviation = specifier if len(prefix) < len(commit) else None
        return ResolvedRevision(head=CommitHead(commit), commit=commit, abbreviation=abbreviation)

    if matches:
        logger.info(
            "Abbreviated revision is ambiguous",
            remote=repo.url,
            revision=specifier,
            matches=len(matches),
        )
    else:
        logger.debug("Revision not found", remote=repo.url, revision=specifier)
    return None
