"""Primary head detection.

The primary head is the discovered branch the remote's HEAD points at.
When several branches share HEAD's commit, only a backend that reports
HEAD's symbolic name can tell them apart. Without that capability the
ambiguity is left unresolved and no primary metadata is produced.
"""

from dataclasses import dataclass

from gitsource.heads import BranchHead, DiscoveryResult, Head
from gitsource.logging_config import get_logger
from gitsource.remote import RemoteRepository
from gitsource.vcs.protocol import DefaultRef, RefFetcher

logger = get_logger(__name__)

# --- Actions ---


@dataclass(frozen=True)
class RemoteHeadRefAction:
    """Names the branch the remote's HEAD points at."""

    remote: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"type": "remote-head-ref", "remote": self.remote, "name": self.name}


@dataclass(frozen=True)
class PrimaryInstanceAction:
    """Marks a head as the primary instance of its source."""

    head: Head

    def to_dict(self) -> dict[str, object]:
        return {"type": "primary-instance", "head": self.head.to_dict()}


Action = RemoteHeadRefAction | PrimaryInstanceAction


@dataclass(frozen=True)
class PrimaryHead:
    """The primary head and the remote's default ref name."""

    head: BranchHead
    default_ref_name: str


def symbolic_name(default_ref: DefaultRef, fetcher: RefFetcher) -> str | None:
    """HEAD's branch name, when the backend can report it."""
    return default_ref.name if fetcher.supports_symbolic_ref_names else None


def is_consistent(result: DiscoveryResult, default_ref: DefaultRef, fetcher: RefFetcher) -> bool:
    """Whether a snapshot can be matched against HEAD.

    Matching by symbolic name ignores commits. Matching by commit needs a
    snapshot in which some branch is at HEAD's commit; a cached snapshot
    taken before a push to the default branch has none.
    """
    if symbolic_name(default_ref, fetcher) is not None:
        return True
    return bool(result.branch_heads_at(default_ref.commit))


def match_primary(
    repo: RemoteRepository,
    result: DiscoveryResult,
    default_ref: DefaultRef,
    fetcher: RefFetcher,
) -> PrimaryHead | None:
    """Find the discovered branch HEAD points at.

    Returns None when HEAD matches no discovered branch or when the match
    is ambiguous and the backend cannot name HEAD's target.
    """
    name = symbolic_name(default_ref, fetcher)
    if name is not None:
        for head in result.find(name):
            if isinstance(head, BranchHead):
                return PrimaryHead(head=head, default_ref_name=name)
        logger.debug("Default branch not discovered", remote=repo.url, name=name)
        return None

    candidates = result.branch_heads_at(default_ref.commit)
    if len(candidates) == 1:
        head = candidates[0]
        return PrimaryHead(head=head, default_ref_name=head.name)

    if candidates:
        logger.info(
            "Primary head ambiguous",
            remote=repo.url,
            candidates=[head.name for head in candidates],
        )
    return None


async def detect_primary(
    repo: RemoteRepository,
    result: DiscoveryResult,
    fetcher: RefFetcher,
) -> PrimaryHead | None:
    """Resolve the remote's HEAD and match it against a discovery result."""
    default_ref = await fetcher.resolve_default_ref(repo)
    if default_ref is None:
        logger.debug("Remote has no HEAD", remote=repo.url)
        return None
    return match_primary(repo, result, default_ref, fetcher)



def primary_actions(
    repo: RemoteRepository,
    primary: PrimaryHead | None,
    head: Head | None = None,
) -> list[Action]:
    """Metadata actions for the source (head is None) or for a single head."""
    if primary is None:
        return []
    if head is None:
        return [RemoteHeadRefAction(remote=repo.remote_name, name=primary.default_ref_name)]
    if head == primary.head:
        return [PrimaryInstanceAction(head=head)]
    return []
