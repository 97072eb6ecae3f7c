"""Source discovery endpoints.

Sources are described inline in each request (remote, refspecs, traits);
results are cached per source by the discovery service.

Endpoints:
    POST /api/v1/sources/heads       — discover heads (?refresh=true re-lists)
    POST /api/v1/sources/revisions   — discovered head names
    POST /api/v1/sources/revision    — resolve a branch/tag/commit specifier
    POST /api/v1/sources/actions     — primary head metadata
    POST /api/v1/sources/checkout    — checkout descriptor for a head
    POST /api/v1/notify-commit       — drop cached results for a remote URL
"""

from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from gitsource.config import settings
from gitsource.extensions import Extension, IgnoreNotifyCommit, LocalBranch
from gitsource.heads import BranchHead, CommitHead, Head, ResolvedRevision, TagHead
from gitsource.logging_config import get_logger
from gitsource.remote import ConfigurationInvalid, RemoteRepository
from gitsource.services.discovery_service import DiscoveryService, get_discovery_service
from gitsource.traits import TraitConfig, build_traits
from gitsource.vcs.protocol import RefFetcherError

router = APIRouter(tags=["sources"])
logger = get_logger(__name__)

EXTENSION_TYPES: dict[str, type[Extension]] = {
    "local-branch": LocalBranch,
    "ignore-notify-commit": IgnoreNotifyCommit,
}


# --- Request models ---


class SourceRequest(BaseModel):
    remote: str = Field(description="Remote repository URL")
    credentials_id: str = Field(default="")
    remote_name: str = Field(default_factory=lambda: settings.vcs.default_remote_name)
    refspecs: str = Field(default="", description="Whitespace separated refspec templates")
    traits: list[TraitConfig] = Field(default_factory=list)


class HeadModel(BaseModel):
    name: str
    kind: Literal["branch", "tag", "commit"] = "branch"
    timestamp: datetime | None = None

    def to_head(self) -> Head:
        if self.kind == "tag":
            return TagHead(self.name, timestamp=self.timestamp)
        if self.kind == "commit":
            return CommitHead(self.name)
        return BranchHead(self.name)


class ExtensionConfig(BaseModel):
    type: str
    options: dict[str, Any] = Field(default_factory=dict)


class RevisionRequest(SourceRequest):
    revision: str


class ActionsRequest(SourceRequest):
    head: HeadModel | None = None


class CheckoutRequest(SourceRequest):
    head: HeadModel
    commit: str | None = Field(default=None, description="Pin the checkout to this commit")
    extensions: list[ExtensionConfig] = Field(default_factory=list)


# --- Helpers ---


def _source(req: SourceRequest) -> tuple[RemoteRepository, tuple[Any, ...]]:
    """Build the remote identity and trait list, rejecting bad configuration."""
    try:
        repo = RemoteRepository(
            url=req.remote,
            credentials_id=req.credentials_id,
            remote_name=req.remote_name,
            refspecs=req.refspecs,
        )
        traits = build_traits(req.traits)
    except ConfigurationInvalid as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
    return repo, traits


def _extensions(configs: list[ExtensionConfig]) -> list[Extension]:
    extensions: list[Extension] = []
    for config in configs:
        ext_cls = EXTENSION_TYPES.get(config.type)
        if ext_cls is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown extension: {config.type}. Must be one of {sorted(EXTENSION_TYPES)}",
            )
        try:
            extensions.append(ext_cls(**config.options))
        except TypeError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
            ) from e
    return extensions


def _remote_error(e: RefFetcherError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


# --- Endpoints ---


@router.post("/sources/heads")
async def list_heads(
    req: SourceRequest,
    refresh: bool = Query(default=False),
    service: DiscoveryService = Depends(get_discovery_service),
) -> dict[str, Any]:
    """Discover the heads of a source, ordered by name."""
    repo, traits = _source(req)
    try:
        heads = await service.fetch_heads(repo, traits, refresh=refresh)
    except RefFetcherError as e:
        raise _remote_error(e) from e
    return {"data": [head.to_dict() for head in heads]}


@router.post("/sources/revisions")
async def list_revisions(
    req: SourceRequest,
    service: DiscoveryService = Depends(get_discovery_service),
) -> dict[str, Any]:
    """Names of the heads a source discovers."""
    repo, traits = _source(req)
    try:
        names = await service.fetch_revisions(repo, traits)
    except RefFetcherError as e:
        raise _remote_error(e) from e
    return {"data": names}


@router.post("/sources/revision")
async def resolve_revision(
    req: RevisionRequest,
    service: DiscoveryService = Depends(get_discovery_service),
) -> dict[str, Any]:
    """Resolve a branch, tag or commit specifier. 404 when not found."""
    repo, traits = _source(req)
    try:
        revision = await service.fetch_revision(repo, req.revision, traits)
    except RefFetcherError as e:
        raise _remote_error(e) from e
    if revision is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Revision not found: {req.revision!r}",
        )
    return {"data": revision.to_dict()}


@router.post("/sources/actions")
async def list_actions(
    req: ActionsRequest,
    service: DiscoveryService = Depends(get_discovery_service),
) -> dict[str, Any]:
    """Primary head metadata for the source, or for a single head."""
    repo, traits = _source(req)
    head = req.head.to_head() if req.head else None
    try:
        actions = await service.fetch_actions(repo, traits, head)
    except RefFetcherError as e:
        raise _remote_error(e) from e
    return {"data": [action.to_dict() for action in actions]}


@router.post("/sources/checkout")
async def checkout_descriptor(
    req: CheckoutRequest,
    service: DiscoveryService = Depends(get_discovery_service),
) -> dict[str, Any]:
    """Checkout descriptor for a head, pinned when a commit is given."""
    repo, traits = _source(req)
    head = req.head.to_head()
    revision = ResolvedRevision(head=head, commit=req.commit) if req.commit else None
    descriptor = service.build_checkout_descriptor(
        repo, head, revision, traits, _extensions(req.extensions)
    )
    return {"data": descriptor.to_dict()}


@router.post("/notify-commit")
async def notify_commit(
    url: str = Query(min_length=1),
    service: DiscoveryService = Depends(get_discovery_service),
) -> dict[str, Any]:
    """Drop cached discovery results for a remote so the next poll re-lists it."""
    dropped = service.notify_commit(url)
    return {"data": {"url": url, "invalidated": dropped}}
