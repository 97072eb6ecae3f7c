"""GitHub ref fetcher.

Lists branches and tags through the GitHub REST API. Annotated tags are
peeled via the git/tags endpoint, which also yields the tag object's
timestamp; lightweight tags take their commit's committer date. GitHub
reports the default branch by name, so symbolic ref names are supported.
"""

from datetime import datetime
from typing import Any
from urllib.parse import quote as url_quote

import httpx

from gitsource.logging_config import get_logger
from gitsource.remote import RemoteRepository
from gitsource.vcs.protocol import DefaultRef, RawRef, RefFetcherError, RefKind, RemoteUnavailable

logger = get_logger(__name__)

DEFAULT_GITHUB_API_URL = "https://api.github.com"

# Nested tags (a tag of a tag) are followed this many levels deep
MAX_PEEL_DEPTH = 4


def parse_repo_url(repo_url: str) -> tuple[str, str] | None:
    """Parse a GitHub repo URL into (owner, repo).

    Supports:
      - https://github.com/owner/repo
      - https://github.com/owner/repo.git
      - git@github.com:owner/repo.git
      - GitHub Enterprise https URLs

    Returns None if the URL can't be parsed.
    """
    url = repo_url.strip().rstrip("/")

    # SSH format: git@github.com:owner/repo.git
    if url.startswith("git@"):
        _, sep, path = url.partition(":")
        if not sep:
            return None
        parts = path.removesuffix(".git").split("/")
        if len(parts) == 2 and all(parts):
            return parts[0], parts[1]
        return None

    url = url.removesuffix(".git")
    if "://" not in url:
        return None

    # Strip scheme and host, then take the first two path segments
    path = url.split("://", 1)[1]
    _, sep, remaining = path.partition("/")
    if not sep:
        return None
    segments = remaining.split("/")
    if len(segments) >= 2 and segments[0] and segments[1]:
        return segments[0], segments[1]
    return None


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GitHubRefFetcher:
    """RefFetcher backed by the GitHub REST API."""

    def __init__(
        self,
        api_url: str = DEFAULT_GITHUB_API_URL,
        token: str = "",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = (api_url or DEFAULT_GITHUB_API_URL).rstrip("/")
        self._token = token
        self._timeout = timeout_seconds
        self._transport = transport

    @property
    def supports_symbolic_ref_names(self) -> bool:
        return True

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_url,
            headers=self._headers(),
            timeout=self._timeout,
            transport=self._transport,
        )

    def _repo_path(self, repo: RemoteRepository) -> str:
        parsed = parse_repo_url(repo.url)
        if parsed is None:
            raise RefFetcherError(f"Not a GitHub repository URL: {repo.url}")
        owner, name = parsed
        return f"/repos/{owner}/{name}"

    async def _get(
        self,
        client: httpx.AsyncClient,
        repo: RemoteRepository,
        path: str,
        missing: tuple[int, ...] = (404,),
    ) -> Any | None:
        """GET a JSON document. Returns None for the `missing` status codes."""
        try:
            resp = await client.get(path)
        except httpx.HTTPError as e:
            raise RemoteUnavailable(repo.url, str(e)) from e

        if resp.status_code in missing:
            return None
        if resp.is_error:
            logger.warning(
                "GitHub API request failed",
                remote=repo.url,
                path=path,
                status=resp.status_code,
            )
            raise RemoteUnavailable(repo.url, f"HTTP {resp.status_code}")
        return resp.json()

    async def _peel_tag(
        self, client: httpx.AsyncClient, repo: RemoteRepository, sha: str
    ) -> tuple[str | None, datetime | None]:
        """Follow an annotated tag to its commit. Returns (commit, tag timestamp)."""
        base = self._repo_path(repo)
        timestamp: datetime | None = None
        for _ in range(MAX_PEEL_DEPTH):
            data = await self._get(client, repo, f"{base}/git/tags/{sha}")
            if data is None:
                return None, timestamp
            if timestamp is None:
                timestamp = _parse_timestamp(data.get("tagger", {}).get("date"))
            target = data["object"]
            if target["type"] != "tag":
                return target["sha"], timestamp
            sha = target["sha"]
        return None, timestamp

    async def _list_namespace(
        self, client: httpx.AsyncClient, repo: RemoteRepository, kind: RefKind
    ) -> list[RawRef]:
        base = self._repo_path(repo)
        namespace = "heads" if kind is RefKind.BRANCH else "tags"
        # 409 is returned for an empty repository
        data = await self._get(
            client, repo, f"{base}/git/matching-refs/{namespace}/", missing=(404, 409)
        )
        refs: list[RawRef] = []
        for entry in data or []:
            name = entry["ref"].removeprefix(kind.prefix)
            target = entry["object"]
            if kind is RefKind.TAG and target["type"] == "tag":
                peeled, timestamp = await self._peel_tag(client, repo, target["sha"])
                refs.append(
                    RawRef(
                        name=name,
                        target=target["sha"],
                        kind=kind,
                        peeled=peeled,
                        timestamp=timestamp,
                    )
                )
            else:
                refs.append(RawRef(name=name, target=target["sha"], kind=kind))
        return refs

    async def list_refs(
        self,
        repo: RemoteRepository,
        want_branches: bool,
        want_tags: bool,
    ) -> list[RawRef]:
        refs: list[RawRef] = []
        async with self._client() as client:
            if want_branches:
                refs.extend(await self._list_namespace(client, repo, RefKind.BRANCH))
            if want_tags:
                refs.extend(await self._list_namespace(client, repo, RefKind.TAG))
        logger.debug("GitHub refs listed", remote=repo.url, count=len(refs))
        return refs

    async def resolve_tag_timestamp(
        self, repo: RemoteRepository, ref: RawRef
    ) -> datetime | None:
        if ref.timestamp is not None:
            return ref.timestamp
        base = self._repo_path(repo)
        async with self._client() as client:
            data = await self._get(client, repo, f"{base}/git/commits/{ref.commit}")
        if data is None:
            return None
        return _parse_timestamp(data.get("committer", {}).get("date"))

    async def resolve_default_ref(self, repo: RemoteRepository) -> DefaultRef | None:
        base = self._repo_path(repo)
        async with self._client() as client:
            data = await self._get(client, repo, base)
            if data is None or not data.get("default_branch"):
                return None
            branch = data["default_branch"]
            branch_data = await self._get(
                client, repo, f"{base}/branches/{url_quote(branch, safe='')}"
            )
        if branch_data is None:
            return None
        return DefaultRef(commit=branch_data["commit"]["sha"], name=branch)

    async def find_commits(self, repo: RemoteRepository, prefix: str) -> list[str]:
        base = self._repo_path(repo)
        async with self._client() as client:
            # 422 covers both unknown and ambiguous abbreviations
            data = await self._get(client, repo, f"{base}/commits/{prefix}", missing=(404, 422))
        if data is None:
            return []
        return [data["sha"]]
