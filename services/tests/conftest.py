"""
Top-level test configuration for gitsource.
"""

import hashlib
import os
from collections import Counter
from datetime import UTC, datetime, timedelta

import pytest

# Ensure test-friendly defaults
os.environ.setdefault("GITSOURCE_JSON_LOGS", "false")
os.environ.setdefault("GITSOURCE_LOG_LEVEL", "DEBUG")
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")

from gitsource.remote import RemoteRepository  # noqa: E402
from gitsource.services.discovery_service import DiscoveryService  # noqa: E402
from gitsource.vcs.protocol import DefaultRef, RawRef, RefKind, RemoteUnavailable  # noqa: E402

EPOCH = datetime(2024, 1, 1, tzinfo=UTC)


class FakeRemote:
    """In-memory remote satisfying the RefFetcher protocol.

    Branches, tags and HEAD can be changed between calls; every protocol
    call is counted in `calls`.
    """

    def __init__(self, supports_symbolic_ref_names: bool = True) -> None:
        self.branches: dict[str, str] = {}
        # name -> (tag object id or None for lightweight, commit, tag timestamp)
        self.tags: dict[str, tuple[str | None, str, datetime | None]] = {}
        self.commit_times: dict[str, datetime] = {}
        self.head: str | None = None
        self.calls: Counter[str] = Counter()
        self.unavailable = False
        self._symbolic = supports_symbolic_ref_names
        self._serial = 0

    # --- Mutation helpers ---

    def commit(self, sha: str | None = None) -> str:
        self._serial += 1
        if sha is None:
            sha = hashlib.sha1(f"commit-{self._serial}".encode()).hexdigest()
        self.commit_times[sha] = EPOCH + timedelta(minutes=self._serial)
        return sha

    def branch(self, name: str, commit: str | None = None) -> str:
        sha = commit or self.commit()
        self.branches[name] = sha
        if self.head is None:
            self.head = name
        return sha

    def delete_branch(self, name: str) -> None:
        del self.branches[name]

    def lightweight_tag(self, name: str, commit: str) -> None:
        self.tags[name] = (None, commit, None)

    def annotated_tag(self, name: str, commit: str) -> datetime:
        self._serial += 1
        tag_object = hashlib.sha1(f"tag-{name}-{self._serial}".encode()).hexdigest()
        created = EPOCH + timedelta(minutes=self._serial)
        self.tags[name] = (tag_object, commit, created)
        return created

    # --- RefFetcher protocol ---

    @property
    def supports_symbolic_ref_names(self) -> bool:
        return self._symbolic

    def _check(self, repo: RemoteRepository) -> None:
        if self.unavailable:
            raise RemoteUnavailable(repo.url, "connection refused")

    async def list_refs(
        self, repo: RemoteRepository, want_branches: bool, want_tags: bool
    ) -> list[RawRef]:
        self.calls["list_refs"] += 1
        self._check(repo)
        refs: list[RawRef] = []
        if want_branches:
            refs.extend(
                RawRef(name=name, target=sha, kind=RefKind.BRANCH)
                for name, sha in self.branches.items()
            )
        if want_tags:
            for name, (tag_object, commit, _) in self.tags.items():
                if tag_object is None:
                    refs.append(RawRef(name=name, target=commit, kind=RefKind.TAG))
                else:
                    refs.append(
                        RawRef(name=name, target=tag_object, kind=RefKind.TAG, peeled=commit)
                    )
        return refs

    async def resolve_tag_timestamp(self, repo: RemoteRepository, ref: RawRef) -> datetime | None:
        self.calls["resolve_tag_timestamp"] += 1
        self._check(repo)
        tag_object, commit, created = self.tags[ref.name]
        if tag_object is not None:
            return created
        return self.commit_times.get(commit)

    async def resolve_default_ref(self, repo: RemoteRepository) -> DefaultRef | None:
        self.calls["resolve_default_ref"] += 1
        self._check(repo)
        if self.head is None or self.head not in self.branches:
            return None
        name = self.head if self._symbolic else None
        return DefaultRef(commit=self.branches[self.head], name=name)

    async def find_commits(self, repo: RemoteRepository, prefix: str) -> list[str]:
        self.calls["find_commits"] += 1
        self._check(repo)
        return [sha for sha in self.commit_times if sha.startswith(prefix)]


@pytest.fixture
def remote() -> FakeRemote:
    """A remote with a single `master` branch."""
    fake = FakeRemote()
    fake.branch("master")
    return fake


@pytest.fixture
def repo() -> RemoteRepository:
    return RemoteRepository(url="https://git.example.com/acme/widgets.git")


@pytest.fixture
def service(remote: FakeRemote) -> DiscoveryService:
    return DiscoveryService(remote)


@pytest.fixture
def make_remote() -> type[FakeRemote]:
    """Factory for remotes with specific capabilities."""
    return FakeRemote
