"""
Ref fetcher backends for gitsource.

Provides create_fetcher() to build the configured backend.
"""

from __future__ import annotations

from gitsource.config import FetcherBackend, settings
from gitsource.logging_config import get_logger
from gitsource.vcs.protocol import RefFetcher

logger = get_logger(__name__)


def create_fetcher() -> RefFetcher:
    """Build the ref fetcher backend selected in configuration."""
    cfg = settings.vcs

    match cfg.fetcher:
        case FetcherBackend.GITHUB:
            from gitsource.vcs.github import GitHubRefFetcher

            logger.info("Ref fetcher selected", backend="github", api_url=cfg.github.api_url)
            return GitHubRefFetcher(
                api_url=cfg.github.api_url,
                token=cfg.github.token.get_secret_value(),
                timeout_seconds=cfg.github.timeout_seconds,
            )

        case _:
            from gitsource.vcs.git_cli import GitCliRefFetcher

            logger.info("Ref fetcher selected", backend="git", executable=cfg.git.executable)
            return GitCliRefFetcher(
                executable=cfg.git.executable,
                timeout_seconds=cfg.git.timeout_seconds,
            )
