"""Shared fixtures for archiver tests."""

from datetime import datetime, timezone

import pytest

from repo_archiver.config import GitHubSettings
from repo_archiver.github.models import RepositoryDescriptor


@pytest.fixture
def github_settings():
    """GitHub settings with throwaway credentials."""
    return GitHubSettings(username="octocat", token="s3cr3t-token", organization="acme", page_size=2)


@pytest.fixture
def make_repository():
    """Factory for repository descriptors owned by the test organization."""

    def _make(name="legacy-service", owner="acme"):
        return RepositoryDescriptor(
            name=name,
            url=f"https://github.com/{owner}/{name}",
            pushed_at=datetime(2019, 5, 17, 8, 30, tzinfo=timezone.utc),
            owner_login=owner,
        )

    return _make
