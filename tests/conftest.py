"""Shared test fixtures."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from ghrelstats.config import Settings
from ghrelstats.metrics import process_metrics
from ghrelstats.models import MetricsSnapshot


def make_asset(name: str, downloads: int, size: int = 1024, content_type: str = "application/zip") -> dict:
    """GitHub API asset object."""
    return {
        "name": name,
        "download_count": downloads,
        "size": size,
        "content_type": content_type,
        "browser_download_url": f"https://github.com/octo/tool/releases/download/{name}",
    }


def make_release(
    release_id: int,
    tag: str,
    assets: list[dict] | None = None,
    draft: bool = False,
    prerelease: bool = False,
    published_at: str | None = "2024-01-01T00:00:00Z",
) -> dict:
    """GitHub API release object."""
    return {
        "id": release_id,
        "name": f"Release {tag}",
        "tag_name": tag,
        "published_at": published_at,
        "draft": draft,
        "prerelease": prerelease,
        "assets": assets or [],
    }


@pytest.fixture
def releases_payload() -> list[dict]:
    """Releases endpoint response, newest first."""
    return [
        make_release(
            3,
            "v1.2.0",
            [make_asset("tool-linux.tar.gz", 50, size=2048), make_asset("tool-win.zip", 30)],
            published_at="2024-03-01T10:00:00Z",
        ),
        make_release(
            2,
            "v1.1.0-rc1",
            [make_asset("tool-linux.tar.gz", 20, size=1024), make_asset("checksums.txt", 0)],
            prerelease=True,
            published_at="2024-02-01T10:00:00Z",
        ),
        make_release(1, "v1.0.0", [make_asset("tool-win.zip", 100)], published_at="2024-01-01T10:00:00Z"),
    ]


@pytest.fixture
def repository_payload() -> dict:
    """Repository endpoint response."""
    return {
        "name": "tool",
        "full_name": "octo/tool",
        "description": "A command-line tool",
        "stargazers_count": 1500,
        "forks_count": 42,
        "watchers_count": 1500,
        "language": "Python",
        "created_at": "2020-01-01T00:00:00Z",
        "updated_at": "2024-03-02T00:00:00Z",
        "default_branch": "main",
        "private": False,
    }


@pytest.fixture
def snapshot(releases_payload: list[dict], repository_payload: dict) -> MetricsSnapshot:
    """Snapshot built from the sample payloads."""
    return process_metrics(
        releases_payload,
        repository_payload,
        "octo/tool",
        now=datetime(2024, 3, 5, 12, 30, tzinfo=UTC),
    )


@pytest.fixture
def empty_snapshot() -> MetricsSnapshot:
    """Snapshot of a repository without releases or metadata."""
    return process_metrics([], None, "octo/empty", now=datetime(2024, 3, 5, 12, 30, tzinfo=UTC))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing all storage at a temporary directory."""
    return Settings(
        _env_file=None,
        github_token="test_token",
        github_owner="octo",
        github_repo="tool",
        data_dir=tmp_path / "data",
        logs_dir=tmp_path / "logs",
        docs_dir=tmp_path / "docs",
    )
