"""Data models for ghrelstats.

Attributes are snake_case; ``to_dict`` / ``from_dict`` use the camelCase
JSON layout of the persisted artifacts (``latest.json``, ``history.json``,
``executions.json``).
"""

from dataclasses import dataclass
from datetime import UTC, datetime


def utc_timestamp(now: datetime | None = None) -> str:
    """Format a moment as a UTC ISO-8601 string with milliseconds and a Z suffix."""
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Asset:
    """Downloadable file attached to a release.

    Attributes:
        name: File name, unique within its release.
        download_count: Number of downloads reported by GitHub.
        size: Size in bytes.
        content_type: MIME type reported by GitHub.
        browser_download_url: Public download URL.
    """

    name: str
    download_count: int = 0
    size: int = 0
    content_type: str = ""
    browser_download_url: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "downloadCount": self.download_count,
            "size": self.size,
            "contentType": self.content_type,
            "browserDownloadUrl": self.browser_download_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Asset":
        return cls(
            name=data["name"],
            download_count=data.get("downloadCount", 0),
            size=data.get("size", 0),
            content_type=data.get("contentType") or "",
            browser_download_url=data.get("browserDownloadUrl") or "",
        )


@dataclass(frozen=True)
class Release:
    """GitHub release with its assets.

    Attributes:
        id: GitHub release id.
        name: Release title (may be empty).
        tag_name: Release version tag (e.g., "v1.0.0").
        published_at: ISO-8601 publish timestamp, empty for drafts.
        draft: Whether the release is a draft.
        prerelease: Whether the release is marked as a pre-release.
        assets: Assets in API order.
        download_count: Sum of the assets' download counts.
    """

    id: int
    name: str
    tag_name: str
    published_at: str = ""
    draft: bool = False
    prerelease: bool = False
    assets: tuple[Asset, ...] = ()
    download_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tagName": self.tag_name,
            "publishedAt": self.published_at or None,
            "draft": self.draft,
            "prerelease": self.prerelease,
            "downloadCount": self.download_count,
            "assets": [asset.to_dict() for asset in self.assets],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Release":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            tag_name=data.get("tagName") or "",
            published_at=data.get("publishedAt") or "",
            draft=data.get("draft", False),
            prerelease=data.get("prerelease", False),
            assets=tuple(Asset.from_dict(a) for a in data.get("assets", [])),
            download_count=data.get("downloadCount", 0),
        )


@dataclass(frozen=True)
class RepositoryInfo:
    """Repository metadata captured alongside each snapshot."""

    name: str
    full_name: str
    description: str | None = None
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    language: str | None = None
    created_at: str = ""
    updated_at: str = ""
    default_branch: str | None = None
    is_private: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "fullName": self.full_name,
            "description": self.description,
            "stars": self.stars,
            "forks": self.forks,
            "watchers": self.watchers,
            "language": self.language,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "defaultBranch": self.default_branch,
            "isPrivate": self.is_private,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RepositoryInfo":
        return cls(
            name=data.get("name", ""),
            full_name=data.get("fullName", ""),
            description=data.get("description"),
            stars=data.get("stars", 0),
            forks=data.get("forks", 0),
            watchers=data.get("watchers", 0),
            language=data.get("language"),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
            default_branch=data.get("defaultBranch"),
            is_private=data.get("isPrivate", False),
        )


@dataclass(frozen=True)
class AssetSummary:
    """Downloads of one asset name aggregated across releases.

    Attributes:
        name: Asset file name (the aggregation key).
        total_downloads: Downloads summed over every release carrying the name.
        appearances: Number of releases in which the name had downloads.
        total_size: Size of the last occurrence seen, not a sum.
        content_type: Content type of the last occurrence seen.
    """

    name: str
    total_downloads: int
    appearances: int
    total_size: int
    content_type: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "totalDownloads": self.total_downloads,
            "appearances": self.appearances,
            "totalSize": self.total_size,
            "contentType": self.content_type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AssetSummary":
        return cls(
            name=data["name"],
            total_downloads=data.get("totalDownloads", 0),
            appearances=data.get("appearances", 0),
            total_size=data.get("totalSize", 0),
            content_type=data.get("contentType") or "",
        )


@dataclass(frozen=True)
class Stats:
    """Derived statistics for one snapshot."""

    total_downloads: int = 0
    average_downloads_per_release: int = 0
    latest_release: Release | None = None
    draft_releases: int = 0
    prereleases: int = 0
    top_releases: tuple[Release, ...] = ()
    top_assets: tuple[AssetSummary, ...] = ()

    def to_dict(self) -> dict:
        return {
            "totalDownloads": self.total_downloads,
            "averageDownloadsPerRelease": self.average_downloads_per_release,
            "latestRelease": self.latest_release.to_dict() if self.latest_release else None,
            "draftReleases": self.draft_releases,
            "prereleases": self.prereleases,
            "topReleases": [r.to_dict() for r in self.top_releases],
            "topAssets": [a.to_dict() for a in self.top_assets],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Stats":
        latest = data.get("latestRelease")
        return cls(
            total_downloads=data.get("totalDownloads", 0),
            average_downloads_per_release=data.get("averageDownloadsPerRelease", 0),
            latest_release=Release.from_dict(latest) if latest else None,
            draft_releases=data.get("draftReleases", 0),
            prereleases=data.get("prereleases", 0),
            top_releases=tuple(Release.from_dict(r) for r in data.get("topReleases", [])),
            top_assets=tuple(AssetSummary.from_dict(a) for a in data.get("topAssets", [])),
        )


@dataclass(frozen=True)
class MetricsSnapshot:
    """One fully computed collection run.

    Attributes:
        timestamp: When the snapshot was produced (UTC, ISO-8601).
        date: Calendar day of ``timestamp`` (YYYY-MM-DD).
        repository: Repository identifier ("owner/name").
        repository_info: Repository metadata, if available.
        total_releases: Number of releases returned by the API.
        releases: Releases in API order (newest first).
        stats: Derived statistics.
    """

    timestamp: str
    date: str
    repository: str
    repository_info: RepositoryInfo | None
    total_releases: int
    releases: tuple[Release, ...]
    stats: Stats

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "date": self.date,
            "repository": self.repository,
            "repositoryInfo": self.repository_info.to_dict() if self.repository_info else None,
            "totalReleases": self.total_releases,
            "releases": [r.to_dict() for r in self.releases],
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MetricsSnapshot":
        info = data.get("repositoryInfo")
        return cls(
            timestamp=data["timestamp"],
            date=data.get("date") or data["timestamp"][:10],
            repository=data["repository"],
            repository_info=RepositoryInfo.from_dict(info) if info else None,
            total_releases=data.get("totalReleases", 0),
            releases=tuple(Release.from_dict(r) for r in data.get("releases", [])),
            stats=Stats.from_dict(data.get("stats", {})),
        )


@dataclass(frozen=True)
class ReleaseSummary:
    """Latest-release fields kept in a history entry."""

    name: str
    tag_name: str
    download_count: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "tagName": self.tag_name,
            "downloadCount": self.download_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReleaseSummary":
        return cls(
            name=data.get("name") or "",
            tag_name=data.get("tagName") or "",
            download_count=data.get("downloadCount", 0),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """Condensed per-day record; at most one per date in the history file."""

    date: str
    timestamp: str
    total_releases: int
    total_downloads: int
    average_downloads: int
    latest_release: ReleaseSummary | None = None

    @classmethod
    def from_snapshot(cls, snapshot: MetricsSnapshot) -> "HistoryEntry":
        """Condense a snapshot into its history record."""
        latest = snapshot.stats.latest_release
        return cls(
            date=snapshot.date,
            timestamp=snapshot.timestamp,
            total_releases=snapshot.total_releases,
            total_downloads=snapshot.stats.total_downloads,
            average_downloads=snapshot.stats.average_downloads_per_release,
            latest_release=(
                ReleaseSummary(latest.name, latest.tag_name, latest.download_count)
                if latest
                else None
            ),
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "timestamp": self.timestamp,
            "totalReleases": self.total_releases,
            "totalDownloads": self.total_downloads,
            "averageDownloads": self.average_downloads,
            "latestRelease": self.latest_release.to_dict() if self.latest_release else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        latest = data.get("latestRelease")
        return cls(
            date=data["date"],
            timestamp=data.get("timestamp", ""),
            total_releases=data.get("totalReleases", 0),
            total_downloads=data.get("totalDownloads", 0),
            average_downloads=data.get("averageDownloads", 0),
            latest_release=ReleaseSummary.from_dict(latest) if latest else None,
        )


@dataclass(frozen=True)
class ExecutionLogEntry:
    """Audit record for one collection attempt.

    Attributes:
        timestamp: When the attempt finished (UTC, ISO-8601).
        date: Calendar day of ``timestamp``.
        success: Whether the run completed.
        repository: Repository identifier ("owner/name").
        total_releases: Releases in the snapshot, 0 when none was produced.
        total_downloads: Downloads in the snapshot, 0 when none was produced.
        error: Error message for failed runs.
    """

    timestamp: str
    date: str
    success: bool
    repository: str
    total_releases: int = 0
    total_downloads: int = 0
    error: str | None = None

    @classmethod
    def for_run(
        cls,
        repository: str,
        snapshot: MetricsSnapshot | None = None,
        error: BaseException | None = None,
        now: datetime | None = None,
    ) -> "ExecutionLogEntry":
        """Build the record of a run; a run without a snapshot logs zero counts."""
        timestamp = utc_timestamp(now)
        return cls(
            timestamp=timestamp,
            date=timestamp[:10],
            success=error is None,
            repository=repository,
            total_releases=snapshot.total_releases if snapshot else 0,
            total_downloads=snapshot.stats.total_downloads if snapshot else 0,
            error=(str(error) or type(error).__name__) if error is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "date": self.date,
            "success": self.success,
            "repository": self.repository,
            "totalReleases": self.total_releases,
            "totalDownloads": self.total_downloads,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExecutionLogEntry":
        return cls(
            timestamp=data["timestamp"],
            date=data.get("date") or data["timestamp"][:10],
            success=data.get("success", False),
            repository=data.get("repository", ""),
            total_releases=data.get("totalReleases", 0),
            total_downloads=data.get("totalDownloads", 0),
            error=data.get("error"),
        )

    def to_log_line(self) -> str:
        """Format the entry as one line of the plain-text daily log."""
        status = "SUCCESS" if self.success else "ERROR"
        line = (
            f"{self.timestamp} | {status} | Releases: {self.total_releases} "
            f"| Downloads: {self.total_downloads}"
        )
        if self.error:
            line += f" | Error: {self.error}"
        return line + "\n"

