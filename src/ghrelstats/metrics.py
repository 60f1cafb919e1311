"""Release metrics aggregation.

Pure functions shared by the scheduled collector and the live dashboard:
raw GitHub JSON in, an immutable ``MetricsSnapshot`` out.
"""

from datetime import datetime

import polars as pl

from ghrelstats.models import (
    Asset,
    AssetSummary,
    MetricsSnapshot,
    Release,
    RepositoryInfo,
    Stats,
    utc_timestamp,
)

TOP_RELEASES_LIMIT = 5
TOP_ASSETS_LIMIT = 10

ASSET_SCHEMA = {
    "name": pl.Utf8,
    "download_count": pl.Int64,
    "size": pl.Int64,
    "content_type": pl.Utf8,
}


def parse_asset(raw: dict) -> Asset:
    """Build an Asset from a GitHub asset object."""
    return Asset(
        name=raw.get("name", ""),
        download_count=raw.get("download_count") or 0,
        size=raw.get("size") or 0,
        content_type=raw.get("content_type") or "",
        browser_download_url=raw.get("browser_download_url") or "",
    )


def parse_release(raw: dict) -> Release:
    """Build a Release from a GitHub release object.

    The release download count is the sum of its assets' counts (0 when the
    release has no assets).
    """
    assets = tuple(parse_asset(a) for a in raw.get("assets") or [])
    return Release(
        id=raw.get("id", 0),
        name=raw.get("name") or "",
        tag_name=raw.get("tag_name") or "",
        published_at=raw.get("published_at") or "",
        draft=bool(raw.get("draft", False)),
        prerelease=bool(raw.get("prerelease", False)),
        assets=assets,
        download_count=sum(a.download_count for a in assets),
    )


def parse_repository_info(raw: dict) -> RepositoryInfo:
    """Build RepositoryInfo from a GitHub repository object."""
    return RepositoryInfo(
        name=raw.get("name", ""),
        full_name=raw.get("full_name", ""),
        description=raw.get("description"),
        stars=raw.get("stargazers_count", 0),
        forks=raw.get("forks_count", 0),
        watchers=raw.get("watchers_count", 0),
        language=raw.get("language"),
        created_at=raw.get("created_at") or "",
        updated_at=raw.get("updated_at") or "",
        default_branch=raw.get("default_branch"),
        is_private=bool(raw.get("private", False)),
    )


def average_downloads(total_downloads: int, release_count: int) -> int:
    """Average downloads per release, rounded half up; 0 without releases."""
    if release_count <= 0:
        return 0
    return (2 * total_downloads + release_count) // (2 * release_count)


def top_releases(releases: tuple[Release, ...], limit: int = TOP_RELEASES_LIMIT) -> tuple[Release, ...]:
    """Releases with the most downloads; ties keep their input order."""
    ranked = sorted(releases, key=lambda r: r.download_count, reverse=True)
    return tuple(ranked[:limit])


def top_assets(releases: tuple[Release, ...], limit: int = TOP_ASSETS_LIMIT) -> tuple[AssetSummary, ...]:
    """Aggregate asset downloads by file name across releases.

    Only assets with downloads are counted. Downloads are summed and
    appearances counted, while size and content type come from the last
    occurrence in release/asset order.

    Args:
        releases: Releases in API order.
        limit: Maximum number of summaries returned.

    Returns:
        Summaries sorted by total downloads, descending; ties keep the order
        in which each name first appeared.
    """
    rows = [
        {
            "name": asset.name,
            "download_count": asset.download_count,
            "size": asset.size,
            "content_type": asset.content_type,
        }
        for release in releases
        for asset in release.assets
        if asset.download_count > 0
    ]
    df = pl.DataFrame(rows, schema=ASSET_SCHEMA)

    summary = (
        df.group_by("name", maintain_order=True)
        .agg(
            [
                pl.col("download_count").sum().alias("total_downloads"),
                pl.len().alias("appearances"),
                pl.col("size").last().alias("total_size"),
                pl.col("content_type").last().alias("content_type"),
            ]
        )
        .filter(pl.col("total_downloads") > 0)
        .sort("total_downloads", descending=True, maintain_order=True)
        .head(limit)
    )

    return tuple(
        AssetSummary(
            name=row["name"],
            total_downloads=int(row["total_downloads"]),
            appearances=int(row["appearances"]),
            total_size=int(row["total_size"]),
            content_type=row["content_type"] or "",
        )
        for row in summary.iter_rows(named=True)
    )


def compute_stats(releases: tuple[Release, ...]) -> Stats:
    """Derive summary statistics from releases in API order.

    The first release is taken as the latest one; releases are not re-sorted
    by publish date.
    """
    total = sum(r.download_count for r in releases)
    return Stats(
        total_downloads=total,
        average_downloads_per_release=average_downloads(total, len(releases)),
        latest_release=releases[0] if releases else None,
        draft_releases=sum(1 for r in releases if r.draft),
        prereleases=sum(1 for r in releases if r.prerelease),
        top_releases=top_releases(releases),
        top_assets=top_assets(releases),
    )


def process_metrics(
    releases_raw: list[dict],
    repository_raw: dict | None,
    repository: str,
    now: datetime | None = None,
) -> MetricsSnapshot:
    """Turn raw API responses into a metrics snapshot.

    Args:
        releases_raw: Release objects from the releases endpoint.
        repository_raw: Object from the repository endpoint.
        repository: Repository identifier ("owner/name").
        now: Snapshot time; defaults to the current UTC time.

    Returns:
        MetricsSnapshot stamped with ``now``.
    """
    timestamp = utc_timestamp(now)
    releases = tuple(parse_release(r) for r in releases_raw)

    return MetricsSnapshot(
        timestamp=timestamp,
        date=timestamp[:10],
        repository=repository,
        repository_info=parse_repository_info(repository_raw) if repository_raw else None,
        total_releases=len(releases),
        releases=releases,
        stats=compute_stats(releases),
    )
