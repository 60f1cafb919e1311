"""Tests for metrics aggregation."""

from datetime import UTC, datetime

from conftest import make_asset, make_release

from ghrelstats.metrics import (
    average_downloads,
    compute_stats,
    parse_release,
    parse_repository_info,
    process_metrics,
)
from ghrelstats.models import Asset, MetricsSnapshot, Release


def _release(release_id: int, downloads: int, assets: tuple[Asset, ...] = ()) -> Release:
    return Release(
        id=release_id,
        name=f"rel{release_id}",
        tag_name=f"v{release_id}",
        assets=assets,
        download_count=downloads,
    )


class TestParsing:
    """Tests for reshaping GitHub JSON."""

    def test_release_download_count_is_sum_of_assets(self) -> None:
        """Test release downloads are summed over its assets."""
        release = parse_release(
            make_release(1, "v1", [make_asset("a.zip", 5), make_asset("b.zip", 7)])
        )

        assert release.download_count == 12
        assert [a.name for a in release.assets] == ["a.zip", "b.zip"]

    def test_release_without_assets(self) -> None:
        """Test a release with no assets has zero downloads."""
        release = parse_release(make_release(1, "v1"))

        assert release.download_count == 0
        assert release.assets == ()

    def test_draft_without_publish_date(self) -> None:
        """Test drafts with a null published_at parse cleanly."""
        release = parse_release(make_release(1, "v1", draft=True, published_at=None))

        assert release.draft is True
        assert release.published_at == ""

    def test_repository_info(self, repository_payload: dict) -> None:
        """Test repository metadata field mapping."""
        info = parse_repository_info(repository_payload)

        assert info.full_name == "octo/tool"
        assert info.stars == 1500
        assert info.forks == 42
        assert info.watchers == 1500
        assert info.language == "Python"
        assert info.default_branch == "main"
        assert info.is_private is False


class TestComputeStats:
    """Tests for derived statistics."""

    def test_top_releases_are_stable_on_ties(self) -> None:
        """Test tied releases keep their input order."""
        releases = (_release(1, 100), _release(2, 300), _release(3, 300))

        stats = compute_stats(releases)

        assert stats.total_downloads == 700
        assert stats.average_downloads_per_release == 233
        assert [r.id for r in stats.top_releases] == [2, 3, 1]

    def test_top_releases_limited_to_five(self) -> None:
        """Test only five releases are ranked."""
        releases = tuple(_release(i, i * 10) for i in range(1, 9))

        stats = compute_stats(releases)

        assert [r.id for r in stats.top_releases] == [8, 7, 6, 5, 4]

    def test_asset_summary_keeps_last_size(self) -> None:
        """Test downloads are summed while the last seen size wins."""
        releases = (
            _release(1, 5, (Asset("x", download_count=5, size=100, content_type="text/a"),)),
            _release(2, 7, (Asset("x", download_count=7, size=200, content_type="text/b"),)),
        )

        stats = compute_stats(releases)

        assert len(stats.top_assets) == 1
        summary = stats.top_assets[0]
        assert summary.name == "x"
        assert summary.total_downloads == 12
        assert summary.appearances == 2
        assert summary.total_size == 200
        assert summary.content_type == "text/b"

    def test_assets_without_downloads_are_ignored(self) -> None:
        """Test zero-download occurrences neither count nor set the size."""
        releases = (
            _release(1, 5, (Asset("x", download_count=5, size=100),)),
            _release(2, 0, (Asset("x", download_count=0, size=999), Asset("y", download_count=0))),
        )

        stats = compute_stats(releases)

        assert [(a.name, a.appearances, a.total_size) for a in stats.top_assets] == [("x", 1, 100)]

    def test_top_assets_sorted_and_limited(self) -> None:
        """Test assets are ranked by downloads and capped at ten."""
        assets = tuple(Asset(f"asset-{i}", download_count=i) for i in range(1, 13))
        releases = (_release(1, sum(a.download_count for a in assets), assets),)

        stats = compute_stats(releases)

        assert len(stats.top_assets) == 10
        assert stats.top_assets[0].name == "asset-12"
        assert stats.top_assets[-1].name == "asset-3"

    def test_top_assets_ties_keep_first_appearance_order(self) -> None:
        """Test tied assets keep the order in which names first appeared."""
        releases = (
            _release(1, 10, (Asset("b", download_count=5), Asset("a", download_count=5))),
        )

        stats = compute_stats(releases)

        assert [a.name for a in stats.top_assets] == ["b", "a"]

    def test_latest_release_is_first_in_input(self) -> None:
        """Test the latest release follows input order, not dates."""
        releases = (
            Release(id=1, name="old", tag_name="v1", published_at="2020-01-01T00:00:00Z"),
            Release(id=2, name="new", tag_name="v2", published_at="2024-01-01T00:00:00Z"),
        )

        stats = compute_stats(releases)

        assert stats.latest_release is not None
        assert stats.latest_release.id == 1

    def test_draft_and_prerelease_counts(self) -> None:
        """Test draft and pre-release counters."""
        releases = (
            Release(id=1, name="a", tag_name="a", draft=True),
            Release(id=2, name="b", tag_name="b", prerelease=True),
            Release(id=3, name="c", tag_name="c", prerelease=True),
            Release(id=4, name="d", tag_name="d"),
        )

        stats = compute_stats(releases)

        assert stats.draft_releases == 1
        assert stats.prereleases == 2

    def test_empty_input(self) -> None:
        """Test no releases degrade to zeros and empty rankings."""
        stats = compute_stats(())

        assert stats.total_downloads == 0
        assert stats.average_downloads_per_release == 0
        assert stats.latest_release is None
        assert stats.top_releases == ()
        assert stats.top_assets == ()

    def test_average_rounds_half_up(self) -> None:
        """Test averages round half up and never divide by zero."""
        assert average_downloads(5, 2) == 3
        assert average_downloads(7, 2) == 4
        assert average_downloads(4, 3) == 1
        assert average_downloads(0, 0) == 0
        assert average_downloads(10, 0) == 0


class TestProcessMetrics:
    """Tests for snapshot creation."""

    def test_sample_snapshot(self, snapshot: MetricsSnapshot) -> None:
        """Test the snapshot built from the sample payloads."""
        stats = snapshot.stats

        assert snapshot.repository == "octo/tool"
        assert snapshot.timestamp == "2024-03-05T12:30:00.000Z"
        assert snapshot.date == "2024-03-05"
        assert snapshot.total_releases == 3
        assert stats.total_downloads == 200
        assert stats.average_downloads_per_release == 67
        assert stats.prereleases == 1
        assert stats.latest_release is not None
        assert stats.latest_release.tag_name == "v1.2.0"
        assert [r.tag_name for r in stats.top_releases] == ["v1.0.0", "v1.2.0", "v1.1.0-rc1"]
        assert [(a.name, a.total_downloads) for a in stats.top_assets] == [
            ("tool-win.zip", 130),
            ("tool-linux.tar.gz", 70),
        ]
        assert snapshot.repository_info is not None
        assert snapshot.repository_info.stars == 1500

    def test_total_downloads_matches_release_sum(self, snapshot: MetricsSnapshot) -> None:
        """Test total downloads equals the sum over releases."""
        assert snapshot.stats.total_downloads == sum(r.download_count for r in snapshot.releases)

    def test_stats_are_idempotent(self, releases_payload: list[dict], repository_payload: dict) -> None:
        """Test identical input yields identical stats regardless of time."""
        first = process_metrics(
            releases_payload, repository_payload, "octo/tool", now=datetime(2024, 1, 1, tzinfo=UTC)
        )
        second = process_metrics(
            releases_payload, repository_payload, "octo/tool", now=datetime(2024, 6, 1, tzinfo=UTC)
        )

        assert first.stats.to_dict() == second.stats.to_dict()
        assert first.timestamp != second.timestamp

    def test_snapshot_survives_serialization(self, snapshot: MetricsSnapshot) -> None:
        """Test the persisted camelCase layout loads back to an equal snapshot."""
        data = snapshot.to_dict()

        assert data["stats"]["averageDownloadsPerRelease"] == 67
        assert data["repositoryInfo"]["fullName"] == "octo/tool"
        assert MetricsSnapshot.from_dict(data) == snapshot

    def test_missing_repository_info(self, empty_snapshot: MetricsSnapshot) -> None:
        """Test a snapshot without metadata or releases."""
        assert empty_snapshot.repository_info is None
        assert empty_snapshot.total_releases == 0
        assert empty_snapshot.to_dict()["stats"]["latestRelease"] is None
