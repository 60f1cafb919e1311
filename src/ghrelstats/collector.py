"""Data collection orchestration."""

import asyncio
import logging

from rich.console import Console
from rich.table import Table

from ghrelstats.config import Settings
from ghrelstats.github_client import GitHubReleaseClient
from ghrelstats.metrics import process_metrics
from ghrelstats.models import ExecutionLogEntry, HistoryEntry, MetricsSnapshot
from ghrelstats.storage import ExecutionLog, HistoryStore, PersistenceError, SnapshotStore

console = Console()
logger = logging.getLogger(__name__)


async def fetch_release_data(client: GitHubReleaseClient, owner: str, repo: str) -> tuple[list[dict], dict]:
    """Fetch releases and repository metadata concurrently.

    Both requests must succeed. The first failure cancels the other request
    and propagates once both have finished.

    Returns:
        Tuple of (raw releases, raw repository object).
    """
    try:
        async with asyncio.TaskGroup() as tg:
            releases_task = tg.create_task(client.get_releases(owner, repo))
            repository_task = tg.create_task(client.get_repository(owner, repo))
    except ExceptionGroup as eg:
        raise eg.exceptions[0] from None

    return releases_task.result(), repository_task.result()


def print_report(snapshot: MetricsSnapshot) -> None:
    """Print a summary of a snapshot to the console.

    Args:
        snapshot: Snapshot to summarize.
    """
    stats = snapshot.stats

    table = Table(title="GitHub Release Metrics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Repository", snapshot.repository)
    table.add_row("Timestamp", snapshot.timestamp)
    table.add_row("Total Releases", f"{snapshot.total_releases:,}")
    table.add_row("Total Downloads", f"{stats.total_downloads:,}")
    table.add_row("Average Downloads per Release", f"{stats.average_downloads_per_release:,}")
    table.add_row("Draft Releases", str(stats.draft_releases))
    table.add_row("Pre-releases", str(stats.prereleases))

    info = snapshot.repository_info
    if info:
        table.add_row("Stars", f"{info.stars:,}")
        table.add_row("Forks", f"{info.forks:,}")
        table.add_row("Watchers", f"{info.watchers:,}")

    console.print(table)

    latest = stats.latest_release
    if latest:
        console.print("\n[bold]Latest release[/bold]")
        console.print(f"  Name: {latest.name}")
        console.print(f"  Tag: {latest.tag_name}")
        console.print(f"  Date: {latest.published_at[:10] or 'unpublished'}")
        console.print(f"  Downloads: {latest.download_count:,}")

    if stats.top_releases:
        releases_table = Table(title="Top 5 Releases by Downloads")
        releases_table.add_column("#", justify="right")
        releases_table.add_column("Release", style="green")
        releases_table.add_column("Tag")
        releases_table.add_column("Downloads", justify="right")
        for index, release in enumerate(stats.top_releases, start=1):
            releases_table.add_row(
                str(index), release.name, release.tag_name, f"{release.download_count:,}"
            )
        console.print(releases_table)

    if stats.top_assets:
        assets_table = Table(title="Top Assets by Total Downloads")
        assets_table.add_column("#", justify="right")
        assets_table.add_column("Asset", style="green")
        assets_table.add_column("Downloads", justify="right")
        assets_table.add_column("Releases", justify="right")
        assets_table.add_column("Size", justify="right")
        for index, asset in enumerate(stats.top_assets[:5], start=1):
            assets_table.add_row(
                str(index),
                asset.name,
                f"{asset.total_downloads:,}",
                str(asset.appearances),
                f"{asset.total_size / (1024 * 1024):.2f} MB",
            )
        console.print(assets_table)


class MetricsCollector:
    """Runs one collection: fetch, aggregate, persist and log.

    Attributes:
        settings: Injected application settings.
        snapshots: Latest/archive snapshot store.
        history: Per-day history store.
        executions: Execution log.
    """

    def __init__(self, settings: Settings):
        """Initialize collector from settings.

        Args:
            settings: Application settings with the target repository set.
        """
        self.settings = settings
        self.snapshots = SnapshotStore(settings.data_dir)
        self.history = HistoryStore(settings.data_dir / "history.json")
        self.executions = ExecutionLog(settings.logs_dir)

    async def fetch_snapshot(self) -> MetricsSnapshot:
        """Fetch live data and aggregate it, without persisting anything."""
        settings = self.settings
        async with GitHubReleaseClient(settings.github_token, timeout=settings.timeout) as client:
            releases, repository = await fetch_release_data(
                client, settings.github_owner, settings.github_repo
            )
        console.print(f"  [green]Found {len(releases)} releases[/green]")
        return process_metrics(releases, repository, settings.repository)

    async def run(self) -> MetricsSnapshot:
        """Collect, persist and log one snapshot.

        Returns:
            The snapshot produced by this run.

        Raises:
            GitHubAPIError: When either API request fails.
            PersistenceError: When an artifact cannot be written.
        """
        console.print(f"\n[bold]Collecting release metrics for {self.settings.repository}[/bold]\n")
        snapshot: MetricsSnapshot | None = None

        try:
            snapshot = await self.fetch_snapshot()

            saved = self.snapshots.save(snapshot)
            console.print(f"  Snapshot saved: {saved.dated_file}")
            console.print(f"  Latest metrics saved: {saved.latest_file}")

            self.history.merge(HistoryEntry.from_snapshot(snapshot))
            console.print(f"  History updated: {self.history.path}")

            print_report(snapshot)
        except Exception as e:
            console.print(f"\n[red]Error during metrics collection: {e}[/red]")
            try:
                self._log_execution(snapshot, e)
            except PersistenceError as log_error:
                logger.error("Could not log failed execution: %s", log_error)
            raise

        self._log_execution(snapshot, None)
        console.print("\n[green]Metrics collection completed[/green]")
        return snapshot

    def _log_execution(self, snapshot: MetricsSnapshot | None, error: Exception | None) -> None:
        entry = ExecutionLogEntry.for_run(self.settings.repository, snapshot, error)
        self.executions.append(entry)
        logger.debug("Execution logged to %s", self.executions.text_log_path(entry.date))


async def collect_metrics(settings: Settings) -> MetricsSnapshot:
    """Run a single collection for the configured repository.

    Args:
        settings: Application settings.

    Returns:
        The collected snapshot.
    """
    settings.require_repository()
    return await MetricsCollector(settings).run()
