"""Command-line interface for ghrelstats."""

import asyncio
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from ghrelstats.collector import MetricsCollector, print_report
from ghrelstats.config import ConfigurationError, Settings, get_settings
from ghrelstats.github_client import GitHubAPIError
from ghrelstats.report import build_dashboard
from ghrelstats.storage import ExecutionLog, PersistenceError, SnapshotStore

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _run_collect(settings: Settings) -> bool:
    """Run one collection, reporting failures on the console."""
    try:
        settings.require_repository()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return False

    try:
        asyncio.run(MetricsCollector(settings).run())
    except (GitHubAPIError, PersistenceError) as e:
        console.print(f"[red]Collection failed: {e}[/red]")
        return False
    return True


def _run_build(settings: Settings) -> bool:
    """Build the static dashboard, reporting failures on the console."""
    try:
        output_path = build_dashboard(settings)
    except PersistenceError as e:
        console.print(f"[red]Error building dashboard: {e}[/red]")
        console.print("[yellow]Run 'ghrelstats collect' first.[/yellow]")
        return False

    latest = SnapshotStore(settings.data_dir).load_latest()
    console.print(f"[green]Dashboard built: {output_path}[/green]")
    console.print(f"  Repository: {latest.repository}")
    console.print(f"  Total Downloads: {latest.stats.total_downloads:,}")
    console.print(f"  Total Releases: {latest.total_releases:,}")
    return True


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """GitHub release download statistics and dashboard."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


@main.command()
@click.pass_context
def collect(ctx: click.Context) -> None:
    """Fetch release metrics and store a new snapshot.

    Reads GITHUB_OWNER, GITHUB_REPO and (optionally) GITHUB_TOKEN from the
    environment or a .env file.

    Examples:
        ghrelstats collect
        GITHUB_OWNER=octo GITHUB_REPO=tool ghrelstats collect
    """
    if not _run_collect(get_settings()):
        ctx.exit(1)


@main.command()
@click.pass_context
def build(ctx: click.Context) -> None:
    """Build the static HTML dashboard from stored data.

    Examples:
        ghrelstats build                  # writes docs/index.html
    """
    if not _run_build(get_settings()):
        ctx.exit(1)


@main.command("test")
@click.pass_context
def test_run(ctx: click.Context) -> None:
    """Collect metrics and build the dashboard in one go."""
    settings = get_settings()

    console.print("[bold]1. Collecting metrics[/bold]")
    if not _run_collect(settings):
        ctx.exit(1)

    console.print("\n[bold]2. Building dashboard[/bold]")
    if not _run_build(settings):
        ctx.exit(1)

    history_path = settings.data_dir / "history.json"
    executions_path = ExecutionLog(settings.logs_dir).json_path
    console.print("\n[green]All steps completed[/green]")
    console.print("\nGenerated files:")
    console.print(f"  - {SnapshotStore(settings.data_dir).latest_path} (latest metrics)")
    console.print(f"  - {history_path} (historical data)")
    console.print(f"  - {settings.docs_dir / 'index.html'} (dashboard)")
    console.print(f"  - {executions_path} (execution logs)")
    console.print("\nTo view the dashboard locally:")
    console.print(f"  Open {settings.docs_dir / 'index.html'} in your browser")
    console.print(f"  Or run: python -m http.server 8000 --directory {settings.docs_dir}")


@main.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Display the latest stored snapshot in the terminal."""
    settings = get_settings()
    try:
        latest = SnapshotStore(settings.data_dir).load_latest()
    except PersistenceError:
        console.print("[yellow]No data found. Run 'ghrelstats collect' first.[/yellow]")
        return

    print_report(latest)


@main.command()
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", "-p", default=8000, help="Port to listen on")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Serve the live dashboard, which fetches fresh data on every load.

    Examples:
        ghrelstats serve                  # http://127.0.0.1:8000
        ghrelstats serve -p 9000
    """
    import uvicorn

    from ghrelstats.live import create_app

    console.print(f"[green]Live dashboard at http://{host}:{port}[/green]")
    uvicorn.run(create_app(get_settings()), host=host, port=port)


if __name__ == "__main__":
    main()
