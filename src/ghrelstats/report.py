"""HTML dashboard generation with Plotly charts."""

import json
import logging
from datetime import UTC, datetime, timedelta
from html import escape
from pathlib import Path

from ghrelstats.config import Settings
from ghrelstats.models import (
    AssetSummary,
    ExecutionLogEntry,
    HistoryEntry,
    MetricsSnapshot,
    Release,
    RepositoryInfo,
)
from ghrelstats.storage import ExecutionLog, HistoryStore, PersistenceError, SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_MINUTES = 30
TOP_ASSETS_SHOWN = 5
EXECUTIONS_SHOWN = 10

PLOTLY_SRC = "https://cdn.plot.ly/plotly-2.27.0.min.js"

NO_REPOSITORY_INFO = "Repository information unavailable"
NO_LATEST_RELEASE = "No releases found"
NO_TOP_RELEASES = "No releases with downloads found"
NO_TOP_ASSETS = "No assets with downloads found"
NO_HISTORY = "Not enough history for trend charts yet"
NO_EXECUTIONS = "No executions recorded yet"

DASHBOARD_CSS = """
        * { box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            margin: 0;
            padding: 20px;
            background: #f5f5f5;
            color: #333;
        }
        .header {
            text-align: center;
            margin-bottom: 30px;
        }
        .header h1 { margin-bottom: 5px; }
        .header p { color: #666; font-size: 14px; margin: 4px 0; }
        .section {
            background: white;
            border-radius: 8px;
            padding: 20px;
            margin-bottom: 25px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }
        .section h2 {
            margin-top: 0;
            border-bottom: 2px solid #ddd;
            padding-bottom: 8px;
        }
        .cards {
            display: grid;
            grid-template-columns: repeat(4, 1fr);
            gap: 15px;
            margin-bottom: 25px;
        }
        .card {
            background: white;
            border-radius: 8px;
            padding: 15px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }
        .card h3 {
            margin: 0 0 8px 0;
            color: #666;
            font-size: 12px;
            text-transform: uppercase;
        }
        .card .value { font-size: 24px; font-weight: bold; }
        .ranked { display: flex; justify-content: space-between; padding: 10px 0; border-bottom: 1px solid #eee; }
        .ranked .meta { color: #666; font-size: 13px; }
        .ranked .count { font-weight: bold; color: #2563eb; text-align: right; }
        .placeholder { color: #888; font-style: italic; }
        .charts-row { display: grid; grid-template-columns: 1fr 1fr; gap: 20px; }
        .chart { width: 100%; height: 300px; }
        table { width: 100%; border-collapse: collapse; }
        th, td { text-align: left; padding: 8px; border-bottom: 1px solid #eee; font-size: 14px; }
        .status-success { color: #059669; font-weight: bold; }
        .status-error { color: #dc2626; font-weight: bold; }
        .footer { text-align: center; color: #888; font-size: 13px; padding: 20px 0; }
        @media (max-width: 900px) {
            .cards { grid-template-columns: repeat(2, 1fr); }
            .charts-row { grid-template-columns: 1fr; }
        }
"""


def format_bytes(size: int) -> str:
    """Human readable size using 1024-based units, e.g. "1.5 KB"."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    number = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{number} {units[index]}"


def format_date(timestamp: str) -> str:
    """Format an ISO-8601 timestamp as a calendar date (e.g. "Jan 05, 2024")."""
    if not timestamp:
        return "Unpublished"
    try:
        return datetime.fromisoformat(timestamp).strftime("%b %d, %Y")
    except ValueError:
        return escape(timestamp)


def format_datetime(timestamp: str) -> str:
    """Format an ISO-8601 timestamp with time of day in UTC."""
    try:
        return datetime.fromisoformat(timestamp).strftime("%Y-%m-%d %H:%M UTC")
    except ValueError:
        return escape(timestamp)


def _placeholder(title: str, message: str) -> str:
    return f"""
    <div class="section">
        <h2>{title}</h2>
        <p class="placeholder">{message}</p>
    </div>
    """


def render_repository_info(info: RepositoryInfo | None) -> str:
    """Stars, forks, watchers, language and description."""
    if info is None:
        return _placeholder("Repository Information", NO_REPOSITORY_INFO)

    description = ""
    if info.description:
        description = f'<p class="meta">{escape(info.description)}</p>'

    return f"""
    <div class="section">
        <h2>Repository Information</h2>
        <div class="cards">
            <div class="card"><h3>Stars</h3><div class="value">{info.stars:,}</div></div>
            <div class="card"><h3>Forks</h3><div class="value">{info.forks:,}</div></div>
            <div class="card"><h3>Watchers</h3><div class="value">{info.watchers:,}</div></div>
            <div class="card"><h3>Language</h3><div class="value">{escape(info.language or "N/A")}</div></div>
        </div>
        {description}
    </div>
    """


def render_key_metrics(snapshot: MetricsSnapshot) -> str:
    """Cards for releases, downloads, average and pre-releases."""
    stats = snapshot.stats
    return f"""
    <div class="cards">
        <div class="card"><h3>Total Releases</h3><div class="value">{snapshot.total_releases:,}</div></div>
        <div class="card"><h3>Total Downloads</h3><div class="value">{stats.total_downloads:,}</div></div>
        <div class="card"><h3>Avg Downloads</h3><div class="value">{stats.average_downloads_per_release:,}</div></div>
        <div class="card"><h3>Pre-releases</h3><div class="value">{stats.prereleases:,}</div></div>
    </div>
    """


def render_trend_charts(history: list[HistoryEntry]) -> tuple[str, str]:
    """Build chart containers and Plotly calls for the download and release trends.

    Args:
        history: History entries, newest first.

    Returns:
        Tuple of (charts_html, charts_js); charts need at least two points.
    """
    if len(history) < 2:
        return _placeholder("Trends", NO_HISTORY), ""

    chronological = list(reversed(history))
    dates = [h.date for h in chronological]

    downloads_trace = [
        {
            "x": dates,
            "y": [h.total_downloads for h in chronological],
            "type": "scatter",
            "mode": "lines+markers",
            "name": "Total Downloads",
            "fill": "tozeroy",
            "line": {"color": "#2563eb"},
        }
    ]
    releases_trace = [
        {
            "x": dates,
            "y": [h.total_releases for h in chronological],
            "type": "scatter",
            "mode": "lines+markers",
            "name": "Total Releases",
            "fill": "tozeroy",
            "line": {"color": "#059669"},
        }
    ]
    downloads_layout = {
        "title": "Downloads Trend (Last 90 days)",
        "xaxis": {"title": "Date"},
        "yaxis": {"title": "Downloads", "rangemode": "tozero"},
        "margin": {"t": 40, "r": 20},
    }
    releases_layout = {
        "title": "Releases Count Trend (Last 90 days)",
        "xaxis": {"title": "Date"},
        "yaxis": {"title": "Releases", "rangemode": "tozero"},
        "margin": {"t": 40, "r": 20},
    }

    charts_html = """
    <div class="section">
        <h2>Trends</h2>
        <div class="charts-row">
            <div id="downloads-chart" class="chart"></div>
            <div id="releases-chart" class="chart"></div>
        </div>
    </div>
    """
    charts_js = f"""
        Plotly.newPlot('downloads-chart', {json.dumps(downloads_trace)}, {json.dumps(downloads_layout)});
        Plotly.newPlot('releases-chart', {json.dumps(releases_trace)}, {json.dumps(releases_layout)});
    """
    return charts_html, charts_js


def render_latest_release(release: Release | None) -> str:
    """Latest release with its downloaded assets, most downloaded first."""
    if release is None:
        return _placeholder("Latest Release", NO_LATEST_RELEASE)

    assets = sorted(
        (a for a in release.assets if a.download_count > 0),
        key=lambda a: a.download_count,
        reverse=True,
    )
    assets_html = ""
    if assets:
        rows = "".join(
            f"""
            <div class="ranked">
                <div>{escape(a.name)} <span class="meta">({format_bytes(a.size)})</span></div>
                <div class="count">{a.download_count:,} downloads</div>
            </div>"""
            for a in assets
        )
        assets_html = f"<h3>Assets</h3>{rows}"

    return f"""
    <div class="section">
        <h2>Latest Release</h2>
        <div class="ranked">
            <div>
                <strong>{escape(release.name)}</strong>
                <div class="meta">Tag: {escape(release.tag_name)}</div>
                <div class="meta">Released: {format_date(release.published_at)}</div>
            </div>
            <div class="count">{release.download_count:,}<div class="meta">Downloads</div></div>
        </div>
        {assets_html}
    </div>
    """


def render_top_releases(releases: tuple[Release, ...]) -> str:
    """Ranked list of the most downloaded releases."""
    if not releases:
        return _placeholder("Top Releases by Downloads", NO_TOP_RELEASES)

    rows = "".join(
        f"""
        <div class="ranked">
            <div>
                <strong>{index}. {escape(r.name)}</strong>
                <div class="meta">{escape(r.tag_name)} &bull; {format_date(r.published_at)}</div>
            </div>
            <div class="count">{r.download_count:,}<div class="meta">downloads</div></div>
        </div>"""
        for index, r in enumerate(releases, start=1)
    )
    return f"""
    <div class="section">
        <h2>Top Releases by Downloads</h2>
        {rows}
    </div>
    """


def render_top_assets(assets: tuple[AssetSummary, ...]) -> str:
    """Ranked list of the most downloaded asset names."""
    if not assets:
        return _placeholder("Top Assets by Downloads", NO_TOP_ASSETS)

    rows = "".join(
        f"""
        <div class="ranked">
            <div>
                <strong>{index}. {escape(a.name)}</strong>
                <div class="meta">{format_bytes(a.total_size)} &bull; Appears in {a.appearances} release(s)</div>
            </div>
            <div class="count">{a.total_downloads:,}<div class="meta">total downloads</div></div>
        </div>"""
        for index, a in enumerate(assets[:TOP_ASSETS_SHOWN], start=1)
    )
    return f"""
    <div class="section">
        <h2>Top Assets by Downloads</h2>
        {rows}
    </div>
    """


def render_executions(executions: list[ExecutionLogEntry]) -> str:
    """Table of the most recent collection runs."""
    if not executions:
        return _placeholder("Recent Executions", NO_EXECUTIONS)

    rows = "".join(
        f"""
            <tr>
                <td class="{'status-success' if e.success else 'status-error'}">{'Success' if e.success else 'Error'}</td>
                <td>{format_datetime(e.timestamp)}</td>
                <td>{e.total_releases:,}</td>
                <td>{e.total_downloads:,}</td>
                <td>{escape(e.error or '-')}</td>
            </tr>"""
        for e in executions[:EXECUTIONS_SHOWN]
    )
    return f"""
    <div class="section">
        <h2>Recent Executions</h2>
        <table>
            <thead>
                <tr><th>Status</th><th>Date</th><th>Releases</th><th>Downloads</th><th>Notes</th></tr>
            </thead>
            <tbody>{rows}
            </tbody>
        </table>
    </div>
    """


def render_content(
    snapshot: MetricsSnapshot,
    history: list[HistoryEntry],
    executions: list[ExecutionLogEntry],
) -> tuple[str, str]:
    """Render every dashboard section for a snapshot.

    Returns:
        Tuple of (sections_html, charts_js).
    """
    charts_html, charts_js = render_trend_charts(history)
    sections_html = "".join(
        [
            render_repository_info(snapshot.repository_info),
            render_key_metrics(snapshot),
            charts_html,
            render_latest_release(snapshot.stats.latest_release),
            render_top_releases(snapshot.stats.top_releases),
            render_top_assets(snapshot.stats.top_assets),
            render_executions(executions),
        ]
    )
    return sections_html, charts_js


def render_dashboard(
    latest: MetricsSnapshot,
    history: list[HistoryEntry],
    executions: list[ExecutionLogEntry],
    refresh_minutes: int = DEFAULT_REFRESH_MINUTES,
    generated_at: datetime | None = None,
) -> str:
    """Render the static dashboard page.

    Args:
        latest: Most recent snapshot.
        history: Per-day history, newest first.
        executions: Logged runs, newest first.
        refresh_minutes: Interval of the page's full reload.
        generated_at: Build time used for the "next update" hint; defaults to
            the snapshot time so the output depends only on its inputs.

    Returns:
        Complete HTML document.
    """
    sections_html, charts_js = render_content(latest, history, executions)

    last_update = format_datetime(latest.timestamp)
    if generated_at is None:
        generated_at = datetime.fromisoformat(latest.timestamp)
    next_update = (generated_at + timedelta(minutes=refresh_minutes)).strftime("%Y-%m-%d %H:%M UTC")
    repository = escape(latest.repository)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta http-equiv="refresh" content="{refresh_minutes * 60}">
    <title>GitHub Metrics Dashboard - {repository}</title>
    <script src="{PLOTLY_SRC}"></script>
    <style>{DASHBOARD_CSS}    </style>
</head>
<body>
    <div class="header">
        <h1>GitHub Metrics Dashboard</h1>
        <p>Repository: <strong>{repository}</strong></p>
        <p>Last updated: {last_update}</p>
        <p>Next update: {next_update}</p>
    </div>

    {sections_html}

    <div class="footer">
        <p>Dashboard auto-refreshes every {refresh_minutes} minutes</p>
        <p>Data updated: {last_update}</p>
    </div>

    <script>
        {charts_js}
    </script>
</body>
</html>
"""


def build_dashboard(settings: Settings, output_path: str | Path | None = None) -> Path:
    """Render the dashboard from persisted state and write it to disk.

    Args:
        settings: Application settings (storage and output locations).
        output_path: Override for the HTML file (default: docs/index.html).

    Returns:
        Path of the written HTML file.

    Raises:
        PersistenceError: If there is no latest snapshot to render.
    """
    latest = SnapshotStore(settings.data_dir).load_latest()
    history = HistoryStore(settings.data_dir / "history.json").read()
    executions = ExecutionLog(settings.logs_dir).read()

    html = render_dashboard(
        latest,
        history,
        executions,
        refresh_minutes=settings.refresh_minutes,
        generated_at=datetime.now(UTC),
    )

    output_path = Path(output_path) if output_path else settings.docs_dir / "index.html"
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(html, encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Cannot write {output_path}: {e}") from e
    logger.debug("Dashboard written to %s", output_path)
    return output_path
