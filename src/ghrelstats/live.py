"""Live dashboard served to the browser.

The page shell drives a small loading / content / error cycle in the
browser. Each load asks the server for a freshly fetched fragment, which is
built with the same aggregation and section renderers as the static
dashboard. Nothing is persisted.
"""

import logging
from enum import StrEnum
from html import escape

from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from ghrelstats.collector import fetch_release_data
from ghrelstats.config import Settings, get_settings
from ghrelstats.github_client import GitHubAPIError, GitHubReleaseClient
from ghrelstats.metrics import process_metrics
from ghrelstats.models import MetricsSnapshot
from ghrelstats.report import (
    DASHBOARD_CSS,
    format_datetime,
    render_key_metrics,
    render_latest_release,
    render_repository_info,
    render_top_assets,
    render_top_releases,
)

logger = logging.getLogger(__name__)


class DashboardState(StrEnum):
    """Display states of the live dashboard."""

    IDLE = "idle"
    LOADING = "loading"
    CONTENT = "content"
    ERROR = "error"


class LiveDashboard:
    """Fetch-and-render cycle for live data.

    Attributes:
        settings: Injected application settings.
        state: Current display state.
        snapshot: Snapshot from the last successful refresh.
        error: Message from the last failed refresh.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.state = DashboardState.IDLE
        self.snapshot: MetricsSnapshot | None = None
        self.error: str | None = None

    def _fail(self, message: str) -> None:
        logger.warning(message)
        self.state = DashboardState.ERROR
        self.error = message

    async def refresh(self) -> MetricsSnapshot | None:
        """Fetch live data and aggregate it.

        Failures move the dashboard to the error state instead of raising;
        the page offers a Retry button.

        Returns:
            The new snapshot, or None on failure.
        """
        missing = self.settings.missing_settings()
        if missing:
            self._fail(f"Repository configuration is missing: {', '.join(missing)}")
            return None

        self.state = DashboardState.LOADING
        settings = self.settings
        try:
            async with GitHubReleaseClient(settings.github_token, timeout=settings.timeout) as client:
                releases, repository = await fetch_release_data(
                    client, settings.github_owner, settings.github_repo
                )
        except GitHubAPIError as e:
            self._fail(f"Failed to load metrics: {e}")
            return None

        self.snapshot = process_metrics(releases, repository, settings.repository)
        self.state = DashboardState.CONTENT
        self.error = None
        return self.snapshot

    def render_fragment(self) -> str:
        """HTML for the content area; empty unless the last refresh succeeded."""
        if self.state is not DashboardState.CONTENT or self.snapshot is None:
            return ""

        snapshot = self.snapshot
        return "".join(
            [
                f'<p class="placeholder" id="fragmentTimestamp">Fetched {format_datetime(snapshot.timestamp)}</p>',
                render_repository_info(snapshot.repository_info),
                render_key_metrics(snapshot),
                render_latest_release(snapshot.stats.latest_release),
                render_top_releases(snapshot.stats.top_releases),
                render_top_assets(snapshot.stats.top_assets),
            ]
        )


def render_shell(repository: str) -> str:
    """Page shell that loads the dashboard fragment in the browser.

    Args:
        repository: Repository identifier shown in the header.

    Returns:
        Complete HTML document.
    """
    repository = escape(repository)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Live GitHub Metrics - {repository}</title>
    <style>{DASHBOARD_CSS}
        .error {{ background: #fef2f2; border: 1px solid #fecaca; border-radius: 8px; padding: 20px; }}
        button {{ padding: 8px 16px; border-radius: 4px; border: none; background: #2563eb; color: white; cursor: pointer; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>GitHub Metrics Dashboard</h1>
        <p>Real-time release analytics for <strong>{repository}</strong></p>
        <p id="lastUpdate">Not loaded yet</p>
        <p id="nextUpdate">Next update: calculating...</p>
        <button id="refreshBtn" type="button">Refresh</button>
    </div>

    <div id="loadingState" class="section" hidden>
        <p>Loading GitHub metrics...</p>
    </div>

    <div id="dashboardContent" hidden></div>

    <div id="errorState" class="error" hidden>
        <h3>Error Loading Data</h3>
        <p id="errorMessage"></p>
        <button id="retryBtn" type="button">Retry</button>
    </div>

    <script>
        const panels = ["loadingState", "dashboardContent", "errorState"];

        function show(id) {{
            panels.forEach((panel) => {{
                document.getElementById(panel).hidden = panel !== id;
            }});
        }}

        async function loadMetrics() {{
            show("loadingState");
            try {{
                const response = await fetch("fragment", {{ cache: "no-store" }});
                const body = await response.text();
                if (!response.ok) {{
                    throw new Error(body || response.statusText);
                }}
                document.getElementById("dashboardContent").innerHTML = body;
                document.getElementById("lastUpdate").textContent =
                    "Last updated: " + new Date().toLocaleString();
                document.getElementById("nextUpdate").textContent = "Next update: On page refresh";
                show("dashboardContent");
            }} catch (error) {{
                document.getElementById("errorMessage").textContent = error.message;
                show("errorState");
            }}
        }}

        document.getElementById("refreshBtn").addEventListener("click", loadMetrics);
        document.getElementById("retryBtn").addEventListener("click", loadMetrics);
        loadMetrics();
    </script>
</body>
</html>
"""


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the live dashboard application.

    Args:
        settings: Application settings (default: loaded from environment).

    Returns:
        FastAPI application.
    """
    settings = settings or get_settings()
    dashboard = LiveDashboard(settings)

    app = FastAPI(
        title="ghrelstats live dashboard",
        description="Live GitHub release metrics",
        docs_url=None,
        redoc_url=None,
    )
    app.state.dashboard = dashboard

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        """Page shell."""
        return HTMLResponse(render_shell(settings.repository))

    @app.get("/fragment")
    async def fragment():
        """Freshly fetched dashboard sections, or the error message."""
        await dashboard.refresh()
        if dashboard.state is DashboardState.ERROR:
            return PlainTextResponse(dashboard.error or "Unknown error", status_code=502)
        return HTMLResponse(dashboard.render_fragment())

    @app.get("/api/metrics")
    async def metrics():
        """Freshly fetched snapshot as JSON."""
        snapshot = await dashboard.refresh()
        if snapshot is None:
            return JSONResponse({"error": dashboard.error}, status_code=502)
        return JSONResponse(snapshot.to_dict())

    return app
