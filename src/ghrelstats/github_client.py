"""Async GitHub REST client for release metrics."""

import logging
from datetime import UTC, datetime
from typing import Self

import httpx

logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """Base exception for GitHub API errors."""


class RateLimitError(GitHubAPIError):
    """Raised when rate limit is exceeded."""

    def __init__(self, message: str, reset_at: datetime | None = None):
        """Initialize with reset time.

        Args:
            message: Error message.
            reset_at: When rate limit resets (UTC).
        """
        super().__init__(message)
        self.reset_at = reset_at


class AuthenticationError(GitHubAPIError):
    """Raised for authentication failures."""


class NotFoundError(GitHubAPIError):
    """Raised when repository doesn't exist or no access."""


class GitHubReleaseClient:
    """Async client for the releases and repository endpoints.

    Both requests of a run go through the same underlying ``httpx`` client,
    so they always carry identical authentication headers. Failures are not
    retried.

    Attributes:
        BASE_URL: GitHub API base URL.
    """

    BASE_URL = "https://api.github.com"

    def __init__(self, token: str = "", timeout: float = 30.0):
        """Initialize client with an optional authentication token.

        Args:
            token: GitHub access token; public repositories work without one.
            timeout: Request timeout in seconds.
        """
        self.token = token
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers=self._headers(),
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()

    async def _get(self, path: str, params: dict | None = None) -> dict | list:
        """Execute a single GET request.

        Args:
            path: API endpoint path.
            params: Optional query parameters.

        Returns:
            Decoded JSON body.

        Raises:
            RateLimitError: When rate limit is exceeded.
            AuthenticationError: For auth failures.
            NotFoundError: When resource not found.
            GitHubAPIError: For other API errors and network failures.
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use async context manager.")

        logger.debug("GET %s", path)
        try:
            response = await self._client.get(path, params=params)
        except httpx.RequestError as e:
            raise GitHubAPIError(f"Request failed: {e}") from e

        if response.status_code == 200:
            try:
                return response.json()
            except ValueError as e:
                raise GitHubAPIError(f"Invalid JSON from {path}") from e

        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired token")

        if response.status_code == 403:
            remaining = response.headers.get("X-RateLimit-Remaining", "1")
            if remaining == "0":
                reset_timestamp = int(response.headers.get("X-RateLimit-Reset", "0"))
                reset_at = datetime.fromtimestamp(reset_timestamp, tz=UTC)
                raise RateLimitError(
                    f"Rate limit exceeded. Resets at {reset_at.isoformat()}",
                    reset_at=reset_at,
                )
            raise AuthenticationError("Access forbidden - check token permissions")

        if response.status_code == 404:
            raise NotFoundError(f"Repository not found or no access: {path}")

        raise GitHubAPIError(
            f"GitHub API error {response.status_code} {response.reason_phrase}: {path}"
        )

    async def get_releases(self, owner: str, repo: str, per_page: int = 100) -> list[dict]:
        """Fetch the release list for a repository.

        Args:
            owner: Repository owner/organization.
            repo: Repository name.
            per_page: Number of releases to fetch (max 100).

        Returns:
            Raw release objects in API order (newest first).
        """
        data = await self._get(f"/repos/{owner}/{repo}/releases", params={"per_page": per_page})
        if not isinstance(data, list):
            raise GitHubAPIError(f"Unexpected releases response for {owner}/{repo}")
        logger.debug("Fetched %d releases for %s/%s", len(data), owner, repo)
        return data

    async def get_repository(self, owner: str, repo: str) -> dict:
        """Fetch repository metadata.

        Args:
            owner: Repository owner/organization.
            repo: Repository name.

        Returns:
            Raw repository object.
        """
        data = await self._get(f"/repos/{owner}/{repo}")
        if not isinstance(data, dict):
            raise GitHubAPIError(f"Unexpected repository response for {owner}/{repo}")
        return data
