"""Configuration management for ghrelstats."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when required settings are missing."""


class Settings(BaseSettings):
    """Application settings from environment variables and the .env file.

    The GitHub coordinates use the plain ``GITHUB_*`` names that CI runners
    already export; everything else is prefixed with ``RELSTATS_``.
    """

    model_config = SettingsConfigDict(
        env_prefix="RELSTATS_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    github_token: str = Field(
        default="",
        validation_alias=AliasChoices("GITHUB_TOKEN", "RELSTATS_GITHUB_TOKEN"),
    )
    github_owner: str = Field(
        default="",
        validation_alias=AliasChoices("GITHUB_OWNER", "RELSTATS_GITHUB_OWNER"),
    )
    github_repo: str = Field(
        default="",
        validation_alias=AliasChoices("GITHUB_REPO", "RELSTATS_GITHUB_REPO"),
    )
    data_dir: Path = Path("data")
    logs_dir: Path = Path("logs")
    docs_dir: Path = Path("docs")
    refresh_minutes: int = 30
    timeout: float = 30.0

    @property
    def repository(self) -> str:
        """Repository identifier in ``owner/name`` form."""
        return f"{self.github_owner}/{self.github_repo}"

    def missing_settings(self) -> list[str]:
        """Names of required environment variables that are not set."""
        missing = []
        if not self.github_owner:
            missing.append("GITHUB_OWNER")
        if not self.github_repo:
            missing.append("GITHUB_REPO")
        return missing

    def require_repository(self) -> None:
        """Ensure the target repository is configured.

        Raises:
            ConfigurationError: If owner or repository name is missing.
        """
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(
                f"Missing environment variables: {', '.join(missing)} "
                "(set them in the environment or a .env file)"
            )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings loaded from environment and .env file.
    """
    return Settings()
