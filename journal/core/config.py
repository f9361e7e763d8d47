"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or a .env file.

Settings are immutable: a configuration reload builds a new
``Settings`` instance instead of mutating the live one
(see ``journal.core.resources``).
"""

from __future__ import annotations

from typing import Literal, NamedTuple
from urllib.parse import urlparse
from uuid import UUID

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from journal.core.errors import ConfigurationError
from journal.models.note import EMBEDDING_DIMENSION

# Owner of every note until multi-user support lands
DEFAULT_OWNER_ID = UUID("02a0aa58-b88a-46f1-9799-f103e04c0b72")


class ConfigIssue(NamedTuple):
    """A single validation problem, keyed by environment variable name."""

    field: str
    message: str


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (postgres store):
        DATABASE_URL

    Optional env vars:
        OLLAMA_BASE_URL (http://localhost:11434), EMBEDDING_MODEL
        (nomic-embed-text), CHAT_MODEL (llama3.2), VECTOR_DIMENSIONS (768),
        VECTOR_UPDATE_INTERVAL (60s), SYNC_BATCH_SIZE (10),
        RETRIEVAL_TOP_K (5), ENABLE_VECTOR_SEARCH (True), LOG_LEVEL (INFO)
    """

    PROJECT_NAME: str = "Journal"
    APP_ENV: str = "development"

    # Storage
    DATABASE_URL: str = ""
    STORE_BACKEND: Literal["postgres", "memory"] = "postgres"
    OWNER_ID: UUID = DEFAULT_OWNER_ID

    # Model serving (Ollama)
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    EMBEDDING_MODEL: str = "nomic-embed-text"
    CHAT_MODEL: str = "llama3.2"
    OLLAMA_TIMEOUT: float = 30.0
    VECTOR_DIMENSIONS: int = EMBEDDING_DIMENSION
    VERIFY_EMBEDDING_DIMENSION: bool = False

    # Sync + retrieval
    ENABLE_VECTOR_SEARCH: bool = True
    VECTOR_UPDATE_INTERVAL: float = 60.0
    SYNC_BATCH_SIZE: int = 10
    RETRIEVAL_TOP_K: int = 5

    # HTTP
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:8080"

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
        frozen=True,
    )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """DATABASE_URL rewritten for the asyncpg driver."""
        url = self.DATABASE_URL
        for scheme in ("postgresql://", "postgres://"):
            if url.startswith(scheme):
                return "postgresql+asyncpg://" + url[len(scheme) :]
        return url

    @property
    def CORS_ORIGIN_LIST(self) -> list[str]:
        """CORS_ORIGINS split on commas, blanks dropped."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    def validate_config(self) -> list[ConfigIssue]:
        """
        Check the settings for problems that must stop startup.

        Returns:
            Every issue found (empty list when the configuration is valid).
        """
        issues: list[ConfigIssue] = []

        if self.STORE_BACKEND == "postgres":
            if not self.DATABASE_URL:
                issues.append(ConfigIssue("DATABASE_URL", "Database URL is required"))
            else:
                problem = _check_database_url(self.DATABASE_URL)
                if problem:
                    issues.append(ConfigIssue("DATABASE_URL", problem))

        if self.ENABLE_VECTOR_SEARCH:
            if not self.OLLAMA_BASE_URL:
                issues.append(
                    ConfigIssue(
                        "OLLAMA_BASE_URL",
                        "Ollama base URL is required when vector search is enabled",
                    )
                )
            else:
                parsed = urlparse(self.OLLAMA_BASE_URL)
                if parsed.scheme not in ("http", "https") or not parsed.netloc:
                    issues.append(
                        ConfigIssue("OLLAMA_BASE_URL", "Invalid Ollama URL format")
                    )
            if not self.EMBEDDING_MODEL:
                issues.append(
                    ConfigIssue(
                        "EMBEDDING_MODEL",
                        "Embedding model is required when vector search is enabled",
                    )
                )
            if not self.CHAT_MODEL:
                issues.append(
                    ConfigIssue(
                        "CHAT_MODEL",
                        "Chat model is required when vector search is enabled",
                    )
                )

        if self.VECTOR_DIMENSIONS != EMBEDDING_DIMENSION:
            issues.append(
                ConfigIssue(
                    "VECTOR_DIMENSIONS",
                    f"Must match the notes.embedding column ({EMBEDDING_DIMENSION}), "
                    f"got {self.VECTOR_DIMENSIONS}",
                )
            )
        if self.VECTOR_UPDATE_INTERVAL <= 0:
            issues.append(ConfigIssue("VECTOR_UPDATE_INTERVAL", "Must be positive"))
        if self.SYNC_BATCH_SIZE < 1:
            issues.append(ConfigIssue("SYNC_BATCH_SIZE", "Must be at least 1"))
        if self.RETRIEVAL_TOP_K < 1:
            issues.append(ConfigIssue("RETRIEVAL_TOP_K", "Must be at least 1"))
        if self.OLLAMA_TIMEOUT <= 0:
            issues.append(ConfigIssue("OLLAMA_TIMEOUT", "Must be positive"))

        return issues


def _check_database_url(url: str) -> str | None:
    """Return a description of what is wrong with ``url``, or None."""
    parsed = urlparse(url)
    if parsed.scheme not in ("postgresql", "postgres"):
        return "Database URL must use postgresql:// or postgres:// scheme"
    if not parsed.hostname:
        return "Database host is required"
    if parsed.path in ("", "/"):
        return "Database name is required"
    return None


def format_issues(issues: list[ConfigIssue]) -> str:
    """Render validation issues for a log line or an error message."""
    lines = ["Configuration errors found:"]
    lines.extend(f"  - {issue.field}: {issue.message}" for issue in issues)
    return "\n".join(lines)


def ensure_valid(settings: Settings) -> Settings:
    """
    Validate settings, raising on the first sign of trouble.

    Raises:
        ConfigurationError: With every issue listed, if any were found.
    """
    issues = settings.validate_config()
    if issues:
        raise ConfigurationError(
            format_issues(issues),
            issues=[f"{i.field}: {i.message}" for i in issues],
        )
    return settings


def load_settings() -> Settings:
    """
    Read settings from the environment (and .env) without validating them.

    Raises:
        ConfigurationError: If a variable can't be parsed into its field type.
    """
    try:
        return Settings()
    except ValidationError as e:
        issues = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ConfigurationError("Configuration errors found", issues=issues) from e
