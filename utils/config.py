"""Configuration management utilities for BankIt.

Provides:
- a ``Config`` base class exposing the settings as a plain dict
- ``AppConfig``, the application settings read from environment variables
"""

import os
from pathlib import Path
from typing import Any, Dict


class Config:
    """Base configuration class for organizing application settings."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all public config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}


def normalize_context_path(raw: str) -> str:
    """Return *raw* with exactly one leading and one trailing slash.

    ``""`` and ``"/"`` both give ``"/"``; ``"bankit"`` gives ``"/bankit/"``.
    """
    stripped = raw.strip().strip("/")
    if not stripped:
        return "/"
    return f"/{stripped}/"


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the application works out of the
    box without any configuration.

    Environment variables:
        APP_DB_PATH: Path to the SQLite database file (default: bankit.sqlite)
        APP_PORT: API server port (default: 8000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format — "text" or "json" (default: text)
        APP_CONTEXT_PATH: URL prefix the endpoints are mounted under (default: /)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
    """

    def __init__(self) -> None:
        super().__init__()
        self.db_path = Path(os.getenv("APP_DB_PATH", "bankit.sqlite"))
        self.api_port = int(os.getenv("APP_PORT", "8000"))
        self.api_host = os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = os.getenv("APP_LOG_FORMAT", "text")
        self.context_path = normalize_context_path(os.getenv("APP_CONTEXT_PATH", "/"))
        raw_origins = os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
