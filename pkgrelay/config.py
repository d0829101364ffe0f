"""Runtime configuration: env-driven via pydantic-settings.

Reads from a .env file and PKGRELAY_* environment variables.

Examples
--------
Override via environment::

    export PKGRELAY_BACKEND_BASE_URL=https://package-engine.quilttest.com
    export PKGRELAY_BACKEND_API_PREFIX=/package-engine
    export PKGRELAY_BACKEND_TIMEOUT_SECONDS=5
    export PKGRELAY_RULES_PATH=/etc/pkgrelay/rules.toml
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pkgrelay.models.config import DuplicatePolicy, RegistryConfig, load_registry_config


class RelaySettings(BaseSettings):
    """Process configuration with environment variable overrides."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PKGRELAY_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Backend (package engine container listens on 3000)
    backend_base_url: str = "http://localhost:3000"
    backend_api_prefix: str = ""
    backend_timeout_seconds: float = Field(default=30.0, gt=0)

    # Notification topic
    notify_timeout_seconds: float = Field(default=10.0, gt=0)
    notification_dir: Path = Path(".pkgrelay/notifications")
    notify_webhook_url: str | None = None

    # Rules
    event_source: str = "quilt.pkg"
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.REJECT
    rules_path: Path | None = None

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    def registry_config(self) -> RegistryConfig:
        """The rule table: the rules file when configured, else the defaults.

        ``event_source`` and ``duplicate_policy`` from the environment apply
        only to the built-in defaults; a rules file carries its own.
        """
        if self.rules_path is not None:
            return load_registry_config(self.rules_path)
        return RegistryConfig(
            event_source=self.event_source,
            duplicate_policy=self.duplicate_policy,
        )
