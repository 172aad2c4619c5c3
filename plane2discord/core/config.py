"""Configuration management using Pydantic Settings."""

from typing import ClassVar

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from plane2discord.shared.exceptions import ConfigError

# Singleton instance
_settings: "Settings | None" = None


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Relay settings loaded from environment variables.

    Everything defaults to empty so the process can start far enough to
    report what is missing; `validate_required()` is the startup gate.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Inbound webhook
    webhook_secret: str = ""
    server_host: str = "0.0.0.0"
    server_port: int = 3000

    # Discord
    discord_webhook_url: str = ""

    # Plane
    plane_api_key: str = ""
    plane_api_base_url: str = ""
    plane_app_url: str = ""
    plane_hostname: str = ""

    # Object storage for re-hosted images (all optional as a group)
    s3_bucket_name: str = ""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_region: str = ""
    s3_endpoint: str = ""

    # Database configuration (image cache)
    db_host: str = "postgres"
    db_port: int = 5432
    db_name: str = "plane2discord"
    db_user: str = "plane2discord"
    db_password: str = ""

    # Workflow state names that recolor "updated" notifications
    completed_state_names: str = "done,completed"
    in_progress_state_names: str = "in-progress,in progress"

    # Application settings
    http_timeout_seconds: float = 15.0
    log_level: str = "INFO"
    app_version: str = "0.1.0"
    environment: str = "development"

    VALID_LOG_LEVELS: ClassVar[set[str]] = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        v_upper = v.upper()
        if v_upper not in cls.VALID_LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level: {v}. Must be one of {', '.join(sorted(cls.VALID_LOG_LEVELS))}"
            )
        return v_upper

    @field_validator("server_port")
    @classmethod
    def validate_server_port(cls, v: int) -> int:
        """Validate the listening port is a usable TCP port."""
        if not 1 <= v <= 65535:
            raise ConfigError(f"Server port must be between 1 and 65535, got {v}")
        return v

    @field_validator("http_timeout_seconds")
    @classmethod
    def validate_http_timeout(cls, v: float) -> float:
        """Validate outbound HTTP timeout (0-300 seconds, exclusive of 0)."""
        if not 0 < v <= 300:
            raise ConfigError(f"HTTP timeout must be between 0 and 300 seconds, got {v}")
        return v

    @field_validator("plane_api_base_url", "plane_app_url", "s3_endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs so paths can be appended with a single slash."""
        return v.rstrip("/")

    @property
    def browse_base_url(self) -> str:
        """Base URL for human-facing work item links.

        Falls back to the API base URL, which is the same host on
        self-hosted Plane installs.
        """
        return self.plane_app_url or self.plane_api_base_url

    @property
    def completed_states_list(self) -> list[str]:
        """Parse comma-separated completion state names (lowercased)."""
        return [name.lower() for name in _split_csv(self.completed_state_names)]

    @property
    def in_progress_states_list(self) -> list[str]:
        """Parse comma-separated in-progress state names (lowercased)."""
        return [name.lower() for name in _split_csv(self.in_progress_state_names)]

    @property
    def image_store_enabled(self) -> bool:
        """Whether every S3 setting needed to re-host images is present."""
        return all(
            (
                self.s3_bucket_name,
                self.s3_access_key_id,
                self.s3_secret_access_key,
                self.s3_region,
                self.s3_endpoint,
            )
        )

    def missing_required(self) -> list[str]:
        """List required settings that are empty.

        Returns:
            Environment variable names (uppercase) that must be set
        """
        required = {
            "WEBHOOK_SECRET": self.webhook_secret,
            "DISCORD_WEBHOOK_URL": self.discord_webhook_url,
            "PLANE_API_KEY": self.plane_api_key,
            "PLANE_API_BASE_URL": self.plane_api_base_url,
        }
        return [name for name, value in required.items() if not value]

    def validate_required(self) -> None:
        """Fail fast when the relay cannot authenticate or deliver.

        Raises:
            ConfigError: If any required setting is empty
        """
        missing = self.missing_required()
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")


def get_settings() -> Settings:
    """Get or create the global Settings instance (cached singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
