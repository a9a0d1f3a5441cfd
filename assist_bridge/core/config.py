from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing."""


class Settings(BaseSettings):
    """Application configuration read from environment variables."""

    app_name: str = Field(default="Assist Bridge")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s [trace=%(trace_id)s span=%(span_id)s] %(message)s"
    )
    # Per-logger overrides, e.g. LOG_LEVELS='{"assist_bridge.tickets": "DEBUG"}'
    log_levels: dict[str, str] = Field(default_factory=lambda: {"httpx": "WARNING", "httpcore": "WARNING"})

    # Slack configuration
    slack_signing_secret: str = Field(default="")
    slack_bot_token: str = Field(default="")
    slack_channel_id: str = Field(default="")
    slack_api_url: str = Field(default="https://slack.com/api")
    slack_answer_command: str = Field(default="/answer")
    notify_timeout_seconds: float = Field(default=10.0)

    # Ticket lifecycle
    wait_default_timeout_seconds: float = Field(default=60.0)
    wait_min_timeout_seconds: float = Field(default=1.0)
    wait_max_timeout_seconds: float = Field(default=120.0)
    ticket_ttl_seconds: float = Field(default=600.0)
    sweep_interval_seconds: float = Field(default=30.0)

    # Observability configuration
    otel_enabled: bool = Field(default=False)
    otel_service_name: str = Field(default="assist-bridge")
    otel_exporter_otlp_endpoint: str | None = Field(default=None)
    otel_exporter_otlp_headers: dict[str, str] = Field(default_factory=dict)

    class Config:
        env_file = ".env"
        case_sensitive = False

    def missing_secrets(self) -> list[str]:
        """Return the names of required Slack settings that are unset."""

        required = {
            "SLACK_SIGNING_SECRET": self.slack_signing_secret,
            "SLACK_BOT_TOKEN": self.slack_bot_token,
            "SLACK_CHANNEL_ID": self.slack_channel_id,
        }
        return [name for name, value in required.items() if not value]

    def ensure_configured(self) -> None:
        missing = self.missing_secrets()
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()
