"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class ThresholdBandSetting(BaseModel):
    """One budget threshold band as expressed in configuration."""

    percent: int = Field(gt=0, description="Percentage of the allocation that triggers the band")
    type: str = Field(min_length=1, description="Notification type emitted for the band")
    priority: str = Field(min_length=1, description="Priority of the emitted notification")


DEFAULT_THRESHOLD_BANDS = [
    ThresholdBandSetting(percent=75, type="BUDGET_WARNING", priority="MEDIUM"),
    ThresholdBandSetting(percent=100, type="BUDGET_EXCEEDED", priority="HIGH"),
]


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./mint_alerts.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used to localize timestamps and budget periods",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )

    queue_max_attempts: int = Field(
        default=3, gt=0, description="Maximum delivery attempts per notification"
    )
    queue_backoff_base_ms: int = Field(
        default=1000, gt=0, description="Base delay for exponential retry backoff"
    )
    queue_rate_limit_max: int = Field(
        default=1000, gt=0, description="Maximum dispatch attempts per rate-limit window"
    )
    queue_rate_limit_window_ms: int = Field(
        default=5000, gt=0, description="Length of the rate-limit window"
    )
    delivery_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Upper bound for a single channel delivery attempt"
    )
    claim_lease_seconds: int = Field(
        default=60, gt=0, description="Time a worker owns a claimed notification"
    )

    dispatcher_enabled: bool = Field(
        default=False, description="Start the dispatcher worker pool with the API process"
    )
    dispatcher_workers: int = Field(default=1, gt=0)
    dispatcher_poll_interval_seconds: float = Field(default=1.0, gt=0)
    dispatcher_batch_size: int = Field(default=50, gt=0)

    budget_threshold_bands: list[ThresholdBandSetting] = Field(
        default_factory=lambda: list(DEFAULT_THRESHOLD_BANDS),
        description="Ordered budget threshold bands as a JSON list",
    )

    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending transactional emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )

    fcm_project_id: str | None = Field(
        default=None, description="Firebase project that owns the push credentials"
    )
    fcm_access_token: str | None = Field(
        default=None, description="OAuth2 bearer token for the FCM HTTP v1 API"
    )
    fcm_endpoint: str = Field(
        default="https://fcm.googleapis.com/v1/projects/{project_id}/messages:send",
        description="FCM send endpoint template",
    )

    @field_validator("budget_threshold_bands")
    @classmethod
    def _validate_bands(
        cls, bands: list[ThresholdBandSetting]
    ) -> list[ThresholdBandSetting]:
        if not bands:
            raise ValueError("BUDGET_THRESHOLD_BANDS must contain at least one band")
        percents = [band.percent for band in bands]
        if len(set(percents)) != len(percents):
            raise ValueError("BUDGET_THRESHOLD_BANDS percentages must be unique")
        return sorted(bands, key=lambda band: band.percent)

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = [
    "DEFAULT_THRESHOLD_BANDS",
    "Settings",
    "ThresholdBandSetting",
    "get_settings",
    "reset_settings_cache",
]
