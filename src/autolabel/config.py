"""Application configuration with environment variable loading."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from autolabel.core.commands import SpanMode
from autolabel.core.errors import ConfigurationError
from autolabel.core.events import ReportReason
from autolabel.core.retry import RetryPolicy
from autolabel.core.rules import AutoBanRule, parse_autoban_rules

# Comma-separated list read verbatim from the environment
CommaList = Annotated[list[str], NoDecode]

NOTIFICATION_METHODS = frozenset({"dm"})


def split_commas(value: Any) -> Any:
    """Split a comma-separated string into trimmed, non-empty items."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


def parse_notification_preferences(config: str) -> dict[str, str]:
    """Parse ``did:method`` pairs into a DID -> method mapping.

    The method is taken after the last colon, since DIDs contain colons.
    Entries with an unknown method are ignored.
    """
    preferences: dict[str, str] = {}
    for entry in config.split(","):
        did, sep, method = entry.strip().rpartition(":")
        if sep and did and method in NOTIFICATION_METHODS:
            preferences[did] = method
    return preferences


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables or a .env file.
    Fields without a default are required; the process does not start
    without them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Labeler identity (moderation API session)
    labeler_username: str = Field(validation_alias="BSKY_LABELER_USERNAME")
    labeler_password: str = Field(validation_alias="BSKY_LABELER_PASSWORD")
    labeler_did: str = Field(validation_alias="BSKY_LABELER_DID")

    # DM-sending account (notification session)
    dm_username: str = Field(validation_alias="BSKY_DM_USERNAME")
    dm_password: str = Field(validation_alias="BSKY_DM_PASSWORD")

    # Services
    ozone_url: str
    service_url: str = Field(default="https://bsky.social", validation_alias="BSKY_SERVICE_URL")
    chat_service_url: str = "https://api.bsky.chat"
    http_timeout: float = 30.0

    # Polling
    polling_seconds: int
    poll_page_size: int = 100
    history_limit: int = 100

    # Moderators and labels
    whitelisted_moderators: CommaList
    valid_labels: CommaList
    mod_labels: CommaList = Field(default_factory=list)
    moderator_notifications: str = ""
    autoban_rules: Annotated[list[AutoBanRule], NoDecode] = Field(default_factory=list)
    command_span_mode: SpanMode = "keyword"

    # Labels implied by the report reason a reporter selected
    report_type_misleading: CommaList = Field(default_factory=list)
    report_type_spam: CommaList = Field(default_factory=list)
    report_type_sexual: CommaList = Field(default_factory=list)
    report_type_rude: CommaList = Field(default_factory=list)
    report_type_violation: CommaList = Field(default_factory=list)
    report_type_other: CommaList = Field(default_factory=list)

    # Label writes
    label_max_attempts: int = 3
    label_retry_base_delay: float = 1.0
    label_retry_max_delay: float = 60.0

    # Persisted state (cursor, processed reports, notified reports)
    state_dir: Path = Path("/data")

    # API
    api_host: str = "0.0.0.0"  # noqa: S104 - Intentional for Docker container binding
    api_port: int = 8000

    # Observability
    logfire_token: str | None = None
    log_level: str = "INFO"

    # App
    environment: str = "development"
    version: str = "0.1.0"

    @field_validator(
        "whitelisted_moderators",
        "valid_labels",
        "mod_labels",
        "report_type_misleading",
        "report_type_spam",
        "report_type_sexual",
        "report_type_rude",
        "report_type_violation",
        "report_type_other",
        mode="before",
    )
    @classmethod
    def validate_comma_list(cls, v: Any) -> Any:
        """Accept comma-separated strings for list settings."""
        return split_commas(v)

    @field_validator("autoban_rules", mode="before")
    @classmethod
    def validate_autoban_rules(cls, v: Any) -> Any:
        """Parse ``label:threshold:otherCap`` rules, failing fast on bad syntax."""
        if not isinstance(v, str):
            return v
        try:
            return parse_autoban_rules(v)
        except ConfigurationError as e:
            raise ValueError(e.message) from e

    @field_validator("polling_seconds")
    @classmethod
    def validate_polling_seconds(cls, v: int) -> int:
        """Validate the poll interval is positive."""
        if v < 1:
            msg = "polling_seconds must be at least 1"
            raise ValueError(msg)
        return v

    @field_validator("poll_page_size", "history_limit")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        """Validate query page sizes are within the backend's bounds."""
        if not 1 <= v <= 100:
            msg = "page sizes must be between 1 and 100"
            raise ValueError(msg)
        return v

    @field_validator("label_max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        """Validate at least one attempt is made."""
        if v < 1:
            msg = "label_max_attempts must be at least 1"
            raise ValueError(msg)
        return v

    @field_validator("label_retry_base_delay")
    @classmethod
    def validate_retry_base_delay(cls, v: float) -> float:
        """Validate retry base delay is positive."""
        if v <= 0:
            msg = "label_retry_base_delay must be positive"
            raise ValueError(msg)
        return v

    @field_validator("label_retry_max_delay")
    @classmethod
    def validate_retry_max_delay(cls, v: float) -> float:
        """Validate retry max delay is reasonable."""
        if v <= 0:
            msg = "label_retry_max_delay must be positive"
            raise ValueError(msg)
        if v > 3600:
            msg = "label_retry_max_delay should not exceed 3600 seconds (1 hour)"
            raise ValueError(msg)
        return v

    @property
    def notification_preferences(self) -> dict[str, str]:
        """Moderator DID -> notification method."""
        return parse_notification_preferences(self.moderator_notifications)

    @property
    def moderation_labels(self) -> list[str]:
        """Labels that count toward auto-ban points.

        Defaults to the valid labels minus the escalation labels.
        """
        if self.mod_labels:
            return list(self.mod_labels)
        escalation = {rule.label for rule in self.autoban_rules}
        return [label for label in self.valid_labels if label not in escalation]

    @property
    def report_type_labels(self) -> dict[str, list[str]]:
        """Report reason code -> labels applied by default."""
        return {
            ReportReason.MISLEADING.value: list(self.report_type_misleading),
            ReportReason.SPAM.value: list(self.report_type_spam),
            ReportReason.SEXUAL.value: list(self.report_type_sexual),
            ReportReason.RUDE.value: list(self.report_type_rude),
            ReportReason.VIOLATION.value: list(self.report_type_violation),
            ReportReason.OTHER.value: list(self.report_type_other),
        }

    def retry_policy(self) -> RetryPolicy:
        """Build the label-write retry policy."""
        return RetryPolicy(
            max_attempts=self.label_max_attempts,
            base_delay=self.label_retry_base_delay,
            max_delay=self.label_retry_max_delay,
        )


_default_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the current settings instance.

    Returns the configured settings instance, creating one from the
    environment if needed.

    Returns:
        The current Settings instance

    Raises:
        pydantic.ValidationError: If required settings are missing or invalid
    """
    global _default_settings
    if _default_settings is None:
        _default_settings = Settings()  # type: ignore[call-arg]
    return _default_settings


def configure_settings(settings: Settings | None) -> None:
    """Configure the settings instance.

    Use this function to inject custom settings, particularly useful for testing.
    Pass None to reset to default behavior.

    Args:
        settings: Custom Settings instance, or None to reset

    Example:
        # In tests
        configure_settings(Settings(ozone_url="https://ozone.example", ...))
        try:
            # ... run tests
        finally:
            configure_settings(None)  # Reset
    """
    global _default_settings
    _default_settings = settings
