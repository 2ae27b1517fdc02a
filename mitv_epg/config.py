from datetime import timedelta
import logging

from croniter import croniter
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mitv_epg.services.listing_types import CutoffPolicy
from mitv_epg.utils.timezone import resolve_zone


logger = logging.getLogger(__name__)


def _parse_offsets(value: str) -> tuple[int, int]:
    """Parse 'start,end' day offsets like '-1,2'."""
    parts = [part.strip() for part in value.split(",") if part.strip()]
    if len(parts) != 2:
        raise ValueError(f"date_window must be 'start,end', got '{value}'")
    try:
        return int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise ValueError(f"date_window offsets must be integers, got '{value}'") from exc


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    channels_file: str = "./channels.xml"
    output_path: str = "./data/epg.xml"
    source_base_url: str = "https://mi.tv/br/async/channel/"
    site_timezone: str = "UTC"
    output_timezone: str = "UTC"
    title_lang: str = "pt"
    generator_name: str = "EPG Generator"

    cutoff_hour: int = 3  # Listings run past midnight until this hour
    date_window: str = "-1,2"  # Day offsets: yesterday through the day after tomorrow
    fallback_duration_minutes: int = 60
    coverage_gap_warning_minutes: int = 180

    grab_cron: str = "0 4 * * *"  # Daily at 4 AM
    grab_misfire_grace_sec: int = 3600
    grab_on_startup: bool = False  # One-off grab right after startup

    max_channel_workers: int = 4
    max_concurrent_requests: int = 4
    request_timeout_sec: float = 30.0
    request_max_retries: int = 3
    request_backoff_factor: float = 2.0
    listing_timeout_sec: int = 120  # Per day listing, 0 disables
    channel_timeout_sec: int = 900  # Per channel, 0 disables
    user_agent: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("date_window")
    @classmethod
    def validate_date_window(cls, value: str) -> str:
        """Validate 'start,end' day offsets are ordered and reasonable."""
        start, end = _parse_offsets(value)
        if start > end:
            raise ValueError(f"date_window start ({start}) must be <= end ({end})")
        if end - start > 30:
            raise ValueError("date_window must span at most 31 days")
        return value

    @field_validator("source_base_url")
    @classmethod
    def validate_source_base_url(cls, value: str) -> str:
        """Validate listing source URL is HTTP/HTTPS."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"Listing source URL must be HTTP/HTTPS: {value}")
        return value if value.endswith("/") else f"{value}/"

    @field_validator("site_timezone", "output_timezone")
    @classmethod
    def validate_timezone(cls, value: str, info) -> str:
        """Validate timezone names."""
        try:
            resolve_zone(value)
        except ValueError as exc:
            raise ValueError(
                f"{info.field_name} must be a valid IANA timezone or 'UTC': {value}"
            ) from exc
        return value

    @field_validator("cutoff_hour")
    @classmethod
    def validate_cutoff_hour(cls, value: int) -> int:
        """Validate cutoff hour is a wall-clock hour."""
        if not 0 <= value <= 23:
            raise ValueError("cutoff_hour must be between 0 and 23")
        return value

    @field_validator(
        "fallback_duration_minutes",
        "coverage_gap_warning_minutes",
        "max_channel_workers",
        "max_concurrent_requests",
        "request_max_retries",
    )
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure integer settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("request_timeout_sec", "request_backoff_factor")
    @classmethod
    def validate_positive_floats(cls, value: float, info) -> float:
        """Ensure floating-point HTTP settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("listing_timeout_sec", "channel_timeout_sec", "grab_misfire_grace_sec")
    @classmethod
    def validate_non_negative_ints(cls, value: int, info) -> int:
        """Ensure timeouts are non-negative (0 disables)."""
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("grab_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @model_validator(mode="after")
    def validate_timeouts(self):
        """Validate cross-field configuration."""
        if (
            self.channel_timeout_sec
            and self.listing_timeout_sec
            and self.channel_timeout_sec < self.listing_timeout_sec
        ):
            raise ValueError(
                "channel_timeout_sec must be >= listing_timeout_sec when both are enabled"
            )
        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Channels File: %s", self.channels_file)
        logger.info("  Output: %s", self.output_path)
        logger.info("  Listing Source: %s", self.source_base_url)
        logger.info("  Site Timezone: %s", self.site_timezone)
        logger.info("  Output Timezone: %s", self.output_timezone)
        logger.info("  Cutoff Hour: %02d:00", self.cutoff_hour)
        logger.info("  Date Window: %+d..%+d days", *self.date_offsets)
        logger.info("  Fallback Duration: %s min", self.fallback_duration_minutes)
        logger.info("  Coverage Gap Warning: %s min", self.coverage_gap_warning_minutes)
        logger.info("  Grab Schedule: %s (on startup: %s)", self.grab_cron, self.grab_on_startup)
        logger.info(
            "  Workers: %s channels, %s concurrent requests",
            self.max_channel_workers,
            self.max_concurrent_requests,
        )
        logger.info(
            "  Timeouts: listing=%s channel=%s",
            f"{self.listing_timeout_sec}s" if self.listing_timeout_sec else "disabled",
            f"{self.channel_timeout_sec}s" if self.channel_timeout_sec else "disabled",
        )

    @property
    def date_offsets(self) -> tuple[int, int]:
        return _parse_offsets(self.date_window)

    @property
    def cutoff_policy(self) -> CutoffPolicy:
        return CutoffPolicy(cutoff_hour=self.cutoff_hour, site_tz=resolve_zone(self.site_timezone))

    @property
    def fallback_duration(self) -> timedelta:
        return timedelta(minutes=self.fallback_duration_minutes)

    @property
    def coverage_gap_warning(self) -> timedelta:
        return timedelta(minutes=self.coverage_gap_warning_minutes)


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
