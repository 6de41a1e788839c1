"""
Configuration management using environment variables.
Handles all monitor settings with validation and defaults.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from catalog.models import TrackedCollection
from scheduler.models import NotifierConfig, ReaderConfig, SchedulerConfig
from utilities.exceptions import ConfigurationError

CATALOG_BASE_URL = "https://sheinindia.in/sheinverse/c/sverse-5939-37961"

DEFAULT_COLLECTIONS = [
    TrackedCollection(
        key="MEN_ALL",
        label="MEN (All Products)",
        url=f"{CATALOG_BASE_URL}?query=%3Arelevance%3Agenderfilter%3AMen",
    ),
    TrackedCollection(
        key="MEN_FILTERED",
        label="MEN (L, XL, 28, 30, 32)",
        url=(
            f"{CATALOG_BASE_URL}?query=%3Arelevance%3Agenderfilter%3AMen"
            "%3Averticalsizegroupformat%3AL%3Averticalsizegroupformat%3AXL"
            "%3Averticalsizegroupformat%3A28%3Averticalsizegroupformat%3A30"
            "%3Averticalsizegroupformat%3A32&gridColumns=5"
        ),
    ),
]


class MonitorConfig(BaseSettings):
    """
    Configuration class for monitor settings.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Telegram
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    telegram_api_base: str = "https://api.telegram.org"

    # Tracked collections (JSON list when set through the environment)
    collections: List[TrackedCollection] = DEFAULT_COLLECTIONS

    # Snapshot persistence
    snapshot_file: str = "stock.json"

    # Scheduling
    check_interval_minutes: float = 10
    startup_delay_seconds: float = 5
    timezone: str = "Asia/Kolkata"

    # Catalog reader
    read_timeout_seconds: float = 180
    read_retries: int = 2
    read_retry_delay: float = 6.0
    collection_cooldown_seconds: float = 5.0
    request_timeout: float = 30

    # Notification dispatcher
    max_message_length: int = 3800
    send_delay_seconds: float = 0.3
    send_retries: int = 2
    send_retry_delay: float = 2.0
    send_timeout: float = 15
    link_preview: bool = False
    category_send_threshold: int = 5
    max_links_per_category: int = 8
    summary_link_limit: int = 12
    notify_unchanged: bool = True
    report_removed_items: bool = False

    # Liveness probe
    enable_liveness: bool = True
    host: str = "0.0.0.0"
    port: int = 10000

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None
    debug: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"  # Ignore extra fields from .env
    }

    @field_validator('check_interval_minutes')
    @classmethod
    def validate_interval(cls, v):
        """Ensure the interval is at least one minute."""
        if v < 1:
            raise ValueError('check_interval_minutes must be at least 1')
        return v

    @field_validator('max_message_length')
    @classmethod
    def validate_message_length(cls, v):
        """Telegram rejects messages over 4096 characters."""
        if v < 1 or v > 4096:
            raise ValueError('max_message_length must be between 1 and 4096')
        return v

    @field_validator('read_retries', 'send_retries')
    @classmethod
    def validate_retries(cls, v):
        """Ensure retry budgets are reasonable."""
        if v < 0 or v > 10:
            raise ValueError('retry budgets must be between 0 and 10')
        return v

    @field_validator(
        'startup_delay_seconds', 'read_retry_delay', 'collection_cooldown_seconds',
        'send_delay_seconds', 'send_retry_delay'
    )
    @classmethod
    def validate_delays(cls, v):
        """Ensure delays are non-negative."""
        if v < 0:
            raise ValueError('delays cannot be negative')
        return v

    @field_validator('collections')
    @classmethod
    def validate_collections(cls, v):
        """Ensure collection keys are unique."""
        keys = [collection.key for collection in v]
        if len(keys) != len(set(keys)):
            raise ValueError('collection keys must be unique')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_snapshot_file_path(self) -> Path:
        """Get snapshot file path as Path object."""
        return Path(self.snapshot_file)

    def is_telegram_configured(self) -> bool:
        """Check that both Telegram credentials are present."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def require_telegram(self) -> None:
        """
        Raise if Telegram credentials are missing.

        Raises:
            ConfigurationError: If the bot token or chat id is empty
        """
        if not self.is_telegram_configured():
            raise ConfigurationError(
                "TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID must be set"
            )

    def to_scheduler_config(self) -> SchedulerConfig:
        """Build the immutable pipeline configuration from these settings."""
        return SchedulerConfig(
            interval_minutes=self.check_interval_minutes,
            startup_delay_seconds=self.startup_delay_seconds,
            timezone=self.timezone,
            collections=self.collections,
            read_timeout_seconds=self.read_timeout_seconds,
            collection_cooldown_seconds=self.collection_cooldown_seconds,
            reader=ReaderConfig(
                request_timeout=self.request_timeout,
                max_retries=self.read_retries,
                retry_delay=self.read_retry_delay,
            ),
            notifier=NotifierConfig(
                max_message_length=self.max_message_length,
                send_delay_seconds=self.send_delay_seconds,
                retry_budget=self.send_retries,
                retry_delay_seconds=self.send_retry_delay,
                request_timeout=self.send_timeout,
                link_preview=self.link_preview,
                category_send_threshold=self.category_send_threshold,
                max_links_per_category=self.max_links_per_category,
                summary_link_limit=self.summary_link_limit,
                notify_unchanged=self.notify_unchanged,
                report_removed_items=self.report_removed_items,
            ),
        )


# Global configuration instance
config = MonitorConfig()
