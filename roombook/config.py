"""
Centralized configuration with environment variable overrides.

Engine-level knobs (timezone, alternative-date scan horizon, cache TTL,
notification retry pacing) are configurable here. Business rules that
administrators edit at runtime live in the settings documents instead
(see ``roombook.schemas.settings_schema``).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Used when neither the current nor a legacy field carries a value, and as
# the field default of a fresh schedule.
DEFAULT_MAX_DURATION = 240


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SchedulingConfig:
    """Availability engine settings."""

    timezone: str = os.getenv("ROOMBOOK_TIMEZONE", "Asia/Manila")
    alternatives_horizon_days: int = _safe_int("ALTERNATIVES_HORIZON_DAYS", "14")
    alternatives_max_suggestions: int = _safe_int("ALTERNATIVES_MAX_SUGGESTIONS", "5")
    alternatives_cache_ttl_sec: float = _safe_float("ALTERNATIVES_CACHE_TTL", "60")
    alternatives_workers: int = _safe_int("ALTERNATIVES_WORKERS", "4")
    max_attendees: int = _safe_int("MAX_ATTENDEES", "1000")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class NotificationConfig:
    """Pacing for the notification queue."""

    retry_delay_sec: float = _safe_float("NOTIFICATION_RETRY_DELAY", "5")
    max_concurrent: int = _safe_int("NOTIFICATION_MAX_CONCURRENT", "10")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    system_name: str = os.getenv("SYSTEM_NAME", "Reservation System")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    try:
        ZoneInfo(config.scheduling.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"ROOMBOOK_TIMEZONE is not a known timezone: {config.scheduling.timezone!r}"
        ) from None
    if config.scheduling.alternatives_horizon_days < 1:
        raise ValueError(
            "ALTERNATIVES_HORIZON_DAYS must be >= 1, "
            f"got {config.scheduling.alternatives_horizon_days}"
        )
    if config.scheduling.alternatives_max_suggestions < 1:
        raise ValueError(
            "ALTERNATIVES_MAX_SUGGESTIONS must be >= 1, "
            f"got {config.scheduling.alternatives_max_suggestions}"
        )
    if config.scheduling.alternatives_cache_ttl_sec < 0:
        raise ValueError(
            "ALTERNATIVES_CACHE_TTL must be >= 0, "
            f"got {config.scheduling.alternatives_cache_ttl_sec}"
        )
    if config.scheduling.alternatives_workers < 1:
        raise ValueError(
            f"ALTERNATIVES_WORKERS must be >= 1, got {config.scheduling.alternatives_workers}"
        )
    if config.scheduling.max_attendees < 1:
        raise ValueError(
            f"MAX_ATTENDEES must be >= 1, got {config.scheduling.max_attendees}"
        )
    if config.notifications.retry_delay_sec < 0:
        raise ValueError(
            "NOTIFICATION_RETRY_DELAY must be >= 0, "
            f"got {config.notifications.retry_delay_sec}"
        )
    if config.notifications.max_concurrent < 1:
        raise ValueError(
            "NOTIFICATION_MAX_CONCURRENT must be >= 1, "
            f"got {config.notifications.max_concurrent}"
        )


def resolve_setting(
    data: dict[str, Any],
    names: Iterable[str],
    default: Any = None,
) -> Any:
    """Return the first non-empty value among ``names`` in ``data``.

    ``names`` lists the current field name first, then legacy names in the
    order they should win. Falls back to ``default`` when none is set.
    """
    for name in names:
        value = data.get(name)
        if value not in (None, "", []):
            return value
    return default


def resolve_max_duration(data: dict[str, Any]) -> int:
    """Resolve the effective maximum duration from any settings shape.

    Precedence: ``defaultMaxDuration``, then the largest of
    ``maxDurationOptions``, then ``maxDuration``, then DEFAULT_MAX_DURATION.
    Snake-case spellings are accepted alongside each name.
    """
    explicit = resolve_setting(data, ("defaultMaxDuration", "default_max_duration"))
    if explicit:
        return int(explicit)
    options: Optional[list] = resolve_setting(
        data, ("maxDurationOptions", "max_duration_options")
    )
    if options:
        return int(max(options))
    return int(resolve_setting(data, ("maxDuration", "max_duration"), DEFAULT_MAX_DURATION))


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info(
        "Configuration loaded for '%s' (timezone %s)",
        config.system_name, config.scheduling.timezone,
    )
    return config


# Singleton instance
settings = load_config()
