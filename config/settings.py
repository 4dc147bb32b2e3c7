"""
Application Settings
Loads and validates environment variables
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    app_name: str = field(default_factory=lambda: os.getenv("APP_NAME", "CRAPP"))

    # Database
    database_url: str = field(
        default_factory=lambda: os.getenv("DATABASE_URL", "")
    )
    db_pool_min: int = field(
        default_factory=lambda: int(os.getenv("DB_POOL_MIN", "2"))
    )
    db_pool_max: int = field(
        default_factory=lambda: int(os.getenv("DB_POOL_MAX", "10"))
    )

    # Timezone used for reminder wall-clock times
    timezone: str = field(default_factory=lambda: os.getenv("TZ", "UTC"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))

    # Reminders
    reminder_times: List[str] = field(default_factory=list)
    reminder_title: str = field(
        default_factory=lambda: os.getenv("REMINDER_TITLE", "Daily Symptom Report Reminder")
    )
    reminder_body: str = field(
        default_factory=lambda: os.getenv(
            "REMINDER_BODY", "Don't forget to complete your symptom report for today!"
        )
    )
    dispatch_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("DISPATCH_TIMEOUT_SECONDS", "30"))
    )
    dispatch_concurrency: int = field(
        default_factory=lambda: int(os.getenv("DISPATCH_CONCURRENCY", "10"))
    )

    # Token cleanup
    token_cleanup_interval_hours: float = field(
        default_factory=lambda: float(os.getenv("TOKEN_CLEANUP_INTERVAL_HOURS", "12"))
    )

    # Web push (VAPID)
    vapid_public_key: Optional[str] = field(default_factory=lambda: os.getenv("VAPID_PUBLIC_KEY"))
    vapid_private_key: Optional[str] = field(default_factory=lambda: os.getenv("VAPID_PRIVATE_KEY"))
    vapid_subject: str = field(
        default_factory=lambda: os.getenv("VAPID_SUBJECT", "mailto:admin@example.com")
    )
    push_ttl: int = field(default_factory=lambda: int(os.getenv("PUSH_TTL", "30")))

    # Email
    email_enabled: bool = field(default_factory=lambda: _env_bool("EMAIL_ENABLED"))
    smtp_host: Optional[str] = field(default_factory=lambda: os.getenv("SMTP_HOST"))
    smtp_port: int = field(default_factory=lambda: int(os.getenv("SMTP_PORT", "587")))
    smtp_username: Optional[str] = field(default_factory=lambda: os.getenv("SMTP_USERNAME"))
    smtp_password: Optional[str] = field(default_factory=lambda: os.getenv("SMTP_PASSWORD"))
    from_email: Optional[str] = field(default_factory=lambda: os.getenv("FROM_EMAIL"))
    from_name: str = field(default_factory=lambda: os.getenv("FROM_NAME", "CRAPP Notification"))
    app_url: str = field(default_factory=lambda: os.getenv("APP_URL", "http://localhost:5000"))

    # Monitoring
    health_port: int = field(default_factory=lambda: int(os.getenv("HEALTH_PORT", "8080")))

    def __post_init__(self) -> None:
        """Parse complex fields after initialization."""
        if not self.reminder_times:
            times_str = os.getenv("REMINDER_TIMES", "20:00")
            # Entries are validated by the reminder scheduler so one bad
            # value does not hide the others
            self.reminder_times = [t.strip() for t in times_str.split(",") if t.strip()]

    @property
    def push_enabled(self) -> bool:
        """Web push needs both VAPID keys."""
        return bool(self.vapid_public_key and self.vapid_private_key)

    def validate(self) -> None:
        """Validate required settings."""
        if not self.database_url:
            raise ValueError("DATABASE_URL is required")
        if self.token_cleanup_interval_hours <= 0:
            raise ValueError("TOKEN_CLEANUP_INTERVAL_HOURS must be positive")
        if self.dispatch_concurrency < 1:
            raise ValueError("DISPATCH_CONCURRENCY must be at least 1")
        if self.email_enabled and not (self.smtp_host and self.from_email):
            raise ValueError("SMTP_HOST and FROM_EMAIL are required when EMAIL_ENABLED=true")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    settings.validate()
    return settings
