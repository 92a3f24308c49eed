"""
Configuration settings for Career Relay.
Loads secrets and runtime knobs from the .env file and provides typed access.
Structural configuration (sources, filters, schedule, delivery) lives in
config/relay.yaml, see config/loader.py.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Determine project root
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
env_path = os.path.join(project_root, ".env")
load_dotenv(env_path)


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Storage
    db_path: str = field(
        default_factory=lambda: os.getenv(
            "DB_PATH", os.path.join(project_root, "data", "career_relay.db")
        )
    )

    # Network
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "30"))
    )
    max_retries: int = field(
        default_factory=lambda: int(os.getenv("MAX_RETRIES", "3"))
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )

    # Discord webhook sink
    discord_webhook_url: Optional[str] = field(
        default_factory=lambda: _optional("DISCORD_WEBHOOK_URL")
    )

    # LinkedIn alert mailbox (IMAP)
    email_user: Optional[str] = field(default_factory=lambda: _optional("EMAIL_USER"))
    email_password: Optional[str] = field(default_factory=lambda: _optional("EMAIL_PASSWORD"))
    email_host: str = field(
        default_factory=lambda: os.getenv("EMAIL_HOST", "imap-mail.outlook.com")
    )
    email_port: int = field(
        default_factory=lambda: int(os.getenv("EMAIL_PORT", "993"))
    )

    # Email sink (SMTP)
    smtp_host: str = field(default_factory=lambda: os.getenv("SMTP_HOST", "smtp.gmail.com"))
    smtp_port: int = field(default_factory=lambda: int(os.getenv("SMTP_PORT", "587")))
    smtp_user: Optional[str] = field(default_factory=lambda: _optional("SMTP_USER"))
    smtp_password: Optional[str] = field(default_factory=lambda: _optional("SMTP_PASSWORD"))
    notify_email: Optional[str] = field(default_factory=lambda: _optional("NOTIFY_EMAIL"))

    @property
    def mailbox_configured(self) -> bool:
        return bool(self.email_user and self.email_password)


# Singleton instance
settings = Settings()
