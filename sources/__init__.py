"""
Source adapters and the factory that builds them from configuration.
"""

import logging

from config.settings import Settings
from models.config import AppConfig
from sources.base import AdapterKind, SourceAdapter
from sources.greenhouse import GreenhouseAdapter
from sources.lever import LeverAdapter
from sources.linkedin import LinkedInAlertAdapter
from sources.wellfound import WellfoundAdapter
from sources.ycombinator import YCombinatorAdapter
from tools.http_client import HttpClient


logger = logging.getLogger(__name__)


def build_adapters(config: AppConfig, settings: Settings, http: HttpClient):
    """
    Build the adapters for both timers.

    Returns:
        (job_check_adapters, alert_check_adapters). Board adapters run on the
        job check; the mailbox adapter runs on the alert check.
    """
    sources = config.sources
    remote = any(loc.strip().lower() == "remote" for loc in config.filters.locations)

    job_check = [
        LeverAdapter(sources.lever, http),
        GreenhouseAdapter(sources.greenhouse, http),
        WellfoundAdapter(sources.wellfound, http, remote=remote),
        YCombinatorAdapter(sources.ycombinator, http, remote=remote),
    ]

    if sources.linkedin and not settings.mailbox_configured:
        logger.warning("LinkedIn: EMAIL_USER/EMAIL_PASSWORD not set, alert check will find nothing")

    alert_check = [
        LinkedInAlertAdapter(
            sources.linkedin,
            host=settings.email_host,
            port=settings.email_port,
            user=settings.email_user,
            password=settings.email_password,
        ),
    ]
    return job_check, alert_check


__all__ = [
    "AdapterKind",
    "SourceAdapter",
    "LeverAdapter",
    "GreenhouseAdapter",
    "WellfoundAdapter",
    "YCombinatorAdapter",
    "LinkedInAlertAdapter",
    "build_adapters",
]
