"""
Source Adapter base — one adapter per origin, all behind fetch() -> list[Posting].

Adapters come in three variants (API fetch, markup scrape, mailbox parse) but
the aggregation run only ever calls fetch(), so it never branches on type.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable, Optional

from models.errors import FetchError
from models.posting import Posting, Source


logger = logging.getLogger(__name__)


class AdapterKind(str, Enum):
    API = "api"
    MARKUP = "markup"
    MAILBOX = "mailbox"


# Display names for board slugs that don't capitalize cleanly
COMPANY_NAMES = {
    "datadog": "Datadog",
    "cloudflare": "Cloudflare",
    "mongodb": "MongoDB",
    "pagerduty": "PagerDuty",
    "gitlab": "GitLab",
    "nerdwallet": "NerdWallet",
    "airbnb": "Airbnb",
    "doordash": "DoorDash",
    "openai": "OpenAI",
    "postman": "Postman",
}


def format_company_name(slug: str) -> str:
    """Turn a board slug into a company display name."""
    if slug in COMPANY_NAMES:
        return COMPANY_NAMES[slug]
    return slug[:1].upper() + slug[1:]


def make_posting(
    id: str,
    title: Optional[str],
    url: Optional[str],
    source: Source,
    company: Optional[str] = None,
    location: Optional[str] = None,
    **attributes,
) -> Optional[Posting]:
    """
    Build a Posting, or return None if it lacks a title or a URL.

    Empty attribute values are left out so downstream code only sees
    extras the source actually supplied.
    """
    title = (title or "").strip()
    url = (url or "").strip()
    if not title or not url:
        return None

    extras = {}
    for key, value in attributes.items():
        if value is None:
            continue
        value = str(value).strip()
        if value:
            extras[key] = value

    return Posting(
        id=id,
        title=title,
        url=url,
        source=source,
        company=company,
        location=location,
        attributes=extras,
    )


def dedupe_by_id(postings: Iterable[Posting]) -> list[Posting]:
    """Keep the first posting for each id, preserving order."""
    seen = set()
    unique = []
    for posting in postings:
        if posting.id not in seen:
            seen.add(posting.id)
            unique.append(posting)
    return unique


class SourceAdapter(ABC):
    """
    Fetches postings for one source across its configured targets.

    A target is whatever the source iterates over: a company slug, a search
    query, or a mailbox folder. One failing target is logged and skipped;
    the adapter only raises FetchError when every target failed.
    """

    source: Source
    kind: AdapterKind

    def __init__(self, targets: Iterable[str]):
        self.targets = [t for t in targets if t]

    @property
    def name(self) -> str:
        return self.source.value

    def fetch(self) -> list[Posting]:
        if not self.targets:
            logger.debug("%s: No targets configured", self.name)
            return []

        postings: list[Posting] = []
        failures = []

        for target in self.targets:
            try:
                found = self.fetch_target(target)
            except FetchError as e:
                logger.warning("%s: Could not fetch %s: %s", self.name, target, e)
                failures.append(target)
                continue
            logger.debug("%s: Found %d postings for %s", self.name, len(found), target)
            postings.extend(found)

        if failures and len(failures) == len(self.targets):
            raise FetchError(self.name, f"all {len(failures)} targets failed")

        return dedupe_by_id(postings)

    @abstractmethod
    def fetch_target(self, target: str) -> list[Posting]:
        """Fetch and normalize the postings for one target."""
        raise NotImplementedError
