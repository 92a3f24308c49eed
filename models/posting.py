"""
Posting data model — the canonical shape every source is normalized into,
plus the SeenRecord persisted by the dedup store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# Sentinel used when a source does not report a company or location
UNSPECIFIED = "Not specified"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Source(str, Enum):
    """Origin tag for a posting. Values are the display names used in messages."""

    LEVER = "Lever"
    GREENHOUSE = "Greenhouse"
    WELLFOUND = "Wellfound"
    YCOMBINATOR = "Y Combinator"
    LINKEDIN = "LinkedIn"


class Posting(BaseModel):
    """A single job opportunity normalized from one of the sources."""

    id: str = Field(description="<source>-<source-local-id>, stable across fetches")
    title: str = Field(description="Job title")
    company: str = Field(default=UNSPECIFIED, description="Company name")
    location: str = Field(default=UNSPECIFIED, description="Job location (city, remote, etc.)")
    url: str = Field(description="Direct URL to the job posting")
    source: Source = Field(description="Origin of the posting")
    attributes: dict[str, str] = Field(
        default_factory=dict,
        description="Source-specific extras (team, department, salary, equity, batch, funding)",
    )
    observed_at: datetime = Field(default_factory=utc_now, description="When the posting was fetched")

    @field_validator("company", "location", mode="before")
    @classmethod
    def _default_blank(cls, value):
        if value is None:
            return UNSPECIFIED
        if isinstance(value, str) and not value.strip():
            return UNSPECIFIED
        return value.strip() if isinstance(value, str) else value


class SeenRecord(BaseModel):
    """Persisted proof that a posting was already delivered."""

    id: str
    title: Optional[str] = None
    company: Optional[str] = None
    url: Optional[str] = None
    source: Optional[str] = None
    first_seen: datetime
    last_seen: datetime

    @classmethod
    def from_row(cls, row) -> "SeenRecord":
        """Build a record from a (id, title, company, url, source, first_seen, last_seen) row."""
        id_, title, company, url, source, first_seen, last_seen = row
        return cls(
            id=id_,
            title=title,
            company=company,
            url=url,
            source=source,
            first_seen=datetime.fromisoformat(first_seen),
            last_seen=datetime.fromisoformat(last_seen),
        )
