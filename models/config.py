"""
Configuration models — validated shape of config/relay.yaml.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FilterRules(BaseModel):
    """Keyword rules. Empty roles/locations match everything; empty exclude vetoes nothing."""

    model_config = ConfigDict(extra="forbid")

    roles: list[str] = Field(default_factory=list, description="Include if any appears in the title")
    locations: list[str] = Field(default_factory=list, description="Include if any appears in the location")
    exclude: list[str] = Field(default_factory=list, description="Reject if any appears in the title")


class SourcesConfig(BaseModel):
    """Per-source list of target identifiers."""

    model_config = ConfigDict(extra="forbid")

    lever: list[str] = Field(default_factory=list, description="Lever company slugs")
    greenhouse: list[str] = Field(default_factory=list, description="Greenhouse board slugs")
    wellfound: list[str] = Field(default_factory=list, description="Wellfound search queries")
    ycombinator: list[str] = Field(default_factory=list, description="Work at a Startup search queries")
    linkedin: list[str] = Field(default_factory=list, description="IMAP folders holding LinkedIn alerts")


class ScheduleConfig(BaseModel):
    """Cron expressions for the two timers. None disables a timer."""

    model_config = ConfigDict(extra="forbid")

    job_check: Optional[str] = "0 * * * *"
    alert_check: Optional[str] = "*/30 * * * *"


class DeliveryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_batch_size: int = Field(default=5, ge=1)
    post_delay_seconds: float = Field(default=2.0, ge=0)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    filters: FilterRules = Field(default_factory=FilterRules)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
