"""Pydantic data models for trends."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TrendSource(str, Enum):
    """Closed set of platforms a trend can come from."""

    REDDIT = "reddit"
    HACKERNEWS = "hackernews"
    YOUTUBE = "youtube"
    X = "x"
    INSTAGRAM = "instagram"


class Trend(BaseModel):
    """One normalized observation of a topic from one source, scoped to a country."""

    name: str = Field(..., description="Topic display text")
    url: str = Field(..., description="Canonical link to the topic")
    source: TrendSource = Field(..., description="Platform the topic was observed on")
    volume: Optional[str] = Field(default=None, description="Popularity (e.g., '245K')")
    timestamp: datetime = Field(..., description="Observation instant (UTC)")
    country_code: str = Field(..., description="Country code or GLOBAL")

    model_config = ConfigDict(frozen=True)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class FetchResult(BaseModel):
    """Outcome of one aggregation pass over every source."""

    trends: List[Trend] = Field(default_factory=list)
    failed_sources: List[str] = Field(default_factory=list)


class TrendFilter(BaseModel):
    """Parameters of a windowed trend listing."""

    country_code: str
    date: Optional[str] = Field(default=None, description="Calendar date YYYY-MM-DD (UTC)")
    sources: List[str] = Field(default_factory=list)
    recency_minutes: Optional[int] = None
    limit: int = 1000


class SchedulerState(BaseModel):
    """Snapshot of the polling scheduler."""

    started: bool = False
    interval_ms: int = 60 * 60 * 1000
    countries: List[str] = Field(default_factory=lambda: ["GLOBAL"])

    @property
    def interval_minutes(self) -> float:
        return self.interval_ms / 60000


class CollectionReport(BaseModel):
    """Per-country result of a collection or backfill run."""

    inserted: Dict[str, int] = Field(default_factory=dict)
    failed: Dict[str, List[str]] = Field(default_factory=dict)
