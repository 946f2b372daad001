"""Configuration settings using Pydantic."""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List, Optional

from .countries import get_country_codes


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_path: str = Field(default="./data/trends.db", description="SQLite database path")

    # Scheduler
    scheduler_enabled: bool = Field(default=True, description="Start the polling scheduler with the API")
    scheduler_interval_minutes: int = Field(default=60, description="Polling interval in minutes")
    scheduler_countries: str = Field(
        default="GLOBAL", description="Comma-separated country codes, or ALL"
    )

    # Query
    realtime_window_minutes: int = Field(
        default=720, description="Recency window applied when no date is requested"
    )
    query_limit: int = Field(default=1000, description="Maximum rows returned by a listing")

    # Outbound HTTP
    http_timeout_seconds: float = Field(default=20.0, description="Total timeout per request")
    http_connect_timeout_seconds: float = Field(default=10.0, description="Connect timeout")
    user_agent: str = Field(default="top-trends-dashboard/1.0", description="User-Agent header")
    text_proxy_base: str = Field(
        default="https://r.jina.ai/http://",
        description="Text-rendering proxy prefix for sources without an API",
    )

    # API server
    api_host: str = Field(default="0.0.0.0", description="API bind address")
    api_port: int = Field(default=8080, description="API server port")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    @property
    def scheduler_country_list(self) -> List[str]:
        """Parse scheduler countries into list."""
        return parse_countries(self.scheduler_countries)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


def parse_countries(value: Optional[str]) -> List[str]:
    """
    Expand a country list parameter.

    Empty -> GLOBAL only, "ALL" -> every known code, otherwise comma-separated codes.
    """
    if not value or not value.strip():
        return ["GLOBAL"]
    if value.strip().upper() == "ALL":
        return get_country_codes()
    return [c.strip().upper() for c in value.split(",") if c.strip()]


# Global settings instance
settings = Settings()
