"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    env: str = Field(default="dev", alias="ENV")
    timezone: str = Field(default="Asia/Ho_Chi_Minh", alias="TZ")

    # Database
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str = Field(default="club_reports", alias="POSTGRES_DB")
    postgres_user: str = Field(default="postgres", alias="POSTGRES_USER")
    postgres_password: str = Field(default="postgres", alias="POSTGRES_PASSWORD")

    # Reports
    report_top_activities: int = Field(default=5, alias="REPORT_TOP_ACTIVITIES")
    report_months_limit: int = Field(default=12, alias="REPORT_MONTHS_LIMIT")
    report_max_range_years: int = Field(default=5, alias="REPORT_MAX_RANGE_YEARS")
    report_future_buffer_days: int = Field(
        default=30, alias="REPORT_FUTURE_BUFFER_DAYS"
    )
    report_on_time_grace_minutes: int = Field(
        default=15, alias="REPORT_ON_TIME_GRACE_MINUTES"
    )

    # Domain (optional)
    domain: Optional[str] = Field(default="localhost", alias="DOMAIN")

    @property
    def database_url(self) -> str:
        """Get async database URL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
