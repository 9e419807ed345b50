"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "DreamPlan Scheduling Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://dreamplan@localhost:5432/dreamplan"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "dreamplan"
    default_timezone: str = "Europe/London"

    # Background top-up worker
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    topup_job_hour: int = Field(default=3, ge=0, le=23)
    topup_job_minute: int = Field(default=0, ge=0, le=59)
    jobs_run_on_startup: bool = False

    # Occurrence scheduling policy
    scheduling_daily_cap: int = Field(default=5, ge=1)
    scheduling_rest_weekday: int | None = Field(default=6, ge=0, le=6)
    scheduling_compaction_ratio: float = Field(default=2.0, ge=1.0)
    scheduling_compaction_min_slack_days: int = Field(default=7, ge=0)
    scheduling_max_repeat_occurrences: int = Field(default=366, ge=1)
    scheduling_default_window_days: int = Field(default=90, ge=1)


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
