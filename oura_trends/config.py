from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Hours after this wall-clock hour belong to the following night (shifted to h - 24).
DAY_CUTOFF_HOUR = 16


class Settings(BaseSettings):
    OURA_ACCESS_TOKEN: str = ""
    OURA_API_BASE: str = "https://api.ouraring.com/v2"
    OURA_MAX_PAGES: Optional[int] = None  # None = follow next_token until exhausted
    REQUEST_TIMEOUT: Optional[float] = None
    HEARTRATE_MAX_SPAN_DAYS: int = 30
    DAY_CUTOFF_HOUR: int = DAY_CUTOFF_HOUR
    DEFAULT_LOOKBACK_DAYS: int = 90
    WITHINGS_ACCESS_TOKEN: str = ""
    WITHINGS_API_BASE: str = "https://wbsapi.withings.net"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "production"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
