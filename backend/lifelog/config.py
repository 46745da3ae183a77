"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Lifelog Core"
    database_url: str = f"sqlite+pysqlite:///{_BACKEND_DIR / 'lifelog.db'}"
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: int = 30
    confidence_threshold: float = 0.6
    base_currency: str = "USD"
    currency_api_url: str = "https://api.freecurrencyapi.com/v1/latest"
    currency_api_key: str | None = None
    currency_cache_ttl_hours: float = 6.0
    usda_api_url: str = "https://api.nal.usda.gov/fdc/v1"
    usda_api_key: str = "DEMO_KEY"
    http_timeout_seconds: int = 10
    default_activity_weight_kg: float = 70.0
    profile_weight_kg: float | None = None
    profile_height_cm: float | None = None
    profile_age: int = 30
    profile_sex: str | None = None
    month_first_dates: bool = False

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
