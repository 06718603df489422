from functools import lru_cache
import json
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    # Resolve to backend/.env so `uvicorn --app-dir backend` works from any cwd.
    model_config = SettingsConfigDict(env_file=str(BACKEND_ENV_FILE), env_file_encoding="utf-8")

    project_name: str = "TimetableGenius API"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./timetable_genius.db"

    generator_api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    generator_api_key: str | None = None
    generator_model: str = "gemini-2.0-flash"
    generator_timeout_seconds: float = 90.0
    generator_retry_attempts: int = 2
    generator_retry_backoff_seconds: float = 2.0
    generator_temperature: float = 0.4

    periods_per_day: int = 8
    days_per_week: int = 5
    break_count: int = 2

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:9002",
        "http://127.0.0.1:9002",
    ]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("periods_per_day", "days_per_week", "break_count", "generator_retry_attempts")
    @classmethod
    def require_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be a positive integer")
        return value

    @property
    def generator_configured(self) -> bool:
        return bool(self.generator_api_key and self.generator_api_url)


@lru_cache
def get_settings() -> Settings:
    return Settings()
