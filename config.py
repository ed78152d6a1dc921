"""Application configuration via pydantic-settings"""
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from HOTEL_CORE_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_CORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Hotel Reservation Core API"
    app_version: str = "1.0.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # JWT Authentication
    secret_key: str = Field(default="your-secret-key-keep-it-secret")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Reservation rules
    max_rooms_per_type: int = Field(default=4, ge=1)
    currency: str = "VND"

    # Calendar layout: 6 = Sunday, 0 = Monday (calendar module convention)
    calendar_first_weekday: int = Field(default=6, ge=0, le=6)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
