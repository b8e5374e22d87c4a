"""
Configuration management for WasteLess Pricing
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

SIGNAGE_URL_PLACEHOLDER = "{YOUR-ACCOUNT-KEY}"


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "WasteLess Dynamic Pricing"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./wasteless.db"

    # Pricing
    PRICE_UPDATE_INTERVAL_MIN: int = 5  # recompute every N minutes
    AUTO_PRICING_ENABLED: bool = True
    DEFAULT_UNIT: str = 'ק"ג'

    # Digital signage
    SIGNAGE_URL: str = ""
    SIGNAGE_API_KEY: str = ""
    SIGNAGE_TIMEOUT_SEC: float = 10.0
    SIGNAGE_DISPLAY_LIMIT: int = 20

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("PRICE_UPDATE_INTERVAL_MIN")
    @classmethod
    def _interval_at_least_one_minute(cls, value: int) -> int:
        if value < 1:
            raise ValueError("PRICE_UPDATE_INTERVAL_MIN must be at least 1 minute")
        return value

    @property
    def signage_configured(self) -> bool:
        return bool(
            self.SIGNAGE_URL
            and self.SIGNAGE_API_KEY
            and SIGNAGE_URL_PLACEHOLDER not in self.SIGNAGE_URL
        )

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
