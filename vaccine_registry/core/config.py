# vaccine_registry/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal

class Settings(BaseSettings):
    # App
    ENV: str = "development"
    DEBUG: bool = False

    # Security
    SECRET_KEY: str = "changeme"  # override in .env
    ALGORITHM: Literal["HS256"] = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    RATE_LIMIT_ENABLED: bool = True

    # Database
    DATABASE_URL: str = "sqlite:///./vaccine_registry.db"

    # Stock maintenance
    SWEEP_INTERVAL_MINUTES: int = 30
    LOW_STOCK_VIAL_THRESHOLD: int = 3
    EXPIRING_SOON_HOURS: int = 2

    # Seed accounts (created on first start only)
    SEED_ADMIN_PASSWORD: str = "admin123"
    SEED_NURSE_PASSWORD: str = "nurse123"

    # Frontend
    CORS_ORIGINS: list[str] = [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]


    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",  
    )


settings = Settings()
