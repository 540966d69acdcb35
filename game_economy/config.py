"""
Application configuration loaded from environment variables.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # ── Database ────────────────────────────────────────────────────────────
    # Set DATABASE_URL to a PostgreSQL URL in production.
    DATABASE_URL: str = "sqlite:///./game_economy.db"
    DB_ECHO: bool = False          # Set True to log all SQL (dev only)

    # ── Cache ───────────────────────────────────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 3600  # backpack / wallet views live for 1 h

    # ── Application ─────────────────────────────────────────────────────────
    APP_NAME: str = "Game Economy Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Economy ─────────────────────────────────────────────────────────────
    INITIAL_COIN_BALANCE: int = 1000
    INITIAL_DIAMOND_BALANCE: int = 200
    FIRST_USER_UID: int = 10000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
