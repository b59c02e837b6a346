"""
Configuration settings for the Price Manager service.
"""

import os


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application configuration settings"""

    # Redis Configuration
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    CACHE_ENABLED: bool = _env_flag("CACHE_ENABLED", "true")
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "120"))
    STATS_TTL_SECONDS: int = 86400  # 24 hours

    # Rate store Configuration
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "prices.db")
    SEED_REFERENCE_DATA: bool = _env_flag("SEED_REFERENCE_DATA", "false")

    # Rate Limiting Configuration
    RATE_LIMIT: str = os.getenv("RATE_LIMIT", "60/minute")

    # Background Job Configuration
    BACKGROUND_JOBS_ENABLED: bool = _env_flag("BACKGROUND_JOBS_ENABLED", "true")
    STATS_LOG_INTERVAL_MINUTES: int = int(os.getenv("STATS_LOG_INTERVAL_MINUTES", "5"))

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", "")

    # Server Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))


settings = Settings()
