import os
from pydantic import BaseModel

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database (one pool per process, built at startup)
    DATABASE_URL: str | None = os.getenv("DATABASE_URL")
    DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
    DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))
    DB_COMMAND_TIMEOUT_SECONDS: float = float(os.getenv("DB_COMMAND_TIMEOUT_SECONDS", "10"))

    # Provider response cache
    CACHE_BACKEND: str = os.getenv(
        "CACHE_BACKEND", "postgres" if os.getenv("DATABASE_URL") else "memory"
    )  # memory | postgres
    CACHE_FRESHNESS_DAYS: int = int(os.getenv("CACHE_FRESHNESS_DAYS", "30"))

    # Analytics provider
    PROVIDER: str = os.getenv("PROVIDER", "mock")                  # mock | http
    PROVIDER_BASE_URL: str | None = os.getenv("PROVIDER_BASE_URL")
    PROVIDER_API_KEY: str | None = os.getenv("PROVIDER_API_KEY")
    PROVIDER_API_HOST: str | None = os.getenv("PROVIDER_API_HOST")
    PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "15"))
    PROVIDER_USER_AGENT: str = os.getenv("PROVIDER_USER_AGENT", "StaySTRAAnalyzer/0.3")

    # Alerts
    ALERT_WEBHOOK_URL: str | None = os.getenv("ALERT_WEBHOOK_URL")
    ALERT_TIMEOUT_SECONDS: float = float(os.getenv("ALERT_TIMEOUT_SECONDS", "5"))

    # Revenue projection
    JITTER_PCT: float = float(os.getenv("JITTER_PCT", "0.01"))

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "60"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Cache (rate limiting and verified API keys)
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "300"))
    USE_REDIS: bool = os.getenv("USE_REDIS", "false").lower() == "true"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

settings = Settings()
