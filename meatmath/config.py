"""
Application Configuration

Centralized configuration management using Pydantic settings.
Loads from environment variables with fallback to .env file.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    get_settings() is cached, so tests that need different values must
    set the environment before the first import or call
    get_settings.cache_clear().
    """

    # Database settings
    DATABASE_URL: str = "postgresql://localhost/meatmath_dev"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    # Token verification for the identity provider
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Redis for membership caching and rate limiting
    REDIS_URL: str = "redis://localhost:6379/0"

    # Application settings
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5000",
    ]

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_BURST: int = 10
    ADMIN_RATE_LIMIT_PER_HOUR: int = 10
    AUTH_RATE_LIMIT_PER_WINDOW: int = 20
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = 900
    # Reverse proxies in front of the app that append to X-Forwarded-For.
    # 0 ignores the header and keys rate limits on the socket peer.
    TRUSTED_PROXY_COUNT: int = 0

    # Membership lookups. 0 disables the cache; every authorization
    # then reads the membership table directly.
    MEMBERSHIP_CACHE_TTL_SECONDS: int = 0

    SEED_DEFAULT_SPECIES: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
