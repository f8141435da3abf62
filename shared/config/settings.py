"""
Centralized configuration management for NewsHub services.
Uses Pydantic Settings for validation and type safety.
"""

from functools import lru_cache
from typing import Optional
from urllib.parse import urlparse

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppBaseSettings(BaseSettings):
    """Base settings with shared configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class DatabaseSettings(AppBaseSettings):
    """Database configuration settings."""

    postgres_user: str = Field(
        default="postgres",
        validation_alias="POSTGRES_USER",
    )
    postgres_password: str = Field(
        default="postgres",
        validation_alias="POSTGRES_PASSWORD",
    )
    postgres_db: str = Field(
        default="newshub",
        validation_alias="POSTGRES_DB",
    )
    postgres_host: str = Field(
        default="postgres",
        validation_alias="POSTGRES_HOST",
    )
    postgres_port: int = Field(
        default=5432,
        validation_alias="POSTGRES_PORT",
    )
    echo_sql: bool = Field(
        default=False,
        validation_alias="DATABASE_ECHO",
    )
    postgres_url: Optional[str] = Field(
        default=None,
        validation_alias="POSTGRES_URL",
    )

    @validator("postgres_url", pre=True, always=True)
    def validate_postgres_url(cls, v, values):
        """Build POSTGRES_URL from its parts when it is not given."""
        if not v:
            user = values.get("postgres_user", "postgres")
            password = values.get("postgres_password", "")
            host = values.get("postgres_host", "postgres")
            port = values.get("postgres_port", 5432)
            db = values.get("postgres_db", "newshub")
            return f"postgresql://{user}:{password}@{host}:{port}/{db}"
        return v


class RedisSettings(AppBaseSettings):
    """Redis configuration settings."""

    redis_host: str = Field(
        default="redis",
        validation_alias="REDIS_HOST",
    )
    redis_port: int = Field(
        default=6379,
        validation_alias="REDIS_PORT",
    )
    redis_db: int = Field(
        default=0,
        validation_alias="REDIS_DB",
    )
    redis_password: Optional[str] = Field(
        default=None,
        validation_alias="REDIS_PASSWORD",
    )
    redis_url: Optional[str] = Field(
        default=None,
        validation_alias="REDIS_URL",
    )

    @validator("redis_url", pre=True, always=True)
    def validate_redis_url(cls, v, values):
        """Ensure Redis URL is properly formatted."""
        if not v:
            host = values.get("redis_host", "redis")
            port = values.get("redis_port", 6379)
            db = values.get("redis_db", 0)
            password = values.get("redis_password")
            if password:
                return f"redis://:{password}@{host}:{port}/{db}"
            return f"redis://{host}:{port}/{db}"
        return v


class ProviderSettings(AppBaseSettings):
    """External news provider endpoints.

    API keys travel inside the URLs, the same way the provider dashboards
    hand them out, so nothing here knows about credentials.
    """

    news_api_url: Optional[str] = Field(
        default=None,
        validation_alias="NEWS_API_URL",
    )
    guardian_api_url: Optional[str] = Field(
        default=None,
        validation_alias="GUARDIAN_API_URL",
    )
    nyt_feed_url: Optional[str] = Field(
        default=None,
        validation_alias="NYT_FEED_URL",
    )
    guardian_default_source: str = Field(
        default="The Guardian",
        validation_alias="GUARDIAN_DEFAULT_SOURCE",
    )
    nyt_default_source: str = Field(
        default="New York Times",
        validation_alias="NYT_DEFAULT_SOURCE",
    )
    default_category: str = Field(
        default="general",
        validation_alias="DEFAULT_CATEGORY",
    )
    anonymous_author: str = Field(
        default="Anonymous",
        validation_alias="ANONYMOUS_AUTHOR",
    )

    @validator("news_api_url", "guardian_api_url", "nyt_feed_url")
    def validate_provider_url(cls, v):
        """Validate that provider endpoints are HTTP(S) URLs."""
        if not v:
            return None

        parsed = urlparse(v)
        if parsed.scheme not in ["http", "https"] or not parsed.netloc:
            raise ValueError(f"Provider URL must be an HTTP or HTTPS URL: {v}")

        return v


class CacheSettings(AppBaseSettings):
    """Read-through cache configuration (seconds)."""

    enabled: bool = Field(
        default=True,
        validation_alias="CACHE_ENABLED",
    )
    articles_ttl: int = Field(
        default=6,
        validation_alias="CACHE_ARTICLES_TTL",
    )
    article_ttl: int = Field(
        default=60,
        validation_alias="CACHE_ARTICLE_TTL",
    )
    preferences_ttl: int = Field(
        default=1,
        validation_alias="CACHE_PREFERENCES_TTL",
    )
    reference_ttl: int = Field(
        default=60,
        validation_alias="CACHE_REFERENCE_TTL",
    )


class ServiceSettings(AppBaseSettings):
    """Service-specific configuration settings."""

    page_size: int = Field(
        default=100,
        validation_alias="PAGE_SIZE",
    )
    max_retries: int = Field(
        default=3,
        validation_alias="MAX_RETRIES",
    )
    retry_delay: float = Field(
        default=1.0,
        validation_alias="RETRY_DELAY",
    )
    retry_backoff_factor: float = Field(
        default=2.0,
        validation_alias="RETRY_BACKOFF_FACTOR",
    )
    http_timeout: float = Field(
        default=30.0,
        validation_alias="HTTP_TIMEOUT",
    )
    redis_timeout: float = Field(
        default=5.0,
        validation_alias="REDIS_TIMEOUT",
    )
    collector_url: str = Field(
        default="http://collector:8001",
        validation_alias="COLLECTOR_URL",
    )
    ingest_time: str = Field(
        default="06:00",
        validation_alias="INGEST_TIME",
    )

    @validator("page_size")
    def validate_page_size(cls, v):
        if v < 1:
            raise ValueError("PAGE_SIZE must be positive")
        return v


class LoggingSettings(AppBaseSettings):
    """Logging configuration settings."""

    level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
    )
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        validation_alias="LOG_FORMAT",
    )
    include_correlation_id: bool = Field(
        default=True,
        validation_alias="LOG_INCLUDE_CORRELATION_ID",
    )
    json_logs: bool = Field(
        default=False,
        validation_alias="JSON_LOGS",
    )


class Settings(AppBaseSettings):
    """Main settings class that combines all configuration sections."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    service_name: str = Field(
        default="newshub",
        validation_alias="SERVICE_NAME",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience functions for common settings
def get_database_url() -> str:
    """Get the database URL."""
    return get_settings().database.postgres_url


def get_redis_url() -> str:
    """Get the Redis URL."""
    return get_settings().redis.redis_url
