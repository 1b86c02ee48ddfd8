"""
ShopJoy Storefront
Centralized Configuration Management

Configuration for the storefront service using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseSettings):
    """ShopJoy backend API endpoints"""

    model_config = SettingsConfigDict(env_prefix="BACKEND_")

    rest_url: str = Field(default="http://localhost:8080/api/v1", description="REST API base URL")
    graphql_url: str = Field(default="http://localhost:8080/graphql", description="GraphQL endpoint")
    connect_timeout: float = Field(default=5.0, description="Connect timeout in seconds")
    read_timeout: float = Field(default=30.0, description="Read timeout in seconds")
    max_connections: int = Field(default=100, description="Max pooled HTTP connections")
    orders_backend: str = Field(default="rest", description="Order management backend: rest or graphql")

    @field_validator("orders_backend")
    @classmethod
    def validate_orders_backend(cls, v: str) -> str:
        """Only the two wired implementations are accepted"""
        if v.lower() not in ("rest", "graphql"):
            raise ValueError("orders_backend must be 'rest' or 'graphql'")
        return v.lower()


class RedisSettings(BaseSettings):
    """Redis Configuration (session store and query cache)"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=50, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    decode_responses: bool = Field(default=True, description="Decode responses to strings")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class CacheSettings(BaseSettings):
    """Cache backend and GraphQL fetch policy"""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    backend: str = Field(default="memory", description="Cache backend: memory or redis")
    query_ttl: int = Field(default=300, description="GraphQL query cache TTL in seconds")
    default_fetch_policy: str = Field(default="cache-first", description="Default GraphQL fetch policy")


class SessionSettings(BaseSettings):
    """Browser session configuration"""

    model_config = SettingsConfigDict(env_prefix="SESSION_")

    cookie_name: str = Field(default="shopjoy_session", description="Session cookie name")
    ttl_seconds: int = Field(default=86400, description="Session lifetime in seconds")
    cookie_secure: bool = Field(default=False, description="Send cookie over HTTPS only")
    login_path: str = Field(default="/login", description="Redirect target for unauthenticated access")


class SecuritySettings(BaseSettings):
    """Security Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Tolerated clock skew when checking token expiry
    token_leeway_seconds: int = Field(default=0, alias="TOKEN_LEEWAY_SECONDS", description="Token expiry leeway")

    # Rate limiting
    rate_limit_requests: int = Field(default=100, alias="RATE_LIMIT_REQUESTS", description="Rate limit requests")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS", description="Rate limit window")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="shopjoy-storefront", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="Server host")
    api_port: int = Field(default=8000, alias="API_PORT", description="Server port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    backend: BackendSettings = Field(default_factory=BackendSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
