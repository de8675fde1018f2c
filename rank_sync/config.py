"""Configuration management for the rank sync service."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse, urlunparse

from decouple import Choices, UndefinedValueError
from decouple import config


class Environment(Enum):
    """Supported deployment environments."""

    DEVELOPMENT = "development"
    CI = "CI"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when a required setting is missing; the service refuses to start."""

    pass


@dataclass
class Config:
    """Configuration for the rank sync service."""

    # Required fields
    database_url: str
    riot_api_key: str

    # Environment configuration
    environment: Environment = Environment.DEVELOPMENT

    # Riot API configuration
    riot_regional_url: str = "https://americas.api.riotgames.com"
    riot_platform_url: str = "https://na1.api.riotgames.com"
    riot_api_timeout_seconds: int = 30
    riot_min_request_interval_seconds: float = 0.0
    ranked_queue_type: str = "RANKED_SOLO_5x5"

    # Sync scheduling
    sync_batch_size: int = 20
    sync_batch_pause_seconds: float = 300.0
    sync_request_delay_seconds: float = 0.5
    sync_interval_seconds: int = 1800
    sync_on_startup: bool = True

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"

    # OpenTelemetry configuration
    otel_enabled: bool = False
    otel_service_name: str = "rank-sync"
    otel_exporter_type: str = "console"
    otel_otlp_endpoint: str = "http://localhost:4317"
    otel_export_interval_millis: int = 60000
    otel_export_timeout_millis: int = 30000

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables.

        Raises:
            ConfigurationError: If the database URL or the Riot API key is missing
        """
        # Helper function to simplify config calls
        def get_config(key: str, default=None, cast=None):
            if default is not None:
                if cast is not None:
                    return config(key, default=default, cast=cast)
                else:
                    return config(key, default=default)
            else:
                return config(key)

        def require(key: str) -> str:
            try:
                value = get_config(key)
            except UndefinedValueError:
                raise ConfigurationError(f"{key} is not set")
            if not value or not value.strip():
                raise ConfigurationError(f"{key} is empty")
            return value.strip()

        env = Environment(
            get_config("ENVIRONMENT", "development", Choices(["development", "CI", "production"]))
        )

        return cls(
            # Required
            database_url=require("DATABASE_URL"),
            riot_api_key=require("RIOT_API_KEY"),
            # Environment
            environment=env,
            # Riot API
            riot_regional_url=get_config("RIOT_REGIONAL_URL", "https://americas.api.riotgames.com"),
            riot_platform_url=get_config("RIOT_PLATFORM_URL", "https://na1.api.riotgames.com"),
            riot_api_timeout_seconds=get_config("RIOT_API_TIMEOUT_SECONDS", 30, int),
            riot_min_request_interval_seconds=get_config("RIOT_MIN_REQUEST_INTERVAL_SECONDS", 0.0, float),
            ranked_queue_type=get_config("RANKED_QUEUE_TYPE", "RANKED_SOLO_5x5"),
            # Sync scheduling
            sync_batch_size=get_config("SYNC_BATCH_SIZE", 20, int),
            sync_batch_pause_seconds=get_config("SYNC_BATCH_PAUSE_SECONDS", 300.0, float),
            sync_request_delay_seconds=get_config("SYNC_REQUEST_DELAY_SECONDS", 0.5, float),
            sync_interval_seconds=get_config("SYNC_INTERVAL_SECONDS", 1800, int),
            sync_on_startup=get_config("SYNC_ON_STARTUP", True, bool),
            # Logging
            log_level=get_config(
                "LOG_LEVEL", "INFO", Choices(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
            ),
            log_format=get_config("LOG_FORMAT", "json", Choices(["json", "text"])),
            # OpenTelemetry
            otel_enabled=get_config("OTEL_ENABLED", False, bool),
            otel_service_name=get_config("OTEL_SERVICE_NAME", "rank-sync"),
            otel_exporter_type=get_config(
                "OTEL_EXPORTER_TYPE", "console", Choices(["console", "otlp", "none"])
            ),
            otel_otlp_endpoint=get_config("OTEL_OTLP_ENDPOINT", "http://localhost:4317"),
            otel_export_interval_millis=get_config("OTEL_EXPORT_INTERVAL_MILLIS", 60000, int),
            otel_export_timeout_millis=get_config("OTEL_EXPORT_TIMEOUT_MILLIS", 30000, int),
        )

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == Environment.CI

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    def get_database_url(self) -> str:
        """Return the SQLAlchemy URL, forcing the asyncpg driver for plain Postgres URLs."""
        parsed = urlparse(self.database_url)

        scheme = parsed.scheme
        if scheme in ("postgres", "postgresql"):
            scheme = "postgresql+asyncpg"
        else:
            # Explicit drivers (postgresql+asyncpg, sqlite+aiosqlite, ...) pass through
            return self.database_url

        return urlunparse(
            (scheme, parsed.netloc, parsed.path, parsed.params, parsed.query, parsed.fragment)
        )


# Global configuration instance
_config: Optional[Config] = None


def init_config() -> Config:
    """Load configuration from the environment and store it globally."""
    global _config
    _config = Config.from_env()
    return _config


def get_config() -> Config:
    """Get the global configuration instance."""
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call init_config() first.")
    return _config


def is_config_initialized() -> bool:
    """Check whether the global configuration has been loaded."""
    return _config is not None


def reset_config() -> None:
    """Drop the global configuration (used by tests)."""
    global _config
    _config = None
