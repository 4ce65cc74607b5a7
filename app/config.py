"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Location Store Configuration
    location_store_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the location store (GraphQL service)"
    )
    location_store_graphql_path: str = Field(
        default="/v1/graphql",
        description="Path of the GraphQL endpoint on the location store"
    )
    location_store_api_key: str = Field(
        default="",
        description="API key for authentication against the location store"
    )
    location_store_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for location store requests"
    )

    # Retry Configuration (read path only, writes are never retried)
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for store reads"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Survey grid used to convert stored x/y values for the map
    default_utm_zone: int = Field(
        default=16,
        ge=1,
        le=60,
        description="UTM zone number of stored survey coordinates"
    )
    default_utm_band: str = Field(
        default="Q",
        min_length=1,
        max_length=1,
        description="UTM latitude band letter of stored survey coordinates"
    )

    # Import limits
    max_import_rows: int = Field(
        default=5000,
        description="Maximum number of records accepted in one import batch"
    )
    max_import_file_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Maximum size of an uploaded CSV file in bytes"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Survey Locations Service",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
