"""
Centralized settings management using pydantic-settings.

All environment variables and configuration values are defined here.
Use get_settings() to access the singleton settings instance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Required environment variables:
        - SUPABASE_URL: Supabase project URL
        - SUPABASE_SERVICE_KEY: Supabase service role key

    Optional environment variables:
        - SUPABASE_JWT_SECRET: Secret for verifying Supabase auth tokens
        - HOST / PORT: Server bind address
        - ENVIRONMENT: Environment name (development, staging, production)
        - GENERATOR_TIMEOUT_SECONDS: Per-generator wait budget
        - RECOMMENDATION_CACHE_ENABLED: Persist per-user results in recommendation_cache
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Server Configuration
    # ==========================================================================
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    workers: int = Field(default=4, description="Number of uvicorn workers")

    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ==========================================================================
    # Supabase Configuration
    # ==========================================================================
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_service_key: str = Field(..., description="Supabase service role key")
    supabase_jwt_secret: str = Field(
        default="",
        description="JWT secret for token verification (from Supabase dashboard)"
    )
    product_images_bucket: str = Field(
        default="product-images",
        description="Storage bucket holding canonical product images"
    )

    @field_validator("supabase_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @property
    def product_images_base_url(self) -> str:
        return f"{self.supabase_url}/storage/v1/object/public/{self.product_images_bucket}"

    # ==========================================================================
    # Recommendation Engine
    # ==========================================================================
    generator_timeout_seconds: float = Field(
        default=5.0,
        description="How long the combiner waits for all generators before treating stragglers as empty"
    )
    generator_max_workers: int = Field(
        default=8,
        description="Thread pool size for concurrent candidate generation"
    )
    default_recommendation_limit: int = Field(
        default=50,
        description="Limit used when the client does not pass one"
    )
    max_recommendation_limit: int = Field(
        default=100,
        description="Hard cap on the number of recommendations per request"
    )

    # ==========================================================================
    # Recommendation Cache
    # ==========================================================================
    recommendation_cache_enabled: bool = Field(
        default=True,
        description="Read/write personalized results in the recommendation_cache table"
    )
    recommendation_cache_ttl_seconds: int = Field(
        default=15 * 60,
        description="Lifetime of a cached recommendation list (15 minutes)"
    )
    algorithm_version: str = Field(
        default="v1.0",
        description="Version tag stored with cached recommendations"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses lru_cache to ensure only one instance is created.
    Settings are loaded from environment variables and .env file.

    Raises:
        ValidationError: If required environment variables are missing
    """
    env_file = Path(__file__).parent.parent.parent / ".env"
    if env_file.exists():
        os.environ.setdefault("ENV_FILE", str(env_file))

    return Settings(_env_file=env_file if env_file.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a settings instance for testing with optional overrides.

    This bypasses the cache to allow different settings in tests.
    """
    test_defaults = {
        "supabase_url": "https://test.supabase.co",
        "supabase_service_key": "test-key",
        "environment": "testing",
        "debug": True,
    }
    test_defaults.update(overrides)

    return Settings(**test_defaults)
