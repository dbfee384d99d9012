"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    environment: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Document store: "mongo" for a real MongoDB, "memory" for the in-process fake
    storage_backend: Literal["mongo", "memory"] = "mongo"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "placement"

    # JWT verification (tokens are issued by the identity provider)
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440
    dev_auth_bypass: bool = False

    # Rate limiting
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 60
    rate_limit_max_keys: int = 10000

    # ATS scoring (OpenAI-compatible)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    ats_model: str = "meta-llama/llama-3.1-8b-instruct"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def auth_bypass_enabled(self) -> bool:
        """Dev bypass only ever applies outside production."""
        return self.environment == "development" and self.dev_auth_bypass

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
