# Settings management (reads env vars/.env)
# bingeclub/core/config.py

import json
import logging
from functools import lru_cache
from typing import Annotated, List, Optional, Union

from pydantic import AnyHttpUrl, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application configuration settings loaded from environment variables or .env file.
    Read once at startup and treated as read-only afterwards.
    """
    # --- Project Info ---
    PROJECT_NAME: str = Field("Binge Club API", validation_alias="PROJECT_NAME")
    API_PREFIX: str = Field("/api", validation_alias="API_PREFIX")
    VERSION: str = Field("1.0.0", validation_alias="APP_VERSION")
    PORT: int = Field(3000, validation_alias="PORT")

    # --- Logging ---
    LOG_LEVEL: str = Field("INFO", validation_alias="LOG_LEVEL")

    # --- Database (MongoDB) ---
    # SecretStr keeps the URI (and its credentials) out of logs and reprs
    MONGODB_URI: SecretStr = Field(..., validation_alias="MONGODB_URI")
    MONGODB_DB_NAME: str = Field("bingeclub", validation_alias="MONGODB_DB_NAME")

    # --- Authentication (Supabase-issued JWTs) ---
    SUPABASE_URL: Optional[AnyHttpUrl] = Field(None, validation_alias="SUPABASE_URL")
    SUPABASE_JWT_SECRET: SecretStr = Field(..., validation_alias="SUPABASE_JWT_SECRET")
    JWT_ALGORITHM: str = Field("HS256", validation_alias="JWT_ALGORITHM")
    JWT_AUDIENCE: str = Field("authenticated", validation_alias="JWT_AUDIENCE")

    # --- Movie metadata (OMDb) ---
    OMDB_API_KEY: SecretStr = Field(..., validation_alias="OMDB_API_KEY")
    OMDB_BASE_URL: str = Field("https://www.omdbapi.com/", validation_alias="OMDB_BASE_URL")

    # --- Search history ---
    SEARCH_HISTORY_DEFAULT_LIMIT: int = Field(
        default=10,
        validation_alias="SEARCH_HISTORY_DEFAULT_LIMIT",
        description="Number of history entries returned when the client sends no limit"
    )

    # --- CORS ---
    # Comma-separated string or JSON list in env var,
    # e.g. "http://localhost:3000,https://bingeclub.example.com"
    # NoDecode hands the raw env string to the validator below.
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        validation_alias="BACKEND_CORS_ORIGINS"
    )

    @field_validator("BACKEND_CORS_ORIGINS", mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and v.strip().startswith("["):
            v = json.loads(v)
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        raise ValueError(f"Invalid BACKEND_CORS_ORIGINS format: {v}")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )


@lru_cache()
def get_settings() -> Settings:
    """Returns the application settings instance."""
    logger.info("Attempting to load application settings...")
    try:
        settings_instance = Settings()
        # Log some non-sensitive settings for verification
        logger.info(f"Settings loaded successfully for Project: {settings_instance.PROJECT_NAME}")
        logger.info(f"Log Level: {settings_instance.LOG_LEVEL}")
        logger.info(f"CORS Origins: {settings_instance.BACKEND_CORS_ORIGINS}")
        logger.info(f"MongoDB database: {settings_instance.MONGODB_DB_NAME}")
        logger.info(f"OMDb base URL: {settings_instance.OMDB_BASE_URL}")
        return settings_instance
    except Exception as e:
        logger.critical(f"CRITICAL ERROR: Failed to load application settings: {e}", exc_info=True)
        raise RuntimeError(f"Could not load settings: {e}")
