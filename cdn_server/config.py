"""Configuration settings for the CDN server.

Values come from the process environment or a ``.env`` file in the working
directory; the environment wins when both define a key.
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Shared secret for upload/delete. Absence is reported per request, not at startup.
    AUTH_TOKEN: Optional[str] = Field(default=None, validation_alias="auth")

    # Public base URL that uploaded paths are appended to
    CDN_URL: str = "http://localhost:8030"

    # Storage limits
    MAX_UPLOAD_SIZE: int = 30_000_000  # bytes

    # Directory paths
    UPLOAD_DIR: str = "./uploads"
    TEMP_DIR: str = "./temp"
    STATIC_DIR: str = "./static"

    # Logging; an empty LOG_DIR disables the log file
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8030

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
