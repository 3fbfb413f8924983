"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI shell, the CLI, and the
analysis workflow share one configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5 MiB
DEFAULT_MAX_SESSIONS = 1024


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()


class GeminiSettings(BaseSettings):
    """Configuration for the Gemini generateContent endpoint."""

    api_key: str = Field(..., validation_alias="GEMINI_API_KEY")
    model_name: str = Field(
        "gemini-1.5-flash-latest", validation_alias="GEMINI_MODEL_NAME"
    )
    api_base_url: str = Field(
        "https://generativelanguage.googleapis.com/v1beta",
        validation_alias="GEMINI_API_BASE_URL",
    )
    request_timeout_seconds: Optional[float] = Field(
        None,
        validation_alias="GEMINI_REQUEST_TIMEOUT",
        description="Seconds to wait for a response. Unset means wait indefinitely.",
    )
    default_mime_type: str = Field(
        "image/jpeg",
        validation_alias="GEMINI_DEFAULT_MIME_TYPE",
        description="MIME type sent when the upload does not declare an image type.",
    )

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class AppSettings(BaseSettings):
    """Root settings object for the plant identifier."""

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    max_upload_bytes: int = Field(
        DEFAULT_MAX_UPLOAD_BYTES,
        validation_alias="MAX_UPLOAD_BYTES",
        gt=0,
        description="Largest image accepted for analysis, in bytes.",
    )
    max_sessions: int = Field(
        DEFAULT_MAX_SESSIONS,
        validation_alias="MAX_SESSIONS",
        gt=0,
        description="Idle sessions kept in memory before the least recently used are dropped.",
    )
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DEFAULT_MAX_SESSIONS",
    "DEFAULT_MAX_UPLOAD_BYTES",
    "GeminiSettings",
    "get_settings",
]
