"""Application configuration.

Values come from `QUIZ_FUNNEL_*` environment variables layered over
development defaults, validated by Pydantic models. A missing backend URL
selects the in-memory lead store and a logging-only notification client.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .errors import ConfigError

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PREFIX = "QUIZ_FUNNEL_"
logger = logging.getLogger(__name__)


class BackendConfig(BaseModel):
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = Field(default=10.0, gt=0)
    lead_table: str = "quiz_leads"

    @field_validator("url")
    @classmethod
    def url_must_be_http(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("backend.url must start with http:// or https://")
        return v

    @property
    def enabled(self) -> bool:
        return self.url is not None


class FunnelConfig(BaseModel):
    secret_key: str = "replace-this-with-a-random-value"
    content_dir: Path = BASE_DIR / "data"
    default_quiz: str = "team-performance"
    log_level: str = "INFO"
    notification_workers: int = Field(default=2, ge=1)
    backend: BackendConfig = Field(default_factory=BackendConfig)

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return v


def load_config(env: Optional[Mapping[str, str]] = None) -> FunnelConfig:
    """Load configuration with environment overrides.

    Raises ConfigError when a supplied value does not validate.
    """
    source = os.environ if env is None else env

    def _env(key: str) -> Optional[str]:
        return source.get(ENV_PREFIX + key)

    values: dict = {}
    backend: dict = {}
    for field, key in (
        ("secret_key", "SECRET_KEY"),
        ("content_dir", "CONTENT_DIR"),
        ("default_quiz", "DEFAULT_QUIZ"),
        ("log_level", "LOG_LEVEL"),
        ("notification_workers", "NOTIFICATION_WORKERS"),
    ):
        value = _env(key)
        if value is not None:
            values[field] = value
    for field, key in (
        ("url", "BACKEND_URL"),
        ("api_key", "BACKEND_API_KEY"),
        ("timeout_seconds", "BACKEND_TIMEOUT"),
        ("lead_table", "LEAD_TABLE"),
    ):
        value = _env(key)
        if value is not None:
            backend[field] = value

    try:
        return FunnelConfig(**values, backend=BackendConfig(**backend))
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise ConfigError(str(e)) from e


__all__ = ["BackendConfig", "FunnelConfig", "load_config"]
