"""Configuration models for the servers and clients."""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator


DEFAULT_BUFFER_SIZE = 1024
DEFAULT_CLIENT_TIMEOUT = 5.0
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_log_level() -> str:
    return os.environ.get("KVSTORE_LOG_LEVEL", "INFO")


def _check_log_level(value: str) -> str:
    level = value.upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
    return level


class ServerConfig(BaseModel):
    host: str = Field(default_factory=lambda: os.environ.get("KVSTORE_HOST", "0.0.0.0"))
    # 0 asks the OS for a free port; read the real one from the server's address
    port: int = Field(ge=0, le=65535)
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, gt=0)
    # Per-connection read timeout for TCP workers; None blocks until the peer closes
    read_timeout: Optional[float] = Field(default=None, gt=0)
    log_file: Optional[str] = None
    log_level: str = Field(default_factory=_env_log_level, validate_default=True)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        return _check_log_level(value)


class ClientConfig(BaseModel):
    host: str
    port: int = Field(ge=1, le=65535)
    timeout: float = Field(default=DEFAULT_CLIENT_TIMEOUT, gt=0)
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, gt=0)
    log_file: Optional[str] = None
    log_level: str = Field(default_factory=_env_log_level, validate_default=True)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        return _check_log_level(value)
