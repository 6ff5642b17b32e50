"""Pydantic models for homefs configuration schema."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from homefs.config.constants import (
    DEFAULT_BASE_DIR,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_REQUEST_BYTES,
    DEFAULT_PORT,
    DEFAULT_RATE_LIMIT_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW,
)

# Module-level constants for validation
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ServerConfig(BaseModel):
    """HTTP endpoint configuration."""

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    token: str = Field(
        default="",
        description="Bearer token required by clients. Empty disables authentication.",
    )
    max_request_bytes: int = Field(default=DEFAULT_MAX_REQUEST_BYTES, ge=1024)
    rate_limit_requests: int = Field(
        default=DEFAULT_RATE_LIMIT_REQUESTS,
        ge=1,
        description="Maximum requests per client within the rate limit window",
    )
    rate_limit_window: int = Field(
        default=DEFAULT_RATE_LIMIT_WINDOW, ge=1, description="Rate limit window in seconds"
    )
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("token")
    @classmethod
    def strip_token(cls, v: str) -> str:
        """Strip surrounding whitespace from the token."""
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {sorted(VALID_LOG_LEVELS)}")
        return level


class SandboxConfig(BaseModel):
    """Sandbox directory configuration."""

    home_dir: str | None = Field(
        default=None,
        description="Override for the sandbox root. Defaults to the OS user's home directory.",
    )
    base_dir: str = Field(
        default=DEFAULT_BASE_DIR,
        description="Default root for relative paths ('~', '~/apps', 'apps' or an absolute path under home)",
    )


class HomeFSSettings(BaseModel):
    """Root configuration model for homefs."""

    version: str = "1.0"
    server: ServerConfig = Field(default_factory=ServerConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)

    def model_dump_json_pretty(self, **kwargs: Any) -> str:
        """Dump model to pretty-printed JSON string."""
        return self.model_dump_json(indent=2, **kwargs)

    @property
    def auth_enabled(self) -> bool:
        """Whether clients must present a bearer token."""
        return bool(self.server.token)
