"""Configuration management for the AWS account-management MCP server."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

_config_logger = logging.getLogger(__name__)

DEFAULT_PROFILE_STORE_PATH = "~/.mcp-aws-cli/profiles.json"


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")
    debug: bool = Field(default=False, description="Force DEBUG level")

    @property
    def effective_level(self) -> str:
        return "DEBUG" if self.debug else self.level


class ExecutionSettings(BaseModel):
    sdk_timeout_seconds: int = Field(default=30, ge=1, le=300)
    max_attempts: int = Field(default=3, ge=1, le=10)
    insights_max_wait_seconds: int = Field(default=60, ge=1, le=900)


class CacheSettings(BaseModel):
    ttl_seconds: int = Field(default=300, ge=0, le=86_400)
    max_entries: int = Field(default=512, ge=1, le=100_000)
    client_ttl_seconds: int = Field(default=3600, ge=1)
    client_max_entries: int = Field(default=256, ge=1)


class AWSSettings(BaseModel):
    profile_store_path: str = Field(default=DEFAULT_PROFILE_STORE_PATH)
    fallback_region: str = Field(default="us-east-1")


class ServerSettings(BaseModel):
    name: str = Field(default="mcp-aws-cli")
    runtime: Literal["fastmcp", "simple"] = Field(default="fastmcp")
    instructions: str = Field(
        default=(
            "Use these tools to inspect and manage AWS resources. Credentials are "
            "discovered automatically; when none are found, follow the returned "
            "guidance or create a profile with aws-manage-profiles."
        )
    )


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)


ENV_KEYS = {
    "runtime": "MCP_RUNTIME",
    "instructions": "MCP_INSTRUCTIONS",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "debug": "MCP_AWS_CLI_DEBUG",
    "max_retries": "MCP_AWS_CLI_MAX_RETRIES",
    "sdk_timeout": "MCP_AWS_CLI_SDK_TIMEOUT",
    "insights_max_wait": "MCP_AWS_CLI_INSIGHTS_MAX_WAIT",
    "cache_ttl": "MCP_AWS_CLI_CACHE_TTL",
    "profile_store": "MCP_AWS_CLI_PROFILE_STORE",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])

    settings_data: dict[str, object] = {
        "server": {
            "runtime": os.getenv(ENV_KEYS["runtime"], ServerSettings().runtime).strip().lower(),
            "instructions": os.getenv(ENV_KEYS["instructions"], ServerSettings().instructions),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
            "debug": _env_bool(ENV_KEYS["debug"], LoggingSettings().debug),
        },
        "execution": {
            "sdk_timeout_seconds": _env_int(
                ENV_KEYS["sdk_timeout"],
                ExecutionSettings().sdk_timeout_seconds,
            ),
            "max_attempts": _env_int(
                ENV_KEYS["max_retries"],
                ExecutionSettings().max_attempts,
            ),
            "insights_max_wait_seconds": _env_int(
                ENV_KEYS["insights_max_wait"],
                ExecutionSettings().insights_max_wait_seconds,
            ),
        },
        "cache": {
            "ttl_seconds": _env_int(ENV_KEYS["cache_ttl"], CacheSettings().ttl_seconds),
        },
        "aws": {
            "profile_store_path": os.getenv(
                ENV_KEYS["profile_store"], AWSSettings().profile_store_path
            ),
        },
    }

    try:
        return Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc
