"""Configuration for clau clients.

A :class:`ClauConfig` is immutable once built; use :meth:`ClauConfig.replace`
to derive a modified copy.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from clau._errors import ConfigError
from clau.types import ToolPermission


class StreamFormat(str, Enum):
    """Output format requested from the CLI."""

    TEXT = "text"
    JSON = "json"
    STREAM_JSON = "stream-json"

    @classmethod
    def _missing_(cls, value: object) -> Optional["StreamFormat"]:
        """Accept ``stream_json``/``streamjson`` spellings."""
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            if normalized == "streamjson":
                normalized = "stream-json"
            for member in cls:
                if member.value == normalized:
                    return member
        return None


DEFAULT_TIMEOUT_SECS = 30.0
DEFAULT_BINARY_NAME = "claude"


class ClauConfig(BaseModel):
    """Options used to build and run every request of a client."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    system_prompt: Optional[str] = None
    model: Optional[str] = None
    mcp_config_path: Optional[Path] = None
    allowed_tools: Optional[tuple[str, ...]] = None
    stream_format: StreamFormat = StreamFormat.TEXT
    verbose: bool = False
    max_tokens: Optional[int] = Field(default=None, gt=0)
    timeout_secs: Optional[float] = Field(default=DEFAULT_TIMEOUT_SECS, gt=0)
    cli_path: Optional[str] = None
    binary_name: str = DEFAULT_BINARY_NAME
    stream_buffer_size: int = Field(default=100, ge=1)

    @field_validator("stream_format", mode="before")
    @classmethod
    def _normalize_format(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, StreamFormat):
            try:
                return StreamFormat(value)
            except ValueError:
                return value
        return value

    @field_validator("allowed_tools", mode="before")
    @classmethod
    def _normalize_tools(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return tuple(
            tool.to_cli_format() if isinstance(tool, ToolPermission) else tool
            for tool in value
        )

    @property
    def binary(self) -> str:
        """Binary to resolve: the explicit path when set, else the binary name."""
        return self.cli_path or self.binary_name

    def replace(self, **changes: Any) -> "ClauConfig":
        """Return a validated copy with ``changes`` applied.

        Raises:
            ConfigError: If the resulting configuration is invalid.
        """
        data = self.model_dump()
        data.update(changes)
        try:
            return ClauConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClauConfig":
        """Build a configuration from ``CLAU_*`` environment variables.

        Explicit ``overrides`` win over the environment.

        Raises:
            ConfigError: If an environment value is invalid.
        """
        data: dict[str, Any] = {}
        env_fields = {
            "CLAU_MODEL": "model",
            "CLAU_TIMEOUT_SECS": "timeout_secs",
            "CLAU_CLI_PATH": "cli_path",
            "CLAU_OUTPUT_FORMAT": "stream_format",
        }
        for env_var, field_name in env_fields.items():
            value = os.environ.get(env_var)
            if value:
                data[field_name] = value
        data.update(overrides)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


__all__ = ["StreamFormat", "ClauConfig", "DEFAULT_TIMEOUT_SECS", "DEFAULT_BINARY_NAME"]
