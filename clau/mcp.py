"""MCP server configuration files for ``--mcp-config``."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from clau._errors import ConfigError

_SERVERS_KEYS = ("mcpServers", "servers")


@dataclass
class McpServer:
    """A stdio MCP server the CLI may launch."""

    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    def with_env(self, key: str, value: str) -> "McpServer":
        self.env[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command, "args": list(self.args), "env": dict(self.env)}


def _looks_like_server_entry(value: Any) -> bool:
    return isinstance(value, dict) and "command" in value


def _server_from_entry(name: str, entry: Any, path: Path) -> McpServer:
    if not isinstance(entry, dict) or not isinstance(entry.get("command"), str):
        raise ConfigError(f"Invalid MCP server '{name}' in {path}: 'command' must be a string.")
    args = entry.get("args", [])
    env = entry.get("env", {})
    if not isinstance(args, list) or not isinstance(env, dict):
        raise ConfigError(
            f"Invalid MCP server '{name}' in {path}: 'args' must be a list and 'env' an object."
        )
    return McpServer(
        name=name,
        command=entry["command"],
        args=[str(arg) for arg in args],
        env={str(key): str(value) for key, value in env.items()},
    )


@dataclass
class McpConfig:
    """Set of MCP servers, serialized in the CLI's ``mcpServers`` layout."""

    servers: list[McpServer] = field(default_factory=list)

    def add(self, server: McpServer) -> "McpConfig":
        self.servers.append(server)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"mcpServers": {server.name: server.to_dict() for server in self.servers}}

    def write(self, path: str | Path) -> Path:
        """Write the configuration as JSON, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: str | Path) -> "McpConfig":
        """Read a configuration file.

        Accepts ``mcpServers`` or ``servers`` containers as well as server
        entries at the top level.

        Raises:
            ConfigError: If the file is missing or malformed.
        """
        path = Path(path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Invalid MCP config JSON at {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError(f"Invalid MCP config format at {path}: root must be an object.")

        servers: Any = None
        for key in _SERVERS_KEYS:
            if key in payload:
                servers = payload[key]
                if not isinstance(servers, dict):
                    raise ConfigError(f"Invalid MCP config at {path}: '{key}' must be an object.")
                break
        if servers is None:
            servers = {name: entry for name, entry in payload.items() if _looks_like_server_entry(entry)}

        return cls(servers=[_server_from_entry(name, entry, path) for name, entry in servers.items()])


__all__ = ["McpServer", "McpConfig"]
