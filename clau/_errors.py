"""Error types for clau.

Exception hierarchy:
    ClauError (base)
    ├── BinaryNotFoundError (claude binary cannot be located)
    ├── ClauTimeoutError (process did not finish within the configured timeout)
    ├── ProcessError (process exited with a non-zero status)
    ├── SerializationError (output or message could not be decoded)
    ├── ClauIOError (spawn or pipe failure of a located binary)
    ├── SessionNotFoundError (unknown session id)
    ├── ConfigError (invalid configuration)
    └── StreamClosedError (message stream used after it was closed)
"""

from __future__ import annotations


class ClauError(Exception):
    """Base exception for all clau errors."""

    def __str__(self) -> str:
        return self.args[0] if self.args else "An error occurred in clau"


class BinaryNotFoundError(ClauError):
    """Raised when the claude binary cannot be found."""

    def __init__(self, binary: str) -> None:
        self.binary = binary
        super().__init__(
            f"Claude Code not found in PATH (looked for '{binary}'). Install it with:\n"
            "  npm install -g @anthropic-ai/claude-code\n"
            "\nOr point clau at it explicitly:\n"
            "  ClauConfig(cli_path='/path/to/claude')"
        )


class ClauTimeoutError(ClauError):
    """Raised when the claude process does not finish in time."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        shown = int(seconds) if float(seconds).is_integer() else seconds
        super().__init__(f"Operation timed out after {shown}s")


class ProcessError(ClauError):
    """Raised when the claude process exits with a non-zero status."""

    def __init__(self, stderr: str, exit_code: int | None = None) -> None:
        self.stderr = stderr
        self.exit_code = exit_code
        super().__init__(f"Claude command failed: {stderr}")


class SerializationError(ClauError):
    """Raised when CLI output or a message cannot be decoded."""


class ClauIOError(ClauError):
    """Raised when a located binary cannot be spawned or its pipes fail."""


class SessionNotFoundError(ClauError):
    """Raised when a session id is not known to the session manager."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class ConfigError(ClauError):
    """Raised for invalid configuration values."""


class StreamClosedError(ClauError):
    """Raised when a message stream is read after it has been closed."""


__all__ = [
    "ClauError",
    "BinaryNotFoundError",
    "ClauTimeoutError",
    "ProcessError",
    "SerializationError",
    "ClauIOError",
    "SessionNotFoundError",
    "ConfigError",
    "StreamClosedError",
]
