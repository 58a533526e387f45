"""Pytest configuration and fixtures for all tests."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any, Optional

import anyio
import pytest

from clau._errors import BinaryNotFoundError
from clau._internal.executor import CapturedOutput, CommandExecutor, LineCallback


class FakeExecutor(CommandExecutor):
    """Executor returning canned output instead of spawning a process.

    With ``hang=True`` the run never finishes on its own (after emitting its
    stdout lines); ``killed`` records whether it was cancelled.
    """

    def __init__(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        exit_status: int = 0,
        hang: bool = False,
        missing: bool = False,
        location: Optional[str] = None,
    ) -> None:
        self.stdout = stdout
        self.stderr = stderr
        self.exit_status = exit_status
        self.hang = hang
        self.missing = missing
        self.location = location
        self.calls: list[list[str]] = []
        self.resolved: list[str] = []
        self.killed = False

    def resolve(self, binary: str) -> str:
        self.resolved.append(binary)
        if self.missing:
            raise BinaryNotFoundError(binary)
        return self.location or binary

    async def run(
        self,
        argv: Sequence[str],
        on_stdout_line: LineCallback | None = None,
    ) -> CapturedOutput:
        self.calls.append(list(argv))
        try:
            if on_stdout_line is not None:
                for line in self.stdout.split(b"\n"):
                    if line:
                        await on_stdout_line(line)
            if self.hang:
                await anyio.sleep_forever()
        except anyio.get_cancelled_exc_class():
            self.killed = True
            raise
        return CapturedOutput(
            exit_status=self.exit_status,
            stdout=self.stdout,
            stderr=self.stderr,
        )

    @property
    def last_args(self) -> list[str]:
        """Arguments of the last run, without the binary."""
        return self.calls[-1][1:]


def json_lines(*events: Any) -> bytes:
    """Encode events as stream-json output."""
    return b"".join(json.dumps(event).encode() + b"\n" for event in events)


def cli_json_response(**overrides: Any) -> dict[str, Any]:
    """A complete ``--output-format json`` document."""
    payload: dict[str, Any] = {
        "type": "result",
        "subtype": "success",
        "cost_usd": 0.0012,
        "is_error": False,
        "duration_ms": 1500,
        "duration_api_ms": 1200,
        "num_turns": 1,
        "result": "4",
        "total_cost": 0.0012,
        "session_id": "abc",
    }
    payload.update(overrides)
    return payload


STREAM_EVENTS: list[dict[str, Any]] = [
    {"type": "system", "subtype": "init", "session_id": "sess-1", "model": "claude-sonnet-4"},
    {
        "type": "assistant",
        "session_id": "sess-1",
        "message": {
            "model": "claude-sonnet-4",
            "content": [
                {"type": "text", "text": "Let me look."},
                {"type": "tool_use", "id": "tool-1", "name": "Read", "input": {"path": "a.txt"}},
            ],
            "usage": {"input_tokens": 10, "output_tokens": 5},
        },
    },
    {
        "type": "user",
        "session_id": "sess-1",
        "message": {
            "content": [{"type": "tool_result", "tool_use_id": "tool-1", "content": "hello"}]
        },
    },
    {
        "type": "result",
        "subtype": "success",
        "session_id": "sess-1",
        "total_cost_usd": 0.02,
        "duration_ms": 2000,
        "num_turns": 2,
        "usage": {"input_tokens": 30, "output_tokens": 12},
    },
]


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()
