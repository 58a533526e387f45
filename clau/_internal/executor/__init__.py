"""Command executors for clau.

This module provides the abstraction that lets the runner launch the claude
binary through different mechanisms. The default implementation spawns a
real child process; tests plug in executors that return canned output.

The executor interface is low-level: it only runs an argument vector and
captures what the process printed. Timeouts and exit-status classification
live in :mod:`clau._internal.process`.
"""

from __future__ import annotations

import abc
import os
import shutil
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from clau._errors import BinaryNotFoundError

LineCallback = Callable[[bytes], Awaitable[None]]


@dataclass(frozen=True)
class CapturedOutput:
    """Exit status and output of a finished process."""

    exit_status: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def success(self) -> bool:
        return self.exit_status == 0

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


def _install_locations(binary: str) -> list[Path]:
    home = Path.home()
    return [
        home / ".claude" / "local" / binary,
        home / ".local" / "bin" / binary,
        Path("/usr/local") / "bin" / binary,
        home / ".npm-global" / "bin" / binary,
    ]


def find_binary(binary: str) -> str:
    """Locate ``binary``.

    An explicit path is used as is; a bare name is looked up on ``PATH`` and
    then in the usual install locations.

    Raises:
        BinaryNotFoundError: If the binary cannot be located.
    """
    is_path = os.sep in binary or (os.altsep is not None and os.altsep in binary)
    if is_path:
        candidate = Path(binary).expanduser()
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
        raise BinaryNotFoundError(binary)

    if found := shutil.which(binary):
        return found

    for path in _install_locations(binary):
        if path.is_file() and os.access(path, os.X_OK):
            return str(path)

    raise BinaryNotFoundError(binary)


class CommandExecutor(abc.ABC):
    """Abstract runner for external commands."""

    def resolve(self, binary: str) -> str:
        """Return the location of ``binary``.

        Raises:
            BinaryNotFoundError: If the binary cannot be located.
        """
        return find_binary(binary)

    @abc.abstractmethod
    async def run(
        self,
        argv: Sequence[str],
        on_stdout_line: LineCallback | None = None,
    ) -> CapturedOutput:
        """Run ``argv`` to completion and capture its output.

        Args:
            argv: Resolved binary followed by its arguments.
            on_stdout_line: Awaited with every stdout line (without the
                trailing newline) as soon as it is read.

        Implementations must kill and reap the process when the call is
        cancelled, so that no child outlives a timeout.

        Raises:
            ClauIOError: If the process cannot be started.
        """


__all__ = ["CapturedOutput", "CommandExecutor", "LineCallback", "find_binary"]
