"""Subprocess executor implementation using anyio for async I/O."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from contextlib import suppress
from pathlib import Path

import anyio
from anyio.abc import ByteReceiveStream, Process

from clau._errors import ClauIOError
from clau._internal.executor import CapturedOutput, CommandExecutor, LineCallback
from clau.utils.log import get_logger

logger = get_logger()


class SubprocessCommandExecutor(CommandExecutor):
    """Run the claude binary as a child process.

    stdin is closed at start (the query travels as an argument); stdout and
    stderr are drained concurrently so neither pipe can fill up and stall
    the child.
    """

    def __init__(
        self,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._cwd = str(cwd) if cwd else None
        self._env = dict(env or {})

    async def run(
        self,
        argv: Sequence[str],
        on_stdout_line: LineCallback | None = None,
    ) -> CapturedOutput:
        process_env = {**os.environ, **self._env}
        process_env.setdefault("CLAUDE_CODE_ENTRYPOINT", "sdk-py")

        try:
            process = await anyio.open_process(
                list(argv),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self._cwd,
                env=process_env,
            )
        except FileNotFoundError as e:
            if self._cwd and not Path(self._cwd).exists():
                raise ClauIOError(f"Working directory does not exist: {self._cwd}") from e
            raise ClauIOError(f"Failed to start Claude CLI at {argv[0]}: {e}") from e
        except OSError as e:
            raise ClauIOError(f"Failed to start Claude CLI: {e}") from e

        logger.debug("[process] Started claude process", extra={"pid": process.pid})

        stdout = bytearray()
        stderr = bytearray()
        stderr_errors: list[OSError] = []
        failure: Exception | None = None
        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(_drain, process.stderr, stderr, stderr_errors)
                try:
                    await _drain_lines(process.stdout, stdout, on_stdout_line)
                except Exception as e:
                    # Raised after the group exits so callers get the bare exception.
                    failure = e
                    tg.cancel_scope.cancel()
            if failure is None and stderr_errors:
                failure = stderr_errors[0]
            if isinstance(failure, OSError):
                raise ClauIOError(f"Failed to read Claude CLI output: {failure}") from failure
            if failure is not None:
                raise failure
            exit_status = await process.wait()
        finally:
            await _reap(process)

        logger.debug(
            "[process] Claude process exited",
            extra={"pid": process.pid, "exit_status": exit_status, "stdout_bytes": len(stdout)},
        )
        return CapturedOutput(exit_status=exit_status, stdout=bytes(stdout), stderr=bytes(stderr))


async def _drain(
    stream: ByteReceiveStream | None,
    sink: bytearray,
    errors: list[OSError],
) -> None:
    """Collect ``stream`` into ``sink``; read errors are recorded, not raised."""
    if stream is None:
        return
    try:
        async for chunk in stream:
            sink.extend(chunk)
    except anyio.ClosedResourceError:
        pass  # Stream closed
    except OSError as e:
        errors.append(e)


async def _drain_lines(
    stream: ByteReceiveStream | None,
    sink: bytearray,
    on_line: LineCallback | None,
) -> None:
    """Collect ``stream`` into ``sink`` and hand each complete line to ``on_line``."""
    if stream is None:
        return
    pending = bytearray()
    async for chunk in stream:
        sink.extend(chunk)
        if on_line is None:
            continue
        start = 0
        # Only the new chunk is searched; ``pending`` never contains a newline.
        newline = chunk.find(b"\n")
        while newline != -1:
            pending += chunk[start:newline]
            line = bytes(pending)
            pending.clear()
            await on_line(line)
            start = newline + 1
            newline = chunk.find(b"\n", start)
        pending += chunk[start:]
    if on_line is not None and pending:
        await on_line(bytes(pending))


async def _reap(process: Process) -> None:
    """Kill the process if it is still running and wait for it to exit."""
    with anyio.CancelScope(shield=True):
        if process.returncode is None:
            logger.debug("[process] Killing claude process", extra={"pid": process.pid})
            with suppress(ProcessLookupError):
                process.kill()
        await process.aclose()


__all__ = ["SubprocessCommandExecutor"]
