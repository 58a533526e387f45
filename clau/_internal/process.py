"""Run the claude binary with a timeout and classify the outcome."""

from __future__ import annotations

from collections.abc import Sequence

import anyio

from clau._errors import ClauTimeoutError, ProcessError
from clau._internal.executor import CommandExecutor, LineCallback
from clau.utils.log import get_logger

logger = get_logger()


async def run_command(
    binary: str,
    args: Sequence[str],
    timeout_secs: float | None,
    executor: CommandExecutor,
    on_stdout_line: LineCallback | None = None,
) -> bytes:
    """Execute ``binary`` with ``args`` and return its stdout.

    Args:
        binary: Binary name or explicit path, resolved through ``executor``.
        args: Arguments as produced by :func:`clau._internal.command.build_command`.
        timeout_secs: Upper bound for the whole run, ``None`` for no limit.
        executor: Capability that actually runs the command.
        on_stdout_line: Forwarded to the executor for incremental reads.

    Returns:
        stdout bytes, verbatim.

    Raises:
        BinaryNotFoundError: If the binary cannot be located.
        ClauIOError: If the located binary cannot be started.
        ClauTimeoutError: If the run exceeds ``timeout_secs``. The child has
            been killed by the time this is raised.
        ProcessError: If the process exits with a non-zero status.
    """
    path = executor.resolve(binary)
    argv = [path, *args]
    logger.debug(
        "[process] Executing claude command",
        extra={"binary": path, "arg_count": len(args), "timeout_secs": timeout_secs},
    )

    try:
        with anyio.fail_after(timeout_secs):
            output = await executor.run(argv, on_stdout_line)
    except TimeoutError:
        logger.warning(
            "[process] Claude command timed out",
            extra={"binary": path, "timeout_secs": timeout_secs},
        )
        raise ClauTimeoutError(timeout_secs) from None

    if not output.success:
        logger.debug(
            "[process] Claude command failed",
            extra={"exit_status": output.exit_status, "stderr": output.stderr_text},
        )
        raise ProcessError(output.stderr_text, exit_code=output.exit_status)

    if output.stderr:
        logger.debug("[process] Claude stderr", extra={"stderr": output.stderr_text})

    return output.stdout


__all__ = ["run_command"]
