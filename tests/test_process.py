"""Tests for running the claude binary and classifying the outcome."""

from __future__ import annotations

import os
import sys
import time

import anyio
import pytest

from clau._errors import BinaryNotFoundError, ClauIOError, ClauTimeoutError, ProcessError
from clau._internal.executor import CapturedOutput, find_binary
from clau._internal.executor.subprocess_cli import SubprocessCommandExecutor
from clau._internal.process import run_command

from conftest import FakeExecutor


def _python(code: str) -> list[str]:
    return ["-c", code]


def _process_exists(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class TestRunCommandWithFakeExecutor:
    """Outcome classification with canned executor results."""

    @pytest.mark.asyncio
    async def test_returns_stdout_verbatim(self):
        executor = FakeExecutor(stdout=b"  hello\n", location="/opt/claude")
        output = await run_command("claude", ["-p", "hi"], 5, executor)
        assert output == b"  hello\n"
        assert executor.calls == [["/opt/claude", "-p", "hi"]]

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises_process_error(self):
        executor = FakeExecutor(stdout=b"partial", stderr=b"boom", exit_status=1)
        with pytest.raises(ProcessError) as exc_info:
            await run_command("claude", ["-p", "hi"], 5, executor)
        assert "boom" in str(exc_info.value)
        assert exc_info.value.exit_code == 1
        assert "partial" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_stderr_on_success_is_ignored(self):
        executor = FakeExecutor(stdout=b"ok", stderr=b"warning: something")
        assert await run_command("claude", [], 5, executor) == b"ok"

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        executor = FakeExecutor(missing=True)
        with pytest.raises(BinaryNotFoundError):
            await run_command("claude", [], 5, executor)
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_timeout_cancels_the_run(self):
        executor = FakeExecutor(hang=True)
        with pytest.raises(ClauTimeoutError) as exc_info:
            await run_command("claude", [], 0.1, executor)
        assert exc_info.value.seconds == 0.1
        assert str(exc_info.value) == "Operation timed out after 0.1s"
        assert executor.killed

    @pytest.mark.asyncio
    async def test_no_timeout_when_none(self):
        executor = FakeExecutor(stdout=b"done")
        assert await run_command("claude", [], None, executor) == b"done"

    @pytest.mark.asyncio
    async def test_lines_forwarded_to_callback(self):
        executor = FakeExecutor(stdout=b"one\ntwo\n")
        seen: list[bytes] = []

        async def on_line(line: bytes) -> None:
            seen.append(line)

        await run_command("claude", [], 5, executor, on_line)
        assert seen == [b"one", b"two"]


class TestSubprocessExecutor:
    """Real child processes driven through the subprocess executor."""

    @pytest.mark.asyncio
    async def test_captures_stdout(self):
        output = await run_command(
            sys.executable,
            _python("print('hello from child')"),
            30,
            SubprocessCommandExecutor(),
        )
        assert output.strip() == b"hello from child"

    @pytest.mark.asyncio
    async def test_exit_status_and_stderr(self):
        code = "import sys; print('ignored'); sys.stderr.write('boom'); sys.exit(1)"
        with pytest.raises(ProcessError) as exc_info:
            await run_command(sys.executable, _python(code), 30, SubprocessCommandExecutor())
        assert exc_info.value.exit_code == 1
        assert exc_info.value.stderr == "boom"
        assert str(exc_info.value) == "Claude command failed: boom"

    @pytest.mark.asyncio
    async def test_streams_lines_as_they_arrive(self):
        code = "import sys\nfor i in range(3):\n    print(f'line {i}', flush=True)\nsys.stdout.write('tail')"
        seen: list[bytes] = []

        async def on_line(line: bytes) -> None:
            seen.append(line)

        output = await run_command(
            sys.executable, _python(code), 30, SubprocessCommandExecutor(), on_line
        )
        assert seen == [b"line 0", b"line 1", b"line 2", b"tail"]
        assert output.endswith(b"tail")

    @pytest.mark.asyncio
    async def test_passes_environment(self):
        code = "import os; print(os.environ['CLAU_TEST_VALUE'], os.environ['CLAUDE_CODE_ENTRYPOINT'])"
        executor = SubprocessCommandExecutor(env={"CLAU_TEST_VALUE": "42"})
        output = await run_command(sys.executable, _python(code), 30, executor)
        assert output.split() == [b"42", b"sdk-py"]

    @pytest.mark.asyncio
    async def test_missing_working_directory(self, tmp_path):
        executor = SubprocessCommandExecutor(cwd=tmp_path / "missing")
        with pytest.raises(ClauIOError):
            await run_command(sys.executable, _python("pass"), 30, executor)

    @pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX process signals")
    @pytest.mark.asyncio
    async def test_timeout_kills_child(self, tmp_path):
        pid_file = tmp_path / "child.pid"
        code = (
            "import os, time, pathlib\n"
            f"pathlib.Path({str(pid_file)!r}).write_text(str(os.getpid()))\n"
            "time.sleep(60)\n"
        )
        started = time.monotonic()
        with pytest.raises(ClauTimeoutError) as exc_info:
            await run_command(sys.executable, _python(code), 2, SubprocessCommandExecutor())

        assert time.monotonic() - started < 30
        assert str(exc_info.value) == "Operation timed out after 2s"
        pid = int(pid_file.read_text())
        assert not _process_exists(pid)


class _ChunkStream:
    """Byte stream yielding canned chunks, then optionally failing."""

    def __init__(self, chunks, error=None):
        self._chunks = list(chunks)
        self._error = error

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration


class _StandInProcess:
    pid = 4242
    returncode = 0

    def __init__(self, stdout, stderr):
        self.stdout = stdout
        self.stderr = stderr

    async def wait(self):
        return 0

    def kill(self):
        pass

    async def aclose(self):
        pass


class TestSubprocessPipes:
    """Pipe handling of the subprocess executor with a stand-in process."""

    @pytest.fixture
    def spawn(self, monkeypatch):
        def install(stdout, stderr):
            async def open_process(*args, **kwargs):
                return _StandInProcess(stdout, stderr)

            monkeypatch.setattr(anyio, "open_process", open_process)

        return install

    @pytest.mark.asyncio
    async def test_lines_split_across_chunks(self, spawn):
        spawn(_ChunkStream([b"ab", b"c\nde", b"f\n\ng", b"h"]), _ChunkStream([]))
        seen: list[bytes] = []

        async def on_line(line: bytes) -> None:
            seen.append(line)

        output = await SubprocessCommandExecutor().run(["claude"], on_line)
        assert seen == [b"abc", b"def", b"", b"gh"]
        assert output.stdout == b"abc\ndef\n\ngh"

    @pytest.mark.asyncio
    async def test_long_line_in_many_chunks(self, spawn):
        chunks = [b"x" * 4096 for _ in range(1000)] + [b"\nnext\n"]
        spawn(_ChunkStream(chunks), _ChunkStream([]))
        seen: list[bytes] = []

        async def on_line(line: bytes) -> None:
            seen.append(line)

        await SubprocessCommandExecutor().run(["claude"], on_line)
        assert [len(line) for line in seen] == [4096 * 1000, 4]

    @pytest.mark.asyncio
    async def test_stderr_read_failure_is_io_error(self, spawn):
        spawn(_ChunkStream([b"ok\n"]), _ChunkStream([b"partial"], error=OSError("pipe broke")))
        with pytest.raises(ClauIOError, match="pipe broke") as exc_info:
            await SubprocessCommandExecutor().run(["claude"])
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.asyncio
    async def test_stdout_read_failure_is_io_error(self, spawn):
        spawn(_ChunkStream([b"ok\n"], error=OSError("stdout gone")), _ChunkStream([]))
        with pytest.raises(ClauIOError, match="stdout gone"):
            await SubprocessCommandExecutor().run(["claude"])


class TestFindBinary:
    """Binary resolution."""

    def test_explicit_path(self):
        assert find_binary(sys.executable) == sys.executable

    def test_explicit_path_missing(self, tmp_path):
        with pytest.raises(BinaryNotFoundError) as exc_info:
            find_binary(str(tmp_path / "claude"))
        assert "cli_path" in str(exc_info.value)

    def test_unknown_name(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PATH", str(tmp_path))
        monkeypatch.setenv("HOME", str(tmp_path))
        with pytest.raises(BinaryNotFoundError):
            find_binary("clau-test-binary-that-does-not-exist")

    def test_found_on_path(self, monkeypatch, tmp_path):
        binary = tmp_path / "claude"
        binary.write_text("#!/bin/sh\n")
        binary.chmod(0o755)
        monkeypatch.setenv("PATH", str(tmp_path))
        assert find_binary("claude") == str(binary)


def test_captured_output_helpers():
    output = CapturedOutput(exit_status=2, stderr=b"bad \xff")
    assert not output.success
    assert output.stderr_text.startswith("bad ")
