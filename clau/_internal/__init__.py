"""Internal components of the clau request pipeline."""

from .command import build_command
from .executor import CapturedOutput, CommandExecutor
from .executor.subprocess_cli import SubprocessCommandExecutor
from .message_parser import StreamEventParser
from .process import run_command
from .response_parser import parse_response

__all__ = [
    "build_command",
    "CapturedOutput",
    "CommandExecutor",
    "SubprocessCommandExecutor",
    "StreamEventParser",
    "run_command",
    "parse_response",
]
