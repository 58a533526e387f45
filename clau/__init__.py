"""
Clau - async Python client for the Claude Code CLI

Runs the ``claude`` binary in non-interactive mode and turns its output into
plain text, structured responses or a stream of typed messages.

Quick Start:
    from clau import ClauClient

    client = ClauClient()
    answer = await client.send("What is 2 + 2?")
"""

__version__ = "0.1.0"

from clau._errors import (
    BinaryNotFoundError,
    ClauError,
    ClauIOError,
    ClauTimeoutError,
    ConfigError,
    ProcessError,
    SerializationError,
    SessionNotFoundError,
    StreamClosedError,
)
from clau.client import ClauClient, QueryBuilder
from clau.config import ClauConfig, StreamFormat
from clau.mcp import McpConfig, McpServer
from clau.session import Session, SessionId, SessionManager
from clau.stream import MessageStream
from clau.types import (
    AssistantMessage,
    ConversationStats,
    Cost,
    InitMessage,
    Message,
    MessageMeta,
    MessageType,
    Response,
    ResponseMetadata,
    ResponseUsage,
    ResultMessage,
    SystemMessage,
    TokenUsage,
    ToolMessage,
    ToolPermission,
    ToolResultMessage,
    UserMessage,
    decode_message,
    encode_message,
)

__all__ = [
    "__version__",
    # Client
    "ClauClient",
    "QueryBuilder",
    "ClauConfig",
    "StreamFormat",
    "MessageStream",
    # Sessions and MCP
    "Session",
    "SessionId",
    "SessionManager",
    "McpConfig",
    "McpServer",
    # Types
    "AssistantMessage",
    "ConversationStats",
    "Cost",
    "InitMessage",
    "Message",
    "MessageMeta",
    "MessageType",
    "Response",
    "ResponseMetadata",
    "ResponseUsage",
    "ResultMessage",
    "SystemMessage",
    "TokenUsage",
    "ToolMessage",
    "ToolPermission",
    "ToolResultMessage",
    "UserMessage",
    "decode_message",
    "encode_message",
    # Errors
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
