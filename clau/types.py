"""Message, response and permission types for clau."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    TypeAdapter,
    ValidationError,
    model_serializer,
    model_validator,
)

from clau._errors import SerializationError

# =============================================================================
# Token usage
# =============================================================================


class TokenUsage(BaseModel):
    """Token counts attached to messages.

    Not interchangeable with :class:`ResponseUsage`, which mirrors the
    optional counters reported in response metadata.
    """

    model_config = ConfigDict(frozen=True)

    input: int
    output: int
    total: int


class ResponseUsage(BaseModel):
    """Token counters reported by the CLI in response metadata."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int | None = None
    output_tokens: int | None = None
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None


# =============================================================================
# Message types
# =============================================================================


class MessageType(str, Enum):
    """Tag of a :data:`Message` variant."""

    INIT = "init"
    USER = "user"
    ASSISTANT = "assistant"
    RESULT = "result"
    SYSTEM = "system"
    TOOL = "tool"
    TOOL_RESULT = "tool_result"


class MessageMeta(BaseModel):
    """Metadata shared by every message variant."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    timestamp: datetime | None = None
    cost_usd: float | None = None
    duration_ms: int | None = None
    tokens_used: TokenUsage | None = None


_META_FIELDS = tuple(MessageMeta.model_fields)


class ConversationStats(BaseModel):
    """Aggregate statistics carried by a result message."""

    model_config = ConfigDict(frozen=True)

    total_messages: int
    total_cost_usd: float
    total_duration_ms: int
    total_tokens: TokenUsage


class _BaseMessage(BaseModel):
    """Common behaviour for message variants.

    On the wire the ``meta`` fields sit next to ``type`` at the top level.
    """

    model_config = ConfigDict(frozen=True)

    meta: MessageMeta

    @model_validator(mode="before")
    @classmethod
    def _lift_meta(cls, data: Any) -> Any:
        if isinstance(data, dict) and "meta" not in data:
            data = dict(data)
            data["meta"] = {key: data.pop(key) for key in _META_FIELDS if key in data}
        return data

    @model_serializer(mode="wrap")
    def _flatten_meta(self, handler: Any) -> dict[str, Any]:
        payload = handler(self)
        meta = payload.pop("meta", None) or {}
        return {**payload, **meta}

    @property
    def message_type(self) -> MessageType:
        return MessageType(self.type)  # type: ignore[attr-defined]


class InitMessage(_BaseMessage):
    """Start of a conversation."""

    type: Literal["init"] = "init"


class UserMessage(_BaseMessage):
    """Text sent by the user."""

    type: Literal["user"] = "user"
    content: str


class AssistantMessage(_BaseMessage):
    """Text produced by the assistant."""

    type: Literal["assistant"] = "assistant"
    content: str


class ResultMessage(_BaseMessage):
    """End of a conversation, with aggregate statistics."""

    type: Literal["result"] = "result"
    stats: ConversationStats


class SystemMessage(_BaseMessage):
    """System-level notice."""

    type: Literal["system"] = "system"
    content: str


class ToolMessage(_BaseMessage):
    """Tool invocation requested by the assistant."""

    type: Literal["tool"] = "tool"
    name: str
    parameters: JsonValue = None


class ToolResultMessage(_BaseMessage):
    """Result of a tool invocation."""

    type: Literal["tool_result"] = "tool_result"
    tool_name: str
    result: JsonValue = None


Message = Annotated[
    Union[
        InitMessage,
        UserMessage,
        AssistantMessage,
        ResultMessage,
        SystemMessage,
        ToolMessage,
        ToolResultMessage,
    ],
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def encode_message(message: Message) -> dict[str, Any]:
    """Encode a message into a JSON-compatible dict."""
    return _message_adapter.dump_python(message, mode="json")


def decode_message(data: Any) -> Message:
    """Decode a message from a dict or a JSON string.

    Raises:
        SerializationError: If the data does not describe a known message.
    """
    try:
        if isinstance(data, (str, bytes)):
            return _message_adapter.validate_json(data)
        return _message_adapter.validate_python(data)
    except ValidationError as e:
        raise SerializationError(f"Invalid message: {e}") from e


# =============================================================================
# Responses
# =============================================================================


class ResponseMetadata(BaseModel):
    """Structured metadata extracted from CLI output."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    cost_usd: float | None = None
    duration_ms: int | None = None
    tokens_used: ResponseUsage | None = None
    model: str | None = None


class Response(BaseModel):
    """Result of a one-shot query.

    ``raw_payload`` holds the fully decoded CLI output (an object for the
    json format, a list of events for stream-json) for advanced inspection.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    raw_payload: JsonValue = None
    metadata: ResponseMetadata | None = None

    @classmethod
    def text(cls, content: str) -> "Response":
        return cls(content=content)

    @classmethod
    def with_payload(
        cls,
        content: str,
        raw_payload: Any,
        metadata: ResponseMetadata | None = None,
    ) -> "Response":
        return cls(content=content, raw_payload=raw_payload, metadata=metadata)

    def __str__(self) -> str:
        return self.content


class CliResponse(BaseModel):
    """Schema of the single JSON document printed with ``--output-format json``.

    Validated strictly: values of the wrong JSON type are rejected, not coerced.
    """

    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    type: str
    subtype: str
    cost_usd: float
    is_error: bool
    duration_ms: int
    duration_api_ms: int | None = None
    num_turns: int
    result: str
    total_cost: float
    session_id: str


# =============================================================================
# Tool permissions and cost
# =============================================================================


@dataclass(frozen=True)
class ToolPermission:
    """Capability string granted to the CLI through ``--allowedTools``.

    Build one with :meth:`mcp`, :meth:`bash` or :meth:`all`.
    """

    kind: Literal["mcp", "bash", "all"]
    server: str | None = None
    tool: str | None = None
    command: str | None = None

    @classmethod
    def mcp(cls, server: str, tool: str) -> "ToolPermission":
        return cls(kind="mcp", server=server, tool=tool)

    @classmethod
    def bash(cls, command: str) -> "ToolPermission":
        return cls(kind="bash", command=command)

    @classmethod
    def all(cls) -> "ToolPermission":
        return cls(kind="all")

    def to_cli_format(self) -> str:
        match self.kind:
            case "mcp":
                return f"mcp__{self.server}__{self.tool}"
            case "bash":
                return f"bash:{self.command}"
            case _:
                return "*"

    def __str__(self) -> str:
        return self.to_cli_format()


@dataclass(frozen=True)
class Cost:
    """Monetary cost in USD."""

    usd: float

    @classmethod
    def zero(cls) -> "Cost":
        return cls(0.0)

    def __add__(self, other: "Cost") -> "Cost":
        if not isinstance(other, Cost):
            return NotImplemented
        return Cost(self.usd + other.usd)


__all__ = [
    "TokenUsage",
    "ResponseUsage",
    "MessageType",
    "MessageMeta",
    "ConversationStats",
    "InitMessage",
    "UserMessage",
    "AssistantMessage",
    "ResultMessage",
    "SystemMessage",
    "ToolMessage",
    "ToolResultMessage",
    "Message",
    "encode_message",
    "decode_message",
    "ResponseMetadata",
    "Response",
    "CliResponse",
    "ToolPermission",
    "Cost",
]
