"""Convert stream-json events into typed Message objects.

Used by incremental streaming: every stdout line is handed to a
:class:`StreamEventParser` as soon as it is read.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from clau._internal.probes import probe_event
from clau._internal.response_parser import assistant_text, loads_json
from clau.types import (
    AssistantMessage,
    ConversationStats,
    InitMessage,
    Message,
    MessageMeta,
    ResultMessage,
    SystemMessage,
    TokenUsage,
    ToolMessage,
    ToolResultMessage,
    UserMessage,
)
from clau.utils.log import get_logger

logger = get_logger()


def _content_blocks(data: dict[str, Any]) -> tuple[Any, list[dict[str, Any]]]:
    message = data.get("message")
    if not isinstance(message, dict):
        return None, []
    content = message.get("content")
    if isinstance(content, list):
        return content, [block for block in content if isinstance(block, dict)]
    return content, []


class StreamEventParser:
    """Stateful per-request decoder for stream-json events.

    Remembers the session id announced by the CLI and the names of tool
    invocations, so that later tool results can be attributed to them.
    """

    def __init__(self, session_id: str | None = None) -> None:
        self._session_id = session_id or ""
        self._tool_names: dict[str, str] = {}
        self._emitted = 0

    @property
    def session_id(self) -> str:
        return self._session_id

    def parse_line(self, line: str | bytes) -> list[Message]:
        """Decode one stdout line. Blank and non-JSON lines yield nothing."""
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        if not line.strip():
            return []
        try:
            data = loads_json(line)
        except ValueError:
            logger.debug("[parser] Skipping non-JSON stream line", extra={"line": line[:200]})
            return []
        return self.parse_event(data)

    def parse_event(self, data: Any) -> list[Message]:
        """Decode one already-parsed event into zero or more messages."""
        if not isinstance(data, dict):
            return []
        session_id = data.get("session_id")
        if isinstance(session_id, str) and session_id:
            self._session_id = session_id

        messages = self._convert(data)
        self._emitted += len(messages)
        return messages

    def _meta(self, **fields: Any) -> MessageMeta:
        return MessageMeta(
            session_id=self._session_id,
            timestamp=datetime.now(timezone.utc),
            **fields,
        )

    def _convert(self, data: dict[str, Any]) -> list[Message]:
        event_type = data.get("type")
        match event_type:
            case "system":
                if data.get("subtype") == "init":
                    return [InitMessage(meta=self._meta())]
                content = data.get("message") or data.get("content") or data.get("subtype") or ""
                if not isinstance(content, str):
                    content = json.dumps(content)
                return [SystemMessage(meta=self._meta(), content=content)]

            case "assistant":
                return self._assistant(data)

            case "user":
                return self._user(data)

            case "result":
                return [self._result(data)]

            case _:
                logger.debug("[parser] Ignoring stream event", extra={"type": event_type})
                return []

    def _assistant(self, data: dict[str, Any]) -> list[Message]:
        messages: list[Message] = []
        probe = probe_event(data)
        usage = None
        if probe is not None and probe.message is not None and probe.message.usage is not None:
            usage = probe.message.usage.to_token_usage()

        text = "".join(assistant_text(data))
        if text:
            messages.append(AssistantMessage(meta=self._meta(tokens_used=usage), content=text))

        _, blocks = _content_blocks(data)
        for block in blocks:
            if block.get("type") != "tool_use":
                continue
            name = str(block.get("name", ""))
            tool_id = block.get("id")
            if isinstance(tool_id, str):
                self._tool_names[tool_id] = name
            messages.append(
                ToolMessage(meta=self._meta(), name=name, parameters=block.get("input") or {})
            )
        return messages

    def _user(self, data: dict[str, Any]) -> list[Message]:
        content, blocks = _content_blocks(data)
        if isinstance(content, str):
            return [UserMessage(meta=self._meta(), content=content)] if content else []

        texts: list[str] = []
        results: list[Message] = []
        for block in blocks:
            match block.get("type"):
                case "text":
                    text = block.get("text")
                    if isinstance(text, str):
                        texts.append(text)
                case "tool_result":
                    tool_use_id = str(block.get("tool_use_id", ""))
                    results.append(
                        ToolResultMessage(
                            meta=self._meta(),
                            tool_name=self._tool_names.get(tool_use_id, tool_use_id),
                            result=block.get("content"),
                        )
                    )

        messages: list[Message] = []
        if texts:
            messages.append(UserMessage(meta=self._meta(), content="".join(texts)))
        messages.extend(results)
        return messages

    def _result(self, data: dict[str, Any]) -> ResultMessage:
        probe = probe_event(data)
        cost = probe.cost if probe else None
        duration = probe.duration_ms if probe else None
        usage = probe.usage.to_token_usage() if probe and probe.usage else None

        stats = ConversationStats(
            # Counts the result message itself.
            total_messages=self._emitted + 1,
            total_cost_usd=cost or 0.0,
            total_duration_ms=duration or 0,
            total_tokens=usage or TokenUsage(input=0, output=0, total=0),
        )
        return ResultMessage(
            meta=self._meta(cost_usd=cost, duration_ms=duration, tokens_used=usage),
            stats=stats,
        )


__all__ = ["StreamEventParser"]
