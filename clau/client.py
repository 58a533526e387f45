"""High-level client for the Claude Code CLI.

``ClauClient.send`` for plain text answers, ``send_full`` for the response
with metadata and raw payload, and ``query(...).stream()`` for messages.

Example:
    client = ClauClient(ClauConfig(stream_format=StreamFormat.JSON))
    response = await client.send_full("What is 2 + 2?")
    print(response.content, response.metadata)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, TypeVar, Union

from anyio.streams.memory import MemoryObjectSendStream
from pydantic import TypeAdapter, ValidationError

from clau._errors import SerializationError
from clau._internal.command import build_command
from clau._internal.executor import CommandExecutor, LineCallback
from clau._internal.executor.subprocess_cli import SubprocessCommandExecutor
from clau._internal.message_parser import StreamEventParser
from clau._internal.process import run_command
from clau._internal.response_parser import parse_response
from clau.config import ClauConfig, StreamFormat
from clau.session import SessionId
from clau.stream import MessageStream, Producer
from clau.types import AssistantMessage, MessageMeta, Response
from clau.utils.log import get_logger

T = TypeVar("T")

# Session id carried by the single message of a buffered stream.
LEGACY_STREAM_SESSION_ID = "stream-session"

logger = get_logger()


class ClauClient:
    """Client for the claude binary.

    The configuration is shared by every request and never modified, so one
    client can serve concurrent requests.
    """

    def __init__(
        self,
        config: Optional[ClauConfig] = None,
        executor: Optional[CommandExecutor] = None,
    ) -> None:
        self._config = config or ClauConfig()
        self._executor = executor or SubprocessCommandExecutor()

    @property
    def config(self) -> ClauConfig:
        return self._config

    @property
    def executor(self) -> CommandExecutor:
        return self._executor

    def query(self, query: str) -> "QueryBuilder":
        """Start building a request for ``query``."""
        return QueryBuilder(self, query)

    async def send(self, query: str) -> str:
        """Send a query and return just the text content."""
        response = await self.send_full(query)
        return response.content

    async def send_full(self, query: str) -> Response:
        """Send a query and return the full response with metadata and raw payload."""
        return await self._send_full(query, self._config)

    async def _execute(
        self,
        query: str,
        config: ClauConfig,
        on_stdout_line: Optional[LineCallback] = None,
    ) -> bytes:
        args = build_command(config, query)
        return await run_command(
            config.binary,
            args,
            config.timeout_secs,
            self._executor,
            on_stdout_line,
        )

    async def _send_full(self, query: str, config: ClauConfig) -> Response:
        stdout = await self._execute(query, config)
        response = parse_response(config.stream_format, stdout)
        logger.debug(
            "[client] Query completed",
            extra={
                "format": config.stream_format.value,
                "content_length": len(response.content),
                "session_id": response.metadata.session_id if response.metadata else None,
            },
        )
        return response


class QueryBuilder:
    """Per-request options for a :class:`ClauClient` query."""

    def __init__(self, client: ClauClient, query: str) -> None:
        self._client = client
        self._query = query
        self._session_id: Optional[str] = None
        self._format: Optional[StreamFormat] = None

    def session(self, session_id: Union[SessionId, str]) -> "QueryBuilder":
        """Attach a session id to the messages of this request."""
        self._session_id = str(session_id)
        return self

    def format(self, stream_format: Union[StreamFormat, str]) -> "QueryBuilder":
        """Override the output format for this request only."""
        self._format = StreamFormat(stream_format)
        return self

    @property
    def config(self) -> ClauConfig:
        """Configuration used for this request."""
        config = self._client.config
        if self._format is not None and self._format is not config.stream_format:
            config = config.replace(stream_format=self._format)
        return config

    async def send(self) -> str:
        response = await self.send_full()
        return response.content

    async def send_full(self) -> Response:
        return await self._client._send_full(self._query, self.config)

    def stream(self, incremental: Optional[bool] = None) -> MessageStream:
        """Stream the messages of this request.

        Args:
            incremental: Deliver messages as the CLI emits them. Defaults to
                True for the stream-json format and False otherwise; True
                with another format switches the request to stream-json.
                When False the request runs to completion and a single
                assistant message with the full text is delivered.
        """
        config = self.config
        if incremental is None:
            incremental = config.stream_format is StreamFormat.STREAM_JSON
        if incremental and config.stream_format is not StreamFormat.STREAM_JSON:
            config = config.replace(stream_format=StreamFormat.STREAM_JSON)

        producer = self._incremental_producer(config) if incremental else self._buffered_producer(config)
        return MessageStream(producer, buffer_size=config.stream_buffer_size)

    def _incremental_producer(self, config: ClauConfig) -> Producer:
        parser = StreamEventParser(session_id=self._session_id)

        async def produce(send: MemoryObjectSendStream[Any]) -> None:
            async def on_line(line: bytes) -> None:
                for message in parser.parse_line(line):
                    await send.send(message)

            await self._client._execute(self._query, config, on_stdout_line=on_line)

        return produce

    def _buffered_producer(self, config: ClauConfig) -> Producer:
        async def produce(send: MemoryObjectSendStream[Any]) -> None:
            response = await self._client._send_full(self._query, config)
            meta = MessageMeta(
                session_id=self._session_id or LEGACY_STREAM_SESSION_ID,
                timestamp=datetime.now(timezone.utc),
            )
            await send.send(AssistantMessage(meta=meta, content=response.content))

        return produce

    async def parse_output(self, output_type: type[T]) -> T:
        """Send the query and validate the answer text as JSON of ``output_type``.

        Raises:
            SerializationError: If the answer is not valid JSON of that type.
        """
        text = await self.send()
        try:
            return TypeAdapter(output_type).validate_json(text)
        except ValidationError as e:
            raise SerializationError(f"Response is not valid {output_type!r}: {e}") from e


__all__ = ["ClauClient", "QueryBuilder", "LEGACY_STREAM_SESSION_ID"]
