"""Ordered, cancellable sequence of messages produced by one request.

The producer runs in a task group owned by the stream and hands messages
over a bounded memory object stream, so a slow consumer slows the producer
down instead of buffering the whole conversation. Leaving the ``async with``
block cancels the producer, which in turn kills the claude process.

Example:
    async with client.query("Explain ownership").stream() as stream:
        async for message in stream:
            ...
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Union

import anyio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from clau._errors import StreamClosedError
from clau.types import AssistantMessage, Message, ResultMessage
from clau.utils.log import get_logger

logger = get_logger()

StreamItem = Union[Message, Exception]
Producer = Callable[[MemoryObjectSendStream[Any]], Awaitable[None]]


class MessageStream:
    """Async iterator over the messages of one request.

    Iteration ends after a :class:`~clau.types.ResultMessage` has been
    delivered or when the producer finishes. Errors raised by the producer
    are re-raised from iteration, after the messages sent before them.
    A stream can be started only once.
    """

    def __init__(self, producer: Producer, buffer_size: int = 100) -> None:
        self._producer = producer
        self._buffer_size = buffer_size
        self._receive: MemoryObjectReceiveStream[Any] | None = None
        self._tg: TaskGroup | None = None
        self._started = False
        self._finished = False
        self._closed = False

    async def __aenter__(self) -> "MessageStream":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.aclose()

    async def start(self) -> None:
        """Start the producer task."""
        if self._started:
            raise RuntimeError("MessageStream cannot be restarted")
        self._started = True

        send, self._receive = anyio.create_memory_object_stream(max_buffer_size=self._buffer_size)
        self._tg = anyio.create_task_group()
        await self._tg.__aenter__()
        self._tg.start_soon(self._run_producer, send)

    async def _run_producer(self, send: MemoryObjectSendStream[Any]) -> None:
        async with send:
            try:
                await self._producer(send)
            except Exception as e:
                logger.debug("[stream] Producer failed", extra={"error": repr(e)})
                await send.send(e)

    def __aiter__(self) -> "MessageStream":
        return self

    async def __anext__(self) -> Message:
        if self._closed:
            raise StreamClosedError("Message stream is closed")
        if not self._started or self._receive is None:
            raise RuntimeError("MessageStream must be started with 'async with' before iterating")
        if self._finished:
            raise StopAsyncIteration

        try:
            item: StreamItem = await self._receive.receive()
        except anyio.EndOfStream:
            self._finished = True
            raise StopAsyncIteration from None

        if isinstance(item, Exception):
            self._finished = True
            raise item
        if isinstance(item, ResultMessage):
            self._finished = True
        return item

    async def collect_full_response(self) -> str:
        """Concatenate the assistant text until a result message or the end.

        Starts and closes the stream itself when it has not been started yet.
        """
        if not self._started:
            async with self:
                return await self.collect_full_response()

        parts: list[str] = []
        async for message in self:
            if isinstance(message, AssistantMessage):
                parts.append(message.content)
            elif isinstance(message, ResultMessage):
                break
        return "".join(parts)

    async def aclose(self) -> None:
        """Cancel the producer and release the channel."""
        if self._closed:
            return
        self._closed = True

        if self._tg is not None:
            self._tg.cancel_scope.cancel()
            await self._tg.__aexit__(None, None, None)
            self._tg = None

        if self._receive is not None:
            await self._receive.aclose()
            self._receive = None


__all__ = ["MessageStream", "Producer"]
