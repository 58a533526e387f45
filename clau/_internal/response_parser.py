"""Turn captured claude stdout into a :class:`~clau.types.Response`.

One algorithm per output format. The format is fixed by the request and is
never guessed from the output:

- text: the trimmed output is the content.
- json: the output must be a single document matching ``CliResponse``;
  anything else is a :class:`~clau.SerializationError`.
- stream-json: one event per line; lines that are not JSON are skipped.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from clau._errors import SerializationError
from clau._internal.probes import EventProbe, probe_event
from clau.config import StreamFormat
from clau.types import CliResponse, Response, ResponseMetadata
from clau.utils.log import get_logger

logger = get_logger()


def extract_metadata(payload: Any) -> ResponseMetadata | None:
    """Best-effort metadata from a single JSON document.

    Returns None when the document carries no usable ``session_id``; every
    other field is optional and ignored when missing or mistyped.
    """
    probe = probe_event(payload)
    if probe is None or probe.session_id is None:
        return None

    message = probe.message
    return ResponseMetadata(
        session_id=probe.session_id,
        cost_usd=probe.cost_usd,
        duration_ms=probe.duration_ms,
        tokens_used=message.usage.to_response_usage() if message and message.usage else None,
        model=message.model if message else None,
    )


def extract_stream_metadata(events: Iterable[Any]) -> ResponseMetadata | None:
    """Best-effort metadata from a list of stream-json events.

    The ``result`` event is preferred, the ``system``/``init`` event fills
    in what it lacks, and the last assistant event supplies model and usage
    as a last resort.
    """
    init: EventProbe | None = None
    result: EventProbe | None = None
    assistant: EventProbe | None = None

    for event in events:
        probe = probe_event(event)
        if probe is None:
            continue
        if probe.type == "result":
            result = probe
        elif probe.type == "system" and probe.subtype == "init" and init is None:
            init = probe
        elif probe.type == "assistant":
            assistant = probe

    session_id = next(
        (p.session_id for p in (result, init, assistant) if p and p.session_id),
        None,
    )
    if session_id is None:
        return None

    assistant_message = assistant.message if assistant else None
    usage = result.usage if result else None
    if usage is None and assistant_message is not None:
        usage = assistant_message.usage

    model = init.model if init else None
    if model is None and assistant_message is not None:
        model = assistant_message.model

    return ResponseMetadata(
        session_id=session_id,
        cost_usd=result.cost if result else None,
        duration_ms=result.duration_ms if result else None,
        tokens_used=usage.to_response_usage() if usage else None,
        model=model,
    )


def _decode(stdout: bytes) -> str:
    return stdout.decode("utf-8", errors="replace")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def loads_json(data: str | bytes) -> Any:
    """Decode standard JSON; ``NaN`` and ``Infinity`` raise ValueError."""
    return json.loads(data, parse_constant=_reject_constant)


def assistant_text(event: Any) -> list[str]:
    """Text blocks of an ``assistant`` event, in order; empty for other events."""
    if not isinstance(event, dict) or event.get("type") != "assistant":
        return []
    message = event.get("message")
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if not isinstance(content, list):
        return []
    return [
        block["text"]
        for block in content
        if isinstance(block, dict)
        and block.get("type") == "text"
        and isinstance(block.get("text"), str)
    ]


def parse_text(stdout: bytes) -> Response:
    return Response.text(_decode(stdout).strip())


def parse_json(stdout: bytes) -> Response:
    """Parse ``--output-format json`` output.

    Raises:
        SerializationError: If the output is not one JSON document matching
            the CLI response schema.
    """
    try:
        payload = loads_json(stdout)
    except ValueError as e:
        raise SerializationError(f"Invalid JSON output from Claude CLI: {e}") from e

    try:
        cli_response = CliResponse.model_validate(payload)
    except ValidationError as e:
        raise SerializationError(f"Unexpected JSON response from Claude CLI: {e}") from e

    return Response.with_payload(cli_response.result, payload, extract_metadata(payload))


def parse_stream_json(stdout: bytes) -> Response:
    """Parse ``--output-format stream-json`` output.

    Blank lines and lines that are not JSON are skipped. Every other line is
    kept, in order, in the raw payload.
    """
    content: list[str] = []
    events: list[Any] = []
    skipped = 0

    for line in _decode(stdout).split("\n"):
        if not line.strip():
            continue
        try:
            event = loads_json(line)
        except ValueError:
            skipped += 1
            continue
        events.append(event)
        content.extend(assistant_text(event))

    if skipped:
        logger.warning(
            "[parser] Skipped malformed stream-json lines",
            extra={"skipped": skipped, "parsed": len(events)},
        )

    return Response.with_payload("".join(content), events, extract_stream_metadata(events))


def parse_response(stream_format: StreamFormat, stdout: bytes) -> Response:
    """Parse ``stdout`` according to ``stream_format``."""
    match stream_format:
        case StreamFormat.JSON:
            return parse_json(stdout)
        case StreamFormat.STREAM_JSON:
            return parse_stream_json(stdout)
        case _:
            return parse_text(stdout)


__all__ = [
    "assistant_text",
    "extract_metadata",
    "extract_stream_metadata",
    "loads_json",
    "parse_json",
    "parse_response",
    "parse_stream_json",
    "parse_text",
]
