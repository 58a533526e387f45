"""Tolerant decoding of CLI events.

Every field is optional, unknown fields are ignored and a field with an
unexpected type decodes as None instead of failing the whole event.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, WrapValidator

from clau.types import ResponseUsage, TokenUsage


def _none_on_error(value: Any, handler: Any) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None


_Lenient = WrapValidator(_none_on_error)


class _Probe(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class UsageProbe(_Probe):
    input_tokens: Annotated[Optional[int], _Lenient] = None
    output_tokens: Annotated[Optional[int], _Lenient] = None
    cache_creation_input_tokens: Annotated[Optional[int], _Lenient] = None
    cache_read_input_tokens: Annotated[Optional[int], _Lenient] = None

    def to_response_usage(self) -> ResponseUsage:
        return ResponseUsage(**self.model_dump())

    def to_token_usage(self) -> TokenUsage | None:
        """Message-model usage; None unless both input and output are known."""
        if self.input_tokens is None or self.output_tokens is None:
            return None
        return TokenUsage(
            input=self.input_tokens,
            output=self.output_tokens,
            total=self.input_tokens + self.output_tokens,
        )


class MessageProbe(_Probe):
    usage: Annotated[Optional[UsageProbe], _Lenient] = None
    model: Annotated[Optional[str], _Lenient] = None


class EventProbe(_Probe):
    type: Annotated[Optional[str], _Lenient] = None
    subtype: Annotated[Optional[str], _Lenient] = None
    session_id: Annotated[Optional[str], _Lenient] = None
    cost_usd: Annotated[Optional[float], _Lenient] = None
    total_cost_usd: Annotated[Optional[float], _Lenient] = None
    total_cost: Annotated[Optional[float], _Lenient] = None
    duration_ms: Annotated[Optional[int], _Lenient] = None
    num_turns: Annotated[Optional[int], _Lenient] = None
    model: Annotated[Optional[str], _Lenient] = None
    usage: Annotated[Optional[UsageProbe], _Lenient] = None
    message: Annotated[Optional[MessageProbe], _Lenient] = None

    @property
    def cost(self) -> float | None:
        """First cost field present, most specific first."""
        for value in (self.total_cost_usd, self.cost_usd, self.total_cost):
            if value is not None:
                return value
        return None


def probe_event(payload: Any) -> EventProbe | None:
    """Decode ``payload`` into an :class:`EventProbe`; None for non-objects."""
    if not isinstance(payload, dict):
        return None
    return EventProbe.model_validate(payload)


__all__ = ["EventProbe", "MessageProbe", "UsageProbe", "probe_event"]
