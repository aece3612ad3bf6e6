# OpenAI-Compatible Stream Transformer
#
# Renders generation events as OpenAI chat.completion.chunk SSE frames, and
# folds the same events into a single chat.completion for non-streaming calls.

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from app.models.events import (
    EventKind,
    GenerationEvent,
    UsageData,
)
from .base import StreamTransformer
from .sse import encode_json, format_sse_data, format_sse_done

OPENAI_CHAT_COMPLETION_CHUNK_OBJECT = "chat.completion.chunk"
OPENAI_CHAT_COMPLETION_OBJECT = "chat.completion"

# Gemini finishReason -> OpenAI finish_reason; anything unlisted maps to "stop"
FINISH_REASON_MAP: dict[str, str] = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content_filter",
    "RECITATION": "content_filter",
}


def map_finish_reason(reason: Optional[str], saw_tool_call: bool) -> str:
    """Resolve the outbound finish reason; any tool call wins over the vendor signal."""
    if saw_tool_call:
        return "tool_calls"
    if reason is None:
        return "stop"
    return FINISH_REASON_MAP.get(reason, "stop")


def usage_to_openai(usage: UsageData) -> dict[str, int]:
    return {
        "prompt_tokens": usage.input_tokens,
        "completion_tokens": usage.output_tokens,
        "total_tokens": usage.input_tokens + usage.output_tokens,
    }


# =============================================================================
# Session State
# =============================================================================


@dataclass
class ToolCallRecord:
    """One synthesized tool call. Every tool_call event gets its own record."""

    index: int
    id: str
    name: str
    arguments: str

    def to_dict(self, with_index: bool = True) -> dict[str, Any]:
        record: dict[str, Any] = {}
        if with_index:
            record["index"] = self.index
        record.update(
            {
                "id": self.id,
                "type": "function",
                "function": {"name": self.name, "arguments": self.arguments},
            }
        )
        return record


@dataclass
class StreamSession:
    """Per-response state of the OpenAI transformer."""

    model: str
    id: str = field(default_factory=lambda: f"chatcmpl-{uuid.uuid4()}")
    created: int = field(default_factory=lambda: int(time.time()))
    first_chunk: bool = True
    tool_call_index: int = 0
    finish_reason: Optional[str] = None
    usage: Optional[UsageData] = None

    @property
    def saw_tool_call(self) -> bool:
        return self.tool_call_index > 0

    def next_tool_call(self, name: str, args: Any) -> ToolCallRecord:
        record = ToolCallRecord(
            index=self.tool_call_index,
            id=f"call_{uuid.uuid4()}",
            name=name,
            arguments=encode_json(args),
        )
        self.tool_call_index += 1
        return record

    def clear(self) -> None:
        self.finish_reason = None
        self.usage = None


DeltaHandler = Callable[[GenerationEvent, dict[str, Any]], None]


# =============================================================================
# Streaming Transformer
# =============================================================================


class OpenAIStreamTransformer(StreamTransformer):
    """
    Gemini generation events -> OpenAI chat.completion.chunk SSE.

    Each event produces at most one frame. finish_signal and usage events are
    latched and folded into the terminal frame written by flush(), which is
    followed by the [DONE] sentinel.
    """

    def __init__(self, model: str) -> None:
        super().__init__()
        self.session = StreamSession(model=model)
        self._handlers: dict[EventKind, DeltaHandler] = {
            EventKind.TEXT: self._on_content,
            EventKind.THINKING_CONTENT: self._on_content,
            EventKind.REAL_THINKING: self._on_real_thinking,
            EventKind.REASONING: self._on_reasoning,
            EventKind.TOOL_CALL: self._on_tool_call,
            EventKind.VENDOR_TOOL: self._on_vendor_tool,
            EventKind.GROUNDING: self._on_grounding,
            EventKind.FINISH_SIGNAL: self._on_finish_signal,
            EventKind.USAGE: self._on_usage,
            EventKind.NATIVE_ENVELOPE: self._on_native_envelope,
        }

    @property
    def protocol(self) -> str:
        return "openai"

    @property
    def handled_kinds(self) -> frozenset[EventKind]:
        return frozenset(self._handlers)

    # -------------------------------------------------------------------------
    # Per-event handlers
    # -------------------------------------------------------------------------

    def _on_content(self, event: GenerationEvent, delta: dict[str, Any]) -> None:
        delta["content"] = event.text
        if self.session.first_chunk:
            delta["role"] = "assistant"
            self.session.first_chunk = False

    def _on_real_thinking(self, event: GenerationEvent, delta: dict[str, Any]) -> None:
        delta["reasoning"] = event.text

    def _on_reasoning(self, event: GenerationEvent, delta: dict[str, Any]) -> None:
        if event.data.reasoning is not None:
            delta["reasoning"] = event.data.reasoning

    def _on_tool_call(self, event: GenerationEvent, delta: dict[str, Any]) -> None:
        record = self.session.next_tool_call(event.call.name, event.call.args)
        delta["tool_calls"] = [record.to_dict()]
        if self.session.first_chunk:
            delta["role"] = "assistant"
            delta["content"] = None
            self.session.first_chunk = False

    def _on_vendor_tool(self, event: GenerationEvent, delta: dict[str, Any]) -> None:
        delta["native_tool_calls"] = [event.payload.model_dump()]

    def _on_grounding(self, event: GenerationEvent, delta: dict[str, Any]) -> None:
        delta["grounding"] = event.payload

    def _on_finish_signal(self, event: GenerationEvent, delta: dict[str, Any]) -> None:
        self.session.finish_reason = event.reason

    def _on_usage(self, event: GenerationEvent, delta: dict[str, Any]) -> None:
        self.session.usage = event.usage

    def _on_native_envelope(self, event: GenerationEvent, delta: dict[str, Any]) -> None:
        # Native envelopes belong to the passthrough protocol
        pass

    # -------------------------------------------------------------------------
    # StreamTransformer hooks
    # -------------------------------------------------------------------------

    def _transform(self, event: GenerationEvent) -> list[str]:
        delta: dict[str, Any] = {}
        self._handlers[EventKind(event.kind)](event, delta)

        if not delta:
            return []

        chunk = {
            "id": self.session.id,
            "object": OPENAI_CHAT_COMPLETION_CHUNK_OBJECT,
            "created": self.session.created,
            "model": self.session.model,
            "choices": [
                {
                    "index": 0,
                    "delta": delta,
                    "finish_reason": None,
                    "logprobs": None,
                    "matched_stop": None,
                }
            ],
            "usage": None,
        }
        return [format_sse_data(encode_json(chunk))]

    def _flush(self) -> list[str]:
        session = self.session
        final_chunk: dict[str, Any] = {
            "id": session.id,
            "object": OPENAI_CHAT_COMPLETION_CHUNK_OBJECT,
            "created": session.created,
            "model": session.model,
            "choices": [
                {
                    "index": 0,
                    "delta": {},
                    "finish_reason": map_finish_reason(
                        session.finish_reason, session.saw_tool_call
                    ),
                }
            ],
        }
        if session.usage is not None:
            final_chunk["usage"] = usage_to_openai(session.usage)

        frames = [format_sse_data(encode_json(final_chunk)), format_sse_done()]
        session.clear()
        return frames


# =============================================================================
# Non-streaming Collector
# =============================================================================


class OpenAICompletionCollector:
    """
    Folds generation events into one OpenAI chat.completion object.

    Applies the same policies as the stream transformer: one tool call per
    tool_call event, tool calls override the vendor finish reason.
    """

    def __init__(self, model: str) -> None:
        self.session = StreamSession(model=model)
        self._content: list[str] = []
        self._reasoning: list[str] = []
        self._tool_calls: list[ToolCallRecord] = []
        self._native_tool_calls: list[dict[str, Any]] = []
        self._grounding: Any = None

    def add(self, event: GenerationEvent) -> None:
        kind = EventKind(event.kind)
        if kind in (EventKind.TEXT, EventKind.THINKING_CONTENT):
            self._content.append(event.text)
        elif kind is EventKind.REAL_THINKING:
            self._reasoning.append(event.text)
        elif kind is EventKind.REASONING:
            if event.data.reasoning is not None:
                self._reasoning.append(event.data.reasoning)
        elif kind is EventKind.TOOL_CALL:
            self._tool_calls.append(
                self.session.next_tool_call(event.call.name, event.call.args)
            )
        elif kind is EventKind.VENDOR_TOOL:
            self._native_tool_calls.append(event.payload.model_dump())
        elif kind is EventKind.GROUNDING:
            self._grounding = event.payload
        elif kind is EventKind.FINISH_SIGNAL:
            self.session.finish_reason = event.reason
        elif kind is EventKind.USAGE:
            self.session.usage = event.usage

    def build(self) -> dict[str, Any]:
        session = self.session
        message: dict[str, Any] = {
            "role": "assistant",
            "content": "".join(self._content) if self._content else None,
        }
        if self._reasoning:
            message["reasoning"] = "".join(self._reasoning)
        if self._tool_calls:
            message["tool_calls"] = [
                record.to_dict(with_index=False) for record in self._tool_calls
            ]
        if self._native_tool_calls:
            message["native_tool_calls"] = self._native_tool_calls
        if self._grounding is not None:
            message["grounding"] = self._grounding

        completion: dict[str, Any] = {
            "id": session.id,
            "object": OPENAI_CHAT_COMPLETION_OBJECT,
            "created": session.created,
            "model": session.model,
            "choices": [
                {
                    "index": 0,
                    "message": message,
                    "finish_reason": map_finish_reason(
                        session.finish_reason, session.saw_tool_call
                    ),
                    "logprobs": None,
                }
            ],
        }
        if session.usage is not None:
            completion["usage"] = usage_to_openai(session.usage)
        return completion
