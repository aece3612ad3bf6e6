# Generation Events
#
# This module defines the vendor-neutral unit the upstream client produces for
# one increment of model output, and the classifier that turns raw producer
# chunks into typed events.

from enum import Enum
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


# =============================================================================
# Event Kinds
# =============================================================================


class EventKind(str, Enum):
    """Kinds of generation events."""

    TEXT = "text"
    THINKING_CONTENT = "thinking_content"
    REAL_THINKING = "real_thinking"
    REASONING = "reasoning"
    TOOL_CALL = "tool_call"
    VENDOR_TOOL = "vendor_tool"
    GROUNDING = "grounding"
    FINISH_SIGNAL = "finish_signal"
    USAGE = "usage"
    NATIVE_ENVELOPE = "native_envelope"


# Tags emitted by older producers, mapped to their current kind
KIND_ALIASES: dict[str, EventKind] = {
    "tool_code": EventKind.TOOL_CALL,
    "native_tool": EventKind.VENDOR_TOOL,
    "grounding_metadata": EventKind.GROUNDING,
    "finish_reason": EventKind.FINISH_SIGNAL,
    "gemini_native": EventKind.NATIVE_ENVELOPE,
}


# =============================================================================
# Payload Types
# =============================================================================


class ReasoningData(BaseModel):
    """Structured reasoning payload."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    reasoning: Optional[str] = None
    tool_code: Optional[str] = Field(default=None, alias="toolCode")


class FunctionCall(BaseModel):
    """A function invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    name: str
    args: Any = None


class NativeToolResponse(BaseModel):
    """Opaque result of a vendor-side tool (code execution, search, ...)."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str
    data: Any = None


class UsageData(BaseModel):
    """Token counts reported by the model."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    input_tokens: int = Field(alias="inputTokens", ge=0)
    output_tokens: int = Field(alias="outputTokens", ge=0)


# =============================================================================
# Events (Discriminated Union)
# =============================================================================


class TextEvent(BaseModel):
    """Visible answer text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


class ThinkingContentEvent(BaseModel):
    """Thinking text rendered as visible content."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["thinking_content"] = "thinking_content"
    text: str


class RealThinkingEvent(BaseModel):
    """Native thought text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["real_thinking"] = "real_thinking"
    text: str


class ReasoningEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["reasoning"] = "reasoning"
    data: ReasoningData


class ToolCallEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["tool_call"] = "tool_call"
    call: FunctionCall


class VendorToolEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["vendor_tool"] = "vendor_tool"
    payload: NativeToolResponse


class GroundingEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["grounding"] = "grounding"
    payload: Any


class FinishSignalEvent(BaseModel):
    """Why the model stopped, in the vendor's vocabulary (STOP, MAX_TOKENS, ...)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["finish_signal"] = "finish_signal"
    reason: str


class UsageEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["usage"] = "usage"
    usage: UsageData


class NativeEnvelopeEvent(BaseModel):
    """A full, unmodified Gemini response object."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["native_envelope"] = "native_envelope"
    payload: dict[str, Any]


GenerationEvent = Annotated[
    Union[
        TextEvent,
        ThinkingContentEvent,
        RealThinkingEvent,
        ReasoningEvent,
        ToolCallEvent,
        VendorToolEvent,
        GroundingEvent,
        FinishSignalEvent,
        UsageEvent,
        NativeEnvelopeEvent,
    ],
    Field(discriminator="kind"),
]

EVENT_TYPES = (
    TextEvent,
    ThinkingContentEvent,
    RealThinkingEvent,
    ReasoningEvent,
    ToolCallEvent,
    VendorToolEvent,
    GroundingEvent,
    FinishSignalEvent,
    UsageEvent,
    NativeEnvelopeEvent,
)


# =============================================================================
# Structural Predicates
# =============================================================================


def is_reasoning_data(data: Any) -> bool:
    return isinstance(data, dict) and ("reasoning" in data or "toolCode" in data)


def is_function_call(data: Any) -> bool:
    return isinstance(data, dict) and isinstance(data.get("name"), str) and "args" in data


def is_native_tool_response(data: Any) -> bool:
    return isinstance(data, dict) and "type" in data and "data" in data


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_usage_data(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and _is_count(data.get("inputTokens"))
        and _is_count(data.get("outputTokens"))
    )


def is_native_envelope(data: Any) -> bool:
    return isinstance(data, dict) and "candidates" in data


# =============================================================================
# Classification
# =============================================================================


def _text_builder(event_type: type) -> Callable[[Any], Optional[BaseModel]]:
    def build(data: Any) -> Optional[BaseModel]:
        if isinstance(data, str):
            return event_type(text=data)
        return None

    return build


def _build_reasoning(data: Any) -> Optional[ReasoningEvent]:
    if is_reasoning_data(data):
        return ReasoningEvent(data=ReasoningData.model_validate(data))
    return None


def _build_tool_call(data: Any) -> Optional[ToolCallEvent]:
    if is_function_call(data):
        return ToolCallEvent(call=FunctionCall(name=data["name"], args=data["args"]))
    return None


def _build_vendor_tool(data: Any) -> Optional[VendorToolEvent]:
    if is_native_tool_response(data):
        return VendorToolEvent(payload=NativeToolResponse.model_validate(data))
    return None


def _build_grounding(data: Any) -> Optional[GroundingEvent]:
    if data:
        return GroundingEvent(payload=data)
    return None


def _build_finish_signal(data: Any) -> Optional[FinishSignalEvent]:
    if isinstance(data, str):
        return FinishSignalEvent(reason=data)
    return None


def _build_usage(data: Any) -> Optional[UsageEvent]:
    if is_usage_data(data):
        return UsageEvent(usage=UsageData.model_validate(data))
    return None


def _build_native_envelope(data: Any) -> Optional[NativeEnvelopeEvent]:
    if is_native_envelope(data):
        return NativeEnvelopeEvent(payload=data)
    return None


EVENT_BUILDERS: dict[EventKind, Callable[[Any], Optional[BaseModel]]] = {
    EventKind.TEXT: _text_builder(TextEvent),
    EventKind.THINKING_CONTENT: _text_builder(ThinkingContentEvent),
    EventKind.REAL_THINKING: _text_builder(RealThinkingEvent),
    EventKind.REASONING: _build_reasoning,
    EventKind.TOOL_CALL: _build_tool_call,
    EventKind.VENDOR_TOOL: _build_vendor_tool,
    EventKind.GROUNDING: _build_grounding,
    EventKind.FINISH_SIGNAL: _build_finish_signal,
    EventKind.USAGE: _build_usage,
    EventKind.NATIVE_ENVELOPE: _build_native_envelope,
}


def resolve_kind(tag: Any) -> Optional[EventKind]:
    """Map a producer tag (current name or legacy alias) to an event kind."""
    if not isinstance(tag, str):
        return None
    if tag in KIND_ALIASES:
        return KIND_ALIASES[tag]
    try:
        return EventKind(tag)
    except ValueError:
        return None


def classify_chunk(chunk: Any) -> Optional[GenerationEvent]:
    """
    Turn a raw producer chunk into a typed generation event.

    Raw chunks look like ``{"type": <kind>, "data": <payload>}``. The tag only
    selects the candidate kind; the payload must still pass that kind's
    structural check. Returns None for anything that does not fit, so the
    caller can skip it without ending the stream.
    """
    if isinstance(chunk, EVENT_TYPES):
        return chunk
    if not isinstance(chunk, dict):
        return None

    kind = resolve_kind(chunk.get("type"))
    if kind is None:
        return None

    try:
        return EVENT_BUILDERS[kind](chunk.get("data"))
    except ValidationError:
        return None
