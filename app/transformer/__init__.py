# Stream Transformer Module
#
# Renders the vendor-neutral generation event sequence into the two outbound
# SSE protocols: OpenAI chat.completion.chunk and native Gemini passthrough.

from .base import StreamState, StreamTransformer

from .openai import (
    FINISH_REASON_MAP,
    OPENAI_CHAT_COMPLETION_CHUNK_OBJECT,
    OPENAI_CHAT_COMPLETION_OBJECT,
    OpenAICompletionCollector,
    OpenAIStreamTransformer,
    StreamSession,
    ToolCallRecord,
    map_finish_reason,
)

from .native import GeminiNativeStreamTransformer

from .sse import (
    SSE_DONE,
    SseEvent,
    SseParser,
    encode_json,
    format_sse_data,
    format_sse_done,
    format_sse_json,
)

__all__ = [
    # Base
    "StreamState",
    "StreamTransformer",
    # OpenAI
    "FINISH_REASON_MAP",
    "OPENAI_CHAT_COMPLETION_CHUNK_OBJECT",
    "OPENAI_CHAT_COMPLETION_OBJECT",
    "OpenAICompletionCollector",
    "OpenAIStreamTransformer",
    "StreamSession",
    "ToolCallRecord",
    "map_finish_reason",
    # Native
    "GeminiNativeStreamTransformer",
    # SSE
    "SSE_DONE",
    "SseEvent",
    "SseParser",
    "encode_json",
    "format_sse_data",
    "format_sse_done",
    "format_sse_json",
]
