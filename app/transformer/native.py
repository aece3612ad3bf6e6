# Gemini Native Passthrough Transformer
#
# Re-serializes Gemini response envelopes as SSE frames without reshaping them.

from app.models.events import EventKind, GenerationEvent, is_native_envelope
from .base import StreamTransformer
from .sse import encode_json, format_sse_data


class GeminiNativeStreamTransformer(StreamTransformer):
    """
    Native Gemini envelopes -> Gemini SSE, verbatim.

    Every envelope that carries a candidates list becomes exactly one frame
    holding the same object, fields and key order untouched. Other events are
    dropped. The Gemini protocol has no done-marker, so flush() writes nothing.
    """

    @property
    def protocol(self) -> str:
        return "gemini"

    def _transform(self, event: GenerationEvent) -> list[str]:
        if event.kind != EventKind.NATIVE_ENVELOPE or not is_native_envelope(event.payload):
            return []
        return [format_sse_data(encode_json(event.payload))]

    def _flush(self) -> list[str]:
        return []
