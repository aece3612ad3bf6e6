# SSE Framing
#
# Shared framing contract for both outbound protocols, plus the incremental
# parser used to read the upstream Gemini SSE body.

import codecs
import json
from dataclasses import dataclass
from typing import Any, Optional

from app.core.exceptions import StreamSerializationError


# =============================================================================
# SSE Event Types
# =============================================================================


@dataclass
class SseEvent:
    """SSE event parsed from stream."""

    event: Optional[str] = None
    data: Optional[str] = None
    id: Optional[str] = None
    retry: Optional[int] = None


# =============================================================================
# SSE Parser
# =============================================================================


class SseParser:
    """Incremental SSE parser.

    Bytes may arrive split anywhere, including inside a multi-byte UTF-8
    sequence or between the CR and LF of a line ending.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def parse(self, chunk: bytes) -> list[SseEvent]:
        """Parse incoming bytes and return complete events."""
        text = self._buffer + self._decoder.decode(chunk)
        # A trailing CR may be the first half of CRLF; hold it for the next chunk
        held_cr = text.endswith("\r")
        if held_cr:
            text = text[:-1]
        text = text.replace("\r\n", "\n").replace("\r", "\n")

        events: list[SseEvent] = []

        # Split by double newlines (event boundaries)
        while "\n\n" in text:
            pos = text.index("\n\n")
            event_block = text[:pos]
            text = text[pos + 2 :]

            event = self._parse_block(event_block)
            if event is not None:
                events.append(event)

        self._buffer = text + ("\r" if held_cr else "")
        return events

    def flush(self) -> list[SseEvent]:
        """Parse whatever is left once the body has ended."""
        remaining = (self._buffer + self._decoder.decode(b"", final=True)).strip()
        self.clear()
        if not remaining:
            return []
        event = self._parse_block(remaining.replace("\r\n", "\n").replace("\r", "\n"))
        return [event] if event is not None else []

    def remaining(self) -> str:
        """Get remaining buffer content."""
        return self._buffer

    def clear(self) -> None:
        """Clear the buffer."""
        self._buffer = ""
        self._decoder.reset()

    @staticmethod
    def _parse_block(block: str) -> Optional[SseEvent]:
        current_event = SseEvent()

        for line in block.split("\n"):
            if not line or line.startswith(":"):
                continue

            field, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]

            if field == "event":
                current_event.event = value
            elif field == "data":
                if current_event.data is not None:
                    current_event.data += "\n" + value
                else:
                    current_event.data = value
            elif field == "id":
                current_event.id = value
            elif field == "retry":
                try:
                    current_event.retry = int(value)
                except ValueError:
                    pass

        if current_event.data is None and current_event.event is None:
            return None
        return current_event


# =============================================================================
# SSE Serializer Functions
# =============================================================================


SSE_DONE = "data: [DONE]\n\n"


def encode_json(payload: Any) -> str:
    """
    Render a frame payload as minified JSON.

    Raises:
        StreamSerializationError: If the payload holds a value JSON cannot
            represent. A half-written frame cannot be repaired, so callers
            must treat this as fatal for the stream.
    """
    try:
        return json.dumps(
            payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False
        )
    except (TypeError, ValueError) as e:
        raise StreamSerializationError(f"Cannot serialize frame payload: {e}") from e


def format_sse_data(data: str) -> str:
    """Format a simple data-only SSE event."""
    return f"data: {data}\n\n"


def format_sse_json(payload: Any) -> str:
    """Serialize a payload and wrap it in a data-only SSE frame."""
    return format_sse_data(encode_json(payload))


def format_sse_done() -> str:
    """Format the SSE done marker."""
    return SSE_DONE
