"""Streaming response utilities"""
import asyncio
import uuid
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from fastapi.responses import StreamingResponse

from app.core.exceptions import StreamSerializationError, UpstreamError
from app.core.error_types import classify_upstream_status
from app.core.metrics import (
    CLIENT_DISCONNECTS,
    DROPPED_CHUNKS,
    STREAM_FRAMES,
    TOKEN_USAGE,
    UPSTREAM_ERRORS,
)
from app.core.logging import set_stream_context, clear_stream_context, get_logger
from app.models.events import EventKind, UsageData, classify_chunk
from app.transformer import OpenAICompletionCollector, StreamTransformer, format_sse_json

logger = get_logger()

DisconnectCheck = Callable[[], Awaitable[bool]]

SSE_HEADERS = {
    'Cache-Control': 'no-cache',
    'Connection': 'keep-alive',
}

_MISSING = object()


class PrimedStream:
    """Async iterator whose first item has already been pulled from upstream

    Pulling the first item before the response starts lets connect-time
    upstream failures surface as a proper HTTP status instead of a 200
    followed by an empty body.
    """

    def __init__(self, source: AsyncIterator[Any]):
        self._source = source
        self._first: Any = _MISSING
        self.empty = False

    async def prime(self) -> "PrimedStream":
        """Pull the first item; UpstreamError propagates to the caller"""
        try:
            self._first = await self._source.__anext__()
        except StopAsyncIteration:
            self.empty = True
        return self

    def __aiter__(self) -> "PrimedStream":
        return self

    async def __anext__(self) -> Any:
        if self._first is not _MISSING:
            item, self._first = self._first, _MISSING
            return item
        if self.empty:
            raise StopAsyncIteration
        return await self._source.__anext__()

    async def aclose(self) -> None:
        self._first = _MISSING
        await close_source(self._source)


async def close_source(source: Any) -> None:
    """Close an upstream async iterator so it can abort its network call"""
    aclose = getattr(source, 'aclose', None)
    if aclose is None:
        return
    try:
        await aclose()
    except RuntimeError as e:
        # Already running or already closed
        logger.debug(f"Upstream iterator close skipped: {e}")


def record_token_usage(model: str, usage: UsageData) -> None:
    """Record token counts reported by the upstream model"""
    TOKEN_USAGE.labels(model=model, token_type='prompt').inc(usage.input_tokens)
    TOKEN_USAGE.labels(model=model, token_type='completion').inc(usage.output_tokens)
    TOKEN_USAGE.labels(model=model, token_type='total').inc(
        usage.input_tokens + usage.output_tokens
    )
    logger.debug(
        f"Token usage - model={model} prompt={usage.input_tokens} "
        f"completion={usage.output_tokens}"
    )


def build_stream_error(error: UpstreamError) -> dict:
    """Error frame payload written before closing when enabled in config"""
    status_code, status, _ = classify_upstream_status(error.status_code)
    return {
        'error': {
            'code': status_code,
            'message': error.message,
            'status': status,
        }
    }


def _chunk_tag(chunk: Any) -> str:
    if isinstance(chunk, dict) and isinstance(chunk.get('type'), str):
        return chunk['type']
    return type(chunk).__name__


async def stream_sse(
    source: AsyncIterator[Any],
    transformer: StreamTransformer,
    model: str = 'unknown',
    disconnect_check: Optional[DisconnectCheck] = None,
    emit_error_frame: bool = False,
) -> AsyncIterator[bytes]:
    """Drive one transformer over an upstream chunk sequence

    Pulls one chunk at a time, so a slow client stalls the upstream read.
    On client disconnect, cancellation or early close, the upstream iterator
    is closed so it can abort its request.

    Args:
        source: Upstream async iterator of raw chunks or generation events
        transformer: Fresh transformer owned by this response
        model: Model name for metrics and logs
        disconnect_check: Coroutine reporting whether the client went away
        emit_error_frame: Write an error frame before closing on upstream failure
    """
    protocol = transformer.protocol
    session = getattr(transformer, 'session', None)
    stream_id = getattr(session, 'id', None) or f"stream-{uuid.uuid4().hex[:12]}"
    frames = 0

    set_stream_context(stream_id)
    try:
        async for chunk in source:
            if disconnect_check is not None:
                try:
                    if await disconnect_check():
                        logger.info(
                            f"Client disconnected, stopping {protocol} stream {stream_id} "
                            f"model={model} after {frames} frames"
                        )
                        CLIENT_DISCONNECTS.labels(protocol=protocol).inc()
                        return
                except Exception as e:
                    logger.debug(f"Error checking client disconnect: {e}")

            event = classify_chunk(chunk)
            if event is None:
                tag = _chunk_tag(chunk)
                DROPPED_CHUNKS.labels(kind=tag).inc()
                logger.debug(f"Dropping unrecognized upstream chunk ({tag}) in stream {stream_id}")
                continue

            if event.kind == EventKind.USAGE:
                record_token_usage(model, event.usage)

            for frame in transformer.transform(event):
                frames += 1
                STREAM_FRAMES.labels(protocol=protocol).inc()
                yield frame.encode('utf-8')

        for frame in transformer.flush():
            frames += 1
            STREAM_FRAMES.labels(protocol=protocol).inc()
            yield frame.encode('utf-8')

        logger.debug(f"Stream {stream_id} completed: protocol={protocol} frames={frames}")

    except UpstreamError as e:
        UPSTREAM_ERRORS.labels(status_code=str(e.status_code)).inc()
        logger.error(
            f"Upstream error during {protocol} stream {stream_id} model={model}: {e}"
        )
        if emit_error_frame:
            yield format_sse_json(build_stream_error(e)).encode('utf-8')

    except StreamSerializationError:
        logger.exception(f"Aborting {protocol} stream {stream_id}: frame could not be serialized")
        raise

    except asyncio.CancelledError:
        logger.info(f"{protocol} stream {stream_id} cancelled after {frames} frames")
        CLIENT_DISCONNECTS.labels(protocol=protocol).inc()
        raise

    finally:
        await close_source(source)
        clear_stream_context()


def create_streaming_response(
    source: AsyncIterator[Any],
    transformer: StreamTransformer,
    model: str = 'unknown',
    disconnect_check: Optional[DisconnectCheck] = None,
    emit_error_frame: bool = False,
) -> StreamingResponse:
    """Create an SSE streaming response for one transformer"""
    return StreamingResponse(
        stream_sse(source, transformer, model, disconnect_check, emit_error_frame),
        media_type='text/event-stream',
        headers=SSE_HEADERS,
    )


async def collect_completion(source: AsyncIterator[Any], model: str) -> dict:
    """Drain an upstream chunk sequence into one chat.completion object

    Raises:
        UpstreamError: Propagated from the source; nothing is written yet
    """
    collector = OpenAICompletionCollector(model)
    try:
        async for chunk in source:
            event = classify_chunk(chunk)
            if event is None:
                DROPPED_CHUNKS.labels(kind=_chunk_tag(chunk)).inc()
                continue
            if event.kind == EventKind.USAGE:
                record_token_usage(model, event.usage)
            collector.add(event)
    finally:
        await close_source(source)
    return collector.build()
