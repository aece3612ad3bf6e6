"""Gemini REST API client

Produces the raw chunk sequences consumed by the stream transformers:
native envelopes for passthrough, and generation event chunks
({"type": ..., "data": ...}) for the OpenAI-compatible endpoint.
"""
import json
from typing import Any, AsyncIterator, Optional

import httpx

from app.core.config import get_config
from app.core.exceptions import UpstreamError
from app.core.logging import get_logger
from app.models.config import StreamConfig, UpstreamConfig
from app.transformer.sse import SseEvent, SseParser

logger = get_logger()


def _error_message(body: str) -> str:
    """Extract the message from a Gemini error body, falling back to raw text"""
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body[:500] or 'empty error body'
    if isinstance(data, dict) and isinstance(data.get('error'), dict):
        return str(data['error'].get('message', body[:500]))
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return _error_message(json.dumps(data[0]))
    return body[:500]


def _token_count(usage_metadata: dict[str, Any], key: str) -> int:
    value = usage_metadata.get(key)
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


class GeminiClient:
    """Async client for generateContent / streamGenerateContent"""

    def __init__(self, upstream: UpstreamConfig, stream: Optional[StreamConfig] = None):
        self._upstream = upstream
        self._stream = stream or StreamConfig()
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self._upstream.verify_ssl,
                timeout=self._upstream.timeout_secs,
                proxy=self._upstream.proxy,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _url(self, model: str, action: str) -> str:
        return f"{self._upstream.api_base.rstrip('/')}/models/{model}:{action}"

    def _headers(self) -> dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self._upstream.api_key:
            headers['x-goog-api-key'] = self._upstream.api_key
        return headers

    async def generate_native(self, model: str, body: dict[str, Any]) -> dict[str, Any]:
        """Non-streaming generateContent; returns the Gemini response verbatim"""
        try:
            response = await self.http_client.post(
                self._url(model, 'generateContent'), json=body, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise UpstreamError(502, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise UpstreamError(response.status_code, _error_message(response.text))
        return response.json()

    async def stream_native(self, model: str, body: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
        """Stream native envelopes as {"type": "native_envelope", "data": envelope}

        Raises:
            UpstreamError: On HTTP status >= 400 or transport failure
        """
        parser = SseParser()
        try:
            async with self.http_client.stream(
                'POST',
                self._url(model, 'streamGenerateContent'),
                params={'alt': 'sse'},
                json=body,
                headers=self._headers(),
            ) as response:
                if response.status_code >= 400:
                    detail = (await response.aread()).decode('utf-8', errors='replace')
                    raise UpstreamError(response.status_code, _error_message(detail))

                async for raw in response.aiter_bytes():
                    for event in parser.parse(raw):
                        envelope = self._decode(event)
                        if envelope is not None:
                            yield {'type': 'native_envelope', 'data': envelope}

                for event in parser.flush():
                    envelope = self._decode(event)
                    if envelope is not None:
                        yield {'type': 'native_envelope', 'data': envelope}
        except httpx.HTTPError as e:
            raise UpstreamError(502, f"{type(e).__name__}: {e}") from e

    async def stream_content(self, model: str, body: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
        """Stream generation event chunks derived from the native envelopes

        The finish reason and usage arrive on several envelopes; only the last
        value of each is emitted, once, after the body ends.
        """
        finish_reason: Optional[str] = None
        usage_metadata: Optional[dict[str, Any]] = None

        envelopes = self.stream_native(model, body)
        try:
            async for chunk in envelopes:
                envelope = chunk['data']
                if isinstance(envelope.get('usageMetadata'), dict):
                    usage_metadata = envelope['usageMetadata']

                candidates = envelope.get('candidates')
                if not isinstance(candidates, list) or not candidates:
                    continue
                candidate = candidates[0]
                if not isinstance(candidate, dict):
                    logger.debug(f"Skipping malformed candidate: {type(candidate).__name__}")
                    continue

                content = candidate.get('content')
                parts = content.get('parts') if isinstance(content, dict) else None
                for part in parts if isinstance(parts, list) else []:
                    for event in self._part_to_chunks(part):
                        yield event

                if isinstance(candidate.get('groundingMetadata'), dict):
                    yield {'type': 'grounding', 'data': candidate['groundingMetadata']}

                if isinstance(candidate.get('finishReason'), str) and candidate['finishReason']:
                    finish_reason = candidate['finishReason']
        finally:
            await envelopes.aclose()

        if finish_reason is not None:
            yield {'type': 'finish_signal', 'data': finish_reason}

        if usage_metadata is not None:
            yield {
                'type': 'usage',
                'data': {
                    'inputTokens': _token_count(usage_metadata, 'promptTokenCount'),
                    'outputTokens': _token_count(usage_metadata, 'candidatesTokenCount')
                    + _token_count(usage_metadata, 'thoughtsTokenCount'),
                },
            }

    def _part_to_chunks(self, part: Any) -> list[dict[str, Any]]:
        if not isinstance(part, dict):
            logger.debug(f"Skipping malformed Gemini part: {type(part).__name__}")
            return []

        if 'text' in part:
            text = part['text']
            if not isinstance(text, str) or not text:
                # Signature-only parts carry nothing to render
                return []
            if part.get('thought') is True:
                kind = 'thinking_content' if self._stream.thinking_as_content else 'real_thinking'
                return [{'type': kind, 'data': text}]
            return [{'type': 'text', 'data': text}]

        if isinstance(part.get('functionCall'), dict):
            call = part['functionCall']
            return [{'type': 'tool_call', 'data': {'name': call.get('name') or '', 'args': call.get('args') or {}}}]

        if 'executableCode' in part:
            return [{'type': 'vendor_tool', 'data': {'type': 'code_execution', 'data': part['executableCode']}}]

        if 'codeExecutionResult' in part:
            return [{
                'type': 'vendor_tool',
                'data': {'type': 'code_execution_result', 'data': part['codeExecutionResult']},
            }]

        logger.debug(f"Ignoring unsupported Gemini part: {sorted(part)}")
        return []

    @staticmethod
    def _decode(event: SseEvent) -> Optional[dict[str, Any]]:
        if not event.data or event.data == '[DONE]':
            return None
        try:
            payload = json.loads(event.data)
        except json.JSONDecodeError:
            logger.debug(f"Skipping undecodable upstream SSE data: {event.data[:200]}")
            return None
        return payload if isinstance(payload, dict) else None


_gemini_client: Optional[GeminiClient] = None


def get_gemini_client() -> GeminiClient:
    """Get singleton Gemini client instance"""
    global _gemini_client
    if _gemini_client is None:
        config = get_config()
        _gemini_client = GeminiClient(config.upstream, config.stream)
    return _gemini_client


async def close_gemini_client() -> None:
    """Close the shared Gemini client"""
    global _gemini_client
    if _gemini_client is not None:
        await _gemini_client.aclose()
        _gemini_client = None
