"""Tests for the Gemini upstream client"""
import json

import httpx
import pytest
import respx

from app.core.exceptions import UpstreamError
from app.models.config import StreamConfig, UpstreamConfig
from app.services.gemini_client import GeminiClient, get_gemini_client
from app.transformer import OpenAIStreamTransformer
from app.utils.streaming import stream_sse
from tests.conftest import UPSTREAM_BASE, envelope, parse_openai_chunks

STREAM_URL = f"{UPSTREAM_BASE}/models/gemini-2.5-flash:streamGenerateContent"
GENERATE_URL = f"{UPSTREAM_BASE}/models/gemini-2.5-flash:generateContent"


def sse_body(*envelopes: dict) -> bytes:
    return ''.join(f"data: {json.dumps(e)}\r\n\r\n" for e in envelopes).encode('utf-8')


@pytest.fixture
def client() -> GeminiClient:
    return GeminiClient(UpstreamConfig(api_base=UPSTREAM_BASE, api_key='upstream-key'))


async def collect(agen) -> list:
    return [item async for item in agen]


@pytest.mark.unit
class TestStreamNative:
    """Test native envelope streaming"""

    @pytest.mark.asyncio
    @respx.mock
    async def test_yields_native_envelopes(self, client):
        route = respx.post(STREAM_URL).mock(return_value=httpx.Response(
            200, content=sse_body(envelope('Hel'), envelope('lo', 'STOP'))
        ))

        chunks = await collect(client.stream_native('gemini-2.5-flash', {'contents': []}))

        assert [c['type'] for c in chunks] == ['native_envelope', 'native_envelope']
        assert chunks[1]['data']['candidates'][0]['finishReason'] == 'STOP'
        request = route.calls.last.request
        assert request.url.params['alt'] == 'sse'
        assert request.headers['x-goog-api-key'] == 'upstream-key'
        assert json.loads(request.content) == {'contents': []}
        await client.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_unterminated_last_event_is_flushed(self, client):
        body = b'data: {"candidates":[]}\n\ndata: {"candidates":[{"index":0}]}'
        respx.post(STREAM_URL).mock(return_value=httpx.Response(200, content=body))

        chunks = await collect(client.stream_native('gemini-2.5-flash', {}))
        assert [c['data'] for c in chunks] == [{'candidates': []}, {'candidates': [{'index': 0}]}]
        await client.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_undecodable_data_is_skipped(self, client):
        body = b'data: not-json\n\ndata: [DONE]\n\ndata: {"candidates":[]}\n\n'
        respx.post(STREAM_URL).mock(return_value=httpx.Response(200, content=body))

        chunks = await collect(client.stream_native('gemini-2.5-flash', {}))
        assert chunks == [{'type': 'native_envelope', 'data': {'candidates': []}}]
        await client.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_raises_upstream_error(self, client):
        respx.post(STREAM_URL).mock(return_value=httpx.Response(
            429, json={'error': {'code': 429, 'message': 'Quota exceeded', 'status': 'RESOURCE_EXHAUSTED'}}
        ))

        with pytest.raises(UpstreamError) as exc_info:
            await collect(client.stream_native('gemini-2.5-flash', {}))
        assert exc_info.value.status_code == 429
        assert exc_info.value.message == 'Quota exceeded'
        await client.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_is_502(self, client):
        respx.post(STREAM_URL).mock(side_effect=httpx.ConnectError('connection refused'))

        with pytest.raises(UpstreamError) as exc_info:
            await collect(client.stream_native('gemini-2.5-flash', {}))
        assert exc_info.value.status_code == 502
        assert 'ConnectError' in exc_info.value.message
        await client.aclose()


@pytest.mark.unit
class TestStreamContent:
    """Test envelope -> generation event chunk mapping"""

    @pytest.mark.asyncio
    @respx.mock
    async def test_parts_are_mapped_to_event_chunks(self, client):
        first = {
            'candidates': [{'content': {'role': 'model', 'parts': [
                {'text': 'pondering', 'thought': True},
                {'text': '', 'thoughtSignature': 'c2ln'},
                {'text': 'Answer'},
            ]}}],
            'usageMetadata': {'promptTokenCount': 4, 'candidatesTokenCount': 1},
        }
        second = {
            'candidates': [{
                'content': {'role': 'model', 'parts': [
                    {'functionCall': {'name': 'get_weather', 'args': {'city': 'Paris'}}},
                    {'executableCode': {'language': 'PYTHON', 'code': 'print(1)'}},
                    {'codeExecutionResult': {'outcome': 'OUTCOME_OK', 'output': '1'}},
                ]},
                'groundingMetadata': {'webSearchQueries': ['weather paris']},
                'finishReason': 'STOP',
            }],
            'usageMetadata': {'promptTokenCount': 4, 'candidatesTokenCount': 6, 'thoughtsTokenCount': 3},
        }
        respx.post(STREAM_URL).mock(return_value=httpx.Response(200, content=sse_body(first, second)))

        chunks = await collect(client.stream_content('gemini-2.5-flash', {}))

        assert chunks == [
            {'type': 'real_thinking', 'data': 'pondering'},
            {'type': 'text', 'data': 'Answer'},
            {'type': 'tool_call', 'data': {'name': 'get_weather', 'args': {'city': 'Paris'}}},
            {'type': 'vendor_tool', 'data': {
                'type': 'code_execution', 'data': {'language': 'PYTHON', 'code': 'print(1)'}
            }},
            {'type': 'vendor_tool', 'data': {
                'type': 'code_execution_result', 'data': {'outcome': 'OUTCOME_OK', 'output': '1'}
            }},
            {'type': 'grounding', 'data': {'webSearchQueries': ['weather paris']}},
            {'type': 'finish_signal', 'data': 'STOP'},
            {'type': 'usage', 'data': {'inputTokens': 4, 'outputTokens': 9}},
        ]
        await client.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_thinking_as_content(self):
        client = GeminiClient(
            UpstreamConfig(api_base=UPSTREAM_BASE),
            StreamConfig(thinking_as_content=True),
        )
        body = sse_body({'candidates': [{'content': {'parts': [{'text': 'hmm', 'thought': True}]}}]})
        route = respx.post(STREAM_URL).mock(return_value=httpx.Response(200, content=body))

        chunks = await collect(client.stream_content('gemini-2.5-flash', {}))
        assert chunks == [{'type': 'thinking_content', 'data': 'hmm'}]
        assert 'x-goog-api-key' not in route.calls.last.request.headers
        await client.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_only_last_finish_reason_is_emitted(self, client):
        respx.post(STREAM_URL).mock(return_value=httpx.Response(200, content=sse_body(
            envelope('a', 'OTHER'), envelope('b', 'MAX_TOKENS')
        )))

        chunks = await collect(client.stream_content('gemini-2.5-flash', {}))
        assert [c for c in chunks if c['type'] == 'finish_signal'] == [
            {'type': 'finish_signal', 'data': 'MAX_TOKENS'}
        ]
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize('malformed', [
        {'candidates': [None]},
        {'candidates': 'nope'},
        {'candidates': [{'content': {'parts': [5, None, 'text']}}]},
        {'candidates': [{'content': ['not', 'a', 'dict']}]},
        {'candidates': [{'content': {'parts': [{'text': None}, {'functionCall': 'bad'}]}}]},
    ])
    @respx.mock
    async def test_malformed_envelope_is_skipped(self, client, malformed):
        respx.post(STREAM_URL).mock(return_value=httpx.Response(200, content=sse_body(
            malformed, envelope('still here', 'STOP')
        )))

        chunks = await collect(client.stream_content('gemini-2.5-flash', {}))
        assert chunks == [
            {'type': 'text', 'data': 'still here'},
            {'type': 'finish_signal', 'data': 'STOP'},
        ]
        await client.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_integer_token_counts_count_as_zero(self, client):
        respx.post(STREAM_URL).mock(return_value=httpx.Response(200, content=sse_body(
            envelope('still here', usageMetadata={
                'promptTokenCount': 3, 'candidatesTokenCount': None, 'thoughtsTokenCount': '2',
            }),
        )))

        chunks = await collect(client.stream_content('gemini-2.5-flash', {}))
        assert chunks == [
            {'type': 'text', 'data': 'still here'},
            {'type': 'usage', 'data': {'inputTokens': 3, 'outputTokens': 0}},
        ]
        await client.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_chunk_does_not_abort_openai_stream(self, client):
        respx.post(STREAM_URL).mock(return_value=httpx.Response(200, content=sse_body(
            {'candidates': [None]},
            {'candidates': [{'content': {'parts': [5]}}]},
            envelope('still here', 'STOP', usageMetadata={'promptTokenCount': 1, 'candidatesTokenCount': None}),
        )))

        frames = [
            frame async for frame in stream_sse(
                client.stream_content('gemini-2.5-flash', {}), OpenAIStreamTransformer('gemini-2.5-flash')
            )
        ]
        body = b''.join(frames).decode('utf-8')

        assert body.endswith('data: [DONE]\n\n')
        contents = [
            c['choices'][0]['delta'].get('content') for c in parse_openai_chunks(body) if c['choices']
        ]
        assert 'still here' in contents
        await client.aclose()


@pytest.mark.unit
class TestGenerateNative:
    """Test non-streaming generateContent"""

    @pytest.mark.asyncio
    @respx.mock
    async def test_returns_response_verbatim(self, client):
        response = envelope('Hi', 'STOP', modelVersion='gemini-2.5-flash')
        respx.post(GENERATE_URL).mock(return_value=httpx.Response(200, json=response))

        assert await client.generate_native('gemini-2.5-flash', {'contents': []}) == response
        await client.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_with_plain_text_body(self, client):
        respx.post(GENERATE_URL).mock(return_value=httpx.Response(503, text='Service Unavailable'))

        with pytest.raises(UpstreamError) as exc_info:
            await client.generate_native('gemini-2.5-flash', {})
        assert exc_info.value.status_code == 503
        assert exc_info.value.message == 'Service Unavailable'
        await client.aclose()


@pytest.mark.unit
def test_get_gemini_client_is_singleton(use_config):
    first = get_gemini_client()
    assert first is get_gemini_client()
    assert first._upstream.api_base == UPSTREAM_BASE
