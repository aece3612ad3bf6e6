"""Shared test fixtures and configuration"""
import json
import os
import tempfile
from typing import Any, AsyncIterator, Generator, Optional

import pytest
import yaml
from fastapi.testclient import TestClient

from app.models.config import AppConfig

UPSTREAM_BASE = 'https://gemini.test/v1beta'


@pytest.fixture
def test_config_dict() -> dict:
    """Sample configuration dictionary for testing"""
    return {
        'server': {
            'host': '0.0.0.0',
            'port': 18787,
            'master_api_key': 'test-master-key',
            'gemini_api_key': 'test-gemini-key',
            'log_file': os.path.join(tempfile.gettempdir(), 'gemini-gateway-tests.log'),
        },
        'upstream': {
            'api_base': UPSTREAM_BASE,
            'api_key': 'upstream-key',
            'verify_ssl': True,
            'timeout_secs': 30,
        },
        'stream': {
            'emit_error_frame': False,
            'thinking_as_content': False,
        },
        'models': [
            {'id': 'gemini-2.5-flash', 'description': 'Fast model', 'context_window': 1048576, 'max_tokens': 65536},
            {'id': 'gemini-2.5-pro', 'description': 'Pro model', 'context_window': 1048576, 'max_tokens': 65536},
        ],
    }


@pytest.fixture
def test_config(test_config_dict: dict) -> AppConfig:
    """Sample AppConfig instance for testing"""
    return AppConfig(**test_config_dict)


@pytest.fixture
def test_config_file(test_config_dict: dict) -> Generator[str, None, None]:
    """Create a temporary config file for testing"""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.dump(test_config_dict, f)
        config_path = f.name

    yield config_path

    # Cleanup
    if os.path.exists(config_path):
        os.unlink(config_path)


@pytest.fixture(autouse=True)
def clear_config_cache():
    """Clear the config cache and client singleton before and after tests"""
    from app.core.config import get_config
    from app.services import gemini_client as gc_module

    get_config.cache_clear()
    gc_module._gemini_client = None

    yield

    get_config.cache_clear()
    gc_module._gemini_client = None


@pytest.fixture
def use_config(test_config_file: str, monkeypatch):
    """Point get_config() at the temporary config file"""
    from app.core.config import get_config

    monkeypatch.setenv('CONFIG_PATH', test_config_file)
    get_config.cache_clear()
    return test_config_file


class FakeGeminiClient:
    """Scripted stand-in for GeminiClient"""

    def __init__(
        self,
        chunks: Optional[list] = None,
        native: Optional[list] = None,
        response: Optional[dict] = None,
        error: Optional[Exception] = None,
        error_after: Optional[int] = None,
    ):
        self.chunks = chunks or []
        self.native = native or []
        self.response = response or {}
        self.error = error
        self.error_after = error_after
        self.requests: list[tuple[str, dict]] = []
        self.closed = False

    async def _produce(self, items: list) -> AsyncIterator[Any]:
        try:
            for i, item in enumerate(items):
                if self.error is not None and self.error_after == i:
                    raise self.error
                yield item
            if self.error is not None and (self.error_after is None or self.error_after >= len(items)):
                raise self.error
        finally:
            self.closed = True

    def stream_content(self, model: str, body: dict) -> AsyncIterator[Any]:
        self.requests.append((model, body))
        return self._produce(self.chunks)

    def stream_native(self, model: str, body: dict) -> AsyncIterator[Any]:
        self.requests.append((model, body))
        return self._produce(self.native)

    async def generate_native(self, model: str, body: dict) -> dict:
        self.requests.append((model, body))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_gemini() -> FakeGeminiClient:
    return FakeGeminiClient()


@pytest.fixture
def app_client(use_config, fake_gemini):
    """FastAPI test client with the upstream client replaced by a fake"""
    from app.api.dependencies import get_gemini_svc
    from app.main import app

    app.dependency_overrides[get_gemini_svc] = lambda: fake_gemini
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def master_headers() -> dict:
    return {'Authorization': 'Bearer test-master-key'}


@pytest.fixture
def gemini_headers() -> dict:
    return {'x-goog-api-key': 'test-gemini-key'}


@pytest.fixture
def sample_chat_request() -> dict:
    """Sample chat completion request"""
    return {
        'model': 'gemini-2.5-flash',
        'messages': [
            {'role': 'system', 'content': 'You are a helpful assistant.'},
            {'role': 'user', 'content': 'Hello!'}
        ],
        'temperature': 0.7,
        'max_tokens': 100
    }


@pytest.fixture
def sample_native_request() -> dict:
    """Sample Gemini native request"""
    return {
        'contents': [
            {'role': 'user', 'parts': [{'text': 'Hello'}]},
        ],
    }


def parse_sse_frames(body: str) -> list[str]:
    """Split an SSE body into the data payloads of its frames"""
    frames = []
    for block in body.split('\n\n'):
        if block.startswith('data: '):
            frames.append(block[len('data: '):])
    return frames


def parse_openai_chunks(body: str) -> list[dict]:
    return [json.loads(frame) for frame in parse_sse_frames(body) if frame != '[DONE]']


def envelope(text: str, finish_reason: Optional[str] = None, **extra) -> dict:
    """Build a Gemini response envelope with a single text part"""
    candidate: dict[str, Any] = {'content': {'role': 'model', 'parts': [{'text': text}]}, 'index': 0}
    if finish_reason:
        candidate['finishReason'] = finish_reason
    return {'candidates': [candidate], **extra}
