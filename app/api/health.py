"""Health check endpoints"""
from datetime import datetime, timezone

from fastapi import APIRouter

from app.core.config import get_config

router = APIRouter()

SERVICE_NAME = 'Gemini Gateway'
SERVICE_VERSION = '1.0.0'


@router.get('/')
async def root():
    """Service information"""
    config = get_config()
    return {
        'name': SERVICE_NAME,
        'version': SERVICE_VERSION,
        'description': 'OpenAI-compatible and native Gemini streaming gateway',
        'authentication': {
            'openai': config.server.master_api_key is not None,
            'gemini': config.server.gemini_api_key is not None,
        },
        'endpoints': {
            'chat_completions': '/v1/chat/completions',
            'models': '/v1/models',
            'gemini_models': '/v1beta/models',
            'gemini_generate': '/v1beta/models/{model}:generateContent',
            'gemini_stream': '/v1beta/models/{model}:streamGenerateContent',
            'health': '/health',
            'metrics': '/metrics',
        },
    }


@router.get('/health')
async def health():
    """Basic health check endpoint"""
    return {
        'status': 'ok',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }
