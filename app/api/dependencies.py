"""API dependencies"""
from typing import Optional

from fastapi import Header, Query

from app.core.config import get_config
from app.core.error_types import ERROR_TYPE_AUTHENTICATION, STATUS_UNAUTHENTICATED
from app.core.exceptions import ApiError
from app.core.security import extract_bearer_token, verify_gemini_key, verify_master_key
from app.services.gemini_client import GeminiClient, get_gemini_client


async def verify_auth(authorization: Optional[str] = Header(None)) -> None:
    """Verify master API key for the OpenAI-compatible routes"""
    if get_config().server.master_api_key is None:
        return

    if not authorization:
        raise ApiError.openai(
            401, 'Missing Authorization header', ERROR_TYPE_AUTHENTICATION, 'missing_authorization'
        )
    if extract_bearer_token(authorization) is None:
        raise ApiError.openai(
            401,
            'Invalid Authorization header format, expected: Bearer <token>',
            ERROR_TYPE_AUTHENTICATION,
            'invalid_authorization_format',
        )
    if not verify_master_key(authorization):
        raise ApiError.openai(401, 'Invalid API key', ERROR_TYPE_AUTHENTICATION, 'invalid_api_key')


async def verify_gemini_auth(
    x_goog_api_key: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
    key: Optional[str] = Query(None),
) -> None:
    """Verify a Google-style API key for the native routes

    Checked in order: x-goog-api-key header, ?key= query parameter, Bearer token.
    """
    if get_config().server.gemini_api_key is None:
        return

    provided = x_goog_api_key or key or extract_bearer_token(authorization)
    if not provided:
        raise ApiError.gemini(
            401,
            'Missing API key. Provide it via x-goog-api-key header, key query parameter '
            'or Authorization: Bearer header.',
            STATUS_UNAUTHENTICATED,
        )
    if not verify_gemini_key(provided):
        raise ApiError.gemini(401, 'Invalid API key', STATUS_UNAUTHENTICATED)


def get_gemini_svc() -> GeminiClient:
    """Get Gemini client dependency"""
    return get_gemini_client()
