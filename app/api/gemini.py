"""Gemini native API endpoints

Passthrough routes for clients that speak the Gemini REST protocol and need
native fields such as thought signatures preserved.
"""
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.api.dependencies import get_gemini_svc, verify_gemini_auth
from app.core.config import get_config
from app.core.error_types import (
    STATUS_INTERNAL,
    STATUS_INVALID_ARGUMENT,
    STATUS_NOT_FOUND,
    classify_upstream_status,
)
from app.core.exceptions import ApiError, UpstreamError
from app.core.logging import get_logger
from app.services.gemini_client import GeminiClient
from app.transformer import GeminiNativeStreamTransformer
from app.utils.streaming import PrimedStream, create_streaming_response

logger = get_logger()

router = APIRouter()

ACTIONS = ('generateContent', 'streamGenerateContent')

ROLE_ALIASES = {
    'assistant': 'model',
    'system': 'user',
}


def parse_model_action(value: str) -> tuple[str, str]:
    """Split 'gemini-2.5-flash:generateContent' on its last colon"""
    model, sep, action = value.rpartition(':')
    if not sep or not model:
        raise ApiError.gemini(
            400, 'Invalid request format. Expected: /models/{model}:{action}', STATUS_INVALID_ARGUMENT
        )
    return model, action


def normalize_contents(body: dict[str, Any]) -> None:
    """Validate contents and rewrite roles to user/model in place"""
    contents = body.get('contents')
    if not isinstance(contents, list) or not contents:
        raise ApiError.gemini(
            400, 'contents is required and must be a non-empty array', STATUS_INVALID_ARGUMENT
        )

    for content in contents:
        if not isinstance(content, dict):
            raise ApiError.gemini(400, 'contents entries must be objects', STATUS_INVALID_ARGUMENT)
        role = content.get('role')
        if not role:
            content['role'] = 'user'
        elif role in ('user', 'model'):
            continue
        elif role in ROLE_ALIASES:
            content['role'] = ROLE_ALIASES[role]
        else:
            logger.warning(f"Invalid role in contents: {role}")
            raise ApiError.gemini(
                400,
                f"Invalid role: {role}. Only 'user' and 'model' are allowed in Gemini native format.",
                STATUS_INVALID_ARGUMENT,
            )


def _upstream_api_error(error: UpstreamError) -> ApiError:
    status_code, status, _ = classify_upstream_status(error.status_code)
    return ApiError.gemini(status_code, error.message, status)


@router.post('/models/{model_action}')
async def generate_content(
    model_action: str,
    request: Request,
    _: None = Depends(verify_gemini_auth),
    gemini: GeminiClient = Depends(get_gemini_svc),
):
    """generateContent / streamGenerateContent passthrough"""
    config = get_config()
    model, action = parse_model_action(model_action)

    if config.get_model(model) is None:
        raise ApiError.gemini(
            404,
            f"Model not found: {model}. Available models: {', '.join(config.model_ids())}",
            STATUS_NOT_FOUND,
        )
    if action not in ACTIONS:
        raise ApiError.gemini(
            400,
            f"Invalid action: {action}. Supported actions: {', '.join(ACTIONS)}",
            STATUS_INVALID_ARGUMENT,
        )

    try:
        body = await request.json()
    except ValueError:
        raise ApiError.gemini(400, 'Request body must be valid JSON', STATUS_INVALID_ARGUMENT)
    if not isinstance(body, dict):
        raise ApiError.gemini(400, 'Request body must be a JSON object', STATUS_INVALID_ARGUMENT)
    normalize_contents(body)

    request.state.model = model
    logger.info(f"Gemini native request: model={model} action={action}")

    if action == 'generateContent':
        try:
            response = await gemini.generate_native(model, body)
        except UpstreamError as e:
            logger.error(f"Gemini native endpoint error: {e}")
            raise _upstream_api_error(e)
        return JSONResponse(content=response)

    source = PrimedStream(gemini.stream_native(model, body))
    try:
        await source.prime()
    except UpstreamError as e:
        logger.error(f"Gemini native initial stream error: {e}")
        raise _upstream_api_error(e)

    if source.empty:
        await source.aclose()
        raise ApiError.gemini(500, 'Empty response from Gemini API', STATUS_INTERNAL)

    return create_streaming_response(
        source,
        GeminiNativeStreamTransformer(),
        model=model,
        disconnect_check=request.is_disconnected,
        emit_error_frame=config.stream.emit_error_frame,
    )
