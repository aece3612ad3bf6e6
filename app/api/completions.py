"""Completions API endpoints"""
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.api.dependencies import get_gemini_svc, verify_auth
from app.core.config import get_config
from app.core.error_types import (
    ERROR_TYPE_INVALID_REQUEST,
    ERROR_TYPE_NOT_FOUND,
    classify_upstream_status,
)
from app.core.exceptions import ApiError, UpstreamError
from app.core.logging import get_logger
from app.services.gemini_client import GeminiClient
from app.services.request_converter import build_gemini_request
from app.transformer import OpenAIStreamTransformer
from app.utils.streaming import PrimedStream, collect_completion, create_streaming_response

logger = get_logger()

router = APIRouter()


def _upstream_api_error(error: UpstreamError) -> ApiError:
    status_code, _, error_type = classify_upstream_status(error.status_code)
    return ApiError.openai(status_code, error.message, error_type, str(error.status_code))


async def _read_payload(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise ApiError.openai(400, 'Request body must be valid JSON', ERROR_TYPE_INVALID_REQUEST, 'invalid_json')
    if not isinstance(payload, dict):
        raise ApiError.openai(400, 'Request body must be a JSON object', ERROR_TYPE_INVALID_REQUEST, 'invalid_json')
    return payload


def _validate_entries(payload: dict[str, Any]) -> None:
    """Reject messages, tool calls and tools that are not JSON objects"""
    for message in payload['messages']:
        if not isinstance(message, dict):
            raise ApiError.openai(
                400, 'each message must be an object', ERROR_TYPE_INVALID_REQUEST, 'invalid_messages'
            )
        tool_calls = message.get('tool_calls')
        if tool_calls is not None and (
            not isinstance(tool_calls, list) or not all(isinstance(c, dict) for c in tool_calls)
        ):
            raise ApiError.openai(
                400, 'tool_calls must be a list of objects', ERROR_TYPE_INVALID_REQUEST, 'invalid_messages'
            )

    tools = payload.get('tools')
    if tools is not None and (not isinstance(tools, list) or not all(isinstance(t, dict) for t in tools)):
        raise ApiError.openai(
            400, 'tools must be a list of objects', ERROR_TYPE_INVALID_REQUEST, 'invalid_messages'
        )


@router.post('/chat/completions')
async def chat_completions(
    request: Request,
    _: None = Depends(verify_auth),
    gemini: GeminiClient = Depends(get_gemini_svc),
):
    """OpenAI-compatible chat completions backed by Gemini"""
    config = get_config()
    payload = await _read_payload(request)

    model = payload.get('model')
    if not model:
        raise ApiError.openai(400, 'model is required', ERROR_TYPE_INVALID_REQUEST, 'missing_model')
    if config.get_model(model) is None:
        raise ApiError.openai(
            404,
            f"Model '{model}' not found. Available models: {', '.join(config.model_ids())}",
            ERROR_TYPE_NOT_FOUND,
            'model_not_found',
        )
    messages = payload.get('messages')
    if not isinstance(messages, list) or not messages:
        raise ApiError.openai(
            400, 'messages must be a non-empty list', ERROR_TYPE_INVALID_REQUEST, 'invalid_messages'
        )
    _validate_entries(payload)

    request.state.model = model
    body = build_gemini_request(payload)
    logger.info(f"Chat completion request: model={model} stream={bool(payload.get('stream'))}")

    if not payload.get('stream', False):
        try:
            completion = await collect_completion(gemini.stream_content(model, body), model)
        except UpstreamError as e:
            logger.error(f"Upstream error for model={model}: {e}")
            raise _upstream_api_error(e)
        return JSONResponse(content=completion)

    source = PrimedStream(gemini.stream_content(model, body))
    try:
        await source.prime()
    except UpstreamError as e:
        logger.error(f"Upstream error opening stream for model={model}: {e}")
        raise _upstream_api_error(e)

    return create_streaming_response(
        source,
        OpenAIStreamTransformer(model),
        model=model,
        disconnect_check=request.is_disconnected,
        emit_error_frame=config.stream.emit_error_frame,
    )
