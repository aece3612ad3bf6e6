"""Models API endpoints"""
from fastapi import APIRouter, Depends

from app.api.dependencies import verify_auth, verify_gemini_auth
from app.core.config import get_config
from app.core.error_types import STATUS_NOT_FOUND
from app.core.exceptions import ApiError
from app.models.config import ModelConfig

router = APIRouter()

gemini_router = APIRouter()

SUPPORTED_GENERATION_METHODS = ['generateContent', 'streamGenerateContent']


def gemini_model_info(model: ModelConfig) -> dict:
    """Gemini-format model description for a catalog entry"""
    return {
        'name': f"models/{model.id}",
        'displayName': model.id,
        'description': model.description,
        'inputTokenLimit': model.context_window,
        'outputTokenLimit': model.max_tokens,
        'supportedGenerationMethods': SUPPORTED_GENERATION_METHODS,
    }


@router.get('/models')
async def list_models(_: None = Depends(verify_auth)):
    """List all available models (OpenAI compatible)"""
    models_list = [
        {
            'id': model.id,
            'object': 'model',
            'created': 1677610602,
            'owned_by': 'google',
            'permission': [],
            'root': model.id,
            'parent': None
        }
        for model in get_config().models
    ]

    return {'object': 'list', 'data': models_list}


@gemini_router.get('/models')
async def list_gemini_models(_: None = Depends(verify_gemini_auth)):
    """List all available models (Gemini format)"""
    return {'models': [gemini_model_info(model) for model in get_config().models]}


@gemini_router.get('/models/{model:path}')
async def get_gemini_model(model: str, _: None = Depends(verify_gemini_auth)):
    """Get one model in Gemini format; accepts both 'name' and 'models/name'"""
    model_id = model[len('models/'):] if model.startswith('models/') else model
    info = get_config().get_model(model_id)
    if info is None:
        raise ApiError.gemini(404, f"Model not found: {model_id}", STATUS_NOT_FOUND)
    return gemini_model_info(info)
