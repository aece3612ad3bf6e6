"""Main API router"""
from fastapi import APIRouter

from app.api import completions, gemini, health, metrics, models

api_router = APIRouter(prefix='/v1')

api_router.include_router(completions.router, tags=['completions'])
api_router.include_router(models.router, tags=['models'])

gemini_router = APIRouter(prefix='/v1beta')

gemini_router.include_router(models.gemini_router, tags=['gemini'])
gemini_router.include_router(gemini.router, tags=['gemini'])

health_router = APIRouter()
health_router.include_router(health.router, tags=['health'])

metrics_router = APIRouter()
metrics_router.include_router(metrics.router, tags=['metrics'])
