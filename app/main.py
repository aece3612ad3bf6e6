"""Main application entry point"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.health import SERVICE_NAME, SERVICE_VERSION
from app.api.router import api_router, gemini_router, health_router, metrics_router
from app.core.config import get_config
from app.core.exceptions import ApiError
from app.core.logging import get_logger, setup_logging
from app.core.metrics import APP_INFO
from app.core.middleware import MetricsMiddleware
from app.services.gemini_client import close_gemini_client

logger = get_logger()


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render protocol-specific error bodies"""
    return JSONResponse(status_code=exc.status_code, content=exc.body)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title=SERVICE_NAME,
        description="OpenAI-compatible and native Gemini streaming gateway",
        version=SERVICE_VERSION
    )

    # Add metrics middleware
    app.add_middleware(MetricsMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_methods=['GET', 'POST', 'OPTIONS'],
        allow_headers=['Content-Type', 'Authorization', 'x-goog-api-key'],
    )

    app.add_exception_handler(ApiError, api_error_handler)

    # Include routers
    app.include_router(api_router)
    app.include_router(gemini_router)
    app.include_router(health_router)
    app.include_router(metrics_router)

    @app.on_event("startup")
    async def startup_event():
        """Initialize services on startup"""
        config = get_config()

        # Initialize logging
        setup_logging(log_level=config.server.log_level, log_file=config.server.log_file)

        # Set application info for Prometheus
        APP_INFO.info({
            'version': SERVICE_VERSION,
            'title': SERVICE_NAME
        })

        logger.info(f"Starting {SERVICE_NAME} with {len(config.models)} models")
        for model in config.models:
            logger.info(f"  - {model.id}: context={model.context_window} max_tokens={model.max_tokens}")
        logger.info(f"Upstream: {config.upstream.api_base} (proxy: {config.upstream.proxy or 'none'})")
        logger.info(f"Master API key: {'Enabled' if config.server.master_api_key else 'Disabled'}")
        logger.info(f"Gemini API key: {'Enabled' if config.server.gemini_api_key else 'Disabled'}")
        logger.info(f"Metrics endpoint: /metrics")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Release the shared upstream connection pool"""
        await close_gemini_client()

    return app


app = create_app()
