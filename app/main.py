"""FastAPI application instance and router configuration."""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .api.routes import admin, analysis, stats
from .core.logging import setup_logging
from .dependencies import CALLER_IDENTITIES, bearer_caller_id
from .services.analysis_pipeline import build_pipelines
from .services.gateway_client import GatewayClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[GatewayClient] = None,
) -> FastAPI:
    """Builds the app with its own pipelines, limiters and caches."""
    settings = settings or get_settings()
    setup_logging(settings.log_dir, settings.log_level)

    app = FastAPI(
        title="Sales Reply Assistant API",
        description="Client message and live-screen analysis with AI reply suggestions",
        version="1.0.0",
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    identity = CALLER_IDENTITIES.get(settings.rate_limit_identity)
    if identity is None:
        logger.warning(
            "Unknown rate_limit_identity=%r, falling back to bearer",
            settings.rate_limit_identity,
        )
        identity = bearer_caller_id

    app.state.settings = settings
    app.state.caller_identity = identity
    app.state.pipelines = build_pipelines(settings, gateway)

    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected unreadable request body on %s", request.url.path)
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    # Include routers
    app.include_router(analysis.router, tags=["analysis"])
    app.include_router(stats.router, tags=["stats"])
    app.include_router(admin.router, prefix="/admin", tags=["admin"])

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "status": "ok",
            "message": "Sales Reply Assistant API",
            "ai_gateway_configured": bool(settings.ai_gateway_api_key),
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    logger.info("FastAPI application initialized")
    logger.info(
        "Rate limits: analyze=%d live_screen=%d per %.0fs, identity=%s",
        settings.analyze_rate_limit,
        settings.live_screen_rate_limit,
        settings.rate_limit_window_seconds,
        settings.rate_limit_identity,
    )
    return app


app = create_app()
