"""Admin routes."""
import logging

from fastapi import APIRouter, HTTPException, Request

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_token(request: Request, token: str) -> None:
    admin_token = request.app.state.settings.admin_token
    if not admin_token or token != admin_token:
        logger.warning("Unauthorized admin access attempt")
        raise HTTPException(status_code=403, detail="Forbidden")


@router.post("/prune")
def admin_prune(request: Request, token: str):
    """
    Drops callers whose rate-limit window has fully expired.
    /admin/prune?token=SECRET
    """
    _check_token(request, token)

    pruned = {}
    for name, pipeline in request.app.state.pipelines.items():
        pruned[name] = {
            "rate_limit_windows": pipeline.rate_limiter.prune(),
            "cache_entries": pipeline.cache.purge_expired() if pipeline.cache else 0,
        }
    return pruned


@router.delete("/reset_caller")
def admin_reset_caller(request: Request, token: str, caller: str):
    """
    Forgets the rate-limit window of one caller key (as shown in /usage_stats).
    /admin/reset_caller?token=SECRET&caller=bearer:0123abcd
    """
    _check_token(request, token)

    reset = {
        name: pipeline.rate_limiter.reset(caller)
        for name, pipeline in request.app.state.pipelines.items()
    }
    logger.info("Admin reset caller=%s result=%s", caller, reset)
    return reset


@router.delete("/clear_all")
def admin_clear_all(request: Request, token: str):
    """Clears every rate-limit window and every cached result."""
    _check_token(request, token)

    for pipeline in request.app.state.pipelines.values():
        pipeline.rate_limiter.clear()
        if pipeline.cache:
            pipeline.cache.clear()
    return {"status": "ok"}


@router.get("/debug/config")
def debug_config(request: Request, token: str):
    """Non-secret configuration values."""
    _check_token(request, token)

    settings = request.app.state.settings
    return {
        "ai_gateway_configured": bool(settings.ai_gateway_api_key),
        "ai_gateway_model": settings.ai_gateway_model,
        "ai_gateway_base_url": settings.ai_gateway_base_url,
        "ai_gateway_timeout_seconds": settings.ai_gateway_timeout_seconds,
        "ai_gateway_max_retries": settings.ai_gateway_max_retries,
        "analyze_rate_limit": settings.analyze_rate_limit,
        "live_screen_rate_limit": settings.live_screen_rate_limit,
        "rate_limit_window_seconds": settings.rate_limit_window_seconds,
        "rate_limit_identity": settings.rate_limit_identity,
        "analysis_cache_enabled": settings.analysis_cache_enabled,
    }
