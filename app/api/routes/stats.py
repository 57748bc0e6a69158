"""Statistics routes."""
from fastapi import APIRouter, Depends, Request

from ...dependencies import get_caller_id

router = APIRouter()


@router.get("/usage_stats")
def usage_stats(request: Request):
    """
    Per pipeline:
    - rate-limit usage of every tracked caller in the current window
    - result cache size and hit/miss counters
    """
    result = {}
    for name, pipeline in request.app.state.pipelines.items():
        result[name] = {
            "rate_limit": pipeline.rate_limiter.get_stats(),
            "cache": pipeline.cache.get_stats() if pipeline.cache else None,
        }
    return result


@router.get("/my_stats")
def my_stats(request: Request, caller_id: str = Depends(get_caller_id)):
    return {
        name: {
            "limit": pipeline.rate_limiter.limit,
            "remaining": pipeline.rate_limiter.remaining(caller_id),
            "window_seconds": pipeline.rate_limiter.window_seconds,
        }
        for name, pipeline in request.app.state.pipelines.items()
    }
