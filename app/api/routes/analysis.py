"""Analysis routes: /analyze-message and /live-screen-analysis."""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from ...core.exceptions import AnalysisError, RateLimited
from ...dependencies import (
    get_caller_id,
    get_conversation_pipeline,
    get_live_screen_pipeline,
)
from ...models.schemas import AnalysisResult, ErrorResponse, LiveAnalysisResult
from ...services.analysis_pipeline import AnalysisPipeline

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    402: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _run_pipeline(pipeline: AnalysisPipeline, body: Any, caller_id: str):
    try:
        return pipeline.run(body, caller_id)
    except RateLimited as exc:
        return error_response(exc.status_code, exc.public_message)
    except AnalysisError as exc:
        logger.warning(
            "%s failed caller=%s error=%s: %s",
            pipeline.name,
            caller_id,
            type(exc).__name__,
            exc.__cause__ or exc,
        )
        return error_response(exc.status_code, exc.public_message)
    except Exception:
        logger.exception("Unexpected error in %s", pipeline.name)
        return error_response(500, "Internal server error")


@router.post(
    "/analyze-message",
    responses={200: {"model": AnalysisResult}, **ERROR_RESPONSES},
)
def analyze_message(
    body: Any = Body(default=None),
    caller_id: str = Depends(get_caller_id),
    pipeline: AnalysisPipeline = Depends(get_conversation_pipeline),
):
    """
    Sentiment, key points and three tone-variant replies for a client
    message or screenshot.
    """
    return _run_pipeline(pipeline, body, caller_id)


@router.post(
    "/live-screen-analysis",
    responses={200: {"model": LiveAnalysisResult}, **ERROR_RESPONSES},
)
def live_screen_analysis(
    body: Any = Body(default=None),
    caller_id: str = Depends(get_caller_id),
    pipeline: AnalysisPipeline = Depends(get_live_screen_pipeline),
):
    """Conversation state and 1-3 reply suggestions for a live chat screenshot."""
    return _run_pipeline(pipeline, body, caller_id)
