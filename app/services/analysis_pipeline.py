"""Analysis pipeline shared by the conversation and live-screen endpoints."""
import logging
from typing import Any, Dict, Optional

from ..config import Settings
from ..core.analysis_cache import AnalysisCache, make_cache_key
from ..core.exceptions import RateLimited
from ..core.rate_limiter import SlidingWindowRateLimiter
from .gateway_client import GatewayClient
from .prompt_composer import (
    ConversationPromptTemplate,
    LiveScreenPromptTemplate,
    PromptTemplate,
)
from .response_normalizer import normalize

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """
    Sanitize -> rate limit -> cache lookup -> compose -> gateway -> normalize.

    Every accepted request consumes quota, cache hits included.
    """

    def __init__(
        self,
        template: PromptTemplate,
        settings: Settings,
        rate_limiter: SlidingWindowRateLimiter,
        gateway: GatewayClient,
        cache: Optional[AnalysisCache] = None,
    ):
        self.template = template
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.gateway = gateway
        self.cache = cache

    @property
    def name(self) -> str:
        return self.template.name

    def run(self, raw_body: Any, caller_id: str) -> Dict[str, Any]:
        request = self.template.sanitize(raw_body, self.settings)

        if not self.rate_limiter.allow(caller_id):
            raise RateLimited()

        cache_key = None
        if self.cache is not None:
            cache_key = make_cache_key(self.name, request.model_dump())
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info("%s cache hit caller=%s", self.name, caller_id)
                return cached

        system_prompt, user_content = self.template.compose(request)
        logger.info(
            "%s request caller=%s system_chars=%d multipart=%s",
            self.name,
            caller_id,
            len(system_prompt),
            isinstance(user_content, list),
        )

        raw_text = self.gateway.complete(system_prompt, user_content)
        result = normalize(raw_text, self.template.dropped_result_keys(request))

        if self.cache is not None:
            self.cache.set(cache_key, result)

        logger.info("%s ok caller=%s keys=%s", self.name, caller_id, sorted(result))
        return result


def build_pipelines(
    settings: Settings, gateway: Optional[GatewayClient] = None
) -> Dict[str, AnalysisPipeline]:
    """Builds both pipeline variants with their own limiters and caches."""
    gateway = gateway or GatewayClient(settings)
    pipelines: Dict[str, AnalysisPipeline] = {}

    for template, limit in (
        (ConversationPromptTemplate(), settings.analyze_rate_limit),
        (LiveScreenPromptTemplate(), settings.live_screen_rate_limit),
    ):
        cache = None
        if settings.analysis_cache_enabled:
            cache = AnalysisCache(
                ttl_seconds=settings.analysis_cache_ttl_seconds,
                max_entries=settings.analysis_cache_max_entries,
            )
        pipelines[template.name] = AnalysisPipeline(
            template=template,
            settings=settings,
            rate_limiter=SlidingWindowRateLimiter(
                limit=limit,
                window_seconds=settings.rate_limit_window_seconds,
                name=template.name,
            ),
            gateway=gateway,
            cache=cache,
        )

    return pipelines
