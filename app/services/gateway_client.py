"""Client for the OpenAI-compatible AI gateway."""
import logging
import time
from typing import Any, Callable, Dict, Optional

import openai
from openai import OpenAI

from ..config import Settings
from ..core.exceptions import (
    BillingBlocked,
    MalformedResponse,
    RateLimited,
    ServiceConfigurationError,
    UpstreamUnavailable,
)
from .prompt_composer import UserContent

logger = logging.getLogger(__name__)


class GatewayClient:
    """
    One chat-completion round-trip per call, JSON-object response format.

    The SDK's own retries are disabled. 5xx and transport failures get a
    bounded local retry with linear backoff; 429 and 402 are surfaced at once.
    ai_gateway_timeout_seconds bounds the whole call, retries and backoff
    included: each attempt only gets the time left before the deadline.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[OpenAI] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self._client = client
        self._sleep = sleep
        self._clock = clock

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self._settings.ai_gateway_api_key:
                logger.error("AI gateway API key is not configured")
                raise ServiceConfigurationError()
            self._client = OpenAI(
                api_key=self._settings.ai_gateway_api_key,
                base_url=self._settings.ai_gateway_base_url,
                timeout=self._settings.ai_gateway_timeout_seconds,
                max_retries=0,
            )
        return self._client

    def _create(self, params: Dict[str, Any]):
        client = self._get_client()
        max_attempts = max(self._settings.ai_gateway_max_retries, 0) + 1
        deadline = self._clock() + self._settings.ai_gateway_timeout_seconds

        for attempt in range(1, max_attempts + 1):
            try:
                return client.chat.completions.create(
                    **params, timeout=max(deadline - self._clock(), 0.0)
                )
            except openai.RateLimitError as exc:
                logger.warning("AI gateway rate limited the request: %s", exc)
                raise RateLimited() from exc
            except openai.APIStatusError as exc:
                if exc.status_code == 402:
                    logger.warning("AI gateway requires payment: %s", exc)
                    raise BillingBlocked() from exc
                if exc.status_code < 500 or attempt == max_attempts:
                    logger.error("AI gateway error: status=%s body=%r", exc.status_code, exc.body)
                    raise UpstreamUnavailable() from exc
                logger.warning(
                    "AI gateway status %s on attempt %d/%d, retrying...",
                    exc.status_code,
                    attempt,
                    max_attempts,
                )
            except openai.APIConnectionError as exc:
                # Also covers APITimeoutError
                if attempt == max_attempts:
                    logger.error("AI gateway transport error: %r", exc)
                    raise UpstreamUnavailable() from exc
                logger.warning(
                    "AI gateway transport error on attempt %d/%d: %s. Retrying...",
                    attempt,
                    max_attempts,
                    exc,
                )
            backoff = self._settings.ai_gateway_retry_backoff_seconds * attempt
            if deadline - self._clock() <= backoff:
                logger.error("AI gateway deadline reached after %d attempt(s)", attempt)
                raise UpstreamUnavailable()
            self._sleep(backoff)

        raise UpstreamUnavailable()

    def complete(self, system_prompt: str, user_content: UserContent) -> str:
        """Returns the raw text content of the first completion choice."""
        params = {
            "model": self._settings.ai_gateway_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "response_format": {"type": "json_object"},
        }

        start = time.perf_counter()
        completion = self._create(params)
        duration_ms = (time.perf_counter() - start) * 1000

        usage = getattr(completion, "usage", None)
        if usage:
            logger.info(
                "AI gateway usage: prompt_tokens=%s, completion_tokens=%s, total_tokens=%s, %.0f ms",
                usage.prompt_tokens,
                usage.completion_tokens,
                usage.total_tokens,
                duration_ms,
            )
        else:
            logger.info("AI gateway request finished in %.0f ms", duration_ms)

        try:
            content = completion.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise MalformedResponse() from exc

        if not content or not content.strip():
            raise MalformedResponse("AI gateway returned an empty response")

        logger.debug("AI gateway raw content: %r", content)
        return content
