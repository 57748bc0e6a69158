"""Tests for the AI gateway client."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from app.core.exceptions import (
    BillingBlocked,
    MalformedResponse,
    RateLimited,
    ServiceConfigurationError,
    UpstreamUnavailable,
)
from app.services.gateway_client import GatewayClient

REQUEST = httpx.Request("POST", "https://gateway.test/v1/chat/completions")


def _status_error(cls, status: int):
    return cls("upstream error", response=httpx.Response(status, request=REQUEST), body=None)


def _completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


@pytest.fixture
def sdk():
    return MagicMock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def gateway(settings, sdk, sleeps):
    return GatewayClient(settings, client=sdk, sleep=sleeps.append)


class TestGatewayClient:
    """Test request shape and error classification."""

    def test_sends_json_object_request(self, gateway, sdk, settings):
        sdk.chat.completions.create.return_value = _completion('{"a": 1}')

        assert gateway.complete("system", "user") == '{"a": 1}'

        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == settings.ai_gateway_model
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]

    def test_429_is_rate_limited_without_retry(self, gateway, sdk, sleeps):
        sdk.chat.completions.create.side_effect = _status_error(openai.RateLimitError, 429)

        with pytest.raises(RateLimited):
            gateway.complete("s", "u")
        assert sdk.chat.completions.create.call_count == 1
        assert sleeps == []

    def test_402_is_billing_blocked_without_retry(self, gateway, sdk):
        sdk.chat.completions.create.side_effect = _status_error(openai.APIStatusError, 402)

        with pytest.raises(BillingBlocked):
            gateway.complete("s", "u")
        assert sdk.chat.completions.create.call_count == 1

    def test_4xx_is_upstream_unavailable(self, gateway, sdk):
        sdk.chat.completions.create.side_effect = _status_error(openai.BadRequestError, 400)

        with pytest.raises(UpstreamUnavailable):
            gateway.complete("s", "u")
        assert sdk.chat.completions.create.call_count == 1

    def test_5xx_is_retried_then_succeeds(self, gateway, sdk, sleeps):
        sdk.chat.completions.create.side_effect = [
            _status_error(openai.InternalServerError, 503),
            _completion('{"ok": true}'),
        ]

        assert gateway.complete("s", "u") == '{"ok": true}'
        assert sdk.chat.completions.create.call_count == 2
        assert len(sleeps) == 1

    def test_5xx_gives_up_after_retries(self, gateway, sdk, settings):
        sdk.chat.completions.create.side_effect = _status_error(openai.InternalServerError, 500)

        with pytest.raises(UpstreamUnavailable):
            gateway.complete("s", "u")
        assert sdk.chat.completions.create.call_count == settings.ai_gateway_max_retries + 1

    def test_timeout_is_upstream_unavailable(self, gateway, sdk):
        sdk.chat.completions.create.side_effect = openai.APITimeoutError(request=REQUEST)

        with pytest.raises(UpstreamUnavailable):
            gateway.complete("s", "u")

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_empty_content_is_malformed(self, gateway, sdk, content):
        sdk.chat.completions.create.return_value = _completion(content)

        with pytest.raises(MalformedResponse):
            gateway.complete("s", "u")

    def test_missing_key_fails_closed(self, settings):
        settings.ai_gateway_api_key = None
        gateway = GatewayClient(settings)

        with pytest.raises(ServiceConfigurationError) as exc_info:
            gateway.complete("s", "u")
        assert exc_info.value.public_message == "Service configuration error"
        assert "KEY" not in str(exc_info.value).upper()


class TestGatewayDeadline:
    """Retries never push the call past the configured timeout."""

    def test_each_attempt_gets_remaining_time(self, settings, sdk, sleeps):
        now = [0.0]

        def slow_failure(**kwargs):
            now[0] += 10
            raise _status_error(openai.InternalServerError, 503)

        outcomes = iter([slow_failure, lambda **kwargs: _completion('{"ok": true}')])
        sdk.chat.completions.create.side_effect = lambda **kwargs: next(outcomes)(**kwargs)

        gateway = GatewayClient(settings, client=sdk, sleep=sleeps.append, clock=lambda: now[0])
        assert gateway.complete("s", "u") == '{"ok": true}'

        timeouts = [c.kwargs["timeout"] for c in sdk.chat.completions.create.call_args_list]
        assert timeouts == [settings.ai_gateway_timeout_seconds, settings.ai_gateway_timeout_seconds - 10]

    def test_no_retry_when_deadline_is_near(self, settings, sdk, sleeps):
        now = [0.0]

        def almost_timeout(**kwargs):
            now[0] = settings.ai_gateway_timeout_seconds - 0.1
            raise openai.APITimeoutError(request=REQUEST)

        sdk.chat.completions.create.side_effect = almost_timeout
        gateway = GatewayClient(settings, client=sdk, sleep=sleeps.append, clock=lambda: now[0])

        with pytest.raises(UpstreamUnavailable):
            gateway.complete("s", "u")
        assert sdk.chat.completions.create.call_count == 1
        assert sleeps == []
