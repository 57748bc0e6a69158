"""Tests for response normalization."""
from __future__ import annotations

import json

import pytest

from app.core.exceptions import MalformedResponse
from app.services.response_normalizer import normalize, strip_code_fence

PAYLOAD = '{"sentiment": "positive", "keyPoints": ["wants a demo"]}'


class TestStripCodeFence:
    """Test fence removal."""

    @pytest.mark.parametrize(
        "wrapped",
        [
            "```json\n" + PAYLOAD + "\n```",
            "  ```JSON " + PAYLOAD + "```  \n",
            "```\n" + PAYLOAD + "\n```",
            PAYLOAD,
        ],
    )
    def test_strips_wrapping(self, wrapped):
        assert strip_code_fence(wrapped) == PAYLOAD

    def test_idempotent(self):
        once = strip_code_fence("```json\n" + PAYLOAD + "\n```")
        assert strip_code_fence(once) == once

    def test_empty(self):
        assert strip_code_fence("") == ""


class TestNormalize:
    """Test parsing into a result payload."""

    def test_fenced_equals_unfenced(self):
        assert normalize("```json\n" + PAYLOAD + "\n```") == json.loads(PAYLOAD)

    def test_missing_fields_pass_through(self):
        assert normalize('{"suggestedReplies": {}}') == {"suggestedReplies": {}}

    def test_drops_requested_keys(self):
        raw = json.dumps({"sentiment": "neutral", "followUpSuggestions": ["call"], "conversationInsights": "ok"})
        result = normalize(raw, ("followUpSuggestions", "conversationInsights"))
        assert result == {"sentiment": "neutral"}

    @pytest.mark.parametrize("raw", ["not json", "```json\n{broken\n```", "[1, 2]", '"text"'])
    def test_malformed(self, raw):
        with pytest.raises(MalformedResponse):
            normalize(raw)


class TestNonFiniteNumbers:
    """Replies that cannot be rendered back as strict JSON are rejected."""

    @pytest.mark.parametrize(
        "raw",
        [
            '{"sentiment": "neutral", "score": NaN}',
            '{"score": Infinity}',
            '```json\n{"score": -Infinity}\n```',
            '{"score": 1e999}',
        ],
    )
    def test_non_finite_values_are_malformed(self, raw):
        with pytest.raises(MalformedResponse):
            normalize(raw)

    def test_finite_floats_still_parse(self):
        assert normalize('{"score": 0.75}') == {"score": 0.75}
