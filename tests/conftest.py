"""Pytest configuration for test suite."""
from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import pytest

# Add project root to Python path
# This ensures 'app' module can be imported in tests
project_root = Path(__file__).parent.parent.resolve()
project_root_str = str(project_root)

if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

os.environ.setdefault("PYTHONPATH", project_root_str)

from app.config import Settings  # noqa: E402

SAMPLE_ANALYSIS = {
    "sentiment": "negative",
    "keyPoints": ["Client thinks the price is too high"],
    "suggestedReplies": {
        "professional": "I understand. Let me walk you through the ROI.",
        "friendly": "Totally get it! Can I show you what's included?",
        "confident": "It pays for itself in three months. Shall we book a call?",
    },
}

SAMPLE_LIVE_ANALYSIS = {
    "needsResponse": True,
    "clientStatus": "客户在比较价格",
    "emotion": "犹豫",
    "stage": "解疑",
    "lastClientMessage": "太贵了",
    "objections": ["价格"],
    "buyingSignals": [],
    "suggestions": [{"content": "我们可以给您九折", "strategy": "降低门槛"}],
    "insights": "客户有兴趣但对价格敏感",
}


class FakeGateway:
    """Records calls and returns a canned reply or raises a canned error."""

    def __init__(self, reply=None, error=None):
        self.reply = json.dumps(SAMPLE_ANALYSIS) if reply is None else reply
        self.error = error
        self.calls = []

    def complete(self, system_prompt, user_content):
        self.calls.append((system_prompt, user_content))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the developer's .env and environment."""
    return Settings(
        _env_file=None,
        ai_gateway_api_key="test-key",
        admin_token="admin-secret",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def fake_gateway():
    return FakeGateway()
