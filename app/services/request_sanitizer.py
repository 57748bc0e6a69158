"""Validation and clamping of raw analysis request bodies."""
import logging
import math
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..core.exceptions import InvalidRequest
from ..models.schemas import AnalysisRequest, ConversationTurn, LiveScreenRequest

logger = logging.getLogger(__name__)

IMAGE_PREFIX = "data:image/"


def sanitize_text(value: Any, max_chars: int) -> str:
    """
    Coerces a value to a clean string:
    - None, lists and dicts become "";
    - numbers and bools go through str();
    - angle brackets are removed, the result is clamped to max_chars.
    """
    if value is None or isinstance(value, (list, dict)):
        return ""
    text = value if isinstance(value, str) else str(value)
    text = text.replace("<", "").replace(">", "")
    return text[:max_chars].strip()


def _optional_text(value: Any, max_chars: int) -> Optional[str]:
    text = sanitize_text(value, max_chars)
    return text or None


def sanitize_image(value: Any, max_bytes: int) -> Optional[str]:
    """
    Accepts only data-URI images whose base64 payload decodes to at most
    max_bytes. Anything else resolves to None.
    """
    if not isinstance(value, str) or not value.startswith(IMAGE_PREFIX):
        return None

    header, sep, payload = value.partition(",")
    if not sep or not payload:
        return None

    max_encoded = math.ceil(max_bytes * 4 / 3)
    if len(payload) > max_encoded:
        logger.info(
            "Image rejected: encoded size %d exceeds %d", len(payload), max_encoded
        )
        return None
    return value


def sanitize_history(
    value: Any, max_entries: int, max_content_chars: int, max_role_chars: int
) -> Optional[List[ConversationTurn]]:
    """Keeps the first max_entries well-formed turns. Non-lists are treated as absent."""
    if not isinstance(value, list):
        return None

    turns: List[ConversationTurn] = []
    for item in value[:max_entries]:
        if not isinstance(item, dict):
            continue
        content = sanitize_text(item.get("content"), max_content_chars)
        if not content:
            continue
        role = sanitize_text(item.get("role"), max_role_chars) or "unknown"
        turns.append(ConversationTurn(role=role, content=content))

    return turns or None


def _as_dict(raw: Any) -> Dict[str, Any]:
    return raw if isinstance(raw, dict) else {}


def sanitize_analysis_request(raw: Any, settings: Settings) -> AnalysisRequest:
    """Builds an AnalysisRequest, failing only when neither text nor image survives."""
    body = _as_dict(raw)
    enum_max = settings.enum_field_max_chars

    request = AnalysisRequest(
        message=sanitize_text(body.get("message"), settings.message_max_chars),
        image=sanitize_image(body.get("image"), settings.image_max_bytes),
        language=sanitize_text(body.get("language"), enum_max).lower(),
        persona=sanitize_text(body.get("persona"), enum_max).lower(),
        tone=sanitize_text(body.get("tone"), enum_max).lower(),
        customInstructions=_optional_text(
            body.get("customInstructions"), settings.custom_instructions_max_chars
        ),
        latestInfo=_optional_text(body.get("latestInfo"), settings.latest_info_max_chars),
        conversationHistory=sanitize_history(
            body.get("conversationHistory"),
            settings.history_max_entries,
            settings.message_max_chars,
            enum_max,
        ),
    )

    if not request.message and not request.image:
        raise InvalidRequest("A message or an image is required")
    return request


def sanitize_live_screen_request(raw: Any, settings: Settings) -> LiveScreenRequest:
    """Builds a LiveScreenRequest; the screenshot is mandatory."""
    body = _as_dict(raw)

    screenshot = sanitize_image(body.get("screenshot"), settings.image_max_bytes)
    if not screenshot:
        raise InvalidRequest("A valid screenshot is required")

    return LiveScreenRequest(
        screenshot=screenshot,
        customInstructions=_optional_text(
            body.get("customInstructions"), settings.custom_instructions_max_chars
        ),
        latestInfo=_optional_text(body.get("latestInfo"), settings.latest_info_max_chars),
        manualInstruction=_optional_text(
            body.get("manualInstruction"), settings.manual_instruction_max_chars
        ),
    )
