"""Parsing of the model's textual reply into a result payload."""
import json
import logging
import math
import re
from typing import Any, Dict, Iterable

from ..core.exceptions import MalformedResponse

logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```\s*$")


def strip_code_fence(content: str) -> str:
    """
    Removes a leading ```json (or bare ```) and a trailing ``` that the model
    sometimes wraps around its JSON. Applying it twice changes nothing more.
    """
    if not content:
        return ""
    previous = None
    while content != previous:
        previous = content
        content = _LEADING_FENCE.sub("", content, count=1)
        content = _TRAILING_FENCE.sub("", content, count=1).strip()
    return content


def _reject_constant(name: str):
    # NaN/Infinity cannot be rendered back as strict JSON
    raise ValueError(f"Non-finite JSON constant {name}")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"Non-finite JSON number {text}")
    return value


def normalize(content: str, dropped_keys: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Parses the model reply as a JSON object.
    Fields are passed through untouched apart from dropped_keys.
    """
    cleaned = strip_code_fence(content)

    try:
        data = json.loads(
            cleaned,
            parse_constant=_reject_constant,
            parse_float=_parse_finite_float,
        )
    except ValueError as exc:
        logger.error("JSON decode error from AI gateway, cleaned=%r", cleaned[:500])
        raise MalformedResponse() from exc

    if not isinstance(data, dict):
        logger.error("AI gateway returned JSON %s instead of an object", type(data).__name__)
        raise MalformedResponse()

    for key in dropped_keys:
        data.pop(key, None)
    return data
