"""FastAPI dependencies."""
import hashlib
from typing import Callable, Dict

from fastapi import Request

from .services.analysis_pipeline import AnalysisPipeline

ANONYMOUS_CALLER = "anonymous"


def get_client_ip(request: Request) -> str:
    """
    Client IP:
    - first hop of X-Forwarded-For (proxies, tunnels),
    - otherwise request.client.host.
    """
    xff = request.headers.get("x-forwarded-for")
    if xff:
        # may be "ip1, ip2, ip3", keep the first
        return xff.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def bearer_caller_id(request: Request) -> str:
    """
    Opaque key derived from the bearer credential. The token is hashed, not
    validated: this is a rate-limit bucket, not authentication.
    """
    auth = request.headers.get("authorization") or ""
    scheme, _, token = auth.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return ANONYMOUS_CALLER
    return "bearer:" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


def ip_caller_id(request: Request) -> str:
    return "ip:" + get_client_ip(request)


CALLER_IDENTITIES: Dict[str, Callable[[Request], str]] = {
    "bearer": bearer_caller_id,
    "ip": ip_caller_id,
}


def get_caller_id(request: Request) -> str:
    """Applies the identity strategy configured for this app."""
    strategy = request.app.state.caller_identity
    return strategy(request)


def get_conversation_pipeline(request: Request) -> AnalysisPipeline:
    return request.app.state.pipelines["analyze-message"]


def get_live_screen_pipeline(request: Request) -> AnalysisPipeline:
    return request.app.state.pipelines["live-screen-analysis"]
