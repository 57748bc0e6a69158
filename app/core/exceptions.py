"""Error taxonomy for the analysis pipelines.

Each error carries the HTTP status it maps to and a public message that is
safe to return to the caller. Internal details stay in the exception chain
and in the server logs.
"""
from typing import Optional


class AnalysisError(Exception):
    """Base class for all pipeline failures."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, public_message: Optional[str] = None):
        self.public_message = public_message or self.public_message
        super().__init__(self.public_message)


class InvalidRequest(AnalysisError):
    """Missing or malformed required input."""

    status_code = 400
    public_message = "Invalid request"


class RateLimited(AnalysisError):
    """Local quota exceeded or upstream returned 429."""

    status_code = 429
    public_message = "Rate limit exceeded. Please try again later."


class BillingBlocked(AnalysisError):
    """Upstream returned 402."""

    status_code = 402
    public_message = "Payment required. Please add credits to your workspace."


class UpstreamUnavailable(AnalysisError):
    """Any other non-2xx response or a network failure."""

    status_code = 500
    public_message = "AI gateway error"


class MalformedResponse(AnalysisError):
    """Upstream content could not be parsed as a JSON object."""

    status_code = 500
    public_message = "AI gateway returned an unreadable response"


class ServiceConfigurationError(AnalysisError):
    """Server-side configuration is missing. Never names the missing key."""

    status_code = 500
    public_message = "Service configuration error"
