"""Error taxonomy shared by the gateway and the HTTP layer.

Each error carries the HTTP status and a stable machine-readable ``code`` so
the browser client can branch on it (e.g. stop retrying on
``WEEKLY_LIMIT_EXCEEDED``) without parsing the human message.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for every failure surfaced to the chat client."""

    status: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class InvalidRequest(GatewayError):
    status = 400
    code = "INVALID_REQUEST"
    message = "userId and message are required"


class SessionNotFound(GatewayError):
    status = 404
    code = "SESSION_NOT_FOUND"
    message = "User session not found"


class QuotaExceeded(GatewayError):
    status = 429
    code = "WEEKLY_LIMIT_EXCEEDED"
    message = "Weekly prompt limit reached. Try again next week."


class ServerMisconfigured(GatewayError):
    """The inference service rejected our credential. Not user-correctable."""

    code = "SERVER_MISCONFIGURED"
    message = "The server is misconfigured"


class UpstreamBusy(GatewayError):
    code = "UPSTREAM_BUSY"
    message = "The model provider is rate limiting requests, try again later"


class UpstreamError(GatewayError):
    code = "UPSTREAM_ERROR"
    message = "The model provider is unavailable, try again later"
