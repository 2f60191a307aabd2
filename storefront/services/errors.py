from typing import Any, Literal

ErrorKind = Literal["network_failure", "server_error", "client_error", "unauthenticated"]


class ApiError(Exception):
    """
    Base of every failure the gateway reports.

    Args:
        message: Human readable explanation, safe to show to a shopper.
        status_code: HTTP status of the response, None when nothing came back.
        details: Decoded response body, when there was one.
    """

    kind: ErrorKind = "client_error"

    def __init__(self, message: str, *, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, status_code={self.status_code!r}, message={self.message!r})"


class NetworkFailure(ApiError):
    """No response was received (connection refused, DNS, timeout)."""

    kind = "network_failure"


class ServerError(ApiError):
    """Backend answered with a 5xx status."""

    kind = "server_error"


class ClientError(ApiError):
    """4xx response, or a response whose shape we could not understand."""

    kind = "client_error"


class Unauthenticated(ApiError):
    """401 on a call that needs a session. The stored session has been cleared."""

    kind = "unauthenticated"


def error_message(exc: Exception, fallback: str) -> str:
    """Pick the message a store should show for a failed action."""
    if isinstance(exc, ApiError) and exc.message:
        return exc.message
    return fallback
