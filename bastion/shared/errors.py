"""
Gateway error taxonomy.

Guards never raise these for bad input; they return a ValidationOutcome.
The FileGateway facade and the FileStore raise them, and the web layer
maps ``status_code`` onto the HTTP response.
"""


class GatewayError(Exception):
    """Base class for errors reported to the caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GatewayError):
    """Bad or unsafe client input."""

    status_code = 400


class NotFoundError(GatewayError):
    """Target does not exist."""

    status_code = 404


class AccessDeniedError(GatewayError):
    """Outside the root, or an OS-level permission failure."""

    status_code = 403


class RateLimitedError(GatewayError):
    """Caller exceeded the request cap for the current window."""

    status_code = 429


class InternalError(GatewayError):
    """Unexpected I/O or OS failure. Detail is logged, never returned."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", detail: str = ""):
        super().__init__(message)
        self.detail = detail
