from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse

from bastion.shared.gate import GateLogger
from bastion.RateGate import OperationKind

_log = GateLogger.get("SecurityMiddleware")

FILE_API_PREFIX = "/api/files"

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": (
        "default-src 'self'; script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'"
    ),
}

# Logged, never blocked
SUSPICIOUS_PATTERNS = (
    "../", "..\\", "%2e%2e", "%252e%252e",
    "<script", "javascript:", "vbscript:",
    "union select", "or 1=1", "' or '1'='1",
    "/etc/passwd", "/proc/", "cmd.exe", "powershell",
)


def client_id(request) -> str:
    """
    Rate-limit identity for a request.

    First X-Forwarded-For hop, then X-Real-IP, then the socket peer.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def operation_for(path: str) -> OperationKind:
    """Map a file API path to the operation it is throttled as."""
    path = path.lower()
    if "/upload" in path:
        return OperationKind.UPLOAD
    if "/download" in path:
        return OperationKind.DOWNLOAD
    if "/search" in path:
        return OperationKind.SEARCH
    if "/copy" in path:
        return OperationKind.COPY
    if "/move" in path:
        return OperationKind.MOVE
    return OperationKind.LIST


def is_suspicious(path: str, query: str) -> bool:
    haystack = f"{path} {query}".lower()
    return any(pattern in haystack for pattern in SUSPICIOUS_PATTERNS)


def _apply_headers(response):
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    return response


class SecurityMiddleware(BaseHTTPMiddleware):
    """Throttle file operations, cap request bodies and add security headers."""

    def __init__(self, app, rate_limiter, max_file_size: int):
        super().__init__(app)
        self._limiter = rate_limiter
        self._max_file_size = max_file_size

    async def dispatch(self, request, call_next):
        path = request.url.path
        caller = client_id(request)

        if path.lower().startswith(FILE_API_PREFIX):
            operation = operation_for(path)
            if not self._limiter.permit(caller, operation):
                _log.warning(f"Rate limit exceeded for IP {caller} on operation {operation.value}")
                return _apply_headers(JSONResponse(
                    status_code=429,
                    content={"detail": "Rate limit exceeded. Please try again later."},
                ))

        if request.method == "POST":
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > self._max_file_size:
                _log.warning(f"Request too large: {content_length} bytes from IP {caller}")
                return _apply_headers(JSONResponse(
                    status_code=413,
                    content={"detail": "Request too large"},
                ))

        if is_suspicious(path, request.url.query):
            _log.warning(f"Suspicious request detected from IP {caller}: {path}")

        response = await call_next(request)
        return _apply_headers(response)


__all__ = ["SecurityMiddleware", "client_id", "operation_for", "is_suspicious"]
