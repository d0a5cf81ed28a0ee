"""
Shared utilities for Bastion.

Provides access to common functionality used across Gate implementations.
"""

from bastion.shared.gate import (
    GateLogger,
    ValidationOutcome,
    build_health_status,
)

from bastion.shared.errors import (
    GatewayError,
    ValidationError,
    NotFoundError,
    AccessDeniedError,
    RateLimitedError,
    InternalError,
)

__all__ = [
    # Gate utilities
    "GateLogger",
    "ValidationOutcome",
    "build_health_status",
    # Errors
    "GatewayError",
    "ValidationError",
    "NotFoundError",
    "AccessDeniedError",
    "RateLimitedError",
    "InternalError",
]
