"""
RateGate - Per-caller request throttling for Bastion.

Usage:
    from bastion.RateGate import RateLimiter, OperationKind

    limiter = RateLimiter(max_requests=100, window_minutes=15)
    if not limiter.permit("203.0.113.7", OperationKind.SEARCH):
        ...
"""

from bastion.GuardGate.models import GatewayConfig

from .models import OperationKind, RateKey
from .limiter import RateLimiter


def from_config(config: GatewayConfig) -> RateLimiter:
    """Build a RateLimiter from the gateway configuration."""
    return RateLimiter(
        max_requests=config.max_requests_per_window,
        window_minutes=config.rate_limit_window_minutes,
    )


__all__ = ["OperationKind", "RateKey", "RateLimiter", "from_config"]
