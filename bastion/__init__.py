"""
Bastion - a secure file-access gateway.

Gates:
- GuardGate: path, upload and search-term validation
- RateGate: per-caller sliding-window throttling
- FileSystemGate: the request facade, file store and tree search
- Config: schema-driven settings
"""

from bastion.shared.gate import GateLogger, ValidationOutcome
from bastion.shared.errors import (
    GatewayError,
    ValidationError,
    NotFoundError,
    AccessDeniedError,
    RateLimitedError,
    InternalError,
)
from bastion.GuardGate import GatewayConfig, PathGuard, UploadGuard, TermGuard, ResolvedPath
from bastion.RateGate import RateLimiter, OperationKind
from bastion.FileSystemGate import FileGateway, FileStore, TreeSearchEngine, FileEntry

__version__ = "0.1.0"

__all__ = [
    "GateLogger",
    "ValidationOutcome",
    "GatewayError",
    "ValidationError",
    "NotFoundError",
    "AccessDeniedError",
    "RateLimitedError",
    "InternalError",
    "GatewayConfig",
    "PathGuard",
    "UploadGuard",
    "TermGuard",
    "ResolvedPath",
    "RateLimiter",
    "OperationKind",
    "FileGateway",
    "FileStore",
    "TreeSearchEngine",
    "FileEntry",
]
