"""
GuardGate - Input validation for Bastion.

Provides:
- PathGuard: traversal detection and root containment for client paths
- UploadGuard: size, name, extension, content type and content checks
- TermGuard: search term validation and escaping

Every guard returns a ValidationOutcome; none of them raise for bad input.

Usage:
    from bastion.GuardGate import PathGuard

    guard = PathGuard("/srv/data")
    outcome = guard.validate("/srv/data/reports")
    if outcome:
        resolved = outcome.value
"""

from .models import GatewayConfig, ResolvedPath, UploadAcceptance
from .paths import PathGuard, normalize_path, normalize_root, is_within_root, rebase_onto_root
from .uploads import (
    UploadGuard,
    sanitize_filename,
    DANGEROUS_EXTENSIONS,
    MALICIOUS_MARKERS,
)
from .terms import TermGuard

__all__ = [
    "GatewayConfig",
    "ResolvedPath",
    "UploadAcceptance",
    "PathGuard",
    "UploadGuard",
    "TermGuard",
    "normalize_path",
    "normalize_root",
    "is_within_root",
    "rebase_onto_root",
    "sanitize_filename",
    "DANGEROUS_EXTENSIONS",
    "MALICIOUS_MARKERS",
]
