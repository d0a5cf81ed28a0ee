"""
GuardGate path security.

Provides traversal detection, root containment and length checks for
client-supplied paths. Nothing here touches the filesystem.
"""

import os
import re
from typing import Optional

from bastion.shared.gate import GateLogger, ValidationOutcome

from .models import GatewayConfig, ResolvedPath

_log = GateLogger.get("PathGuard")

# ".." adjacent to a separator in either direction, on the raw string
TRAVERSAL_PATTERN = re.compile(r"\.\.[\\/]|[\\/]\.\.")

# Control characters other than tab
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0a-\x1f]")

DEFAULT_MAX_PATH_LENGTH = 260


def normalize_root(root: str) -> str:
    """
    Normalize the configured root directory.

    Args:
        root: Root path from configuration (may use ~)

    Returns:
        Normalized absolute root path
    """
    root = os.path.expanduser(root)
    return os.path.normpath(os.path.abspath(root))


def normalize_path(path: str, base: str) -> str:
    """
    Normalize a client path to an absolute path.

    Backslashes are treated as separators on every platform. Relative paths
    are resolved against ``base`` rather than the process working directory.

    Args:
        path: Raw path string (already screened for traversal)
        base: Normalized root to resolve relative paths against

    Returns:
        Normalized absolute path
    """
    if os.sep == "/":
        path = path.replace("\\", "/")
    if not os.path.isabs(path):
        path = os.path.join(base, path)
    return os.path.normpath(path)


def rebase_onto_root(candidate: str, root: str) -> Optional[str]:
    """
    Match ``candidate`` against ``root`` case-insensitively.

    Nesting is checked at a path-segment boundary, so ``/srv/data2`` is not
    inside ``/srv/data``. A match is returned with the root portion spelled
    exactly as the configured root, so on case-sensitive filesystems the
    result still names a location under the real root.

    Returns:
        The rebased path, or None when ``candidate`` is outside ``root``
    """
    head, tail = candidate[:len(root)], candidate[len(root):]
    if head.casefold() != root.casefold():
        return None
    if tail and not root.endswith(os.sep) and not tail.startswith(os.sep):
        return None
    return root + tail


def is_within_root(candidate: str, root: str) -> bool:
    """Check, case-insensitively, that ``candidate`` equals or is nested under ``root``."""
    return rebase_onto_root(candidate, root) is not None


class PathGuard:
    """Validates client paths against a single configured root."""

    def __init__(self, root: str, max_path_length: int = DEFAULT_MAX_PATH_LENGTH):
        self.root = normalize_root(root)
        self.max_path_length = max_path_length

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "PathGuard":
        return cls(config.allowed_root, config.max_path_length)

    def root_path(self) -> ResolvedPath:
        """The configured root itself, as a ResolvedPath."""
        return ResolvedPath(self.root, self.root)

    def validate(self, input_path: Optional[str]) -> ValidationOutcome[ResolvedPath]:
        """
        Validate and normalize a client-supplied path.

        Args:
            input_path: Raw path from the client

        Returns:
            ValidationOutcome carrying the ResolvedPath, or the rejection reason
        """
        if input_path is None or not input_path.strip():
            return ValidationOutcome.invalid("Path cannot be empty")

        sanitized = input_path.strip()

        # Normalization would hide "..", so check the raw string first
        if TRAVERSAL_PATTERN.search(sanitized):
            _log.warning(f"Path traversal attempt detected: {input_path!r}")
            return ValidationOutcome.invalid("Invalid path: path traversal detected")

        if CONTROL_CHARS.search(sanitized):
            _log.warning(f"Null bytes or control characters detected in path: {input_path!r}")
            return ValidationOutcome.invalid("Invalid path: contains illegal characters")

        try:
            normalized = normalize_path(sanitized, self.root)
        except (TypeError, ValueError) as e:
            _log.warning(f"Could not normalize path {input_path!r}: {e}")
            return ValidationOutcome.invalid("Invalid path format")

        contained = rebase_onto_root(normalized, self.root)
        if contained is None:
            _log.warning(f"Path outside allowed base directory: {normalized}, Base: {self.root}")
            return ValidationOutcome.invalid("Access denied: path outside allowed directory")
        normalized = contained

        if len(normalized) > self.max_path_length:
            return ValidationOutcome.invalid(
                f"Path too long (max {self.max_path_length} characters)"
            )

        return ValidationOutcome.valid(ResolvedPath(normalized, self.root))
