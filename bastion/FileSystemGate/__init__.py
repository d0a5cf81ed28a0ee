"""
FileSystemGate - Secure remote file access for Bastion.

Provides:
- Root containment for every client path (via GuardGate.PathGuard)
- Upload screening (via GuardGate.UploadGuard)
- Bounded tree search
- Per-caller rate limiting (via RateGate)

Every operation runs in the same order: rate limit, then the relevant
guard(s), then the filesystem. Only validated arguments reach FileStore or
TreeSearchEngine.

Usage:
    from bastion.FileSystemGate import FileGateway
    from bastion.GuardGate import GatewayConfig

    gateway = FileGateway(GatewayConfig(allowed_root="/srv/data"))

    listing = gateway.list_directory("203.0.113.7", "/srv/data/reports")
    result = gateway.search("203.0.113.7", "/srv/data", "invoice")
    data, filename = gateway.download("203.0.113.7", "/srv/data/a.txt")
"""

import os
from typing import Any, Dict, List, Optional, Tuple

from bastion.shared.gate import GateLogger, build_health_status
from bastion.shared.errors import (
    AccessDeniedError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from bastion.GuardGate import (
    GatewayConfig,
    PathGuard,
    ResolvedPath,
    TermGuard,
    UploadAcceptance,
    UploadGuard,
)
from bastion.RateGate import OperationKind, RateLimiter, from_config as rate_limiter_from_config

from .models import (
    FileEntry,
    ListResult,
    SearchDiagnostics,
    SearchRequest,
    SearchResult,
)
from .operations import FileStore
from .search import TreeSearchEngine

_log = GateLogger.get("FileSystemGate")

OUTSIDE_ROOT_PREFIX = "Access denied"


class FileGateway:
    """
    Request facade over the guards, the rate limiter, the store and the
    search engine.

    Construct once at startup. The rate limiter is the only process-lifetime
    state and is injected so tests can use a fresh one.
    """

    def __init__(
        self,
        config: GatewayConfig,
        rate_limiter: Optional[RateLimiter] = None,
        store: Optional[FileStore] = None,
        search_engine: Optional[TreeSearchEngine] = None,
    ):
        self.config = config
        self.rate_limiter = rate_limiter or rate_limiter_from_config(config)
        self.path_guard = PathGuard.from_config(config)
        self.upload_guard = UploadGuard.from_config(config)
        self.term_guard = TermGuard.from_config(config)
        self.store = store or FileStore()
        self.search_engine = search_engine or TreeSearchEngine()

    # ==================== Helpers ====================

    def _admit(self, caller_id: str, operation: OperationKind, enforce_rate_limit: bool) -> None:
        if enforce_rate_limit and not self.rate_limiter.permit(caller_id, operation):
            raise RateLimitedError("Rate limit exceeded. Please try again later.")

    def _resolve(self, path: Optional[str], label: str = "") -> ResolvedPath:
        """Validate a client path, raising the matching gateway error."""
        outcome = self.path_guard.validate(path)
        if outcome:
            return outcome.value

        reason = f"{label}{outcome.reason}"
        if outcome.reason.startswith(OUTSIDE_ROOT_PREFIX):
            raise AccessDeniedError(reason)
        raise ValidationError(reason)

    # ==================== Operations ====================

    def default_path(self) -> str:
        """The configured root directory."""
        return self.path_guard.root

    def list_directory(
        self,
        caller_id: str,
        path: Optional[str] = None,
        *,
        enforce_rate_limit: bool = True,
    ) -> ListResult:
        """
        List a directory (default: the root).

        Raises:
            RateLimitedError, ValidationError, AccessDeniedError, NotFoundError
        """
        self._admit(caller_id, OperationKind.LIST, enforce_rate_limit)

        directory = self._resolve(path) if path else self.path_guard.root_path()
        _log.info(f"Getting files for directory: {directory}")
        return self.store.list(directory)

    def search(
        self,
        caller_id: str,
        path: Optional[str],
        term: Optional[str],
        include_subdirectories: bool = True,
        max_results: Optional[int] = None,
        *,
        enforce_rate_limit: bool = True,
    ) -> SearchResult:
        """
        Search below ``path`` for names containing ``term``.

        ``max_results`` is clamped to ``[1, config.max_search_results]``.

        Raises:
            RateLimitedError, ValidationError, AccessDeniedError, NotFoundError
        """
        self._admit(caller_id, OperationKind.SEARCH, enforce_rate_limit)

        term_outcome = self.term_guard.validate(term)
        if not term_outcome:
            raise ValidationError(term_outcome.reason)

        directory = self._resolve(path) if path else self.path_guard.root_path()
        if not os.path.isdir(directory):
            raise NotFoundError(f"Directory '{directory}' does not exist")

        limit = self.config.max_search_results
        if max_results is not None:
            limit = max(1, min(max_results, limit))

        request = SearchRequest(
            root_path=directory,
            term=term_outcome.value,
            include_subdirectories=include_subdirectories,
            max_results=limit,
            max_depth=self.config.max_search_depth,
            time_budget_seconds=self.config.search_time_budget_seconds,
        )

        _log.info(
            f"Searching files in {directory} for term: {request.term}, "
            f"IncludeSubdirs: {include_subdirectories}"
        )
        return self.search_engine.search(request)

    def download(
        self,
        caller_id: str,
        path: Optional[str],
        *,
        enforce_rate_limit: bool = True,
    ) -> Tuple[bytes, str]:
        """
        Read a file for download.

        Returns:
            Tuple of (content, suggested filename)
        """
        self._admit(caller_id, OperationKind.DOWNLOAD, enforce_rate_limit)

        file_path = self._resolve(path)
        _log.info(f"Downloading file: {file_path}")
        return self.store.read(file_path), file_path.name

    def upload(
        self,
        caller_id: str,
        path: Optional[str],
        file_name: Optional[str],
        content_type: Optional[str],
        content: bytes,
        *,
        enforce_rate_limit: bool = True,
    ) -> UploadAcceptance:
        """
        Store an uploaded file in the directory ``path``.

        The upload is screened before the destination is resolved.
        """
        self._admit(caller_id, OperationKind.UPLOAD, enforce_rate_limit)

        upload_outcome = self.upload_guard.validate(
            file_name, content_type, len(content) if content else 0, content
        )
        if not upload_outcome:
            raise ValidationError(upload_outcome.reason)
        accepted = upload_outcome.value

        directory = self._resolve(path)
        _log.info(
            f"Uploading file {accepted.sanitized_file_name} to {directory}, "
            f"Size: {accepted.size_bytes} bytes"
        )
        self.store.write(directory, accepted.sanitized_file_name, content)
        return accepted

    def copy(
        self,
        caller_id: str,
        source_path: Optional[str],
        destination_path: Optional[str],
        *,
        enforce_rate_limit: bool = True,
    ) -> ResolvedPath:
        """Copy a file, creating destination directories as needed."""
        self._admit(caller_id, OperationKind.COPY, enforce_rate_limit)

        source = self._resolve(source_path, "Source path error: ")
        destination = self._resolve(destination_path, "Destination path error: ")

        _log.info(f"Copying file from {source} to {destination}")
        return self.store.copy(source, destination)

    def move(
        self,
        caller_id: str,
        source_path: Optional[str],
        destination_path: Optional[str],
        *,
        enforce_rate_limit: bool = True,
    ) -> ResolvedPath:
        """Move a file; an existing destination directory receives the source's name."""
        self._admit(caller_id, OperationKind.MOVE, enforce_rate_limit)

        source = self._resolve(source_path, "Source path error: ")
        destination = self._resolve(destination_path, "Destination path error: ")

        # The joined name must pass the same checks, length included
        if os.path.isdir(destination):
            destination = self._resolve(destination.child(source.name), "Destination path error: ")
            if os.path.isdir(destination):
                raise ValidationError("Destination is a directory")

        _log.info(f"Moving file from {source} to {destination}")
        return self.store.move(source, destination)

    # ==================== Health Checks ====================

    def is_healthy(self) -> bool:
        """Check that the root exists and is readable."""
        root = self.path_guard.root
        return os.path.isdir(root) and os.access(root, os.R_OK)

    def get_health_status(self) -> Dict[str, Any]:
        """Get detailed health information."""
        root = self.path_guard.root
        checks = {
            "root_exists": os.path.isdir(root),
            "root_readable": os.access(root, os.R_OK),
        }
        details = {
            "root": root,
            "tracked_rate_windows": len(self.rate_limiter),
        }

        return build_health_status(
            gate_name="FileSystemGate",
            initialized=True,
            dependencies=self.get_dependencies(),
            checks=checks,
            details=details,
        )

    @classmethod
    def get_dependencies(cls) -> List[str]:
        """List external dependencies."""
        return ["filesystem"]


__all__ = [
    "FileGateway",
    "FileStore",
    "TreeSearchEngine",
    "FileEntry",
    "ListResult",
    "SearchRequest",
    "SearchResult",
    "SearchDiagnostics",
]
