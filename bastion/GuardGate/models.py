"""
GuardGate Pydantic models.

Defines the gateway configuration and the values produced by the guards.
"""

import os
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator


MIB = 1024 * 1024


class GatewayConfig(BaseModel):
    """Process-wide gateway configuration, read once at startup."""
    model_config = ConfigDict(frozen=True)

    allowed_root: str = Field(
        default_factory=lambda: os.path.expanduser("~"),
        description="Base directory that all file operations must be within"
    )
    max_file_size: int = Field(default=10 * MIB, ge=1, description="Maximum upload size in bytes")
    max_path_length: int = Field(default=260, ge=1)
    max_search_term_length: int = Field(default=100, ge=1)
    allowed_extensions: List[str] = Field(
        default_factory=list,
        description="Upload whitelist (empty = all except dangerous ones)"
    )
    rate_limit_window_minutes: float = Field(default=15, gt=0)
    max_requests_per_window: int = Field(default=100, ge=1)
    max_search_depth: int = Field(default=20, ge=0)
    search_time_budget_seconds: float = Field(default=30.0, gt=0)
    max_search_results: int = Field(default=10000, ge=1)

    @field_validator("allowed_extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = "." + ext
            normalized.append(ext)
        return normalized

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GatewayConfig":
        """Create from dict."""
        return cls.model_validate(data)


class ResolvedPath(str):
    """
    An absolute, normalized path proven to lie within ``root``.

    Only PathGuard creates these. The check holds at validation time only;
    nothing prevents the filesystem from changing before the path is used.
    """

    root: str

    def __new__(cls, path: str, root: str) -> "ResolvedPath":
        instance = super().__new__(cls, path)
        instance.root = root
        return instance

    @property
    def name(self) -> str:
        return os.path.basename(self)

    def child(self, name: str) -> "ResolvedPath":
        """Join a single, already-sanitized name onto this path."""
        return ResolvedPath(os.path.join(self, name), self.root)


class UploadAcceptance(BaseModel):
    """A validated upload: the name to store it under and its size."""
    model_config = ConfigDict(frozen=True)

    sanitized_file_name: str
    size_bytes: int = Field(ge=0)
    content_type: Optional[str] = None
