"""
FileSystemGate models.

Defines file entries, listing results and the search request/result types.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from bastion.GuardGate.models import ResolvedPath


DEFAULT_MAX_RESULTS = 10000
DEFAULT_MAX_DEPTH = 20
DEFAULT_TIME_BUDGET_SECONDS = 30.0


class FileEntry(BaseModel):
    """Information about a file or directory."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Display name (relative path for nested search hits)")
    absolute_path: str
    size_bytes: int = Field(default=0, description="Always 0 for directories")
    last_modified: datetime
    is_directory: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")

    @classmethod
    def from_stat(
        cls,
        path: str,
        stat_result: os.stat_result,
        is_directory: bool,
        name: Optional[str] = None,
    ) -> "FileEntry":
        """Build an entry from an ``os.stat`` result."""
        return cls(
            name=name if name is not None else os.path.basename(path),
            absolute_path=path,
            size_bytes=0 if is_directory else stat_result.st_size,
            last_modified=datetime.fromtimestamp(stat_result.st_mtime),
            is_directory=is_directory,
        )

    @classmethod
    def from_dir_entry(cls, entry: os.DirEntry, name: Optional[str] = None) -> "FileEntry":
        """
        Build an entry from an ``os.scandir`` entry.

        Raises:
            OSError: If the entry vanished or cannot be stat'ed
        """
        is_directory = entry.is_dir()
        return cls.from_stat(entry.path, entry.stat(), is_directory, name or entry.name)


@dataclass(frozen=True)
class ListResult:
    """Contents of one directory, directories first."""
    entries: List[FileEntry]
    directory_path: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [e.to_dict() for e in self.entries],
            "directory_path": self.directory_path,
        }


@dataclass(frozen=True)
class SearchRequest:
    """A validated search over the tree below ``root_path``."""
    root_path: ResolvedPath
    term: str
    include_subdirectories: bool = True
    max_results: int = DEFAULT_MAX_RESULTS
    max_depth: int = DEFAULT_MAX_DEPTH
    time_budget_seconds: float = DEFAULT_TIME_BUDGET_SECONDS

    def __post_init__(self):
        if self.max_results < 1:
            raise ValueError("max_results must be at least 1")
        if self.max_depth < 0:
            raise ValueError("max_depth cannot be negative")
        if self.time_budget_seconds <= 0:
            raise ValueError("time_budget_seconds must be positive")


@dataclass
class SearchDiagnostics:
    """Advisory facts about how a search walk went."""
    timed_out: bool = False
    skipped_directories: int = 0
    removed_directories: int = 0
    visited_directories: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timed_out": self.timed_out,
            "skipped_directories": self.skipped_directories,
            "removed_directories": self.removed_directories,
            "visited_directories": self.visited_directories,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


@dataclass(frozen=True)
class SearchResult:
    """Ranked search hits plus out-of-band diagnostics."""
    entries: List[FileEntry]
    directory_path: str
    truncated: bool
    message: str
    diagnostics: SearchDiagnostics = field(default_factory=SearchDiagnostics)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [e.to_dict() for e in self.entries],
            "directory_path": self.directory_path,
            "truncated": self.truncated,
            "message": self.message,
            "diagnostics": self.diagnostics.to_dict(),
        }
