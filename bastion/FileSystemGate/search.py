"""
FileSystemGate tree search.

Depth-first, case-insensitive substring search over the tree below a
validated root, bounded by result count, depth and wall-clock time. The walk
stops cooperatively when a bound is hit and returns what it has so far.
"""

import html
import os
import time
from typing import Callable, List, Tuple

from bastion.shared.gate import GateLogger

from .models import FileEntry, SearchDiagnostics, SearchRequest, SearchResult

_log = GateLogger.get("TreeSearch")

# Entries between budget checks inside one directory listing
CHECKPOINT_INTERVAL = 256


class _Walk:
    """State for a single search walk."""

    def __init__(self, request: SearchRequest, clock: Callable[[], float]):
        self.request = request
        self.root = str(request.root_path)
        self.needle = html.unescape(request.term).casefold()
        self.limit = request.max_results + 1
        self.clock = clock
        self.started = clock()
        self.hits: List[Tuple[int, FileEntry]] = []
        self.diagnostics = SearchDiagnostics()

    def full(self) -> bool:
        return len(self.hits) >= self.limit

    def out_of_time(self) -> bool:
        if self.clock() - self.started >= self.request.time_budget_seconds:
            self.diagnostics.timed_out = True
        return self.diagnostics.timed_out

    def should_stop(self) -> bool:
        return self.full() or self.out_of_time()

    def display_name(self, path: str, depth: int) -> str:
        if depth == 0:
            return os.path.basename(path)
        return os.path.relpath(path, self.root)

    def collect(self, entry: os.DirEntry, depth: int, is_directory: bool) -> None:
        try:
            stat_result = entry.stat()
        except OSError:
            # Vanished or unreadable since the listing
            return
        hit = FileEntry.from_stat(
            entry.path,
            stat_result,
            is_directory,
            name=self.display_name(entry.path, depth),
        )
        self.hits.append((depth, hit))

    def visit(self, directory: str, depth: int) -> None:
        if self.should_stop():
            return

        descend = self.request.include_subdirectories and depth < self.request.max_depth
        files: List[os.DirEntry] = []
        matching_dirs: List[os.DirEntry] = []
        subdirs: List[str] = []

        try:
            with os.scandir(directory) as it:
                self.diagnostics.visited_directories += 1
                for index, entry in enumerate(it, start=1):
                    if index % CHECKPOINT_INTERVAL == 0 and self.out_of_time():
                        break
                    try:
                        is_directory = entry.is_dir()
                    except OSError:
                        continue
                    if self.needle in entry.name.casefold():
                        (matching_dirs if is_directory else files).append(entry)
                    # Symlinked directories are listed but not followed
                    if descend and is_directory and not entry.is_symlink():
                        subdirs.append(entry.path)

                # Files before directories, as the walk reports them
                for entry in files:
                    if self.full():
                        break
                    self.collect(entry, depth, is_directory=False)
                for entry in matching_dirs:
                    if self.full():
                        break
                    self.collect(entry, depth, is_directory=True)
        except FileNotFoundError:
            # Removed mid-walk
            self.diagnostics.removed_directories += 1
            return
        except OSError as e:
            self.diagnostics.skipped_directories += 1
            _log.debug(f"Skipping {directory}: {e}")
            return

        for subdir in subdirs:
            if self.should_stop():
                break
            self.visit(subdir, depth + 1)


class TreeSearchEngine:
    """Bounded recursive search below a validated root."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock

    def search(self, request: SearchRequest) -> SearchResult:
        """
        Walk the tree and return ranked hits.

        Args:
            request: Validated search request

        Returns:
            SearchResult with at most ``max_results`` entries
        """
        walk = _Walk(request, self._clock)
        walk.visit(walk.root, 0)
        walk.diagnostics.elapsed_seconds = self._clock() - walk.started

        hits = walk.hits
        truncated = len(hits) > request.max_results
        if truncated:
            hits = hits[:request.max_results]

        # Shallower first, directories before files within a depth, then name
        hits.sort(key=lambda h: (h[0], not h[1].is_directory, h[1].name.casefold()))
        entries = [entry for _, entry in hits]

        message = self._summarize(request, len(entries), truncated, walk.diagnostics)

        if walk.diagnostics.timed_out:
            _log.warning(
                f"Search in {walk.root} timed out after {request.time_budget_seconds:g}s "
                f"with {len(entries)} results"
            )

        return SearchResult(
            entries=entries,
            directory_path=walk.root,
            truncated=truncated,
            message=message,
            diagnostics=walk.diagnostics,
        )

    @staticmethod
    def _summarize(
        request: SearchRequest,
        count: int,
        truncated: bool,
        diagnostics: SearchDiagnostics,
    ) -> str:
        if truncated:
            message = (
                f"Search returned {request.max_results}+ results. "
                "Try a more specific search term."
            )
        elif count > 0:
            message = f"Found {count} results (limit: {request.max_results})"
        else:
            message = (
                f"No results found for '{request.term}' in '{request.root_path}' "
                f"(limit: {request.max_results})"
            )

        if diagnostics.timed_out:
            message += (
                f" - Search timed out after {request.time_budget_seconds:g} seconds, "
                f"skipped {diagnostics.skipped_directories} directories"
            )
        elif diagnostics.skipped_directories > 0:
            message += (
                f" - Skipped {diagnostics.skipped_directories} directories due to permissions"
            )

        return message
