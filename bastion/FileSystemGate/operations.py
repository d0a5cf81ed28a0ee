"""
FileSystemGate file operations.

Provides list, read, write, copy and move on paths that have already passed
PathGuard. Nothing in here validates paths; it only maps filesystem
failures onto the gateway error taxonomy.
"""

import errno
import os
import shutil
from contextlib import contextmanager
from typing import Iterator, List

from bastion.GuardGate.models import ResolvedPath
from bastion.shared.errors import (
    AccessDeniedError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from bastion.shared.gate import GateLogger

from .models import FileEntry, ListResult

_log = GateLogger.get("FileStore")


@contextmanager
def translate_os_errors(operation: str, path: str) -> Iterator[None]:
    """
    Map OS failures raised inside the block onto gateway errors.

    Unexpected failures are logged with detail; the caller only sees a
    generic message.
    """
    try:
        yield
    except PermissionError as e:
        _log.warning(f"{operation} denied for {path}: {e}")
        raise AccessDeniedError("Access denied") from e
    except (FileNotFoundError, NotADirectoryError) as e:
        raise NotFoundError("Path not found") from e
    except OSError as e:
        _log.error(f"{operation} failed for {path}: {e}")
        raise InternalError(detail=str(e)) from e


class FileStore:
    """Blocking filesystem access for validated paths."""

    def list(self, directory: ResolvedPath) -> ListResult:
        """
        List a directory.

        Returns:
            ListResult with directories first, then case-insensitive by name

        Raises:
            NotFoundError: Directory does not exist
            ValidationError: Path is not a directory
            AccessDeniedError: OS refused access
        """
        if not os.path.exists(directory):
            raise NotFoundError(f"Directory '{directory}' does not exist")
        if not os.path.isdir(directory):
            raise ValidationError("Path is not a directory")

        entries: List[FileEntry] = []
        with translate_os_errors("list", directory):
            with os.scandir(directory) as it:
                for entry in it:
                    try:
                        entries.append(FileEntry.from_dir_entry(entry))
                    except OSError:
                        # Skip entries we can't stat
                        continue

        entries.sort(key=lambda e: (not e.is_directory, e.name.casefold()))
        return ListResult(entries=entries, directory_path=str(directory))

    def read(self, path: ResolvedPath) -> bytes:
        """
        Read a whole file.

        Raises:
            NotFoundError: File does not exist (or is a directory)
        """
        if not os.path.isfile(path):
            raise NotFoundError("File not found")

        with translate_os_errors("read", path):
            with open(path, "rb") as f:
                return f.read()

    def write(self, directory: ResolvedPath, name: str, content: bytes) -> ResolvedPath:
        """
        Write ``content`` to ``directory/name``, replacing any existing file.

        Args:
            directory: Existing target directory
            name: Sanitized file name (no separators)
            content: File bytes

        Raises:
            NotFoundError: Target directory does not exist
        """
        if not os.path.isdir(directory):
            raise NotFoundError(f"Directory '{directory}' does not exist")

        target = directory.child(name)
        with translate_os_errors("write", target):
            with open(target, "wb") as f:
                f.write(content)

        _log.info(f"Wrote {len(content)} bytes to {target}")
        return target

    def _check_source(self, source: ResolvedPath) -> None:
        if not os.path.exists(source):
            raise NotFoundError("Source file not found")
        if not os.path.isfile(source):
            raise ValidationError("Source is not a file")

    def _ensure_parent(self, destination: str) -> None:
        parent = os.path.dirname(destination)
        if parent and not os.path.isdir(parent):
            os.makedirs(parent, exist_ok=True)

    def copy(self, source: ResolvedPath, destination: ResolvedPath) -> ResolvedPath:
        """
        Copy a file, creating missing destination directories and
        overwriting an existing destination file.
        """
        self._check_source(source)
        if os.path.isdir(destination):
            raise ValidationError("Destination is a directory")

        with translate_os_errors("copy", destination):
            self._ensure_parent(destination)
            shutil.copy2(source, destination)

        return destination

    def move(self, source: ResolvedPath, destination: ResolvedPath) -> ResolvedPath:
        """
        Move a file. If ``destination`` is an existing directory the source's
        base name is appended to it. Missing parents are created and an
        existing destination file is replaced.
        """
        self._check_source(source)
        if os.path.isdir(destination):
            destination = destination.child(os.path.basename(source))

        with translate_os_errors("move", destination):
            self._ensure_parent(destination)
            try:
                os.replace(source, destination)
            except OSError as e:
                if e.errno != errno.EXDEV:
                    raise
                # Different filesystems: copy then delete
                shutil.move(source, destination)

        return destination
