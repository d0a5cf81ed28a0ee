"""
GuardGate upload security.

Validates an incoming file's size, name, extension, declared content type
and the leading bytes of its content.
"""

import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, Optional

from bastion.shared.gate import GateLogger, ValidationOutcome

from .models import GatewayConfig, UploadAcceptance, MIB

_log = GateLogger.get("UploadGuard")

MAX_FILENAME_LENGTH = 255

# Bytes of content inspected for dangerous markers
SCAN_SIZE = 8192

DANGEROUS_EXTENSIONS: FrozenSet[str] = frozenset({
    ".exe", ".bat", ".cmd", ".com", ".pif", ".scr", ".vbs", ".js", ".jar",
    ".ps1", ".sh", ".php", ".asp", ".aspx", ".jsp", ".py", ".pl", ".rb",
})

RESERVED_NAMES: FrozenSet[str] = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)

# Extensions with a known content type; anything else is not checked
EXTENSION_CONTENT_TYPES: Dict[str, FrozenSet[str]] = {
    ".txt": frozenset({"text/plain"}),
    ".pdf": frozenset({"application/pdf"}),
    ".jpg": frozenset({"image/jpeg"}),
    ".jpeg": frozenset({"image/jpeg"}),
    ".png": frozenset({"image/png"}),
    ".gif": frozenset({"image/gif"}),
    ".zip": frozenset({"application/zip"}),
    ".doc": frozenset({"application/msword"}),
    ".docx": frozenset({
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    }),
}

MALICIOUS_MARKERS = (
    "<script", "javascript:", "vbscript:", "onload=", "onerror=",
    "<?php", "<%", "eval(", "exec(", "system(",
    "cmd.exe", "powershell", "/bin/sh",
)

INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


class ContentScanError(Exception):
    """Raised when upload content cannot be read for scanning."""
    pass


def is_reserved_filename(filename: str) -> bool:
    """Check whether the stem of ``filename`` is a reserved device name."""
    stem, _ = os.path.splitext(filename)
    return stem.upper() in RESERVED_NAMES


def sanitize_filename(filename: Optional[str]) -> str:
    """
    Sanitize an upload filename.

    Args:
        filename: Raw filename from the client

    Returns:
        A safe filename, never empty
    """
    filename = filename or ""

    # Replace characters that are illegal in filenames
    sanitized = INVALID_FILENAME_CHARS.sub("_", filename)

    # Trim whitespace, then leading/trailing dots and spaces
    sanitized = sanitized.strip().strip(". ")

    if not sanitized or is_reserved_filename(sanitized):
        _, extension = os.path.splitext(sanitized)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        sanitized = f"file_{timestamp}{extension}"

    if len(sanitized) > MAX_FILENAME_LENGTH:
        name, extension = os.path.splitext(sanitized)
        if len(extension) >= MAX_FILENAME_LENGTH:
            extension = ""
        sanitized = name[:MAX_FILENAME_LENGTH - len(extension)] + extension

    return sanitized


def read_sample(content: Any, limit: int = SCAN_SIZE) -> bytes:
    """
    Read up to ``limit`` leading bytes from upload content.

    Accepts bytes-like objects, text, or a readable binary/text stream. A
    seekable stream is rewound to where it started.

    Raises:
        ContentScanError: If the content cannot be read
    """
    if content is None:
        return b""
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content[:limit])
    if isinstance(content, str):
        return content[:limit].encode("utf-8", errors="replace")

    read = getattr(content, "read", None)
    if read is None:
        raise ContentScanError(f"Unsupported content type: {type(content).__name__}")

    seekable = getattr(content, "seekable", None)
    try:
        start = content.tell() if seekable is not None and seekable() else None
        data = read(limit)
        if start is not None:
            content.seek(start)
    except (OSError, ValueError) as e:
        raise ContentScanError(str(e)) from e

    if isinstance(data, str):
        data = data.encode("utf-8", errors="replace")
    return bytes(data or b"")


def find_malicious_marker(sample: bytes) -> Optional[str]:
    """Return the first dangerous marker found in ``sample``, if any."""
    text = sample.decode("utf-8", errors="replace").lower()
    for marker in MALICIOUS_MARKERS:
        if marker in text:
            return marker
    return None


def content_type_matches(content_type: Optional[str], extension: str) -> bool:
    """
    Check a declared content type against the extension mapping.

    A missing content type never matches. Extensions without a mapping
    accept any declared type.
    """
    if not content_type or not content_type.strip():
        return False

    mime = content_type.split(";", 1)[0].strip().lower()
    accepted = EXTENSION_CONTENT_TYPES.get(extension)
    if accepted is None:
        return True
    return mime in accepted


class UploadGuard:
    """Validates uploads before anything is written."""

    def __init__(
        self,
        max_file_size: int = 10 * MIB,
        allowed_extensions: Optional[Iterable[str]] = None,
    ):
        self.max_file_size = max_file_size
        self.allowed_extensions = frozenset(e.lower() for e in (allowed_extensions or []))

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "UploadGuard":
        return cls(config.max_file_size, config.allowed_extensions)

    def validate(
        self,
        file_name: Optional[str],
        declared_content_type: Optional[str],
        size_bytes: Optional[int],
        content_sample: Any,
    ) -> ValidationOutcome[UploadAcceptance]:
        """
        Validate an upload.

        Args:
            file_name: Client-supplied filename
            declared_content_type: Content type the client declared
            size_bytes: Total payload size
            content_sample: Payload bytes, text or a readable stream

        Returns:
            ValidationOutcome carrying the UploadAcceptance, or the rejection reason
        """
        if not size_bytes or size_bytes <= 0 or content_sample is None:
            return ValidationOutcome.invalid("No file provided")

        # Size is checked before any content is read
        if size_bytes > self.max_file_size:
            _log.warning(f"File too large: {size_bytes} bytes, Max: {self.max_file_size}")
            return ValidationOutcome.invalid(
                f"File too large (max {self.max_file_size // MIB} MB)"
            )

        sanitized = sanitize_filename(file_name)

        _, extension = os.path.splitext(sanitized)
        extension = extension.lower()

        if extension in DANGEROUS_EXTENSIONS:
            _log.warning(f"Dangerous file extension detected: {extension}")
            return ValidationOutcome.invalid("File type not allowed for security reasons")

        if self.allowed_extensions and extension not in self.allowed_extensions:
            return ValidationOutcome.invalid("File type not in allowed list")

        if not content_type_matches(declared_content_type, extension):
            _log.warning(
                f"MIME type mismatch: ContentType={declared_content_type}, Extension={extension}"
            )
            return ValidationOutcome.invalid("File content does not match extension")

        try:
            marker = find_malicious_marker(read_sample(content_sample))
        except ContentScanError as e:
            # Unreadable content is treated as malicious
            _log.error(f"Error scanning file content for malicious patterns: {e}")
            return ValidationOutcome.invalid("File contains potentially malicious content")

        if marker is not None:
            _log.warning(f"Malicious content detected in uploaded file: {file_name!r} ({marker})")
            return ValidationOutcome.invalid("File contains potentially malicious content")

        return ValidationOutcome.valid(UploadAcceptance(
            sanitized_file_name=sanitized,
            size_bytes=size_bytes,
            content_type=declared_content_type,
        ))
