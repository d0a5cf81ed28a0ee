"""
Tests for FileSystemGate: the gateway facade and the file store.
"""

import errno
import os
import pytest
from pathlib import Path

from bastion.shared.errors import (
    AccessDeniedError,
    InternalError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from bastion.GuardGate import GatewayConfig, ResolvedPath
from bastion.RateGate import RateLimiter
from bastion.FileSystemGate import FileGateway, FileStore
from bastion.FileSystemGate.operations import translate_os_errors

CALLER = "203.0.113.7"


def resolved(path: Path, root: Path) -> ResolvedPath:
    return ResolvedPath(str(path), str(root))


class TestListDirectory:
    """Tests for directory listings."""

    def test_list_root_by_default(self, gateway, sample_root):
        """No path lists the root, directories first, then by name."""
        result = gateway.list_directory(CALLER)

        assert result.directory_path == str(sample_root)
        assert [e.name for e in result.entries] == [
            "archive", "subfolder", "Data.json", "readme.txt",
        ]

    def test_entry_details(self, gateway, sample_root):
        result = gateway.list_directory(CALLER, str(sample_root))
        readme = next(e for e in result.entries if e.name == "readme.txt")
        folder = next(e for e in result.entries if e.name == "subfolder")

        assert readme.size_bytes == len("Hello World")
        assert readme.is_directory is False
        assert readme.absolute_path == str(sample_root / "readme.txt")
        assert folder.is_directory is True
        assert folder.size_bytes == 0

    def test_list_relative_path(self, gateway, sample_root):
        result = gateway.list_directory(CALLER, "subfolder")

        assert [e.name for e in result.entries] == ["nested.txt"]

    def test_missing_directory(self, gateway, sample_root):
        missing = sample_root / "missing"

        with pytest.raises(NotFoundError) as exc_info:
            gateway.list_directory(CALLER, str(missing))

        assert exc_info.value.message == f"Directory '{missing}' does not exist"

    def test_file_is_not_a_directory(self, gateway, sample_root):
        with pytest.raises(ValidationError, match="Path is not a directory"):
            gateway.list_directory(CALLER, str(sample_root / "readme.txt"))

    def test_outside_root_denied(self, gateway, temp_dir):
        with pytest.raises(AccessDeniedError) as exc_info:
            gateway.list_directory(CALLER, str(temp_dir))

        assert exc_info.value.status_code == 403

    def test_traversal_is_validation_error(self, gateway):
        with pytest.raises(ValidationError, match="path traversal detected"):
            gateway.list_directory(CALLER, "../etc")

    def test_to_dict(self, gateway, sample_root):
        data = gateway.list_directory(CALLER).to_dict()

        assert data["directory_path"] == str(sample_root)
        assert {f["name"] for f in data["files"]} >= {"readme.txt", "subfolder"}
        assert "last_modified" in data["files"][0]


class TestSearch:
    """Tests for the search operation."""

    def test_search_root(self, gateway):
        result = gateway.search(CALLER, None, "nested")

        assert [e.name for e in result.entries] == [os.path.join("subfolder", "nested.txt")]

    def test_term_checked_before_path(self, gateway):
        """A bad term is reported even when the path is also bad."""
        with pytest.raises(ValidationError, match="Search term cannot be empty"):
            gateway.search(CALLER, "../etc", "")

    def test_missing_directory(self, gateway, sample_root):
        with pytest.raises(NotFoundError):
            gateway.search(CALLER, str(sample_root / "missing"), "x")

    def test_max_results_clamped(self, gateway):
        result = gateway.search(CALLER, None, "t", max_results=0)

        assert len(result.entries) == 1
        assert result.truncated is True

    def test_subdirectories_excluded(self, gateway):
        result = gateway.search(CALLER, None, "nested", include_subdirectories=False)

        assert result.entries == []


class TestDownload:
    """Tests for downloads."""

    def test_download(self, gateway, sample_root):
        content, name = gateway.download(CALLER, str(sample_root / "readme.txt"))

        assert content == b"Hello World"
        assert name == "readme.txt"

    def test_missing_file(self, gateway, sample_root):
        with pytest.raises(NotFoundError, match="File not found"):
            gateway.download(CALLER, str(sample_root / "nope.txt"))

    def test_directory_not_downloadable(self, gateway, sample_root):
        with pytest.raises(NotFoundError):
            gateway.download(CALLER, str(sample_root / "subfolder"))

    def test_path_required(self, gateway):
        with pytest.raises(ValidationError, match="Path cannot be empty"):
            gateway.download(CALLER, None)


class TestUpload:
    """Tests for uploads."""

    def test_upload_writes_sanitized_name(self, gateway, sample_root):
        accepted = gateway.upload(
            CALLER, str(sample_root / "archive"), "my<notes>.txt", "text/plain", b"hello"
        )

        assert accepted.sanitized_file_name == "my_notes_.txt"
        assert (sample_root / "archive" / "my_notes_.txt").read_bytes() == b"hello"

    def test_upload_replaces_existing(self, gateway, sample_root):
        gateway.upload(CALLER, str(sample_root), "readme.txt", "text/plain", b"new")

        assert (sample_root / "readme.txt").read_bytes() == b"new"

    def test_dangerous_upload_not_written(self, gateway, sample_root):
        with pytest.raises(ValidationError, match="not allowed for security reasons"):
            gateway.upload(CALLER, str(sample_root), "run.sh", "text/plain", b"echo hi")

        assert not (sample_root / "run.sh").exists()

    def test_upload_screened_before_path(self, gateway):
        """Upload checks run before the destination is resolved."""
        with pytest.raises(ValidationError, match="No file provided"):
            gateway.upload(CALLER, "../etc", "a.txt", "text/plain", b"")

    def test_missing_directory(self, gateway, sample_root):
        with pytest.raises(NotFoundError):
            gateway.upload(CALLER, str(sample_root / "missing"), "a.txt", "text/plain", b"x")

    def test_outside_root(self, gateway, temp_dir):
        with pytest.raises(AccessDeniedError):
            gateway.upload(CALLER, str(temp_dir), "a.txt", "text/plain", b"x")

        assert not (temp_dir / "a.txt").exists()

    def test_case_variant_directory_written_under_root(self, gateway, sample_root, temp_dir):
        gateway.upload(CALLER, str(temp_dir / "ROOT" / "archive"), "a.txt", "text/plain", b"x")

        assert (sample_root / "archive" / "a.txt").read_bytes() == b"x"
        assert sorted(os.listdir(temp_dir)) == ["root"]


class TestCopy:
    """Tests for copying."""

    def test_copy_creates_destination_directory(self, gateway, sample_root):
        """Copying into a missing directory creates it, and it then lists the copy."""
        source = sample_root / "a.txt"
        source.write_text("alpha")

        destination = gateway.copy(CALLER, str(source), str(sample_root / "sub" / "a.txt"))

        assert destination == str(sample_root / "sub" / "a.txt")
        listing = gateway.list_directory(CALLER, str(sample_root / "sub"))
        assert [e.name for e in listing.entries] == ["a.txt"]
        assert source.exists()

    def test_copy_overwrites(self, gateway, sample_root):
        gateway.copy(CALLER, str(sample_root / "readme.txt"), str(sample_root / "Data.json"))

        assert (sample_root / "Data.json").read_text() == "Hello World"

    def test_missing_source(self, gateway, sample_root):
        with pytest.raises(NotFoundError, match="Source file not found"):
            gateway.copy(CALLER, str(sample_root / "nope"), str(sample_root / "b"))

    def test_source_directory(self, gateway, sample_root):
        with pytest.raises(ValidationError, match="Source is not a file"):
            gateway.copy(CALLER, str(sample_root / "subfolder"), str(sample_root / "b"))

    def test_destination_directory(self, gateway, sample_root):
        with pytest.raises(ValidationError, match="Destination is a directory"):
            gateway.copy(CALLER, str(sample_root / "readme.txt"), str(sample_root / "archive"))

    def test_destination_outside_root(self, gateway, sample_root, temp_dir):
        with pytest.raises(AccessDeniedError) as exc_info:
            gateway.copy(CALLER, str(sample_root / "readme.txt"), str(temp_dir / "x.txt"))

        assert exc_info.value.message.startswith("Destination path error: Access denied")

    def test_case_variant_of_root_stays_inside(self, gateway, sample_root, temp_dir):
        """A differently cased root is written under the real root, never beside it."""
        destination = gateway.copy(
            CALLER, str(sample_root / "readme.txt"), str(temp_dir / "ROOT" / "loot.txt")
        )

        assert destination == str(sample_root / "loot.txt")
        assert (sample_root / "loot.txt").read_text() == "Hello World"
        assert sorted(os.listdir(temp_dir)) == ["root"]

    def test_source_traversal(self, gateway, sample_root):
        with pytest.raises(ValidationError) as exc_info:
            gateway.copy(CALLER, "../secret", str(sample_root / "x.txt"))

        assert exc_info.value.message == "Source path error: Invalid path: path traversal detected"


class TestMove:
    """Tests for moving."""

    def test_move_into_directory_keeps_name(self, gateway, sample_root):
        destination = gateway.move(
            CALLER, str(sample_root / "readme.txt"), str(sample_root / "archive")
        )

        assert destination == str(sample_root / "archive" / "readme.txt")
        assert (sample_root / "archive" / "readme.txt").read_text() == "Hello World"
        assert not (sample_root / "readme.txt").exists()

    def test_move_creates_parents(self, gateway, sample_root):
        target = sample_root / "x" / "y" / "renamed.txt"

        gateway.move(CALLER, str(sample_root / "readme.txt"), str(target))

        assert target.read_text() == "Hello World"

    def test_move_missing_source(self, gateway, sample_root):
        with pytest.raises(NotFoundError):
            gateway.move(CALLER, str(sample_root / "nope"), str(sample_root / "archive"))

    def test_joined_destination_length_checked(self, sample_root):
        (sample_root / "a").write_text("short")
        config = GatewayConfig(
            allowed_root=str(sample_root), max_path_length=len(str(sample_root)) + 9
        )
        gateway = FileGateway(config, rate_limiter=RateLimiter(max_requests=100))

        with pytest.raises(ValidationError) as exc_info:
            gateway.move(CALLER, str(sample_root / "a"), str(sample_root / "archive"))

        assert str(exc_info.value) == (
            f"Destination path error: Path too long (max {config.max_path_length} characters)"
        )
        assert (sample_root / "a").exists()
        assert os.listdir(sample_root / "archive") == []

    def test_joined_destination_is_directory(self, gateway, sample_root):
        (sample_root / "archive" / "readme.txt").mkdir()

        with pytest.raises(ValidationError):
            gateway.move(CALLER, str(sample_root / "readme.txt"), str(sample_root / "archive"))

        assert (sample_root / "readme.txt").exists()

    def test_case_variant_of_root_stays_inside(self, gateway, sample_root, temp_dir):
        destination = gateway.move(
            CALLER, str(sample_root / "readme.txt"), str(temp_dir / "Root" / "moved.txt")
        )

        assert destination == str(sample_root / "moved.txt")
        assert sorted(os.listdir(temp_dir)) == ["root"]


class TestRateLimiting:
    """Tests for throttling at the gateway."""

    def test_rate_limited_after_cap(self, gateway_config):
        gateway = FileGateway(gateway_config, rate_limiter=RateLimiter(max_requests=2))

        gateway.list_directory(CALLER)
        gateway.list_directory(CALLER)

        with pytest.raises(RateLimitedError) as exc_info:
            gateway.list_directory(CALLER)
        assert exc_info.value.status_code == 429

    def test_rate_check_runs_first(self, gateway_config):
        """A throttled caller is refused before any validation."""
        gateway = FileGateway(gateway_config, rate_limiter=RateLimiter(max_requests=1))
        gateway.download(CALLER, str(Path(gateway_config.allowed_root) / "readme.txt"))

        with pytest.raises(RateLimitedError):
            gateway.download(CALLER, "../etc/passwd")

    def test_enforcement_can_be_skipped(self, gateway_config):
        gateway = FileGateway(gateway_config, rate_limiter=RateLimiter(max_requests=1))

        for _ in range(3):
            gateway.list_directory(CALLER, enforce_rate_limit=False)

    def test_default_limiter_from_config(self, sample_root):
        gateway = FileGateway(GatewayConfig(allowed_root=str(sample_root), max_requests_per_window=9))

        assert gateway.rate_limiter.max_requests == 9


class TestHealth:
    """Tests for health reporting."""

    def test_healthy(self, gateway, sample_root):
        status = gateway.get_health_status()

        assert gateway.is_healthy() is True
        assert status["gate"] == "FileSystemGate"
        assert status["healthy"] is True
        assert status["details"]["root"] == str(sample_root)

    def test_missing_root_unhealthy(self, temp_dir):
        gateway = FileGateway(GatewayConfig(allowed_root=str(temp_dir / "gone")))

        assert gateway.is_healthy() is False
        assert gateway.get_health_status()["checks"]["root_exists"] is False

    def test_default_path(self, gateway, sample_root):
        assert gateway.default_path() == str(sample_root)


class TestFileStore:
    """Tests for FileStore error mapping."""

    def test_write_requires_directory(self, sample_root):
        with pytest.raises(NotFoundError):
            FileStore().write(resolved(sample_root / "missing", sample_root), "a.txt", b"x")

    def test_permission_error_maps_to_access_denied(self):
        with pytest.raises(AccessDeniedError, match="Access denied"):
            with translate_os_errors("read", "/x"):
                raise PermissionError(errno.EACCES, "denied")

    def test_missing_maps_to_not_found(self):
        with pytest.raises(NotFoundError, match="Path not found"):
            with translate_os_errors("read", "/x"):
                raise FileNotFoundError(errno.ENOENT, "gone")

    def test_other_os_error_is_internal(self):
        with pytest.raises(InternalError) as exc_info:
            with translate_os_errors("read", "/x"):
                raise OSError(errno.EIO, "I/O error")

        assert exc_info.value.message == "Internal server error"
        assert "I/O error" in exc_info.value.detail
