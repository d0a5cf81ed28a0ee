"""
Shared fixtures for the Bastion test suite.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import bastion.Config as Config
from bastion.GuardGate import GatewayConfig
from bastion.RateGate import RateLimiter
from bastion.FileSystemGate import FileGateway


class FakeClock:
    """Manually advanced monotonic clock.

    ``step`` is added after every reading, which makes time pass on its own
    for code that polls the clock in a loop.
    """

    def __init__(self, start: float = 0.0, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Scratch directory; the sample tree lives under ``temp_dir / "root"``."""
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_root(temp_dir: Path) -> Path:
    """Create a root directory with a few files and folders."""
    root = temp_dir / "root"
    root.mkdir(parents=True, exist_ok=True)

    (root / "readme.txt").write_text("Hello World")
    (root / "Data.json").write_text('{"key": "value"}')

    subfolder = root / "subfolder"
    subfolder.mkdir()
    (subfolder / "nested.txt").write_text("Nested content")

    (root / "archive").mkdir()

    return root


@pytest.fixture
def gateway_config(sample_root: Path) -> GatewayConfig:
    """Gateway configuration rooted at ``sample_root`` with a generous rate cap."""
    return GatewayConfig(allowed_root=str(sample_root), max_requests_per_window=1000)


@pytest.fixture
def rate_limiter(gateway_config: GatewayConfig) -> RateLimiter:
    """A fresh limiter per test."""
    return RateLimiter(
        max_requests=gateway_config.max_requests_per_window,
        window_minutes=gateway_config.rate_limit_window_minutes,
    )


@pytest.fixture
def gateway(gateway_config: GatewayConfig, rate_limiter: RateLimiter) -> FileGateway:
    return FileGateway(gateway_config, rate_limiter=rate_limiter)


@pytest.fixture(autouse=True)
def reset_module_state():
    """Drop the process-wide config manager after each test."""
    yield
    Config._manager = None
