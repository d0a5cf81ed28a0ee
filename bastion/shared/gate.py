"""
Shared Gate utilities for Bastion.

- GateLogger: one ``bastion.<gate>`` logger per gate, sharing a single handler
- ValidationOutcome: tagged valid/invalid result returned by every guard
- build_health_status: the health dict each gate reports
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

LOGGER_ROOT = "bastion"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


# =============================================================================
# GateLogger
# =============================================================================


class GateLogger:
    """
    Namespaced loggers for the gates.

    The first call attaches a stream handler to the ``bastion`` logger unless
    the host application already gave it one.
    """

    _handler: Optional[logging.Handler] = None

    @classmethod
    def _install_handler(cls) -> logging.Logger:
        root = logging.getLogger(LOGGER_ROOT)
        if cls._handler is None and not root.handlers:
            cls._handler = logging.StreamHandler()
            cls._handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(cls._handler)
            root.setLevel(logging.INFO)
        return root

    @staticmethod
    def _as_level(level: Union[int, str]) -> int:
        if isinstance(level, int):
            return level
        resolved = logging.getLevelName(str(level).strip().upper())
        return resolved if isinstance(resolved, int) else logging.INFO

    @classmethod
    def get(cls, gate_name: str) -> logging.Logger:
        """
        Logger for one gate, e.g. ``GateLogger.get("PathGuard")``.

        Args:
            gate_name: Gate or component name, appended to ``bastion.``
        """
        cls._install_handler()
        return logging.getLogger(f"{LOGGER_ROOT}.{gate_name}")

    @classmethod
    def set_level(cls, level: Union[int, str], gate_name: Optional[str] = None) -> None:
        """
        Change the level of one gate's logger, or of all of them.

        Level names are case-insensitive; unknown names mean INFO.
        """
        target = cls.get(gate_name) if gate_name else cls._install_handler()
        target.setLevel(cls._as_level(level))


# =============================================================================
# ValidationOutcome
# =============================================================================


T = TypeVar("T")


@dataclass(frozen=True)
class ValidationOutcome(Generic[T]):
    """
    Result of validating untrusted input.

    A valid outcome carries the sanitized value; an invalid one carries a
    reason that is safe to show the caller. Guards return this instead of
    raising since rejected input is an expected result.
    """

    is_valid: bool
    value: Optional[T] = None
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.is_valid

    def to_tuple(self) -> tuple[bool, Optional[T], Optional[str]]:
        """(is_valid, value, reason)"""
        return (self.is_valid, self.value, self.reason)

    @classmethod
    def valid(cls, value: T) -> "ValidationOutcome[T]":
        return cls(is_valid=True, value=value)

    @classmethod
    def invalid(cls, reason: str) -> "ValidationOutcome[T]":
        return cls(is_valid=False, reason=reason)


# =============================================================================
# Health status
# =============================================================================


def build_health_status(
    gate_name: str,
    initialized: bool,
    dependencies: List[str],
    checks: Dict[str, bool],
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Assemble a gate's health report.

    A gate is healthy when it is initialized and none of its checks failed;
    the names of failed checks are listed under ``failed_checks``.
    """
    failed = sorted(name for name, passed in checks.items() if not passed)

    return {
        "gate": gate_name,
        "healthy": bool(initialized) and not failed,
        "initialized": initialized,
        "dependencies": list(dependencies),
        "checks": dict(checks),
        "failed_checks": failed,
        "details": dict(details or {}),
    }
