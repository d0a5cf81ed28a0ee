"""
Sliding-window rate limiter.

Tracks request timestamps per (caller, operation) key. Each key has its own
lock, so contention on one caller never blocks another; the registry lock is
only held long enough to look a key up or create it.
"""

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Tuple, Union

from bastion.shared.gate import GateLogger

from .models import OperationKind, RateKey

_log = GateLogger.get("RateGate")

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_MINUTES = 15


class RateLimiter:
    """
    Admits at most ``max_requests`` per key in any trailing window.

    Construct one per process and hand it to whatever needs it; tests get
    isolation by building a fresh instance.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_minutes: float = DEFAULT_WINDOW_MINUTES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_minutes <= 0:
            raise ValueError("window_minutes must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_minutes * 60.0
        self._clock = clock
        self._windows: Dict[RateKey, Deque[float]] = {}
        self._locks: Dict[RateKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @staticmethod
    def _key(caller_id: str, operation: Union[OperationKind, str]) -> RateKey:
        return RateKey(caller_id or "unknown", OperationKind(operation))

    def _slot(self, key: RateKey) -> Tuple[threading.Lock, Deque[float]]:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
                self._windows[key] = deque()
            return lock, self._windows[key]

    def _prune(self, window: Deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while window and window[0] < cutoff:
            window.popleft()

    def permit(self, caller_id: str, operation: Union[OperationKind, str]) -> bool:
        """
        Record an attempt if the caller is under the cap.

        Args:
            caller_id: Rate-limit identity (client address)
            operation: Operation being attempted

        Returns:
            True if admitted (and recorded), False if the cap is reached
        """
        key = self._key(caller_id, operation)

        while True:
            lock, window = self._slot(key)
            with lock:
                # sweep() may have retired this slot between lookup and lock
                if self._locks.get(key) is not lock:
                    continue

                now = self._clock()
                self._prune(window, now)

                if len(window) >= self.max_requests:
                    _log.warning(f"Rate limit exceeded for client {key.caller_id}, operation {key.operation.value}")
                    return False

                window.append(now)
                return True

    def remaining(self, caller_id: str, operation: Union[OperationKind, str]) -> int:
        """Number of requests the key may still make in the current window."""
        key = self._key(caller_id, operation)
        lock, window = self._slot(key)
        with lock:
            self._prune(window, self._clock())
            return max(0, self.max_requests - len(window))

    def sweep(self) -> int:
        """
        Drop keys whose windows are empty after pruning.

        Returns:
            Number of keys removed
        """
        removed = 0
        now = self._clock()
        with self._registry_lock:
            for key in list(self._locks):
                lock = self._locks[key]
                # Busy keys are in use, so they are not idle
                if not lock.acquire(blocking=False):
                    continue
                try:
                    window = self._windows[key]
                    self._prune(window, now)
                    if not window:
                        del self._locks[key]
                        del self._windows[key]
                        removed += 1
                finally:
                    lock.release()

        if removed:
            _log.debug(f"Swept {removed} idle rate-limit windows")
        return removed

    def reset(self) -> None:
        """Forget all recorded attempts."""
        with self._registry_lock:
            self._locks.clear()
            self._windows.clear()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._windows)
