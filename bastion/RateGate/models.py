"""
RateGate models.
"""

from enum import Enum
from typing import NamedTuple


class OperationKind(str, Enum):
    """Operations that are rate limited independently."""
    LIST = "list"
    SEARCH = "search"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    COPY = "copy"
    MOVE = "move"


class RateKey(NamedTuple):
    """Identifies one sliding window."""
    caller_id: str
    operation: OperationKind

    def __str__(self) -> str:
        return f"{self.caller_id}:{self.operation.value}"
