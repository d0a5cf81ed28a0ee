"""
GuardGate search term security.
"""

import html
import re
from typing import Optional

from bastion.shared.gate import GateLogger, ValidationOutcome

from .models import GatewayConfig

_log = GateLogger.get("TermGuard")

DEFAULT_MAX_TERM_LENGTH = 100

# Shell and path metacharacters
DANGEROUS_PATTERNS = ("..", "~", "$", "%", "&", "*", "|", "<", ">", "?", ":", '"', "\\", "/")

# Letters, digits, whitespace, hyphen, underscore, dot
SAFE_SEARCH_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-_.]+$")


class TermGuard:
    """Validates free-text search terms."""

    def __init__(self, max_length: int = DEFAULT_MAX_TERM_LENGTH):
        self.max_length = max_length

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "TermGuard":
        return cls(config.max_search_term_length)

    def validate(self, term: Optional[str]) -> ValidationOutcome[str]:
        """
        Validate a search term.

        Returns:
            ValidationOutcome carrying the HTML-escaped term, or the rejection reason
        """
        if term is None or not term.strip():
            return ValidationOutcome.invalid("Search term cannot be empty")

        trimmed = term.strip()

        if len(trimmed) > self.max_length:
            return ValidationOutcome.invalid(
                f"Search term too long (max {self.max_length} characters)"
            )

        if any(pattern in trimmed for pattern in DANGEROUS_PATTERNS):
            _log.warning(f"Dangerous pattern in search term: {term!r}")
            return ValidationOutcome.invalid("Search term contains invalid characters")

        if not SAFE_SEARCH_PATTERN.match(trimmed):
            _log.warning(f"Invalid characters in search term: {term!r}")
            return ValidationOutcome.invalid("Search term contains invalid characters")

        # Escaped in case the term is echoed into HTML
        return ValidationOutcome.valid(html.escape(trimmed))
