"""
Logging filters for typed_graphql.
"""

import logging
import re
from typing import List, Pattern, Tuple


class SensitiveDataFilter(logging.Filter):
    """
    Filter to mask credentials in log messages.

    Endpoint URLs, header dumps and error bodies end up in log messages, so
    tokens, authorization values and URL credentials are masked before the
    record reaches a handler.
    """

    def __init__(self) -> None:
        """Initialize sensitive data filter."""
        super().__init__()

        self.rules: List[Tuple[Pattern[str], str]] = [
            # Bearer tokens
            (re.compile(r"(bearer\s+)([A-Za-z0-9\-._~+/]+=*)", re.IGNORECASE), r"\1***MASKED***"),
            # Authorization and API key headers or fields
            (
                re.compile(
                    r"""((?:authorization|x-api-key|api[_-]?key|token|secret)['"]?\s*[:=]\s*['"]?)"""
                    r"""([^\s'",}]+)""",
                    re.IGNORECASE,
                ),
                r"\1***MASKED***",
            ),
            # Passwords in variables or payloads
            (
                re.compile(r"""((?:password|passwd|pwd)['"]?\s*[:=]\s*['"]?)([^\s'",}]+)""", re.IGNORECASE),
                r"\1***MASKED***",
            ),
            # URLs with credentials
            (re.compile(r"((?:https?|wss?)://[^:/@\s]+):([^@\s]+)@", re.IGNORECASE), r"\1:***MASKED***@"),
        ]

    def mask(self, message: str) -> str:
        """Apply all masking rules to a message."""
        for pattern, replacement in self.rules:
            message = pattern.sub(replacement, message)
        return message

    def filter(self, record: logging.LogRecord) -> bool:
        """Mask the record's message in place. Never drops records."""
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Message and args do not match; leave the record for the handler to report
            return True
        record.msg = self.mask(message)
        record.args = ()
        return True
