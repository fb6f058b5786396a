"""Exception types raised by the citation parser.

Every error is fatal for the call that raised it. Messages carry the
offending line, token or feature name so a failure can be reproduced without
re-running the upstream stages.
"""
from __future__ import annotations


class CiteParseError(Exception):
    """Base class for all citation parser failures."""


class ConfigurationError(CiteParseError, ValueError):
    """Raised for missing or inconsistent feature configuration and unknown labels."""


class AlignmentError(CiteParseError):
    """Raised when a tagged reference cannot be aligned with its tokens.

    Attributes:
        line: The tagged reference line that failed, when known.
        line_number: One-based position of the line in its corpus file, when known.
    """

    def __init__(self, message: str, line: str | None = None, line_number: int | None = None):
        super().__init__(message)
        self.line = line
        self.line_number = line_number


class AdapterError(CiteParseError, RuntimeError):
    """Raised when the sequence-labeling engine rejects input or fails to run."""
