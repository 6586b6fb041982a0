"""Exception types raised by sciref."""

from __future__ import annotations


class SciRefError(Exception):
    """Base class for sciref failures."""


class ValidationError(SciRefError, ValueError):
    """Raised when a selection cannot start a search."""


class MalformedPayload(SciRefError):
    """Raised when provider text holds no recoverable JSON array.

    The offending text is kept on ``raw`` for diagnostics.
    """

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class ProviderError(SciRefError):
    """Raised when the upstream provider cannot be reached or returns nothing."""
