"""
Exception classes for the checkindex system.

All exceptions inherit from CheckIndexError and carry a machine-readable
code, a human-readable message and optional structured details.
"""

from typing import Optional


class CheckIndexError(Exception):
    """Base exception for all checkindex errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(CheckIndexError):
    """Raised when a required setting (e.g. API credentials) is missing."""

    pass


class NetworkError(CheckIndexError):
    """Raised when a network operation fails (timeout, connection refused)."""

    pass


class SearchAPIError(CheckIndexError):
    """Raised when the search API answers with an error status or error payload."""

    pass


class RateLimitError(CheckIndexError):
    """Raised when a client exceeds its request budget."""

    pass


class PersistenceError(CheckIndexError):
    """Raised when the durable cache cannot be opened or written."""

    pass
