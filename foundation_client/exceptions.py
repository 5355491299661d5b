"""
Foundation client exceptions.

Two families of errors reach callers:
- InvalidInputError: the caller's arguments are malformed or contradictory.
  Raised before any request is sent and never retried.
- TransportError: the appliance could not be reached, timed out, answered
  with a non-2xx status, or returned a body that could not be decoded.
  Propagated unchanged; the client performs no retries.
"""

from typing import Optional


class FoundationError(Exception):
    """Base exception for Foundation client errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(FoundationError):
    """Malformed or contradictory caller arguments."""
    pass


class InvalidOptionCombination(InvalidInputError):
    """Discovery filter and fetch options that cannot be used together."""
    pass


class TransportError(FoundationError):
    """Request to the Foundation appliance failed."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        path: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.method = method
        self.path = path
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message
