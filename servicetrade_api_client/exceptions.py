"""
Custom exception types for the ServiceTrade API client.

These exceptions allow callers to distinguish between bad arguments,
missing sessions, failures reported by the API and failures that
occurred before a usable response was received.  Public operations
other than :meth:`SessionManager.login` argument checking convert
them into result dictionaries via :meth:`ServiceTradeError.to_result`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ServiceTradeError(Exception):
    """Base exception for all ServiceTrade client errors."""

    def to_result(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": type(self).__name__,
            "message": str(self),
        }


class ValidationError(ServiceTradeError, ValueError):
    """Raised when arguments are rejected before any request is made."""


class AuthRequiredError(ServiceTradeError):
    """Raised when an operation needs a session and none is stored."""

    def __init__(self, message: str = "Not authenticated. Please log in first.") -> None:
        super().__init__(message)


class RemoteCallFailure(ServiceTradeError):
    """Raised when the ServiceTrade API answers with an unexpected status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def to_result(self) -> Dict[str, Any]:
        result = super().to_result()
        if self.status_code is not None:
            result["status_code"] = self.status_code
        return result


class TransportException(ServiceTradeError):
    """Raised when a request could not be sent or its body could not be parsed."""


class CredentialStoreError(ServiceTradeError):
    """Raised when persisted session state cannot be read."""
