"""
Custom exceptions for the Verified ID services.
"""

from __future__ import annotations

from typing import Any

from fastapi import status


class VerifiedIdError(Exception):
    """Base exception class for the Verified ID services."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = (
            status_code if status_code is not None else status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class ConfigurationError(VerifiedIdError):
    """Exception raised when required settings are missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class AuthenticationError(VerifiedIdError):
    """Exception raised when a protected route is called without an identity."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class TokenAcquisitionError(VerifiedIdError):
    """Exception raised when an access token cannot be obtained."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to acquire access token: {reason}")
        self.reason = reason


class UpstreamServiceError(VerifiedIdError):
    """Exception raised when the Verified ID Request Service rejects a call."""

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body


class ProfileLookupError(VerifiedIdError):
    """Exception raised when a directory profile or photo cannot be read."""

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)
        self.upstream_status = upstream_status


class FallbackExhaustedError(VerifiedIdError):
    """Raised when every provider in a fallback chain failed."""

    def __init__(self, label: str) -> None:
        super().__init__(f"No provider succeeded for {label}")
        self.label = label


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "FallbackExhaustedError",
    "ProfileLookupError",
    "TokenAcquisitionError",
    "UpstreamServiceError",
    "VerifiedIdError",
]
