"""
Verified ID Common package - shared library for the issue and verify services.

This package contains the request tracker and the configuration, logging,
identity and outbound client code used by both services.
"""

__version__ = "0.1.0"

from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    FallbackExhaustedError,
    ProfileLookupError,
    TokenAcquisitionError,
    UpstreamServiceError,
    VerifiedIdError,
)

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "FallbackExhaustedError",
    "ProfileLookupError",
    "TokenAcquisitionError",
    "UpstreamServiceError",
    "VerifiedIdError",
]
