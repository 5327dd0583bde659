"""App Service Authentication ("Easy Auth") principal parsing.

App Service injects the signed-in user as a base64-encoded JSON document in
the ``x-ms-client-principal`` header. The services trust the header as-is.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Request

from verified_id_common.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

CLIENT_PRINCIPAL_HEADER = "x-ms-client-principal"

_CLAIMS_NS = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims"
EMAIL_CLAIMS = (f"{_CLAIMS_NS}/emailaddress", "email", "preferred_username")
GIVEN_NAME_CLAIMS = (f"{_CLAIMS_NS}/givenname", "given_name")
SURNAME_CLAIMS = (f"{_CLAIMS_NS}/surname", "family_name")
UPN_CLAIMS = (f"{_CLAIMS_NS}/name", "upn")


@dataclass(frozen=True)
class EasyAuthUser:
    """Identity resolved from the client principal header."""

    user_id: str | None
    user_details: str | None
    identity_provider: str | None
    name: str | None
    email: str | None
    given_name: str | None
    surname: str | None
    user_principal_name: str | None
    is_authenticated: bool = True

    @property
    def lookup_name(self) -> str | None:
        """Principal name used for directory lookups."""
        return self.user_principal_name or self.email or self.user_details


def _find_claim(claims: list[dict[str, Any]], *claim_types: str) -> str | None:
    for claim_type in claim_types:
        for claim in claims:
            if claim.get("typ") == claim_type:
                return claim.get("val")
    return None


def decode_client_principal(header_value: str) -> dict[str, Any]:
    """Decode the base64 JSON payload of the client principal header."""
    decoded = base64.b64decode(header_value, validate=False)
    principal = json.loads(decoded.decode("utf-8"))
    if not isinstance(principal, dict):
        msg = "client principal is not a JSON object"
        raise ValueError(msg)
    return principal


def parse_client_principal(header_value: str | None) -> EasyAuthUser | None:
    """Build an :class:`EasyAuthUser` from the raw header.

    Returns ``None`` when the header is absent or cannot be decoded.
    """
    if not header_value:
        return None

    try:
        principal = decode_client_principal(header_value)
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        logger.error("Error parsing Easy Auth header: %s", exc)
        return None

    claims = principal.get("claims") or []
    user_details = principal.get("userDetails")
    identity_provider = principal.get("identityProvider") or principal.get("auth_typ")

    user = EasyAuthUser(
        user_id=principal.get("userId"),
        user_details=user_details,
        identity_provider=identity_provider,
        name=_find_claim(claims, "name") or user_details,
        email=_find_claim(claims, *EMAIL_CLAIMS) or user_details,
        given_name=_find_claim(claims, *GIVEN_NAME_CLAIMS),
        surname=_find_claim(claims, *SURNAME_CLAIMS),
        user_principal_name=_find_claim(claims, *UPN_CLAIMS) or user_details,
    )
    logger.info(
        "Easy Auth user detected: user_id=%s provider=%s", user.user_id, user.identity_provider
    )
    return user


def require_easy_auth(request: Request) -> EasyAuthUser:
    """FastAPI dependency that rejects requests without a client principal."""
    user = parse_client_principal(request.headers.get(CLIENT_PRINCIPAL_HEADER))
    if user is None:
        raise AuthenticationError()
    return user


__all__ = [
    "CLIENT_PRINCIPAL_HEADER",
    "EasyAuthUser",
    "decode_client_principal",
    "parse_client_principal",
    "require_easy_auth",
]
