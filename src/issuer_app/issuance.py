"""Issuance request documents for the Verified ID Request Service."""

from __future__ import annotations

import base64
import secrets
import uuid
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from issuer_app.config import IssuerSettings
from verified_id_common.graph import DEFAULT_JOB_TITLE, DEFAULT_LANGUAGE, UserProfile

CALLBACK_PATH = "/api/request-callback"
DEFAULT_CLIENT_NAME = "Microsoft Entra Verified ID"

FALLBACK_GIVEN_NAME = "Employee"
FALLBACK_SURNAME = "User"
FALLBACK_MAIL = "user@company.com"


@dataclass(frozen=True, slots=True)
class IssuancePin:
    """Numeric PIN the holder types into the wallet to accept the credential."""

    value: str
    length: int

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "length": self.length}


def generate_pin(length: int) -> IssuancePin | None:
    """Random ``length``-digit PIN without a leading zero, or ``None`` when disabled."""
    if length <= 0:
        return None
    low = 10 ** (length - 1)
    high = 10**length - 1
    value = low + secrets.randbelow(high - low + 1)
    return IssuancePin(value=str(value), length=length)


def encode_photo(photo: bytes) -> str:
    """Base64 the photo and percent-encode the result for use as a claim."""
    return quote(base64.b64encode(photo).decode("ascii"), safe="")


def build_claims(profile: UserProfile, revocation_id: str | None = None) -> dict[str, Any]:
    given_name = profile.given_name or FALLBACK_GIVEN_NAME
    surname = profile.surname or FALLBACK_SURNAME
    mail = profile.mail or FALLBACK_MAIL
    return {
        "displayName": profile.display_name or f"{given_name} {surname}",
        "givenName": given_name,
        "surname": surname,
        "mail": mail,
        "jobTitle": profile.job_title or DEFAULT_JOB_TITLE,
        "preferredLanguage": profile.preferred_language or DEFAULT_LANGUAGE,
        "userPrincipalName": profile.user_principal_name or mail,
        "revocationId": revocation_id or str(uuid.uuid4()),
        "photo": profile.photo,
    }


def build_issuance_request(
    settings: IssuerSettings,
    profile: UserProfile,
    request_id: str,
    pin: IssuancePin | None = None,
) -> dict[str, Any]:
    """Assemble the ``createIssuanceRequest`` document.

    Args:
        settings: Issuer configuration (authority, credential type and manifest)
        profile: Claims source for the credential subject
        request_id: Correlation id echoed back in the callback ``state``
        pin: Optional PIN the wallet must present
    """
    document: dict[str, Any] = {
        "includeQRCode": True,
        "callback": {
            "url": settings.callback_url(CALLBACK_PATH),
            "state": request_id,
            "headers": {"api-key": settings.callback_api_key},
        },
        "authority": settings.did_authority,
        "registration": {"clientName": settings.client_name or DEFAULT_CLIENT_NAME},
        "type": settings.credential_type,
        "manifest": settings.credential_manifest,
        "claims": build_claims(profile),
    }
    if pin is not None:
        document["pin"] = pin.to_dict()
    return document
