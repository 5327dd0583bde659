"""Presentation request documents and verification callback results."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from verified_id_common.tracker import PRESENTATION_VERIFIED
from verifier_app.config import VerifierSettings

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/verification-callback"
DEFAULT_CLIENT_NAME = "Microsoft Entra Verified ID Verifier"

FACE_CHECK_PHOTO_CLAIM = "photo"
FACE_CHECK_CONFIDENCE_THRESHOLD = 70


def build_presentation_request(
    settings: VerifierSettings,
    request_id: str,
    include_face_check: bool = False,
) -> dict[str, Any]:
    """Assemble the ``createPresentationRequest`` document.

    Only credentials of the configured type issued by the configured authority
    are accepted; revoked credentials are rejected and the issuer's linked
    domain must validate.
    """
    validation: dict[str, Any] = {"allowRevoked": False, "validateLinkedDomain": True}
    if include_face_check:
        validation["faceCheck"] = {
            "sourcePhotoClaimName": FACE_CHECK_PHOTO_CLAIM,
            "matchConfidenceThreshold": FACE_CHECK_CONFIDENCE_THRESHOLD,
        }
        logger.info(
            "Face verification enabled with %d%% confidence threshold",
            FACE_CHECK_CONFIDENCE_THRESHOLD,
        )

    return {
        "includeQRCode": True,
        "callback": {
            "url": settings.callback_url(CALLBACK_PATH),
            "state": request_id,
            "headers": {"api-key": settings.callback_api_key},
        },
        "authority": settings.did_authority,
        "registration": {
            "clientName": settings.client_name or DEFAULT_CLIENT_NAME,
            "purpose": settings.purpose,
        },
        "includeReceipt": True,
        "requestedCredentials": [
            {
                "type": settings.credential_type,
                "purpose": settings.purpose,
                "acceptedIssuers": [settings.did_authority],
                "configuration": {"validation": validation},
            }
        ],
    }


def extract_verification_result(
    request_status: str, payload: Mapping[str, Any]
) -> dict[str, Any] | None:
    """Pull the presented credential out of a ``presentation_verified`` callback."""
    if request_status != PRESENTATION_VERIFIED:
        return None
    credentials = payload.get("verifiedCredentialsData")
    if not isinstance(credentials, list) or not credentials:
        return None
    credential = credentials[0]
    if not isinstance(credential, Mapping):
        return None

    verified_credential = {
        "type": credential.get("type"),
        "issuer": credential.get("issuer"),
        "claims": credential.get("claims"),
        "credentialSubject": credential.get("credentialSubject"),
    }

    face_check_result = None
    face_check = credential.get("faceCheck")
    if isinstance(face_check, Mapping):
        face_check_result = {
            "faceCheckPassed": face_check.get("faceCheckPassed"),
            "confidence": face_check.get("confidence"),
        }
        logger.info(
            "Face verification result: %s (%s%% confidence)",
            "PASSED" if face_check_result["faceCheckPassed"] else "FAILED",
            face_check_result["confidence"],
        )

    logger.info(
        "Credential verification successful: type=%s issuer=%s",
        verified_credential["type"],
        verified_credential["issuer"],
    )
    return {"verifiedCredential": verified_credential, "faceCheckResult": face_check_result}
