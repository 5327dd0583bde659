from __future__ import annotations

from verifier_app.presentation import build_presentation_request, extract_verification_result

VERIFIED_CALLBACK = {
    "requestId": "platform-request-id",
    "requestStatus": "presentation_verified",
    "state": "r1",
    "subject": "did:web:holder",
    "verifiedCredentialsData": [
        {
            "issuer": "did:web:verifiedid.contoso.com",
            "type": ["VerifiableCredential", "VerifiedEmployee"],
            "claims": {"displayName": "Jane Doe", "jobTitle": "Engineer"},
            "credentialSubject": {"displayName": "Jane Doe"},
            "credentialState": {"revocationStatus": "VALID"},
            "faceCheck": {"matchConfidenceScore": 88.2, "faceCheckPassed": True, "confidence": 88},
        },
        {"issuer": "did:web:other", "type": ["Other"], "claims": {}},
    ],
}


def test_presentation_request_document(verifier_settings):
    document = build_presentation_request(verifier_settings, "r1")

    assert document == {
        "includeQRCode": True,
        "callback": {
            "url": "https://app.contoso.com/api/verification-callback",
            "state": "r1",
            "headers": {"api-key": "verifiedid-api-key"},
        },
        "authority": "did:web:verifiedid.contoso.com",
        "registration": {
            "clientName": "Microsoft Entra Verified ID Verifier",
            "purpose": "To verify your credential status",
        },
        "includeReceipt": True,
        "requestedCredentials": [
            {
                "type": "VerifiedEmployee",
                "purpose": "To verify your credential status",
                "acceptedIssuers": ["did:web:verifiedid.contoso.com"],
                "configuration": {
                    "validation": {"allowRevoked": False, "validateLinkedDomain": True}
                },
            }
        ],
    }


def test_face_check_is_added_on_request(verifier_settings):
    settings = verifier_settings.model_copy(
        update={"client_name": "Contoso Lobby", "purpose": "Building access"}
    )

    document = build_presentation_request(settings, "r1", include_face_check=True)

    assert document["registration"] == {"clientName": "Contoso Lobby", "purpose": "Building access"}
    credential = document["requestedCredentials"][0]
    assert credential["purpose"] == "Building access"
    assert credential["configuration"]["validation"]["faceCheck"] == {
        "sourcePhotoClaimName": "photo",
        "matchConfidenceThreshold": 70,
    }


def test_result_is_taken_from_first_credential():
    result = extract_verification_result("presentation_verified", VERIFIED_CALLBACK)

    assert result == {
        "verifiedCredential": {
            "type": ["VerifiableCredential", "VerifiedEmployee"],
            "issuer": "did:web:verifiedid.contoso.com",
            "claims": {"displayName": "Jane Doe", "jobTitle": "Engineer"},
            "credentialSubject": {"displayName": "Jane Doe"},
        },
        "faceCheckResult": {"faceCheckPassed": True, "confidence": 88},
    }


def test_result_without_face_check():
    payload = {"verifiedCredentialsData": [{"type": ["X"], "issuer": "did:web:x", "claims": {}}]}

    result = extract_verification_result("presentation_verified", payload)

    assert result["faceCheckResult"] is None
    assert result["verifiedCredential"]["credentialSubject"] is None


def test_no_result_for_other_statuses_or_empty_data():
    assert extract_verification_result("request_retrieved", VERIFIED_CALLBACK) is None
    assert extract_verification_result("presentation_error", VERIFIED_CALLBACK) is None
    assert extract_verification_result("presentation_verified", {}) is None
    assert (
        extract_verification_result("presentation_verified", {"verifiedCredentialsData": []})
        is None
    )
