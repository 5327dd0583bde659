"""FastAPI application for the credential verify service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import Body, FastAPI, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from verified_id_common.logging_config import correlation_id
from verified_id_common.runtime import ServiceDependencies, build_dependencies
from verified_id_common.tracker import RequestKind, TrackedRequest
from verified_id_common.web import (
    add_tracking_routes,
    create_service_app,
    error_body,
    health_payload,
    mount_static_site,
)
from verifier_app.config import VerifierSettings, get_settings
from verifier_app.presentation import (
    CALLBACK_PATH,
    build_presentation_request,
    extract_verification_result,
)

LOGGER = logging.getLogger(__name__)

SERVICE_NAME = "verify-credential"
STATIC_DIR = Path(__file__).parent / "static"


class VerificationOptions(BaseModel):
    """Request payload for starting a verification."""

    model_config = ConfigDict(populate_by_name=True)

    include_face_check: bool = Field(default=False, alias="includeFaceCheck")


def _verification_status_fields(record: TrackedRequest) -> dict[str, Any]:
    result = record.result or {}
    return {
        "verifiedCredential": result.get("verifiedCredential"),
        "faceCheckResult": result.get("faceCheckResult"),
    }


def create_app(
    settings: VerifierSettings | None = None,
    dependencies: ServiceDependencies | None = None,
) -> FastAPI:
    """Application factory used by both runtime and tests."""
    if dependencies is None:
        if settings is None:
            settings = get_settings()
        dependencies = build_dependencies(settings)
    settings = dependencies.settings
    tracker = dependencies.tracker

    app = create_service_app("Verified ID Verify Credential", dependencies)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Liveness probe."""
        return health_payload(SERVICE_NAME, settings.environment)

    @app.post("/api/verify-credential")
    async def verify_credential(options: VerificationOptions | None = Body(default=None)):
        """Create a presentation request any visitor can answer with their wallet."""
        include_face_check = options.include_face_check if options else False
        LOGGER.info(
            "Creating verification request (Face Check: %s)",
            "enabled" if include_face_check else "disabled",
        )
        request_id: str | None = None
        try:
            request_id = tracker.create(
                RequestKind.VERIFICATION, {"includeFaceCheck": include_face_check}
            )
            correlation_id.set(request_id)
            document = build_presentation_request(settings, request_id, include_face_check)
            response = await dependencies.verified_id.create_presentation_request(document)
        except Exception as exc:
            if request_id is not None:
                tracker.discard(request_id)
            LOGGER.exception("Error in verify-credential endpoint")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_body(
                    getattr(exc, "message", None) or str(exc),
                    "Failed to create credential verification request",
                ),
            )

        return {
            "success": True,
            "requestId": request_id,
            "url": response.url,
            "expiry": response.expiry,
            "qrCode": response.qr_code,
            "faceCheckEnabled": include_face_check,
            "message": "Credential verification request created successfully",
        }

    add_tracking_routes(
        app,
        callback_path=CALLBACK_PATH,
        callback_message="Verification callback received",
        status_fields=_verification_status_fields,
        result_extractor=extract_verification_result,
    )
    mount_static_site(app, STATIC_DIR)
    return app
