"""FastAPI application for the credential issue service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, status
from fastapi.responses import JSONResponse

from issuer_app.config import IssuerSettings, get_settings
from issuer_app.issuance import CALLBACK_PATH, build_issuance_request, generate_pin
from issuer_app.profile import resolve_profile, resolve_summary
from verified_id_common.easy_auth import EasyAuthUser, require_easy_auth
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

LOGGER = logging.getLogger(__name__)

SERVICE_NAME = "issue-credential"
STATIC_DIR = Path(__file__).parent / "static"


def _error_message(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc)


def _issuance_status_fields(record: TrackedRequest) -> dict[str, Any]:
    return {"pin": record.metadata.get("pin")}


def create_app(
    settings: IssuerSettings | None = None,
    dependencies: ServiceDependencies | None = None,
) -> FastAPI:
    """Application factory used by both runtime and tests."""
    if dependencies is None:
        if settings is None:
            settings = get_settings()
        dependencies = build_dependencies(settings)
    settings = dependencies.settings
    tracker = dependencies.tracker

    app = create_service_app("Verified ID Issue Credential", dependencies)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Liveness probe."""
        return health_payload(SERVICE_NAME, settings.environment)

    @app.get("/api/user")
    async def current_user(user: EasyAuthUser = Depends(require_easy_auth)):
        """Profile of the signed-in user, for display before issuance."""
        try:
            profile = await resolve_summary(dependencies.graph, user)
        except Exception as exc:
            LOGGER.exception("Error in /api/user")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Failed to load user information",
                    "message": _error_message(exc),
                },
            )
        return {"user": profile, "authenticated": True}

    @app.post("/api/issue-credential")
    async def issue_credential(user: EasyAuthUser = Depends(require_easy_auth)):
        """Create an issuance request for the signed-in user."""
        LOGGER.info("Issuing credential for user: %s", user.user_details)
        request_id: str | None = None
        try:
            profile = await resolve_profile(dependencies.graph, user)
            pin = generate_pin(settings.issuance_pin_code_length)
            request_id = tracker.create(
                RequestKind.ISSUANCE,
                {"userData": profile.to_dict(), "pin": pin.value if pin else None},
            )
            correlation_id.set(request_id)
            document = build_issuance_request(settings, profile, request_id, pin)
            if pin is not None:
                LOGGER.info("Generated %d-digit PIN for request %s", pin.length, request_id)
            response = await dependencies.verified_id.create_issuance_request(document)
        except Exception as exc:
            if request_id is not None:
                tracker.discard(request_id)
            LOGGER.exception("Error in issue-credential endpoint")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_body(
                    _error_message(exc), "Failed to create credential issuance request"
                ),
            )

        return {
            "success": True,
            "requestId": request_id,
            "url": response.url,
            "expiry": response.expiry,
            "qrCode": response.qr_code,
            "pin": pin.value if pin else None,
            "message": "Credential issuance request created successfully",
        }

    add_tracking_routes(
        app,
        callback_path=CALLBACK_PATH,
        callback_message="Callback received",
        status_fields=_issuance_status_fields,
    )
    mount_static_site(app, STATIC_DIR)
    return app
