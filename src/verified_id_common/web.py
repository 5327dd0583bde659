"""FastAPI wiring shared by the issue and verify services."""

from __future__ import annotations

import logging
import secrets
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from verified_id_common import __version__
from verified_id_common.exceptions import AuthenticationError, VerifiedIdError
from verified_id_common.logging_config import correlation_id
from verified_id_common.runtime import ServiceDependencies
from verified_id_common.tracker import RequestStore, TrackedRequest, utc_now

logger = logging.getLogger(__name__)

CALLBACK_KEY_HEADER = "api-key"
SIGN_IN_MESSAGE = "Please sign in through Azure App Service authentication"

ResultExtractor = Callable[[str, Mapping[str, Any]], dict[str, Any] | None]
StatusFields = Callable[[TrackedRequest], dict[str, Any]]


def get_dependencies(request: Request) -> ServiceDependencies:
    """FastAPI dependency returning the container stored on the application."""
    return request.app.state.dependencies


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def error_body(error: str, message: str) -> dict[str, Any]:
    return {"success": False, "error": error, "message": message}


def create_service_app(title: str, dependencies: ServiceDependencies) -> FastAPI:
    """Create a FastAPI app bound to ``dependencies`` with the shared middleware."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("%s starting in %s mode", title, dependencies.settings.environment)
        yield
        await dependencies.shutdown()
        logger.info("%s stopped", title)

    app = FastAPI(title=title, version=__version__, lifespan=lifespan)
    app.state.dependencies = dependencies
    install_error_handlers(app)
    install_request_logging(app)
    return app


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": exc.message, "message": SIGN_IN_MESSAGE},
        )

    @app.exception_handler(VerifiedIdError)
    async def handle_service_error(request: Request, exc: VerifiedIdError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, "Request could not be completed"),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        logger.warning("%s %s rejected: %s", request.method, request.url.path, problems)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(problems, "Invalid request body"),
        )


def install_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        token = correlation_id.set(None)
        try:
            logger.info("%s %s", request.method, request.url.path)
            return await call_next(request)
        finally:
            correlation_id.reset(token)


def health_payload(app_name: str, environment: str) -> dict[str, Any]:
    return {
        "status": "healthy",
        "app": app_name,
        "timestamp": isoformat(utc_now()),
        "environment": environment,
    }


def status_body(record: TrackedRequest, **fields: Any) -> dict[str, Any]:
    """Polling view of a tracked request, extended with kind-specific ``fields``."""
    body = {
        "success": True,
        "requestId": record.id,
        "status": record.status,
        "type": record.kind.value,
        "created": isoformat(record.created_at),
        "updated": isoformat(record.updated_at),
        "error": record.error,
    }
    body.update(fields)
    return body


def ingest_callback(
    tracker: RequestStore,
    payload: Mapping[str, Any],
    result_extractor: ResultExtractor | None = None,
) -> bool:
    """Apply a platform callback to the tracker.

    The correlation id is read from ``state`` and the status from ``code``,
    falling back to ``requestStatus``. Callbacks for unknown ids, or without
    an id or status, leave the tracker untouched.

    Returns:
        ``True`` if a tracked request was updated.
    """
    request_id = payload.get("state")
    request_status = payload.get("code") or payload.get("requestStatus")
    if not isinstance(request_id, str) or not isinstance(request_status, str):
        logger.warning("Ignoring callback without a correlation id or status")
        return False

    result = result_extractor(request_status, payload) if result_extractor else None
    error = payload.get("error")
    updated = tracker.update(
        request_id,
        request_status,
        result=result,
        error=error if isinstance(error, Mapping) else None,
    )
    if updated:
        logger.info("Request %s status updated to: %s", request_id, request_status)
    else:
        logger.info("Ignoring callback for unknown request %s", request_id)
    return updated


async def _read_callback_payload(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Callback body is not valid JSON")
        return {}
    if not isinstance(payload, dict):
        logger.warning("Callback body is not a JSON object")
        return {}
    return payload


def _callback_key_matches(request: Request, expected: str) -> bool:
    provided = request.headers.get(CALLBACK_KEY_HEADER, "")
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def add_tracking_routes(
    app: FastAPI,
    *,
    callback_path: str,
    callback_message: str,
    status_fields: StatusFields,
    result_extractor: ResultExtractor | None = None,
) -> None:
    """Register the status polling route and the platform callback route."""

    @app.get("/api/request-status/{request_id}")
    async def request_status(
        request_id: str,
        dependencies: ServiceDependencies = Depends(get_dependencies),
    ):
        record = dependencies.tracker.get(request_id)
        if record is None:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"success": False, "error": "Request not found"},
            )
        return status_body(record, **status_fields(record))

    @app.post(callback_path)
    async def platform_callback(
        request: Request,
        dependencies: ServiceDependencies = Depends(get_dependencies),
    ):
        settings = dependencies.settings
        if settings.require_callback_api_key and not _callback_key_matches(
            request, settings.callback_api_key
        ):
            logger.warning("Rejected callback on %s: api-key mismatch", callback_path)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={
                    "error": "Invalid callback credentials",
                    "message": "The api-key header does not match the configured key",
                },
            )

        payload = await _read_callback_payload(request)
        if isinstance(payload.get("state"), str):
            correlation_id.set(payload["state"])
        logger.info(
            "Callback received: state=%s code=%s",
            payload.get("state"),
            payload.get("code") or payload.get("requestStatus"),
        )
        ingest_callback(dependencies.tracker, payload, result_extractor)
        return {"message": callback_message}


def mount_static_site(app: FastAPI, static_dir: Path) -> None:
    """Serve ``index.html`` at ``/`` and the rest of ``static_dir`` below it.

    Must be called after every other route is registered.
    """
    index_file = static_dir / "index.html"

    @app.get("/", include_in_schema=False)
    async def index() -> FileResponse:
        return FileResponse(index_file)

    app.mount("/", StaticFiles(directory=str(static_dir)), name="static")


__all__ = [
    "CALLBACK_KEY_HEADER",
    "add_tracking_routes",
    "create_service_app",
    "error_body",
    "get_dependencies",
    "health_payload",
    "ingest_callback",
    "install_error_handlers",
    "install_request_logging",
    "isoformat",
    "mount_static_site",
    "status_body",
]
