"""Per-application runtime dependencies and their lifecycle."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import timedelta

import httpx
import uvicorn
from fastapi import FastAPI

from verified_id_common.base_config import VerifiedIdSettings
from verified_id_common.exceptions import ConfigurationError
from verified_id_common.graph import GraphClient
from verified_id_common.logging_config import setup_logging
from verified_id_common.tokens import MsalTokenProvider, TokenProvider
from verified_id_common.tracker import InMemoryRequestStore, RequestStore
from verified_id_common.verified_id import VerifiedIdClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceDependencies:
    """Collaborators shared by the routes of one service instance."""

    settings: VerifiedIdSettings
    tracker: RequestStore
    token_provider: TokenProvider
    http_client: httpx.AsyncClient
    verified_id: VerifiedIdClient
    graph: GraphClient
    shutdown_hooks: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def shutdown(self) -> None:
        if self.shutdown_hooks:
            await asyncio.gather(
                *(hook() for hook in reversed(self.shutdown_hooks)),
                return_exceptions=True,
            )
        await self.http_client.aclose()

    def register_shutdown_hook(self, hook: Callable[[], Awaitable[None]]) -> None:
        self.shutdown_hooks.append(hook)


def build_dependencies(
    settings: VerifiedIdSettings,
    *,
    tracker: RequestStore | None = None,
    token_provider: TokenProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ServiceDependencies:
    """Wire the default collaborators, letting callers substitute any of them."""
    if tracker is None:
        max_age = (
            timedelta(seconds=settings.request_ttl_seconds)
            if settings.request_ttl_seconds
            else None
        )
        tracker = InMemoryRequestStore(max_age=max_age)
    if token_provider is None:
        token_provider = MsalTokenProvider(
            client_id=settings.azure_client_id,
            client_secret=settings.azure_client_secret,
            authority=settings.authority,
        )
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    logger.debug("Runtime dependencies built for authority %s", settings.authority)
    return ServiceDependencies(
        settings=settings,
        tracker=tracker,
        token_provider=token_provider,
        http_client=http_client,
        verified_id=VerifiedIdClient(
            http_client,
            token_provider,
            endpoint=settings.verified_id_endpoint,
            scope=settings.verified_id_scope,
        ),
        graph=GraphClient(http_client, token_provider, endpoint=settings.graph_endpoint),
    )


def serve_service(
    service_name: str,
    load_settings: Callable[[], VerifiedIdSettings],
    create_app: Callable[[VerifiedIdSettings], FastAPI],
) -> None:
    """Configure logging, validate settings and run the app under uvicorn.

    Exits with status 1 before binding a port when configuration is invalid.
    """
    setup_logging(service_name)
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error("%s cannot start: %s", service_name, exc.message)
        sys.exit(1)

    app = create_app(settings)
    logger.info("%s listening on %s:%s", service_name, settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


__all__ = ["ServiceDependencies", "build_dependencies", "serve_service"]
