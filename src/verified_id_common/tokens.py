"""Access-token acquisition for the Request Service and Microsoft Graph."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Protocol

import msal

from verified_id_common.exceptions import TokenAcquisitionError

logger = logging.getLogger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"


class TokenProvider(Protocol):
    """Anything that can hand out a bearer token for a scope."""

    async def acquire(self, scope: str) -> str:
        ...


class MsalTokenProvider:
    """Client-credentials token provider backed by an MSAL confidential client.

    The MSAL application is built on first use because constructing it
    performs authority discovery over the network. MSAL keeps its own
    in-memory token cache, so repeated calls reuse unexpired tokens.
    """

    def __init__(self, client_id: str, client_secret: str, authority: str) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._authority = authority
        self._app: msal.ConfidentialClientApplication | None = None
        self._app_lock = threading.Lock()

    def _application(self) -> msal.ConfidentialClientApplication:
        with self._app_lock:
            if self._app is None:
                self._app = msal.ConfidentialClientApplication(
                    client_id=self._client_id,
                    client_credential=self._client_secret,
                    authority=self._authority,
                )
            return self._app

    def _acquire_blocking(self, scope: str) -> dict[str, Any]:
        return self._application().acquire_token_for_client(scopes=[scope])

    async def acquire(self, scope: str) -> str:
        try:
            result = await asyncio.to_thread(self._acquire_blocking, scope)
        except (ValueError, OSError) as exc:
            logger.exception("Error acquiring access token for %s", scope)
            raise TokenAcquisitionError(str(exc)) from exc

        token = result.get("access_token") if result else None
        if not token:
            reason = (result or {}).get("error") or "no access token returned"
            logger.error(
                "Token request for %s failed: %s (%s)",
                scope,
                reason,
                (result or {}).get("error_description"),
            )
            raise TokenAcquisitionError(reason)
        return token


__all__ = ["GRAPH_SCOPE", "MsalTokenProvider", "TokenProvider"]
