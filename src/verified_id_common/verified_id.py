"""Client for the Microsoft Entra Verified ID Request Service API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from verified_id_common.exceptions import UpstreamServiceError
from verified_id_common.tokens import TokenProvider

logger = logging.getLogger(__name__)

ISSUANCE_PATH = "verifiableCredentials/createIssuanceRequest"
PRESENTATION_PATH = "verifiableCredentials/createPresentationRequest"


@dataclass(slots=True)
class PlatformResponse:
    """What the Request Service hands back for a newly created request."""

    url: str | None
    expiry: int | None
    qr_code: str | None
    raw: dict[str, Any] = field(default_factory=dict)


class VerifiedIdClient:
    """Posts issuance and presentation request documents to the platform.

    Args:
        http_client: Shared async HTTP client (its timeout bounds every call)
        token_provider: Source of bearer tokens for ``scope``
        endpoint: Base URL of the Request Service
        scope: Token scope of the Request Service
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_provider: TokenProvider,
        endpoint: str,
        scope: str,
    ) -> None:
        self._http = http_client
        self._tokens = token_provider
        self._endpoint = endpoint.rstrip("/")
        self._scope = scope

    async def create_issuance_request(self, document: dict[str, Any]) -> PlatformResponse:
        return await self._post(ISSUANCE_PATH, document, "issuance")

    async def create_presentation_request(self, document: dict[str, Any]) -> PlatformResponse:
        return await self._post(PRESENTATION_PATH, document, "verification")

    async def _post(self, path: str, document: dict[str, Any], label: str) -> PlatformResponse:
        access_token = await self._tokens.acquire(self._scope)
        url = f"{self._endpoint}/{path}"
        logger.info("Making %s request to: %s", label, url)

        try:
            response = await self._http.post(
                url,
                json=document,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Error creating %s request: %s", label, exc)
            msg = f"Failed to create {label} request: {exc}"
            raise UpstreamServiceError(msg) from exc

        if response.is_error:
            body = _response_body(response)
            logger.error(
                "Error creating %s request: HTTP %s, response: %s",
                label,
                response.status_code,
                body,
            )
            msg = (
                f"Failed to create {label} request: "
                f"Request failed with status code {response.status_code}"
            )
            raise UpstreamServiceError(msg, upstream_status=response.status_code, body=body)

        payload = _response_body(response)
        if not isinstance(payload, dict):
            msg = f"Failed to create {label} request: unexpected response body"
            raise UpstreamServiceError(msg, upstream_status=response.status_code, body=payload)

        logger.info("%s request created successfully", label.capitalize())
        return PlatformResponse(
            url=payload.get("url"),
            expiry=payload.get("expiry"),
            qr_code=payload.get("qrCode"),
            raw=payload,
        )


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


__all__ = ["ISSUANCE_PATH", "PRESENTATION_PATH", "PlatformResponse", "VerifiedIdClient"]
