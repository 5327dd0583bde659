"""
Fakes for the Microsoft services the Verified ID apps call out to.
"""

from __future__ import annotations

import base64
import json
from typing import Any

import httpx

BASE_ENV = {
    "AZURE_CLIENT_ID": "00000000-0000-0000-0000-000000000001",
    "AZURE_CLIENT_SECRET": "test-secret",
    "AZURE_TENANT_ID": "contoso-tenant",
    "DID_AUTHORITY": "did:web:verifiedid.contoso.com",
    "CREDENTIAL_TYPE": "VerifiedEmployee",
    "APP_URL": "https://app.contoso.com",
    "ENVIRONMENT": "test",
}

ISSUER_ENV = {
    **BASE_ENV,
    "CREDENTIAL_MANIFEST": "https://verifiedid.did.msidentity.com/v1.0/tenants/contoso/manifest",
}

PLATFORM_RESPONSE = {
    "requestId": "platform-request-id",
    "url": "openid-vc://?request_uri=https://verifiedid.did.msidentity.com/v1.0/request",
    "expiry": 1767225600,
    "qrCode": "data:image/png;base64,iVBORw0KGgo=",
}

GRAPH_USER = {
    "displayName": "Jane Doe",
    "givenName": "Jane",
    "surname": "Doe",
    "mail": "jane.doe@contoso.com",
    "jobTitle": "Engineer",
    "preferredLanguage": "en-GB",
    "userPrincipalName": "jane.doe@contoso.com",
}


class StubTokenProvider:
    """Token provider that never talks to Entra ID."""

    def __init__(self, token: str = "test-access-token", error: Exception | None = None) -> None:
        self.token = token
        self.error = error
        self.scopes: list[str] = []

    async def acquire(self, scope: str) -> str:
        self.scopes.append(scope)
        if self.error is not None:
            raise self.error
        return self.token


class FakeMicrosoftCloud:
    """httpx transport handler standing in for the Request Service and Graph."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.platform_status = 201
        self.platform_body: Any = dict(PLATFORM_RESPONSE)
        self.user: dict[str, Any] | None = dict(GRAPH_USER)
        self.photo: bytes | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith(("createIssuanceRequest", "createPresentationRequest")):
            return httpx.Response(self.platform_status, json=self.platform_body)
        if "/photo" in path:
            if self.photo is None:
                return httpx.Response(404, json={"error": {"code": "ImageNotFound"}})
            return httpx.Response(200, content=self.photo)
        if "/users/" in path:
            if self.user is None:
                return httpx.Response(404, json={"error": {"code": "Request_ResourceNotFound"}})
            return httpx.Response(200, json=self.user)
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def platform_documents(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests if request.method == "POST"]


def principal_header(
    user_details: str = "jane.doe@contoso.com",
    claims: list[dict[str, str]] | None = None,
    **extra: Any,
) -> str:
    """Base64 ``x-ms-client-principal`` value as App Service would send it."""
    principal = {
        "auth_typ": "aad",
        "identityProvider": "aad",
        "userId": "user-object-id",
        "userDetails": user_details,
        "claims": claims if claims is not None else [{"typ": "name", "val": "Jane Doe"}],
        **extra,
    }
    return base64.b64encode(json.dumps(principal).encode("utf-8")).decode("ascii")
