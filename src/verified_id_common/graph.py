"""Microsoft Graph lookups for the signed-in user's profile and photo."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from verified_id_common.exceptions import FallbackExhaustedError, ProfileLookupError
from verified_id_common.fallback import first_success
from verified_id_common.tokens import GRAPH_SCOPE, TokenProvider

logger = logging.getLogger(__name__)

PHOTO_SIZES = ("240x240", "120x120", "96x96", "64x64", "48x48")

DEFAULT_JOB_TITLE = "Employee"
DEFAULT_LANGUAGE = "en-US"


@dataclass
class UserProfile:
    """Directory profile fields used as credential claims."""

    display_name: str | None = None
    given_name: str | None = None
    surname: str | None = None
    mail: str | None = None
    job_title: str | None = DEFAULT_JOB_TITLE
    preferred_language: str | None = DEFAULT_LANGUAGE
    user_principal_name: str | None = None
    photo: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire representation, keyed the way Graph and the claims are."""
        return {
            "displayName": self.display_name,
            "givenName": self.given_name,
            "surname": self.surname,
            "mail": self.mail,
            "jobTitle": self.job_title,
            "preferredLanguage": self.preferred_language,
            "userPrincipalName": self.user_principal_name,
            "photo": self.photo,
        }


class GraphClient:
    """Thin async wrapper over the Graph ``/users`` endpoints."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_provider: TokenProvider,
        endpoint: str,
    ) -> None:
        self._http = http_client
        self._tokens = token_provider
        self._endpoint = endpoint.rstrip("/")

    def _user_url(self, principal: str, suffix: str = "") -> str:
        return f"{self._endpoint}/users/{quote(principal, safe='@')}{suffix}"

    async def _get(self, url: str) -> httpx.Response:
        token = await self._tokens.acquire(GRAPH_SCOPE)
        try:
            response = await self._http.get(url, headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as exc:
            msg = f"Graph request failed: {exc}"
            raise ProfileLookupError(msg) from exc
        if response.is_error:
            msg = f"Graph request to {url} returned HTTP {response.status_code}"
            raise ProfileLookupError(msg, upstream_status=response.status_code)
        return response

    async def get_user_profile(self, principal: str) -> UserProfile:
        """Read the directory profile of ``principal`` (UPN or object id).

        Raises:
            ProfileLookupError: If the user cannot be read
        """
        response = await self._get(self._user_url(principal))
        try:
            user = response.json()
        except ValueError as exc:
            msg = "Graph returned a non-JSON user document"
            raise ProfileLookupError(msg) from exc

        return UserProfile(
            display_name=user.get("displayName"),
            given_name=user.get("givenName"),
            surname=user.get("surname"),
            mail=user.get("mail") or user.get("userPrincipalName"),
            job_title=user.get("jobTitle") or DEFAULT_JOB_TITLE,
            preferred_language=user.get("preferredLanguage") or DEFAULT_LANGUAGE,
            user_principal_name=user.get("userPrincipalName"),
        )

    async def get_user_photo(self, principal: str) -> bytes | None:
        """Fetch the user's photo, largest size first.

        Returns ``None`` when no size variant (nor the default photo) exists.
        """
        urls = [self._user_url(principal, f"/photos/{size}/$value") for size in PHOTO_SIZES]
        urls.append(self._user_url(principal, "/photo/$value"))

        def fetch(url: str):
            async def attempt() -> bytes:
                response = await self._get(url)
                if not response.content:
                    msg = "No photo data received"
                    raise ProfileLookupError(msg)
                return response.content

            return attempt

        try:
            photo = await first_success((fetch(url) for url in urls), label="user photo")
        except FallbackExhaustedError:
            logger.info("No photo available for user %s", principal)
            return None

        logger.info("Using user photo from Microsoft Graph (%d bytes)", len(photo))
        return photo


__all__ = ["DEFAULT_JOB_TITLE", "DEFAULT_LANGUAGE", "PHOTO_SIZES", "GraphClient", "UserProfile"]
