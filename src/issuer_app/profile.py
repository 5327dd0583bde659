"""Resolve the signed-in user's profile: Graph first, Easy Auth claims second."""

from __future__ import annotations

import logging
from typing import Any

from issuer_app.issuance import encode_photo
from verified_id_common.easy_auth import EasyAuthUser
from verified_id_common.exceptions import ProfileLookupError
from verified_id_common.fallback import first_success
from verified_id_common.graph import DEFAULT_JOB_TITLE, DEFAULT_LANGUAGE, GraphClient, UserProfile

logger = logging.getLogger(__name__)


def header_profile(user: EasyAuthUser) -> UserProfile:
    """Reduced profile built from the identity header alone."""
    name_parts = (user.name or "").split(" ")
    return UserProfile(
        display_name=user.name,
        given_name=user.given_name or name_parts[0] or None,
        surname=user.surname or " ".join(name_parts[1:]) or None,
        mail=user.email,
        job_title=DEFAULT_JOB_TITLE,
        preferred_language=DEFAULT_LANGUAGE,
        user_principal_name=user.user_principal_name or user.email,
    )


def header_summary(user: EasyAuthUser) -> dict[str, Any]:
    """What ``/api/user`` shows when the directory cannot be read."""
    return {
        "displayName": user.name or "Unknown User",
        "mail": user.email or "No email",
        "jobTitle": DEFAULT_JOB_TITLE,
        "userPrincipalName": user.user_principal_name or user.email,
    }


def _graph_provider(graph: GraphClient, user: EasyAuthUser):
    async def from_graph() -> UserProfile:
        principal = user.lookup_name
        if not principal:
            msg = "No principal name available for directory lookup"
            raise ProfileLookupError(msg)
        profile = await graph.get_user_profile(principal)
        logger.info("Retrieved user profile from Microsoft Graph")
        return profile

    return from_graph


async def resolve_profile(graph: GraphClient, user: EasyAuthUser) -> UserProfile:
    """Profile used for credential claims, with the user's photo when Graph has one."""

    async def from_header() -> UserProfile:
        logger.warning("Could not retrieve full profile, using Easy Auth data")
        return header_profile(user)

    profile = await first_success(
        [_graph_provider(graph, user), from_header], label="user profile"
    )

    if user.lookup_name:
        photo = await graph.get_user_photo(user.lookup_name)
        if photo:
            profile.photo = encode_photo(photo)
        else:
            logger.info("Could not retrieve user photo, using default")
    return profile


async def resolve_summary(graph: GraphClient, user: EasyAuthUser) -> dict[str, Any]:
    """Profile shown by ``/api/user``."""
    load_profile = _graph_provider(graph, user)

    async def from_graph() -> dict[str, Any]:
        return (await load_profile()).to_dict()

    async def from_header() -> dict[str, Any]:
        logger.warning("Could not retrieve full profile from Graph, using Easy Auth data")
        return header_summary(user)

    return await first_success([from_graph, from_header], label="user summary")
