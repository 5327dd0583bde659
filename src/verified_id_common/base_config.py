"""
Shared configuration base classes for the Verified ID services.

Each service inherits from :class:`VerifiedIdSettings` and adds the settings
that only it needs. Values come from the process environment and an optional
``.env`` file.
"""

from __future__ import annotations

import logging
from typing import TypeVar

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from verified_id_common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LOGIN_AUTHORITY_HOST = "https://login.microsoftonline.com"
DEFAULT_VERIFIED_ID_ENDPOINT = "https://verifiedid.did.msidentity.com/v1.0/"
DEFAULT_VERIFIED_ID_SCOPE = "3db474b9-6a0c-4840-96ac-1fceb342124f/.default"
DEFAULT_GRAPH_ENDPOINT = "https://graph.microsoft.com/v1.0"
DEFAULT_CALLBACK_API_KEY = "verifiedid-api-key"

REQUIRED_FIELDS = (
    "azure_client_id",
    "azure_client_secret",
    "azure_tenant_id",
    "did_authority",
    "credential_type",
)

SettingsT = TypeVar("SettingsT", bound="VerifiedIdSettings")


class VerifiedIdSettings(BaseSettings):
    """Environment-driven settings shared by the issue and verify services."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Entra app registration used for the client-credentials flow
    azure_client_id: str = Field(alias="AZURE_CLIENT_ID")
    azure_client_secret: str = Field(alias="AZURE_CLIENT_SECRET")
    azure_tenant_id: str = Field(alias="AZURE_TENANT_ID")

    # Verified ID authority and credential
    did_authority: str = Field(alias="DID_AUTHORITY")
    credential_type: str = Field(alias="CREDENTIAL_TYPE")
    client_name: str | None = Field(default=None, alias="CLIENT_NAME")

    # Public base URL the platform calls back into
    app_url: str | None = Field(default=None, alias="APP_URL")

    environment: str = Field(
        default="development", validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV")
    )
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    verified_id_endpoint: str = Field(
        default=DEFAULT_VERIFIED_ID_ENDPOINT, alias="VERIFIED_ID_ENDPOINT"
    )
    verified_id_scope: str = Field(default=DEFAULT_VERIFIED_ID_SCOPE, alias="VERIFIED_ID_SCOPE")
    graph_endpoint: str = Field(default=DEFAULT_GRAPH_ENDPOINT, alias="GRAPH_ENDPOINT")
    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")

    callback_api_key: str = Field(default=DEFAULT_CALLBACK_API_KEY, alias="CALLBACK_API_KEY")
    require_callback_api_key: bool = Field(default=False, alias="REQUIRE_CALLBACK_API_KEY")

    # Unset keeps tracked requests for the lifetime of the process
    request_ttl_seconds: int | None = Field(default=None, alias="REQUEST_TTL_SECONDS")

    @field_validator(*REQUIRED_FIELDS)
    @classmethod
    def _require_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("request_ttl_seconds")
    @classmethod
    def _positive_ttl(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            msg = "must be a positive number of seconds"
            raise ValueError(msg)
        return value

    @property
    def authority(self) -> str:
        """Login authority for the configured tenant."""
        return f"{LOGIN_AUTHORITY_HOST}/{self.azure_tenant_id}"

    @property
    def public_base_url(self) -> str:
        if self.app_url:
            return self.app_url.rstrip("/")
        return f"http://localhost:{self.port}"

    def callback_url(self, path: str) -> str:
        """Absolute URL of a callback route on this service."""
        return f"{self.public_base_url}{path}"


def load_settings(settings_cls: type[SettingsT], **overrides: object) -> SettingsT:
    """Build settings, turning validation failures into a ConfigurationError.

    Args:
        settings_cls: The concrete settings class to instantiate
        **overrides: Explicit values, keyed by environment variable name

    Raises:
        ConfigurationError: If required settings are missing or invalid
    """
    try:
        return settings_cls(**overrides)
    except ValidationError as exc:
        problems = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
        msg = f"Missing or invalid environment variables: {', '.join(problems)}"
        raise ConfigurationError(msg, missing=problems) from exc


__all__ = [
    "DEFAULT_CALLBACK_API_KEY",
    "DEFAULT_GRAPH_ENDPOINT",
    "DEFAULT_VERIFIED_ID_ENDPOINT",
    "DEFAULT_VERIFIED_ID_SCOPE",
    "VerifiedIdSettings",
    "load_settings",
]
