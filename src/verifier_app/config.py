"""Configuration for the credential verify service."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator

from verified_id_common.base_config import VerifiedIdSettings, load_settings

DEFAULT_PURPOSE = "To verify your credential status"


class VerifierSettings(VerifiedIdSettings):
    """Environment-driven settings for the verify service."""

    # The platform must be able to reach the callback route
    app_url: str = Field(alias="APP_URL")
    purpose: str = Field(default=DEFAULT_PURPOSE, alias="PURPOSE")

    @field_validator("app_url")
    @classmethod
    def _require_app_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "must not be empty"
            raise ValueError(msg)
        return value


@lru_cache
def get_settings() -> VerifierSettings:
    """Return a cached settings instance."""

    return load_settings(VerifierSettings)
