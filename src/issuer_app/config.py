"""Configuration for the credential issue service."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator

from verified_id_common.base_config import VerifiedIdSettings, load_settings

logger = logging.getLogger(__name__)

DEFAULT_PIN_CODE_LENGTH = 4
MAX_PIN_CODE_LENGTH = 6


class IssuerSettings(VerifiedIdSettings):
    """Environment-driven settings for the issue service."""

    credential_manifest: str = Field(alias="CREDENTIAL_MANIFEST")
    # 0 disables the PIN
    issuance_pin_code_length: int = Field(
        default=DEFAULT_PIN_CODE_LENGTH, alias="ISSUANCE_PIN_CODE_LENGTH"
    )

    @field_validator("credential_manifest")
    @classmethod
    def _require_manifest(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("issuance_pin_code_length", mode="before")
    @classmethod
    def _coerce_pin_length(cls, value: Any) -> int:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_PIN_CODE_LENGTH
        try:
            length = int(value)
        except (TypeError, ValueError):
            length = -1
        if not 0 <= length <= MAX_PIN_CODE_LENGTH:
            logger.warning(
                "Invalid PIN length %r, using default %d", value, DEFAULT_PIN_CODE_LENGTH
            )
            return DEFAULT_PIN_CODE_LENGTH
        return length


@lru_cache
def get_settings() -> IssuerSettings:
    """Return a cached settings instance."""

    return load_settings(IssuerSettings)
