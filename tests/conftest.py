"""
Test configuration for the Verified ID services.
"""

from __future__ import annotations

import pytest

from issuer_app.config import IssuerSettings
from tests.fixtures.cloud import (
    BASE_ENV,
    ISSUER_ENV,
    FakeMicrosoftCloud,
    StubTokenProvider,
)
from verified_id_common.runtime import ServiceDependencies, build_dependencies
from verifier_app.config import VerifierSettings

ENVIRONMENT_VARIABLES = (
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "AZURE_TENANT_ID",
    "DID_AUTHORITY",
    "CREDENTIAL_TYPE",
    "CREDENTIAL_MANIFEST",
    "CLIENT_NAME",
    "APP_URL",
    "PURPOSE",
    "ENVIRONMENT",
    "NODE_ENV",
    "HOST",
    "PORT",
    "ISSUANCE_PIN_CODE_LENGTH",
    "VERIFIED_ID_ENDPOINT",
    "VERIFIED_ID_SCOPE",
    "GRAPH_ENDPOINT",
    "HTTP_TIMEOUT_SECONDS",
    "CALLBACK_API_KEY",
    "REQUIRE_CALLBACK_API_KEY",
    "REQUEST_TTL_SECONDS",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


# Test markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# Collection settings
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's shell environment out of settings under test."""
    for name in ENVIRONMENT_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def token_provider() -> StubTokenProvider:
    return StubTokenProvider()


@pytest.fixture
def cloud() -> FakeMicrosoftCloud:
    return FakeMicrosoftCloud()


@pytest.fixture
def issuer_settings() -> IssuerSettings:
    return IssuerSettings(_env_file=None, **ISSUER_ENV)


@pytest.fixture
def verifier_settings() -> VerifierSettings:
    return VerifierSettings(_env_file=None, **BASE_ENV)


@pytest.fixture
def issuer_dependencies(
    issuer_settings: IssuerSettings,
    cloud: FakeMicrosoftCloud,
    token_provider: StubTokenProvider,
) -> ServiceDependencies:
    return build_dependencies(
        issuer_settings, token_provider=token_provider, http_client=cloud.client()
    )


@pytest.fixture
def verifier_dependencies(
    verifier_settings: VerifierSettings,
    cloud: FakeMicrosoftCloud,
    token_provider: StubTokenProvider,
) -> ServiceDependencies:
    return build_dependencies(
        verifier_settings, token_provider=token_provider, http_client=cloud.client()
    )
