from __future__ import annotations

import base64

from tests.fixtures.cloud import principal_header
from verified_id_common.easy_auth import parse_client_principal

CLAIMS_NS = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims"


def test_parse_prefers_xmlsoap_claims():
    header = principal_header(
        claims=[
            {"typ": "name", "val": "Jane Doe"},
            {"typ": "email", "val": "short@contoso.com"},
            {"typ": f"{CLAIMS_NS}/emailaddress", "val": "jane.doe@contoso.com"},
            {"typ": f"{CLAIMS_NS}/givenname", "val": "Jane"},
            {"typ": f"{CLAIMS_NS}/surname", "val": "Doe"},
            {"typ": f"{CLAIMS_NS}/name", "val": "jane.doe@contoso.onmicrosoft.com"},
        ]
    )

    user = parse_client_principal(header)

    assert user is not None
    assert user.is_authenticated
    assert user.user_id == "user-object-id"
    assert user.identity_provider == "aad"
    assert user.name == "Jane Doe"
    assert user.email == "jane.doe@contoso.com"
    assert user.given_name == "Jane"
    assert user.surname == "Doe"
    assert user.user_principal_name == "jane.doe@contoso.onmicrosoft.com"
    assert user.lookup_name == "jane.doe@contoso.onmicrosoft.com"


def test_parse_falls_back_to_short_claims():
    header = principal_header(
        claims=[
            {"typ": "preferred_username", "val": "jane@contoso.com"},
            {"typ": "given_name", "val": "Jane"},
            {"typ": "family_name", "val": "Doe"},
            {"typ": "upn", "val": "jane@contoso.com"},
        ]
    )

    user = parse_client_principal(header)

    assert user.email == "jane@contoso.com"
    assert user.given_name == "Jane"
    assert user.surname == "Doe"
    assert user.user_principal_name == "jane@contoso.com"


def test_parse_falls_back_to_user_details():
    user = parse_client_principal(principal_header(user_details="jdoe@contoso.com", claims=[]))

    assert user.name == "jdoe@contoso.com"
    assert user.email == "jdoe@contoso.com"
    assert user.user_principal_name == "jdoe@contoso.com"
    assert user.given_name is None
    assert user.surname is None


def test_missing_header_is_unauthenticated():
    assert parse_client_principal(None) is None
    assert parse_client_principal("") is None


def test_malformed_header_is_logged_and_ignored(caplog):
    not_json = base64.b64encode(b"not json").decode("ascii")

    assert parse_client_principal(not_json) is None
    assert parse_client_principal("%%%") is None
    assert parse_client_principal(base64.b64encode(b"[1, 2]").decode("ascii")) is None
    assert "Error parsing Easy Auth header" in caplog.text
